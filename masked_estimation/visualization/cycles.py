"""
Plots of recorded estimation cycles.

Works on the table returned by ``load_log``: predicted vs estimated state,
and predicted vs actual readings with the gaps of non-reporting observers.
"""

import numpy as np
import matplotlib.pyplot as plt


def plot_log(log, state_index=0, observer_index=None, time=None,
             title="Masked Kalman Filter", figsize=(12, 8), save_path=None, show=True):
    """
    Plot one state variable and, optionally, one observer from a cycle log.

    Parameters
    ----------
    log : pd.DataFrame
        Cycle log as returned by ``load_log``
    state_index : int, optional
        State variable to plot (columns ``xp_i`` and ``xe_i``)
    observer_index : int, optional
        Observer to plot (columns ``zp_j`` and ``za_j``). If None, only the
        state panel is drawn.
    time : np.ndarray, optional
        Time of each cycle. Defaults to the cycle number.
    title : str, optional
        Figure title
    figsize : tuple, optional
        Figure size (width, height)
    save_path : str, optional
        Path to save figure. If None, figure is not saved.
    show : bool, optional
        Whether to display the plot

    Returns
    -------
    fig, axes
        Matplotlib figure and list of axes
    """
    xlabel = "Time"
    if time is None:
        time = np.arange(len(log))
        xlabel = "Cycle"

    n_panels = 1 if observer_index is None else 2
    fig, axes = plt.subplots(n_panels, 1, figsize=figsize, sharex=True, squeeze=False)
    axes = list(axes[:, 0])

    ax = axes[0]
    ax.plot(time, log[f"xp_{state_index}"], 'r--', linewidth=1, label='Predicted', alpha=0.7)
    ax.plot(time, log[f"xe_{state_index}"], 'b-', linewidth=2, label='Estimated')
    ax.set_ylabel(f"x[{state_index}]", fontsize=12)
    ax.legend(fontsize=10)
    ax.grid(True, alpha=0.3)

    if observer_index is not None:
        ax = axes[1]
        ax.plot(time, log[f"zp_{observer_index}"], 'k-', linewidth=1, label='Predicted reading')
        # NaN cells (no report) are not drawn
        ax.plot(time, log[f"za_{observer_index}"], 'g.', markersize=6, label='Actual reading')
        ax.set_ylabel(f"z[{observer_index}]", fontsize=12)
        ax.legend(fontsize=10)
        ax.grid(True, alpha=0.3)

    axes[-1].set_xlabel(xlabel, fontsize=12)
    fig.suptitle(title, fontsize=14)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')

    if show:
        plt.show()

    return fig, axes
