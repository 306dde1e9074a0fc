import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from masked_estimation.visualization import plot_log


@pytest.fixture
def log():
    return pd.DataFrame({
        'xp_0': [0.0, 1.0, 2.0],
        'zp_0': [0.0, np.nan, 2.0],
        'za_0': [0.5, np.nan, np.nan],
        'xe_0': [0.5, 1.0, 2.0],
    })


def test_state_panel_only(log):
    fig, axes = plot_log(log, show=False)

    assert len(axes) == 1
    assert axes[0].get_xlabel() == 'Cycle'
    plt.close(fig)


def test_state_and_observer_panels(log, tmp_path):
    path = tmp_path / 'cycles.png'

    fig, axes = plot_log(log, state_index=0, observer_index=0, time=np.array([0.0, 0.1, 0.2]),
                         save_path=path, show=False)

    assert len(axes) == 2
    assert axes[-1].get_xlabel() == 'Time'
    assert path.exists()
    plt.close(fig)
