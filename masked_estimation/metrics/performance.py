"""
Performance metrics for evaluating masked state estimation.

Includes RMSE, MAE, NEES, and a masked NIS that only counts the observers
which actually reported in each cycle. Missing readings are carried as NaN.
"""

import numpy as np


def rmse(estimates, ground_truth, axis=0):
    """
    Root Mean Square Error, ignoring NaN entries.

    Parameters
    ----------
    estimates : np.ndarray
        Estimated values (N, dim) or (N,)
    ground_truth : np.ndarray
        True values (N, dim) or (N,)
    axis : int, optional
        Axis along which to compute RMSE

    Returns
    -------
    float or np.ndarray
        RMSE value(s)
    """
    estimates = np.asarray(estimates, dtype=float)
    ground_truth = np.asarray(ground_truth, dtype=float)

    squared_errors = (estimates - ground_truth) ** 2

    return np.sqrt(np.nanmean(squared_errors, axis=axis))


def mae(estimates, ground_truth, axis=0):
    """
    Mean Absolute Error, ignoring NaN entries.

    Parameters
    ----------
    estimates : np.ndarray
        Estimated values
    ground_truth : np.ndarray
        True values
    axis : int, optional
        Axis along which to compute MAE

    Returns
    -------
    float or np.ndarray
        MAE value(s)
    """
    estimates = np.asarray(estimates, dtype=float)
    ground_truth = np.asarray(ground_truth, dtype=float)

    return np.nanmean(np.abs(estimates - ground_truth), axis=axis)


def nees(estimates, ground_truth, covariances):
    """
    Normalized Estimation Error Squared (NEES).

    Parameters
    ----------
    estimates : np.ndarray
        Estimated states (N, dim_x)
    ground_truth : np.ndarray
        True states (N, dim_x)
    covariances : np.ndarray
        Estimation error covariances (N, dim_x, dim_x)

    Returns
    -------
    np.ndarray
        NEES values for each time step (N,)

    Notes
    -----
    For a consistent filter, the average NEES should be approximately dim_x.
    """
    estimates = np.asarray(estimates, dtype=float)
    ground_truth = np.asarray(ground_truth, dtype=float)

    N = len(estimates)
    nees_values = np.zeros(N)

    for i in range(N):
        error = estimates[i] - ground_truth[i]
        nees_values[i] = error @ np.linalg.solve(covariances[i], error)

    return nees_values


def nis(innovations, innovation_covariances):
    """
    Normalized Innovation Squared (NIS) over the reporting observers.

    Each step uses only the innovation entries that are not NaN and the
    matching submatrix of the innovation covariance.

    Parameters
    ----------
    innovations : np.ndarray
        Innovation vectors (N, dim_z), NaN where an observer did not report
    innovation_covariances : np.ndarray
        Full innovation covariances (N, dim_z, dim_z)

    Returns
    -------
    nis_values : np.ndarray
        NIS values for each time step (N,), NaN for steps without reports
    dof : np.ndarray
        Number of reporting observers per step (N,)

    Notes
    -----
    For a consistent filter, each NIS value follows a chi-squared
    distribution with ``dof`` degrees of freedom.
    """
    innovations = np.asarray(innovations, dtype=float)

    N = len(innovations)
    nis_values = np.full(N, np.nan)
    dof = np.zeros(N, dtype=int)

    for i in range(N):
        reported = np.flatnonzero(~np.isnan(innovations[i]))
        dof[i] = reported.size
        if reported.size == 0:
            continue
        y = innovations[i][reported]
        S_m = np.asarray(innovation_covariances[i])[np.ix_(reported, reported)]
        nis_values[i] = y @ np.linalg.solve(S_m, y)

    return nis_values, dof


def compute_all_metrics(estimates, ground_truth, covariances=None,
                        innovations=None, innovation_covariances=None):
    """
    Compute all available metrics.

    Parameters
    ----------
    estimates : np.ndarray
        Estimated states (N, dim_x)
    ground_truth : np.ndarray
        True states (N, dim_x)
    covariances : np.ndarray, optional
        State covariances (N, dim_x, dim_x)
    innovations : np.ndarray, optional
        Innovation vectors (N, dim_z) with NaN gaps
    innovation_covariances : np.ndarray, optional
        Innovation covariances (N, dim_z, dim_z)

    Returns
    -------
    dict
        Dictionary with computed metrics
    """
    metrics = {}

    metrics['rmse'] = rmse(estimates, ground_truth, axis=0)
    metrics['mae'] = mae(estimates, ground_truth, axis=0)
    metrics['rmse_total'] = float(np.mean(metrics['rmse']))
    metrics['mae_total'] = float(np.mean(metrics['mae']))

    if covariances is not None:
        nees_vals = nees(estimates, ground_truth, covariances)
        metrics['nees'] = nees_vals
        metrics['nees_mean'] = float(np.mean(nees_vals))
        metrics['nees_std'] = float(np.std(nees_vals))

    if innovations is not None and innovation_covariances is not None:
        nis_vals, dof = nis(innovations, innovation_covariances)
        metrics['nis'] = nis_vals
        metrics['nis_dof'] = dof
        metrics['observer_coverage'] = np.mean(~np.isnan(np.asarray(innovations, dtype=float)), axis=0)
        if np.any(dof > 0):
            metrics['nis_mean'] = float(np.nanmean(nis_vals))
            metrics['nis_std'] = float(np.nanstd(nis_vals))
            metrics['nis_dof_mean'] = float(np.mean(dof[dof > 0]))

    return metrics


def print_metrics(metrics, filter_name="Filter"):
    """
    Print metrics in a formatted way.

    Parameters
    ----------
    metrics : dict
        Dictionary of metrics from compute_all_metrics
    filter_name : str, optional
        Name of the filter for display
    """
    print(f"\n{filter_name} Performance Metrics")
    print("=" * 50)

    if 'rmse' in metrics:
        print(f"RMSE per dimension: {metrics['rmse']}")
    if 'rmse_total' in metrics:
        print(f"Total RMSE: {metrics['rmse_total']:.6f}")

    if 'mae' in metrics:
        print(f"MAE per dimension: {metrics['mae']}")
    if 'mae_total' in metrics:
        print(f"Total MAE: {metrics['mae_total']:.6f}")

    if 'nees_mean' in metrics:
        print(f"NEES (mean ± std): {metrics['nees_mean']:.2f} ± {metrics['nees_std']:.2f}")

    if 'observer_coverage' in metrics:
        print(f"Observer coverage: {metrics['observer_coverage']}")
    if 'nis_mean' in metrics:
        print(f"NIS (mean ± std): {metrics['nis_mean']:.2f} ± {metrics['nis_std']:.2f} "
              f"(mean dof {metrics['nis_dof_mean']:.2f})")

    print("=" * 50)
