"""
Covariance conditioning applied after every masked correction.

The repair is a diagonal-dominance heuristic rather than an exact
projection onto the positive semi-definite cone: it symmetrises P, drops
tiny off-diagonal terms, and lifts any diagonal entry that does not
dominate its row.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

CONDITIONING_THRESHOLD = 1e-3
CONDITIONING_FLOOR = 1e-3


def condition_covariance(P, threshold=CONDITIONING_THRESHOLD, floor=CONDITIONING_FLOOR):
    """
    Force a covariance matrix to be symmetric and diagonally dominant.

    Steps:
    1. ``P <- (P + P.T) / 2``
    2. Off-diagonal entries with magnitude below ``threshold`` are set to 0.
    3. For each row, if ``P[i, i]`` is not larger than the sum of the
       remaining absolute off-diagonal entries, it is raised to that sum
       plus ``floor``.

    Parameters
    ----------
    P : np.ndarray
        Square covariance matrix (n, n)
    threshold : float, optional
        Off-diagonal magnitude below which entries are zeroed
    floor : float, optional
        Margin added to the row sum when a diagonal entry is repaired

    Returns
    -------
    np.ndarray
        Conditioned copy of P

    Examples
    --------
    >>> condition_covariance(np.array([[0.0, 0.0], [0.0, 1.0]]))
    array([[0.001, 0.   ],
           [0.   , 1.   ]])
    """
    P = np.asarray(P, dtype=float)
    P = 0.5 * (P + P.T)
    n = P.shape[0]

    off_diagonal = ~np.eye(n, dtype=bool)
    P[off_diagonal & (np.abs(P) < threshold)] = 0.0

    # Zeroing is symmetric, so the row sums can be taken after the fact.
    row_sums = np.sum(np.abs(P) * off_diagonal, axis=1)
    repair = np.flatnonzero(np.diag(P) <= row_sums)
    if repair.size:
        P[repair, repair] = row_sums[repair] + floor
        logger.debug("Raised covariance diagonal on rows %s", repair.tolist())

    return P


def is_diagonally_dominant(P):
    """True if every diagonal entry of P exceeds its absolute off-diagonal row sum."""
    P = np.asarray(P, dtype=float)
    off_diagonal = ~np.eye(P.shape[0], dtype=bool)
    row_sums = np.sum(np.abs(P) * off_diagonal, axis=1)
    return bool(np.all(np.diag(P) > row_sums))
