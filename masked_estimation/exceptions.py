"""
Exceptions raised by the masked estimation filters.

Index violations use the built-in ``IndexError``.
"""

import numpy as np


class EstimationError(Exception):
    """Base class for estimator errors."""


class DimensionError(EstimationError, ValueError):
    """A vector or matrix does not match the filter dimensions."""


class NumericalError(EstimationError, np.linalg.LinAlgError):
    """The reduced innovation covariance could not be inverted."""
