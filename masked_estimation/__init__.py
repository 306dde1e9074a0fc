"""
Masked Estimation Library

Kalman-family state estimation that tolerates missing or partial sensor
observations: any subset of observers may report in a cycle and the
correction is restricted to that subset.

License: MIT
"""

__version__ = "1.0.0"

from .exceptions import DimensionError, EstimationError, NumericalError
from .filters import (
    MaskedKalmanFilter,
    ModelInputs,
    MaskedExtendedKalmanFilter,
    MaskedUnscentedKalmanFilter,
    MerweScaledSigmaPoints,
)

__all__ = [
    'MaskedKalmanFilter',
    'ModelInputs',
    'MaskedExtendedKalmanFilter',
    'MaskedUnscentedKalmanFilter',
    'MerweScaledSigmaPoints',
    'EstimationError',
    'DimensionError',
    'NumericalError',
]
