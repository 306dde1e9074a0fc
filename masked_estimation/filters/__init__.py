"""
Kalman filters with a correction masked to the reporting observers.

This module provides:
- MaskedKalmanFilter: state, covariance, observation buffer and the
  masked correction
- MaskedExtendedKalmanFilter (EKF) and MaskedUnscentedKalmanFilter (UKF)
  built on top of it
"""

from .base import MaskedKalmanFilter, ModelInputs
from .conditioning import CONDITIONING_FLOOR, CONDITIONING_THRESHOLD, condition_covariance
from .extended import MaskedExtendedKalmanFilter
from .observations import ObservationBuffer
from .unscented import MaskedUnscentedKalmanFilter, MerweScaledSigmaPoints

__all__ = [
    'MaskedKalmanFilter',
    'ModelInputs',
    'ObservationBuffer',
    'condition_covariance',
    'CONDITIONING_THRESHOLD',
    'CONDITIONING_FLOOR',
    'MaskedExtendedKalmanFilter',
    'MaskedUnscentedKalmanFilter',
    'MerweScaledSigmaPoints',
]
