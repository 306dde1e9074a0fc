import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from masked_estimation import MaskedKalmanFilter


@pytest.fixture
def scalar_observer_filter():
    """Two states, one observer reading the first state directly."""
    kf = MaskedKalmanFilter(dim_x=2, dim_z=1)
    kf.model.C = np.array([[1.0], [0.0]])
    kf.model.z = np.array([0.0])
    kf.model.S = np.array([[1.0]])
    return kf


@pytest.fixture
def three_observer_filter():
    """Three states observed directly by three observers with unit noise."""
    kf = MaskedKalmanFilter(dim_x=3, dim_z=3)
    H = np.eye(3)
    P = kf.get_covariance()
    kf.model.C = P @ H.T
    kf.model.S = H @ P @ H.T + np.eye(3)
    kf.model.z = np.zeros(3)
    return kf
