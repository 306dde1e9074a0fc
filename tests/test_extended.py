import numpy as np
import pytest

from masked_estimation import MaskedExtendedKalmanFilter


def identity_dynamics(x, u):
    return x


def direct_measurement(x):
    return x.copy()


@pytest.fixture
def ekf():
    ekf = MaskedExtendedKalmanFilter(dim_x=2, dim_z=2)
    ekf.model.Q = 0.1 * np.eye(2)
    return ekf


def test_predict_propagates_covariance(ekf):
    F = np.array([[1.0, 0.5], [0.0, 1.0]])
    ekf.reinitialize([1.0, 2.0], np.eye(2))

    ekf.predict(f=lambda x, u: F @ x, F=F)

    np.testing.assert_allclose(ekf.get_state(), [2.0, 2.0])
    np.testing.assert_allclose(ekf.get_covariance(), F @ F.T + 0.1 * np.eye(2))


def test_predict_jacobian_evaluated_at_prior_state(ekf):
    seen = []

    def F(x, u):
        seen.append(x.copy())
        return np.eye(2)

    ekf.reinitialize([1.0, -1.0], np.eye(2))
    ekf.predict(f=lambda x, u: x + 10.0, F=F)

    np.testing.assert_array_equal(seen[0], [1.0, -1.0])
    np.testing.assert_array_equal(ekf.get_state(), [11.0, 9.0])


def test_predict_with_explicit_process_noise(ekf):
    ekf.predict(f=identity_dynamics, F=np.eye(2), Q=np.zeros((2, 2)))

    np.testing.assert_array_equal(ekf.get_covariance(), np.eye(2))


def test_predict_passes_control_input():
    ekf = MaskedExtendedKalmanFilter(dim_x=1, dim_z=1, dim_u=1)

    ekf.predict(u=np.array([3.0]), f=lambda x, u: x + u, F=np.eye(1))
    assert ekf.state(0) == 3.0

    ekf.predict(f=lambda x, u: x + u, F=np.eye(1))
    assert ekf.state(0) == 3.0


def test_observe_fills_model_inputs(ekf):
    H = np.array([[1.0, 0.0], [1.0, 1.0]])
    R = np.diag([0.5, 0.25])
    P = np.array([[2.0, 0.3], [0.3, 1.0]])
    ekf.reinitialize([1.0, 2.0], P)

    ekf.observe(h=lambda x: H @ x, H=H, R=R)

    np.testing.assert_allclose(ekf.model.z, [1.0, 3.0])
    np.testing.assert_allclose(ekf.model.C, P @ H.T)
    np.testing.assert_allclose(ekf.model.S, H @ P @ H.T + R)
    np.testing.assert_array_equal(ekf.H, H)


def test_update_with_one_of_two_observers(ekf):
    ekf.model.R = np.eye(2)
    ekf.predict(f=identity_dynamics, F=np.eye(2))

    ekf.update({1: 2.0}, h=direct_measurement, H=np.eye(2))

    # P = 1.1 I, S = 2.1 I, only observer 1 corrects
    np.testing.assert_allclose(ekf.get_state(), [0.0, 1.1 * 2.0 / 2.1])
    np.testing.assert_allclose(ekf.get_covariance(), np.diag([1.1, 1.1 - 1.1**2 / 2.1]))
    assert not ekf.has_observations()


def test_update_with_all_observers_matches_standard_ekf(ekf):
    P = np.array([[2.0, 0.4], [0.4, 1.5]])
    H = np.array([[1.0, 0.2], [0.0, 1.0]])
    R = np.diag([0.3, 0.6])
    x0 = np.array([0.5, -0.5])
    z = np.array([1.0, 0.0])
    ekf.reinitialize(x0, P)
    ekf.model.R = R

    ekf.update({0: z[0], 1: z[1]}, h=lambda x: H @ x, H=H)

    S = H @ P @ H.T + R
    K = P @ H.T @ np.linalg.inv(S)
    np.testing.assert_allclose(ekf.get_state(), x0 + K @ (z - H @ x0))


def test_update_without_observations_keeps_estimate(ekf):
    ekf.reinitialize([1.0, 2.0], np.eye(2))

    ekf.update(None, h=direct_measurement, H=np.eye(2))

    np.testing.assert_array_equal(ekf.get_state(), [1.0, 2.0])
    np.testing.assert_array_equal(ekf.get_covariance(), np.eye(2))


def test_update_rejects_unknown_observer(ekf):
    with pytest.raises(IndexError):
        ekf.update({0: 1.0, 2: 1.0}, h=direct_measurement, H=np.eye(2))

    assert not ekf.has_observations()
    np.testing.assert_array_equal(ekf.get_state(), np.zeros(2))


def test_missing_model_functions(ekf):
    with pytest.raises(ValueError):
        ekf.predict(F=np.eye(2))
    with pytest.raises(ValueError):
        ekf.predict(f=identity_dynamics)
    with pytest.raises(ValueError):
        ekf.observe(H=np.eye(2))
    with pytest.raises(ValueError):
        ekf.observe(h=direct_measurement)


def test_tracks_constant_velocity_with_dropout():
    dt = 0.1
    F = np.array([[1.0, dt], [0.0, 1.0]])
    H = np.array([[1.0, 0.0], [1.0, 0.0]])
    ekf = MaskedExtendedKalmanFilter(dim_x=2, dim_z=2)
    ekf.model.Q = np.diag([1e-4, 1e-3])
    ekf.model.R = np.diag([0.2**2, 0.2**2])

    rng = np.random.default_rng(123)
    truth = np.array([0.0, 1.0])
    errors = []

    for k in range(300):
        truth = F @ truth
        ekf.predict(f=lambda x, u: F @ x, F=F)

        readings = {}
        for i in range(2):
            if rng.random() < 0.5:
                readings[i] = truth[0] + rng.normal(0.0, 0.2)
        ekf.update(readings, h=lambda x: H @ x, H=H)

        if k >= 250:
            errors.append(ekf.state(0) - truth[0])

    assert np.sqrt(np.mean(np.square(errors))) < 0.3
