import numpy as np
import pytest

from masked_estimation.filters import condition_covariance
from masked_estimation.filters.conditioning import is_diagonally_dominant


def test_zero_diagonal_is_lifted_to_floor():
    P = condition_covariance(np.array([[0.0, 0.0], [0.0, 1.0]]))

    np.testing.assert_allclose(P, [[0.001, 0.0], [0.0, 1.0]])


def test_matrix_is_symmetrised():
    P = condition_covariance(np.array([[1.0, 0.2], [0.4, 1.0]]))

    np.testing.assert_allclose(P, [[1.0, 0.3], [0.3, 1.0]])


def test_small_off_diagonals_are_zeroed_by_magnitude():
    P = np.array([
        [1.0, 5e-4, -5e-4],
        [5e-4, 1.0, -0.2],
        [-5e-4, -0.2, 1.0],
    ])

    conditioned = condition_covariance(P)

    assert conditioned[0, 1] == 0.0
    assert conditioned[0, 2] == 0.0
    assert conditioned[1, 2] == pytest.approx(-0.2)
    assert conditioned[2, 1] == pytest.approx(-0.2)


def test_row_sum_uses_absolute_values():
    P = np.array([[0.5, -0.6], [-0.6, 2.0]])

    conditioned = condition_covariance(P)

    assert conditioned[0, 0] == pytest.approx(0.601)
    assert conditioned[1, 1] == 2.0
    assert conditioned[0, 1] == pytest.approx(-0.6)


def test_row_sum_ignores_zeroed_entries():
    # 9e-4 entries are dropped, so the 1e-4 diagonal only has to beat 0
    P = np.array([[1e-4, 9e-4], [9e-4, 1.0]])

    conditioned = condition_covariance(P)

    np.testing.assert_allclose(conditioned, [[1e-4, 0.0], [0.0, 1.0]])


def test_diagonal_equal_to_row_sum_is_repaired():
    P = np.array([[0.5, 0.5], [0.5, 2.0]])

    conditioned = condition_covariance(P)

    assert conditioned[0, 0] == pytest.approx(0.501)


def test_dominant_matrix_is_unchanged():
    P = np.array([[2.0, 0.5, 0.1], [0.5, 3.0, 0.2], [0.1, 0.2, 1.0]])

    np.testing.assert_array_equal(condition_covariance(P), P)


def test_input_is_not_modified():
    P = np.array([[0.0, 1e-4], [1e-4, 1.0]])
    original = P.copy()

    condition_covariance(P)

    np.testing.assert_array_equal(P, original)


def test_custom_threshold_and_floor():
    P = np.array([[0.01, 0.05], [0.05, 1.0]])

    conditioned = condition_covariance(P, threshold=0.1, floor=0.2)

    np.testing.assert_allclose(conditioned, [[0.01, 0.0], [0.0, 1.0]])
    conditioned = condition_covariance(np.zeros((2, 2)), threshold=0.1, floor=0.2)
    np.testing.assert_allclose(conditioned, 0.2 * np.eye(2))


def test_result_is_diagonally_dominant():
    rng = np.random.default_rng(5)
    for _ in range(20):
        P = rng.normal(size=(5, 5))

        conditioned = condition_covariance(P)

        np.testing.assert_array_equal(conditioned, conditioned.T)
        assert is_diagonally_dominant(conditioned)
        assert np.all(np.linalg.eigvalsh(conditioned) > 0.0)


def test_is_diagonally_dominant():
    assert is_diagonally_dominant(np.eye(3))
    assert not is_diagonally_dominant(np.array([[1.0, 1.0], [1.0, 2.0]]))
