"""
Unscented Kalman Filter (UKF) on top of the masked correction.

Uses the Unscented Transform with sigma points, so no Jacobians are
needed. The observation step fills the masked correction inputs with the
sigma-point statistics: ``z`` the predicted mean, ``S = P_zz + R`` and
``C = P_xz``.
"""

import logging

import numpy as np
from scipy.linalg import cholesky

from .base import MaskedKalmanFilter

logger = logging.getLogger(__name__)


class MerweScaledSigmaPoints:
    """
    Merwe's scaled sigma points.

    Generates sigma points and weights for the Unscented Transform.

    Parameters
    ----------
    n : int
        Dimensionality of the state
    alpha : float, optional
        Spread of sigma points around mean (typically 1e-3 to 1)
    beta : float, optional
        Incorporate prior knowledge of distribution (2 is optimal for Gaussian)
    kappa : float, optional
        Secondary scaling parameter (typically 0 or 3-n)
    """

    def __init__(self, n, alpha, beta, kappa=None):
        self.n = n
        self.alpha = alpha
        self.beta = beta

        if kappa is None:
            self.kappa = 3.0 - n
        else:
            self.kappa = kappa

        self._lambda = (alpha**2) * (n + self.kappa) - n
        logger.debug("Sigma points: alpha=%s beta=%s kappa=%s lambda=%s",
                     alpha, beta, self.kappa, self._lambda)

        # Compute weights
        self.Wm = np.full(2*n + 1, 0.5 / (n + self._lambda))
        self.Wc = np.copy(self.Wm)
        self.Wm[0] = self._lambda / (n + self._lambda)
        self.Wc[0] = self._lambda / (n + self._lambda) + (1 - alpha**2 + beta)

    def num_sigmas(self):
        return 2*self.n + 1

    def sigma_points(self, x, P):
        """
        Generate sigma points around (x, P).

        Parameters
        ----------
        x : np.ndarray
            Mean state vector (n,)
        P : np.ndarray
            Covariance matrix (n, n)

        Returns
        -------
        np.ndarray
            Sigma points (2n+1, n)
        """
        n = self.n
        lambda_ = self._lambda

        # scipy returns the upper factor U with U.T @ U = A; its rows are
        # the sigma point directions
        try:
            U = cholesky((lambda_ + n) * P)
        except np.linalg.LinAlgError:
            logger.warning("Cholesky factorisation failed, using eigendecomposition")
            eigval, eigvec = np.linalg.eigh(P)
            eigval = np.maximum(eigval, 0)
            U = (eigvec @ np.diag(np.sqrt(eigval * (lambda_ + n)))).T

        sigmas = np.zeros((2*n + 1, n))
        sigmas[0] = x

        for k in range(n):
            sigmas[k+1] = x + U[k]
            sigmas[n+k+1] = x - U[k]

        return sigmas


class MaskedUnscentedKalmanFilter(MaskedKalmanFilter):
    """
    Unscented Kalman Filter tolerating missing observations.

    The user must provide:
    - Dynamics function: f(x, u) -> x_next
    - Measurement function: h(x) -> z (all dim_z observers)

    Examples
    --------
    >>> points = MerweScaledSigmaPoints(n=4, alpha=0.1, beta=2, kappa=0)
    >>> ukf = MaskedUnscentedKalmanFilter(dim_x=4, dim_z=2, points=points)
    >>> ukf.model.Q = np.eye(4) * 0.01
    >>> ukf.model.R = np.eye(2) * 0.1
    >>> ukf.predict(f=my_dynamics)
    >>> ukf.update({0: 1.5}, h=my_measurement_fn)
    """

    def __init__(self, dim_x, dim_z, dim_u=0, points=None, **kwargs):
        """
        Initialize Unscented Kalman Filter.

        Parameters
        ----------
        dim_x : int
            Dimension of state vector
        dim_z : int
            Number of observers
        dim_u : int, optional
            Dimension of control input vector
        points : MerweScaledSigmaPoints, optional
            Sigma points generator. If None, uses default parameters.
        **kwargs
            Passed on to MaskedKalmanFilter (sink, conditioning settings)
        """
        super().__init__(dim_x, dim_z, **kwargs)
        self.dim_u = dim_u

        if points is None:
            self.points = MerweScaledSigmaPoints(n=dim_x, alpha=0.1, beta=2.0, kappa=0.0)
        else:
            self.points = points

        # Storage for sigma points
        self.sigmas_f = np.zeros((self.points.num_sigmas(), dim_x))
        self.sigmas_h = np.zeros((self.points.num_sigmas(), dim_z))

    def predict(self, u=None, f=None, Q=None):
        """
        Predict step of the UKF.

        Parameters
        ----------
        u : np.ndarray, optional
            Control input vector
        f : callable
            Dynamics function: f(x, u) -> x_next
        Q : np.ndarray, optional
            Process noise covariance (overrides model.Q if provided)
        """
        if f is None:
            raise ValueError("Dynamics function f(x, u) must be provided")

        if u is None:
            u = np.zeros(self.dim_u)

        if Q is None:
            Q = self.model.Q

        sigmas = self.points.sigma_points(self.x, self.P)
        for i, s in enumerate(sigmas):
            self.sigmas_f[i] = f(s, u)

        x = np.dot(self.points.Wm, self.sigmas_f)
        P = _unscented_covariance(self.sigmas_f, x, self.points.Wc) + Q
        self.reinitialize(x, P)

    def observe(self, h=None, R=None):
        """
        Fill z, C and S from sigma points drawn around the current estimate.

        Parameters
        ----------
        h : callable
            Measurement function: h(x) -> z_pred (dim_z,)
        R : np.ndarray, optional
            Measurement noise covariance (overrides model.R if provided)
        """
        if h is None:
            raise ValueError("Measurement function h(x) must be provided")

        if R is None:
            R = self.model.R

        x = self.x
        sigmas = self.points.sigma_points(x, self.P)
        for i, s in enumerate(sigmas):
            self.sigmas_h[i] = h(s)

        z_pred = np.dot(self.points.Wm, self.sigmas_h)

        self.model.z = z_pred
        self.model.S = _unscented_covariance(self.sigmas_h, z_pred, self.points.Wc) + R
        self.model.C = _cross_covariance(sigmas, x, self.sigmas_h, z_pred, self.points.Wc)

    def update(self, observations=None, h=None, R=None):
        """
        Update step of the UKF.

        Parameters
        ----------
        observations : dict, optional
            ``{observer_index: reading}`` added to the buffer first
        h, R
            See ``observe``
        """
        self.new_observations(observations)
        self.observe(h=h, R=R)
        self.masked_kalman_update()


def _unscented_covariance(sigmas, mean, Wc):
    """Weighted covariance of sigma points around ``mean``."""
    n = sigmas.shape[1]
    P = np.zeros((n, n))

    for i, s in enumerate(sigmas):
        y = s - mean
        P += Wc[i] * np.outer(y, y)

    return P


def _cross_covariance(sigmas_x, x_mean, sigmas_z, z_mean, Wc):
    """Cross covariance P_xz (n_x, n_z) between state and measurement sigma points."""
    n_x = sigmas_x.shape[1]
    n_z = sigmas_z.shape[1]
    P_xz = np.zeros((n_x, n_z))

    for i in range(len(Wc)):
        P_xz += Wc[i] * np.outer(sigmas_x[i] - x_mean, sigmas_z[i] - z_mean)

    return P_xz
