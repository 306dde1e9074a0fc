"""
Extended Kalman Filter (EKF) on top of the masked correction.

A generalized EKF that works with any user-defined dynamics f(x, u),
measurement function h(x), and their Jacobians F and H. Observers that do
not report in a cycle are simply left out of the correction.
"""

import numpy as np

from .base import MaskedKalmanFilter


class MaskedExtendedKalmanFilter(MaskedKalmanFilter):
    """
    Extended Kalman Filter tolerating missing observations.

    The user must provide:
    - Dynamics function: f(x, u) -> x_next
    - Jacobian of dynamics: F(x, u) -> F matrix (or a fixed matrix)
    - Measurement function: h(x) -> z (all dim_z observers)
    - Jacobian of measurement: H(x) -> H matrix (dim_z, dim_x)

    The observation step writes ``C = P H^T`` so the masked gain
    ``C_m S_m^-1`` is the usual ``P H_m^T S_m^-1``.

    Attributes
    ----------
    dim_x : int
        Dimension of the state vector
    dim_z : int
        Number of observers
    dim_u : int
        Dimension of the control input vector

    Examples
    --------
    >>> ekf = MaskedExtendedKalmanFilter(dim_x=4, dim_z=2, dim_u=0)
    >>> ekf.reinitialize(np.zeros(4), np.eye(4))
    >>> ekf.model.Q = np.eye(4) * 0.01
    >>> ekf.model.R = np.eye(2) * 0.1
    >>> ekf.predict(f=my_dynamics, F=my_jacobian)
    >>> ekf.update({1: 0.3}, h=my_measurement_fn, H=my_H_jacobian)
    """

    def __init__(self, dim_x, dim_z, dim_u=0, **kwargs):
        """
        Initialize Extended Kalman Filter.

        Parameters
        ----------
        dim_x : int
            Dimension of state vector
        dim_z : int
            Number of observers
        dim_u : int, optional
            Dimension of control input vector (default: 0)
        **kwargs
            Passed on to MaskedKalmanFilter (sink, conditioning settings)
        """
        super().__init__(dim_x, dim_z, **kwargs)
        self.dim_u = dim_u

        # Measurement Jacobian of the last observation step
        self.H = np.zeros((dim_z, dim_x))

    def predict(self, u=None, f=None, F=None, Q=None):
        """
        Predict step of the EKF.

        Propagates the state and covariance forward using the dynamics model.

        Parameters
        ----------
        u : np.ndarray, optional
            Control input vector
        f : callable
            Dynamics function: f(x, u) -> x_next
        F : callable or np.ndarray
            Jacobian of f, evaluated at the prior state when callable
        Q : np.ndarray, optional
            Process noise covariance (overrides model.Q if provided)
        """
        if f is None:
            raise ValueError("Dynamics function f(x, u) must be provided")

        if u is None:
            u = np.zeros(self.dim_u)

        if callable(F):
            F_matrix = F(self.x, u)
        elif F is not None:
            F_matrix = np.asarray(F)
        else:
            raise ValueError("Jacobian F must be provided (callable or matrix)")

        if Q is None:
            Q = self.model.Q

        x = f(self.x, u)
        P = F_matrix @ self.P @ F_matrix.T + Q
        self.reinitialize(x, P)

    def observe(self, h=None, H=None, R=None):
        """
        Fill the predicted observation, observation matrix and innovation
        covariance for every observer.

        Parameters
        ----------
        h : callable
            Measurement function: h(x) -> z_pred (dim_z,)
        H : callable or np.ndarray
            Jacobian of h (dim_z, dim_x)
        R : np.ndarray, optional
            Measurement noise covariance (overrides model.R if provided)
        """
        if h is None:
            raise ValueError("Measurement function h(x) must be provided")

        x = self.x
        P = self.P

        if callable(H):
            H_matrix = H(x)
        elif H is not None:
            H_matrix = np.asarray(H)
        else:
            raise ValueError("Jacobian H must be provided (callable or matrix)")

        if R is None:
            R = self.model.R

        self.H = H_matrix
        self.model.z = np.asarray(h(x), dtype=float)
        self.model.C = P @ H_matrix.T
        self.model.S = H_matrix @ P @ H_matrix.T + R

    def update(self, observations=None, h=None, H=None, R=None):
        """
        Update step of the EKF.

        Parameters
        ----------
        observations : dict, optional
            ``{observer_index: reading}`` added to the buffer first
        h, H, R
            See ``observe``
        """
        self.new_observations(observations)
        self.observe(h=h, H=H, R=R)
        self.masked_kalman_update()

