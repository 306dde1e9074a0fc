"""
Masked Kalman correction shared by all filter variants.

The base filter owns the state vector and covariance, buffers whatever
subset of observers reported during a cycle, and applies the Kalman
correction restricted to that subset. Concrete variants supply the
prediction step and fill the model inputs (C, z, S) each cycle.

A cycle looks like::

    kf.predict(...)                  # variant specific
    kf.new_observation(0, 1.2)       # zero or more readings
    kf.new_observation(3, -0.4)
    kf.masked_kalman_update()
"""

import logging

import numpy as np

from ..exceptions import DimensionError, NumericalError
from .conditioning import CONDITIONING_FLOOR, CONDITIONING_THRESHOLD, condition_covariance
from .observations import ObservationBuffer

logger = logging.getLogger(__name__)


class ModelInputs:
    """
    Model matrices produced by the prediction and observation model.

    The observation model is responsible for refreshing ``C``, ``z`` and
    ``S`` before every correction, consistently with whichever observers
    may report.

    Attributes
    ----------
    Q : np.ndarray
        Process noise covariance (dim_x, dim_x), identity initially
    R : np.ndarray
        Measurement noise covariance (dim_z, dim_z), identity initially
    C : np.ndarray
        Observation matrix (dim_x, dim_z), one column per observer
    z : np.ndarray
        Predicted observation (dim_z,)
    S : np.ndarray
        Innovation covariance (dim_z, dim_z)
    """

    def __init__(self, dim_x, dim_z):
        self.dim_x = dim_x
        self.dim_z = dim_z

        self.Q = np.eye(dim_x)
        self.R = np.eye(dim_z)

        self.C = np.zeros((dim_x, dim_z))
        self.z = np.zeros(dim_z)
        self.S = np.zeros((dim_z, dim_z))

    def validate(self, dim_x, dim_z):
        """
        Check the correction inputs against the filter dimensions.

        Raises
        ------
        DimensionError
            If C, z or S has the wrong shape.
        """
        expected = {
            'C': (dim_x, dim_z),
            'z': (dim_z,),
            'S': (dim_z, dim_z),
        }
        for name, shape in expected.items():
            actual = np.shape(getattr(self, name))
            if actual != shape:
                raise DimensionError(f"model input {name} has shape {actual}, expected {shape}")


class MaskedKalmanFilter:
    """
    Kalman filter base with a correction masked to the reporting observers.

    Parameters
    ----------
    dim_x : int
        Dimension of the state vector
    dim_z : int
        Maximum number of observers
    sink : CycleSink, optional
        Receives the pre-correction state, the predicted/actual readings
        and the post-correction state of every correction.
    conditioning_threshold : float, optional
        Off-diagonal magnitude zeroed by the covariance conditioning
    conditioning_floor : float, optional
        Margin used when a covariance diagonal is repaired

    Attributes
    ----------
    model : ModelInputs
        Q, R, C, z, S used by the prediction and correction steps

    Examples
    --------
    >>> kf = MaskedKalmanFilter(dim_x=2, dim_z=1)
    >>> kf.model.C = np.array([[1.0], [0.0]])
    >>> kf.model.S = np.array([[1.0]])
    >>> kf.new_observation(0, 1.0)
    >>> kf.masked_kalman_update()
    >>> kf.get_state()
    array([1., 0.])
    """

    def __init__(self, dim_x, dim_z, sink=None,
                 conditioning_threshold=CONDITIONING_THRESHOLD,
                 conditioning_floor=CONDITIONING_FLOOR):
        self._dim_x = dim_x
        self._dim_z = dim_z

        # State and covariance
        self._x = np.zeros(dim_x)
        self._P = np.eye(dim_x)

        self.model = ModelInputs(dim_x, dim_z)
        self._observations = ObservationBuffer(dim_z)

        self._sink = sink
        self.conditioning_threshold = conditioning_threshold
        self.conditioning_floor = conditioning_floor

        # Innovation of the last correction (NaN where no observer reported)
        self._innovation = np.full(dim_z, np.nan)
        self._innovation_cov = np.full((dim_z, dim_z), np.nan)

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def new_observation(self, observer_index, value):
        """
        Buffer a reading for the next correction.

        A second reading from the same observer before the correction
        replaces the first.

        Raises
        ------
        IndexError
            If ``observer_index >= dim_z``.
        """
        self._observations.add(observer_index, value)

    def new_observations(self, observations):
        """
        Buffer several readings given as ``{observer_index: value}``.

        All indices are checked before anything is buffered.
        """
        if not observations:
            return

        for index in observations:
            if not 0 <= index < self._dim_z:
                raise IndexError(
                    f"observer index {index} out of range (dim_z={self._dim_z})"
                )

        for index, value in observations.items():
            self._observations.add(index, value)

    def has_observations(self):
        return bool(self._observations)

    def has_observation(self, observer_index):
        return observer_index in self._observations

    def pending_observations(self):
        """Copy of the buffered readings, ``{observer_index: value}`` by ascending index."""
        return self._observations.as_dict()

    # ------------------------------------------------------------------
    # Correction
    # ------------------------------------------------------------------

    def masked_kalman_update(self, model=None):
        """
        Correct the state with the buffered readings.

        Only the rows/columns of S and the columns of C belonging to the
        observers that reported are used. With an empty buffer the state
        and covariance are left untouched and the model is not inspected.

        Parameters
        ----------
        model : ModelInputs, optional
            Inputs to correct with (default: ``self.model``)

        Raises
        ------
        DimensionError
            If ``model`` does not match the filter dimensions (only checked
            when observations are pending).
        NumericalError
            If the reduced innovation covariance is not invertible. The
            state, covariance and buffer are left unchanged.
        """
        if model is None:
            model = self.model

        indices = np.array(self._observations.indices(), dtype=int)
        n_o = indices.size

        if n_o == 0:
            logger.debug("No observations pending, skipping correction")
            self._innovation = np.full(self._dim_z, np.nan)
            self._innovation_cov = np.full((self._dim_z, self._dim_z), np.nan)
            self._notify(model, self._x)
            return

        model.validate(self._dim_x, self._dim_z)

        # Masked innovation covariance and observation matrix
        S = np.asarray(model.S, dtype=float)
        C = np.asarray(model.C, dtype=float)
        S_m = S[np.ix_(indices, indices)]
        C_m = C[:, indices]

        try:
            Si_m = np.linalg.inv(S_m)
        except np.linalg.LinAlgError as e:
            raise NumericalError(
                f"innovation covariance for observers {indices.tolist()} is singular"
            ) from e
        if not np.all(np.isfinite(Si_m)):
            raise NumericalError(
                f"innovation covariance for observers {indices.tolist()} is not invertible"
            )

        # Kalman gain (masked by n_o observations)
        K_m = C_m @ Si_m

        # Actual minus predicted, in ascending observer order
        zd_m = self._observations.values() - np.asarray(model.z, dtype=float)[indices]

        self._notify_prediction(model, self._x)

        self._x = self._x + K_m @ zd_m
        P = self._P - K_m @ S_m @ K_m.T
        self._P = condition_covariance(
            P, threshold=self.conditioning_threshold, floor=self.conditioning_floor
        )

        self._innovation = np.full(self._dim_z, np.nan)
        self._innovation[indices] = zd_m
        self._innovation_cov = S.copy()

        logger.debug("Masked correction applied with %d of %d observers", n_o, self._dim_z)

        # Drained before the sink runs
        self._observations.clear()

        if self._sink is not None:
            self._sink.on_estimated(self._x.copy())

    def _notify(self, model, x):
        if self._sink is None:
            return
        self._notify_prediction(model, x)
        self._sink.on_estimated(x.copy())

    def _notify_prediction(self, model, x):
        if self._sink is None:
            return
        self._sink.on_predicted(x.copy())
        self._sink.on_observations(
            np.array(model.z, dtype=float), self._observations.as_dict()
        )

    def attach_sink(self, sink):
        """Route every following correction to ``sink`` (``None`` detaches)."""
        self._sink = sink

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def n_variables(self):
        return self._dim_x

    def n_observers(self):
        return self._dim_z

    @property
    def dim_x(self):
        return self._dim_x

    @property
    def dim_z(self):
        return self._dim_z

    @property
    def x(self):
        """Copy of the state vector."""
        return self._x.copy()

    @property
    def P(self):
        """Copy of the covariance matrix."""
        return self._P.copy()

    def state(self, index):
        self._check_state_index(index)
        return float(self._x[index])

    def set_state(self, index, value):
        self._check_state_index(index)
        self._x[index] = value

    def get_state(self):
        return self._x.copy()

    def covariance(self, index_a, index_b):
        self._check_state_index(index_a)
        self._check_state_index(index_b)
        return float(self._P[index_a, index_b])

    def set_covariance(self, index_a, index_b, value):
        self._check_state_index(index_a)
        self._check_state_index(index_b)
        self._P[index_a, index_b] = value

    def get_covariance(self):
        return self._P.copy()

    def reinitialize(self, x0, P0):
        """
        Replace the state and covariance.

        Parameters
        ----------
        x0 : array-like
            State vector (dim_x,)
        P0 : array-like
            Covariance matrix (dim_x, dim_x)

        Raises
        ------
        DimensionError
            If either argument has the wrong shape. Nothing is modified.
        """
        x0 = np.array(x0, dtype=float)
        P0 = np.array(P0, dtype=float)

        if x0.shape != (self._dim_x,):
            raise DimensionError(
                f"initial state has shape {x0.shape}, expected ({self._dim_x},)"
            )
        if P0.shape != (self._dim_x, self._dim_x):
            raise DimensionError(
                f"initial covariance has shape {P0.shape}, expected ({self._dim_x}, {self._dim_x})"
            )

        self._x = x0
        self._P = P0

    def get_innovation(self):
        """
        Innovation of the last correction.

        Returns
        -------
        np.ndarray
            Actual minus predicted reading per observer (dim_z,), NaN for
            observers that did not report
        """
        return self._innovation.copy()

    def get_innovation_covariance(self):
        """
        Full innovation covariance S used by the last correction.

        All NaN when the last correction had no observations.
        """
        return self._innovation_cov.copy()

    def _check_state_index(self, index):
        if not 0 <= index < self._dim_x:
            raise IndexError(f"invalid state variable index {index} (dim_x={self._dim_x})")
