"""
Buffer of pending sensor readings for one estimation cycle.
"""

import numpy as np


class ObservationBuffer:
    """
    Pending scalar readings keyed by observer index.

    Readings accumulate across any number of ``add`` calls and are drained
    by the filter once a correction has been applied. Iteration is always
    by ascending observer index.

    Parameters
    ----------
    dim_z : int
        Number of observers. Valid indices are ``0 .. dim_z - 1``.

    Examples
    --------
    >>> buffer = ObservationBuffer(dim_z=3)
    >>> buffer.add(2, 0.5)
    >>> buffer.add(0, 1.0)
    >>> buffer.indices()
    [0, 2]
    """

    def __init__(self, dim_z):
        self.dim_z = dim_z
        self._readings = {}

    def add(self, observer_index, value):
        """
        Add or replace the reading of one observer.

        Raises
        ------
        IndexError
            If ``observer_index`` is not a valid observer.
        """
        if not 0 <= observer_index < self.dim_z:
            raise IndexError(
                f"observer index {observer_index} out of range (dim_z={self.dim_z})"
            )
        self._readings[int(observer_index)] = float(value)

    def indices(self):
        """Observer indices holding a reading, ascending."""
        return sorted(self._readings)

    def values(self):
        """Readings as an array, ordered like ``indices()``."""
        return np.array([self._readings[i] for i in self.indices()], dtype=float)

    def items(self):
        return [(i, self._readings[i]) for i in self.indices()]

    def as_dict(self):
        return dict(self.items())

    def clear(self):
        self._readings.clear()

    def __contains__(self, observer_index):
        return observer_index in self._readings

    def __len__(self):
        return len(self._readings)

    def __bool__(self):
        return bool(self._readings)

    def __iter__(self):
        return iter(self.indices())
