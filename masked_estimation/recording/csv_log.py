"""
CSV recording of estimation cycles.

A sink is attached to a filter and sees every correction: the state
before the correction, the predicted readings next to the actual ones,
and the state after the correction. It never writes back into the filter.
"""

import csv
from pathlib import Path

import pandas as pd


class CycleSink:
    """Receiver for the per-cycle snapshots of a MaskedKalmanFilter."""

    def on_predicted(self, x):
        """State before the correction."""

    def on_observations(self, z, observations):
        """Predicted readings ``z`` and buffered ``{observer_index: value}``."""

    def on_estimated(self, x):
        """State after the correction."""


class CsvLogSink(CycleSink):
    """
    Write one CSV row per correction.

    Columns are ``xp_i`` (predicted state), ``zp_j`` (predicted readings),
    ``za_j`` (actual readings, empty when observer j did not report) and
    ``xe_i`` (estimated state). A cycle without observations leaves every
    ``zp_j`` and ``za_j`` cell empty.

    Parameters
    ----------
    path : str or Path
        Output CSV file
    dim_x : int
        Dimension of the state vector
    dim_z : int
        Number of observers
    precision : int, optional
        Decimals written for every value

    Examples
    --------
    >>> with CsvLogSink('run.csv', dim_x=4, dim_z=2) as sink:
    ...     ekf.attach_sink(sink)
    ...     for k in range(N):
    ...         ekf.predict(f=f, F=F)
    ...         ekf.update(readings[k], h=h, H=H)
    """

    def __init__(self, path, dim_x, dim_z, precision=6):
        self.path = Path(path)
        self.dim_x = dim_x
        self.dim_z = dim_z
        self.precision = precision

        self._file = None
        self._writer = None
        self._row = []

    def header(self):
        return (
            [f"xp_{i}" for i in range(self.dim_x)]
            + [f"zp_{i}" for i in range(self.dim_z)]
            + [f"za_{i}" for i in range(self.dim_z)]
            + [f"xe_{i}" for i in range(self.dim_x)]
        )

    def open(self):
        """Open (truncating) the file and write the header."""
        self.close()
        self._file = open(self.path, 'w', newline='')
        self._writer = csv.writer(self._file)
        self._writer.writerow(self.header())
        self._row = []
        return self

    def close(self):
        if self._file is not None:
            self._file.close()
        self._file = None
        self._writer = None
        self._row = []

    @property
    def closed(self):
        return self._file is None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def on_predicted(self, x):
        self._check_open()
        self._row = [self._format(v) for v in x]

    def on_observations(self, z, observations):
        self._check_open()
        if not observations:
            self._row += [''] * (2 * self.dim_z)
            return

        self._row += [self._format(v) for v in z]
        for i in range(self.dim_z):
            if i in observations:
                self._row.append(self._format(observations[i]))
            else:
                self._row.append('')

    def on_estimated(self, x):
        self._check_open()
        self._row += [self._format(v) for v in x]
        self._writer.writerow(self._row)
        self._row = []

    def _format(self, value):
        return f"{value:.{self.precision}f}"

    def _check_open(self):
        if self._file is None:
            raise RuntimeError(f"log {self.path} is not open")


def load_log(path):
    """
    Read a cycle log written by CsvLogSink.

    Returns
    -------
    pd.DataFrame
        One row per correction; missing readings are NaN
    """
    return pd.read_csv(path)
