"""
CurryRecord is the single in-memory result of decoding a Curry recording.

The sample matrix is continuous: epoched files are flattened and their
trial structure only survives as boundary and classification events.
"""

from __future__ import annotations

import numpy as np

from pycurry.core.notices import Notice, Severity


class CurryRecord:
    """
    Decoded Curry recording.

    Attributes
    ----------
    data: np.ndarray (n_channels, n_samples * n_trials), float32
        Read-only sample matrix
    n_channels: int
    n_samples: int
        Samples per trial (corrected to what was actually read)
    sampling_rate: float
        In Hz
    n_trials: int
    trigger_offset_usec: float
    labels: list[str]
        One label per row of ``data``
    sensor_locations: np.ndarray (n_sensors, 3 or 6)
        Empty (0, 3) when the file carries no sensor block
    events: np.ndarray
        Reconciled timeline with dtype ``_curry_event_dtype``
    annotations: list[str]
        Event remarks, paired with ``events`` of the event file by position
    epoch_info: np.ndarray
        One row per trial with dtype ``_epoch_info_dtype``
    epoch_labels: list[str]
    impedance_matrix: np.ndarray (n_readings, n_channels)
        NaN for missing readings, empty (0, 0) when absent
    notices: list[Notice]
        Advisories raised during the decode
    """

    def __init__(
        self,
        data,
        sampling_rate,
        n_samples,
        n_trials,
        trigger_offset_usec=0.0,
        labels=None,
        sensor_locations=None,
        events=None,
        annotations=None,
        epoch_info=None,
        epoch_labels=None,
        impedance_matrix=None,
        notices=None,
        file_origin=None,
    ):
        data = np.asarray(data, dtype="float32")
        data.flags.writeable = False
        self.data = data
        self.sampling_rate = float(sampling_rate)
        self.n_samples = int(n_samples)
        self.n_trials = int(n_trials)
        self.trigger_offset_usec = float(trigger_offset_usec)

        if labels is None:
            labels = [f"EEG{i + 1}" for i in range(data.shape[0])]
        self.labels = list(labels)

        if sensor_locations is None:
            sensor_locations = np.zeros((0, 3), dtype="float64")
        self.sensor_locations = sensor_locations

        self.events = events
        self.annotations = list(annotations) if annotations is not None else []
        self.epoch_info = epoch_info
        self.epoch_labels = list(epoch_labels) if epoch_labels is not None else []

        if impedance_matrix is None:
            impedance_matrix = np.zeros((0, 0), dtype="float64")
        self.impedance_matrix = impedance_matrix

        self.notices = list(notices) if notices is not None else []
        self.file_origin = file_origin

    @property
    def n_channels(self) -> int:
        return self.data.shape[0]

    @property
    def n_total_samples(self) -> int:
        return self.data.shape[1]

    @property
    def advisories(self) -> list[Notice]:
        return [n for n in self.notices if n.severity is Severity.ADVISORY]

    def channel_index(self, name: str) -> int | None:
        """Index of the first channel labelled `name` (case-insensitive), None if absent"""
        name = name.lower()
        for i, label in enumerate(self.labels):
            if label.lower() == name:
                return i
        return None

    def impedance_summary(self):
        """
        Most recent and median impedance per channel, in kOhm.

        Returns
        -------
        latest: np.ndarray (n_impedance_channels,) | None
        median: np.ndarray (n_impedance_channels,) | None
            None when the recording carries no impedance history
        """
        imp = self.impedance_matrix
        if imp.size == 0:
            return None, None
        latest = imp[0, :] / 1000.0
        median = np.full(imp.shape[1], np.nan)
        has_reading = ~np.all(np.isnan(imp), axis=0)
        median[has_reading] = np.nanmedian(imp[:, has_reading], axis=0) / 1000.0
        return latest, median

    def __repr__(self):
        txt = f"{self.__class__.__name__}: {self.file_origin}\n"
        txt += f"n_channels: {self.n_channels}\n"
        txt += f"n_samples: {self.n_samples} x n_trials: {self.n_trials}\n"
        txt += f"sampling_rate: {self.sampling_rate} Hz\n"
        n_events = 0 if self.events is None else self.events.size
        txt += f"events: {n_events}\n"
        if self.notices:
            txt += f"notices: {len(self.notices)}\n"
        return txt
