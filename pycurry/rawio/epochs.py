"""
Reconstruction of trial-epoched Curry recordings.

Epoched files store their trials one after the other in the sample stream.
They are handed back as one continuous buffer: the trial structure is kept
as a classification event at the zero-time sample of each trial and a
"boundary" event at the last sample of every trial but the last.
"""

import logging

import numpy as np

from .baserawio import _curry_event_dtype, BOUNDARY, sized_label_dtype

logger = logging.getLogger(__name__)


def per_trial_times(nb_sample, sampling_rate, trigger_offset_usec=0.0):
    """Time axis of one trial in seconds, starting at the trigger offset"""
    return trigger_offset_usec / 1.0e6 + np.arange(nb_sample, dtype="float64") / sampling_rate


def find_anchor_sample(nb_sample, sampling_rate, trigger_offset_usec=0.0):
    """
    Index of the first non negative time of the per-trial time axis.

    When every time is negative the sample closest to zero is used.
    """
    times = per_trial_times(nb_sample, sampling_rate, trigger_offset_usec)
    # tolerate rounding of offset / sampling period products
    (ind,) = np.nonzero(times >= -1.0e-6 / sampling_rate)
    if ind.size > 0:
        return int(ind[0])
    return int(np.argmin(np.abs(times)))


class EpochReconstructor:
    """
    Trial view and synthetic markers of an epoched sample matrix.

    Parameters
    ----------
    data: np.ndarray (nb_channel, nb_sample * nb_trial)
    nb_sample: int
        Samples per trial
    nb_trial: int
    sampling_rate: float
    trigger_offset_usec: float
    epoch_info: np.ndarray | None
        Rows with dtype `_epoch_info_dtype`, one per trial
    """

    def __init__(self, data, nb_sample, nb_trial, sampling_rate, trigger_offset_usec=0.0, epoch_info=None):
        self.data = data
        self.nb_sample = int(nb_sample)
        self.nb_trial = int(nb_trial)
        self.sampling_rate = float(sampling_rate)
        self.trigger_offset_usec = float(trigger_offset_usec)
        self.epoch_info = epoch_info
        self.anchor = find_anchor_sample(self.nb_sample, self.sampling_rate, self.trigger_offset_usec)

    @property
    def nb_total_sample(self):
        return self.nb_sample * self.nb_trial

    def _nb_trial_with_info(self):
        if self.epoch_info is None:
            return 0
        if self.epoch_info.size < self.nb_trial:
            logger.debug(f"Epoch information has {self.epoch_info.size} rows for {self.nb_trial} trials")
        return min(self.epoch_info.size, self.nb_trial)

    def trial_start(self, trial_index):
        return trial_index * self.nb_sample

    def split_trials(self):
        """
        Returns
        -------
        trials: list of np.ndarray (nb_channel, nb_sample)
            One block per trial, in file order
        """
        return [
            self.data[:, self.trial_start(t) : self.trial_start(t) + self.nb_sample] for t in range(self.nb_trial)
        ]

    @staticmethod
    def flatten(trials):
        """Concatenate trial blocks back into one continuous buffer"""
        return np.concatenate(trials, axis=1)

    def trigger_trace(self):
        """
        Synthetic trigger trace over the continuous timeline: the type of each
        trial stamped at trial start + anchor, zero elsewhere.
        """
        trace = np.zeros(self.nb_total_sample, dtype="float32")
        for t in range(self._nb_trial_with_info()):
            trace[self.trial_start(t) + self.anchor] = self.epoch_info[t]["type"]
        return trace

    def events(self):
        """
        Classification and boundary events, in timeline order.

        Returns
        -------
        events: np.ndarray with dtype `_curry_event_dtype`
        """
        nb_info = self._nb_trial_with_info()
        events = []
        for t in range(self.nb_trial):
            start = self.trial_start(t)
            stop = start + self.nb_sample - 1
            if t < nb_info:
                row = self.epoch_info[t]
                events.append((start + self.anchor, str(int(row["type"])), start, stop, t + 1, row["label"]))
            if t < self.nb_trial - 1:
                events.append((stop, BOUNDARY, start, stop, 0, ""))
        dtype = sized_label_dtype(_curry_event_dtype, [ev[5] for ev in events])
        return np.array(events, dtype=dtype)

    def reconstruct(self):
        """
        Split then flatten the sample matrix.

        Returns
        -------
        data: np.ndarray (nb_channel, nb_sample * nb_trial)
        trace: np.ndarray (nb_sample * nb_trial,)
        events: np.ndarray with dtype `_curry_event_dtype`
        """
        data = self.flatten(self.split_trials())
        return data, self.trigger_trace(), self.events()
