"""
Curry events: event file decoding, trigger channel scanning and the
merge of every event source into one sample-indexed timeline.

Sources are merged in a fixed order: epoch markers, event file, trigger
channel. When an event lands on an occupied sample:
  * same type already there: it is a duplicate and is dropped
  * otherwise the samples +1, -1, +2, -2 are tried in that order
  * if they are all taken the event goes to sample - 0.5 (sample + 0.5 on
    the first sample) and an advisory notice is raised

Samples outside the recording are never used as alternates.
"""

from __future__ import annotations

import logging

import numpy as np

from pycurry.core import Notice, Severity

from .baserawio import _curry_event_dtype, BOUNDARY, sized_label_dtype
from .paramtext import get_list_section_lines

logger = logging.getLogger(__name__)

# alternate samples tried when a sample is taken by another event type
COLLISION_SHIFTS = (1, -1, 2, -2)
HALF_SAMPLE_FALLBACK = -0.5

# NUMBER_LIST columns
_col_sample = 0
_col_type = 2
_col_start = 4
_col_stop = 5


def format_event_type(value):
    """Event type label: "7" for 7 or 7.0, "7.5" for non integer codes"""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return str(value)


def read_event_text(text):
    """
    Events and annotations of a Curry event file (.cef, .ceo).

    Returns
    -------
    events: np.ndarray with dtype `_curry_event_dtype`
        "sample" holds the raw sample value of the file
    annotations: list[str]
        REMARK_LIST lines, in file order
    """
    events = []
    for line in get_list_section_lines(text, "NUMBER_LIST"):
        fields = line.split()
        if len(fields) <= _col_stop:
            logger.debug(f"Skipping event row {line!r}")
            continue
        try:
            fields = [int(float(v)) for v in fields[: _col_stop + 1]]
        except ValueError:
            logger.debug(f"Skipping event row {line!r}")
            continue
        events.append(
            (
                fields[_col_sample],
                format_event_type(fields[_col_type]),
                fields[_col_start],
                fields[_col_stop],
                len(events) + 1,
                "",
            )
        )
    events = np.array(events, dtype=_curry_event_dtype)
    annotations = get_list_section_lines(text, "REMARK_LIST")
    return events, annotations


def nearest_index(times, values):
    """
    For each of `values`, index of the closest element of the increasing
    array `times` (the lower index wins a tie).
    """
    times = np.asarray(times, dtype="float64")
    values = np.asarray(values, dtype="float64")
    if times.size == 0:
        return np.zeros(values.shape, dtype="int64")
    right = np.searchsorted(times, values, side="left")
    right = np.clip(right, 1, times.size - 1) if times.size > 1 else np.zeros_like(right)
    left = np.maximum(right - 1, 0)
    choose_left = np.abs(values - times[left]) <= np.abs(times[right] - values)
    return np.where(choose_left, left, right).astype("int64")


def map_event_samples(events, nb_total_sample, sampling_rate):
    """
    Move event-file events onto the continuous sample grid.

    Each sample value is converted to a time and matched to the closest
    time of the recording time axis.
    """
    events = events.copy()
    if events.size == 0:
        return events
    times = np.arange(nb_total_sample, dtype="float64") / sampling_rate
    event_times = events["sample"] / sampling_rate
    events["sample"] = nearest_index(times, event_times)
    return events


def remove_trigger_baseline(trace):
    """Trigger trace relative to its first sample"""
    trace = np.asarray(trace, dtype="float32")
    if trace.size == 0:
        return trace.copy()
    return trace - trace[0]


def scan_trigger_channel(trace):
    """
    Events embedded in a trigger trace.

    Every sample above zero is a candidate, except one that directly follows
    another candidate: a code held over several samples counts once, at its
    first sample.

    Returns
    -------
    events: np.ndarray with dtype `_curry_event_dtype`
    """
    trace = np.asarray(trace)
    (candidates,) = np.nonzero(trace > 0)
    if candidates.size > 1:
        held = np.zeros(candidates.size, dtype=bool)
        held[1:] = np.diff(candidates) == 1
        candidates = candidates[~held]
    events = [(ind, format_event_type(trace[ind]), ind, ind, i + 1, "") for i, ind in enumerate(candidates)]
    return np.array(events, dtype=_curry_event_dtype)


def rewrite_trigger_channel(trace, events):
    """
    Stamp the type of every integer-indexed, non boundary event onto a copy
    of `trace` at the event sample.
    """
    trace = np.array(trace, dtype="float32", copy=True)
    for ev in events:
        if ev["type"] == BOUNDARY:
            continue
        sample = ev["sample"]
        if not float(sample).is_integer():
            continue
        ind = int(sample)
        if 0 <= ind < trace.size:
            trace[ind] = float(ev["type"])
    return trace


class EventReconciler:
    """
    Merge event sources into one increasing, collision free timeline.

    Usage:
        >>> reconciler = EventReconciler(nb_total_sample=data.shape[1])
        >>> events = reconciler.reconcile(epoch_events=ep, file_events=fe, trigger_events=te)
        >>> new_trace = rewrite_trigger_channel(trace, events)
        >>> reconciler.notices
        []
    """

    def __init__(self, nb_total_sample=None):
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
        self.nb_total_sample = nb_total_sample
        self._occupied = {}
        self._events = []
        self.notices = []

    def _in_range(self, sample):
        if self.nb_total_sample is None:
            return True
        return 0 <= sample < self.nb_total_sample

    def _is_free(self, sample):
        # samples outside the recording count as taken
        return self._in_range(sample) and len(self._occupied.get(sample, [])) == 0

    def resolve(self, sample, ev_type):
        """
        Sample at which an event of `ev_type` aimed at `sample` goes,
        None when it duplicates an event already there.
        """
        existing = self._occupied.get(sample, [])
        if len(existing) == 0:
            return sample
        if ev_type in existing:
            return None
        for shift in COLLISION_SHIFTS:
            if self._is_free(sample + shift):
                self.logger.debug(f"Event {ev_type} moved from sample {sample} by {shift}")
                return sample + shift
        resolved = sample + HALF_SAMPLE_FALLBACK
        if not self._in_range(resolved):
            resolved = sample - HALF_SAMPLE_FALLBACK
        msg = f"Unresolved event collision at sample {sample}: event {ev_type} placed at sample {resolved}"
        self.logger.warning(msg)
        self.notices.append(Notice(Severity.ADVISORY, msg))
        return resolved

    def insert(self, event):
        """Insert one event (a record of `_curry_event_dtype`). Returns the resolved sample or None."""
        sample = float(event["sample"])
        ev_type = str(event["type"])
        resolved = self.resolve(sample, ev_type)
        if resolved is None:
            return None
        self._occupied.setdefault(resolved, []).append(ev_type)
        ev = tuple(event.item())
        self._events.append((resolved,) + ev[1:])
        return resolved

    def insert_all(self, events):
        if events is None or events.size == 0:
            return
        # a canonical order makes the merge independent of the input order
        order = np.argsort(events, order=["sample", "type", "start_sample", "stop_sample", "urevent"], kind="stable")
        for ev in events[order]:
            self.insert(ev)

    def timeline(self):
        """Events inserted so far, sorted by sample (ties keep insertion order)"""
        dtype = sized_label_dtype(_curry_event_dtype, [ev[5] for ev in self._events])
        events = np.array(self._events, dtype=dtype)
        order = np.argsort(events["sample"], kind="stable")
        return events[order]

    def reconcile(self, epoch_events=None, file_events=None, trigger_events=None):
        """
        Merge the three sources, in the order epoch markers, event file, trigger channel.

        Returns
        -------
        events: np.ndarray with dtype `_curry_event_dtype`, sorted by sample
        """
        self._occupied = {}
        self._events = []
        self.notices = []
        self.insert_all(epoch_events)
        self.insert_all(file_events)
        self.insert_all(trigger_events)
        return self.timeline()
