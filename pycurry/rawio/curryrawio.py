"""
Class for reading data from Neuroscan Curry 6, 7, 8 and 9.

A Curry recording is spread over several files sharing one base name:

  * .cdt (Curry 8 and 9) or .dat (Curry 6 and 7): the samples,
    ASCII or float32
  * .cdt.dpa / .cdt.dpo or .dap: the parameters
  * .rs3 (Curry 6 and 7 only): the channel labels and sensor positions,
    Curry 8 and 9 keep them in the parameter file
  * .cdt.cef / .cdt.ceo or .cef / .ceo: the events

Epoched recordings are flattened to one continuous buffer. Each trial
gives a classification event at its zero-time sample and a "boundary"
event closes every trial but the last. Events of the event file, epoch
markers and codes of the trigger channel are merged into one timeline
and the trigger channel is rewritten to match it.

The compressed Curry format is detected and refused.

Author: pycurry authors
"""

import os

import numpy as np

from pycurry.core import CurryReadError, CurryRecord, Notice, Severity

from .baserawio import (
    BaseRawIO,
    _signal_channel_dtype,
    _signal_stream_dtype,
    _event_channel_dtype,
)
from .epochs import EpochReconstructor
from .events import (
    EventReconciler,
    map_event_samples,
    read_event_text,
    remove_trigger_baseline,
    rewrite_trigger_channel,
    scan_trigger_channel,
)
from .groupscan import scan_labels, scan_sensor_locations
from .paramtext import (
    ParameterSet,
    attach_epoch_labels,
    check_not_compressed,
    parse_epoch_information,
    parse_epoch_labels,
    parse_impedance_values,
)
from .samplestream import SampleStreamReader
from .utils import read_first_existing, read_text_file

# label given to a trigger channel built from epoch information
SYNTHETIC_TRIGGER_LABEL = "TRIGGER"

# companion suffix -> primary data suffix, longest first
_companion_suffixes = [
    (".cdt.dpa", ".cdt"),
    (".cdt.dpo", ".cdt"),
    (".cdt.cef", ".cdt"),
    (".cdt.ceo", ".cdt"),
    (".dap", ".dat"),
    (".rs3", ".dat"),
    (".cef", ".dat"),
    (".ceo", ".dat"),
]


def resolve_curry_files(filename):
    """
    Names of the files making a Curry recording.

    Parameters
    ----------
    filename: str
        The .cdt or .dat file, or one of its companions

    Returns
    -------
    files: dict
        "data": str, "parameters": list[str] candidates in order of preference,
        "labels": str | None (None when labels are in the parameter file),
        "events": list[str] candidates in order of preference
    """
    filename = str(filename)
    lower = filename.lower()
    for suffix, data_suffix in _companion_suffixes:
        if lower.endswith(suffix):
            filename = filename[: -len(suffix)] + data_suffix
            lower = filename.lower()
            break

    base, ext = os.path.splitext(filename)
    ext = ext.lower()
    if ext == ".cdt":
        files = {
            "data": filename,
            "parameters": [filename + ".dpa", filename + ".dpo"],
            "labels": None,
            "events": [filename + ".cef", filename + ".ceo"],
        }
    elif ext == ".dat":
        files = {
            "data": filename,
            "parameters": [base + ".dap"],
            "labels": base + ".rs3",
            "events": [base + ".cef", base + ".ceo"],
        }
    else:
        raise CurryReadError("Unsupported file name (choose a .cdt or .dat file)")
    return files


class CurryRawIO(BaseRawIO):
    """
    Class for reading Neuroscan Curry files.

    Parameters
    ----------
    filename: str, default: ''
        The .cdt or .dat file to load (a companion file name is accepted too)
    keep_trigger_channel: bool, default: True
        When False the trigger channel is removed from the signals once the
        events have been reconciled
    trigger_channel_name: str, default: 'Trigger'
        Label of the trigger channel, matched case-insensitively

    Examples
    --------
    >>> import pycurry.rawio
    >>> reader = pycurry.rawio.CurryRawIO(filename='subject01.cdt')
    >>> reader.parse_header()
    >>> raw_sigs = reader.get_analogsignal_chunk(i_start=0, i_stop=1000)
    >>> record = reader.read_record()
    >>> record.events[:3]
    """

    extensions = ["cdt", "dat"]
    rawmode = "multi-file"

    def __init__(self, filename="", keep_trigger_channel=True, trigger_channel_name="Trigger"):
        BaseRawIO.__init__(self)
        self.filename = str(filename)
        self.keep_trigger_channel = keep_trigger_channel
        self.trigger_channel_name = trigger_channel_name

    def _source_name(self):
        return self.filename

    def _advise(self, msg):
        self.logger.warning(msg)
        self._notices.append(Notice(Severity.ADVISORY, msg))

    def _trigger_channel_index(self, labels):
        name = self.trigger_channel_name.lower()
        for i, label in enumerate(labels):
            if label.lower() == name:
                return i
        return None

    def _read_parameters(self, files):
        param_filename, param_text = read_first_existing(files["parameters"])
        if param_text is None:
            raise CurryReadError("Parameter file not found (make sure .dap, .dpa or .dpo file exists)")

        check_not_compressed(param_text)

        params = ParameterSet.from_text(param_text)
        for kind in params.conflicting_fields():
            self._advise(f"Parameter {kind.spellings[0]} is given with both spellings in {param_filename}")

        if params.sampling_rate <= 0:
            raise CurryReadError(f"Invalid sampling frequency {params.sampling_rate} in {param_filename}")
        if params.num_channels <= 0 or params.num_trials <= 0:
            raise CurryReadError(
                f"Invalid number of channels ({params.num_channels}) or trials ({params.num_trials}) in {param_filename}"
            )
        return param_text, params

    def _read_impedances(self, param_text, nb_channel):
        impedances, nb_dropped = parse_impedance_values(param_text)
        if nb_dropped > 0 and impedances.size > 0:
            self._advise(f"{nb_dropped} impedance values do not fill a whole reading and are ignored")
        if impedances.size > 0 and impedances.shape[1] != nb_channel:
            self._advise(
                f"Impedance history has {impedances.shape[1]} channels for {nb_channel} recorded channels, ignored"
            )
            impedances = np.zeros((0, 0), dtype="float64")
        return impedances

    def _read_label_text(self, files, param_text):
        if files["labels"] is None:
            return param_text
        if not os.path.isfile(files["labels"]):
            self._advise("Unable to open label file from Curry legacy format.")
            return ""
        return read_text_file(files["labels"])

    def _read_epoch_lists(self, param_text):
        epoch_labels = parse_epoch_labels(param_text)
        epoch_info = parse_epoch_information(param_text)
        epoch_info = attach_epoch_labels(epoch_info, epoch_labels)
        return epoch_labels, epoch_info

    def _parse_header(self):
        self._notices = []

        files = resolve_curry_files(self.filename)
        if not os.path.isfile(files["data"]):
            raise CurryReadError("Curry data file not found (make sure .cdt or .dat file exists)")

        param_text, params = self._read_parameters(files)
        nb_channel = params.num_channels
        nb_trial = params.num_trials
        sampling_rate = params.sampling_rate
        offset_usec = params.trigger_offset_usec

        impedances = self._read_impedances(param_text, nb_channel)

        label_text = self._read_label_text(files, param_text)
        labels = scan_labels(label_text, nb_channel)
        sensor_locations = scan_sensor_locations(label_text, nb_channel)

        epoch_labels, epoch_info = self._read_epoch_lists(param_text)

        _, event_text = read_first_existing(files["events"])
        if event_text is not None:
            file_events, annotations = read_event_text(event_text)
        else:
            file_events, annotations = None, []

        stream = SampleStreamReader(
            files["data"],
            nb_channel,
            params.num_samples,
            nb_trial,
            is_ascii=params.is_ascii,
            multiplex=params.multiplex,
        )
        data = stream.read()
        if stream.truncated:
            self._advise("Inconsistent number of samples. File may be read incompletely.")
        nb_sample = stream.nb_sample
        nb_total_sample = nb_sample * nb_trial

        trigger_index = self._trigger_channel_index(labels)
        if trigger_index is not None:
            data[trigger_index, :] = remove_trigger_baseline(data[trigger_index, :])

        epoch_events = None
        if nb_trial > 1:
            reconstructor = EpochReconstructor(data, nb_sample, nb_trial, sampling_rate, offset_usec, epoch_info)
            data, trace, epoch_events = reconstructor.reconstruct()
            if np.any(trace > 0):
                if trigger_index is None:
                    data = np.concatenate([data, trace[np.newaxis, :]], axis=0)
                    labels.append(SYNTHETIC_TRIGGER_LABEL)
                    trigger_index = data.shape[0] - 1
                else:
                    stamp = (trace > 0) & (data[trigger_index, :] != trace)
                    data[trigger_index, stamp] = trace[stamp]

        if file_events is not None:
            file_events = map_event_samples(file_events, nb_total_sample, sampling_rate)

        trigger_events = None
        if trigger_index is not None:
            trigger_events = scan_trigger_channel(data[trigger_index, :])

        reconciler = EventReconciler(nb_total_sample=nb_total_sample)
        events = reconciler.reconcile(
            epoch_events=epoch_events, file_events=file_events, trigger_events=trigger_events
        )
        self._notices.extend(reconciler.notices)

        if trigger_index is not None:
            data[trigger_index, :] = rewrite_trigger_channel(data[trigger_index, :], events)
            if not self.keep_trigger_channel:
                data = np.delete(data, trigger_index, axis=0)
                del labels[trigger_index]

        self._record = CurryRecord(
            data,
            sampling_rate,
            nb_sample,
            nb_trial,
            trigger_offset_usec=offset_usec,
            labels=labels,
            sensor_locations=sensor_locations,
            events=events,
            annotations=annotations,
            epoch_info=epoch_info,
            epoch_labels=epoch_labels,
            impedance_matrix=impedances,
            notices=self._notices,
            file_origin=files["data"],
        )
        self._sampling_rate = sampling_rate
        if nb_trial == 1:
            self._t_start = offset_usec / 1.0e6
        else:
            self._t_start = 0.0

        signal_streams = np.array([("Signals", "0")], dtype=_signal_stream_dtype)
        sig_channels = []
        for c, name in enumerate(labels):
            chan_id = str(c + 1)
            sig_channels.append((name, chan_id, sampling_rate, "float32", "uV", 1.0, 0.0, "0"))
        sig_channels = np.array(sig_channels, dtype=_signal_channel_dtype)

        event_channels = np.array([("Curry events", "0", "event")], dtype=_event_channel_dtype)

        # fille into header dict
        self.header = {}
        self.header["nb_block"] = 1
        self.header["nb_segment"] = [1]
        self.header["signal_streams"] = signal_streams
        self.header["signal_channels"] = sig_channels
        self.header["event_channels"] = event_channels

        self._generate_minimal_annotations()
        seg_ann = self.raw_annotations["blocks"][0]["segments"][0]
        seg_ann["n_trials"] = nb_trial
        seg_ann["trigger_offset_usec"] = offset_usec
        sig_ann = seg_ann["signals"][0]
        latest, median = self._record.impedance_summary()
        if latest is not None and latest.size == sig_channels.size:
            sig_ann["__array_annotations__"]["impedance"] = latest
            sig_ann["__array_annotations__"]["median_impedance"] = median
        if sensor_locations.shape[0] == sig_channels.size:
            for dim in range(sensor_locations.shape[1]):
                sig_ann["__array_annotations__"][f"coordinates_{dim}"] = sensor_locations[:, dim]
        ev_ann = seg_ann["events"][0]
        ev_ann["__array_annotations__"]["urevent"] = events["urevent"]

    @property
    def notices(self):
        return list(self._record.notices)

    def read_record(self):
        """The decoded :class:`CurryRecord` (parses the header if needed)"""
        if not self.is_header_parsed:
            self.parse_header()
        return self._record

    def _segment_t_start(self, block_index, seg_index):
        return self._t_start

    def _segment_t_stop(self, block_index, seg_index):
        return self._t_start + self._record.n_total_samples / self._sampling_rate

    ###
    def _get_signal_size(self, block_index, seg_index, stream_index):
        return self._record.n_total_samples

    def _get_analogsignal_chunk(self, block_index, seg_index, i_start, i_stop, stream_index, channel_indexes):
        if channel_indexes is None:
            channel_indexes = slice(None)
        raw_signals = self._record.data[channel_indexes, i_start:i_stop]
        return raw_signals.T

    ###
    # event and epoch zone
    def _event_count(self, block_index, seg_index, event_channel_index):
        return self._record.events.size

    def _get_event_timestamps(self, block_index, seg_index, event_channel_index, t_start, t_stop):
        events = self._record.events
        timestamps = events["sample"]
        labels = events["type"]

        if t_start is not None:
            keep = timestamps >= (t_start - self._t_start) * self._sampling_rate
            timestamps = timestamps[keep]
            labels = labels[keep]

        if t_stop is not None:
            keep = timestamps <= (t_stop - self._t_start) * self._sampling_rate
            timestamps = timestamps[keep]
            labels = labels[keep]

        durations = None

        return timestamps, durations, labels

    def _rescale_event_timestamp(self, event_timestamps, dtype, event_channel_index):
        event_times = event_timestamps.astype(dtype) / self._sampling_rate + self._t_start
        return event_times
