"""
baserawio
======

Classes
-------

BaseRawIO
abstract class which should be overridden to write a RawIO.

RawIO is the low level API of pycurry that decodes a recording into
numpy arrays. A RawIO reads everything it needs in `parse_header()` and
then serves chunks of signal and events from memory.

A channel refers to one row of the sample matrix. Channels sharing
sampling rate, dtype and time base are grouped in a "stream". Curry
recordings only ever have one stream and one segment: epoched files are
flattened to a continuous buffer with boundary events.

With this API the IO have an attributes `header` with necessary keys.
This  `header` attribute is done in `_parse_header(...)` method::

    self.header = {}
    self.header['nb_block'] = 1
    self.header['nb_segment'] = [1]
    self.header['signal_streams'] = signal_streams
    self.header['signal_channels'] = signal_channels
    self.header['event_channels'] = event_channels

"""

from __future__ import annotations

import logging

import numpy as np

from pycurry import logging_handler


_signal_stream_dtype = [
    ("name", "U64"),  # not necessarily unique
    ("id", "U64"),  # must be unique
]

_signal_channel_dtype = [
    ("name", "U64"),  # not necessarily unique
    ("id", "U64"),  # must be unique
    ("sampling_rate", "float64"),
    ("dtype", "U16"),
    ("units", "U64"),
    ("gain", "float64"),
    ("offset", "float64"),
    ("stream_id", "U64"),
]

_common_sig_characteristics = ["sampling_rate", "dtype", "stream_id"]

# in rawio event and epoch are handled the same way
# except, that duration is `None` for events
_event_channel_dtype = [
    ("name", "U64"),
    ("id", "U64"),
    ("type", "S5"),  # epoch or event
]

# type label of the synthetic event separating two flattened trials
BOUNDARY = "boundary"

# one row per event of a reconciled timeline
_curry_event_dtype = [
    ("sample", "float64"),  # zero based, x.5 only for unresolved collisions
    ("type", "U64"),  # integer code or "boundary"
    ("start_sample", "int64"),
    ("stop_sample", "int64"),
    ("urevent", "int64"),  # 1-based position in its source, 0 for boundaries
    ("label", "U64"),  # epoch label of classification events
]


def sized_label_dtype(dtype, labels):
    """`dtype` with its "label" field wide enough for every string of `labels`"""
    width = max([64] + [len(label) for label in labels])
    return [(name, f"U{width}") if name == "label" else (name, fmt) for name, fmt in dtype]


class BaseRawIO:
    """
    Generic class to handle.

    """

    name = "BaseRawIO"
    description = ""
    extensions = []

    rawmode = None  # "one-file" or "multi-file"

    def __init__(self, **kargs):
        # create a logger for the IO class
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # Create a logger for 'pycurry' and add a handler to it if it doesn't have one already.
        # (it will also not add one if the root logger has a handler)
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)

        self.header = None
        self.is_header_parsed = False

    def parse_header(self):
        """
        Parses the header of the file(s) and decodes everything needed by
        all other functions
        """
        # this must create
        # self.header['nb_block']
        # self.header['nb_segment']
        # self.header['signal_streams']
        # self.header['signal_channels']
        # self.header['event_channels']

        self._parse_header()
        self._check_stream_signal_channel_characteristics()
        self.is_header_parsed = True

    def source_name(self):
        """Return fancy name of file source"""
        return self._source_name()

    def __repr__(self):
        txt = f"{self.__class__.__name__}: {self.source_name()}\n"
        if self.header is not None:
            nb_block = self.block_count()
            txt += f"nb_block: {nb_block}\n"
            nb_seg = [self.segment_count(i) for i in range(nb_block)]
            txt += f"nb_segment:  {nb_seg}\n"

            # signal streams
            v = [
                s["name"] + f" (chans: {self.signal_channels_count(i)})"
                for i, s in enumerate(self.header["signal_streams"])
            ]
            v = pprint_vector(v)
            txt += f"signal_streams: {v}\n"

            for k in ("signal_channels", "event_channels"):
                v = pprint_vector(self.header[k]["name"])
                txt += f"{k}: {v}\n"

        return txt

    def _generate_minimal_annotations(self):
        """
        Helper function that generates a nested dict for annotations.

        Must be called when self.header is done. Readers then enrich it::

            raw_annotations['blocks'][block_index]['segments'][seg_index]
                           ['signals'][stream_index]['__array_annotations__']
                           ['impedance'] = [4.2, 3.1, ...]
        """
        signal_streams = self.header["signal_streams"]
        signal_channels = self.header["signal_channels"]
        event_channels = self.header["event_channels"]

        signal_stream_annotations = []
        for c in range(signal_streams.size):
            stream_id = signal_streams[c]["id"]
            channels = signal_channels[signal_channels["stream_id"] == stream_id]
            d = {}
            d["name"] = signal_streams["name"][c]
            d["stream_id"] = stream_id
            d["file_origin"] = self._source_name()
            d["__array_annotations__"] = {}
            for key in ("name", "id"):
                values = np.array([channels[key][chan] for chan in range(channels.size)])
                d["__array_annotations__"]["channel_" + key + "s"] = values
            signal_stream_annotations.append(d)

        event_annotations = []
        for c in range(event_channels.size):
            d = {}
            d["name"] = event_channels["name"][c]
            d["id"] = event_channels["id"][c]
            d["file_origin"] = self._source_name()
            d["__array_annotations__"] = {}
            event_annotations.append(d)

        ann = {}
        ann["blocks"] = []
        for block_index in range(self.block_count()):
            d = {}
            d["file_origin"] = self.source_name()
            d["segments"] = []
            ann["blocks"].append(d)

            for seg_index in range(self.segment_count(block_index)):
                d = {}
                d["file_origin"] = self.source_name()
                # copy nested
                d["signals"] = signal_stream_annotations.copy()
                d["events"] = event_annotations.copy()
                ann["blocks"][block_index]["segments"].append(d)

        self.raw_annotations = ann

    def block_count(self):
        """Returns the number of blocks"""
        return self.header["nb_block"]

    def segment_count(self, block_index: int):
        """Returns count of segments for a given block"""
        return self.header["nb_segment"][block_index]

    def signal_channels_count(self, stream_index: int):
        """Returns the number of signal channels for a given stream."""
        stream_id = self.header["signal_streams"][stream_index]["id"]
        channels = self.header["signal_channels"]
        channels = channels[channels["stream_id"] == stream_id]
        return len(channels)

    def segment_t_start(self, block_index: int, seg_index: int):
        """Global t_start of a Segment in s"""
        return self._segment_t_start(block_index, seg_index)

    def segment_t_stop(self, block_index: int, seg_index: int):
        """Global t_stop of a Segment in s"""
        return self._segment_t_stop(block_index, seg_index)

    ###
    # signal and channel zone

    def _check_stream_signal_channel_characteristics(self):
        """
        Check that all channels that belonging to the same stream_id
        have the same _common_sig_characteristics and unique ids.
        """
        signal_streams = self.header["signal_streams"]
        signal_channels = self.header["signal_channels"]
        if signal_streams.size > 0:
            if signal_channels.size < 1:
                raise ValueError("Signal stream exists but there are no signal channels")

        for stream_index in range(signal_streams.size):
            stream_id = signal_streams[stream_index]["id"]
            mask = signal_channels["stream_id"] == stream_id
            characteristics = signal_channels[mask][_common_sig_characteristics]
            unique_characteristics = np.unique(characteristics)
            if unique_characteristics.size != 1:
                raise ValueError(
                    f"Some channels in stream_id {stream_id} "
                    f"do not have the same {_common_sig_characteristics} {unique_characteristics}"
                )

            channel_ids = signal_channels[mask]["id"]
            if np.unique(channel_ids).size != channel_ids.size:
                raise ValueError(f"signal_channels do not have unique ids for stream {stream_index}")

    def channel_name_to_index(self, stream_index: int, channel_names: list[str]):
        """
        Inside a stream, transform channel_names to channel_indexes.

        Parameters
        ----------
        stream_index: int
            The stream in which to convert channel_names to their respective channel_indexes
        channel_names: list[str]
            The channel names to convert to channel_indexes

        Returns
        -------
        channel_indexes: np.array[int]
            the channel_indexes associated with the given channel_names
        """
        stream_id = self.header["signal_streams"][stream_index]["id"]
        mask = self.header["signal_channels"]["stream_id"] == stream_id
        signal_channels = self.header["signal_channels"][mask]
        chan_names = list(signal_channels["name"])
        if signal_channels.size != np.unique(chan_names).size:
            raise ValueError("Channel names are not unique")
        channel_indexes = np.array([chan_names.index(name) for name in channel_names])
        return channel_indexes

    def _get_stream_index_from_arg(self, stream_index_arg: int | None):
        if stream_index_arg is None:
            if self.header["signal_streams"].size != 1:
                raise ValueError("stream_index must be given for files with multiple streams")
            stream_index = 0
        else:
            if stream_index_arg < 0 or stream_index_arg >= self.header["signal_streams"].size:
                raise ValueError(f"stream_index must be between 0 and {self.header['signal_streams'].size}")
            stream_index = stream_index_arg
        return stream_index

    def get_signal_size(self, block_index: int = 0, seg_index: int = 0, stream_index: int | None = None):
        """
        Retrieves the number of samples of the channels in a stream.
        """
        stream_index = self._get_stream_index_from_arg(stream_index)
        return self._get_signal_size(block_index, seg_index, stream_index)

    def get_signal_sampling_rate(self, stream_index: int | None = None):
        """
        Retrieves the sampling rate in Hz for a stream and all channels within that stream.
        """
        stream_index = self._get_stream_index_from_arg(stream_index)
        stream_id = self.header["signal_streams"][stream_index]["id"]
        mask = self.header["signal_channels"]["stream_id"] == stream_id
        signal_channels = self.header["signal_channels"][mask]
        sr = signal_channels[0]["sampling_rate"]
        return float(sr)

    def get_analogsignal_chunk(
        self,
        block_index: int = 0,
        seg_index: int = 0,
        i_start: int | None = None,
        i_stop: int | None = None,
        stream_index: int | None = None,
        channel_indexes: list[int] | None = None,
        channel_names: list[str] | None = None,
    ):
        """
        Returns a chunk of raw signal as a Numpy array.

        Parameters
        ----------
        block_index: int, default: 0
        seg_index: int, default: 0
        i_start: int | None, default: None
            The index of the first sample (not time) of the desired analog signal
        i_stop: int | None, default: None
            The index of one past the last sample (not time) of the desired analog signal
        stream_index: int | None, default: None
        channel_indexes: list[int] | np.array[int] | slice | None, default: None
            The list of indexes of channels to retrieve
        channel_names: list[str] | None, default: None
            The list of channel names to retrieve, used when channel_indexes is None

        Returns
        -------
        raw_chunk: np.array (n_samples, n_channels)
            Rows are the samples and columns are the channels

        Examples
        --------
        >>> rawio_reader.parse_header()
        >>> raw_sigs = rawio_reader.get_analogsignal_chunk(i_start=0, i_stop=1000)
        >>> raw_sigs.shape
        (1000, 64)
        """
        signal_streams = self.header["signal_streams"]
        signal_channels = self.header["signal_channels"]
        if signal_streams.size == 0 or signal_channels.size == 0:
            raise AttributeError(
                "get_analogsignal_chunk can't be called on a file with no signal streams or channels."
            )

        stream_index = self._get_stream_index_from_arg(stream_index)
        if channel_indexes is None and channel_names is not None:
            channel_indexes = self.channel_name_to_index(stream_index, channel_names)

        if isinstance(channel_indexes, list):
            channel_indexes = np.asarray(channel_indexes)

        if isinstance(channel_indexes, np.ndarray) and channel_indexes.dtype == "bool":
            if self.signal_channels_count(stream_index) != channel_indexes.size:
                raise ValueError(
                    "If channel_indexes is a boolean it must have be the same length as the "
                    f"number of channels {self.signal_channels_count(stream_index)}"
                )
            (channel_indexes,) = np.nonzero(channel_indexes)

        raw_chunk = self._get_analogsignal_chunk(block_index, seg_index, i_start, i_stop, stream_index, channel_indexes)
        return raw_chunk

    def rescale_signal_raw_to_float(
        self,
        raw_signal: np.ndarray,
        dtype: np.dtype = "float32",
        stream_index: int | None = None,
        channel_indexes: list[int] | None = None,
    ):
        """
        Rescales a chunk of raw signals returned by get_analogsignal_chunk
        with the gain and offset of each channel.
        """
        stream_index = self._get_stream_index_from_arg(stream_index)
        if channel_indexes is None:
            channel_indexes = slice(None)

        stream_id = self.header["signal_streams"][stream_index]["id"]
        mask = self.header["signal_channels"]["stream_id"] == stream_id
        channels = self.header["signal_channels"][mask]
        channels = channels[channel_indexes]

        float_signal = raw_signal.astype(dtype)

        if np.any(channels["gain"] != 1.0):
            float_signal *= channels["gain"]

        if np.any(channels["offset"] != 0.0):
            float_signal += channels["offset"]

        return float_signal

    ###
    # event and epoch zone

    def event_count(self, block_index: int = 0, seg_index: int = 0, event_channel_index: int = 0):
        """
        Returns the count of events for a particular block, segment, and channel_index
        """
        return self._event_count(block_index, seg_index, event_channel_index)

    def get_event_timestamps(
        self,
        block_index: int = 0,
        seg_index: int = 0,
        event_channel_index: int = 0,
        t_start: float | None = None,
        t_stop: float | None = None,
    ):
        """
        Returns the event timestamps along with their labels and durations

        Parameters
        ----------
        block_index: int, default: 0
        seg_index: int, default: 0
        event_channel_index: int, default: 0
        t_start: float | None, default: None
            The time in seconds for the start of the section, None for the beginning
        t_stop: float | None, default: None
            The time in seconds for the end of the section, None for the end

        Returns
        -------
        timestamp: np.array
            The timestamps of events (in samples)
        durations: np.array | None
            The durations of each event
        labels: np.array
            The labels of the events
        """
        timestamp, durations, labels = self._get_event_timestamps(
            block_index, seg_index, event_channel_index, t_start, t_stop
        )
        return timestamp, durations, labels

    def rescale_event_timestamp(
        self, event_timestamps: np.ndarray, dtype: np.dtype = "float64", event_channel_index: int = 0
    ):
        """
        Rescale event timestamps to seconds.
        """
        return self._rescale_event_timestamp(event_timestamps, dtype, event_channel_index)

    ##################

    # Functions to be implemented in IO below here

    def _parse_header(self):
        raise NotImplementedError

    def _source_name(self):
        raise NotImplementedError

    def _segment_t_start(self, block_index: int, seg_index: int):
        raise NotImplementedError

    def _segment_t_stop(self, block_index: int, seg_index: int):
        raise NotImplementedError

    ###
    # signal and channel zone
    def _get_signal_size(self, block_index: int, seg_index: int, stream_index: int):
        raise NotImplementedError

    def _get_analogsignal_chunk(
        self,
        block_index: int,
        seg_index: int,
        i_start: int | None,
        i_stop: int | None,
        stream_index: int,
        channel_indexes: list[int] | None,
    ):
        raise NotImplementedError

    ###
    # event and epoch zone
    def _event_count(self, block_index: int, seg_index: int, event_channel_index: int):
        raise NotImplementedError

    def _get_event_timestamps(
        self, block_index: int, seg_index: int, event_channel_index: int, t_start: float | None, t_stop: float | None
    ):
        raise NotImplementedError

    def _rescale_event_timestamp(self, event_timestamps: np.ndarray, dtype: np.dtype, event_channel_index: int):
        raise NotImplementedError


def pprint_vector(vector, lim: int = 8):
    vector = np.asarray(vector)
    if len(vector) > lim:
        part1 = ", ".join(e for e in vector[: lim // 2])
        part2 = " , ".join(e for e in vector[-lim // 2 :])
        txt = f"[{part1} ... {part2}]"
    else:
        part1 = ", ".join(e for e in vector)
        txt = f"[{part1}]"
    return txt
