"""
Front end for reading Curry recordings with units attached.

:class:`CurryIO` parses the recording on construction and hands back either
the whole :class:`~pycurry.core.CurryRecord` or unit-bearing arrays built
with :mod:`quantities`.
"""

import numpy as np
import quantities as pq

from pycurry.rawio.curryrawio import CurryRawIO


class CurryIO(CurryRawIO):
    """
    Class for reading Neuroscan Curry files (.cdt, .dat).

    Parameters
    ----------
    filename: str
        The .cdt or .dat file to load
    keep_trigger_channel: bool, default: True
    trigger_channel_name: str, default: 'Trigger'

    Examples
    --------
    >>> from pycurry.io import CurryIO
    >>> reader = CurryIO('subject01.cdt')
    >>> signal, sampling_rate = reader.read_signal()
    >>> signal.units
    array(1.) * uV
    >>> times, labels = reader.event_times()
    """

    is_readable = True
    is_writable = False

    name = "Curry"
    description = "Neuroscan Curry 6-9 recordings"

    mode = "file"

    def __init__(self, filename, keep_trigger_channel=True, trigger_channel_name="Trigger"):
        CurryRawIO.__init__(
            self,
            filename=filename,
            keep_trigger_channel=keep_trigger_channel,
            trigger_channel_name=trigger_channel_name,
        )
        self.parse_header()

    def read_signal(self, i_start=None, i_stop=None, channel_names=None):
        """
        Returns
        -------
        signal: pq.Quantity (n_samples, n_channels) in uV
        sampling_rate: pq.Quantity in Hz
        """
        channel_indexes = None
        if channel_names is not None:
            channel_indexes = self.channel_name_to_index(0, channel_names)
        raw = self.get_analogsignal_chunk(i_start=i_start, i_stop=i_stop, channel_indexes=channel_indexes)
        signal = self.rescale_signal_raw_to_float(raw, dtype="float32", channel_indexes=channel_indexes) * pq.uV
        sampling_rate = self.get_signal_sampling_rate() * pq.Hz
        return signal, sampling_rate

    def read_times(self):
        """Time of every sample as a pq.Quantity in s"""
        sr = self.get_signal_sampling_rate()
        t_start = self.segment_t_start(0, 0)
        n = self.get_signal_size()
        return (t_start + np.arange(n, dtype="float64") / sr) * pq.s

    def event_times(self, t_start=None, t_stop=None):
        """
        Returns
        -------
        times: pq.Quantity in s
        labels: np.ndarray of str
        """
        timestamps, _, labels = self.get_event_timestamps(t_start=t_start, t_stop=t_stop)
        times = self.rescale_event_timestamp(timestamps, dtype="float64") * pq.s
        return times, labels

    def trigger_offset(self):
        return self.read_record().trigger_offset_usec * pq.us


def read_curry(filename, keep_trigger_channel=True, trigger_channel_name="Trigger"):
    """
    Decode a Curry recording in one call.

    Parameters
    ----------
    filename: str
        .cdt or .dat file (or one of its companion files)
    keep_trigger_channel: bool, default: True
    trigger_channel_name: str, default: 'Trigger'

    Returns
    -------
    record: CurryRecord

    Raises
    ------
    CurryReadError
        When the recording cannot be decoded (fatal notice)
    """
    reader = CurryIO(filename, keep_trigger_channel=keep_trigger_channel, trigger_channel_name=trigger_channel_name)
    return reader.read_record()
