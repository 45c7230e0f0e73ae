"""
Decoding of the Curry sample stream (.cdt, .dat).

The stream is either whitespace separated ASCII floats or little-endian
float32. By default the channel index varies fastest
(s0c0 s0c1 ... s1c0 ...). When the parameter file sets
DataSampOrder = CHAN the sample index varies fastest instead and the
stream is transposed after reading.
"""

from __future__ import annotations

import logging

import numpy as np

from pycurry.core import CurryReadError

from .utils import get_file_size

logger = logging.getLogger(__name__)

_binary_dtype = np.dtype("<f4")


def estimate_num_samples(file_size, nb_channel, nb_trial, is_ascii=False):
    """
    Guess the number of samples per trial from the size of a float32 stream.

    Parameters
    ----------
    file_size: int
        Size of the data file in bytes
    nb_channel: int
    nb_trial: int
    is_ascii: bool
        ASCII streams cannot be sized this way

    Returns
    -------
    nb_sample: int
        floor(file_size / (4 * nb_channel * nb_trial))
    exact: bool
        True when the file size is a whole number of sample frames
    """
    if is_ascii:
        raise CurryReadError(
            "Number of samples cannot be guessed from ASCII data file. "
            "Use Curry to convert this file to Raw Float format."
        )
    frame_size = _binary_dtype.itemsize * nb_channel * nb_trial
    if frame_size <= 0:
        return 0, False
    nb_sample, remainder = divmod(int(file_size), frame_size)
    return nb_sample, remainder == 0


class SampleStreamReader:
    """
    Read the sample matrix of a Curry data file.

    Parameters
    ----------
    filename: str
        .cdt or .dat file
    nb_channel: int
    nb_sample: int
        Declared samples per trial, negative when unknown
    nb_trial: int
    is_ascii: bool
    multiplex: bool
        True when the sample index varies fastest in the stream

    Usage:
        >>> reader = SampleStreamReader('rec.cdt', 32, 1000, 1)
        >>> data = reader.read()
        >>> data.shape
        (32, 1000)
        >>> reader.nb_sample, reader.truncated
        (1000, False)
    """

    def __init__(self, filename, nb_channel, nb_sample, nb_trial, is_ascii=False, multiplex=False):
        self.filename = filename
        self.nb_channel = int(nb_channel)
        self.declared_nb_sample = int(nb_sample)
        self.nb_sample = int(nb_sample)
        self.nb_trial = int(nb_trial)
        self.is_ascii = bool(is_ascii)
        self.multiplex = bool(multiplex)
        self.estimated = False
        self.truncated = False

    def _resolve_nb_sample(self):
        if self.nb_sample >= 0:
            return
        file_size = get_file_size(self.filename)
        nb_sample, exact = estimate_num_samples(file_size, self.nb_channel, self.nb_trial, self.is_ascii)
        if not exact:
            logger.debug(f"{self.filename} is not a whole number of frames, trailing bytes ignored")
        self.nb_sample = nb_sample
        self.declared_nb_sample = nb_sample
        self.estimated = True

    def _read_ascii(self, count):
        values = np.empty(count, dtype="float32")
        n = 0
        with open(self.filename, mode="rt", encoding="latin-1") as f:
            for line in f:
                for tok in line.split():
                    if n == count:
                        return values
                    try:
                        values[n] = float(tok)
                    except ValueError:
                        # the stream ends at the first non numeric token
                        return values[:n]
                    n += 1
        return values[:n]

    def _read_binary(self, count):
        with open(self.filename, mode="rb") as f:
            values = np.fromfile(f, dtype=_binary_dtype, count=count)
        return values

    def read(self):
        """
        Returns
        -------
        data: np.ndarray (nb_channel, nb_sample * nb_trial), float32
        """
        self._resolve_nb_sample()

        nb_channel, nb_trial = self.nb_channel, self.nb_trial
        count = nb_channel * self.nb_sample * nb_trial
        if self.is_ascii:
            values = self._read_ascii(count)
        else:
            values = self._read_binary(count)

        read_nb_sample = values.size // (nb_channel * nb_trial)
        if read_nb_sample == 0:
            raise CurryReadError("Failed to read Curry data file. File is empty.")

        if self.multiplex:
            # channel blocks of the declared length, missing tail filled with NaN
            full = np.full(count, np.nan, dtype="float32")
            full[: values.size] = values
            data = full.reshape(nb_channel, self.nb_sample * nb_trial)
            data = data[:, : read_nb_sample * nb_trial]
        else:
            data = values[: nb_channel * read_nb_sample * nb_trial]
            data = data.reshape(read_nb_sample * nb_trial, nb_channel).T

        if read_nb_sample != self.nb_sample:
            self.truncated = True
            self.nb_sample = read_nb_sample

        return np.ascontiguousarray(data, dtype="float32")
