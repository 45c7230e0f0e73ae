"""
Parsing of the Curry parameter text (.dap, .cdt.dpa, .cdt.dpo).

The parameter file is a loose "Key = value" dialect mixed with list
sections delimited by "<NAME> START_LIST" / "<NAME> END_LIST" lines.
Curry 6 spelled keys in ALL_CAPS (NUM_SAMPLES), Curry 7 and later in
CamelCase (NumSamples). Both spellings are looked up and summed: a
well-formed file only fills one of them.
"""

from __future__ import annotations

import enum
import logging
import re

import numpy as np

from pycurry.core import CurryReadError

from .baserawio import sized_label_dtype

logger = logging.getLogger(__name__)

# DataGuid of the compressed variant, which this package does not decode
COMPRESSED_DATA_GUID = "{2912E8D8-F5C8-4E25-A8E7-A1385967DA09}"

# words standing for a set flag
_flag_markers = ("ASCII", "CHAN")

_float_prefix = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

# Curry keeps the last 10 impedance checks
NB_IMPEDANCE_READINGS = 10

_epoch_info_dtype = [
    ("n_averages", "int64"),
    ("total_epochs", "int64"),
    ("type", "int64"),
    ("accept", "int64"),
    ("correct", "int64"),
    ("response", "int64"),
    ("response_time", "int64"),
    ("label", "U64"),
]
_epoch_info_columns = [name for name, _ in _epoch_info_dtype[:7]]


class FieldKind(enum.Enum):
    """Semantic parameter fields, with their (modern, legacy) spellings"""

    NUM_SAMPLES = ("NumSamples", "NUM_SAMPLES")
    NUM_CHANNELS = ("NumChannels", "NUM_CHANNELS")
    NUM_TRIALS = ("NumTrials", "NUM_TRIALS")
    SAMPLE_FREQ_HZ = ("SampleFreqHz", "SAMPLE_FREQ_HZ")
    TRIGGER_OFFSET_USEC = ("TriggerOffsetUsec", "TRIGGER_OFFSET_USEC")
    DATA_FORMAT = ("DataFormat", "DATA_FORMAT")
    DATA_SAMP_ORDER = ("DataSampOrder", "DATA_SAMP_ORDER")
    SAMPLE_TIME_USEC = ("SampleTimeUsec", "SAMPLE_TIME_USEC")

    @property
    def spellings(self):
        return self.value

    @classmethod
    def from_spelling(cls, token):
        for kind in cls:
            if token in kind.spellings:
                return kind
        raise KeyError(f"{token} is not a known Curry parameter token")


def scan_token_value(text, token):
    """
    Value following the first occurrence of `token` in `text`.

    "ASCII" and "CHAN" give 1.0, otherwise the leading float of the word
    after "=" is returned. A missing token, a missing "=" or a word that does
    not start with a number give 0.0.
    """
    ix = text.find(token)
    if ix < 0:
        return 0.0
    m = re.match(r"\s*=\s*(\S+)", text[ix + len(token) :])
    if m is None:
        return 0.0
    word = m.group(1)
    if word in _flag_markers:
        return 1.0
    m = _float_prefix.match(word)
    if m is None:
        return 0.0
    return float(m.group(0))


def check_not_compressed(text):
    """Raise CurryReadError if the parameter text describes the compressed format."""
    ctok = "DataGuid"
    ix = text.find(ctok)
    if ix < 0:
        return
    m = re.match(r"\s*=\s*(\S+)", text[ix + len(ctok) :])
    if m is not None and m.group(1) == COMPRESSED_DATA_GUID:
        raise CurryReadError(
            "Unsupported data format (compressed). Use Curry to convert this file to Raw Float format."
        )


class ParameterSet:
    """
    Scalar parameters of a Curry recording, one value per :class:`FieldKind`.

    Parameters
    ----------
    raw_values: dict
        value per token spelling, as found in the text

    Examples
    --------
    >>> params = ParameterSet.from_text(text)
    >>> params[FieldKind.NUM_CHANNELS]
    64.0
    >>> params.num_channels
    64
    """

    def __init__(self, raw_values):
        self.raw_values = dict(raw_values)
        self._values = {}
        for kind in FieldKind:
            self._values[kind] = sum(float(self.raw_values.get(sp, 0.0)) for sp in kind.spellings)

    @classmethod
    def from_text(cls, text):
        raw_values = {}
        for kind in FieldKind:
            for spelling in kind.spellings:
                raw_values[spelling] = scan_token_value(text, spelling)
        return cls(raw_values)

    def __getitem__(self, kind):
        if not isinstance(kind, FieldKind):
            kind = FieldKind.from_spelling(kind)
        return self._values[kind]

    def __iter__(self):
        return iter(FieldKind)

    def __len__(self):
        return len(self._values)

    def items(self):
        return self._values.items()

    def conflicting_fields(self):
        """Fields for which both spellings carry a non-zero value"""
        conflicts = []
        for kind in FieldKind:
            if all(self.raw_values.get(sp, 0.0) != 0.0 for sp in kind.spellings):
                conflicts.append(kind)
        return conflicts

    @property
    def num_samples(self) -> int:
        return int(self[FieldKind.NUM_SAMPLES])

    @property
    def num_channels(self) -> int:
        return int(self[FieldKind.NUM_CHANNELS])

    @property
    def num_trials(self) -> int:
        return int(self[FieldKind.NUM_TRIALS])

    @property
    def sampling_rate(self) -> float:
        """SampleFreqHz, or derived from SampleTimeUsec when the former is absent"""
        sr = self[FieldKind.SAMPLE_FREQ_HZ]
        sample_time = self[FieldKind.SAMPLE_TIME_USEC]
        if sr == 0 and sample_time != 0:
            sr = 1.0e6 / sample_time
        return sr

    @property
    def trigger_offset_usec(self) -> float:
        return self[FieldKind.TRIGGER_OFFSET_USEC]

    @property
    def is_ascii(self) -> bool:
        return self[FieldKind.DATA_FORMAT] == 1

    @property
    def multiplex(self) -> bool:
        return self[FieldKind.DATA_SAMP_ORDER] == 1

    def __repr__(self):
        txt = ", ".join(f"{kind.spellings[0]}={v:g}" for kind, v in self._values.items())
        return f"ParameterSet({txt})"


def get_list_section(text, name):
    """
    Text between the first "<name> START_LIST" and the first "<name> END_LIST".

    The start marker line is part of the returned text. An empty string is
    returned when either marker is missing.
    """
    start = text.find(f"{name} START_LIST")
    stop = text.find(f"{name} END_LIST")
    if start < 0 or stop < 0 or stop < start:
        return ""
    return text[start:stop]


def get_list_section_lines(text, name):
    """
    Payload lines of a list section: the marker line and the trailing
    blank remainder in front of the END_LIST marker are dropped.
    """
    section = get_list_section(text, name)
    if section == "":
        return []
    lines = section.split("\n")[1:]
    while lines and lines[-1].strip() == "":
        lines.pop()
    return lines


def parse_impedance_values(text):
    """
    Impedance history from the IMPEDANCE_VALUES list section.

    Returns
    -------
    impedances: np.ndarray (n_readings, n_channels)
        -1 (missing check) is replaced by NaN. Empty (0, 0) if the section is absent.
    nb_dropped: int
        Trailing values that did not fill a whole reading row
    """
    tokens = get_list_section(text, "IMPEDANCE_VALUES").split()

    # first pass: count numeric tokens
    nb_values = 0
    for tok in tokens:
        if _is_number(tok):
            nb_values += 1

    nb_channel = nb_values // NB_IMPEDANCE_READINGS
    nb_used = nb_channel * NB_IMPEDANCE_READINGS
    if nb_channel == 0:
        return np.zeros((0, 0), dtype="float64"), nb_values

    # second pass: fill
    values = np.empty(nb_used, dtype="float64")
    i = 0
    for tok in tokens:
        if i == nb_used:
            break
        if _is_number(tok):
            values[i] = float(tok)
            i += 1

    impedances = values.reshape(NB_IMPEDANCE_READINGS, nb_channel)
    impedances[impedances == -1] = np.nan
    return impedances, nb_values - nb_used


def parse_epoch_labels(text):
    """One label per trial, lines of the EPOCH_LABELS section kept verbatim"""
    return get_list_section_lines(text, "EPOCH_LABELS")


def parse_epoch_information(text):
    """
    Rows of the EPOCH_INFORMATION section as a structured array
    with dtype `_epoch_info_dtype` (labels left empty).
    """
    rows = []
    for line in get_list_section_lines(text, "EPOCH_INFORMATION"):
        fields = line.split()
        if len(fields) < len(_epoch_info_columns):
            logger.debug(f"Skipping epoch information row {line!r}")
            continue
        try:
            row = tuple(int(float(v)) for v in fields[: len(_epoch_info_columns)])
        except ValueError:
            logger.debug(f"Skipping epoch information row {line!r}")
            continue
        rows.append(row + ("",))
    return np.array(rows, dtype=_epoch_info_dtype)


def attach_epoch_labels(epoch_info, epoch_labels):
    """Copy of `epoch_info` with the i-th label on the i-th row, the label field widened as needed"""
    labelled = epoch_info.astype(sized_label_dtype(_epoch_info_dtype, epoch_labels))
    nb_label = min(len(epoch_labels), labelled.size)
    labelled["label"][:nb_label] = epoch_labels[:nb_label]
    return labelled


def _is_number(tok):
    try:
        float(tok)
    except ValueError:
        return False
    return True
