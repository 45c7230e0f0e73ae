"""
Channel labels and sensor positions of Curry label text (.rs3, or the
parameter file for Curry 8 and later).

Every channel group of the file repeats its keyword four times::

    LABELS START
    ...
    LABELS END
    LABELS START_LIST
    Fp1
    Fp2
    LABELS END_LIST

The payload lives between the third and the fourth occurrence. The
groups of a file are concatenated, and never yield more rows than the
declared number of channels.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

# keyword occurrences per channel group
NB_OCCURRENCES_PER_GROUP = 4


class RepeatedGroupScanner:
    """
    Walk the repeated `keyword` groups of a Curry label text.

    Parameters
    ----------
    text: str
        Whole label or parameter text, with "\\n" line endings
    keyword: str
        "LABELS" or "SENSORS"
    nb_channel: int
        Declared number of channels, bounds the number of rows
    """

    def __init__(self, text, keyword, nb_channel):
        self.text = text
        self.keyword = keyword
        self.nb_channel = int(nb_channel)

    def _occurrences(self):
        pattern = "\n" + self.keyword
        positions = []
        ix = self.text.find(pattern)
        while ix >= 0:
            positions.append(ix)
            ix = self.text.find(pattern, ix + 1)
        return positions

    def iter_groups(self):
        """Yield the payload lines of every channel group, in file order"""
        positions = self._occurrences()
        nb_group = len(positions) // NB_OCCURRENCES_PER_GROUP
        for g in range(nb_group):
            start = positions[g * NB_OCCURRENCES_PER_GROUP + NB_OCCURRENCES_PER_GROUP - 2]
            stop = positions[g * NB_OCCURRENCES_PER_GROUP + NB_OCCURRENCES_PER_GROUP - 1]
            # drop the START_LIST line itself
            lines = self.text[start + 1 : stop].split("\n")[1:]
            payload = []
            for line in lines:
                if "END_LIST" in line:
                    break
                payload.append(line)
            yield payload

    def iter_rows(self):
        """Yield payload lines across groups, at most `nb_channel` of them"""
        nc = 0
        for payload in self.iter_groups():
            last = self.nb_channel - nc
            for line in payload[:last]:
                nc += 1
                yield line


def scan_labels(text, nb_channel):
    """
    Channel labels: "EEG1", "EEG2", ... overridden by the labels found in `text`.
    """
    labels = [f"EEG{i + 1}" for i in range(nb_channel)]
    if not text:
        return labels
    scanner = RepeatedGroupScanner(text, "LABELS", nb_channel)
    for i, label in enumerate(scanner.iter_rows()):
        labels[i] = label
    return labels


def scan_sensor_locations(text, nb_channel):
    """
    Sensor positions found in `text`.

    Returns
    -------
    locations: np.ndarray (n_sensors, 3) or (n_sensors, 6)
        3 columns for one position per sensor (EEG, MEG), 6 for position and
        orientation (MEG). A group with 3 values inside a 6 column matrix
        leaves the last 3 columns at zero. Empty (0, 3) when nothing usable is found.
    """
    empty = np.zeros((0, 3), dtype="float64")
    if not text:
        return empty

    scanner = RepeatedGroupScanner(text, "SENSORS", nb_channel)
    groups = list(scanner.iter_groups())

    # first pass: positions per sensor of each group and number of rows,
    # rows past the declared channel count are not kept
    group_pos_per_sensor = []
    nb_row = 0
    for payload in groups:
        nb_kept = min(len(payload), nb_channel - nb_row)
        if nb_kept <= 0:
            group_pos_per_sensor.append(0)
            continue
        group_pos_per_sensor.append(len(_parse_floats(payload[0])))
        nb_row += nb_kept
    if len(group_pos_per_sensor) == 0:
        return empty

    max_pos_per_sensor = max(group_pos_per_sensor)
    if max_pos_per_sensor not in (3, 6) or not (0 < nb_row <= nb_channel):
        logger.debug(
            f"Ignoring sensor positions: {max_pos_per_sensor} values per sensor for {nb_row} sensors"
        )
        return empty

    # second pass: fill
    locations = np.zeros((nb_row, max_pos_per_sensor), dtype="float64")
    nc = 0
    for payload in groups:
        last = nb_channel - nc
        for line in payload[:last]:
            values = _parse_floats(line)[:max_pos_per_sensor]
            locations[nc, : len(values)] = values
            nc += 1
    return locations


def _parse_floats(line):
    values = []
    for tok in line.split():
        try:
            values.append(float(tok))
        except ValueError:
            break
    return values
