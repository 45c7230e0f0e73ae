"""
Writers producing small Curry recordings for the tests.

Nothing here is part of the public API: the files written only carry the
tokens and sections the readers look at.
"""

import os

import numpy as np


def format_parameter_text(
    nb_channel,
    nb_sample,
    nb_trial=1,
    sampling_rate=500.0,
    offset_usec=0.0,
    ascii=False,
    multiplex=False,
    legacy=False,
    data_guid=None,
    impedances=None,
    epoch_info=None,
    epoch_labels=None,
    extra="",
):
    if legacy:
        keys = ["NUM_SAMPLES", "NUM_CHANNELS", "NUM_TRIALS", "SAMPLE_FREQ_HZ", "TRIGGER_OFFSET_USEC",
                "DATA_FORMAT", "DATA_SAMP_ORDER"]
    else:
        keys = ["NumSamples", "NumChannels", "NumTrials", "SampleFreqHz", "TriggerOffsetUsec",
                "DataFormat", "DataSampOrder"]
    values = [
        nb_sample,
        nb_channel,
        nb_trial,
        sampling_rate,
        offset_usec,
        "ASCII" if ascii else "BINARY",
        "CHAN" if multiplex else "SAMP",
    ]
    lines = ["DATA_PARAMETERS START"]
    if data_guid is not None:
        lines.append(f"\tDataGuid = {data_guid}")
    for key, value in zip(keys, values):
        if value is None:
            continue
        lines.append(f"\t{key} = {value}")
    lines.append("DATA_PARAMETERS END")
    lines.append("")

    if impedances is not None:
        lines.append("IMPEDANCE_VALUES START_LIST")
        lines.append("\t" + " ".join(f"{v:g}" for v in np.ravel(impedances)))
        lines.append("IMPEDANCE_VALUES END_LIST")
        lines.append("")

    if epoch_labels is not None:
        lines.append("EPOCH_LABELS START_LIST")
        lines.extend(epoch_labels)
        lines.append("EPOCH_LABELS END_LIST")
        lines.append("")

    if epoch_info is not None:
        lines.append("EPOCH_INFORMATION START_LIST")
        for row in epoch_info:
            lines.append("\t" + " ".join(str(int(v)) for v in row))
        lines.append("EPOCH_INFORMATION END_LIST")
        lines.append("")

    return "\n".join(lines) + "\n" + extra


def format_group_text(keyword, rows):
    """One channel group: the keyword four times, the rows between the last two"""
    lines = [
        f"{keyword} START",
        f"{keyword} END",
        f"{keyword} START_LIST",
    ]
    lines.extend(rows)
    lines.append(f"{keyword} END_LIST")
    lines.append("")
    return "\n".join(lines) + "\n"


def format_label_text(labels=None, sensors=None):
    text = "\n"
    if labels is not None:
        text += format_group_text("LABELS", labels)
    if sensors is not None:
        rows = ["\t" + " ".join(f"{v:g}" for v in row) for row in sensors]
        text += format_group_text("SENSORS", rows)
    return text


def format_event_text(events, remarks=None):
    """
    events: list of (sample, type, start, stop)
    """
    lines = ["NUMBER_LIST START_LIST"]
    for sample, ev_type, start, stop in events:
        # sample, epoch, type, accept, start, stop, then unused columns
        lines.append(f"{sample}\t1\t{ev_type}\t1\t{start}\t{stop}\t0\t0\t0\t0\t0")
    lines.append("NUMBER_LIST END_LIST")
    lines.append("")
    if remarks is not None:
        lines.append("REMARK_LIST START_LIST")
        lines.extend(remarks)
        lines.append("REMARK_LIST END_LIST")
        lines.append("")
    return "\n".join(lines) + "\n"


def write_sample_stream(filename, data, ascii=False, multiplex=False):
    """
    data: np.ndarray (nb_channel, nb_total_sample)
    """
    data = np.asarray(data, dtype="float32")
    ordered = data if multiplex else data.T
    if ascii:
        with open(filename, mode="wt") as f:
            for row in ordered:
                f.write(" ".join(f"{v:.6g}" for v in row) + "\n")
    else:
        ordered.astype("<f4").tofile(filename)


def write_text(filename, text):
    with open(filename, mode="wt", encoding="latin-1", newline="") as f:
        f.write(text)


def write_curry_recording(
    dirname,
    data,
    nb_trial=1,
    sampling_rate=500.0,
    offset_usec=0.0,
    labels=None,
    sensors=None,
    events=None,
    remarks=None,
    legacy=False,
    write_labels=True,
    write_parameters=True,
    ascii=False,
    multiplex=False,
    declared_nb_sample="auto",
    basename="recording",
    **kargs,
):
    """
    Write a full recording: .cdt + .cdt.dpa (+ .cdt.cef) or, when `legacy`,
    .dat + .dap + .rs3 (+ .cef).

    Returns the data file name.
    """
    data = np.asarray(data, dtype="float32")
    nb_channel = data.shape[0]
    nb_sample = data.shape[1] // nb_trial
    if declared_nb_sample != "auto":
        nb_sample = declared_nb_sample

    if legacy:
        data_filename = os.path.join(dirname, basename + ".dat")
        param_filename = os.path.join(dirname, basename + ".dap")
        label_filename = os.path.join(dirname, basename + ".rs3")
        event_filename = os.path.join(dirname, basename + ".cef")
    else:
        data_filename = os.path.join(dirname, basename + ".cdt")
        param_filename = data_filename + ".dpa"
        label_filename = None
        event_filename = data_filename + ".cef"

    write_sample_stream(data_filename, data, ascii=ascii, multiplex=multiplex)

    label_text = ""
    if labels is not None or sensors is not None:
        label_text = format_label_text(labels, sensors)

    if write_parameters:
        param_text = format_parameter_text(
            nb_channel,
            nb_sample,
            nb_trial=nb_trial,
            sampling_rate=sampling_rate,
            offset_usec=offset_usec,
            ascii=ascii,
            multiplex=multiplex,
            legacy=legacy,
            **kargs,
        )
        if label_filename is None:
            param_text += label_text
        write_text(param_filename, param_text)

    if label_filename is not None and write_labels:
        write_text(label_filename, label_text)

    if events is not None:
        write_text(event_filename, format_event_text(events, remarks))

    return data_filename
