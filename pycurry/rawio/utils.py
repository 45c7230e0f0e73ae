import os


def get_file_size(filename):
    with open(filename, mode="rb") as f:
        f.seek(0, 2)
        flen = f.tell()
    return flen


def read_text_file(filename):
    """
    Read a whole Curry text companion file (parameters, labels, events).

    Line endings are normalized to "\\n". Curry writes these files in a
    Windows code page, so bytes are decoded as latin-1 and never fail.
    """
    with open(filename, mode="rt", encoding="latin-1", newline=None) as f:
        text = f.read()
    return text


def read_first_existing(filenames):
    """
    Return (filename, text) for the first file of `filenames` that can be opened,
    or (None, None) if none of them can.

    Each file is fully read and closed before the next one is tried.
    """
    for filename in filenames:
        if filename is None or not os.path.isfile(filename):
            continue
        try:
            text = read_text_file(filename)
        except OSError:
            continue
        return filename, text
    return None, None
