"""
:mod:`pycurry.rawio` provides classes for reading
Curry recordings with a low-level API

:attr:`pycurry.rawio.rawiolist` provides a list of successfully imported rawio
classes.

Functions:

.. autofunction:: pycurry.rawio.get_rawio


Classes:

* :attr:`CurryRawIO`


.. autoclass:: pycurry.rawio.CurryRawIO

    .. autoattribute:: extensions

"""

from pathlib import Path
from collections import Counter

from pycurry.rawio.curryrawio import CurryRawIO

rawiolist = [
    CurryRawIO,
]


def get_rawio(filename_or_dirname, exclusive_rawio: bool = True):
    """
    Return a pycurry.rawio class guess from file extension.

    Parameters
    ----------
    filename_or_dirname : str | Path
        The filename or directory name to check for file suffixes that
        can be read by pycurry.
    exclusive_rawio: bool, default: True
        Whether to return a rawio if there is only one rawio capable of
        reading the file. If this doesn't exist will return None.
        If set to False it will return all possible rawios organized
        by the most likely rawio.

    Returns
    -------
    possibles: RawIO | None | list[RawIO]
    """
    filename_or_dirname = Path(filename_or_dirname)

    if not filename_or_dirname.exists() or filename_or_dirname.is_file():
        ext = Path(filename_or_dirname).suffix
        ext_list = [ext[1:]]
    else:
        ext_list = list({filename.suffix[1:] for filename in filename_or_dirname.glob("*") if filename.is_file()})

    possibles = []
    for ext in ext_list:
        for rawio in rawiolist:
            if any(ext.lower() == ext2.lower() for ext2 in rawio.extensions):
                possibles.append(rawio)

    if len(possibles) == 1 and exclusive_rawio:
        return possibles[0]
    elif exclusive_rawio:
        return None
    else:
        possibles = [io[0] for io in Counter(possibles).most_common()]
        return possibles
