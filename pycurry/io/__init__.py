"""
:mod:`pycurry.io` provides the programmatic front end for reading Curry
recordings.

:attr:`pycurry.io.iolist` provides a list of successfully imported io classes.

Functions:

.. autofunction:: pycurry.io.read_curry


Classes:

* :attr:`CurryIO`

.. autoclass:: pycurry.io.CurryIO

    .. autoattribute:: extensions

"""

from pycurry.io.curryio import CurryIO, read_curry

iolist = [
    CurryIO,
]

__all__ = ["CurryIO", "read_curry", "iolist"]
