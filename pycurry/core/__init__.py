"""
:mod:`pycurry.core` provides the in-memory objects handed back to callers
of :mod:`pycurry.rawio` and :mod:`pycurry.io`.

Classes:

.. autoclass:: CurryRecord
.. autoclass:: Notice
.. autoclass:: Severity
.. autoclass:: CurryReadError

"""

from pycurry.core.notices import Severity, Notice, CurryReadError
from pycurry.core.record import CurryRecord

__all__ = ["Severity", "Notice", "CurryReadError", "CurryRecord"]
