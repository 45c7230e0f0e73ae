"""
Severity-tagged notices produced while decoding a Curry recording.

A decode either fails with a :class:`CurryReadError` (fatal) or completes
with a list of advisory :class:`Notice` objects attached to the record.
Showing them to a user is up to the caller.
"""

from __future__ import annotations

import enum


class Severity(enum.Enum):
    ADVISORY = "advisory"
    FATAL = "fatal"


class Notice:
    """
    One message raised during decoding.

    Parameters
    ----------
    severity: Severity
        ADVISORY when the decode went on with a best-effort recovery,
        FATAL when no record could be produced
    message: str
        Human readable description
    """

    __slots__ = ("severity", "message")

    def __init__(self, severity: Severity, message: str):
        self.severity = Severity(severity)
        self.message = str(message)

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.FATAL

    def __eq__(self, other):
        if not isinstance(other, Notice):
            return NotImplemented
        return self.severity is other.severity and self.message == other.message

    def __hash__(self):
        return hash((self.severity, self.message))

    def __repr__(self):
        return f"Notice({self.severity.value}: {self.message})"


class CurryReadError(IOError):
    """
    Raised when a Curry recording cannot be decoded at all.

    The fatal :class:`Notice` is kept on the ``notice`` attribute.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.notice = Notice(Severity.FATAL, message)
