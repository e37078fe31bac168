"""Audit error hierarchy.

None of these ever reach the HTTP response path: the middleware and the
background writers catch them, log them and carry on.
"""


class AuditError(Exception):
    """Base exception for the action audit subsystem."""


class CaptureError(AuditError):
    """Raised when a captured response body is read twice or too early."""


class AuditWriteError(AuditError):
    """Raised when an entry cannot be appended to an audit file."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path