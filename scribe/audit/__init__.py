"""HTTP action audit trail.

Records every request/response pair as one redacted JSON line, plus a
human-readable narrative block, in size-rotated append-only files.

The middleware lives in scribe.audit.middleware; this package only
re-exports the dependency-free pieces.
"""

from scribe.audit.exceptions import AuditError, AuditWriteError, CaptureError
from scribe.audit.models import UNAVAILABLE, AuditRecord
from scribe.audit.redaction import REDACTED, UNSERIALIZABLE, is_sensitive_key, redact

__all__ = [
    "AuditError",
    "AuditRecord",
    "AuditWriteError",
    "CaptureError",
    "REDACTED",
    "UNAVAILABLE",
    "UNSERIALIZABLE",
    "is_sensitive_key",
    "redact",
]
