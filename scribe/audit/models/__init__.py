"""Audit domain models."""

from scribe.audit.models.record import UNAVAILABLE, AuditRecord

__all__ = [
    "AuditRecord",
    "UNAVAILABLE",
]
