"""Scribe: HTTP action audit trail for ASGI applications."""

__version__ = "1.0.0"
