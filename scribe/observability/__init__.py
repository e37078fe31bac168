"""Observability: structured operator logging and Prometheus metrics.

Operator logs go through structlog; the audit trail itself is written by
scribe.audit and never through this channel.
"""
