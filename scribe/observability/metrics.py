"""Prometheus metrics for the action audit trail.

Every label takes values from a fixed set (audit file names, status
classes, standard HTTP methods, drop reasons) so cardinality stays bounded
no matter what clients send.
"""

from prometheus_client import Counter, Histogram

STANDARD_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})

AUDIT_RECORDS = Counter(
    "scribe_audit_records_total",
    "Audit records assembled from completed requests",
    labelnames=["method", "status_class"],
)

AUDIT_ENTRIES_WRITTEN = Counter(
    "scribe_audit_entries_written_total",
    "Entries appended to an audit file",
    labelnames=["file"],
)

AUDIT_ENTRIES_DROPPED = Counter(
    "scribe_audit_entries_dropped_total",
    "Entries dropped before reaching an audit file",
    labelnames=["file", "reason"],
)

AUDIT_ROTATIONS = Counter(
    "scribe_audit_rotations_total",
    "Audit file rotations",
    labelnames=["file", "outcome"],
)

AUDIT_NARRATION_FAILURES = Counter(
    "scribe_audit_narration_failures_total",
    "Records for which the narrator raised",
)

AUDIT_APPEND_LATENCY = Histogram(
    "scribe_audit_append_latency_seconds",
    "Time spent appending one entry to an audit file",
    labelnames=["file"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0),
)


def status_class(status_code: int) -> str:
    """Collapse an HTTP status code into its class label ("2xx", "5xx")."""
    return f"{status_code // 100}xx"


def method_label(method: str) -> str:
    """HTTP method as a label value; anything non-standard becomes "OTHER"."""
    upper = method.upper()
    return upper if upper in STANDARD_METHODS else "OTHER"
