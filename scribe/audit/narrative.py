"""Human-readable rendering of audit records for the narrative file."""

import json
from typing import Any

from scribe.audit.directory import UNAUTHENTICATED
from scribe.audit.models.record import AuditRecord
from scribe.audit.redaction import redact

BLOCK_START = "--- SYSTEM ACTION ---"
BLOCK_END = "--- END OF ACTION ---"
MAIN_HEADERS = ("content-type", "authorization", "accept")


def _pretty(value: Any) -> str:
    try:
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def format_narrative_block(record: AuditRecord, sentence: str | None = None) -> str:
    """Render one narrative block, optionally preceded by its sentence.

    The block ends with the end marker followed by a blank line, so
    consecutive blocks stay visually separated in the file.
    """
    lines = [
        BLOCK_START,
        f"Time: {record.timestamp.isoformat()}",
        f"Action: {record.method} {record.url}",
        f"User: {record.user_id or UNAUTHENTICATED}",
        f"IP: {record.ip or 'unknown'}",
        f"Client: {record.user_agent or 'unknown'}",
        f"Processing time: {record.duration_ms} ms",
        f"HTTP status: {record.status_code}",
    ]
    if record.query:
        lines.append("Query parameters:")
        lines.append(_pretty(record.query))
    if record.body:
        lines.append("Request body:")
        lines.append(_pretty(record.body))
    lines.append("Server response:")
    lines.append(_pretty(record.response_body))
    lines.append("Main headers:")
    lines.append(_pretty(redact({name: record.headers.get(name) for name in MAIN_HEADERS})))
    lines.append(BLOCK_END)

    block = "\n".join(lines) + "\n\n"
    if sentence:
        return f"{sentence}\n\n{block}"
    return block
