"""AuditRecord model for the action audit trail."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UNAVAILABLE = "<<unavailable>>"


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class AuditRecord(BaseModel):
    """One completed HTTP request/response cycle.

    Immutable once built. `body`, `query`, `headers` and `response_body`
    are stored already redacted; the model itself never sees raw secrets.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now, description="Completion time (UTC)")
    method: str = Field(..., description="HTTP method")
    url: str = Field(..., description="Path plus query string, sensitive values masked")
    query: dict[str, Any] = Field(default_factory=dict, description="Query parameters")
    body: Any = Field(default_factory=dict, description="Parsed request body")
    headers: dict[str, Any] = Field(default_factory=dict, description="Request headers")
    user_id: str | None = Field(default=None, description="Authenticated user id")
    ip: str | None = Field(default=None, description="Client address")
    user_agent: str | None = Field(default=None, description="User-Agent header")
    status_code: int = Field(..., description="Response status code")
    duration_ms: int = Field(..., ge=0, description="Arrival to completion, in ms")
    response_body: Any = Field(
        default=UNAVAILABLE,
        description="Parsed JSON, raw text, or the unavailable sentinel",
    )

    def to_json_line(self) -> str:
        """Serialize as one newline-terminated JSON line."""
        return self.model_dump_json() + "\n"
