"""API response models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class AuditFileStatus(BaseModel):
    """State of one audit file writer."""

    path: str = Field(..., description="Audit file path")
    pending: int = Field(..., ge=0, description="Entries queued but not yet written")
    rotation_threshold_bytes: int = Field(..., description="0 when rotation is disabled")


class HealthResponse(BaseModel):
    """Service health with audit trail status."""

    status: Literal["healthy", "degraded"] = Field(..., description="Overall status")
    audit_enabled: bool = Field(..., description="Whether requests are audited")
    files: list[AuditFileStatus] = Field(default_factory=list)
    timestamp: datetime = Field(..., description="Check time")
