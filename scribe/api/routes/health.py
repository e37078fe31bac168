"""Health check and metrics endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from scribe.api.models import AuditFileStatus, HealthResponse
from scribe.audit.writer import AuditSink, BackgroundAppender
from scribe.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Queues this full are reported as degraded
DEGRADED_QUEUE_RATIO = 0.9


def _file_status(writer: BackgroundAppender) -> AuditFileStatus:
    return AuditFileStatus(
        path=str(writer.appender.path),
        pending=writer.pending,
        rotation_threshold_bytes=writer.appender.max_bytes,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report service health and the state of the audit writers."""
    sink: AuditSink | None = getattr(request.app.state, "audit_sink", None)
    enabled = bool(getattr(request.app.state, "audit_enabled", False))

    files: list[AuditFileStatus] = []
    if sink is not None:
        files.append(_file_status(sink.records))
        if sink.narrative is not None:
            files.append(_file_status(sink.narrative))

    queue_size = getattr(request.app.state, "audit_queue_size", 0)
    degraded = queue_size > 0 and any(
        f.pending >= queue_size * DEGRADED_QUEUE_RATIO for f in files
    )

    logger.debug("health_check_completed", degraded=degraded)
    return HealthResponse(
        status="degraded" if degraded else "healthy",
        audit_enabled=enabled,
        files=files,
        timestamp=datetime.now(UTC),
    )


async def get_metrics() -> Response:
    """Prometheus metrics in text format for scraping."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
