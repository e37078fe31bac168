"""FastAPI application factory.

Creates an application with the action audit middleware installed. Host
applications can either build on `create_app()` or call
`install_audit(app, settings)` on their own FastAPI instance.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scribe.api.routes import register_routes
from scribe.audit.directory import UserDirectory
from scribe.audit.middleware import ActionAuditMiddleware
from scribe.audit.writer import AuditSink
from scribe.config import get_settings
from scribe.config.settings import Settings
from scribe.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


def install_audit(
    app: FastAPI,
    settings: Settings,
    directory: UserDirectory | None = None,
) -> AuditSink:
    """Add ActionAuditMiddleware to `app` and expose its sink on app.state.

    The sink is created here rather than inside the middleware so the
    lifespan (and tests) can flush and close it.
    """
    sink = AuditSink.from_config(settings.audit)
    app.add_middleware(
        ActionAuditMiddleware,
        config=settings.audit,
        sink=sink,
        directory=directory,
    )
    app.state.audit_sink = sink
    app.state.audit_enabled = settings.audit.enabled
    app.state.audit_queue_size = settings.audit.queue_size
    return sink


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Drain pending audit writes on shutdown."""
    yield
    sink: AuditSink | None = getattr(app.state, "audit_sink", None)
    if sink is not None:
        await sink.aclose()
        logger.info("audit_sink_closed")


def create_app(
    settings: Settings | None = None,
    directory: UserDirectory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from config files when omitted
        directory: User directory for narration; process-wide when omitted
    """
    settings = settings or get_settings()
    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_pii=log_config.redact_pii,
    )

    app = FastAPI(
        title="Scribe",
        description="HTTP action audit trail",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    install_audit(app, settings, directory)
    register_routes(app, settings.observability.metrics)

    logger.info(
        "app_created",
        audit_enabled=settings.audit.enabled,
        audit_log=str(settings.audit.log_path),
        max_bytes=settings.audit.max_bytes,
    )
    return app
