"""API route registration."""

from fastapi import FastAPI

from scribe.api.routes.health import get_metrics
from scribe.api.routes.health import router as health_router
from scribe.config.models.observability import MetricsConfig


def register_routes(app: FastAPI, metrics: MetricsConfig | None = None) -> None:
    """Register the health route and, when enabled, the metrics route."""
    metrics = metrics or MetricsConfig()
    app.include_router(health_router, tags=["Health"])
    if metrics.enabled:
        app.add_api_route(metrics.path, get_metrics, methods=["GET"], tags=["Health"])


__all__ = ["register_routes"]
