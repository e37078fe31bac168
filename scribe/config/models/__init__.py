"""Configuration model exports.

    from scribe.config.models import AuditConfig, ObservabilityConfig
"""

from scribe.config.models.audit import AuditConfig
from scribe.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)

__all__ = [
    "AuditConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
]
