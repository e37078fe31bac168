"""ASGI middleware that writes the HTTP action audit trail.

For every completed HTTP request the middleware writes one JSON record to
the structured log and one human-readable block (with its narrated
sentence, when there is one) to the narrative log.

The audit trail is a side channel. Capture only copies bytes that are
already on their way to the client, persistence is queued after the
response is complete, and every audit-side failure is logged and
swallowed. Status codes, headers, bodies and exceptions raised by the
wrapped application are never altered.

Usage:
    app.add_middleware(ActionAuditMiddleware, config=settings.audit)
"""

import asyncio

from starlette.types import ASGIApp, Receive, Scope, Send

from scribe.audit.assembly import build_audit_record
from scribe.audit.capture import RequestBodyCapture, ResponseCapture
from scribe.audit.directory import UserDirectory, get_user_directory
from scribe.audit.narrative import format_narrative_block
from scribe.audit.narrator import narrate
from scribe.audit.writer import AuditSink
from scribe.config.models.audit import AuditConfig
from scribe.observability.logging import get_logger
from scribe.observability.metrics import AUDIT_RECORDS, method_label, status_class

logger = get_logger(__name__)


class ActionAuditMiddleware:
    """Captures each request/response pair and hands it to the audit sink.

    Only `http` scopes are audited; websocket and lifespan traffic passes
    straight through, as does everything when auditing is disabled.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: AuditConfig | None = None,
        sink: AuditSink | None = None,
        directory: UserDirectory | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: ASGI application
            config: Audit configuration (defaults apply when omitted)
            sink: Background writers; built from `config` when omitted
            directory: User directory; the process-wide one when omitted
        """
        self.app = app
        self.config = config or AuditConfig()
        self._sink = sink
        self._directory = directory
        self._exclude_paths = frozenset(self.config.exclude_paths)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def sink(self) -> AuditSink:
        if self._sink is None:
            self._sink = AuditSink.from_config(self.config)
        return self._sink

    @property
    def directory(self) -> UserDirectory:
        if self._directory is None:
            self._directory = get_user_directory(self.config.users_file)
        return self._directory

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or not self.enabled
            or scope.get("path") in self._exclude_paths
        ):
            await self.app(scope, receive, send)
            return

        request_capture = RequestBodyCapture(receive)
        response_capture = ResponseCapture(send)

        try:
            await self.app(scope, request_capture, response_capture)
        except BaseException as e:
            # the outer error middleware will answer with a 500
            if isinstance(e, Exception) and response_capture.status_code is None:
                response_capture.fail(500)
            await self._finish(scope, request_capture, response_capture)
            raise

        await self._finish(scope, request_capture, response_capture)

    async def _finish(
        self,
        scope: Scope,
        request_capture: RequestBodyCapture,
        response_capture: ResponseCapture,
    ) -> None:
        if not response_capture.completed:
            logger.debug(
                "audit_skipped_incomplete_response",
                method=scope.get("method"),
                path=scope.get("path"),
            )
            return

        if self.config.narrative_enabled and not self.directory.loaded:
            try:
                await asyncio.to_thread(self.directory.load)
            except Exception as e:
                logger.error("user_directory_load_failed", error=str(e))

        self._record(scope, request_capture, response_capture)

    def _record(
        self,
        scope: Scope,
        request_capture: RequestBodyCapture,
        response_capture: ResponseCapture,
    ) -> None:
        """Assemble the record and queue it; never raises."""
        try:
            record = build_audit_record(
                scope,
                request_capture.body,
                response_capture,
                user_id_header=self.config.user_id_header,
                drop_headers=self.config.drop_headers,
            )
            AUDIT_RECORDS.labels(
                method=method_label(record.method),
                status_class=status_class(record.status_code),
            ).inc()

            narrative_text = None
            if self.config.narrative_enabled:
                sentence = narrate(record, self.directory)
                narrative_text = format_narrative_block(record, sentence)

            self.sink.submit(record.to_json_line(), narrative_text)
        except Exception as e:
            logger.error(
                "audit_record_failed",
                method=scope.get("method"),
                path=scope.get("path"),
                error=str(e),
                error_type=type(e).__name__,
            )

    async def flush(self) -> None:
        """Wait for every queued audit entry to reach disk."""
        if self._sink is not None:
            await self._sink.flush()

    async def aclose(self) -> None:
        """Drain and stop the background writers."""
        if self._sink is not None:
            await self._sink.aclose()
