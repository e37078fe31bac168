"""Fire-and-forget audit persistence.

Each audit file gets a bounded asyncio queue drained by a single worker
task. Requests only ever enqueue; the blocking file I/O runs in a worker
thread after the response has been sent. Tests (and shutdown) await
`flush()` instead of sleeping.
"""

import asyncio

from scribe.audit.appender import RotatingAppender
from scribe.config.models.audit import AuditConfig
from scribe.observability.logging import get_logger
from scribe.observability.metrics import AUDIT_ENTRIES_DROPPED

logger = get_logger(__name__)


class BackgroundAppender:
    """Queues entries for one RotatingAppender and writes them in order.

    The worker is started lazily on the running event loop. If the loop
    changes (a new test loop, a restarted server) a fresh queue and worker
    are created; entries still pending on the old loop are lost, which is
    within the best-effort contract.
    """

    def __init__(self, appender: RotatingAppender, maxsize: int = 1000) -> None:
        """Initialize the background appender.

        Args:
            appender: Synchronous appender doing the actual writes
            maxsize: Pending entries allowed before new ones are dropped
        """
        self._appender = appender
        self._maxsize = maxsize
        self._queue: asyncio.Queue[str] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def appender(self) -> RotatingAppender:
        return self._appender

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def submit(self, text: str) -> bool:
        """Enqueue an entry without blocking.

        Must be called from a running event loop.

        Returns:
            True if queued, False if dropped because the queue is full
        """
        queue = self._ensure_worker()
        try:
            queue.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning(
                "audit_queue_full",
                path=str(self._appender.path),
                maxsize=self._maxsize,
            )
            AUDIT_ENTRIES_DROPPED.labels(
                file=self._appender.path.name, reason="queue_full"
            ).inc()
            return False
        return True

    async def flush(self) -> None:
        """Wait until every entry queued on the current loop is written."""
        if self._queue is None or self._loop is not asyncio.get_running_loop():
            return
        await self._queue.join()

    async def aclose(self) -> None:
        """Drain pending entries, then stop the worker."""
        await self.flush()
        worker, self._worker = self._worker, None
        if worker is None or worker.done():
            return
        if self._loop is not asyncio.get_running_loop():
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass

    def _ensure_worker(self) -> "asyncio.Queue[str]":
        loop = asyncio.get_running_loop()
        if self._queue is None or self._loop is not loop:
            if self._queue is not None and not self._queue.empty():
                logger.warning(
                    "audit_entries_abandoned",
                    path=str(self._appender.path),
                    count=self._queue.qsize(),
                )
            self._queue = asyncio.Queue(maxsize=self._maxsize)
            self._loop = loop
            self._worker = None
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(self._queue))
        return self._queue

    async def _drain(self, queue: "asyncio.Queue[str]") -> None:
        while True:
            text = await queue.get()
            try:
                await asyncio.to_thread(self._appender.append, text)
            except Exception as e:
                logger.error(
                    "audit_append_failed",
                    path=str(self._appender.path),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                AUDIT_ENTRIES_DROPPED.labels(
                    file=self._appender.path.name, reason="write_failed"
                ).inc()
            finally:
                queue.task_done()


class AuditSink:
    """The pair of background appenders behind the audit middleware.

    `records` receives one JSON line per request; `narrative` (optional)
    receives the human-readable block.
    """

    def __init__(
        self,
        records: BackgroundAppender,
        narrative: BackgroundAppender | None = None,
    ) -> None:
        self.records = records
        self.narrative = narrative

    @classmethod
    def from_config(cls, config: AuditConfig) -> "AuditSink":
        """Build both appenders from audit configuration."""
        records = BackgroundAppender(
            RotatingAppender(config.log_path, config.max_bytes),
            maxsize=config.queue_size,
        )
        narrative = None
        if config.narrative_enabled:
            narrative = BackgroundAppender(
                RotatingAppender(config.narrative_path, config.max_bytes),
                maxsize=config.queue_size,
            )
        return cls(records, narrative)

    def submit(self, record_line: str, narrative_text: str | None = None) -> None:
        """Queue one structured line and, if given, one narrative block."""
        self.records.submit(record_line)
        if self.narrative is not None and narrative_text is not None:
            self.narrative.submit(narrative_text)

    async def flush(self) -> None:
        await self.records.flush()
        if self.narrative is not None:
            await self.narrative.flush()

    async def aclose(self) -> None:
        await self.records.aclose()
        if self.narrative is not None:
            await self.narrative.aclose()
