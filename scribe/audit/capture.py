"""Per-request capture of ASGI traffic.

ResponseCapture decorates the ASGI `send` callable and RequestBodyCapture
decorates `receive`. Both forward every message unmodified and keep a
private copy of the body bytes for the audit record. Nothing here can fail
the request: a chunk that cannot be buffered only marks the captured body
as unavailable.
"""

import time

from starlette.types import Message, Receive, Send

from scribe.audit.exceptions import CaptureError


class ResponseCapture:
    """Wraps `send`, copying response body chunks as they go out.

    Handles any number of partial `http.response.body` messages
    (`more_body=True`) followed by a final one, which may itself carry data.
    An `http.response.pathsend` message (zero-copy file response) completes
    the response with its body unavailable.
    Duration is measured on the monotonic clock from construction (request
    arrival) to the final body message.
    """

    def __init__(self, send: Send) -> None:
        self._send = send
        self._chunks: list[bytes] = []
        self._available = True
        self._taken = False
        self._status_code: int | None = None
        self._started_at = time.monotonic()
        self._completed_at: float | None = None

    async def __call__(self, message: Message) -> None:
        message_type = message.get("type")
        if message_type == "http.response.start":
            self._status_code = message.get("status")
        elif message_type == "http.response.body":
            self._buffer(message)
        elif message_type == "http.response.pathsend":
            # the server streams the file itself; its bytes never pass through
            self._discard_body()
            self._completed_at = time.monotonic()
        await self._send(message)

    def _buffer(self, message: Message) -> None:
        try:
            chunk = message.get("body", b"")
            if chunk and self._available:
                self._chunks.append(bytes(chunk))
        except Exception:
            self._discard_body()
        if not message.get("more_body", False):
            self._completed_at = time.monotonic()

    def _discard_body(self) -> None:
        self._available = False
        self._chunks.clear()

    def fail(self, status_code: int = 500) -> None:
        """Complete a response the application raised before starting.

        The server answers such a request with an error page this capture
        never sees, so the status is synthesized and the body is unavailable.

        Raises:
            CaptureError: If the response had already started
        """
        if self._status_code is not None:
            raise CaptureError("Response already started")
        self._status_code = status_code
        self._discard_body()
        self._completed_at = time.monotonic()

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def completed(self) -> bool:
        return self._completed_at is not None

    @property
    def duration_ms(self) -> int:
        """Milliseconds between request arrival and response completion."""
        end = self._completed_at if self._completed_at is not None else time.monotonic()
        return int(round((end - self._started_at) * 1000))

    def take_body(self) -> bytes | None:
        """Materialize the full response body, once.

        Returns:
            The concatenated body, or None if any chunk could not be buffered

        Raises:
            CaptureError: If called before completion or more than once
        """
        if not self.completed:
            raise CaptureError("Response has not completed")
        if self._taken:
            raise CaptureError("Response body was already taken")
        self._taken = True

        chunks, self._chunks = self._chunks, []
        if not self._available:
            return None
        try:
            return b"".join(chunks)
        except Exception:
            return None


class RequestBodyCapture:
    """Wraps `receive`, copying `http.request` body chunks."""

    def __init__(self, receive: Receive) -> None:
        self._receive = receive
        self._chunks: list[bytes] = []
        self._available = True

    async def __call__(self) -> Message:
        message = await self._receive()
        if message.get("type") == "http.request":
            try:
                chunk = message.get("body", b"")
                if chunk and self._available:
                    self._chunks.append(bytes(chunk))
            except Exception:
                self._available = False
                self._chunks.clear()
        return message

    @property
    def body(self) -> bytes | None:
        """Bytes read by the handler so far (None if buffering failed)."""
        if not self._available:
            return None
        return b"".join(self._chunks)
