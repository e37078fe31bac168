"""Size-bounded, append-only audit file writer."""

import os
import threading
import time
from pathlib import Path

from scribe.audit.exceptions import AuditWriteError
from scribe.observability.logging import get_logger
from scribe.observability.metrics import (
    AUDIT_APPEND_LATENCY,
    AUDIT_ENTRIES_WRITTEN,
    AUDIT_ROTATIONS,
)

logger = get_logger(__name__)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class RotatingAppender:
    """Appends text to one file, rotating it once it grows past a threshold.

    Before every append the file size is checked. A file at or above
    `max_bytes` is renamed to `<path>.<epoch-millis>` and the append lands
    in a fresh file at the original path. The rotated file is kept intact
    and never pruned.

    Rotation problems are logged and skipped: the entry is then appended to
    the existing, oversized file. A `max_bytes` of zero or less disables
    rotation altogether.

    Appends from one instance are serialized by a lock, so entries reach the
    file in the order they were issued. Each append opens the file, writes
    the whole entry, flushes and closes, which keeps concurrent writers on
    the same path from interleaving inside an entry.
    """

    def __init__(self, path: Path | str, max_bytes: int = 0) -> None:
        """Initialize the appender.

        Args:
            path: Target file; its parent directory is created on first append
            max_bytes: Rotation threshold in bytes (<= 0 disables rotation)
        """
        self._path = Path(path)
        self._max_bytes = max_bytes
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def rotation_enabled(self) -> bool:
        return self._max_bytes > 0

    def append(self, text: str) -> None:
        """Append `text` to the file, rotating first if needed.

        Raises:
            AuditWriteError: If the entry could not be written
        """
        start = time.perf_counter()
        with self._lock:
            self._rotate_if_needed()
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(text)
                    f.flush()
            except OSError as e:
                raise AuditWriteError(
                    f"Failed to append to {self._path}: {e}", path=str(self._path)
                ) from e

        AUDIT_ENTRIES_WRITTEN.labels(file=self._path.name).inc()
        AUDIT_APPEND_LATENCY.labels(file=self._path.name).observe(
            time.perf_counter() - start
        )

    def _rotate_if_needed(self) -> Path | None:
        """Rotate the file when it has reached the threshold.

        Returns:
            The rotated file path, or None when no rotation happened
        """
        if not self.rotation_enabled:
            return None

        try:
            size = self._path.stat().st_size
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("audit_rotation_failed", path=str(self._path), error=str(e))
            AUDIT_ROTATIONS.labels(file=self._path.name, outcome="failed").inc()
            return None

        if size < self._max_bytes:
            return None

        target = self._rotation_target()
        try:
            os.rename(self._path, target)
        except FileNotFoundError:
            # another process rotated it between stat() and rename()
            return None
        except OSError as e:
            logger.error(
                "audit_rotation_failed",
                path=str(self._path),
                target=str(target),
                error=str(e),
            )
            AUDIT_ROTATIONS.labels(file=self._path.name, outcome="failed").inc()
            return None

        logger.info(
            "audit_file_rotated",
            path=str(self._path),
            rotated_to=str(target),
            size_bytes=size,
        )
        AUDIT_ROTATIONS.labels(file=self._path.name, outcome="rotated").inc()
        return target

    def _rotation_target(self) -> Path:
        """Next free `<path>.<epoch-millis>` name; never an existing file."""
        millis = _epoch_millis()
        target = self._path.with_name(f"{self._path.name}.{millis}")
        while target.exists():
            millis += 1
            target = self._path.with_name(f"{self._path.name}.{millis}")
        return target
