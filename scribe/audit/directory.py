"""Read-through cache of user display names.

The directory is loaded once, on first lookup, from a JSON snapshot holding
a list of users (`[{"id": ..., "name": ..., "email": ...}, ...]`) and kept
for the lifetime of the process. It is never refreshed automatically: a
restart (or an explicit `reset()`) is needed to see directory changes.
"""

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from scribe.observability.logging import get_logger

logger = get_logger(__name__)

UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class UserDirectoryEntry:
    """A user id with the name shown in narrative sentences."""

    id: str
    display_name: str

    @classmethod
    def from_raw(cls, raw: Any) -> "UserDirectoryEntry | None":
        """Build an entry from one snapshot item; None if it has no id."""
        if not isinstance(raw, dict) or not raw.get("id"):
            return None
        user_id = str(raw["id"])
        return cls(id=user_id, display_name=str(raw.get("name") or raw.get("email") or user_id))


class UserDirectory:
    """Maps user ids to display names, loading the snapshot at most once.

    Safe for concurrent readers: the first lookup takes a lock and loads;
    every later lookup reads the immutable mapping without locking.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._entries: dict[str, UserDirectoryEntry] | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def loaded(self) -> bool:
        return self._entries is not None

    def load(self) -> dict[str, UserDirectoryEntry]:
        """Load the snapshot if it has not been loaded yet.

        A missing or malformed snapshot yields an empty directory; lookups
        then fall back to raw ids.
        """
        entries = self._entries
        if entries is not None:
            return entries

        with self._lock:
            if self._entries is None:
                self._entries = self._read_snapshot()
            return self._entries

    def _read_snapshot(self) -> dict[str, UserDirectoryEntry]:
        if not self._path.is_file():
            logger.warning("user_directory_missing", path=str(self._path))
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("user_directory_unreadable", path=str(self._path), error=str(e))
            return {}
        if not isinstance(raw, list):
            logger.warning("user_directory_malformed", path=str(self._path))
            return {}

        entries: dict[str, UserDirectoryEntry] = {}
        for item in raw:
            entry = UserDirectoryEntry.from_raw(item)
            if entry is not None:
                entries[entry.id] = entry
        logger.info("user_directory_loaded", path=str(self._path), users=len(entries))
        return entries

    def display_name(self, user_id: Any) -> str:
        """Display name for `user_id`.

        Returns the directory name if known, else the id as a string, else
        UNAUTHENTICATED when no id is given.
        """
        if user_id is None or user_id == "":
            return UNAUTHENTICATED
        entry = self.load().get(str(user_id))
        return entry.display_name if entry is not None else str(user_id)

    def reset(self) -> None:
        """Forget the loaded snapshot; the next lookup reloads it."""
        with self._lock:
            self._entries = None


# Process-wide directory used by the audit middleware
_user_directory: UserDirectory | None = None


def get_user_directory(path: Path | str | None = None) -> UserDirectory:
    """Get the process-wide user directory, creating it on first use.

    Args:
        path: Snapshot location used only when the directory is created
    """
    global _user_directory
    if _user_directory is None:
        _user_directory = UserDirectory(path or Path("data/users.json"))
    return _user_directory


def set_user_directory(directory: UserDirectory) -> None:
    """Install a specific directory as the process-wide one."""
    global _user_directory
    _user_directory = directory


def reset_user_directory() -> None:
    """Drop the process-wide directory.

    Useful for testing to ensure fresh state between tests.
    """
    global _user_directory
    _user_directory = None
