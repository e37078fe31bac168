"""Action audit configuration models."""

from pathlib import Path

from pydantic import BaseModel, Field

BYTES_PER_MB = 1024 * 1024


class AuditConfig(BaseModel):
    """Configuration for the HTTP action audit trail.

    `enabled` switches the whole subsystem off: no capture, no files.
    `max_file_mb` bounds each log file before it is rotated; zero or a
    negative value disables rotation.
    """

    enabled: bool = Field(default=True, description="Enable action auditing")
    log_dir: Path = Field(default=Path("logs"), description="Directory for audit files")
    log_file: str = Field(
        default="actions.log",
        description="Structured log file name (one JSON record per line)",
    )
    narrative_file: str = Field(
        default="actions.txt",
        description="Human-readable narrative file name",
    )
    narrative_enabled: bool = Field(
        default=True,
        description="Write the human-readable narrative file",
    )
    max_file_mb: float = Field(
        default=50,
        description="Rotate a log file once it reaches this size (MB)",
    )
    queue_size: int = Field(
        default=1000,
        gt=0,
        description="Pending writes buffered per file before entries are dropped",
    )
    users_file: Path = Field(
        default=Path("data/users.json"),
        description="User directory snapshot used to resolve display names",
    )
    user_id_header: str = Field(
        default="X-User-ID",
        description="Header carrying the authenticated user id",
    )
    drop_headers: list[str] = Field(
        default_factory=lambda: ["cookie"],
        description="Request headers never written to the audit trail",
    )
    exclude_paths: list[str] = Field(
        default_factory=list,
        description="Paths that are not audited",
    )

    @property
    def max_bytes(self) -> int:
        """Rotation threshold in bytes (0 disables rotation)."""
        return int(max(0.0, self.max_file_mb) * BYTES_PER_MB)

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.log_file

    @property
    def narrative_path(self) -> Path:
        return self.log_dir / self.narrative_file
