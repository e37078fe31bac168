"""TOML configuration loader.

Reads config/default.toml and the optional config/{SCRIBE_ENV}.toml overlay.
Scribe is usually embedded in a host application, so a missing config
directory is not fatal: model defaults and SCRIBE_* env vars still apply.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from scribe.observability.logging import get_logger

logger = get_logger(__name__)

CONFIG_DIR_ENV = "SCRIBE_CONFIG_DIR"
ENVIRONMENT_ENV = "SCRIBE_ENV"
SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Locate the configuration directory.

    SCRIBE_CONFIG_DIR wins when set and must exist. Otherwise the nearest
    `config/` directory at or above the working directory is used.

    Raises:
        FileNotFoundError: If SCRIBE_CONFIG_DIR points to a missing directory
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        path = Path(override)
        if not path.is_dir():
            raise FileNotFoundError(f"Config directory not found: {override}")
        return path

    current = Path.cwd()
    for candidate in [current, *current.parents][:SEARCH_DEPTH]:
        if (candidate / "config").is_dir():
            return candidate / "config"
    return Path("config")


def get_environment() -> str:
    """Current environment name from SCRIBE_ENV (default: development)."""
    return os.environ.get(ENVIRONMENT_ENV, "development")


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    if not file_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge `override` into a copy of `base`, recursing into nested tables."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config() -> dict[str, Any]:
    """Load default.toml overlaid with {SCRIBE_ENV}.toml.

    Either file may be absent; an empty dict means "use model defaults".
    """
    config_dir = get_config_dir()
    env = get_environment()
    config: dict[str, Any] = {}

    for file_path in (config_dir / "default.toml", config_dir / f"{env}.toml"):
        if not file_path.is_file():
            logger.debug("config_file_missing", path=str(file_path))
            continue
        config = deep_merge(config, load_toml(file_path))

    return config
