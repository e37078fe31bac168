"""Shared test fixtures for the Scribe test suite."""

import json
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from scribe.audit.directory import UserDirectory, reset_user_directory
from scribe.config.models.audit import AuditConfig


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache and loaded TOML before and after each test."""
    from scribe.config import get_settings
    from scribe.config.settings import set_toml_config

    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})


@pytest.fixture(autouse=True)
def isolated_user_directory() -> Generator[None, None, None]:
    """Drop the process-wide user directory between tests."""
    reset_user_directory()
    yield
    reset_user_directory()


@pytest.fixture
def write_users(tmp_path: Path) -> Callable[[list[dict[str, Any]]], Path]:
    """Factory fixture writing a users.json snapshot.

    Usage:
        def test_something(write_users):
            path = write_users([{"id": "7", "name": "Ana Souza"}])
    """

    def _write(users: list[dict[str, Any]]) -> Path:
        path = tmp_path / "users.json"
        path.write_text(json.dumps(users), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def users_file(write_users: Callable[[list[dict[str, Any]]], Path]) -> Path:
    return write_users(
        [
            {"id": "7", "name": "Ana Souza", "email": "ana@example.com"},
            {"id": "8", "email": "bruno@example.com"},
            {"id": "9"},
        ]
    )


@pytest.fixture
def directory(users_file: Path) -> UserDirectory:
    return UserDirectory(users_file)


@pytest.fixture
def audit_config(tmp_path: Path, users_file: Path) -> AuditConfig:
    """Audit configuration writing under tmp_path."""
    return AuditConfig(log_dir=tmp_path / "logs", users_file=users_file)
