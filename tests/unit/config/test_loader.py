"""Unit tests for TOML configuration loader."""

import tomllib
from pathlib import Path

import pytest

from scribe.config.loader import (
    deep_merge,
    get_config_dir,
    get_environment,
    load_config,
    load_toml,
)


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_nested_tables_merge_recursively(self) -> None:
        base = {"audit": {"enabled": True, "max_file_mb": 50}, "debug": False}
        override = {"audit": {"max_file_mb": 5}}

        result = deep_merge(base, override)

        assert result == {"audit": {"enabled": True, "max_file_mb": 5}, "debug": False}

    def test_scalar_override_replaces_table(self) -> None:
        assert deep_merge({"audit": {"enabled": True}}, {"audit": "off"}) == {"audit": "off"}

    def test_base_is_not_mutated(self) -> None:
        base = {"audit": {"enabled": True}}
        deep_merge(base, {"audit": {"enabled": False}})
        assert base == {"audit": {"enabled": True}}


class TestLoadToml:
    """Tests for load_toml function."""

    def test_load_valid_toml(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "test.toml"
        toml_file.write_text('[audit]\nlog_dir = "var/audit"\nqueue_size = 10')

        assert load_toml(toml_file) == {"audit": {"log_dir": "var/audit", "queue_size": 10}}

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_toml(tmp_path / "nonexistent.toml")

    def test_invalid_toml_raises(self, tmp_path: Path) -> None:
        invalid_file = tmp_path / "invalid.toml"
        invalid_file.write_text("invalid = [unclosed")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml(invalid_file)


class TestGetEnvironment:
    """Tests for get_environment function."""

    def test_returns_env_var_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SCRIBE_ENV", "production")
        assert get_environment() == "production"

    def test_defaults_to_development(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SCRIBE_ENV", raising=False)
        assert get_environment() == "development"


class TestGetConfigDir:
    """Tests for get_config_dir function."""

    def test_uses_env_var_when_set(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_dir = tmp_path / "custom_config"
        config_dir.mkdir()
        monkeypatch.setenv("SCRIBE_CONFIG_DIR", str(config_dir))

        assert get_config_dir() == config_dir

    def test_raises_for_missing_env_dir(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SCRIBE_CONFIG_DIR", str(tmp_path / "missing"))

        with pytest.raises(FileNotFoundError, match="Config directory not found"):
            get_config_dir()

    def test_finds_config_in_parent_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "config").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.delenv("SCRIBE_CONFIG_DIR", raising=False)
        monkeypatch.chdir(nested)

        assert get_config_dir() == tmp_path / "config"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_environment_file_overrides_default(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "default.toml").write_text(
            '[audit]\nenabled = true\nlog_dir = "logs"\n'
        )
        (tmp_path / "staging.toml").write_text("[audit]\nenabled = false\n")
        monkeypatch.setenv("SCRIBE_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("SCRIBE_ENV", "staging")

        assert load_config() == {"audit": {"enabled": False, "log_dir": "logs"}}

    def test_missing_files_yield_empty_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SCRIBE_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("SCRIBE_ENV", "nonexistent")

        assert load_config() == {}

    def test_environment_file_alone(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "test.toml").write_text("[audit]\nqueue_size = 5\n")
        monkeypatch.setenv("SCRIBE_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("SCRIBE_ENV", "test")

        assert load_config() == {"audit": {"queue_size": 5}}
