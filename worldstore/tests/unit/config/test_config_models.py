"""
Unit tests for configuration models and get_config().
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from worldstore.config import AppConfig, IndexConfig, LoggingConfig, ServerConfig, StorageConfig, get_config


def test_storage_config_reads_environment(tmp_path: Path):
    """Test that storage roots come from STORAGE_* variables."""
    config = StorageConfig()

    assert config.data_dir == tmp_path / "data"
    assert config.cache_dir == tmp_path / "cache"


def test_index_config_defaults(monkeypatch: pytest.MonkeyPatch):
    """Test index defaults."""
    monkeypatch.delenv("INDEX_WATCH_ENABLED", raising=False)

    config = IndexConfig()

    assert config.debounce_seconds == 1.0
    assert config.watch_enabled is True
    assert config.progress_interval == 1000


@pytest.mark.parametrize("value", ["0", "-1.5"])
def test_index_config_rejects_non_positive_debounce(monkeypatch: pytest.MonkeyPatch, value: str):
    """Test that the debounce window must be positive."""
    monkeypatch.setenv("INDEX_DEBOUNCE_SECONDS", value)

    with pytest.raises(ValidationError):
        IndexConfig()


def test_index_config_rejects_zero_progress_interval():
    """Test progress interval validation."""
    with pytest.raises(ValidationError):
        IndexConfig(progress_interval=0)


def test_server_port_range():
    """Test that privileged and out-of-range ports are rejected."""
    assert ServerConfig(port=8080).port == 8080
    with pytest.raises(ValidationError):
        ServerConfig(port=80)
    with pytest.raises(ValidationError):
        ServerConfig(port=70000)


def test_logging_config_normalizes_level():
    """Test that the log level is upper-cased."""
    assert LoggingConfig(level="debug").level == "DEBUG"


@pytest.mark.parametrize(
    "kwargs",
    [{"environment": "staging"}, {"level": "LOUD"}, {"format": "xml"}],
)
def test_logging_config_rejects_invalid_values(kwargs: dict):
    """Test logging field validation."""
    with pytest.raises(ValidationError):
        LoggingConfig(**kwargs)


def test_logging_legacy_dict_shape():
    """Test the dict handed to setup_enhanced_logging."""
    legacy = LoggingConfig(rotation_max_size="5MB", rotation_backup_count=2).to_legacy_dict()

    assert legacy["rotation"] == {"max_size": "5MB", "backup_count": 2}
    assert legacy["environment"] == "unit_test"


def test_app_config_legacy_dict(tmp_path: Path):
    """Test the composite legacy dict."""
    legacy = AppConfig().to_legacy_dict()

    assert legacy["data_dir"] == str(tmp_path / "data")
    assert legacy["index"]["watch_enabled"] is False
    assert legacy["logging"]["disable_logging"] is True


def test_get_config_is_fresh_under_tests(monkeypatch: pytest.MonkeyPatch):
    """Test that environment changes are visible to the next get_config() call."""
    first = get_config()
    monkeypatch.setenv("SERVER_PORT", "9100")

    second = get_config()

    assert first is not second
    assert second.server.port == 9100
