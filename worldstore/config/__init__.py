"""
Configuration module for worldstore.

Type-safe, validated configuration using Pydantic BaseSettings.

Usage:
    from worldstore.config import get_config

    config = get_config()
    logger.info("Storage configuration", data_dir=str(config.storage.data_dir))
"""

import sys
import threading
from functools import lru_cache
from os import getenv

from .models import AppConfig, IndexConfig, LoggingConfig, ServerConfig, StorageConfig

__all__ = [
    "AppConfig",
    "IndexConfig",
    "LoggingConfig",
    "ServerConfig",
    "StorageConfig",
    "get_config",
    "reset_config",
]

_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """Detect pytest execution (module loaded or pytest environment variables set)."""
    if "pytest" in sys.modules:
        return True
    return bool(getenv("PYTEST_CURRENT_TEST"))


@lru_cache(maxsize=1)
def _get_config_cached() -> AppConfig:
    """Production config loader with caching."""
    with _config_lock:
        return AppConfig()


def get_config() -> AppConfig:
    """
    Get application configuration (singleton in production, fresh in tests).

    In test mode a fresh instance is built from the current environment on
    every call so tests that monkeypatch environment variables stay isolated.

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    if _is_test_mode():
        return AppConfig()
    return _get_config_cached()


def reset_config() -> None:
    """Clear the cached configuration so the next get_config() reloads it."""
    with _config_lock:
        _get_config_cached.cache_clear()
