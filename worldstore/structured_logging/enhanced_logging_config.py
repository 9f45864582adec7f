"""
Enhanced structlog-based logging configuration for worldstore.

This module is the single entry point for the logging system. Structlog renders
each event to a string which is then written through standard library handlers:
a rotating file per log category, an errors.log aggregator and the console.

All application code obtains loggers through get_logger() and logs with
keyword context rather than formatted strings:

    logger = get_logger(__name__)
    logger.warning("Skipping area document", kind="area-info", document_id=area_id, reason=str(e))
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

from worldstore.structured_logging.logging_context import (
    bind_request_context as _bind_request_context,
)
from worldstore.structured_logging.logging_context import (
    clear_request_context as _clear_request_context,
)
from worldstore.structured_logging.logging_context import (
    get_current_context as _get_current_context,
)
from worldstore.structured_logging.logging_utilities import (
    detect_environment,
    ensure_log_directory,
    resolve_log_base,
)

# Re-export context helpers so callers only import from this module
bind_request_context = _bind_request_context
clear_request_context = _clear_request_context
get_current_context = _get_current_context

# Log file name -> logger name prefixes routed into it
LOG_CATEGORIES: dict[str, list[str]] = {
    "persistence": ["worldstore.persistence"],
    "indexing": ["worldstore.indexing"],
    "services": ["worldstore.services"],
    "server": ["worldstore.app", "worldstore.container", "worldstore.main", "uvicorn"],
}


class _LoggingState:  # pylint: disable=too-few-public-methods
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None
    handlers: list[logging.Handler] = []


_logging_state = _LoggingState()


class LoggerNameFilter(logging.Filter):
    """Only pass records whose logger name starts with one of the given prefixes."""

    def __init__(self, prefixes: list[str]):
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(self.prefixes)


def _parse_size(value: str | int) -> int:
    """Parse sizes like '10MB' or '512KB' into bytes."""
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    for suffix, factor in (("GB", 1024**3), ("MB", 1024**2), ("KB", 1024)):
        if text.endswith(suffix):
            return int(float(text[: -len(suffix)]) * factor)
    return int(text)


def _build_renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer(default=str)
    return structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "logger", "event"])


def _teardown_handlers() -> None:
    root_logger = logging.getLogger()
    for handler in _logging_state.handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _logging_state.handlers = []


def _setup_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> list[logging.Handler]:
    """
    Create the rotating category handlers and the errors.log aggregator.

    Returns:
        The handlers attached to the root logger
    """
    env_log_dir = resolve_log_base(log_config.get("log_base", "logs")) / environment
    rotation = log_config.get("rotation", {})
    max_bytes = _parse_size(rotation.get("max_size", "10MB"))
    backup_count = int(rotation.get("backup_count", 5))
    formatter = logging.Formatter("%(message)s")
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []
    for log_file, prefixes in LOG_CATEGORIES.items():
        log_path = env_log_dir / f"{log_file}.log"
        ensure_log_directory(log_path)
        handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(LoggerNameFilter(prefixes))
        handlers.append(handler)

    errors_path = env_log_dir / "errors.log"
    ensure_log_directory(errors_path)
    errors_handler = RotatingFileHandler(errors_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    errors_handler.setLevel(logging.ERROR)
    errors_handler.setFormatter(formatter)
    handlers.append(errors_handler)

    return handlers


def configure_enhanced_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog and the standard library handlers behind it.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()
    log_config = log_config or {}

    _teardown_handlers()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    handlers: list[logging.Handler] = []
    if not log_config.get("disable_logging", False):
        handlers.extend(_setup_file_logging(environment, log_config, log_level))

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console_handler)

    for handler in handlers:
        root_logger.addHandler(handler)
    _logging_state.handlers = handlers

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _build_renderer(log_config.get("format", "human")),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the application configuration.

    Repeated calls with the system already initialized are ignored unless
    force_reconfigure is set.

    Args:
        config: Application configuration dictionary (see AppConfig.to_legacy_dict)
        force_reconfigure: When True, tear down existing handlers before reconfiguring
    """
    config_signature = json.dumps(config, sort_keys=True, default=str)

    if _logging_state.initialized and not force_reconfigure:
        get_logger("worldstore.structured_logging.setup").debug(
            "setup_enhanced_logging skipped; logging system already initialized",
            config_signature=_logging_state.signature,
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment", detect_environment())
    log_level = logging_config.get("level", "INFO")

    configure_enhanced_structlog(environment, log_level, logging_config)

    if not logging_config.get("disable_logging", False):
        _configure_uvicorn_logging()
        get_logger("worldstore.structured_logging.enhanced").info(
            "Enhanced logging system initialized",
            environment=environment,
            log_level=log_level,
            log_base=str(resolve_log_base(logging_config.get("log_base", "logs"))),
            log_format=logging_config.get("format", "human"),
        )

    _logging_state.initialized = True
    _logging_state.signature = config_signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handlers."""
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    This is the public API for obtaining loggers. All application code should
    use this function rather than calling structlog.get_logger() directly.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def log_exception_once(
    bound_logger: BoundLogger,
    level: str,
    message: str,
    *,
    exc: Exception | None = None,
    **kwargs: Any,
) -> None:
    """
    Log an exception once, skipping exceptions that have already been logged.

    Args:
        bound_logger: Structlog bound logger instance
        level: Logging level to use (for example, "error" or "warning")
        message: Log message to emit
        exc: Optional exception to include in the log entry
        **kwargs: Additional key-value pairs for structured logging
    """
    if exc is not None:
        if getattr(exc, "already_logged", False):
            return
        kwargs.setdefault("error_type", type(exc).__name__)
        kwargs.setdefault("error", str(exc))

    log_method = getattr(bound_logger, level.lower(), bound_logger.error)
    log_method(message, **kwargs)

    if exc is not None:
        marker = getattr(exc, "mark_logged", None)
        if callable(marker):
            marker()


def reset_logging_state() -> None:
    """Forget the initialized flag and detach handlers (used by tests)."""
    _teardown_handlers()
    _logging_state.initialized = False
    _logging_state.signature = None


__all__ = [
    "LOG_CATEGORIES",
    "bind_request_context",
    "clear_request_context",
    "configure_enhanced_structlog",
    "get_current_context",
    "get_logger",
    "log_exception_once",
    "reset_logging_state",
    "setup_enhanced_logging",
]
