"""
Error logging utilities for worldstore.

Standardized helpers that log an error with its context before raising, so
that every raise site produces the same structured log line.
"""

from typing import Any

from ..exceptions import ErrorContext, WorldStoreError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def log_and_raise(
    exception_class: type[WorldStoreError],
    message: str,
    context: ErrorContext | None = None,
    details: dict[str, Any] | None = None,
    user_friendly: str | None = None,
    logger_name: str | None = None,
    **fields: Any,
) -> None:
    """
    Log an error and raise a worldstore exception.

    Args:
        exception_class: The worldstore exception class to raise
        message: Technical error message
        context: Error context information
        details: Additional error details
        user_friendly: User-friendly error message
        logger_name: Specific logger name to use (defaults to current module)
        **fields: Exception-specific keyword arguments (kind, document_id, field, ...)

    Raises:
        The specified worldstore exception
    """
    error_logger = get_logger(logger_name) if logger_name else logger

    if context is None:
        context = create_error_context()

    error_logger.error(
        f"Error logged and exception raised: {message}",
        error_type=exception_class.__name__,
        details=details or {},
        user_friendly=user_friendly,
        **{k: str(v) for k, v in fields.items()},
    )

    error = exception_class(
        message,
        context,
        details=details,
        user_friendly=user_friendly,
        **fields,
    )
    error.mark_logged()
    raise error


def log_error_with_context(
    error: Exception,
    context: ErrorContext | None = None,
    level: str = "error",
    logger_name: str | None = None,
) -> None:
    """
    Log an exception with structured context without raising it.

    Args:
        error: The exception to log
        context: Error context information
        level: Log level name
        logger_name: Specific logger name to use (defaults to current module)
    """
    error_logger = get_logger(logger_name) if logger_name else logger
    if context is None:
        context = create_error_context()

    log_method = getattr(error_logger, level, error_logger.error)
    log_method(
        "Error occurred",
        error_type=type(error).__name__,
        error=str(error),
        context=context.to_dict(),
    )
