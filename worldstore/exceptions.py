"""
Exception hierarchy for worldstore.

Every error raised by the storage, indexing and service layers derives from
WorldStoreError. Errors carry a structured ErrorContext plus a details dict and
log themselves on construction, so callers that only translate or re-raise do
not need to log again.
"""

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information attached to an error for reporting and debugging."""

    resource_key: str | None = None
    kind: str | None = None
    document_id: str | None = None
    operation: str | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "resource_key": self.resource_key,
            "kind": self.kind,
            "document_id": self.document_id,
            "operation": self.operation,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class WorldStoreError(Exception):
    """
    Base exception for all worldstore errors.

    Subclasses set log_level to control how loudly construction is logged;
    expected outcomes such as a missing document log at debug.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize a worldstore error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)
        self.already_logged = False

    def mark_logged(self) -> None:
        """Record that this exception has been logged by a handler."""
        self.already_logged = True

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level, logger.error)
        log_method(
            "worldstore error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class DocumentNotFoundError(WorldStoreError):
    """No document exists for the requested kind and id."""

    log_level = "debug"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        kind: str | None = None,
        document_id: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.kind = kind
        self.document_id = document_id
        if kind:
            self.details["kind"] = kind
        if document_id:
            self.details["document_id"] = document_id
        self._log_error()


class DocumentCorruptError(WorldStoreError):
    """Stored bytes are not a UTF-8 JSON object."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        kind: str | None = None,
        document_id: str | None = None,
        reason: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.kind = kind
        self.document_id = document_id
        self.reason = reason
        if kind:
            self.details["kind"] = kind
        if document_id:
            self.details["document_id"] = document_id
        if reason:
            self.details["reason"] = reason
        self._log_error()


class StorageIOError(WorldStoreError):
    """The underlying storage failed while reading or writing."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        operation: str = "unknown",
        path: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.operation = operation
        self.path = path
        self.details["operation"] = operation
        if path:
            self.details["path"] = path
        self._log_error()


class ValidationError(WorldStoreError):
    """Caller-supplied data failed validation."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field: str | None = None,
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.field = field
        self.value = value
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)
        self._log_error()


class ConfigurationError(WorldStoreError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key
        self._log_error()


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Args:
        **kwargs: Context parameters

    Returns:
        ErrorContext object
    """
    return ErrorContext(**kwargs)


def handle_exception(exc: Exception, context: ErrorContext | None = None) -> WorldStoreError:
    """
    Convert a generic exception to a worldstore error.

    Args:
        exc: The original exception
        context: Error context

    Returns:
        WorldStoreError instance
    """
    if isinstance(exc, WorldStoreError):
        return exc

    if isinstance(exc, ValueError | TypeError):
        return ValidationError(str(exc), context, details={"original_type": type(exc).__name__})
    if isinstance(exc, FileNotFoundError):
        return DocumentNotFoundError(str(exc), context, details={"original_type": type(exc).__name__})
    if isinstance(exc, OSError):
        # FileNotFoundError is an OSError, so it is checked first
        return StorageIOError(
            str(exc), context, path=getattr(exc, "filename", None), details={"original_type": type(exc).__name__}
        )
    error = WorldStoreError(
        str(exc), context, details={"original_type": type(exc).__name__, "traceback": traceback.format_exc()}
    )
    error._log_error()  # pylint: disable=protected-access
    return error
