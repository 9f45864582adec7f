"""
Centralized error types and constants for worldstore.

The request layer uses these to turn WorldStoreError instances into uniform
response payloads.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .exceptions import (
    ConfigurationError,
    DocumentCorruptError,
    DocumentNotFoundError,
    StorageIOError,
    ValidationError,
    WorldStoreError,
)


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Validation Errors
    VALIDATION_ERROR = "validation_error"

    # Document Errors
    DOCUMENT_NOT_FOUND = "document_not_found"
    DOCUMENT_CORRUPT = "document_corrupt"

    # Storage Errors
    STORAGE_ERROR = "storage_error"

    # Configuration and System
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"


class ErrorSeverity(Enum):
    """Error severity levels for logging and handling."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Exception class -> (error type, severity, suggested HTTP status)
EXCEPTION_ERROR_TYPES: dict[type[WorldStoreError], tuple[ErrorType, ErrorSeverity, int]] = {
    ValidationError: (ErrorType.VALIDATION_ERROR, ErrorSeverity.LOW, 400),
    DocumentNotFoundError: (ErrorType.DOCUMENT_NOT_FOUND, ErrorSeverity.LOW, 404),
    DocumentCorruptError: (ErrorType.DOCUMENT_CORRUPT, ErrorSeverity.HIGH, 500),
    StorageIOError: (ErrorType.STORAGE_ERROR, ErrorSeverity.HIGH, 500),
    ConfigurationError: (ErrorType.CONFIGURATION_ERROR, ErrorSeverity.CRITICAL, 500),
}


def create_standard_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
) -> dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)
        severity: Error severity level (optional)

    Returns:
        Standardized error response dictionary
    """
    return {
        "error": {
            "type": error_type.value,
            "message": message,
            "user_friendly": user_friendly or message,
            "details": details or {},
            "severity": severity.value,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    }


def classify_error(error: WorldStoreError) -> tuple[ErrorType, ErrorSeverity, int]:
    """Return the error type, severity and HTTP status for a worldstore error."""
    for exc_class in type(error).__mro__:
        mapped = EXCEPTION_ERROR_TYPES.get(exc_class)
        if mapped is not None:
            return mapped
    return ErrorType.INTERNAL_ERROR, ErrorSeverity.HIGH, 500


def error_response_from_exception(error: WorldStoreError) -> dict[str, Any]:
    """Build a standard error response for a raised worldstore error."""
    error_type, severity, _status = classify_error(error)
    return create_standard_error_response(
        error_type,
        error.message,
        user_friendly=error.user_friendly,
        details=error.details,
        severity=severity,
    )
