"""
Context management utilities for structured logging.

Binds per-request (or per-operation) fields into structlog's context variables
so every log line emitted while handling a request carries them.
"""

import uuid
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def bind_request_context(
    correlation_id: str | None = None,
    resource_key: str | None = None,
    request_id: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Bind request context to the current logging context.

    Args:
        correlation_id: Unique correlation ID for the request (generated if None)
        resource_key: Identity the request acts on (e.g. an account profile)
        request_id: Request ID if available
        **kwargs: Additional context variables
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    context_vars = {
        "correlation_id": correlation_id,
        "resource_key": resource_key,
        "request_id": request_id,
        **kwargs,
    }

    # Remove None values
    context_vars = {k: v for k, v in context_vars.items() if v is not None}

    bind_contextvars(**context_vars)


def clear_request_context() -> None:
    """Clear the current request context from logging."""
    clear_contextvars()


def get_current_context() -> dict[str, Any]:
    """Get the current logging context."""
    return structlog.contextvars.get_contextvars()
