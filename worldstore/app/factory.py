"""
FastAPI application factory for worldstore.

The application exposes the storage and index components through dependency
getters (see worldstore.dependencies); it registers no routes of its own.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..container import ApplicationContainer
from ..error_types import classify_error, error_response_from_exception
from ..exceptions import WorldStoreError, create_error_context, handle_exception
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from ..utils.error_logging import log_error_with_context
from .lifespan import lifespan

logger = get_logger(__name__)


async def worldstore_error_handler(request: Request, exc: WorldStoreError) -> JSONResponse:
    """Translate a WorldStoreError raised by a handler into a standard error response."""
    _error_type, _severity, status_code = classify_error(exc)
    log_exception_once(
        logger,
        "warning" if status_code < 500 else "error",
        "Request failed with worldstore error",
        exc=exc,
        path=request.url.path,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=error_response_from_exception(exc))


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Wrap any other exception escaping a handler and report it as a worldstore error."""
    context = create_error_context(operation=request.url.path)
    log_error_with_context(exc, context, logger_name=__name__)
    error = handle_exception(exc, context)
    _error_type, _severity, status_code = classify_error(error)
    return JSONResponse(status_code=status_code, content=error_response_from_exception(error))


def create_app(container: ApplicationContainer | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Pre-built container to use instead of creating one at startup

    Returns:
        FastAPI: The configured application
    """
    app = FastAPI(
        title="worldstore",
        description="Document persistence and area index for a persistent world server",
        version="0.1.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_exception_handler(WorldStoreError, worldstore_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    logger.info("FastAPI application created")
    return app
