"""Application lifecycle management for worldstore.

Startup builds and initializes the ApplicationContainer (document store,
write serializer, area index, change watcher, services); shutdown stops the
watcher and background tasks.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..container import ApplicationContainer
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

__all__ = ["lifespan"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    A container already placed on ``app.state.container`` (tests) is used as
    is; otherwise a new one is created from the current configuration.
    """
    logger.info("Starting worldstore with ApplicationContainer...")

    container = getattr(app.state, "container", None)
    if container is None:
        container = ApplicationContainer()
    if not container.is_initialized:
        await container.initialize()
    app.state.container = container
    ApplicationContainer.set_instance(container)

    logger.info("worldstore started successfully", indexed_areas=len(container.area_index))
    yield

    logger.info("Shutting down worldstore...")
    try:
        await container.shutdown()
    except asyncio.CancelledError as e:
        logger.warning("Shutdown interrupted", error=str(e), error_type=type(e).__name__)
        raise
    except (AttributeError, KeyError, TypeError, ValueError, RuntimeError) as e:
        logger.error("Critical shutdown failure", error=str(e), error_type=type(e).__name__, exc_info=True)
    finally:
        ApplicationContainer.reset_instance()

    logger.info("worldstore shutdown complete")
