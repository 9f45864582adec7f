"""
worldstore - main application entry point.

Sets up logging from configuration before any other module logs, then builds
the FastAPI application. Run with ``python -m worldstore.main`` or point
uvicorn at ``worldstore.main:app``.
"""

from fastapi import FastAPI

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

# Early logging setup - must happen before any logger is used
config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)


def main() -> FastAPI:
    """Build the worldstore application."""
    logger.info("Starting worldstore...")
    return create_app()


app = main()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "worldstore.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
        access_log=True,
        use_colors=False,
    )
