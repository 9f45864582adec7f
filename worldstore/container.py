"""
Dependency injection container for worldstore.

The container owns every long-lived component (document store, write
serializer, area index, change watcher, services) and wires them together in
dependency order. One container exists per application; the FastAPI lifespan
creates it and stores it on ``app.state.container``.

USAGE:
    container = ApplicationContainer()
    await container.initialize()
    app.state.container = container

    def get_area_index(request: Request) -> AreaIndex:
        return request.app.state.container.area_index
"""

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from .structured_logging.enhanced_logging_config import get_current_context, get_logger

if TYPE_CHECKING:
    from .app.task_registry import TaskRegistry
    from .config.models import AppConfig
    from .indexing.area_index import AreaIndex
    from .indexing.watcher import AreaChangeWatcher
    from .persistence.document_store import DocumentStore
    from .services.account_service import AccountService
    from .services.area_service import AreaService
    from .services.placement_service import PlacementService
    from .services.write_serializer import WriteSerializer

logger = get_logger(__name__)


def identity_from_logging_context() -> str:
    """
    Resolve the current identity from the bound request context.

    The request layer binds the caller's profile with
    ``bind_request_context(resource_key=profile)``.
    """
    return get_current_context().get("resource_key", "")


class ApplicationContainer:
    """
    Container for worldstore components.

    Components are created in initialize() and torn down in shutdown(); the
    constructor has no side effects.
    """

    _instance: "ApplicationContainer | None" = None
    _lock: threading.Lock = threading.Lock()

    def __init__(
        self,
        config: "AppConfig | None" = None,
        resolve_current_identity: Callable[[], str] | None = None,
    ):
        self.config: AppConfig | None = config
        self.resolve_current_identity = resolve_current_identity or identity_from_logging_context

        self.task_registry: TaskRegistry | None = None
        self.document_store: DocumentStore | None = None
        self.write_serializer: WriteSerializer | None = None
        self.area_index: AreaIndex | None = None
        self.area_watcher: AreaChangeWatcher | None = None

        self.area_service: AreaService | None = None
        self.account_service: AccountService | None = None
        self.placement_service: PlacementService | None = None

        self._initialized = False

    @classmethod
    def get_instance(cls) -> "ApplicationContainer":
        """Return the registered container, creating an uninitialized one if none is set."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def set_instance(cls, instance: "ApplicationContainer") -> None:
        """Register the container created by the application lifespan."""
        with cls._lock:
            cls._instance = instance
        logger.debug("ApplicationContainer instance set via set_instance()")

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the registered container. Tests only."""
        with cls._lock:
            cls._instance = None

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Create and start all components in dependency order.

        INITIALIZATION ORDER:
        1. Configuration
        2. Task registry
        3. Document store and write serializer
        4. Area index (cache load or full rebuild)
        5. Services
        6. Change watcher (if enabled)
        """
        if self._initialized:
            logger.warning("ApplicationContainer already initialized")
            return

        from .app.task_registry import TaskRegistry
        from .config import get_config
        from .indexing.area_index import AreaIndex
        from .indexing.builder import AreaIndexBuilder
        from .indexing.cache import AreaIndexCache
        from .indexing.watcher import AreaChangeWatcher
        from .persistence.document_store import DocumentStore
        from .persistence.kinds import AREA_INFO
        from .services.account_service import AccountService
        from .services.area_service import AreaService
        from .services.placement_service import PlacementService
        from .services.write_serializer import WriteSerializer

        logger.info("Initializing ApplicationContainer...")

        if self.config is None:
            self.config = get_config()
        storage = self.config.storage
        index_config = self.config.index

        self.task_registry = TaskRegistry()
        self.document_store = DocumentStore(storage.data_dir, storage.cache_dir)
        self.write_serializer = WriteSerializer()

        self.area_index = AreaIndex(
            AreaIndexBuilder(self.document_store, progress_interval=index_config.progress_interval),
            AreaIndexCache(self.document_store),
        )
        await self.area_index.initialize()

        self.area_service = AreaService(self.document_store, self.write_serializer, self.area_index)
        self.account_service = AccountService(
            self.document_store,
            self.write_serializer,
            self.resolve_current_identity,
            area_service=self.area_service,
        )
        self.placement_service = PlacementService(self.document_store, self.write_serializer)

        self.area_watcher = AreaChangeWatcher(
            self.area_index,
            self.document_store.namespace_path(AREA_INFO),
            self.task_registry,
            debounce_seconds=index_config.debounce_seconds,
            observe=index_config.watch_enabled,
        )
        if index_config.watch_enabled:
            await self.area_watcher.start()

        self._initialized = True
        logger.info("ApplicationContainer initialized", indexed_areas=len(self.area_index))

    async def shutdown(self) -> None:
        """Stop the watcher and background tasks in reverse order of initialization."""
        logger.info("Shutting down ApplicationContainer...")

        if self.area_watcher is not None:
            try:
                await self.area_watcher.stop()
            except RuntimeError as e:
                logger.error("Error stopping area change watcher", error=str(e))

        if self.task_registry is not None:
            await self.task_registry.shutdown_all()

        self._initialized = False
        logger.info("ApplicationContainer shutdown complete")
