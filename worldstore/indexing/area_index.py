"""
Live area index and its query surface.

The index holds a reference to an immutable IndexSnapshot. Readers take the
reference once and work on that snapshot, so a concurrent rebuild or insert
never exposes a half-built index. Writers build a new snapshot and swap the
reference under a short threading lock.
"""

import asyncio
import threading
from enum import Enum

from ..exceptions import StorageIOError
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from .builder import AreaIndexBuilder
from .cache import AreaIndexCache
from .models import AreaIndexEntry, normalize_name
from .snapshot import IndexSnapshot

logger = get_logger(__name__)


class IndexState(Enum):
    """Lifecycle of the area index."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    REBUILDING = "rebuilding"
    READY = "ready"


class AreaIndex:
    """
    Owner of the in-memory area index.

    Lifecycle: UNINITIALIZED -> LOADING -> READY on a cache hit, or
    LOADING -> REBUILDING -> READY on a miss. Watcher-triggered rebuilds pass
    through REBUILDING again; incremental inserts keep the index READY.
    """

    def __init__(self, builder: AreaIndexBuilder, cache: AreaIndexCache):
        self._builder = builder
        self._cache = cache
        self._snapshot = IndexSnapshot()
        self._state = IndexState.UNINITIALIZED
        self._swap_lock = threading.Lock()
        self._save_lock = asyncio.Lock()
        # Entries inserted while a rebuild is scanning storage; replayed onto its result
        self._inserted_during_rebuild: list[AreaIndexEntry] | None = None

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    # --- lifecycle ---------------------------------------------------------

    async def initialize(self) -> None:
        """Load the index from cache, rebuilding from storage on a miss."""
        self._state = IndexState.LOADING
        logger.info("Initializing area index")

        cached = await asyncio.to_thread(self._cache.load)
        if cached is not None:
            self._swap(cached)
            self._state = IndexState.READY
            logger.info("Area index ready", source="cache", entries=len(cached))
            return

        await self._rebuild()
        await self._persist()
        self._state = IndexState.READY
        logger.info("Area index ready", source="rebuild", entries=len(self._snapshot))

    async def rebuild_and_save(self) -> IndexSnapshot:
        """
        Rebuild the index from storage, swap it in and persist it.

        Returns:
            The snapshot now being served
        """
        previous_state = self._state
        try:
            snapshot = await self._rebuild()
        except Exception:
            self._state = previous_state
            raise
        await self._persist()
        self._state = IndexState.READY
        return snapshot

    async def _rebuild(self) -> IndexSnapshot:
        self._state = IndexState.REBUILDING
        with self._swap_lock:
            self._inserted_during_rebuild = []
        try:
            snapshot = await asyncio.to_thread(self._builder.rebuild)
        except Exception:
            with self._swap_lock:
                self._inserted_during_rebuild = None
            raise

        with self._swap_lock:
            for entry in self._inserted_during_rebuild or ():
                snapshot = snapshot.with_entry(entry)
            self._inserted_during_rebuild = None
            self._snapshot = snapshot
        return snapshot

    def _swap(self, snapshot: IndexSnapshot) -> None:
        with self._swap_lock:
            self._snapshot = snapshot

    async def _persist(self) -> None:
        # Always saves the latest snapshot so concurrent saves cannot regress the cache
        async with self._save_lock:
            snapshot = self._snapshot
            try:
                await asyncio.to_thread(self._cache.save, snapshot)
            except StorageIOError as e:
                log_exception_once(logger, "error", "Failed to persist area index", exc=e, entries=len(snapshot))

    # --- mutation ----------------------------------------------------------

    async def incremental_insert(self, entry: AreaIndexEntry) -> None:
        """
        Add or replace one entry without a full rebuild, then persist.

        An existing entry with the same id is replaced in place.
        """
        with self._swap_lock:
            self._snapshot = self._snapshot.with_entry(entry)
            if self._inserted_during_rebuild is not None:
                self._inserted_during_rebuild.append(entry)
        logger.debug("Area indexed incrementally", area_id=entry.id, name=entry.name)
        await self._persist()

    async def index_area(self, area_id: str, name: str, description: str | None = None) -> AreaIndexEntry:
        """Build an entry from area fields and insert it."""
        entry = AreaIndexEntry(id=area_id, name=name, description=description or "", playerCount=0)
        await self.incremental_insert(entry)
        return entry

    # --- queries -----------------------------------------------------------

    def find_by_id(self, area_id: str) -> AreaIndexEntry | None:
        return self._snapshot.by_id.get(area_id)

    def find_by_normalized_name(self, name: str) -> str | None:
        """Return the id of the area whose normalized name key equals that of ``name``."""
        return self._snapshot.by_name.get(normalize_name(name))

    def search(self, term: str) -> list[AreaIndexEntry]:
        """
        Case-sensitive substring match on area names, in index order.

        The result is a list taken from a single snapshot.
        """
        snapshot = self._snapshot
        return [entry for entry in snapshot.entries if term in entry.name]
