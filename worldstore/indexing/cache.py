"""Persistence of area index snapshots in the cache root."""

from ..exceptions import DocumentCorruptError, DocumentNotFoundError, StorageIOError
from ..persistence.document_store import DocumentStore
from ..persistence.kinds import AREA_INDEX_CACHE, AREA_INDEX_CACHE_ID
from ..structured_logging.enhanced_logging_config import get_logger
from .snapshot import IndexSnapshot, decode_snapshot, encode_snapshot

logger = get_logger(__name__)


class AreaIndexCache:
    """Load and save the area index snapshot document (``<cache_dir>/areaIndex.json``)."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def load(self) -> IndexSnapshot | None:
        """
        Load the cached snapshot.

        Returns:
            The snapshot, or None when the cache is missing, corrupt,
            unreadable, unrecognized or decodes to zero entries
        """
        try:
            raw = self._store.read_json(AREA_INDEX_CACHE, AREA_INDEX_CACHE_ID)
        except DocumentNotFoundError:
            logger.info("No area index cache present")
            return None
        except DocumentCorruptError as e:
            logger.warning("Area index cache is corrupt", reason=e.reason)
            return None
        except StorageIOError as e:
            logger.warning("Area index cache is unreadable", reason=e.message)
            return None

        snapshot = decode_snapshot(raw)
        if snapshot is None:
            return None
        if len(snapshot) == 0:
            logger.info("Area index cache is empty")
            return None
        logger.info("Area index loaded from cache", entries=len(snapshot))
        return snapshot

    def save(self, snapshot: IndexSnapshot) -> None:
        """Atomically write ``snapshot`` in the current encoding."""
        self._store.write(AREA_INDEX_CACHE, AREA_INDEX_CACHE_ID, encode_snapshot(snapshot))
        logger.debug("Area index cache saved", entries=len(snapshot))

    def invalidate(self) -> bool:
        """Delete the cache document; returns whether one existed."""
        removed = self._store.delete(AREA_INDEX_CACHE, AREA_INDEX_CACHE_ID)
        if removed:
            logger.info("Area index cache invalidated")
        return removed
