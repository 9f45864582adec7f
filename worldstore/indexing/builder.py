"""Full rebuild of the area index from stored area-info documents."""

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import DocumentCorruptError, DocumentNotFoundError, StorageIOError
from ..persistence.document_store import DocumentStore
from ..persistence.kinds import AREA_INFO
from ..structured_logging.enhanced_logging_config import get_logger
from .models import AreaIndexEntry, AreaInfoDocument
from .snapshot import IndexSnapshot

logger = get_logger(__name__)


class AreaIndexBuilder:
    """
    Scan every area-info document and produce an index snapshot.

    A document that disappears between listing and reading, does not decode,
    or lacks a string ``name`` is logged and skipped; the rest of the rebuild
    carries on. This is a blocking operation intended to run in a worker
    thread.
    """

    def __init__(self, store: DocumentStore, progress_interval: int = 1000):
        self._store = store
        self._progress_interval = progress_interval

    def rebuild(self) -> IndexSnapshot:
        """Build a snapshot from the current contents of storage."""
        entries: list[AreaIndexEntry] = []
        skipped = 0
        scanned = 0

        logger.info("Building area index", namespace=str(self._store.namespace_path(AREA_INFO)))
        for area_id in self._store.list_keys(AREA_INFO):
            if scanned and scanned % self._progress_interval == 0:
                logger.info("Area index rebuild progress", scanned=scanned, indexed=len(entries))
            scanned += 1

            entry = self._index_one(area_id)
            if entry is None:
                skipped += 1
                continue
            entries.append(entry)

        snapshot = IndexSnapshot(entries)
        logger.info("Area index built", scanned=scanned, indexed=len(snapshot), skipped=skipped)
        return snapshot

    def _index_one(self, area_id: str) -> AreaIndexEntry | None:
        try:
            document = self._store.read(AREA_INFO, area_id)
        except DocumentNotFoundError:
            logger.warning("Skipping area document", kind=AREA_INFO.name, document_id=area_id, reason="not found")
            return None
        except DocumentCorruptError as e:
            logger.warning("Skipping area document", kind=AREA_INFO.name, document_id=area_id, reason=e.reason)
            return None
        except StorageIOError as e:
            logger.warning("Skipping area document", kind=AREA_INFO.name, document_id=area_id, reason=e.message)
            return None

        try:
            info = AreaInfoDocument.model_validate(document)
        except PydanticValidationError as e:
            logger.warning(
                "Skipping area document",
                kind=AREA_INFO.name,
                document_id=area_id,
                reason=f"validation failed: {e.error_count()} error(s)",
                errors=e.errors(include_url=False),
            )
            return None

        return AreaIndexEntry(id=area_id, name=info.name, description=info.description or "", playerCount=0)
