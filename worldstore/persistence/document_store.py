"""
File-backed JSON document store.

Every document is a JSON object stored at
``<root>/<namespace>/<id>.json`` or, for parent-scoped kinds,
``<root>/<namespace>/<parent_id>/<id>.json``. Writes to atomic kinds go
through a temporary file in the target directory which is flushed, fsynced
and renamed into place, so a reader never observes a partially written
document and a crash leaves the previously committed version intact.

The blocking API is used from worker threads (index rebuilds); request
handlers use the ``async_*`` wrappers which delegate through
``asyncio.to_thread``.
"""

import asyncio
import json
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from ..exceptions import (
    DocumentCorruptError,
    DocumentNotFoundError,
    ErrorContext,
    StorageIOError,
    ValidationError,
)
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import log_and_raise
from .kinds import DocumentKind, StorageRoot

logger = get_logger(__name__)

DOCUMENT_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
TEMP_PREFIX = "."


def _validate_identifier(value: str, field: str) -> None:
    if not isinstance(value, str) or not value:
        log_and_raise(ValidationError, f"{field} must be a non-empty string", field=field, value=value)
    if "/" in value or "\\" in value or ".." in value or "\x00" in value:
        log_and_raise(ValidationError, f"{field} contains illegal path characters", field=field, value=value)


class DocumentStore:
    """
    Read, write, enumerate and delete JSON documents by (kind, id).

    The store treats documents as opaque dicts; it does not know about
    area or account shapes.
    """

    def __init__(self, data_dir: Path | str, cache_dir: Path | str):
        """
        Initialize the document store.

        Args:
            data_dir: Root directory for data kinds
            cache_dir: Root directory for cache kinds
        """
        self.data_dir = Path(data_dir)
        self.cache_dir = Path(cache_dir)
        logger.info("Document store initialized", data_dir=str(self.data_dir), cache_dir=str(self.cache_dir))

    # --- paths -------------------------------------------------------------

    def namespace_path(self, kind: DocumentKind) -> Path:
        """Return the directory holding (unscoped) documents of ``kind``."""
        root = self.cache_dir if kind.root is StorageRoot.CACHE else self.data_dir
        return root / kind.namespace if kind.namespace else root

    def _directory_for(self, kind: DocumentKind, parent_id: str | None) -> Path:
        if kind.scoped:
            if parent_id is None:
                raise ValidationError(
                    f"Kind {kind.name} is parent-scoped and requires a parent id", field="parent_id", value=None
                )
            _validate_identifier(parent_id, "parent_id")
            return self.namespace_path(kind) / parent_id
        if parent_id is not None:
            raise ValidationError(f"Kind {kind.name} is not parent-scoped", field="parent_id", value=parent_id)
        return self.namespace_path(kind)

    def path_for(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> Path:
        """
        Return the on-disk path of a document.

        Raises:
            ValidationError: If the id or parent id is malformed, or the
                parent id does not match the kind's scoping
        """
        _validate_identifier(document_id, "document_id")
        return self._directory_for(kind, parent_id) / f"{document_id}{DOCUMENT_SUFFIX}"

    # --- blocking API ------------------------------------------------------

    def read(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> dict[str, Any]:
        """
        Read and decode a document.

        Raises:
            DocumentNotFoundError: If no document exists
            DocumentCorruptError: If the bytes are not a UTF-8 JSON object
            StorageIOError: On any other I/O failure
        """
        document = self.read_json(kind, document_id, parent_id)
        if not isinstance(document, dict):
            raise DocumentCorruptError(
                f"{kind.name} document {document_id} is not a JSON object",
                ErrorContext(kind=kind.name, document_id=document_id, operation="read"),
                kind=kind.name,
                document_id=document_id,
                reason=f"top level is {type(document).__name__}",
            )
        return document

    def read_json(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> Any:
        """
        Read and decode a document without requiring a top-level object.

        Used for caches whose historical encodings include bare JSON lists.
        """
        path = self.path_for(kind, document_id, parent_id)
        context = ErrorContext(kind=kind.name, document_id=document_id, operation="read")
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            raise DocumentNotFoundError(
                f"No {kind.name} document {document_id}", context, kind=kind.name, document_id=document_id
            ) from None
        except OSError as e:
            raise StorageIOError(f"Failed to read {path}: {e}", context, operation="read", path=str(path)) from e

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DocumentCorruptError(
                f"Undecodable {kind.name} document {document_id}",
                context,
                kind=kind.name,
                document_id=document_id,
                reason=str(e),
            ) from e

    def read_or_default(
        self,
        kind: DocumentKind,
        document_id: str,
        default: dict[str, Any],
        parent_id: str | None = None,
    ) -> dict[str, Any]:
        """Read a document, returning a copy of ``default`` if it does not exist."""
        try:
            return self.read(kind, document_id, parent_id)
        except DocumentNotFoundError:
            return dict(default)

    def write(
        self,
        kind: DocumentKind,
        document_id: str,
        document: dict[str, Any],
        parent_id: str | None = None,
    ) -> None:
        """
        Serialize and store a document, creating directories as needed.

        Raises:
            StorageIOError: If the document could not be written
        """
        path = self.path_for(kind, document_id, parent_id)
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if kind.atomic:
                self._write_atomic(path, payload)
            else:
                with open(path, "w", encoding="utf-8") as handle:
                    handle.write(payload)
        except OSError as e:
            raise StorageIOError(
                f"Failed to write {path}: {e}",
                ErrorContext(kind=kind.name, document_id=document_id, operation="write"),
                operation="write",
                path=str(path),
            ) from e
        logger.debug("Document written", kind=kind.name, document_id=document_id, parent_id=parent_id)

    @staticmethod
    def _write_atomic(path: Path, payload: str) -> None:
        tmp_fd, tmp_path = tempfile.mkstemp(prefix=f"{TEMP_PREFIX}{path.name}.", suffix=TEMP_SUFFIX, dir=path.parent)
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    def exists(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> bool:
        """Return True if the document exists."""
        return self.path_for(kind, document_id, parent_id).is_file()

    def list_keys(self, kind: DocumentKind, parent_id: str | None = None) -> Iterator[str]:
        """
        Lazily yield the ids of all documents of a kind.

        Order is directory-listing order. Temporary files and subdirectories
        are skipped; a missing namespace yields nothing.
        """
        directory = self._directory_for(kind, parent_id)
        try:
            entries = os.scandir(directory)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageIOError(
                f"Failed to list {directory}: {e}",
                ErrorContext(kind=kind.name, operation="list"),
                operation="list",
                path=str(directory),
            ) from e

        with entries:
            for entry in entries:
                name = entry.name
                if name.startswith(TEMP_PREFIX) or not name.endswith(DOCUMENT_SUFFIX):
                    continue
                try:
                    if not entry.is_file():
                        continue
                except OSError:
                    continue
                yield name[: -len(DOCUMENT_SUFFIX)]

    def delete(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> bool:
        """
        Remove a document.

        Returns:
            True if a document was removed, False if none existed
        """
        path = self.path_for(kind, document_id, parent_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageIOError(
                f"Failed to delete {path}: {e}",
                ErrorContext(kind=kind.name, document_id=document_id, operation="delete"),
                operation="delete",
                path=str(path),
            ) from e
        logger.debug("Document deleted", kind=kind.name, document_id=document_id, parent_id=parent_id)
        return True

    # --- async API ---------------------------------------------------------

    async def async_read(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> dict[str, Any]:
        return await asyncio.to_thread(self.read, kind, document_id, parent_id)

    async def async_read_or_default(
        self,
        kind: DocumentKind,
        document_id: str,
        default: dict[str, Any],
        parent_id: str | None = None,
    ) -> dict[str, Any]:
        return await asyncio.to_thread(self.read_or_default, kind, document_id, default, parent_id)

    async def async_write(
        self,
        kind: DocumentKind,
        document_id: str,
        document: dict[str, Any],
        parent_id: str | None = None,
    ) -> None:
        await asyncio.to_thread(self.write, kind, document_id, document, parent_id)

    async def async_exists(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> bool:
        return await asyncio.to_thread(self.exists, kind, document_id, parent_id)

    async def async_list_keys(self, kind: DocumentKind, parent_id: str | None = None) -> list[str]:
        """Materialized list of ids, enumerated in a worker thread."""
        return await asyncio.to_thread(lambda: list(self.list_keys(kind, parent_id)))

    async def async_delete(self, kind: DocumentKind, document_id: str, parent_id: str | None = None) -> bool:
        return await asyncio.to_thread(self.delete, kind, document_id, parent_id)
