"""
Immutable area index snapshots and their persisted encodings.

A snapshot is never mutated after construction; updates build a new snapshot
and the owner swaps its reference. Three encodings have been written to the
index cache over time:

    current        {"format": "area-index/v2", "areas": [entry, ...]}
    legacy-list    [entry, ...]
    legacy-id-map  {"<id>": {"title": ..., "description": ...}, ...}

Decoding picks exactly one encoding from the top-level shape and then
migrates each element; only the current encoding is ever written.
"""

from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..structured_logging.enhanced_logging_config import get_logger
from .models import AreaIndexEntry

logger = get_logger(__name__)

CURRENT_FORMAT = "area-index/v2"


class SnapshotEncoding(Enum):
    """Known persisted encodings of the area index."""

    CURRENT = "current"
    LEGACY_LIST = "legacy-list"
    LEGACY_ID_MAP = "legacy-id-map"


class IndexSnapshot:
    """
    Entries in index order plus id-keyed and name-keyed lookup maps.

    Ids are unique: building from entries that repeat an id keeps the
    position of the first occurrence and the value of the last. Name keys
    are not unique; the last entry with a given key wins.
    """

    __slots__ = ("_entries", "_by_id", "_by_name")

    def __init__(self, entries: Iterable[AreaIndexEntry] = ()):
        ordered: dict[str, AreaIndexEntry] = {}
        for entry in entries:
            ordered[entry.id] = entry
        by_name: dict[str, str] = {}
        for entry in ordered.values():
            by_name[entry.name_key] = entry.id
        self._entries: tuple[AreaIndexEntry, ...] = tuple(ordered.values())
        self._by_id: Mapping[str, AreaIndexEntry] = MappingProxyType(ordered)
        self._by_name: Mapping[str, str] = MappingProxyType(by_name)

    @property
    def entries(self) -> tuple[AreaIndexEntry, ...]:
        return self._entries

    @property
    def by_id(self) -> Mapping[str, AreaIndexEntry]:
        return self._by_id

    @property
    def by_name(self) -> Mapping[str, str]:
        return self._by_name

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AreaIndexEntry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IndexSnapshot):
            return NotImplemented
        return dict(self._by_id) == dict(other._by_id) and dict(self._by_name) == dict(other._by_name)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"IndexSnapshot(entries={len(self._entries)})"

    def with_entry(self, entry: AreaIndexEntry) -> "IndexSnapshot":
        """Return a new snapshot with ``entry`` appended, or replacing the entry with the same id."""
        return IndexSnapshot((*self._entries, entry))


def detect_encoding(raw: Any) -> SnapshotEncoding | None:
    """Classify a decoded cache document, or return None if no encoding matches."""
    if isinstance(raw, list):
        return SnapshotEncoding.LEGACY_LIST
    if not isinstance(raw, dict):
        return None
    if "format" in raw:
        if raw.get("format") == CURRENT_FORMAT and isinstance(raw.get("areas"), list):
            return SnapshotEncoding.CURRENT
        return None
    if all(isinstance(value, dict) for value in raw.values()):
        return SnapshotEncoding.LEGACY_ID_MAP
    return None


def _migrate_list_element(element: Any) -> AreaIndexEntry:
    if not isinstance(element, dict):
        raise ValueError(f"entry is {type(element).__name__}, expected object")
    description = element.get("description")
    return AreaIndexEntry(
        id=element.get("id"),
        name=element.get("name"),
        description=description if description is not None else "",
        playerCount=0,
    )


def _migrate_id_map_element(area_id: str, element: dict[str, Any]) -> AreaIndexEntry:
    title = element.get("title")
    if not title:
        raise ValueError("missing title")
    description = element.get("description")
    return AreaIndexEntry(
        id=area_id,
        name=title,
        description=description if description is not None else "",
        playerCount=0,
    )


def decode_snapshot(raw: Any) -> IndexSnapshot | None:
    """
    Decode a cache document in any known encoding.

    Elements that do not have the expected shape are logged and skipped.

    Returns:
        The migrated snapshot, or None if the document matches no encoding
    """
    encoding = detect_encoding(raw)
    if encoding is None:
        logger.warning("Unrecognized area index encoding", top_level=type(raw).__name__)
        return None

    if encoding is SnapshotEncoding.LEGACY_ID_MAP:
        pairs: Iterable[tuple[Any, Any]] = raw.items()
    else:
        elements = raw["areas"] if encoding is SnapshotEncoding.CURRENT else raw
        pairs = enumerate(elements)

    entries: list[AreaIndexEntry] = []
    skipped = 0
    for position, element in pairs:
        try:
            if encoding is SnapshotEncoding.LEGACY_ID_MAP:
                entries.append(_migrate_id_map_element(position, element))
            else:
                entries.append(_migrate_list_element(element))
        except (PydanticValidationError, ValueError) as e:
            skipped += 1
            logger.warning(
                "Skipping malformed area index entry",
                encoding=encoding.value,
                position=position,
                reason=str(e),
            )

    logger.debug("Decoded area index", encoding=encoding.value, entries=len(entries), skipped=skipped)
    return IndexSnapshot(entries)


def encode_snapshot(snapshot: IndexSnapshot) -> dict[str, Any]:
    """Encode a snapshot in the current encoding."""
    return {"format": CURRENT_FORMAT, "areas": [entry.to_document() for entry in snapshot.entries]}
