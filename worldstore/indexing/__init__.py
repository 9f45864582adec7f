"""
Area index: derived, queryable view of area-info documents.

The index is rebuilt from storage, cached in the cache root, updated
incrementally when areas are saved, and rebuilt on external change.
"""

from .area_index import AreaIndex, IndexState
from .builder import AreaIndexBuilder
from .cache import AreaIndexCache
from .models import AreaIndexEntry, AreaInfoDocument, normalize_name
from .snapshot import IndexSnapshot, SnapshotEncoding, decode_snapshot, encode_snapshot
from .watcher import AreaChangeWatcher

__all__ = [
    "AreaChangeWatcher",
    "AreaIndex",
    "AreaIndexBuilder",
    "AreaIndexCache",
    "AreaIndexEntry",
    "AreaInfoDocument",
    "IndexSnapshot",
    "IndexState",
    "SnapshotEncoding",
    "decode_snapshot",
    "encode_snapshot",
    "normalize_name",
]
