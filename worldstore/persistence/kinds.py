"""
Registry of document kinds and their on-disk namespaces.

A kind maps a logical document family to a directory below one of the two
storage roots. Parent-scoped kinds store one subdirectory per parent id.
"""

from dataclasses import dataclass
from enum import Enum


class StorageRoot(Enum):
    """Storage root a kind lives under."""

    DATA = "data"
    CACHE = "cache"


@dataclass(frozen=True)
class DocumentKind:
    """
    A family of documents sharing a namespace.

    Attributes:
        name: Kind name used in logs and errors
        namespace: Directory relative to the storage root ("" for the root itself)
        scoped: Documents live under a parent id subdirectory
        atomic: Writes go through temp file + rename
        root: Storage root the namespace is resolved against
    """

    name: str
    namespace: str
    scoped: bool = False
    atomic: bool = True
    root: StorageRoot = StorageRoot.DATA

    def __str__(self) -> str:
        return self.name


ACCOUNT = DocumentKind("account", "person/accounts")
PERSON_INFO = DocumentKind("person-info", "person/info")
INVENTORY = DocumentKind("inventory", "person/inventory")
AREA_INFO = DocumentKind("area-info", "area/info")
AREA_LOAD = DocumentKind("area-load", "area/load")
AREA_BUNDLE = DocumentKind("area-bundle", "area/bundle", scoped=True)
AREA_SUBAREAS = DocumentKind("area-subareas", "area/subareas")
# Single list document rewritten in place; readers may observe a partial write
AREA_LIST = DocumentKind("area-list", "area", atomic=False)
PLACEMENT = DocumentKind("placement", "placement/info", scoped=True)
THING_INFO = DocumentKind("thing-info", "thing/info")
THING_DEF = DocumentKind("thing-def", "thing/def")
THING_TAGS = DocumentKind("thing-tags", "thing/tags")
AREA_INDEX_CACHE = DocumentKind("area-index-cache", "", root=StorageRoot.CACHE)

AREA_LIST_ID = "arealist"
AREA_INDEX_CACHE_ID = "areaIndex"

ALL_KINDS: tuple[DocumentKind, ...] = (
    ACCOUNT,
    PERSON_INFO,
    INVENTORY,
    AREA_INFO,
    AREA_LOAD,
    AREA_BUNDLE,
    AREA_SUBAREAS,
    AREA_LIST,
    PLACEMENT,
    THING_INFO,
    THING_DEF,
    THING_TAGS,
    AREA_INDEX_CACHE,
)

_KINDS_BY_NAME = {kind.name: kind for kind in ALL_KINDS}


def get_kind(name: str) -> DocumentKind:
    """
    Look up a kind by name.

    Raises:
        KeyError: If no kind has that name
    """
    return _KINDS_BY_NAME[name]
