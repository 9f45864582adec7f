"""
Area service for worldstore.

Creates and saves areas, keeps the area list document up to date and feeds
new areas into the area index without a full rebuild.
"""

import json
from datetime import UTC, datetime
from typing import Any

from ..exceptions import DocumentNotFoundError, ValidationError
from ..indexing.area_index import AreaIndex
from ..persistence.document_store import DocumentStore
from ..persistence.kinds import AREA_BUNDLE, AREA_INFO, AREA_LIST, AREA_LIST_ID, AREA_LOAD, AREA_SUBAREAS
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.ids import generate_bundle_key, generate_id, generate_object_id
from .write_serializer import AREA_LIST_KEY, WriteSerializer, area_key

logger = get_logger(__name__)

NEWEST_AREAS_LIMIT = 50
GROUND_THING_ID = "000000000000000000000001"

AREA_LIST_SECTIONS = (
    "visited",
    "created",
    "newest",
    "popular",
    "popular_rnd",
    "popularNew",
    "popularNew_rnd",
    "lively",
    "favorite",
    "mostFavorited",
)
AREA_LIST_TOTALS = ("totalOnline", "totalAreas", "totalPublicAreas", "totalSearchablePublicAreas")


def empty_area_list() -> dict[str, Any]:
    """Return an area list document with every section empty and every total zero."""
    area_list: dict[str, Any] = {section: [] for section in AREA_LIST_SECTIONS}
    area_list.update({total: 0 for total in AREA_LIST_TOTALS})
    return area_list


def _new_area_documents(
    area_id: str, name: str, description: str, creator_id: str, creator_name: str, bundle_key: str
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Build the area-info and area-load documents of a freshly created area."""
    area_info = {
        "editors": [{"id": creator_id, "name": creator_name, "isOwner": True}],
        "listEditors": [],
        "copiedFromAreas": [],
        "name": name,
        "description": description,
        "creationDate": datetime.now(UTC).isoformat(),
        "totalVisitors": 0,
        "isZeroGravity": False,
        "hasFloatingDust": False,
        "isCopyable": False,
        "isExcluded": False,
        "renameCount": 0,
        "copiedCount": 0,
        "isFavorited": False,
    }
    area_load = {
        "ok": True,
        "areaId": area_id,
        "areaName": name,
        "areaKey": bundle_key,
        "areaCreatorId": creator_id,
        "isPrivate": False,
        "isZeroGravity": False,
        "hasFloatingDust": False,
        "isCopyable": False,
        "onlyOwnerSetsLocks": False,
        "isExcluded": False,
        "environmentChangersJSON": json.dumps({"environmentChangers": []}),
        "requestorIsEditor": True,
        "requestorIsListEditor": True,
        "requestorIsOwner": True,
        "placements": [
            {
                "Id": generate_id(),
                "Tid": GROUND_THING_ID,
                "P": {"x": 0, "y": -0.3, "z": 0},
                "R": {"x": 0, "y": 0, "z": 0},
            }
        ],
        "serveTime": 17,
    }
    return area_info, area_load


class AreaService:
    """Service class for area creation, saving and lookup."""

    def __init__(self, store: DocumentStore, serializer: WriteSerializer, area_index: AreaIndex):
        self.store = store
        self.serializer = serializer
        self.area_index = area_index
        logger.info("AreaService initialized")

    async def create_area(
        self,
        name: str,
        creator_id: str,
        description: str = "",
        *,
        creator_name: str | None = None,
        area_id: str | None = None,
    ) -> str:
        """
        Create a new area with all of its documents and index it.

        Args:
            name: Display name of the area
            creator_id: Person id of the creator (becomes the owning editor)
            description: Optional description
            creator_name: Screen name of the creator for the editors list
            area_id: Use this id instead of generating one (home areas)

        Returns:
            The id of the new area

        Raises:
            ValidationError: If the name is empty
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Area name must be a non-empty string", field="name", value=name)

        area_id = area_id or generate_id()
        bundle_key = generate_bundle_key()
        area_info, area_load = _new_area_documents(
            area_id, name, description, creator_id, creator_name or creator_id, bundle_key
        )

        async with self.serializer.acquire(area_key(area_id)):
            await self.store.async_write(AREA_BUNDLE, bundle_key, {"thingDefinitions": [], "serveTime": 0}, area_id)
            await self.store.async_write(AREA_SUBAREAS, area_id, {"subAreas": []})
            await self.store.async_write(AREA_LOAD, area_id, area_load)
            # area-info last: it is the document the index is built from
            await self.store.async_write(AREA_INFO, area_id, area_info)

        await self._record_created(area_id, name)
        await self.area_index.index_area(area_id, name, description)

        logger.info("Area created", area_id=area_id, name=name, creator_id=creator_id)
        return area_id

    async def _record_created(self, area_id: str, name: str) -> None:
        entry = {"id": area_id, "name": name, "playerCount": 0}

        async with self.serializer.acquire(AREA_LIST_KEY):
            area_list = await self.store.async_read_or_default(AREA_LIST, AREA_LIST_ID, empty_area_list())
            for section in ("created", "visited"):
                current = area_list.get(section) or []
                if not any(item.get("id") == area_id for item in current):
                    current = [*current, entry]
                area_list[section] = current
            area_list["newest"] = [entry, *(area_list.get("newest") or [])][:NEWEST_AREAS_LIMIT]
            for total in ("totalAreas", "totalPublicAreas", "totalSearchablePublicAreas"):
                area_list[total] = (area_list.get(total) or 0) + 1
            await self.store.async_write(AREA_LIST, AREA_LIST_ID, area_list)

    async def record_visit(self, area_id: str, name: str) -> bool:
        """
        Add an area to the visited section of the area list.

        Returns:
            True if the area was added, False if it was already listed
        """
        async with self.serializer.acquire(AREA_LIST_KEY):
            area_list = await self.store.async_read_or_default(AREA_LIST, AREA_LIST_ID, empty_area_list())
            visited = area_list.get("visited") or []
            if any(item.get("id") == area_id for item in visited):
                return False
            area_list["visited"] = [*visited, {"id": area_id, "name": name, "playerCount": 0}]
            await self.store.async_write(AREA_LIST, AREA_LIST_ID, area_list)
        return True

    async def get_area_list(self) -> dict[str, Any]:
        """Return the area list document with every section present."""
        area_list = await self.store.async_read_or_default(AREA_LIST, AREA_LIST_ID, {})
        return {**empty_area_list(), **area_list}

    async def save_area(self, body: dict[str, Any], creator_id: str | None = None) -> str:
        """
        Store an area-load document from an editor save and index the area.

        Args:
            body: Area document; ``id`` is used as the area id when present
            creator_id: Person id of the saving account, overriding ``creatorId``

        Returns:
            The area id

        Raises:
            ValidationError: If the body has no string name
        """
        name = body.get("name")
        if not isinstance(name, str) or not name:
            raise ValidationError("Area body must have a non-empty name", field="name", value=name)

        area_id = body.get("id") or generate_object_id()
        document = {**body, "creatorId": creator_id or body.get("creatorId")}

        async with self.serializer.acquire(area_key(area_id)):
            await self.store.async_write(AREA_LOAD, area_id, document)

        await self.area_index.index_area(area_id, name, body.get("description"))
        logger.info("Area saved", area_id=area_id, name=name)
        return area_id

    async def get_area_info(self, area_id: str) -> dict[str, Any]:
        """
        Return the area-info document.

        Raises:
            DocumentNotFoundError: If the area does not exist
        """
        return await self.store.async_read(AREA_INFO, area_id)

    async def load_area(self, area_id: str | None = None, url_name: str | None = None) -> dict[str, Any] | None:
        """
        Return the area-load document by id or by URL name.

        A URL name is resolved through the normalized name key of the index.

        Returns:
            The document, or None if the area cannot be found
        """
        if area_id is None and url_name:
            area_id = self.area_index.find_by_normalized_name(url_name)
            logger.debug("Resolved area url name", url_name=url_name, area_id=area_id)
        if not area_id:
            logger.warning("Area load requested without a resolvable area", url_name=url_name)
            return None

        try:
            return await self.store.async_read(AREA_LOAD, area_id)
        except DocumentNotFoundError:
            logger.warning("Area not found on disk", area_id=area_id)
            return None

    async def get_subareas(self, area_id: str) -> dict[str, Any]:
        """Return the subareas document, defaulting to an empty list."""
        return await self.store.async_read_or_default(AREA_SUBAREAS, area_id, {"subAreas": []})
