"""Placement service: objects placed inside areas."""

from typing import Any

from ..exceptions import DocumentNotFoundError, ValidationError
from ..persistence.document_store import DocumentStore
from ..persistence.kinds import AREA_LOAD, PLACEMENT
from ..structured_logging.enhanced_logging_config import get_logger
from .write_serializer import WriteSerializer, area_key

logger = get_logger(__name__)


def _without_placement(placements: Any, placement_id: str) -> list[Any]:
    if not isinstance(placements, list):
        return []
    return [p for p in placements if not (isinstance(p, dict) and p.get("Id") == placement_id)]


class PlacementService:
    """
    Service class for placement edits.

    A placement is stored twice: as its own document scoped under the area,
    and inside the ``placements`` list of the area-load document. The area-load
    update runs under the area's write serializer key.
    """

    def __init__(self, store: DocumentStore, serializer: WriteSerializer):
        self.store = store
        self.serializer = serializer
        logger.info("PlacementService initialized")

    async def save_placement(
        self,
        area_id: str,
        placement_id: str,
        placement: dict[str, Any],
        placer: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Store a placement and upsert it into the area's placement list.

        Args:
            area_id: Area the placement belongs to
            placement_id: Placement id
            placement: Placement data
            placer: Account document of the person placing (personId, screenName)

        Returns:
            The stored placement document
        """
        if not isinstance(placement, dict):
            raise ValidationError("Placement must be an object", field="placement", value=placement)

        document = {**placement, "Id": placement.get("Id") or placement_id}
        placer = placer or {}
        document["placerId"] = placer.get("personId") or "unknown"
        document["placerName"] = placer.get("screenName") or "anonymous"
        document.setdefault("placedDaysAgo", 0)

        await self.store.async_write(PLACEMENT, placement_id, document, area_id)

        async with self.serializer.acquire(area_key(area_id)):
            area_load = await self.store.async_read_or_default(
                AREA_LOAD, area_id, {"areaId": area_id, "placements": []}
            )
            area_load["placements"] = [*_without_placement(area_load.get("placements"), placement_id), document]
            await self.store.async_write(AREA_LOAD, area_id, area_load)

        logger.debug("Placement saved", area_id=area_id, placement_id=placement_id)
        return document

    async def get_placement_info(self, area_id: str, placement_id: str) -> dict[str, Any] | None:
        """Return placer metadata for a placement, or None if it does not exist."""
        try:
            placement = await self.store.async_read(PLACEMENT, placement_id, area_id)
        except DocumentNotFoundError:
            return None
        return {
            "placerId": placement.get("placerId") or "unknown",
            "placerName": placement.get("placerName") or "anonymous",
            "placedDaysAgo": placement.get("placedDaysAgo") or 0,
        }

    async def delete_placement(self, area_id: str, placement_id: str) -> bool:
        """
        Remove a placement document and its entry in the area-load document.

        Returns:
            True if the placement document existed
        """
        existed = await self.store.async_delete(PLACEMENT, placement_id, area_id)

        async with self.serializer.acquire(area_key(area_id)):
            try:
                area_load = await self.store.async_read(AREA_LOAD, area_id)
            except DocumentNotFoundError:
                area_load = None
            if area_load is not None:
                area_load["placements"] = _without_placement(area_load.get("placements"), placement_id)
                await self.store.async_write(AREA_LOAD, area_id, area_load)

        logger.debug("Placement deleted", area_id=area_id, placement_id=placement_id, existed=existed)
        return existed
