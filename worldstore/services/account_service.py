"""
Account service for worldstore.

Every mutation of an account document is a read-modify-write performed while
holding the write serializer lock of the current identity, so concurrent
requests from the same account never lose each other's updates.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..exceptions import ValidationError
from ..persistence.document_store import DocumentStore
from ..persistence.kinds import ACCOUNT, AREA_INFO, INVENTORY, PERSON_INFO
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.ids import generate_id
from .area_service import AreaService
from .write_serializer import WriteSerializer, account_key

logger = get_logger(__name__)


def _decode_json_field(value: Any, field: str) -> Any:
    """Decode a JSON string value; other values are returned unchanged."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError(f"{field} must be JSON or a JSON string", field=field, value=value) from e


def _current_attachments(account: dict[str, Any]) -> dict[str, Any]:
    attachments = account.get("attachments")
    if isinstance(attachments, str):
        try:
            attachments = json.loads(attachments)
        except json.JSONDecodeError:
            attachments = None
    return dict(attachments) if isinstance(attachments, dict) else {}


class AccountService:
    """
    Service class for account mutations.

    Args:
        store: Document store
        serializer: Write serializer keyed by account identity
        resolve_current_identity: Returns the profile name of the caller; supplied
            by the request layer
        area_service: Used to create home areas for new accounts
    """

    def __init__(
        self,
        store: DocumentStore,
        serializer: WriteSerializer,
        resolve_current_identity: Callable[[], str],
        area_service: AreaService | None = None,
    ):
        self.store = store
        self.serializer = serializer
        self.resolve_current_identity = resolve_current_identity
        self.area_service = area_service
        logger.info("AccountService initialized")

    def _identity(self) -> str:
        identity = self.resolve_current_identity()
        if not identity:
            raise ValidationError("No account identity for this request", field="identity", value=identity)
        return identity

    async def _mutate(self, mutation: Callable[[dict[str, Any]], Any]) -> Any:
        """
        Apply ``mutation`` to the current account document and store the result.

        The mutation edits the document in place and may return a value,
        which is passed back to the caller.
        """
        identity = self._identity()
        async with self.serializer.acquire(account_key(identity)):
            account = await self.store.async_read(ACCOUNT, identity)
            result = mutation(account)
            await self.store.async_write(ACCOUNT, identity, account)
        return result

    async def get_account(self) -> dict[str, Any]:
        """
        Return the current account document.

        Raises:
            DocumentNotFoundError: If the account does not exist
        """
        return await self.store.async_read(ACCOUNT, self._identity())

    async def ensure_account(self, profile: str) -> dict[str, Any]:
        """
        Return the account for ``profile``, creating it with defaults if needed.

        Missing ``attachments`` and ``inventory`` fields are filled in on
        existing accounts. The person info document and the home area are
        created when absent.
        """
        if not profile:
            raise ValidationError("Profile name must be non-empty", field="profile", value=profile)

        async with self.serializer.acquire(account_key(profile)):
            if await self.store.async_exists(ACCOUNT, profile):
                account = await self.store.async_read(ACCOUNT, profile)
                missing = [field for field in ("attachments", "inventory") if field not in account]
                if missing:
                    for field in missing:
                        account[field] = {}
                    await self.store.async_write(ACCOUNT, profile, account)
                    logger.info("Filled missing account fields", profile=profile, fields=missing)
            else:
                account = {
                    "personId": generate_id(),
                    "screenName": profile,
                    "homeAreaId": generate_id(),
                    "attachments": {},
                    "inventory": {},
                }
                await self.store.async_write(ACCOUNT, profile, account)
                logger.info("Account created", profile=profile, person_id=account["personId"])

        await self._ensure_person_info(account)
        await self._ensure_home_area(account)
        return account

    async def _ensure_person_info(self, account: dict[str, Any]) -> None:
        person_id = account["personId"]
        if await self.store.async_exists(PERSON_INFO, person_id):
            return
        person_info = {
            "id": person_id,
            "screenName": account.get("screenName"),
            "age": 0,
            "statusText": "",
            "isFindable": True,
            "isBanned": False,
            "lastActivityOn": datetime.now(UTC).isoformat(),
            "isFriend": False,
            "isEditorHere": True,
            "isListEditorHere": True,
            "isOwnerHere": True,
            "isAreaLocked": False,
            "isOnline": True,
        }
        await self.store.async_write(PERSON_INFO, person_id, person_info)
        logger.info("Person info created", person_id=person_id)

    async def _ensure_home_area(self, account: dict[str, Any]) -> None:
        home_area_id = account.get("homeAreaId")
        if self.area_service is None or not home_area_id:
            return
        if await self.store.async_exists(AREA_INFO, home_area_id):
            return
        screen_name = account.get("screenName") or "someone"
        await self.area_service.create_area(
            f"{screen_name}'s home",
            account["personId"],
            creator_name=screen_name,
            area_id=home_area_id,
        )

    async def update_attachment(self, slot_id: str | int, data: Any) -> None:
        """
        Set or clear one attachment slot.

        Empty data (``""`` or None) removes the slot; JSON strings are decoded.

        Raises:
            ValidationError: If data is a string that is not valid JSON
        """
        slot = str(slot_id)
        parsed = None if data in ("", None) else _decode_json_field(data, "data")

        def apply(account: dict[str, Any]) -> None:
            attachments = _current_attachments(account)
            if parsed is None:
                attachments.pop(slot, None)
            else:
                attachments[slot] = parsed
            account["attachments"] = attachments

        await self._mutate(apply)
        logger.debug("Attachment updated", slot=slot, removed=parsed is None)

    async def replace_attachments(self, attachments: Any) -> None:
        """
        Replace the whole attachments mapping.

        Raises:
            ValidationError: If attachments is a string that is not valid JSON
        """
        parsed = _decode_json_field(attachments, "attachments")

        def apply(account: dict[str, Any]) -> None:
            account["attachments"] = parsed

        await self._mutate(apply)
        logger.debug("Attachments replaced")

    async def set_hand_color(self, r: Any, g: Any, b: Any) -> dict[str, float]:
        """
        Store the avatar hand color.

        Raises:
            ValidationError: If a component is not a number
        """
        color: dict[str, float] = {}
        for component, value in (("r", r), ("g", g), ("b", b)):
            try:
                color[component] = float(value)
            except (TypeError, ValueError) as e:
                raise ValidationError("Hand color component must be a number", field=component, value=value) from e

        def apply(account: dict[str, Any]) -> None:
            account["handColor"] = color

        await self._mutate(apply)
        return color

    async def save_inventory(self, update: dict[str, Any]) -> dict[str, Any]:
        """
        Apply an inventory update and mirror it to the inventory document.

        Accepted updates:
            {"ids": [...]}                       replace the id list
            {"id": ...}                          add one id if absent
            {"page": n, "inventoryItem": "..."}  append an item to a page

        Returns:
            The updated inventory

        Raises:
            ValidationError: If the update matches none of the accepted shapes
        """
        if isinstance(update.get("ids"), list):
            mode = "ids"
        elif update.get("id") is not None:
            mode = "id"
        elif update.get("page") is not None and isinstance(update.get("inventoryItem"), str):
            mode = "page"
        else:
            raise ValidationError("Missing ids, id or (page, inventoryItem)", field="inventory", value=update)

        identity = self._identity()
        async with self.serializer.acquire(account_key(identity)):
            account = await self.store.async_read(ACCOUNT, identity)
            inventory = dict(account.get("inventory") or {})

            if mode == "ids":
                inventory["ids"] = [str(item) for item in update["ids"]]
            elif mode == "id":
                ids = list(inventory.get("ids") or [])
                item_id = str(update["id"])
                if item_id not in ids:
                    ids.append(item_id)
                inventory["ids"] = ids
            else:
                pages = dict(inventory.get("pages") or {})
                page_key = str(update["page"])
                item: Any = update["inventoryItem"]
                try:
                    item = json.loads(item)
                except json.JSONDecodeError:
                    pass
                pages[page_key] = [*(pages.get(page_key) or []), item]
                inventory["pages"] = pages

            account["inventory"] = inventory
            await self.store.async_write(ACCOUNT, identity, account)
            await self.store.async_write(INVENTORY, account.get("personId") or "unknown", inventory)

        logger.debug("Inventory saved", mode=mode, profile=identity)
        return inventory

    async def add_owned_area(self, area_id: str) -> list[str]:
        """Add an area to ``ownedAreas`` if not already present; returns the list."""

        def apply(account: dict[str, Any]) -> list[str]:
            owned = list(account.get("ownedAreas") or [])
            if area_id not in owned:
                owned.append(area_id)
            account["ownedAreas"] = owned
            return owned

        return await self._mutate(apply)
