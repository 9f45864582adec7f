"""
Unit tests for AccountService.

Account mutations are read-modify-writes serialized on the caller's identity;
the tests drive them through an identity holder fixture.
"""

import asyncio

import pytest
import pytest_asyncio

from worldstore.exceptions import DocumentNotFoundError, ValidationError
from worldstore.indexing.area_index import AreaIndex
from worldstore.persistence.document_store import DocumentStore
from worldstore.persistence.kinds import ACCOUNT, AREA_INFO, INVENTORY, PERSON_INFO
from worldstore.services.account_service import AccountService


@pytest_asyncio.fixture
async def account(account_service: AccountService, area_index: AreaIndex) -> dict:
    """A freshly created account for the default identity."""
    await area_index.initialize()
    return await account_service.ensure_account("alice")


@pytest.mark.asyncio
async def test_ensure_account_creates_defaults(account: dict, store: DocumentStore, area_index: AreaIndex):
    """Test that a new account gets ids, person info and a home area."""
    assert account["screenName"] == "alice"
    assert account["attachments"] == {}
    assert account["inventory"] == {}
    assert len(account["personId"]) == 24

    person = store.read(PERSON_INFO, account["personId"])
    assert person["screenName"] == "alice"

    home = store.read(AREA_INFO, account["homeAreaId"])
    assert home["name"] == "alice's home"
    assert area_index.find_by_id(account["homeAreaId"]) is not None


@pytest.mark.asyncio
async def test_ensure_account_is_stable(account: dict, account_service: AccountService):
    """Test that a second call returns the existing account unchanged."""
    again = await account_service.ensure_account("alice")

    assert again["personId"] == account["personId"]
    assert again["homeAreaId"] == account["homeAreaId"]


@pytest.mark.asyncio
async def test_ensure_account_fills_missing_fields(
    account_service: AccountService, store: DocumentStore, area_index: AreaIndex
):
    """Test that older accounts gain attachments and inventory."""
    await area_index.initialize()
    store.write(ACCOUNT, "bob", {"personId": "p" * 24, "screenName": "bob", "homeAreaId": "h" * 24})

    result = await account_service.ensure_account("bob")

    assert result["attachments"] == {}
    assert result["inventory"] == {}
    assert store.read(ACCOUNT, "bob")["attachments"] == {}


@pytest.mark.asyncio
async def test_update_attachment_sets_and_clears_slot(account: dict, account_service: AccountService):
    """Test setting a slot from a JSON string and clearing it with empty data."""
    await account_service.update_attachment(3, '{"Tid": "t1", "P": {"x": 1}}')
    assert (await account_service.get_account())["attachments"] == {"3": {"Tid": "t1", "P": {"x": 1}}}

    await account_service.update_attachment("3", "")
    assert (await account_service.get_account())["attachments"] == {}


@pytest.mark.asyncio
async def test_update_attachment_rejects_bad_json(account: dict, account_service: AccountService):
    """Test that malformed attachment JSON is a validation error."""
    with pytest.raises(ValidationError):
        await account_service.update_attachment("1", "{broken")


@pytest.mark.asyncio
async def test_concurrent_attachment_updates_are_all_kept(account: dict, account_service: AccountService):
    """Test that parallel slot updates for one account do not overwrite each other."""
    await asyncio.gather(*(account_service.update_attachment(slot, {"slot": slot}) for slot in range(20)))

    attachments = (await account_service.get_account())["attachments"]
    assert sorted(attachments, key=int) == [str(slot) for slot in range(20)]


@pytest.mark.asyncio
async def test_replace_attachments(account: dict, account_service: AccountService):
    """Test wholesale replacement of attachments."""
    await account_service.update_attachment("1", {"a": 1})
    await account_service.replace_attachments('{"2": {"b": 2}}')

    assert (await account_service.get_account())["attachments"] == {"2": {"b": 2}}


@pytest.mark.asyncio
async def test_set_hand_color(account: dict, account_service: AccountService):
    """Test that hand color components are stored as numbers."""
    color = await account_service.set_hand_color("0.5", 1, 0.25)

    assert color == {"r": 0.5, "g": 1.0, "b": 0.25}
    assert (await account_service.get_account())["handColor"] == color


@pytest.mark.asyncio
async def test_set_hand_color_rejects_non_numbers(account: dict, account_service: AccountService):
    """Test that a non-numeric component is refused."""
    with pytest.raises(ValidationError):
        await account_service.set_hand_color("red", 0, 0)


@pytest.mark.asyncio
async def test_save_inventory_update_shapes(account: dict, account_service: AccountService, store: DocumentStore):
    """Test the three accepted inventory update shapes and the mirrored document."""
    await account_service.save_inventory({"ids": ["t1", "t2"]})
    await account_service.save_inventory({"id": "t3"})
    await account_service.save_inventory({"id": "t1"})
    inventory = await account_service.save_inventory({"page": 2, "inventoryItem": '{"Tid": "t4"}'})

    assert inventory["ids"] == ["t1", "t2", "t3"]
    assert inventory["pages"] == {"2": [{"Tid": "t4"}]}
    assert store.read(INVENTORY, account["personId"]) == inventory


@pytest.mark.asyncio
async def test_save_inventory_rejects_unknown_shape(account: dict, account_service: AccountService):
    """Test that an update matching no shape is refused."""
    with pytest.raises(ValidationError):
        await account_service.save_inventory({"something": "else"})


@pytest.mark.asyncio
async def test_add_owned_area_is_idempotent(account: dict, account_service: AccountService):
    """Test that owned areas are listed once."""
    await account_service.add_owned_area("a1")
    owned = await account_service.add_owned_area("a1")

    assert owned == ["a1"]


@pytest.mark.asyncio
async def test_mutation_without_identity_is_rejected(account: dict, account_service: AccountService, identity):
    """Test that an empty identity cannot mutate any account."""
    identity["profile"] = ""

    with pytest.raises(ValidationError):
        await account_service.add_owned_area("a1")


@pytest.mark.asyncio
async def test_mutation_of_missing_account_raises_not_found(account_service: AccountService, identity):
    """Test that mutating an account that was never created fails."""
    identity["profile"] = "ghost"

    with pytest.raises(DocumentNotFoundError):
        await account_service.set_hand_color(0, 0, 0)
