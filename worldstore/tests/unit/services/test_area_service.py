"""
Unit tests for AreaService.
"""

import asyncio
import re

import pytest
import pytest_asyncio

from worldstore.exceptions import DocumentNotFoundError, ValidationError
from worldstore.indexing.area_index import AreaIndex
from worldstore.persistence.document_store import DocumentStore
from worldstore.persistence.kinds import AREA_BUNDLE, AREA_INFO, AREA_LIST, AREA_LIST_ID, AREA_LOAD
from worldstore.services.area_service import (
    AREA_LIST_SECTIONS,
    GROUND_THING_ID,
    NEWEST_AREAS_LIMIT,
    AreaService,
    empty_area_list,
)


@pytest_asyncio.fixture
async def ready_index(area_index: AreaIndex) -> AreaIndex:
    await area_index.initialize()
    return area_index


def test_empty_area_list_shape():
    """Test that the empty list has every section and zero totals."""
    area_list = empty_area_list()

    for section in AREA_LIST_SECTIONS:
        assert area_list[section] == []
    assert area_list["totalAreas"] == 0


@pytest.mark.asyncio
async def test_create_area_writes_all_documents(
    area_service: AreaService, store: DocumentStore, ready_index: AreaIndex
):
    """Test that a new area gets info, load, subareas and bundle documents and is indexed."""
    area_id = await area_service.create_area("Blue Castle", "person1", "stone walls", creator_name="alice")

    info = store.read(AREA_INFO, area_id)
    assert info["name"] == "Blue Castle"
    assert info["editors"] == [{"id": "person1", "name": "alice", "isOwner": True}]

    load = store.read(AREA_LOAD, area_id)
    assert load["areaId"] == area_id
    assert load["areaCreatorId"] == "person1"
    assert re.fullmatch(r"rr[0-9a-f]{24}", load["areaKey"])
    assert load["placements"][0]["Tid"] == GROUND_THING_ID
    assert store.exists(AREA_BUNDLE, load["areaKey"], area_id)

    assert await area_service.get_subareas(area_id) == {"subAreas": []}
    assert ready_index.find_by_normalized_name("bluecastle") == area_id
    assert ready_index.find_by_id(area_id).description == "stone walls"


@pytest.mark.asyncio
async def test_create_area_updates_area_list(area_service: AreaService, ready_index: AreaIndex):
    """Test that created areas appear in the created, visited and newest sections."""
    area_id = await area_service.create_area("Red Keep", "person1")

    area_list = await area_service.get_area_list()

    expected = {"id": area_id, "name": "Red Keep", "playerCount": 0}
    assert area_list["created"] == [expected]
    assert area_list["visited"] == [expected]
    assert area_list["newest"] == [expected]
    assert area_list["totalAreas"] == 1


@pytest.mark.asyncio
async def test_newest_section_is_capped(area_service: AreaService, store: DocumentStore, ready_index: AreaIndex):
    """Test that the newest section keeps only the most recent areas."""
    seeded = empty_area_list()
    seeded["newest"] = [{"id": f"old{n}", "name": f"Old {n}", "playerCount": 0} for n in range(NEWEST_AREAS_LIMIT)]
    store.write(AREA_LIST, AREA_LIST_ID, seeded)

    area_id = await area_service.create_area("Brand New", "person1")

    newest = (await area_service.get_area_list())["newest"]
    assert len(newest) == NEWEST_AREAS_LIMIT
    assert newest[0]["id"] == area_id


@pytest.mark.asyncio
async def test_concurrent_creates_all_recorded(area_service: AreaService, ready_index: AreaIndex):
    """Test that parallel creations do not overwrite each other's area list entries."""
    ids = await asyncio.gather(*(area_service.create_area(f"Area {n}", "person1") for n in range(10)))

    area_list = await area_service.get_area_list()

    assert sorted(item["id"] for item in area_list["created"]) == sorted(ids)
    assert area_list["totalAreas"] == 10
    assert len(ready_index) == 10


@pytest.mark.asyncio
async def test_create_area_requires_name(area_service: AreaService, ready_index: AreaIndex):
    """Test that an empty name is rejected."""
    with pytest.raises(ValidationError):
        await area_service.create_area("   ", "person1")


@pytest.mark.asyncio
async def test_record_visit_is_idempotent(area_service: AreaService, ready_index: AreaIndex):
    """Test that a visited area is listed once."""
    assert await area_service.record_visit("a1", "Somewhere") is True
    assert await area_service.record_visit("a1", "Somewhere") is False

    assert (await area_service.get_area_list())["visited"] == [{"id": "a1", "name": "Somewhere", "playerCount": 0}]


@pytest.mark.asyncio
async def test_save_area_stores_and_indexes(area_service: AreaService, store: DocumentStore, ready_index: AreaIndex):
    """Test that an editor save writes area-load and updates the index."""
    area_id = await area_service.save_area({"id": "a1", "name": "Saved", "description": "d"}, creator_id="p9")

    assert area_id == "a1"
    assert store.read(AREA_LOAD, "a1")["creatorId"] == "p9"
    assert ready_index.find_by_id("a1").name == "Saved"


@pytest.mark.asyncio
async def test_save_area_generates_object_id(area_service: AreaService, ready_index: AreaIndex):
    """Test that a body without id gets a fresh ObjectId-style id."""
    area_id = await area_service.save_area({"name": "No Id"})

    assert re.fullmatch(r"[0-9a-f]{24}", area_id)


@pytest.mark.asyncio
async def test_save_area_requires_name(area_service: AreaService, ready_index: AreaIndex):
    """Test that a body without a name is rejected."""
    with pytest.raises(ValidationError):
        await area_service.save_area({"id": "a1"})


@pytest.mark.asyncio
async def test_load_area_by_url_name(area_service: AreaService, ready_index: AreaIndex):
    """Test that an area can be loaded through its normalized name."""
    area_id = await area_service.create_area("Blue Castle", "person1")

    by_name = await area_service.load_area(url_name="bluecastle")
    by_id = await area_service.load_area(area_id=area_id)

    assert by_name is not None
    assert by_name == by_id


@pytest.mark.asyncio
async def test_load_unknown_area_returns_none(area_service: AreaService, ready_index: AreaIndex):
    """Test that unknown ids and names load as None."""
    assert await area_service.load_area(area_id="nope") is None
    assert await area_service.load_area(url_name="nowhere") is None
    assert await area_service.load_area() is None


@pytest.mark.asyncio
async def test_get_area_info_missing_raises(area_service: AreaService, ready_index: AreaIndex):
    """Test that missing area info surfaces as DocumentNotFoundError."""
    with pytest.raises(DocumentNotFoundError):
        await area_service.get_area_info("missing")
