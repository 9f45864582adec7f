"""
Unit tests for the file-backed document store.

Covers path layout, reads of missing and corrupt documents, atomic writes
under failure, enumeration and deletion.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from worldstore.exceptions import DocumentCorruptError, DocumentNotFoundError, StorageIOError, ValidationError
from worldstore.persistence.document_store import DocumentStore
from worldstore.persistence.kinds import (
    ACCOUNT,
    AREA_BUNDLE,
    AREA_INDEX_CACHE,
    AREA_INFO,
    AREA_LIST,
    AREA_LIST_ID,
    PLACEMENT,
)


def test_write_then_read_returns_document(store: DocumentStore):
    """Test that a written document reads back unchanged."""
    document = {"name": "Blue Castle", "tags": ["stone", "tower"], "nested": {"n": 1}, "unicode": "äöü ✓"}
    store.write(AREA_INFO, "a1", document)

    assert store.read(AREA_INFO, "a1") == document


def test_document_path_layout(store: DocumentStore, data_dir: Path, cache_dir: Path):
    """Test that kinds resolve to their namespace under the right root."""
    assert store.path_for(ACCOUNT, "alice") == data_dir / "person" / "accounts" / "alice.json"
    assert store.path_for(AREA_LIST, AREA_LIST_ID) == data_dir / "area" / "arealist.json"
    assert store.path_for(AREA_INDEX_CACHE, "areaIndex") == cache_dir / "areaIndex.json"
    assert store.path_for(PLACEMENT, "p1", "a1") == data_dir / "placement" / "info" / "a1" / "p1.json"


def test_read_missing_document_raises_not_found(store: DocumentStore):
    """Test that reading an absent id raises DocumentNotFoundError."""
    with pytest.raises(DocumentNotFoundError) as exc_info:
        store.read(AREA_INFO, "missing")

    assert exc_info.value.kind == "area-info"
    assert exc_info.value.document_id == "missing"


def test_read_invalid_json_raises_corrupt(store: DocumentStore):
    """Test that undecodable JSON is reported as corrupt."""
    path = store.path_for(AREA_INFO, "broken")
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(DocumentCorruptError):
        store.read(AREA_INFO, "broken")


def test_read_invalid_utf8_raises_corrupt(store: DocumentStore):
    """Test that bytes that are not UTF-8 are reported as corrupt."""
    path = store.path_for(AREA_INFO, "latin1")
    path.parent.mkdir(parents=True)
    path.write_bytes(b'{"name": "\xff\xfe"}')

    with pytest.raises(DocumentCorruptError):
        store.read(AREA_INFO, "latin1")


def test_read_non_object_raises_corrupt(store: DocumentStore):
    """Test that a JSON document whose top level is not an object is corrupt."""
    path = store.path_for(AREA_INFO, "listy")
    path.parent.mkdir(parents=True)
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(DocumentCorruptError) as exc_info:
        store.read(AREA_INFO, "listy")

    assert "list" in exc_info.value.reason


def test_read_json_accepts_any_top_level(store: DocumentStore):
    """Test that read_json does not require an object."""
    path = store.path_for(AREA_INDEX_CACHE, "areaIndex")
    path.parent.mkdir(parents=True)
    path.write_text('[{"id": "a"}]', encoding="utf-8")

    assert store.read_json(AREA_INDEX_CACHE, "areaIndex") == [{"id": "a"}]


def test_read_or_default_returns_copy_of_default(store: DocumentStore):
    """Test that read_or_default does not hand out the caller's default dict."""
    default = {"subAreas": []}
    result = store.read_or_default(AREA_INFO, "absent", default)

    assert result == default
    assert result is not default


def test_overwrite_replaces_previous_version(store: DocumentStore):
    """Test that a second write fully replaces the first."""
    store.write(ACCOUNT, "alice", {"screenName": "alice", "old": True})
    store.write(ACCOUNT, "alice", {"screenName": "alice"})

    assert store.read(ACCOUNT, "alice") == {"screenName": "alice"}


def test_failed_rename_keeps_previous_version(store: DocumentStore):
    """Test that a crash before the rename leaves the old document and no temp file behind."""
    store.write(ACCOUNT, "alice", {"version": 1})

    with patch("worldstore.persistence.document_store.os.replace", side_effect=OSError("disk gone")):
        with pytest.raises(StorageIOError) as exc_info:
            store.write(ACCOUNT, "alice", {"version": 2})

    assert exc_info.value.operation == "write"
    assert store.read(ACCOUNT, "alice") == {"version": 1}
    assert os.listdir(store.namespace_path(ACCOUNT)) == ["alice.json"]


def test_failed_fsync_keeps_previous_version(store: DocumentStore):
    """Test that a failure while flushing the temp file leaves the old document intact."""
    store.write(AREA_INFO, "a1", {"name": "Before"})

    with patch("worldstore.persistence.document_store.os.fsync", side_effect=OSError("io error")):
        with pytest.raises(StorageIOError):
            store.write(AREA_INFO, "a1", {"name": "After"})

    assert store.read(AREA_INFO, "a1") == {"name": "Before"}
    assert list(store.list_keys(AREA_INFO)) == ["a1"]
    assert os.listdir(store.namespace_path(AREA_INFO)) == ["a1.json"]


def test_non_atomic_kind_writes_in_place(store: DocumentStore):
    """Test that the area list is written directly without a temp file."""
    with patch("worldstore.persistence.document_store.tempfile.mkstemp") as mkstemp:
        store.write(AREA_LIST, AREA_LIST_ID, {"visited": []})

    mkstemp.assert_not_called()
    assert store.read(AREA_LIST, AREA_LIST_ID) == {"visited": []}


def test_list_keys_skips_temp_files_and_foreign_names(store: DocumentStore):
    """Test that enumeration yields only committed document ids."""
    for area_id in ("a1", "a2", "a3"):
        store.write(AREA_INFO, area_id, {"name": area_id})
    namespace = store.namespace_path(AREA_INFO)
    (namespace / ".a4.json.abc123.tmp").write_text("{}", encoding="utf-8")
    (namespace / "notes.txt").write_text("ignore me", encoding="utf-8")
    (namespace / "subdir.json").mkdir()

    assert sorted(store.list_keys(AREA_INFO)) == ["a1", "a2", "a3"]


def test_list_keys_of_missing_namespace_is_empty(store: DocumentStore):
    """Test that a namespace that was never written yields nothing."""
    assert list(store.list_keys(AREA_INFO)) == []


def test_list_keys_is_lazy(store: DocumentStore):
    """Test that list_keys returns an iterator rather than a list."""
    store.write(AREA_INFO, "a1", {"name": "x"})
    keys = store.list_keys(AREA_INFO)

    assert iter(keys) is keys
    assert next(keys) == "a1"


def test_scoped_kind_requires_parent(store: DocumentStore):
    """Test that parent-scoped kinds reject a missing parent id."""
    with pytest.raises(ValidationError):
        store.path_for(AREA_BUNDLE, "rrabc")


def test_unscoped_kind_rejects_parent(store: DocumentStore):
    """Test that unscoped kinds reject a parent id."""
    with pytest.raises(ValidationError):
        store.path_for(AREA_INFO, "a1", "parent")


def test_scoped_documents_are_listed_per_parent(store: DocumentStore):
    """Test that scoped kinds keep one directory per parent."""
    store.write(PLACEMENT, "p1", {"Id": "p1"}, "area1")
    store.write(PLACEMENT, "p2", {"Id": "p2"}, "area2")

    assert list(store.list_keys(PLACEMENT, "area1")) == ["p1"]
    assert list(store.list_keys(PLACEMENT, "area2")) == ["p2"]


@pytest.mark.parametrize("bad_id", ["", "../escape", "a/b", "a\\b", "nul\x00byte"])
def test_invalid_document_ids_are_rejected(store: DocumentStore, bad_id: str):
    """Test that ids which could escape the namespace are refused."""
    with pytest.raises(ValidationError):
        store.write(AREA_INFO, bad_id, {"name": "x"})


def test_delete_reports_whether_document_existed(store: DocumentStore):
    """Test delete returns True once and False afterwards."""
    store.write(AREA_INFO, "a1", {"name": "x"})

    assert store.delete(AREA_INFO, "a1") is True
    assert store.delete(AREA_INFO, "a1") is False
    assert not store.exists(AREA_INFO, "a1")


@pytest.mark.asyncio
async def test_async_wrappers_delegate_to_blocking_api(store: DocumentStore):
    """Test the async API round trip through worker threads."""
    await store.async_write(AREA_INFO, "a1", {"name": "Async"})

    assert await store.async_exists(AREA_INFO, "a1")
    assert await store.async_read(AREA_INFO, "a1") == {"name": "Async"}
    assert await store.async_list_keys(AREA_INFO) == ["a1"]
    assert await store.async_read_or_default(AREA_INFO, "a2", {"name": "default"}) == {"name": "default"}
    assert await store.async_delete(AREA_INFO, "a1") is True
