"""
Test configuration and fixtures for the worldstore test suite.

Environment variables are set before any worldstore module is imported so the
module-level configuration and logging setup see test values.
"""

import os
from collections.abc import Generator
from pathlib import Path

import pytest

os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")
os.environ.setdefault("INDEX_WATCH_ENABLED", "false")
os.environ.setdefault("SERVER_PORT", "54731")

from worldstore.config import reset_config  # noqa: E402
from worldstore.container import ApplicationContainer  # noqa: E402
from worldstore.indexing.area_index import AreaIndex  # noqa: E402
from worldstore.indexing.builder import AreaIndexBuilder  # noqa: E402
from worldstore.indexing.cache import AreaIndexCache  # noqa: E402
from worldstore.persistence.document_store import DocumentStore  # noqa: E402
from worldstore.persistence.kinds import AREA_INFO  # noqa: E402
from worldstore.services.account_service import AccountService  # noqa: E402
from worldstore.services.area_service import AreaService  # noqa: E402
from worldstore.services.placement_service import PlacementService  # noqa: E402
from worldstore.services.write_serializer import WriteSerializer  # noqa: E402
from worldstore.structured_logging.enhanced_logging_config import (  # noqa: E402
    clear_request_context,
    reset_logging_state,
)


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point storage at a temporary directory and reset process-wide singletons."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("STORAGE_CACHE_DIR", str(tmp_path / "cache"))
    reset_config()
    ApplicationContainer.reset_instance()
    clear_request_context()
    yield
    clear_request_context()
    ApplicationContainer.reset_instance()
    reset_logging_state()
    reset_config()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def store(data_dir: Path, cache_dir: Path) -> DocumentStore:
    return DocumentStore(data_dir, cache_dir)


@pytest.fixture
def serializer() -> WriteSerializer:
    return WriteSerializer()


@pytest.fixture
def area_index(store: DocumentStore) -> AreaIndex:
    """An uninitialized index over the temporary store."""
    return AreaIndex(AreaIndexBuilder(store), AreaIndexCache(store))


@pytest.fixture
def area_service(store: DocumentStore, serializer: WriteSerializer, area_index: AreaIndex) -> AreaService:
    return AreaService(store, serializer, area_index)


@pytest.fixture
def identity() -> dict[str, str]:
    """Mutable holder for the identity returned by the account service resolver."""
    return {"profile": "alice"}


@pytest.fixture
def account_service(
    store: DocumentStore, serializer: WriteSerializer, area_service: AreaService, identity: dict[str, str]
) -> AccountService:
    return AccountService(store, serializer, lambda: identity["profile"], area_service=area_service)


@pytest.fixture
def placement_service(store: DocumentStore, serializer: WriteSerializer) -> PlacementService:
    return PlacementService(store, serializer)


@pytest.fixture
def write_area_info(store: DocumentStore):
    """Write an area-info document directly, bypassing the services."""

    def _write(area_id: str, name: str, description: str | None = None, **extra) -> None:
        document = {"name": name, **extra}
        if description is not None:
            document["description"] = description
        store.write(AREA_INFO, area_id, document)

    return _write
