"""
Dependency injection providers for worldstore.

Each getter reads one component from the ApplicationContainer on
``request.app.state``; request handlers declare them with ``Depends``.
"""

from fastapi import Depends, Request

from .container import ApplicationContainer
from .indexing.area_index import AreaIndex
from .persistence.document_store import DocumentStore
from .services.account_service import AccountService
from .services.area_service import AreaService
from .services.placement_service import PlacementService
from .services.write_serializer import WriteSerializer


def get_container(request: Request) -> ApplicationContainer:
    """
    Get the application container from request state.

    Raises:
        RuntimeError: If the lifespan has not installed a container
    """
    if not hasattr(request.app.state, "container"):
        raise RuntimeError(
            "ApplicationContainer not found in app.state - ensure container is initialized in lifespan context"
        )
    return request.app.state.container


def _require(component, name: str):
    if component is None:
        raise RuntimeError(f"{name} not initialized - ApplicationContainer.initialize() has not run")
    return component


def get_area_index(container: ApplicationContainer = Depends(get_container)) -> AreaIndex:
    return _require(container.area_index, "AreaIndex")


def get_document_store(container: ApplicationContainer = Depends(get_container)) -> DocumentStore:
    return _require(container.document_store, "DocumentStore")


def get_write_serializer(container: ApplicationContainer = Depends(get_container)) -> WriteSerializer:
    return _require(container.write_serializer, "WriteSerializer")


def get_area_service(container: ApplicationContainer = Depends(get_container)) -> AreaService:
    return _require(container.area_service, "AreaService")


def get_account_service(container: ApplicationContainer = Depends(get_container)) -> AccountService:
    return _require(container.account_service, "AccountService")


def get_placement_service(container: ApplicationContainer = Depends(get_container)) -> PlacementService:
    return _require(container.placement_service, "PlacementService")
