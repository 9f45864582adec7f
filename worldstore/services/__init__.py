"""
Services for worldstore.

Mutating operations on accounts, areas and placements, built on the document
store and serialized per resource through the write serializer.
"""

from .account_service import AccountService
from .area_service import AreaService
from .placement_service import PlacementService
from .write_serializer import WriteSerializer

__all__ = ["AccountService", "AreaService", "PlacementService", "WriteSerializer"]
