"""
Persistence layer for worldstore.

Documents are JSON objects on the local filesystem, addressed by kind and id.
"""

from .document_store import DocumentStore
from .kinds import ALL_KINDS, DocumentKind, StorageRoot, get_kind

__all__ = ["ALL_KINDS", "DocumentKind", "DocumentStore", "StorageRoot", "get_kind"]
