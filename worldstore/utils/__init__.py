"""
Utility modules for worldstore.

This package contains identifier generation and error logging helpers shared
by the persistence, indexing and service layers.
"""

from .ids import generate_bundle_key, generate_id, generate_object_id

__all__ = ["generate_bundle_key", "generate_id", "generate_object_id"]
