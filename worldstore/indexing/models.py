"""
Pydantic models for the area index.

AreaInfoDocument is the minimal shape an ``area-info`` document must have to
be indexed; AreaIndexEntry is what the index stores and serves.
"""

import re

from pydantic import BaseModel, ConfigDict, Field

_NAME_KEY_STRIP = re.compile(r"[^a-z0-9_-]")


def normalize_name(name: str) -> str:
    """
    Compute the normalized name key of an area name.

    The name is lower-cased, then every character that is not a lowercase
    ASCII letter, digit, hyphen or underscore is removed.
    """
    return _NAME_KEY_STRIP.sub("", name.lower())


class AreaInfoDocument(BaseModel):
    """Minimal required shape of an area-info document; other fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="Display name")
    description: str | None = Field(default=None, description="Optional description")


class AreaIndexEntry(BaseModel):
    """One indexed area."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    player_count: int = Field(default=0, alias="playerCount")

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    def to_document(self) -> dict:
        """Serialize using the stored field names (``playerCount``)."""
        return self.model_dump(by_alias=True)
