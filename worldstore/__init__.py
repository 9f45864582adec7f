"""
worldstore - document persistence and area index for a persistent world server.

Entities (accounts, areas, placements, things) are stored as individually
addressable JSON documents; areas are additionally indexed for lookup by id,
normalized name and name substring.
"""

__version__ = "0.1.0"
