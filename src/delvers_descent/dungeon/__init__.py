"""Dungeon module -- layered map generation and validation."""

from delvers_descent.dungeon.map_gen import (
    MapGenerator,
    MapStatistics,
    MapValidation,
    node_id,
)

__all__ = [
    "MapGenerator",
    "MapStatistics",
    "MapValidation",
    "node_id",
]
