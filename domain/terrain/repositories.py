"""Domain Port(s) for Tile Acquisition.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from typing import Protocol

from .value_objects import TileCoord


class TileSource(Protocol):
    """Port for acquiring raw raster tiles from an external source.

    Implementations live in infrastructure (e.g., the HTTP tile adapter).
    ``name`` identifies the layer in logs and errors.
    """

    name: str

    async def fetch_tile(self, tile: TileCoord) -> bytes:
        """Return the encoded image bytes of one tile.

        Any exception marks this tile as failed; it never aborts sibling
        fetches.
        """
        ...
