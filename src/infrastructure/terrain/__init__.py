"""Infrastructure adapters for the terrain bounded context.

This module provides the I/O side of terrain loading: HTTP tile acquisition,
tile image decoding and the concurrent tile stitcher.
"""

from .http_tile_source import (
    HttpTileSource,
    maptiler_map_source,
    maptiler_terrain_source,
)
from .stitcher import stitch_tiles
from .tile_codec import decode_tile_image, encode_png

__all__ = [
    "HttpTileSource",
    "decode_tile_image",
    "encode_png",
    "maptiler_map_source",
    "maptiler_terrain_source",
    "stitch_tiles",
]
