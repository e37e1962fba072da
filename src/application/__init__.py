"""Application Layer.

Application services that orchestrate domain logic over infrastructure
adapters: configuration and the terrain loading pipeline.
"""

from .config import TerrainSettings
from .terrain_loader import (
    QUICK_TEXTURE_ZOOM,
    TerrainLoader,
    load_terrain,
    load_terrain_from_settings,
)

__all__ = [
    "QUICK_TEXTURE_ZOOM",
    "TerrainLoader",
    "TerrainSettings",
    "load_terrain",
    "load_terrain_from_settings",
]
