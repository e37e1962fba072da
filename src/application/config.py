"""Terrain loading configuration.

TerrainSettings carries every knob of a terrain load. Values are validated at
construction time; ``from_env`` builds settings from environment variables:

    MAPTILER_API_KEY            API key for the MapTiler tile endpoints
    TERRAIN_ZOOM                Tile zoom level (13 = fast, 14 = balanced)
    TERRAIN_RESOLUTION          Mesh resolution N (64 = low, 128 = medium, 256 = high)
    TERRAIN_SIZE                Terrain extent in world units
    TERRAIN_EXAGGERATION        Height of the highest point in world units
    TERRAIN_TIMEOUT_S           Overall load deadline in seconds
    TERRAIN_MAX_CONCURRENCY     Tiles in flight per stitch
    TERRAIN_TEXTURE_STYLE       MapTiler map style for the texture
    TERRAIN_ELEVATION_ENCODING  "terrain-rgb" or "terrarium"
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from domain.terrain.value_objects import DAKAR_BOUNDS, GeoBounds

_ENV_FIELDS = {
    "TERRAIN_ZOOM": "zoom",
    "TERRAIN_RESOLUTION": "resolution",
    "TERRAIN_SIZE": "size",
    "TERRAIN_EXAGGERATION": "exaggeration",
    "TERRAIN_TIMEOUT_S": "timeout_s",
    "TERRAIN_MAX_CONCURRENCY": "max_concurrency",
    "TERRAIN_TEXTURE_STYLE": "texture_style",
    "TERRAIN_ELEVATION_ENCODING": "elevation_encoding",
}


class TerrainSettings(BaseModel):
    """Validated parameters for a terrain load."""

    bounds: GeoBounds = DAKAR_BOUNDS
    zoom: int = Field(default=14, ge=0, le=22)
    resolution: int = Field(default=128, ge=2, le=1024)
    size: float = Field(default=100.0, gt=0)
    exaggeration: float = Field(default=5.0, ge=0)
    timeout_s: float = Field(default=30.0, gt=0)
    tile_size: int = Field(default=512, gt=0)
    max_concurrency: int = Field(default=8, ge=1)
    tile_timeout_s: float | None = Field(default=None, gt=0)
    elevation_encoding: Literal["terrain-rgb", "terrarium"] = "terrain-rgb"
    texture_style: str = "aquarelle"
    maptiler_api_key: SecretStr | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: object
    ) -> "TerrainSettings":
        """Build settings from environment variables, then keyword overrides.

        Raises:
            pydantic.ValidationError: If a value does not parse or is out of range
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if env.get("MAPTILER_API_KEY"):
            values["maptiler_api_key"] = env["MAPTILER_API_KEY"]
        for var, field_name in _ENV_FIELDS.items():
            if env.get(var):
                values[field_name] = env[var]
        values.update(overrides)
        return cls(**values)

    def api_key(self) -> str | None:
        if self.maptiler_api_key is None:
            return None
        return self.maptiler_api_key.get_secret_value()
