"""Terrain Bounded Context - Elevation Decoding.

Interprets the color channels of a stitched elevation raster as meters.

The packing is a property of the tile source, so it is expressed as an
ElevationEncoding strategy selected at configuration time:

- terrain-rgb (Mapbox / MapTiler):
      elevation = -10000 + (R * 65536 + G * 256 + B) * 0.1
- terrarium (Mapzen / Mapterhorn):
      elevation = (R * 256 + G + B / 256) - 32768
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np

from domain.terrain.value_objects import (
    ElevationField,
    LocalPoint,
    RasterBuffer,
    grid_cell,
)

logger = logging.getLogger(__name__)


class ElevationEncoding(Protocol):
    """Strategy decoding RGB channels into meters.

    ``decode`` accepts Python numbers or float64 numpy arrays of equal shape.
    """

    name: str

    def decode(self, r: Any, g: Any, b: Any) -> Any: ...


@dataclass(frozen=True)
class TerrainRGBEncoding:
    """Linear 24-bit packing: offset + (R·65536 + G·256 + B) × scale."""

    scale: float = 0.1
    offset: float = -10000.0
    name: str = "terrain-rgb"

    def decode(self, r: Any, g: Any, b: Any) -> Any:
        return self.offset + (r * 65536 + g * 256 + b) * self.scale


@dataclass(frozen=True)
class TerrariumEncoding:
    """Fixed-point packing: R·256 + G + B/256 − 32768."""

    name: str = "terrarium"

    def decode(self, r: Any, g: Any, b: Any) -> Any:
        return (r * 256 + g + b / 256) - 32768


TERRAIN_RGB = TerrainRGBEncoding()
TERRARIUM = TerrariumEncoding()

_ENCODINGS: dict[str, ElevationEncoding] = {
    TERRAIN_RGB.name: TERRAIN_RGB,
    TERRARIUM.name: TERRARIUM,
}


def encoding_by_name(name: str) -> ElevationEncoding:
    """Look up a registered encoding ("terrain-rgb" or "terrarium")."""
    try:
        return _ENCODINGS[name]
    except KeyError:
        raise ValueError(
            f"Unknown elevation encoding {name!r}; expected one of {sorted(_ENCODINGS)}"
        ) from None


def decode_elevation(r: int, g: int, b: int) -> float:
    """Decode a single terrain-rgb pixel to meters.

    >>> decode_elevation(0, 0, 0)
    -10000.0
    """
    return float(TERRAIN_RGB.decode(r, g, b))


def sample_elevation_field(
    buffer: RasterBuffer,
    resolution: int,
    encoding: ElevationEncoding = TERRAIN_RGB,
) -> ElevationField:
    """Resample a stitched raster to an N x N elevation grid.

    Sample (row, col) reads pixel
    ``(floor(col * width / N), floor(row * height / N))``: a nearest-neighbor
    pick, no averaging. Samples landing in tiles that did not load are NaN.

    Raises:
        ValueError: If resolution < 2
    """
    if resolution < 2:
        raise ValueError(f"resolution must be >= 2, got {resolution}")

    # Integer arithmetic keeps the floor exact
    cols = np.arange(resolution, dtype=np.int64) * buffer.width // resolution
    rows = np.arange(resolution, dtype=np.int64) * buffer.height // resolution
    index = np.ix_(rows, cols)

    channels = buffer.data[index][..., :3].astype(np.float64)
    elevation = encoding.decode(channels[..., 0], channels[..., 1], channels[..., 2])

    covered = buffer.coverage_mask()[index]
    elevation = np.where(covered, elevation, np.nan)

    field = ElevationField(data=elevation)
    if field.nodata_count():
        logger.debug(
            "Elevation field %dx%d: %d samples without data",
            resolution,
            resolution,
            field.nodata_count(),
        )
    return field


def sample_elevation(field: ElevationField, point: LocalPoint, size: float) -> float:
    """Raw elevation in meters at the grid sample under a local point.

    The point is clamped onto the grid; NaN means no data at that sample.
    """
    row, col = grid_cell(point, size, field.resolution)
    return float(field.data[row, col])
