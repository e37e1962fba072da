"""Terrain Bounded Context - Value Objects.

Immutable data structures representing geographic and raster concepts.
All validation occurs at construction time via Pydantic.

Array-carrying objects (RasterBuffer, ElevationField, TerrainMesh,
GradedTexture) take an owned, contiguous, read-only copy of their arrays, so
nothing is mutated after the step that produced it completes.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------
# Latitude where the square Web Mercator world ends (~85.0511)
MAX_MERCATOR_LATITUDE = math.degrees(math.atan(math.sinh(math.pi)))

RGBA_CHANNELS = 4


def _frozen_copy(data: NDArray, dtype: type) -> NDArray:
    """Return an owned, C-contiguous, read-only copy of ``data``."""
    immutable = np.array(data, dtype=dtype, copy=True, order="C")
    immutable.flags.writeable = False
    return immutable


# ---------------------------------------------------------------------------
# Geographic Value Objects
# ---------------------------------------------------------------------------
class GeoBounds(BaseModel):
    """Geographic extent in degrees (Value Object).

    Invariants:
        GB-1: west, east in [-180, 180]
        GB-2: south, north within the Web Mercator latitude range
        GB-3: west < east and south < north
    """

    west: float  # Min longitude
    south: float  # Min latitude
    east: float  # Max longitude
    north: float  # Max latitude

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "GeoBounds":
        for name in ("west", "east"):
            value = getattr(self, name)
            if not (-180 <= value <= 180):
                raise ValueError(f"{name} longitude out of range: {value}")
        for name in ("south", "north"):
            value = getattr(self, name)
            if not (-MAX_MERCATOR_LATITUDE <= value <= MAX_MERCATOR_LATITUDE):
                raise ValueError(
                    f"{name} latitude outside Web Mercator range: {value}"
                )
        if not (self.west < self.east):
            raise ValueError(
                f"Invalid longitude ordering: west={self.west} >= east={self.east}"
            )
        if not (self.south < self.north):
            raise ValueError(
                f"Invalid latitude ordering: south={self.south} >= north={self.north}"
            )
        return self

    @property
    def center(self) -> "GeoPoint":
        return GeoPoint(
            latitude=(self.south + self.north) / 2,
            longitude=(self.west + self.east) / 2,
        )


class GeoPoint(BaseModel):
    """Geographic coordinate in degrees (Value Object).

    Invariants:
        GP-1: latitude in [-90, 90]
        GP-2: longitude in [-180, 180]

    Projection and tiling additionally require |latitude| < ~85.05.
    """

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    model_config = ConfigDict(frozen=True)


class LocalPoint(BaseModel):
    """Planar position in local world units, centered on the bounds' midpoint.

    Derived, never authoritative: always recomputable from a GeoPoint and a
    (GeoBounds, world_size) pair. ``z`` grows southwards (forward is -z).
    """

    x: float
    z: float

    model_config = ConfigDict(frozen=True)


class TileCoord(BaseModel):
    """Slippy-map tile index at zoom ``z`` (Value Object)."""

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    z: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_in_grid(self) -> "TileCoord":
        n = 1 << self.z
        if self.x >= n or self.y >= n:
            raise ValueError(
                f"Tile ({self.x}, {self.y}) outside the {n}x{n} grid at zoom {self.z}"
            )
        return self


# Dakar peninsula and surrounding areas
DAKAR_BOUNDS = GeoBounds(west=-17.55, south=14.62, east=-17.35, north=14.80)

# Camera focus point for the Dakar preset
DAKAR_CENTER = GeoPoint(latitude=14.6937, longitude=-17.4441)


def grid_cell(point: LocalPoint, size: float, resolution: int) -> tuple[int, int]:
    """Return the (row, col) of the N x N grid cell under a local point.

    Row 0 is the northern edge (z = -size/2). Indices are clamped to the grid.
    """
    col = math.floor((point.x / size + 0.5) * (resolution - 1))
    row = math.floor((point.z / size + 0.5) * (resolution - 1))
    col = max(0, min(resolution - 1, col))
    row = max(0, min(resolution - 1, row))
    return row, col


# ---------------------------------------------------------------------------
# Raster Value Objects
# ---------------------------------------------------------------------------
class RasterBuffer(BaseModel):
    """Stitched RGBA pixel grid covering a rectangle of tiles (Value Object).

    Pixel (0, 0) is the north-west corner of tile (origin_x, origin_y).
    Regions of tiles that are not in ``loaded`` hold the default value
    (0, 0, 0, 0) and mean "no data", not elevation zero.

    Invariants:
        RB-1: data is (height, width, 4) uint8
        RB-2: height and width are multiples of tile_size
        RB-3: loaded and failed tiles lie inside the grid and do not overlap
    """

    data: NDArray[np.uint8]
    tile_size: int = Field(gt=0)
    zoom: int = Field(ge=0)
    origin_x: int = Field(ge=0)
    origin_y: int = Field(ge=0)
    loaded: frozenset[TileCoord]
    failed: frozenset[TileCoord] = frozenset()
    layer: str = "raster"

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_buffer(self) -> "RasterBuffer":
        if self.data.ndim != 3 or self.data.shape[2] != RGBA_CHANNELS:
            raise ValueError(f"Data must be (height, width, 4), got {self.data.shape}")
        height, width = self.data.shape[:2]
        if height == 0 or width == 0:
            raise ValueError(f"Data cannot be empty: {self.data.shape}")
        if height % self.tile_size or width % self.tile_size:
            raise ValueError(
                f"Buffer {width}x{height} is not a whole number of "
                f"{self.tile_size}px tiles"
            )
        if self.loaded & self.failed:
            raise ValueError("A tile cannot be both loaded and failed")
        columns, rows = width // self.tile_size, height // self.tile_size
        for tile in self.loaded | self.failed:
            if tile.z != self.zoom:
                raise ValueError(f"Tile zoom {tile.z} does not match buffer zoom {self.zoom}")
            if not (0 <= tile.x - self.origin_x < columns) or not (
                0 <= tile.y - self.origin_y < rows
            ):
                raise ValueError(f"Tile ({tile.x}, {tile.y}) lies outside the buffer")

        object.__setattr__(self, "data", _frozen_copy(self.data, np.uint8))
        return self

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def columns(self) -> int:
        return self.width // self.tile_size

    @property
    def rows(self) -> int:
        return self.height // self.tile_size

    def tile_offset(self, tile: TileCoord) -> tuple[int, int]:
        """Pixel (x, y) of the tile's north-west corner inside the buffer."""
        return (
            (tile.x - self.origin_x) * self.tile_size,
            (tile.y - self.origin_y) * self.tile_size,
        )

    def coverage_mask(self) -> NDArray[np.bool_]:
        """Boolean (height, width) mask, True where a loaded tile was drawn."""
        mask = np.zeros((self.height, self.width), dtype=bool)
        for tile in self.loaded:
            px, py = self.tile_offset(tile)
            mask[py : py + self.tile_size, px : px + self.tile_size] = True
        return mask


class ElevationField(BaseModel):
    """N x N grid of elevations in meters (Value Object).

    Row 0 is the northern edge. NaN marks samples taken from regions with no
    data (tiles that failed to load).
    """

    data: NDArray[np.float64]

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_field(self) -> "ElevationField":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        if self.data.shape[0] != self.data.shape[1]:
            raise ValueError(f"Elevation field must be square, got {self.data.shape}")
        if self.data.shape[0] < 2:
            raise ValueError(f"Resolution must be >= 2, got {self.data.shape[0]}")
        object.__setattr__(self, "data", _frozen_copy(self.data, np.float64))
        return self

    @property
    def resolution(self) -> int:
        return int(self.data.shape[0])

    def nodata_count(self) -> int:
        """Return number of samples without data."""
        return int(np.isnan(self.data).sum())


class TerrainMesh(BaseModel):
    """Displaced N x N surface mesh with per-vertex normals (Value Object).

    Coordinates are in the local frame: x east, y up (displaced height),
    z south. Vertex ``row * N + col`` sits over elevation sample [row, col].

    Invariants:
        TM-1: len(vertices) == N**2
        TM-2: len(indices) == 2 * (N - 1)**2
        TM-3: normals and uvs have one entry per vertex
    """

    vertices: NDArray[np.float32]  # (N*N, 3)
    indices: NDArray[np.uint32]  # (2*(N-1)**2, 3)
    normals: NDArray[np.float32]  # (N*N, 3), unit length
    uvs: NDArray[np.float32]  # (N*N, 2)
    size: float = Field(gt=0)
    exaggeration: float = Field(ge=0)
    min_elevation: float  # Normalization range (meters)
    max_elevation: float
    elevation: ElevationField

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_mesh(self) -> "TerrainMesh":
        n = self.elevation.resolution
        if self.vertices.shape != (n * n, 3):
            raise ValueError(f"Expected {n * n} vertices, got {self.vertices.shape}")
        if self.indices.shape != (2 * (n - 1) ** 2, 3):
            raise ValueError(
                f"Expected {2 * (n - 1) ** 2} triangles, got {self.indices.shape}"
            )
        if self.normals.shape != self.vertices.shape:
            raise ValueError("One normal per vertex required")
        if self.uvs.shape != (n * n, 2):
            raise ValueError("One uv per vertex required")
        object.__setattr__(self, "vertices", _frozen_copy(self.vertices, np.float32))
        object.__setattr__(self, "indices", _frozen_copy(self.indices, np.uint32))
        object.__setattr__(self, "normals", _frozen_copy(self.normals, np.float32))
        object.__setattr__(self, "uvs", _frozen_copy(self.uvs, np.float32))
        return self

    @property
    def resolution(self) -> int:
        return self.elevation.resolution

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0])

    def heights(self) -> NDArray[np.float32]:
        """Displaced heights as an N x N grid (row 0 = north)."""
        n = self.resolution
        return self.vertices[:, 1].reshape(n, n)

    def height_at(self, point: LocalPoint) -> float:
        """Displaced surface height of the grid vertex under a local point.

        Used to rest markers on the terrain.
        """
        row, col = grid_cell(point, self.size, self.resolution)
        return float(self.vertices[row * self.resolution + col, 1])


class GradedTexture(BaseModel):
    """Color-graded RGBA raster ready to drape over a TerrainMesh."""

    data: NDArray[np.uint8]  # (height, width, 4)
    layer: str
    loaded_tiles: int = Field(ge=1)
    failed_tiles: int = Field(ge=0)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_texture(self) -> "GradedTexture":
        if self.data.ndim != 3 or self.data.shape[2] != RGBA_CHANNELS:
            raise ValueError(f"Data must be (height, width, 4), got {self.data.shape}")
        object.__setattr__(self, "data", _frozen_copy(self.data, np.uint8))
        return self

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


class TerrainResult(BaseModel):
    """Combined output of a successful terrain load."""

    mesh: TerrainMesh
    texture: GradedTexture

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
