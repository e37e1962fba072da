"""Terrain Bounded Context - Error Hierarchy.

Custom exceptions for terrain loading.

Propagation policy:
- TileFetchFailedError is absorbed at the stitching boundary (logged, the
  tile is left out of the composite).
- NoTilesLoadedError, TerrainBranchError and TerrainLoadTimeoutError escape
  to the caller of the loader.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.terrain.value_objects import TileCoord


class TerrainError(Exception):
    """Base error for terrain operations."""


class InvalidBoundsError(TerrainError):
    """Geographic bounds are malformed, degenerate or outside Web Mercator range."""


class InvalidRasterError(TerrainError):
    """Tile bytes are not a decodable image, or have an unsupported band layout."""


class TileFetchFailedError(TerrainError):
    """A single tile could not be acquired or decoded.

    Attributes:
        tile: The TileCoord that failed
        reason: Human-readable cause
    """

    def __init__(self, tile: "TileCoord", reason: str) -> None:
        self.tile = tile
        self.reason = reason
        super().__init__(f"Tile {tile.z}/{tile.x}/{tile.y} failed: {reason}")


class NoTilesLoadedError(TerrainError):
    """Every tile of a stitch failed - nothing to composite.

    Attributes:
        layer: Name of the tile source (e.g. "terrain-rgb", "aquarelle")
        attempted: Number of tiles requested
        failures: The individual tile failures
    """

    def __init__(
        self,
        layer: str,
        attempted: int,
        failures: tuple[TileFetchFailedError, ...] = (),
    ) -> None:
        self.layer = layer
        self.attempted = attempted
        self.failures = failures
        super().__init__(f"All {attempted} {layer} tiles failed to load")


class TerrainBranchError(TerrainError):
    """One branch of a terrain load failed unrecoverably.

    Attributes:
        branch: "elevation" or "texture"
        cause: The underlying TerrainError
    """

    def __init__(self, branch: str, cause: TerrainError) -> None:
        self.branch = branch
        self.cause = cause
        super().__init__(f"Terrain {branch} branch failed: {cause}")


class TerrainLoadTimeoutError(TerrainError):
    """The overall terrain load deadline elapsed before both branches finished."""

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(f"Terrain load exceeded {timeout_s:.3f}s deadline")
