"""Terrain Pipeline Orchestrator.

Runs the two branches of a terrain load concurrently and joins them under a
single deadline:

- elevation: tiles -> stitch -> decode elevation field -> displaced mesh
- texture:   tiles -> stitch -> color grade

Outcomes:
- both branches succeed          -> TerrainResult(mesh, texture)
- a branch fails unrecoverably   -> TerrainBranchError naming the branch
- the deadline elapses first     -> TerrainLoadTimeoutError; both branches
  are cancelled and late tile results are discarded

Callers are expected to fall back to a flat, untextured surface on failure.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import TypeVar

import aiohttp

from domain.terrain.elevation import (
    TERRAIN_RGB,
    ElevationEncoding,
    encoding_by_name,
    sample_elevation_field,
)
from domain.terrain.errors import (
    TerrainBranchError,
    TerrainError,
    TerrainLoadTimeoutError,
)
from domain.terrain.mesh import synthesize_mesh
from domain.terrain.repositories import TileSource
from domain.terrain.texture import grade_texture
from domain.terrain.tiling import BoundsLike, coerce_bounds, tiles_covering
from domain.terrain.value_objects import (
    DAKAR_BOUNDS,
    GradedTexture,
    RasterBuffer,
    TerrainMesh,
    TerrainResult,
)
from infrastructure.terrain.http_tile_source import (
    maptiler_map_source,
    maptiler_terrain_source,
)
from infrastructure.terrain.stitcher import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_TILE_SIZE,
    TileDecoder,
    stitch_tiles,
)
from infrastructure.terrain.tile_codec import decode_tile_image

from .config import TerrainSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUICK_TEXTURE_ZOOM = 13  # Fewer tiles for a fast first render
DEFAULT_TIMEOUT_S = 30.0

ELEVATION_BRANCH = "elevation"
TEXTURE_BRANCH = "texture"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


async def _run_branch(branch: str, work: Awaitable[T]) -> T:
    try:
        return await work
    except TerrainError as e:
        logger.warning("Terrain %s branch failed: %s", branch, e)
        raise TerrainBranchError(branch, e) from e


class TerrainLoader:
    """Loads a terrain mesh and its texture for one bounding region.

    Parameters
    ----------
    elevation_source: TileSource
        Tiles packed with ``encoding`` (terrain-rgb by default).
    texture_source: TileSource
        Visual basemap tiles.
    bounds:
        Region to cover; GeoBounds, mapping or (west, south, east, north).
    zoom: int
        Tile zoom level (13 = fast, 14 = balanced).
    resolution: int
        Mesh resolution N (N x N vertices).
    size: float
        Terrain extent in world units.
    exaggeration: float
        Displacement of the highest sample in world units.
    decode:
        Tile bytes -> (H, W, 4) uint8 RGBA decoder (rasterio by default).

    Raises
    ------
    InvalidBoundsError
        If ``bounds`` is malformed; raised before any I/O.
    ValueError
        If a numeric parameter is out of range.
    """

    def __init__(
        self,
        elevation_source: TileSource,
        texture_source: TileSource,
        *,
        bounds: BoundsLike = DAKAR_BOUNDS,
        zoom: int = 14,
        resolution: int = 128,
        size: float = 100.0,
        exaggeration: float = 5.0,
        encoding: ElevationEncoding = TERRAIN_RGB,
        tile_size: int = DEFAULT_TILE_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        tile_timeout_s: float | None = None,
        decode: TileDecoder = decode_tile_image,
    ) -> None:
        if zoom < 0:
            raise ValueError(f"zoom must be >= 0, got {zoom}")
        if resolution < 2:
            raise ValueError(f"resolution must be >= 2, got {resolution}")
        if size <= 0:
            raise ValueError(f"size must be positive, got {size}")
        if exaggeration < 0:
            raise ValueError(f"exaggeration must be >= 0, got {exaggeration}")

        self.elevation_source = elevation_source
        self.texture_source = texture_source
        self.bounds = coerce_bounds(bounds)
        self.zoom = zoom
        self.resolution = resolution
        self.size = size
        self.exaggeration = exaggeration
        self.encoding = encoding
        self.tile_size = tile_size
        self.max_concurrency = max_concurrency
        self.tile_timeout_s = tile_timeout_s
        self.decode = decode

    @classmethod
    def from_settings(
        cls,
        settings: TerrainSettings,
        elevation_source: TileSource,
        texture_source: TileSource,
    ) -> "TerrainLoader":
        return cls(
            elevation_source,
            texture_source,
            bounds=settings.bounds,
            zoom=settings.zoom,
            resolution=settings.resolution,
            size=settings.size,
            exaggeration=settings.exaggeration,
            encoding=encoding_by_name(settings.elevation_encoding),
            tile_size=settings.tile_size,
            max_concurrency=settings.max_concurrency,
            tile_timeout_s=settings.tile_timeout_s,
        )

    async def _stitch(self, source: TileSource, zoom: int) -> RasterBuffer:
        return await stitch_tiles(
            tiles_covering(self.bounds, zoom),
            source,
            tile_size=self.tile_size,
            max_concurrency=self.max_concurrency,
            tile_timeout_s=self.tile_timeout_s,
            decode=self.decode,
        )

    async def load_mesh(self) -> TerrainMesh:
        """Elevation branch only: fetch, decode and synthesize the mesh.

        Raises:
            NoTilesLoadedError: If every elevation tile failed
        """
        logger.info("Generating terrain mesh...")
        start = time.perf_counter()

        buffer = await self._stitch(self.elevation_source, self.zoom)
        field = await asyncio.to_thread(
            sample_elevation_field, buffer, self.resolution, self.encoding
        )
        mesh = await asyncio.to_thread(
            synthesize_mesh, field, self.size, self.exaggeration
        )

        logger.info(
            "Terrain mesh generated in %.0fms (%dx%d vertices)",
            _elapsed_ms(start),
            self.resolution,
            self.resolution,
        )
        return mesh

    async def load_texture(self, zoom: int | None = None) -> GradedTexture:
        """Texture branch only: fetch, stitch and color grade basemap tiles.

        Raises:
            NoTilesLoadedError: If every texture tile failed
        """
        zoom = self.zoom if zoom is None else zoom
        logger.info("Generating map texture at zoom %d...", zoom)
        start = time.perf_counter()

        buffer = await self._stitch(self.texture_source, zoom)
        texture = await asyncio.to_thread(grade_texture, buffer)

        logger.info(
            "Map texture generated in %.0fms (%dx%dpx)",
            _elapsed_ms(start),
            texture.width,
            texture.height,
        )
        return texture

    async def load_quick_texture(self) -> GradedTexture:
        """Lower-zoom texture for a fast first render."""
        return await self.load_texture(QUICK_TEXTURE_ZOOM)

    async def load(self, timeout_s: float = DEFAULT_TIMEOUT_S) -> TerrainResult:
        """Run both branches concurrently under one deadline.

        Raises:
            TerrainBranchError: If a branch failed; ``branch`` names it
            TerrainLoadTimeoutError: If the deadline elapsed first
        """
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {timeout_s}")

        start = time.perf_counter()
        tasks = (
            asyncio.create_task(
                _run_branch(ELEVATION_BRANCH, self.load_mesh()),
                name="terrain-elevation",
            ),
            asyncio.create_task(
                _run_branch(TEXTURE_BRANCH, self.load_texture()),
                name="terrain-texture",
            ),
        )
        try:
            mesh, texture = await asyncio.wait_for(
                asyncio.gather(*tasks), timeout=timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning("Terrain load timed out after %.1fs", timeout_s)
            raise TerrainLoadTimeoutError(timeout_s) from None
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        logger.info("Terrain loaded in %.0fms", _elapsed_ms(start))
        return TerrainResult(mesh=mesh, texture=texture)


async def load_terrain(
    zoom: int = 14,
    resolution: int = 128,
    size: float = 100.0,
    exaggeration: float = 5.0,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    *,
    elevation_source: TileSource,
    texture_source: TileSource,
    bounds: BoundsLike = DAKAR_BOUNDS,
    encoding: ElevationEncoding = TERRAIN_RGB,
    tile_size: int = DEFAULT_TILE_SIZE,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    tile_timeout_s: float | None = None,
) -> TerrainResult:
    """Load a terrain mesh and matching texture from two tile sources.

    Raises:
        InvalidBoundsError: If ``bounds`` is malformed
        TerrainBranchError: If the elevation or texture branch failed
        TerrainLoadTimeoutError: If ``timeout_s`` elapsed first
    """
    loader = TerrainLoader(
        elevation_source,
        texture_source,
        bounds=bounds,
        zoom=zoom,
        resolution=resolution,
        size=size,
        exaggeration=exaggeration,
        encoding=encoding,
        tile_size=tile_size,
        max_concurrency=max_concurrency,
        tile_timeout_s=tile_timeout_s,
    )
    return await loader.load(timeout_s)


async def load_terrain_from_settings(
    settings: TerrainSettings,
    session: aiohttp.ClientSession | None = None,
) -> TerrainResult:
    """Load terrain from the MapTiler endpoints described by ``settings``.

    Opens (and closes) its own HTTP session unless one is given.
    """
    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await load_terrain_from_settings(settings, own_session)

    loader = TerrainLoader.from_settings(
        settings,
        maptiler_terrain_source(session, settings.api_key()),
        maptiler_map_source(session, settings.api_key(), style=settings.texture_style),
    )
    return await loader.load(settings.timeout_s)
