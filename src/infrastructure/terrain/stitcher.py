"""Raster Fetcher/Stitcher.

Fetches a set of tiles concurrently from a TileSource and composites them
into one RasterBuffer, each tile drawn at
``((x - min_x) * tile_size, (y - min_y) * tile_size)``.

Failure policy:
- A tile that fails (fetch error, per-tile timeout, undecodable bytes) is
  logged and left out; its region keeps the default (0, 0, 0, 0) value.
- If no tile loads at all, the stitch fails with NoTilesLoadedError.

Tile draws target disjoint regions of the canvas and run on the event loop
thread, so completion order does not affect the result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

import numpy as np
from numpy.typing import NDArray

from domain.terrain.errors import NoTilesLoadedError, TileFetchFailedError
from domain.terrain.repositories import TileSource
from domain.terrain.value_objects import RasterBuffer, TileCoord

from .tile_codec import decode_tile_image, fit_to_tile

logger = logging.getLogger(__name__)

DEFAULT_TILE_SIZE = 512  # MapTiler tiles are 512x512
DEFAULT_MAX_CONCURRENCY = 8

TileDecoder = Callable[[bytes], NDArray[np.uint8]]


def _describe(exc: BaseException) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


async def stitch_tiles(
    tiles: Iterable[TileCoord],
    source: TileSource,
    *,
    tile_size: int = DEFAULT_TILE_SIZE,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    tile_timeout_s: float | None = None,
    decode: TileDecoder = decode_tile_image,
) -> RasterBuffer:
    """Fetch and composite tiles, tolerating individual tile failures.

    Args:
        tiles: Tiles to fetch, all at the same zoom
        source: Acquisition port returning encoded tile bytes
        tile_size: Pixel size of each tile slot in the output
        max_concurrency: Maximum tiles in flight at once
        tile_timeout_s: Optional deadline per tile fetch (counts as a failure)
        decode: Bytes -> (H, W, 4) uint8 decoder

    Returns:
        RasterBuffer sized (columns * tile_size) x (rows * tile_size)

    Raises:
        NoTilesLoadedError: If not a single tile loaded
        ValueError: If tiles mix zoom levels or parameters are invalid
    """
    if tile_size <= 0:
        raise ValueError(f"tile_size must be positive, got {tile_size}")
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

    requested = tuple(dict.fromkeys(tiles))
    if not requested:
        raise NoTilesLoadedError(source.name, 0)
    zooms = {tile.z for tile in requested}
    if len(zooms) != 1:
        raise ValueError(f"Tiles must share one zoom level, got {sorted(zooms)}")
    zoom = zooms.pop()

    min_x = min(tile.x for tile in requested)
    min_y = min(tile.y for tile in requested)
    columns = max(tile.x for tile in requested) - min_x + 1
    rows = max(tile.y for tile in requested) - min_y + 1

    logger.info(
        "Stitching %d %s tiles (%dx%d) at zoom %d",
        len(requested),
        source.name,
        columns,
        rows,
        zoom,
    )

    canvas = np.zeros((rows * tile_size, columns * tile_size, 4), dtype=np.uint8)
    semaphore = asyncio.Semaphore(max_concurrency)
    loaded: set[TileCoord] = set()
    failed: set[TileCoord] = set()
    failures: list[TileFetchFailedError] = []

    def _decode_into_slot(payload: bytes) -> NDArray[np.uint8]:
        return fit_to_tile(decode(payload), tile_size)

    async def _fetch(tile: TileCoord) -> bytes:
        if tile_timeout_s is None:
            return await source.fetch_tile(tile)
        return await asyncio.wait_for(source.fetch_tile(tile), tile_timeout_s)

    async def _load(tile: TileCoord) -> None:
        async with semaphore:
            try:
                payload = await _fetch(tile)
                pixels = await asyncio.to_thread(_decode_into_slot, payload)
            except Exception as e:  # isolate each tile: siblings keep running
                failure = (
                    e
                    if isinstance(e, TileFetchFailedError)
                    else TileFetchFailedError(tile, _describe(e))
                )
                logger.warning("Skipping %s tile: %s", source.name, failure)
                failures.append(failure)
                failed.add(tile)
                return

        px = (tile.x - min_x) * tile_size
        py = (tile.y - min_y) * tile_size
        canvas[py : py + tile_size, px : px + tile_size] = pixels
        loaded.add(tile)

    await asyncio.gather(*(_load(tile) for tile in requested))

    logger.info(
        "%s tiles: %d loaded, %d failed", source.name, len(loaded), len(failures)
    )
    if not loaded:
        raise NoTilesLoadedError(source.name, len(requested), tuple(failures))

    return RasterBuffer(
        data=canvas,
        tile_size=tile_size,
        zoom=zoom,
        origin_x=min_x,
        origin_y=min_y,
        loaded=frozenset(loaded),
        failed=frozenset(failed),
        layer=source.name,
    )
