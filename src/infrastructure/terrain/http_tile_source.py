"""HTTP adapter for the TileSource port.

Fetches XYZ tiles with aiohttp from any ``{z}/{x}/{y}`` URL template, plus
factories for the MapTiler terrain-rgb and raster map endpoints.

Session lifecycle is owned by the caller: pass an open aiohttp.ClientSession
and close it when done (``async with aiohttp.ClientSession() as session``).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from domain.terrain.errors import TileFetchFailedError
from domain.terrain.value_objects import TileCoord

logger = logging.getLogger(__name__)

HTTP_OK = 200

MAPTILER_TERRAIN_RGB_URL = (
    "https://api.maptiler.com/tiles/terrain-rgb/{z}/{x}/{y}.png?key={key}"
)
MAPTILER_MAP_URL = "https://api.maptiler.com/maps/{style}/{z}/{x}/{y}.png?key={key}"
DEFAULT_MAP_STYLE = "aquarelle"


class HttpTileSource:
    """TileSource fetching tiles over HTTP.

    Parameters
    ----------
    url_template: str
        Template with ``{z}``, ``{x}``, ``{y}`` placeholders and any names
        supplied in ``params``.
    session: aiohttp.ClientSession
        Open session used for every request.
    name: str
        Layer name used in logs and errors. Never contains secrets.
    timeout_s: float | None
        Optional total timeout per request.
    params: dict | None
        Extra template values (API key, style).
    """

    def __init__(
        self,
        url_template: str,
        session: aiohttp.ClientSession,
        *,
        name: str = "tiles",
        timeout_s: float | None = None,
        params: dict[str, Any] | None = None,
    ) -> None:
        self.url_template = url_template
        self.session = session
        self.name = name
        self.timeout_s = timeout_s
        self.params = dict(params or {})

    def url_for(self, tile: TileCoord) -> str:
        return self.url_template.format(z=tile.z, x=tile.x, y=tile.y, **self.params)

    async def fetch_tile(self, tile: TileCoord) -> bytes:
        """Download one tile.

        Raises:
            TileFetchFailedError: On a non-200 status, a client error or a
                request timeout
        """
        request_kwargs: dict[str, Any] = {}
        if self.timeout_s is not None:
            request_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout_s)

        # Log coordinates only: the URL may carry an API key
        logger.debug("Fetching %s tile: %d/%d/%d", self.name, tile.z, tile.x, tile.y)
        try:
            async with self.session.get(self.url_for(tile), **request_kwargs) as resp:
                if resp.status != HTTP_OK:
                    raise TileFetchFailedError(tile, f"HTTP {resp.status}")
                payload = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TileFetchFailedError(tile, f"{type(e).__name__}: {e}") from e

        logger.debug(
            "Loaded %s tile: %d/%d/%d (%d bytes)",
            self.name,
            tile.z,
            tile.x,
            tile.y,
            len(payload),
        )
        return payload


def _require_key(api_key: str | None) -> str:
    if not api_key:
        raise ValueError("A MapTiler API key is required (set MAPTILER_API_KEY)")
    return api_key


def maptiler_terrain_source(
    session: aiohttp.ClientSession,
    api_key: str | None,
    *,
    timeout_s: float | None = None,
) -> HttpTileSource:
    """MapTiler terrain-rgb elevation tiles (512px PNG)."""
    return HttpTileSource(
        MAPTILER_TERRAIN_RGB_URL,
        session,
        name="terrain-rgb",
        timeout_s=timeout_s,
        params={"key": _require_key(api_key)},
    )


def maptiler_map_source(
    session: aiohttp.ClientSession,
    api_key: str | None,
    *,
    style: str = DEFAULT_MAP_STYLE,
    timeout_s: float | None = None,
) -> HttpTileSource:
    """MapTiler raster map tiles in the given style (512px PNG)."""
    return HttpTileSource(
        MAPTILER_MAP_URL,
        session,
        name=style,
        timeout_s=timeout_s,
        params={"key": _require_key(api_key), "style": style},
    )
