"""Terrain Bounded Context - Tile Grid Planner.

Enumerates the slippy-map tiles needed to cover a bounding region.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Union

from pydantic import ValidationError

from domain.terrain.errors import InvalidBoundsError
from domain.terrain.projection import tile_for_point
from domain.terrain.value_objects import GeoBounds, GeoPoint, TileCoord

BoundsLike = Union[GeoBounds, Sequence[float], Mapping[str, float]]


def coerce_bounds(bounds: BoundsLike) -> GeoBounds:
    """Build a validated GeoBounds from a GeoBounds, mapping or (w, s, e, n).

    Raises:
        InvalidBoundsError: If the bounds are degenerate or out of range
    """
    if isinstance(bounds, GeoBounds):
        return bounds
    try:
        if isinstance(bounds, Mapping):
            return GeoBounds(**bounds)
        west, south, east, north = bounds
        return GeoBounds(west=west, south=south, east=east, north=north)
    except (ValidationError, TypeError, ValueError) as e:
        raise InvalidBoundsError(str(e)) from e


def tiles_covering(bounds: BoundsLike, zoom: int) -> tuple[TileCoord, ...]:
    """Return every tile in the closed rectangle spanned by the bounds' corners.

    The tile under (west, north) is the top-left corner of the rectangle and
    the tile under (east, south) the bottom-right; both ends are inclusive.
    Tiles are ordered column by column (x, then y) and are unique by
    construction.

    Raises:
        InvalidBoundsError: If the bounds are degenerate or out of range
        ValueError: If zoom < 0
    """
    if zoom < 0:
        raise ValueError(f"zoom must be >= 0, got {zoom}")
    geo = coerce_bounds(bounds)

    top_left = tile_for_point(GeoPoint(latitude=geo.north, longitude=geo.west), zoom)
    bottom_right = tile_for_point(
        GeoPoint(latitude=geo.south, longitude=geo.east), zoom
    )

    return tuple(
        TileCoord(x=x, y=y, z=zoom)
        for x in range(top_left.x, bottom_right.x + 1)
        for y in range(top_left.y, bottom_right.y + 1)
    )
