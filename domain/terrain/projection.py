"""Terrain Bounded Context - Projection.

Pure math converting between geographic coordinates, the local planar frame
the terrain is built in, and the slippy-map tile grid. No I/O, no state.

Local frame: the bounds' midpoint is the origin, the bounds span ``world_size``
units on both axes, x grows eastwards and z grows southwards.
"""

from __future__ import annotations

import math

from pyproj import Geod

from domain.terrain.value_objects import (
    MAX_MERCATOR_LATITUDE,
    GeoBounds,
    GeoPoint,
    LocalPoint,
    TileCoord,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
EARTH_RADIUS_M = 6_371_000.0  # Mean radius for haversine
DEFAULT_WORLD_SIZE = 100.0

# WGS84 ellipsoid for geodesic calculations (same as GPS, EPSG:4326)
_geod = Geod(ellps="WGS84")


def mercator_y(latitude: float) -> float:
    """Web Mercator ordinate ``ln(tan(pi/4 + lat/2))`` for a latitude in degrees."""
    return math.log(math.tan(math.pi / 4 + latitude * math.pi / 360))


def inverse_mercator_y(y: float) -> float:
    """Latitude in degrees for a Web Mercator ordinate."""
    return (2 * math.atan(math.exp(y)) - math.pi / 2) * 180 / math.pi


# ---------------------------------------------------------------------------
# Geographic <-> Local
# ---------------------------------------------------------------------------
def project(
    point: GeoPoint, bounds: GeoBounds, world_size: float = DEFAULT_WORLD_SIZE
) -> LocalPoint:
    """Convert a geographic point to the local planar frame.

    Longitude is normalized linearly across [west, east]; latitude is
    normalized in Web Mercator space across [south, north]. Points outside
    the bounds extrapolate linearly.
    """
    x_norm = (point.longitude - bounds.west) / (bounds.east - bounds.west)

    merc_south = mercator_y(bounds.south)
    merc_north = mercator_y(bounds.north)
    y_norm = (mercator_y(point.latitude) - merc_south) / (merc_north - merc_south)

    return LocalPoint(
        x=(x_norm - 0.5) * world_size,
        z=(0.5 - y_norm) * world_size,  # North is -z
    )


def unproject(
    point: LocalPoint, bounds: GeoBounds, world_size: float = DEFAULT_WORLD_SIZE
) -> GeoPoint:
    """Exact inverse of :func:`project`."""
    x_norm = point.x / world_size + 0.5
    y_norm = 0.5 - point.z / world_size

    longitude = bounds.west + x_norm * (bounds.east - bounds.west)

    merc_south = mercator_y(bounds.south)
    merc_north = mercator_y(bounds.north)
    latitude = inverse_mercator_y(merc_south + y_norm * (merc_north - merc_south))

    return GeoPoint(latitude=latitude, longitude=longitude)


# ---------------------------------------------------------------------------
# Slippy-map Tiles
# ---------------------------------------------------------------------------
def tile_for_point(point: GeoPoint, zoom: int) -> TileCoord:
    """Return the tile containing a point at the given zoom.

    Points on the antimeridian or the Mercator edge are clamped into the
    last tile of the grid.

    Raises:
        ValueError: If zoom < 0 or |latitude| exceeds the Web Mercator range
    """
    if zoom < 0:
        raise ValueError(f"zoom must be >= 0, got {zoom}")
    if abs(point.latitude) > MAX_MERCATOR_LATITUDE:
        raise ValueError(
            f"Latitude {point.latitude} outside Web Mercator range "
            f"(+/-{MAX_MERCATOR_LATITUDE:.4f})"
        )

    n = 1 << zoom
    x = math.floor((point.longitude + 180) / 360 * n)

    lat_rad = math.radians(point.latitude)
    y = math.floor(
        (1 - math.log(math.tan(lat_rad) + 1 / math.cos(lat_rad)) / math.pi) / 2 * n
    )

    return TileCoord(x=min(max(x, 0), n - 1), y=min(max(y, 0), n - 1), z=zoom)


def tile_bounds(tile: TileCoord) -> GeoBounds:
    """Geographic footprint of a tile."""
    n = 1 << tile.z

    def _lat(y: int) -> float:
        return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n))))

    return GeoBounds(
        west=tile.x / n * 360 - 180,
        south=_lat(tile.y + 1),
        east=(tile.x + 1) / n * 360 - 180,
        north=_lat(tile.y),
    )


# ---------------------------------------------------------------------------
# Distance
# ---------------------------------------------------------------------------
def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters on a sphere of radius 6,371 km."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def geodesic_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Distance in meters on the WGS84 ellipsoid.

    Millimeter-level precision; use when haversine's ~0.5% spherical error
    matters.
    """
    _, _, distance = _geod.inv(a.longitude, a.latitude, b.longitude, b.latitude)
    return float(abs(distance))
