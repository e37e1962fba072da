"""Root pytest configuration for all tests.

Shared fixtures describe a small 2x2 tile block at zoom 2 so that stitching,
sampling and loading can be exercised with a handful of tiny tiles.
"""

import pytest

from domain.terrain.value_objects import GeoBounds, TileCoord


@pytest.fixture
def quad_bounds() -> GeoBounds:
    """Bounds straddling the origin; covers tiles x, y in {1, 2} at zoom 2."""
    return GeoBounds(west=-10.0, south=-10.0, east=10.0, north=10.0)


@pytest.fixture
def quad_tiles() -> tuple[TileCoord, ...]:
    """The 2x2 tile block covering ``quad_bounds`` at zoom 2 (x-major)."""
    return tuple(TileCoord(x=x, y=y, z=2) for x in (1, 2) for y in (1, 2))
