"""Tests for tile grid planning over bounding regions."""

from __future__ import annotations

import pytest

from domain.terrain.errors import InvalidBoundsError
from domain.terrain.projection import tile_bounds
from domain.terrain.tiling import coerce_bounds, tiles_covering
from domain.terrain.value_objects import DAKAR_BOUNDS, GeoBounds, TileCoord


class TestTilesCovering:
    def test_quad_block(self, quad_bounds: GeoBounds, quad_tiles: tuple[TileCoord, ...]) -> None:
        assert tiles_covering(quad_bounds, 2) == quad_tiles

    def test_single_tile_at_zoom_zero(self) -> None:
        assert tiles_covering(DAKAR_BOUNDS, 0) == (TileCoord(x=0, y=0, z=0),)

    def test_dakar_zoom_14_is_ten_by_ten(self) -> None:
        tiles = tiles_covering(DAKAR_BOUNDS, 14)
        assert len(tiles) == 100
        assert tiles[0] == TileCoord(x=7393, y=7510, z=14)
        assert tiles[-1] == TileCoord(x=7402, y=7519, z=14)

    @pytest.mark.parametrize("zoom", [0, 5, 13, 14])
    def test_unique_and_same_zoom(self, zoom: int) -> None:
        tiles = tiles_covering(DAKAR_BOUNDS, zoom)
        assert len(set(tiles)) == len(tiles)
        assert {tile.z for tile in tiles} == {zoom}

    @pytest.mark.parametrize("zoom", [3, 10, 14])
    def test_footprint_covers_bounds(self, zoom: int) -> None:
        footprints = [tile_bounds(tile) for tile in tiles_covering(DAKAR_BOUNDS, zoom)]
        assert min(f.west for f in footprints) <= DAKAR_BOUNDS.west
        assert max(f.east for f in footprints) >= DAKAR_BOUNDS.east
        assert min(f.south for f in footprints) <= DAKAR_BOUNDS.south
        assert max(f.north for f in footprints) >= DAKAR_BOUNDS.north

    def test_column_major_order(self, quad_bounds: GeoBounds) -> None:
        tiles = tiles_covering(quad_bounds, 2)
        assert [(t.x, t.y) for t in tiles] == [(1, 1), (1, 2), (2, 1), (2, 2)]

    def test_accepts_sequence_and_mapping(self, quad_tiles: tuple[TileCoord, ...]) -> None:
        assert tiles_covering((-10, -10, 10, 10), 2) == quad_tiles
        mapping = {"west": -10, "south": -10, "east": 10, "north": 10}
        assert tiles_covering(mapping, 2) == quad_tiles

    def test_negative_zoom_rejected(self) -> None:
        with pytest.raises(ValueError, match="zoom"):
            tiles_covering(DAKAR_BOUNDS, -1)


class TestCoerceBounds:
    def test_passthrough(self) -> None:
        assert coerce_bounds(DAKAR_BOUNDS) is DAKAR_BOUNDS

    @pytest.mark.parametrize(
        "bounds",
        [
            (10.0, 0.0, 5.0, 1.0),  # west > east
            (0.0, 1.0, 1.0, 1.0),  # zero height
            (0.0, 0.0, 1.0, 89.0),  # beyond Web Mercator
            (0.0, 0.0, 1.0),  # too few values
            {"west": 0.0, "south": 0.0},  # missing keys
            "not bounds",
        ],
    )
    def test_malformed_bounds(self, bounds: object) -> None:
        with pytest.raises(InvalidBoundsError):
            coerce_bounds(bounds)  # type: ignore[arg-type]

    def test_tiles_covering_rejects_degenerate_bounds(self) -> None:
        with pytest.raises(InvalidBoundsError):
            tiles_covering((10.0, 0.0, 5.0, 1.0), 3)
