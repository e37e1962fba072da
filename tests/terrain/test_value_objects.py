"""Tests for terrain value objects.

Value objects validate at construction and never change afterwards: array
fields are owned, read-only copies.
"""

from __future__ import annotations

import numpy as np
import pytest
from pydantic import ValidationError

from domain.terrain.value_objects import (
    DAKAR_BOUNDS,
    DAKAR_CENTER,
    MAX_MERCATOR_LATITUDE,
    ElevationField,
    GeoBounds,
    GeoPoint,
    GradedTexture,
    LocalPoint,
    RasterBuffer,
    TileCoord,
    grid_cell,
)


# ---------------------------------------------------------------------------
# GeoBounds / GeoPoint
# ---------------------------------------------------------------------------
class TestGeoBounds:
    def test_valid_bounds(self) -> None:
        bounds = GeoBounds(west=-17.55, south=14.62, east=-17.35, north=14.80)
        assert bounds.west < bounds.east
        assert bounds.south < bounds.north

    @pytest.mark.parametrize(
        "values",
        [
            {"west": 1.0, "south": 0.0, "east": 1.0, "north": 1.0},  # zero width
            {"west": 2.0, "south": 0.0, "east": 1.0, "north": 1.0},  # inverted
            {"west": 0.0, "south": 1.0, "east": 1.0, "north": 0.0},  # inverted
            {"west": -181.0, "south": 0.0, "east": 1.0, "north": 1.0},
            {"west": 0.0, "south": 0.0, "east": 1.0, "north": 86.0},
        ],
    )
    def test_invalid_bounds_rejected(self, values: dict) -> None:
        with pytest.raises(ValidationError):
            GeoBounds(**values)

    def test_mercator_edge_is_accepted(self) -> None:
        bounds = GeoBounds(
            west=-180, south=-MAX_MERCATOR_LATITUDE, east=180, north=MAX_MERCATOR_LATITUDE
        )
        assert bounds.north == pytest.approx(85.0511, abs=1e-4)

    def test_center(self) -> None:
        center = GeoBounds(west=-10, south=-4, east=10, north=8).center
        assert center == GeoPoint(latitude=2.0, longitude=0.0)

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DAKAR_BOUNDS.west = 0.0  # type: ignore[misc]


def test_dakar_preset() -> None:
    assert DAKAR_BOUNDS == GeoBounds(west=-17.55, south=14.62, east=-17.35, north=14.80)
    assert DAKAR_CENTER.latitude == pytest.approx(14.6937)
    assert DAKAR_CENTER.longitude == pytest.approx(-17.4441)


def test_geo_point_range() -> None:
    with pytest.raises(ValidationError):
        GeoPoint(latitude=91.0, longitude=0.0)
    with pytest.raises(ValidationError):
        GeoPoint(latitude=0.0, longitude=180.5)


# ---------------------------------------------------------------------------
# TileCoord
# ---------------------------------------------------------------------------
class TestTileCoord:
    def test_hashable_and_equal_by_value(self) -> None:
        tiles = {TileCoord(x=1, y=2, z=3), TileCoord(x=1, y=2, z=3)}
        assert len(tiles) == 1

    def test_outside_grid_rejected(self) -> None:
        with pytest.raises(ValidationError, match="outside"):
            TileCoord(x=4, y=0, z=2)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TileCoord(x=-1, y=0, z=2)


# ---------------------------------------------------------------------------
# grid_cell
# ---------------------------------------------------------------------------
class TestGridCell:
    def test_corners(self) -> None:
        assert grid_cell(LocalPoint(x=-50, z=-50), 100.0, 5) == (0, 0)
        assert grid_cell(LocalPoint(x=50, z=50), 100.0, 5) == (4, 4)

    def test_north_is_row_zero(self) -> None:
        row, col = grid_cell(LocalPoint(x=50, z=-50), 100.0, 5)
        assert (row, col) == (0, 4)

    def test_clamped(self) -> None:
        assert grid_cell(LocalPoint(x=-500, z=500), 100.0, 5) == (4, 0)

    def test_floor_inside_cell(self) -> None:
        # x = 10 -> (0.1 + 0.5) * 4 = 2.4 -> col 2
        assert grid_cell(LocalPoint(x=10, z=0), 100.0, 5) == (2, 2)


# ---------------------------------------------------------------------------
# RasterBuffer
# ---------------------------------------------------------------------------
def _buffer(**overrides) -> RasterBuffer:
    values = dict(
        data=np.zeros((4, 8, 4), dtype=np.uint8),
        tile_size=4,
        zoom=2,
        origin_x=1,
        origin_y=1,
        loaded=frozenset({TileCoord(x=1, y=1, z=2)}),
        failed=frozenset({TileCoord(x=2, y=1, z=2)}),
    )
    values.update(overrides)
    return RasterBuffer(**values)


class TestRasterBuffer:
    def test_dimensions(self) -> None:
        buffer = _buffer()
        assert (buffer.width, buffer.height) == (8, 4)
        assert (buffer.columns, buffer.rows) == (2, 1)
        assert buffer.tile_offset(TileCoord(x=2, y=1, z=2)) == (4, 0)

    def test_data_is_read_only_copy(self) -> None:
        source = np.zeros((4, 8, 4), dtype=np.uint8)
        buffer = _buffer(data=source)
        source[0, 0] = 255
        assert buffer.data[0, 0, 0] == 0
        with pytest.raises(ValueError):
            buffer.data[0, 0, 0] = 1

    def test_not_whole_tiles_rejected(self) -> None:
        with pytest.raises(ValidationError, match="whole number"):
            _buffer(data=np.zeros((4, 6, 4), dtype=np.uint8))

    def test_wrong_channel_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _buffer(data=np.zeros((4, 8, 3), dtype=np.uint8))

    def test_loaded_and_failed_must_not_overlap(self) -> None:
        tile = TileCoord(x=1, y=1, z=2)
        with pytest.raises(ValidationError, match="both loaded and failed"):
            _buffer(loaded=frozenset({tile}), failed=frozenset({tile}))

    def test_tile_outside_buffer_rejected(self) -> None:
        with pytest.raises(ValidationError, match="outside the buffer"):
            _buffer(loaded=frozenset({TileCoord(x=3, y=1, z=2)}))

    def test_coverage_mask(self) -> None:
        mask = _buffer().coverage_mask()
        assert mask.shape == (4, 8)
        assert mask[:, :4].all()
        assert not mask[:, 4:].any()


# ---------------------------------------------------------------------------
# ElevationField / GradedTexture
# ---------------------------------------------------------------------------
class TestElevationField:
    def test_square_required(self) -> None:
        with pytest.raises(ValidationError, match="square"):
            ElevationField(data=np.zeros((3, 4)))

    def test_minimum_resolution(self) -> None:
        with pytest.raises(ValidationError):
            ElevationField(data=np.zeros((1, 1)))

    def test_nodata_count(self) -> None:
        data = np.zeros((3, 3))
        data[0, :] = np.nan
        field = ElevationField(data=data)
        assert field.resolution == 3
        assert field.nodata_count() == 3


def test_graded_texture_needs_a_loaded_tile() -> None:
    with pytest.raises(ValidationError):
        GradedTexture(
            data=np.zeros((4, 4, 4), dtype=np.uint8),
            layer="aquarelle",
            loaded_tiles=0,
            failed_tiles=1,
        )
