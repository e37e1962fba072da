"""Tests for the rasterio-backed tile codec.

These run against real rasterio/GDAL: PNG bytes are produced in memory, no
fixture files are needed.
"""

from __future__ import annotations

import numpy as np
import pytest
from rasterio.io import MemoryFile

from domain.terrain.errors import InvalidRasterError
from infrastructure.terrain.tile_codec import decode_tile_image, encode_png, fit_to_tile


def _png(bands: np.ndarray) -> bytes:
    """Encode a (count, H, W) uint8 array as PNG with rasterio."""
    count, height, width = bands.shape
    with MemoryFile() as memfile:
        with memfile.open(
            driver="PNG", width=width, height=height, count=count, dtype="uint8"
        ) as dst:
            dst.write(bands)
        return memfile.read()


@pytest.fixture
def rgba_tile() -> np.ndarray:
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(8, 8, 4), dtype=np.uint8)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------
class TestDecodeTileImage:
    def test_png_round_trip(self, rgba_tile: np.ndarray) -> None:
        payload = encode_png(rgba_tile)
        assert payload[:8] == b"\x89PNG\r\n\x1a\n"
        np.testing.assert_array_equal(decode_tile_image(payload), rgba_tile)

    def test_rgb_gets_opaque_alpha(self) -> None:
        bands = np.stack([np.full((4, 4), v, dtype=np.uint8) for v in (10, 20, 30)])
        decoded = decode_tile_image(_png(bands))
        assert decoded.shape == (4, 4, 4)
        assert decoded[0, 0].tolist() == [10, 20, 30, 255]

    def test_gray_replicated(self) -> None:
        bands = np.full((1, 4, 4), 77, dtype=np.uint8)
        decoded = decode_tile_image(_png(bands))
        assert decoded[2, 2].tolist() == [77, 77, 77, 255]

    def test_gray_alpha(self) -> None:
        bands = np.stack([np.full((4, 4), 90, dtype=np.uint8), np.full((4, 4), 5, dtype=np.uint8)])
        decoded = decode_tile_image(_png(bands))
        assert decoded[0, 0].tolist() == [90, 90, 90, 5]

    def test_empty_payload(self) -> None:
        with pytest.raises(InvalidRasterError, match="Empty"):
            decode_tile_image(b"")

    def test_garbage_payload(self) -> None:
        with pytest.raises(InvalidRasterError, match="Undecodable"):
            decode_tile_image(b"<html>rate limited</html>")


# ---------------------------------------------------------------------------
# Encoding / resampling
# ---------------------------------------------------------------------------
def test_encode_png_rejects_non_rgba() -> None:
    with pytest.raises(ValueError):
        encode_png(np.zeros((4, 4, 3), dtype=np.uint8))


class TestFitToTile:
    def test_same_size_is_untouched(self, rgba_tile: np.ndarray) -> None:
        assert fit_to_tile(rgba_tile, 8) is rgba_tile

    def test_upsample_repeats_pixels(self, rgba_tile: np.ndarray) -> None:
        fitted = fit_to_tile(rgba_tile, 16)
        assert fitted.shape == (16, 16, 4)
        np.testing.assert_array_equal(fitted[::2, ::2], rgba_tile)
        np.testing.assert_array_equal(fitted[1::2, 1::2], rgba_tile)

    def test_downsample_picks_nearest(self, rgba_tile: np.ndarray) -> None:
        fitted = fit_to_tile(rgba_tile, 4)
        np.testing.assert_array_equal(fitted, rgba_tile[::2, ::2])
