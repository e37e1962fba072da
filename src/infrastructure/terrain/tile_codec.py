"""Raster tile codec backed by rasterio in-memory datasets.

Decodes encoded tile images (PNG, WebP, JPEG: anything GDAL reads) into
(height, width, 4) uint8 RGBA arrays, and encodes RGBA arrays back to PNG.

Band layouts:
- 1 band, paletted: expanded through the color map
- 1 band, gray: replicated to RGB, opaque alpha
- 2 bands: gray + alpha
- 3 bands: RGB, opaque alpha
- 4 bands: RGBA as is
"""

from __future__ import annotations

import logging
import warnings

import numpy as np
from numpy.typing import NDArray
from rasterio.enums import ColorInterp
from rasterio.errors import NotGeoreferencedWarning, RasterioError
from rasterio.io import MemoryFile

from domain.terrain.errors import InvalidRasterError

logger = logging.getLogger(__name__)

OPAQUE = 255


def _expand_palette(index: NDArray[np.uint8], colormap: dict) -> NDArray[np.uint8]:
    lut = np.zeros((256, 4), dtype=np.uint8)
    for value, color in colormap.items():
        rgba = tuple(color) + (OPAQUE,) * (4 - len(color))
        lut[value] = rgba[:4]
    return lut[index]


def decode_tile_image(payload: bytes) -> NDArray[np.uint8]:
    """Decode encoded tile bytes into an (H, W, 4) uint8 RGBA array.

    Raises:
        InvalidRasterError: If the bytes are empty, undecodable, not 8-bit or
            have an unsupported band count
    """
    if not payload:
        raise InvalidRasterError("Empty tile payload")

    try:
        # Tiles carry no georeferencing; that is expected here
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NotGeoreferencedWarning)
            with MemoryFile(payload) as memfile:
                with memfile.open() as src:
                    if any(dtype != "uint8" for dtype in src.dtypes):
                        raise InvalidRasterError(
                            f"Expected 8-bit bands, got {src.dtypes}"
                        )
                    bands = src.read()
                    colormap = None
                    if src.count == 1 and src.colorinterp[0] == ColorInterp.palette:
                        colormap = src.colormap(1)
    except RasterioError as e:
        raise InvalidRasterError(f"Undecodable tile image: {e}") from e

    count, height, width = bands.shape
    if colormap is not None:
        return _expand_palette(bands[0], colormap)

    rgba = np.empty((height, width, 4), dtype=np.uint8)
    if count == 1:
        rgba[..., :3] = bands[0][..., np.newaxis]
        rgba[..., 3] = OPAQUE
    elif count == 2:
        rgba[..., :3] = bands[0][..., np.newaxis]
        rgba[..., 3] = bands[1]
    elif count == 3:
        rgba[..., :3] = np.transpose(bands, (1, 2, 0))
        rgba[..., 3] = OPAQUE
    elif count == 4:
        rgba[...] = np.transpose(bands, (1, 2, 0))
    else:
        raise InvalidRasterError(f"Unsupported band count: {count}")
    return rgba


def fit_to_tile(pixels: NDArray[np.uint8], tile_size: int) -> NDArray[np.uint8]:
    """Nearest-neighbor resample an RGBA tile to tile_size x tile_size."""
    height, width = pixels.shape[:2]
    if height == tile_size and width == tile_size:
        return pixels
    logger.debug("Resampling %dx%d tile to %dpx", width, height, tile_size)
    rows = np.arange(tile_size) * height // tile_size
    cols = np.arange(tile_size) * width // tile_size
    return pixels[np.ix_(rows, cols)]


def encode_png(pixels: NDArray[np.uint8]) -> bytes:
    """Encode an (H, W, 4) uint8 RGBA array as PNG bytes."""
    if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
        raise ValueError(
            f"Expected (height, width, 4) uint8 pixels, got {pixels.shape} {pixels.dtype}"
        )
    height, width = pixels.shape[:2]
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with MemoryFile() as memfile:
            with memfile.open(
                driver="PNG", width=width, height=height, count=4, dtype="uint8"
            ) as dst:
                dst.write(np.ascontiguousarray(np.transpose(pixels, (2, 0, 1))))
            return memfile.read()
