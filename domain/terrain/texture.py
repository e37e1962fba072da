"""Terrain Bounded Context - Texture Color Grading.

Warm-tone and contrast grade applied to stitched basemap tiles so they sit
well on the terrain. The grade is not idempotent: apply it exactly once.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from domain.terrain.value_objects import GradedTexture, RasterBuffer

# Per-channel warm tone: +5% red, +2% green, -5% blue
WARM_TONE = (1.05, 1.02, 0.95)
CONTRAST = 1.1
MIDPOINT = 128.0


def _to_byte(values: NDArray[np.float64]) -> NDArray[np.float64]:
    """Round to nearest (ties to even) and clamp to [0, 255], like a clamped byte store."""
    return np.clip(np.rint(values), 0, 255)


def apply_color_grading(pixels: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Grade an (H, W, 4) RGBA array and return a new array.

    Per pixel, in order:
        1. R' = R * 1.05, G' = G * 1.02, B' = B * 0.95, each clamped to a byte
        2. c'' = (c' - 128) * 1.1 + 128, each clamped to a byte
    Alpha is left untouched.
    """
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected (height, width, 4) pixels, got {pixels.shape}")

    rgb = pixels[..., :3].astype(np.float64)
    warm = _to_byte(rgb * np.asarray(WARM_TONE))
    contrasted = _to_byte((warm - MIDPOINT) * CONTRAST + MIDPOINT)

    graded = pixels.copy()
    graded[..., :3] = contrasted.astype(np.uint8)
    return graded


def grade_texture(buffer: RasterBuffer) -> GradedTexture:
    """Apply the color grade to a stitched basemap raster."""
    return GradedTexture(
        data=apply_color_grading(buffer.data),
        layer=buffer.layer,
        loaded_tiles=len(buffer.loaded),
        failed_tiles=len(buffer.failed),
    )
