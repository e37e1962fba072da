"""Terrain Bounded Context - Mesh Synthesis.

Builds a displaced surface mesh from an ElevationField.

Geometry matches a plane of ``size`` x ``size`` units split into (N-1) x (N-1)
quads, laid in the local frame (x east, z south) and displaced along +y.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from domain.terrain.value_objects import ElevationField, TerrainMesh

logger = logging.getLogger(__name__)

DEFAULT_SIZE = 100.0
DEFAULT_EXAGGERATION = 5.0


def _grid_faces(resolution: int) -> NDArray[np.uint32]:
    """Two counter-clockwise (seen from +y) triangles per grid quad."""
    rows, cols = np.meshgrid(
        np.arange(resolution - 1), np.arange(resolution - 1), indexing="ij"
    )
    a = rows * resolution + cols  # north-west
    b = a + resolution  # south-west
    c = b + 1  # south-east
    d = a + 1  # north-east
    quads = np.stack([np.stack([a, b, d], axis=-1), np.stack([b, c, d], axis=-1)], axis=2)
    return quads.reshape(-1, 3).astype(np.uint32)


def compute_vertex_normals(
    vertices: NDArray[np.floating], faces: NDArray[np.integer]
) -> NDArray[np.float32]:
    """Per-vertex normals as the normalized sum of adjacent face normals.

    Face normals are left unnormalized before summing, so larger faces weigh
    more. Vertices touched by no (or only degenerate) faces get a zero normal.
    """
    verts = np.asarray(vertices, dtype=np.float64)
    tris = np.asarray(faces, dtype=np.int64)

    v0, v1, v2 = verts[tris[:, 0]], verts[tris[:, 1]], verts[tris[:, 2]]
    face_normals = np.cross(v1 - v0, v2 - v0)

    normals = np.zeros_like(verts)
    for corner in range(3):
        np.add.at(normals, tris[:, corner], face_normals)

    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    normals = np.divide(
        normals, lengths, out=np.zeros_like(normals), where=lengths > 0
    )
    return normals.astype(np.float32)


def synthesize_mesh(
    field: ElevationField,
    size: float = DEFAULT_SIZE,
    exaggeration: float = DEFAULT_EXAGGERATION,
) -> TerrainMesh:
    """Displace a flat N x N grid by normalized elevation.

    Steps:
        1. Lay a flat grid spanning [-size/2, size/2] on x and z.
        2. Reduce min/max over the finite samples of the field.
        3. Height = (e - min) / (max - min) * exaggeration. A flat field
           (max == min), and any no-data sample, gets zero displacement.
        4. Recompute vertex normals from the displaced surface.

    Raises:
        ValueError: If size <= 0 or exaggeration < 0
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    if exaggeration < 0:
        raise ValueError(f"exaggeration must be >= 0, got {exaggeration}")

    n = field.resolution
    data = field.data

    finite = np.isfinite(data)
    if finite.any():
        min_elevation = float(data[finite].min())
        max_elevation = float(data[finite].max())
    else:
        min_elevation = max_elevation = 0.0
    elevation_range = max_elevation - min_elevation

    logger.info(
        "Elevation range: %.1fm to %.1fm", min_elevation, max_elevation
    )

    if elevation_range > 0:
        normalized = np.where(finite, (data - min_elevation) / elevation_range, 0.0)
    else:
        normalized = np.zeros_like(data)
    heights = normalized * exaggeration

    coords = np.linspace(-size / 2, size / 2, n)
    xs, zs = np.meshgrid(coords, coords)  # rows run north -> south along z
    vertices = np.column_stack([xs.ravel(), heights.ravel(), zs.ravel()])

    faces = _grid_faces(n)
    normals = compute_vertex_normals(vertices, faces)

    steps = np.linspace(0.0, 1.0, n)
    us, vs = np.meshgrid(steps, 1.0 - steps)
    uvs = np.column_stack([us.ravel(), vs.ravel()])

    return TerrainMesh(
        vertices=vertices.astype(np.float32),
        indices=faces,
        normals=normals,
        uvs=uvs.astype(np.float32),
        size=size,
        exaggeration=exaggeration,
        min_elevation=min_elevation,
        max_elevation=max_elevation,
        elevation=field,
    )
