"""Terrain Core Domain Layer.

This package contains the pure (I/O-free) logic organized by bounded context:
- terrain: projection, tile grids, elevation decoding, mesh and texture synthesis
"""

from domain import terrain

__all__ = ["terrain"]
