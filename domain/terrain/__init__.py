"""Terrain Bounded Context.

Responsible for turning raster tiles into a displayable 3D terrain:
- Value Objects: GeoBounds, GeoPoint, LocalPoint, TileCoord, RasterBuffer,
  ElevationField, TerrainMesh, GradedTexture
- Services: projection, tile grid planning, elevation decoding, mesh
  synthesis, texture color grading
- Ports: TileSource
"""
