"""3D surface area of geographic polygons draped over DEM tiles.

This package estimates the true (terrain-following) area of a polygon given in
lon/lat by:
- sampling elevation posts from SRTM-style DEM tiles
- triangulating the posts and clipping each triangle against the polygon
- summing flat and 3D facet areas, and scaling the geodesic 2D area by their ratio

Run `python -m terrain_area --help` for usage.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
