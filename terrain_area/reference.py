"""Reference 2D areas: geodesic (WGS84 ellipsoid) and planar (projected shoelace)."""

from __future__ import annotations

from typing import Sequence

from pyproj import Geod
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry.polygon import orient

from terrain_area.geometry import MercatorPoint, WGS84Point

_GEOD = Geod(ellps="WGS84")


def geodesic_area(polygon: Sequence[WGS84Point]) -> float:
    """Unsigned area in m² of the lon/lat ring on the WGS84 ellipsoid."""
    if len(polygon) < 3:
        return 0.0
    ring = orient(ShapelyPolygon([(p.lon, p.lat) for p in polygon]), sign=1.0)
    area, _perimeter = _GEOD.geometry_area_perimeter(ring)
    return abs(float(area))


def planar_area(polygon: Sequence[MercatorPoint]) -> float:
    """Unsigned shoelace area of the ring in projected units."""
    if len(polygon) < 3:
        return 0.0
    ring = orient(ShapelyPolygon([(p.x, p.y) for p in polygon]), sign=1.0)
    return abs(float(ring.area))
