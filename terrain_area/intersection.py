"""Polygon ∩ triangle clipping with barycentric elevation interpolation."""

from __future__ import annotations

from typing import Any, Sequence

from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry.polygon import orient
from shapely.prepared import prep

from terrain_area.area import Facet
from terrain_area.geometry import MercatorPoint
from terrain_area.triangulation import Triangle


def barycentric(p: MercatorPoint, t: Triangle) -> tuple[float, float, float]:
    """(u, v, w) of `p` with respect to triangle (a, b, c); (1, 0, 0) if the triangle is flat."""
    v0x = t.b.x - t.a.x
    v0y = t.b.y - t.a.y
    v1x = t.c.x - t.a.x
    v1y = t.c.y - t.a.y
    v2x = p.x - t.a.x
    v2y = p.y - t.a.y

    den = v0x * v1y - v1x * v0y
    if den == 0.0:
        return 1.0, 0.0, 0.0
    v = (v2x * v1y - v1x * v2y) / den
    w = (v0x * v2y - v2x * v0y) / den
    return 1.0 - v - w, v, w


def interpolate_elevation(p: MercatorPoint, t: Triangle) -> float | None:
    if t.a.ele is None or t.b.ele is None or t.c.ele is None:
        return None
    u, v, w = barycentric(p, t)
    return u * t.a.ele + v * t.b.ele + w * t.c.ele


def to_shapely(points: Sequence[MercatorPoint]) -> Any:
    """Counter-clockwise 2D polygon; invalid rings are repaired with buffer(0)."""
    g = ShapelyPolygon([(p.x, p.y) for p in points])
    if not g.is_valid:
        g = g.buffer(0)
    if g.geom_type == "Polygon":
        return orient(g, sign=1.0)
    return g


def _exteriors(geom: Any) -> list[list[tuple[float, float]]]:
    if geom.is_empty:
        return []
    if geom.geom_type == "Polygon":
        coords = list(geom.exterior.coords)
        # Shapely repeats the first vertex at the end of a ring.
        return [[(float(x), float(y)) for x, y in coords[:-1]]]
    if hasattr(geom, "geoms"):
        out: list[list[tuple[float, float]]] = []
        for part in geom.geoms:
            out.extend(_exteriors(part))
        return out
    # Points / lines from touching boundaries carry no area.
    return []


class PolygonClipper:
    """Clips triangles against one fixed polygon in the projected plane.

    Triangles outside the polygon's bounds or disjoint from it give nothing,
    triangles fully inside come back unchanged (counter-clockwise) and only
    boundary triangles go through the boolean intersection.
    """

    def __init__(self, polygon: Sequence[MercatorPoint]) -> None:
        self.geometry = to_shapely(polygon)
        self._prepared = prep(self.geometry)
        self._bounds = tuple(float(v) for v in self.geometry.bounds)

    def _outside_bounds(self, t: Triangle) -> bool:
        minx, miny, maxx, maxy = self._bounds
        xs = (t.a.x, t.b.x, t.c.x)
        ys = (t.a.y, t.b.y, t.c.y)
        return max(xs) < minx or min(xs) > maxx or max(ys) < miny or min(ys) > maxy

    def clip(self, t: Triangle) -> list[Facet]:
        """Elevated facets of polygon ∩ triangle, one per exterior ring (holes ignored)."""
        if self._outside_bounds(t):
            return []
        tri = to_shapely(t.as_list())
        if tri.is_empty or self._prepared.disjoint(tri):
            return []
        if self._prepared.contains(tri):
            rings = _exteriors(tri)
        else:
            rings = _exteriors(self.geometry.intersection(tri))

        facets: list[Facet] = []
        for ring in rings:
            facet = []
            for x, y in ring:
                p = MercatorPoint(x=x, y=y)
                facet.append(MercatorPoint(x=x, y=y, ele=interpolate_elevation(p, t)))
            facets.append(facet)
        return facets


def intersection(polygon: Sequence[MercatorPoint], triangle: Triangle) -> list[Facet]:
    """One-off clip of `triangle` by `polygon`; prefer PolygonClipper in loops."""
    return PolygonClipper(polygon).clip(triangle)
