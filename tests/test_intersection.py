from __future__ import annotations

import math

from terrain_area.area import area_3d, flat
from terrain_area.geometry import MercatorPoint
from terrain_area.intersection import PolygonClipper, barycentric, interpolate_elevation, intersection
from terrain_area.triangulation import Triangle


def _relative_error(est: float, ref: float) -> float:
    if ref == 0:
        return abs(est - ref)
    return abs(est - ref) / abs(ref)


def _p(x: float, y: float, z: float | None = None) -> MercatorPoint:
    return MercatorPoint(x=x, y=y, ele=z)


SQUARE = [_p(0, 0), _p(10, 0), _p(10, 10), _p(0, 10)]


def test_barycentric_at_vertices_and_centroid() -> None:
    t = Triangle(_p(0, 0, 1), _p(4, 0, 2), _p(0, 4, 3))
    assert barycentric(t.a, t) == (1.0, 0.0, 0.0)
    assert barycentric(t.b, t) == (0.0, 1.0, 0.0)
    assert barycentric(t.c, t) == (0.0, 0.0, 1.0)
    u, v, w = barycentric(_p(4 / 3, 4 / 3), t)
    assert abs(u - 1 / 3) < 1e-12 and abs(v - 1 / 3) < 1e-12 and abs(w - 1 / 3) < 1e-12


def test_barycentric_degenerate_triangle() -> None:
    t = Triangle(_p(0, 0, 1), _p(1, 1, 2), _p(2, 2, 3))
    assert barycentric(_p(5, -3), t) == (1.0, 0.0, 0.0)
    assert interpolate_elevation(_p(5, -3), t) == 1.0


def test_interpolation_reproduces_plane() -> None:
    def z(x: float, y: float) -> float:
        return 3.0 + 0.25 * x - 0.5 * y

    t = Triangle(_p(0, 0, z(0, 0)), _p(20, 2, z(20, 2)), _p(5, 15, z(5, 15)))
    for x, y in [(6.0, 4.0), (10.0, 5.0), (-3.0, 30.0)]:
        assert abs(interpolate_elevation(_p(x, y), t) - z(x, y)) < 1e-9
    assert interpolate_elevation(_p(1, 1), Triangle(_p(0, 0), _p(1, 0, 1), _p(0, 1, 1))) is None


def test_boundary_triangle_is_clipped_to_polygon() -> None:
    # z = x over the triangle; the overlap with the square is [5, 10] x [0, 10].
    t = Triangle(_p(5, -5, 5), _p(15, 5, 15), _p(5, 15, 5))
    facets = intersection(SQUARE, t)
    assert len(facets) == 1
    facet = facets[0]
    assert _relative_error(area_3d(flat(facet)), 50.0) < 1e-9
    assert _relative_error(area_3d(facet), 50.0 * math.sqrt(2.0)) < 1e-9
    for p in facet:
        assert abs(p.ele - p.x) < 1e-9
        assert 5.0 - 1e-9 <= p.x <= 10.0 + 1e-9


def test_contained_triangle_is_returned_unchanged() -> None:
    t = Triangle(_p(2, 2, 1), _p(2, 6, 2), _p(6, 2, 3))  # clockwise
    facets = PolygonClipper(SQUARE).clip(t)
    assert len(facets) == 1
    facet = facets[0]
    assert {(p.x, p.y, p.ele) for p in facet} == {(2, 2, 1), (2, 6, 2), (6, 2, 3)}
    assert _relative_error(area_3d(flat(facet)), 8.0) < 1e-12


def test_disjoint_and_touching_triangles_give_nothing() -> None:
    clipper = PolygonClipper(SQUARE)
    assert clipper.clip(Triangle(_p(20, 20, 0), _p(30, 20, 0), _p(20, 30, 0))) == []
    # shares only the edge x = 10
    assert clipper.clip(Triangle(_p(10, 0, 0), _p(20, 0, 0), _p(10, 10, 0))) == []
    # inside the bounds but outside a concave polygon
    ell = [_p(0, 0), _p(10, 0), _p(10, 2), _p(2, 2), _p(2, 10), _p(0, 10)]
    assert PolygonClipper(ell).clip(Triangle(_p(5, 5, 0), _p(8, 5, 0), _p(5, 8, 0))) == []


def test_concave_polygon_splits_triangle_into_separate_facets() -> None:
    u_shape = [_p(0, 0), _p(30, 0), _p(30, 30), _p(20, 30), _p(20, 10), _p(10, 10), _p(10, 30), _p(0, 30)]
    t = Triangle(_p(-5, 20, 0), _p(35, 20, 0), _p(15, 40, 0))
    facets = PolygonClipper(u_shape).clip(t)
    assert len(facets) == 2
    total = sum(area_3d(f) for f in facets)
    direct = PolygonClipper(u_shape).geometry.intersection(PolygonClipper(t.as_list()).geometry).area
    assert _relative_error(total, direct) < 1e-9
    assert all(p.ele == 0.0 for f in facets for p in f)


def test_clipper_matches_plain_intersection_over_a_grid() -> None:
    poly = [_p(1.3, 0.7), _p(8.8, 2.1), _p(7.2, 9.4), _p(2.5, 6.6)]
    clipper = PolygonClipper(poly)
    total = 0.0
    for i in range(10):
        for j in range(10):
            a, b, c, d = _p(i, j, 0), _p(i + 1, j, 0), _p(i + 1, j + 1, 0), _p(i, j + 1, 0)
            for t in (Triangle(a, b, c), Triangle(a, c, d)):
                total += sum(area_3d(f) for f in clipper.clip(t))
    assert _relative_error(total, clipper.geometry.area) < 1e-9
