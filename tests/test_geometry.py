from __future__ import annotations

import math

from rasterio.transform import from_origin

from terrain_area.geometry import (
    MercatorBoundingBox,
    MercatorPoint,
    WGS84BoundingBox,
    WGS84Point,
    total_order_key,
    utm_proj4,
    utm_zone,
)
from terrain_area.raster import Raster, round_half_away


def _box(lon0: float, lat0: float, lon1: float, lat1: float) -> WGS84BoundingBox:
    return WGS84BoundingBox.from_points(WGS84Point(lon=lon0, lat=lat0), WGS84Point(lon=lon1, lat=lat1))


def test_total_order_key_sorts_like_ieee_total_order() -> None:
    values = [1.5, -0.0, math.inf, -2.0, 0.0, -math.inf, 1e-300, -1e-300]
    ordered = sorted(values, key=total_order_key)
    assert ordered[:3] == [-math.inf, -2.0, -1e-300]
    assert ordered[-3:] == [1e-300, 1.5, math.inf]
    # -0.0 strictly before +0.0
    assert total_order_key(-0.0) < total_order_key(0.0)
    assert math.copysign(1.0, ordered[3]) < 0
    assert math.copysign(1.0, ordered[4]) > 0


def test_mercator_key_ignores_elevation() -> None:
    assert MercatorPoint(x=1.0, y=2.0, ele=3.0).key == MercatorPoint(x=1.0, y=2.0).key
    assert MercatorPoint(x=1.0, y=2.0).key != MercatorPoint(x=2.0, y=1.0).key
    assert MercatorPoint(x=1.0, y=2.0, ele=9.0).flat().ele == 0.0


def test_utm_proj4_strings() -> None:
    assert utm_zone(-69.14) == 19
    assert utm_proj4(-69.14, 18.5) == "+proj=utm +zone=19 +datum=WGS84 +units=m +no_defs +type=crs"
    assert utm_proj4(-46.5, -23.5) == "+proj=utm +zone=23 +datum=WGS84 +units=m +no_defs +type=crs +south"
    assert utm_zone(-180.0) == 1
    assert utm_zone(5.999) == 31
    assert utm_zone(6.0) == 32
    assert WGS84Point(lon=7.5, lat=46.0).to_utm_proj4().startswith("+proj=utm +zone=32 ")


def test_wgs_bbox_operations() -> None:
    a = _box(0.0, 0.0, 2.0, 2.0)
    b = _box(1.0, 1.0, 3.0, 3.0)
    far = _box(5.0, 5.0, 6.0, 6.0)

    inter = a.intersection(b)
    assert inter == _box(1.0, 1.0, 2.0, 2.0)
    assert a.intersection(far) is None
    # touching boxes intersect in a degenerate box
    assert a.intersection(_box(2.0, 0.0, 3.0, 1.0)) == _box(2.0, 0.0, 2.0, 1.0)

    assert a.union(b) == _box(0.0, 0.0, 3.0, 3.0)
    assert a.center() == WGS84Point(lon=1.0, lat=1.0)
    assert a.contains(_box(0.5, 0.5, 1.5, 2.0))
    assert a.contains(a)
    assert not a.contains(b)
    assert not a.contains(_box(0.5, 0.5, 1.5, 2.5))
    assert a.contains_point(WGS84Point(lon=2.0, lat=0.0))
    assert len(a.corners()) == 4


def test_bbox_from_points_normalises_corners() -> None:
    box = WGS84BoundingBox.from_points(WGS84Point(lon=3.0, lat=-1.0), WGS84Point(lon=-2.0, lat=4.0))
    assert box.min == WGS84Point(lon=-2.0, lat=-1.0)
    assert box.max == WGS84Point(lon=3.0, lat=4.0)


def test_mercator_bbox_dimensions() -> None:
    pts = [MercatorPoint(x=10.0, y=5.0), MercatorPoint(x=40.0, y=25.0), MercatorPoint(x=20.0, y=-5.0)]
    box = MercatorBoundingBox.enclosing(pts)
    assert box.width == 30.0
    assert box.height == 30.0
    assert box.area == 900.0
    assert [p.x_y() for p in box.as_list()] == [(10.0, -5.0), (10.0, 25.0), (40.0, 25.0), (40.0, -5.0)]


def test_round_half_away_from_zero() -> None:
    assert round_half_away(2.5) == 3
    assert round_half_away(-2.5) == -3
    assert round_half_away(0.49) == 0
    assert round_half_away(-0.51) == -1
    assert round_half_away(3.0) == 3


def test_raster_coordinates_round_trip() -> None:
    r = Raster.from_transform(from_origin(7.0, 47.0, 0.1, 0.1), 10, 10)
    assert r.upper_left == WGS84Point(lon=7.0, lat=47.0)
    assert r.xstep == 0.1
    assert r.ystep == -0.1
    assert (r.xsize, r.ysize) == (10, 10)

    w = r.wgs(3, 4)
    assert abs(w.lon - 7.3) < 1e-12
    assert abs(w.lat - 46.6) < 1e-12
    x, y = r.coordinates(w)
    assert abs(x - 3.0) < 1e-9
    assert abs(y - 4.0) < 1e-9
    assert r.icoordinates(w) == (3, 4)
    # coordinates outside the tile are not clamped
    assert r.icoordinates(WGS84Point(lon=6.8, lat=47.3)) == (-2, -3)
