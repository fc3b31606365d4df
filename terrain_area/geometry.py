"""Geographic and projected points and axis-aligned bounding boxes."""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
import struct
from typing import Iterable


def total_order_key(value: float) -> int:
    """Integer key ordering floats like IEEE 754 totalOrder (-0.0 sorts before +0.0)."""
    bits = struct.unpack("<q", struct.pack("<d", float(value)))[0]
    if bits < 0:
        bits ^= 0x7FFFFFFFFFFFFFFF
    return bits


def utm_zone(lon: float) -> int:
    return int(math.floor((float(lon) + 180.0) / 6.0)) + 1


def utm_proj4(lon: float, lat: float) -> str:
    """PROJ string of the UTM zone containing (lon, lat)."""
    south = " +south" if float(lat) < 0.0 else ""
    return f"+proj=utm +zone={utm_zone(lon)} +datum=WGS84 +units=m +no_defs +type=crs{south}"


def _fmt_ele(ele: float | None) -> str:
    return "None" if ele is None else f"{ele:.1f}"


@dataclass(frozen=True, slots=True)
class WGS84Point:
    lon: float
    lat: float
    ele: float | None = None

    def to_utm_proj4(self) -> str:
        return utm_proj4(self.lon, self.lat)

    def __str__(self) -> str:
        return f"wgs(lat: {self.lat:.5f}, lon: {self.lon:.5f}, ele: {_fmt_ele(self.ele)})"


@dataclass(frozen=True, slots=True)
class MercatorPoint:
    """Point in the metric (UTM) plane of the current run.

    Sets and sorting use `key`, a total order on (x, y) that ignores elevation.
    """

    x: float
    y: float
    ele: float | None = None

    @property
    def key(self) -> tuple[int, int]:
        return total_order_key(self.x), total_order_key(self.y)

    def flat(self) -> MercatorPoint:
        return replace(self, ele=0.0)

    def x_y(self) -> tuple[float, float]:
        return self.x, self.y

    def __str__(self) -> str:
        return f"mercator(x: {self.x:.5f}, y: {self.y:.5f}, z: {_fmt_ele(self.ele)})"


@dataclass(frozen=True, slots=True)
class WGS84BoundingBox:
    min: WGS84Point
    max: WGS84Point

    @classmethod
    def from_points(cls, p1: WGS84Point, p2: WGS84Point) -> WGS84BoundingBox:
        """Box spanned by two corners in any orientation."""
        return cls(
            min=WGS84Point(lon=min(p1.lon, p2.lon), lat=min(p1.lat, p2.lat)),
            max=WGS84Point(lon=max(p1.lon, p2.lon), lat=max(p1.lat, p2.lat)),
        )

    @classmethod
    def enclosing(cls, points: Iterable[WGS84Point]) -> WGS84BoundingBox:
        pts = list(points)
        if not pts:
            raise ValueError("Cannot build a bounding box from zero points")
        lons = [p.lon for p in pts]
        lats = [p.lat for p in pts]
        return cls(
            min=WGS84Point(lon=min(lons), lat=min(lats)),
            max=WGS84Point(lon=max(lons), lat=max(lats)),
        )

    def center(self) -> WGS84Point:
        return WGS84Point(lon=0.5 * (self.min.lon + self.max.lon), lat=0.5 * (self.min.lat + self.max.lat))

    def corners(self) -> list[WGS84Point]:
        return [
            self.min,
            WGS84Point(lon=self.min.lon, lat=self.max.lat),
            self.max,
            WGS84Point(lon=self.max.lon, lat=self.min.lat),
        ]

    def union(self, other: WGS84BoundingBox) -> WGS84BoundingBox:
        return WGS84BoundingBox(
            min=WGS84Point(lon=min(self.min.lon, other.min.lon), lat=min(self.min.lat, other.min.lat)),
            max=WGS84Point(lon=max(self.max.lon, other.max.lon), lat=max(self.max.lat, other.max.lat)),
        )

    def intersection(self, other: WGS84BoundingBox) -> WGS84BoundingBox | None:
        """Overlap of both boxes, or None when they are disjoint along either axis."""
        min_lon = max(self.min.lon, other.min.lon)
        min_lat = max(self.min.lat, other.min.lat)
        max_lon = min(self.max.lon, other.max.lon)
        max_lat = min(self.max.lat, other.max.lat)
        if min_lon <= max_lon and min_lat <= max_lat:
            return WGS84BoundingBox(
                min=WGS84Point(lon=min_lon, lat=min_lat),
                max=WGS84Point(lon=max_lon, lat=max_lat),
            )
        return None

    def contains_point(self, w: WGS84Point) -> bool:
        return self.min.lon <= w.lon <= self.max.lon and self.min.lat <= w.lat <= self.max.lat

    def contains(self, other: WGS84BoundingBox) -> bool:
        return (
            self.min.lon <= other.min.lon
            and self.min.lat <= other.min.lat
            and self.max.lon >= other.max.lon
            and self.max.lat >= other.max.lat
        )

    def __str__(self) -> str:
        return f"wgsbbox(min: {self.min}, max: {self.max})"


@dataclass(frozen=True, slots=True)
class MercatorBoundingBox:
    min: MercatorPoint
    max: MercatorPoint

    @classmethod
    def enclosing(cls, points: Iterable[MercatorPoint]) -> MercatorBoundingBox:
        pts = list(points)
        if not pts:
            raise ValueError("Cannot build a bounding box from zero points")
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        return cls(min=MercatorPoint(x=min(xs), y=min(ys)), max=MercatorPoint(x=max(xs), y=max(ys)))

    @property
    def width(self) -> float:
        return self.max.x - self.min.x

    @property
    def height(self) -> float:
        return self.max.y - self.min.y

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_list(self) -> list[MercatorPoint]:
        return [
            self.min,
            MercatorPoint(x=self.min.x, y=self.max.y),
            self.max,
            MercatorPoint(x=self.max.x, y=self.min.y),
        ]

    def __str__(self) -> str:
        return f"mercatorbbox(min: {self.min}, max: {self.max})"
