"""Affine raster grid: conversions between lon/lat and (col, row) post indices."""

from __future__ import annotations

from dataclasses import dataclass
import math

from rasterio.transform import Affine

from terrain_area.geometry import WGS84Point


def round_half_away(value: float) -> int:
    """Round to nearest integer, ties away from zero (not banker's rounding)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True, slots=True)
class Raster:
    """Post grid of a DEM tile.

    Post (col, row) sits at upper_left + (col * xstep, row * ystep). Column and
    row values outside [0, xsize) x [0, ysize) are valid inputs; callers clamp.
    """

    upper_left: WGS84Point
    xsize: int
    ysize: int
    xstep: float
    ystep: float

    @classmethod
    def from_transform(cls, transform: Affine, width: int, height: int) -> Raster:
        # GDAL order: (ul_x, dx, rx, ul_y, ry, dy); rotation terms are assumed 0.
        ul_x, dx, _rx, ul_y, _ry, dy = transform.to_gdal()
        return cls(
            upper_left=WGS84Point(lon=float(ul_x), lat=float(ul_y)),
            xsize=int(width),
            ysize=int(height),
            xstep=float(dx),
            ystep=float(dy),
        )

    def coordinates(self, world: WGS84Point) -> tuple[float, float]:
        x = (world.lon - self.upper_left.lon) / self.xstep
        y = (world.lat - self.upper_left.lat) / self.ystep
        return x, y

    def icoordinates(self, world: WGS84Point) -> tuple[int, int]:
        x, y = self.coordinates(world)
        return round_half_away(x), round_half_away(y)

    def wgs(self, col: int, row: int) -> WGS84Point:
        return WGS84Point(
            lon=self.upper_left.lon + float(col) * self.xstep,
            lat=self.upper_left.lat + float(row) * self.ystep,
        )
