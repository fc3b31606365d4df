"""Synthetic EPSG:4326 DEM tiles for demos and tests.

Tiles follow the same geo-transform convention as the readers expect: the
upper-left of the transform is the first post, posts sit at
(west + col*step, north - row*step).

Surfaces are defined in local metres (x east of the west edge, y north of the
south edge) so their slopes are easy to reason about:

- flat:  z = base
- ramp:  z = base + g*y, with g = relief / tile height (north-facing plane)
- hill:  gaussian bump of height `relief` centred on the tile
- waves: z = base + relief/2 * sin(2*pi*x/L) * sin(2*pi*y/L)
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from pathlib import Path
from typing import Callable

import numpy as np
import rasterio
from rasterio.crs import CRS
from rasterio.transform import from_origin


SurfaceFunc = Callable[[np.ndarray, np.ndarray], np.ndarray]

# Mean length of one degree of latitude; good enough for local metres.
METERS_PER_DEGREE = 111_320.0

SYNTHETIC_PRESETS = ["flat", "ramp", "hill", "waves"]


@dataclass(frozen=True, slots=True)
class SyntheticTile:
    west: float
    north: float
    cols: int
    rows: int
    step: float

    @property
    def east(self) -> float:
        return self.west + float(self.cols - 1) * self.step

    @property
    def south(self) -> float:
        return self.north - float(self.rows - 1) * self.step

    @property
    def width_m(self) -> float:
        lat_c = 0.5 * (self.north + self.south)
        return (self.east - self.west) * METERS_PER_DEGREE * math.cos(math.radians(lat_c))

    @property
    def height_m(self) -> float:
        return (self.north - self.south) * METERS_PER_DEGREE

    def lonlat(self) -> tuple[np.ndarray, np.ndarray]:
        """Post coordinates, shape (rows, cols); row 0 is the northern edge."""
        lons = self.west + np.arange(self.cols, dtype=np.float64) * self.step
        lats = self.north - np.arange(self.rows, dtype=np.float64) * self.step
        return np.meshgrid(lons, lats)

    def local_xy(self) -> tuple[np.ndarray, np.ndarray]:
        lon, lat = self.lonlat()
        lat_c = 0.5 * (self.north + self.south)
        x = (lon - self.west) * METERS_PER_DEGREE * math.cos(math.radians(lat_c))
        y = (lat - self.south) * METERS_PER_DEGREE
        return x, y


def flat(base: float = 0.0) -> SurfaceFunc:
    def f(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return np.full_like(x, float(base), dtype=np.float64)

    return f


def ramp(gradient: float, base: float = 0.0) -> SurfaceFunc:
    """z = base + gradient*y"""

    def f(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return base + gradient * y

    return f


def hill(height: float, sigma: float, *, x0: float, y0: float, base: float = 0.0) -> SurfaceFunc:
    def f(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        r2 = (x - x0) ** 2 + (y - y0) ** 2
        return base + height * np.exp(-0.5 * r2 / (sigma * sigma))

    return f


def waves(amplitude: float, wavelength: float, base: float = 0.0) -> SurfaceFunc:
    k = 2.0 * math.pi / float(wavelength)

    def f(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return base + amplitude * np.sin(k * x) * np.sin(k * y)

    return f


def surface_for(preset: str, tile: SyntheticTile, *, relief: float, base: float = 0.0) -> SurfaceFunc:
    p = preset.strip().lower()
    if p == "flat":
        return flat(base)
    if p == "ramp":
        return ramp(relief / tile.height_m, base)
    if p == "hill":
        sigma = 0.2 * min(tile.width_m, tile.height_m)
        return hill(relief, sigma, x0=0.5 * tile.width_m, y0=0.5 * tile.height_m, base=base)
    if p == "waves":
        return waves(0.5 * relief, 0.25 * min(tile.width_m, tile.height_m), base)
    raise ValueError(f"Unknown preset {preset!r} (choose from {', '.join(SYNTHETIC_PRESETS)})")


def generate_tile(preset: str, tile: SyntheticTile, *, relief: float = 100.0, base: float = 0.0) -> np.ndarray:
    """Elevations (rows, cols) float64 for `preset` sampled at the tile's posts."""
    if tile.cols < 2 or tile.rows < 2:
        raise ValueError("Synthetic tile needs at least 2x2 posts")
    if not (tile.step > 0):
        raise ValueError(f"step must be positive, got {tile.step}")
    x, y = tile.local_xy()
    return surface_for(preset, tile, relief=relief, base=base)(x, y).astype(np.float64, copy=False)


def write_tile(
    path: str | Path,
    z: np.ndarray,
    tile: SyntheticTile,
    *,
    nodata: float | None = None,
    dtype: str = "float32",
) -> Path:
    """Write `z` as a single-band EPSG:4326 GeoTIFF for `tile`."""
    p = Path(path)
    if z.shape != (tile.rows, tile.cols):
        raise ValueError(f"z shape {z.shape} does not match tile ({tile.rows}, {tile.cols})")
    p.parent.mkdir(parents=True, exist_ok=True)
    profile = {
        "driver": "GTiff",
        "height": tile.rows,
        "width": tile.cols,
        "count": 1,
        "dtype": dtype,
        "crs": CRS.from_epsg(4326),
        "transform": from_origin(tile.west, tile.north, tile.step, tile.step),
        "nodata": nodata,
    }
    with rasterio.open(p, "w", **profile) as dst:
        dst.write(z.astype(dtype, copy=False), 1)
    return p
