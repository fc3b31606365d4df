"""DEM tiles: bounding boxes, raster-aligned snapping, post sampling and tile selection."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import rasterio
from rasterio.errors import RasterioIOError
from rasterio.windows import Window

from terrain_area.errors import DatasetError
from terrain_area.geometry import MercatorBoundingBox, MercatorPoint, WGS84BoundingBox, WGS84Point
from terrain_area.projection import UtmProjection
from terrain_area.raster import Raster

if TYPE_CHECKING:
    from terrain_area.config import CatalogConfig
    from terrain_area.polygon import Polygon

logger = logging.getLogger(__name__)


class Dataset:
    """An opened DEM tile projected into one UTM plane.

    Owns the rasterio handle until `close()`; use as a context manager.
    """

    def __init__(
        self,
        path: Path,
        handle: rasterio.DatasetReader,
        raster: Raster,
        projection: str,
    ) -> None:
        self.path = path
        self._handle = handle
        self.raster = raster
        self.projection = projection
        self.nodata: float | None = None if handle.nodata is None else float(handle.nodata)
        self._proj = UtmProjection(projection)

    @classmethod
    def open(cls, path: str | Path, projection: str) -> Dataset:
        p = Path(path)
        try:
            handle = rasterio.open(p)
        except RasterioIOError as e:
            raise DatasetError(f"Failed to open DEM: {p}: {e}") from e
        try:
            raster = Raster.from_transform(handle.transform, handle.width, handle.height)
            return cls(p, handle, raster, projection)
        except BaseException:
            handle.close()
            raise

    @property
    def closed(self) -> bool:
        return bool(self._handle.closed)

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    def __enter__(self) -> Dataset:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Dataset(path={str(self.path)!r}, xstep={self.raster.xstep:g})"

    def info(self) -> None:
        mbox = self.mercatorbbox()
        logger.info("dataset: %s", self.path)
        logger.info("dataset: %s", self.projection)
        logger.info("dataset: xsize %d", self.raster.xsize)
        logger.info("dataset: ysize %d", self.raster.ysize)
        logger.info("dataset: xstep %.5f", self.raster.xstep)
        logger.info("dataset: ystep %.5f", self.raster.ystep)
        logger.info("dataset: wgs bbox: %s", self.wgsbbox())
        logger.info("dataset: mercator bbox: %s", mbox)
        logger.info("dataset: width: %.1f", mbox.width)
        logger.info("dataset: height: %.1f", mbox.height)
        logger.info("dataset: area: %.1f", mbox.area)

    def wgsbbox(self) -> WGS84BoundingBox:
        r = self.raster
        p1 = r.upper_left
        p2 = WGS84Point(lon=p1.lon + r.xsize * r.xstep, lat=p1.lat + r.ysize * r.ystep)
        return WGS84BoundingBox.from_points(p1, p2)

    def mercatorbbox(self) -> MercatorBoundingBox:
        corners = self.wgsbbox().corners()
        projected = self._proj.project_arrays(
            np.array([c.lon for c in corners]),
            np.array([c.lat for c in corners]),
        )
        return MercatorBoundingBox.enclosing(projected)

    def _raster_box(self, b: WGS84BoundingBox) -> tuple[int, int, int, int]:
        c1, r1 = self.raster.coordinates(b.min)
        c2, r2 = self.raster.coordinates(b.max)
        return (
            int(math.floor(min(c1, c2))),
            int(math.floor(min(r1, r2))),
            int(math.ceil(max(c1, c2))),
            int(math.ceil(max(r1, r2))),
        )

    def snap(self, b: WGS84BoundingBox) -> WGS84BoundingBox:
        """Smallest box with corners on posts of this raster that contains `b`."""
        min_col, min_row, max_col, max_row = self._raster_box(b)
        return WGS84BoundingBox.from_points(
            self.raster.wgs(min_col, min_row),
            self.raster.wgs(max_col, max_row),
        )

    def window(self, snapped_box: WGS84BoundingBox) -> tuple[int, int, int, int]:
        """Inclusive (col_start, row_start, col_end, row_end) post window for a snapped box."""
        inter = self.wgsbbox().intersection(snapped_box)
        if inter is None:
            raise DatasetError(f"{self.path}: box {snapped_box} does not intersect {self.wgsbbox()}")

        c1, r1 = self.raster.icoordinates(inter.min)
        c2, r2 = self.raster.icoordinates(inter.max)
        col_start, row_start = min(c1, c2), min(r1, r2)
        col_end = min(max(c1, c2), self.raster.xsize - 1)
        row_end = min(max(r1, r2), self.raster.ysize - 1)
        if col_start < 0 or row_start < 0:
            raise DatasetError(f"{self.path}: negative window origin ({col_start}, {row_start})")
        return col_start, row_start, col_end, row_end

    def read_window(self, col_start: int, row_start: int, col_end: int, row_end: int) -> np.ndarray:
        """Band 1 over the inclusive window as float64 (rows, cols), no resampling."""
        win = Window(col_off=col_start, row_off=row_start, width=col_end - col_start + 1, height=row_end - row_start + 1)
        try:
            return self._handle.read(1, window=win, out_dtype="float64")
        except RasterioIOError as e:
            raise DatasetError(f"Failed to read DEM window {win} from {self.path}: {e}") from e

    def points_inside(self, snapped_box: WGS84BoundingBox) -> list[MercatorPoint]:
        """Projected elevation posts of this tile lying in `snapped_box`.

        Posts whose sample is nodata (or non-finite) are skipped.
        """
        col_start, row_start, col_end, row_end = self.window(snapped_box)
        logger.debug("minpix: (%d, %d)", col_start, row_start)
        logger.debug("maxpix: (%d, %d)", col_end, row_end)
        if col_end < col_start or row_end < row_start:
            return []

        z = self.read_window(col_start, row_start, col_end, row_end)

        cols = np.arange(col_start, col_end + 1, dtype=np.float64)
        rows = np.arange(row_start, row_end + 1, dtype=np.float64)
        lon = self.raster.upper_left.lon + cols * self.raster.xstep
        lat = self.raster.upper_left.lat + rows * self.raster.ystep
        lon_grid, lat_grid = np.meshgrid(lon, lat)

        inside = (
            (lon_grid >= snapped_box.min.lon)
            & (lon_grid <= snapped_box.max.lon)
            & (lat_grid >= snapped_box.min.lat)
            & (lat_grid <= snapped_box.max.lat)
        )
        if not bool(inside.all()):
            raise DatasetError(
                f"{self.path}: {int((~inside).sum())} post(s) outside snapped box {snapped_box}; box is not snapped"
            )

        valid = np.isfinite(z)
        if self.nodata is not None and math.isfinite(self.nodata):
            valid &= z != self.nodata
        n_void = int(valid.size - valid.sum())
        if n_void:
            logger.warning("%s: skipped %d nodata post(s)", self.path, n_void)

        return self._proj.project_arrays(lon_grid[valid], lat_grid[valid], z[valid])


def remove_redundant_datasets(datasets: list[Dataset]) -> list[Dataset]:
    """Drop tiles that a strictly finer tile fully covers; equal steps keep both."""
    to_remove: list[int] = []
    for i1, d1 in enumerate(datasets):
        bbox1 = d1.wgsbbox()
        for i2, d2 in enumerate(datasets):
            if i1 == i2:
                continue
            if d1.raster.xstep > d2.raster.xstep and d2.wgsbbox().contains(bbox1):
                logger.debug("discard %s (prefer %s instead)", d1.path, d2.path)
                to_remove.append(i1)
                break

    kept = list(datasets)
    for idx in sorted(set(to_remove), reverse=True):
        del kept[idx]
    return kept


def select_datasets(polygon: Polygon, config: CatalogConfig) -> list[Dataset]:
    """Open candidate tiles for `polygon`, prune redundant ones and keep those touching its bbox.

    Every dataset that is not returned is closed.
    """
    paths = polygon.candidates(config)
    for p in paths:
        logger.debug("found candidate: %s", p)

    opened: list[Dataset] = []
    try:
        for p in paths:
            opened.append(Dataset.open(p, polygon.projection))
    except BaseException:
        for d in opened:
            d.close()
        raise

    kept = remove_redundant_datasets(opened)
    polybox = polygon.wgsbbox()
    selected = []
    for d in kept:
        if d.wgsbbox().intersection(polybox) is None:
            logger.debug("discard %s (bbox)", d.path)
            continue
        selected.append(d)

    keep_ids = {id(d) for d in selected}
    for d in opened:
        if id(d) not in keep_ids:
            d.close()
    return selected
