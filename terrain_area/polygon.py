"""Input polygon: geographic ring with its UTM projection and bounding boxes."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, Sequence

from terrain_area.catalog import candidates
from terrain_area.config import CatalogConfig
from terrain_area.errors import InvalidPolygonError, MultiZoneError
from terrain_area.geometry import MercatorBoundingBox, MercatorPoint, WGS84BoundingBox, WGS84Point
from terrain_area.projection import UtmProjection

logger = logging.getLogger(__name__)


class Polygon:
    """Simple closed ring in lon/lat; the first vertex is not repeated at the end.

    The metric plane of the polygon is the UTM zone of its first vertex.
    """

    def __init__(self, wgs: Sequence[WGS84Point], *, name: str = "polygon") -> None:
        pts = list(wgs)
        if len(pts) >= 2 and (pts[0].lon, pts[0].lat) == (pts[-1].lon, pts[-1].lat):
            pts = pts[:-1]
        self.wgs: list[WGS84Point] = pts
        self.name = name
        self._mercator: list[MercatorPoint] | None = None

    @classmethod
    def from_lonlat(cls, coords: Iterable[Sequence[float]], *, name: str = "polygon") -> Polygon:
        return cls([WGS84Point(lon=float(c[0]), lat=float(c[1])) for c in coords], name=name)

    def __len__(self) -> int:
        return len(self.wgs)

    def __repr__(self) -> str:
        return f"Polygon(name={self.name!r}, vertices={len(self.wgs)})"

    def validate(self) -> None:
        if len(self.wgs) < 3:
            raise InvalidPolygonError(f"{self.name}: polygon needs at least 3 vertices, got {len(self.wgs)}")
        if len({(p.lon, p.lat) for p in self.wgs}) < 3:
            raise InvalidPolygonError(f"{self.name}: polygon needs at least 3 distinct vertices")
        for p in self.wgs:
            if not (math.isfinite(p.lon) and math.isfinite(p.lat)):
                raise InvalidPolygonError(f"{self.name}: non-finite vertex {p}")
            if not (-180.0 <= p.lon <= 180.0 and -90.0 <= p.lat <= 90.0):
                raise InvalidPolygonError(f"{self.name}: vertex out of lon/lat range {p}")

    def zones(self) -> list[str]:
        return sorted({p.to_utm_proj4() for p in self.wgs})

    def check_single_zone(self) -> None:
        zones = self.zones()
        if len(zones) > 1:
            raise MultiZoneError(zones)

    @property
    def projection(self) -> str:
        if not self.wgs:
            raise InvalidPolygonError(f"{self.name}: empty polygon has no projection")
        return self.wgs[0].to_utm_proj4()

    def mercator(self) -> list[MercatorPoint]:
        if self._mercator is None:
            proj = UtmProjection(self.projection)
            self._mercator = [proj.project(w) for w in self.wgs]
        return list(self._mercator)

    def wgsbbox(self) -> WGS84BoundingBox:
        return WGS84BoundingBox.enclosing(self.wgs)

    def mercatorbbox(self) -> MercatorBoundingBox:
        return MercatorBoundingBox.enclosing(self.mercator())

    def candidates(self, config: CatalogConfig) -> list[Path]:
        return candidates(self.wgs, config)

    def info(self, config: CatalogConfig | None = None) -> None:
        mbox = self.mercatorbbox()
        logger.info("polygon: %s", self.name)
        logger.info("polygon: len: %d", len(self.wgs))
        logger.info("polygon: projection: %s", self.projection)
        logger.info("polygon: wgs bbox: %s", self.wgsbbox())
        logger.info("polygon: mercator bbox: %s", mbox)
        logger.info("polygon: width: %.1f", mbox.width)
        logger.info("polygon: height: %.1f", mbox.height)
        logger.info("polygon: area: %.1f", mbox.area)
        if config is not None:
            logger.info("polygon: candidates: %s", ", ".join(str(p) for p in self.candidates(config)))
