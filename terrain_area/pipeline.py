"""End-to-end estimate for one polygon: posts -> triangles -> clipped facets -> areas."""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass
import logging
from time import perf_counter
from typing import Callable, Iterable

from terrain_area.area import Facet, area_3d, flat
from terrain_area.config import CatalogConfig
from terrain_area.dataset import select_datasets
from terrain_area.errors import EmptySurfaceError, NoDatasetError
from terrain_area.geometry import MercatorPoint
from terrain_area.intersection import PolygonClipper
from terrain_area.polygon import Polygon
from terrain_area.reference import geodesic_area, planar_area
from terrain_area.triangulation import triangulate

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str, int, int], None]

# Facets whose flat area is below this (m²) are clipping artifacts.
MIN_FACET_AREA = 1e-3


class PostSet:
    """Elevation posts keyed by the total order of (x, y); the first insert wins."""

    def __init__(self) -> None:
        self._posts: dict[tuple[int, int], MercatorPoint] = {}

    def __len__(self) -> int:
        return len(self._posts)

    def __contains__(self, p: MercatorPoint) -> bool:
        return p.key in self._posts

    def add(self, p: MercatorPoint) -> bool:
        key = p.key
        if key in self._posts:
            return False
        self._posts[key] = p
        return True

    def update(self, points: Iterable[MercatorPoint]) -> int:
        return sum(1 for p in points if self.add(p))

    def sorted(self) -> list[MercatorPoint]:
        return [self._posts[k] for k in sorted(self._posts)]


@dataclass(frozen=True, slots=True)
class SurfaceResult:
    name: str
    projection: str
    geodesic2d: float
    planar2d: float
    flat2d: float
    surface3d: float
    ratio: float
    estimate: float
    facets: tuple[Facet, ...]
    dropped_facets: int
    posts: int
    triangles: int
    datasets: tuple[str, ...]
    outline: tuple[MercatorPoint, ...]
    runtime_sec: float

    @property
    def facet_count(self) -> int:
        return len(self.facets)

    def to_row(self) -> dict:
        return {
            "name": self.name,
            "projection": self.projection,
            "geodesic2d": self.geodesic2d,
            "planar2d": self.planar2d,
            "flat2d": self.flat2d,
            "surface3d": self.surface3d,
            "ratio": self.ratio,
            "estimate": self.estimate,
            "facets": self.facet_count,
            "dropped_facets": self.dropped_facets,
            "posts": self.posts,
            "triangles": self.triangles,
            "datasets": ";".join(self.datasets),
            "runtime_sec": self.runtime_sec,
        }


def process_polygon(
    polygon: Polygon,
    config: CatalogConfig,
    *,
    min_facet_area: float = MIN_FACET_AREA,
    progress: ProgressFn | None = None,
) -> SurfaceResult:
    """Drape `polygon` over the DEM tiles from `config` and measure it.

    Raises:
      InvalidPolygonError, MultiZoneError: unusable polygon.
      NoDatasetError: no tile intersects the polygon's bounding box.
      DatasetError: a tile could not be opened or read.
      EmptySurfaceError: every facet was dropped.
    """
    t0 = perf_counter()
    polygon.validate()
    polygon.check_single_zone()
    polygon.info()

    pbbox = polygon.wgsbbox()
    posts = PostSet()
    used: list[str] = []

    datasets = select_datasets(polygon, config)
    if not datasets:
        raise NoDatasetError(f"{polygon.name}: no DEM tile intersects {pbbox}")

    with ExitStack() as stack:
        for d in datasets:
            stack.enter_context(d)
        for d in datasets:
            d.info()
            bbox = pbbox.intersection(d.wgsbbox())
            if bbox is None:
                continue
            logger.debug("bbox: %s", bbox)
            snapped = d.snap(bbox)
            logger.debug("snap: %s", snapped)
            added = posts.update(d.points_inside(snapped))
            logger.debug("%s: %d new post(s)", d.path, added)
            used.append(str(d.path))

    if not used:
        raise NoDatasetError(f"{polygon.name}: no DEM tile intersects {pbbox}")

    logger.debug("gridpoints: %d", len(posts))
    triangles = triangulate(posts.sorted())
    logger.debug("grid triangles: %d", len(triangles))

    outline = polygon.mercator()
    clipper = PolygonClipper(outline)
    kept: list[Facet] = []
    dropped = 0
    sum2d = 0.0
    sum3d = 0.0
    n_tri = len(triangles)
    for i, tri in enumerate(triangles, start=1):
        for facet in clipper.clip(tri):
            a2d = area_3d(flat(facet))
            if len(facet) < 3 or a2d < min_facet_area:
                logger.debug("remove artifact with area %.4f", a2d)
                dropped += 1
                continue
            sum2d += a2d
            sum3d += area_3d(facet)
            kept.append(facet)
        if progress is not None:
            progress("clip", i, n_tri)

    if dropped:
        logger.info("removed %d artifact facet(s)", dropped)
    logger.debug("planes: %d", len(kept))
    if not kept:
        raise EmptySurfaceError(f"{polygon.name}: no facet survived clipping ({n_tri} triangle(s))")

    geodesic2d = geodesic_area(polygon.wgs)
    planar2d = planar_area(outline)
    ratio = sum3d / sum2d
    return SurfaceResult(
        name=polygon.name,
        projection=polygon.projection,
        geodesic2d=geodesic2d,
        planar2d=planar2d,
        flat2d=sum2d,
        surface3d=sum3d,
        ratio=ratio,
        estimate=ratio * geodesic2d,
        facets=tuple(kept),
        dropped_facets=dropped,
        posts=len(posts),
        triangles=n_tri,
        datasets=tuple(used),
        outline=tuple(outline),
        runtime_sec=perf_counter() - t0,
    )
