"""WGS84 -> UTM projection of single points and coordinate arrays."""

from __future__ import annotations

import logging

import numpy as np
from pyproj import Transformer
from pyproj.exceptions import CRSError

from terrain_area.errors import ProjectionError
from terrain_area.geometry import MercatorPoint, WGS84Point, utm_proj4

logger = logging.getLogger(__name__)

WGS84_PROJ4 = "+proj=longlat +ellps=WGS84 +datum=WGS84 +no_defs +type=crs"


class UtmProjection:
    """Forward transform from lon/lat degrees to a metric target CRS.

    Elevation is carried through unchanged. A zone mismatch between a point and
    the target CRS is logged as a warning; the point is still projected.
    """

    def __init__(self, dst_spec: str) -> None:
        if not dst_spec or not dst_spec.strip():
            raise ProjectionError("Target CRS specification must not be empty")
        self.dst_spec = dst_spec
        try:
            self._transformer = Transformer.from_crs(WGS84_PROJ4, dst_spec, always_xy=True)
        except CRSError as e:
            raise ProjectionError(f"Invalid target CRS {dst_spec!r}: {e}") from e

    def project(self, wgs: WGS84Point) -> MercatorPoint:
        src_spec = wgs.to_utm_proj4()
        if src_spec != self.dst_spec:
            logger.warning("UTM zone mismatch: [%s] vs [%s]", src_spec, self.dst_spec)
        x, y = self._transformer.transform(float(wgs.lon), float(wgs.lat))
        return MercatorPoint(x=float(x), y=float(y), ele=wgs.ele)

    def project_arrays(
        self,
        lons: np.ndarray,
        lats: np.ndarray,
        eles: np.ndarray | None = None,
    ) -> list[MercatorPoint]:
        """Project many points at once; zone mismatches are reported once per call."""
        lons = np.asarray(lons, dtype=np.float64).ravel()
        lats = np.asarray(lats, dtype=np.float64).ravel()
        if lons.shape != lats.shape:
            raise ValueError("lons and lats must have the same shape")
        if lons.size == 0:
            return []

        self._warn_zone_mismatch(lons, lats)

        xs, ys = self._transformer.transform(lons, lats)
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        if eles is None:
            return [MercatorPoint(x=float(x), y=float(y)) for x, y in zip(xs, ys)]
        eles = np.asarray(eles, dtype=np.float64).ravel()
        return [MercatorPoint(x=float(x), y=float(y), ele=float(e)) for x, y, e in zip(xs, ys, eles)]

    def _warn_zone_mismatch(self, lons: np.ndarray, lats: np.ndarray) -> None:
        # One representative point per (zone, hemisphere) pair.
        zone_ids = (np.floor((lons + 180.0) / 6.0).astype(np.int64) + 1) * 2 + (lats < 0.0)
        uniq, first = np.unique(zone_ids, return_index=True)
        bad_ids = []
        bad_specs = []
        for zone_id, i in zip(uniq.tolist(), first.tolist()):
            spec = utm_proj4(float(lons[i]), float(lats[i]))
            if spec != self.dst_spec:
                bad_ids.append(zone_id)
                bad_specs.append(spec)
        if not bad_ids:
            return
        n_bad = int(np.isin(zone_ids, bad_ids).sum())
        logger.warning(
            "UTM zone mismatch for %d of %d point(s): %s vs [%s]",
            n_bad,
            int(lons.size),
            ", ".join(f"[{s}]" for s in bad_specs),
            self.dst_spec,
        )
