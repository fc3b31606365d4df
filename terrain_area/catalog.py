"""Candidate DEM discovery: explicit lists, SRTM .hgt tile names, recursive .tif scan."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable

from terrain_area.config import CatalogConfig
from terrain_area.geometry import WGS84Point

logger = logging.getLogger(__name__)


def hgt_basename_lonlat(lon: float, lat: float) -> str:
    """SRTM tile name of the 1x1 degree cell containing (lon, lat), e.g. N18W070.hgt.

    Tiles are named after their south-west corner.
    """
    lat_floor = int(math.floor(lat))
    lon_floor = int(math.floor(lon))
    lat_prefix = "N" if lat_floor >= 0 else "S"
    lon_prefix = "E" if lon_floor >= 0 else "W"
    return f"{lat_prefix}{abs(lat_floor):02d}{lon_prefix}{abs(lon_floor):03d}.hgt"


def hgt_basename(point: WGS84Point) -> str:
    return hgt_basename_lonlat(point.lon, point.lat)


def _scan_tifs(root: Path) -> list[Path]:
    if not root.is_dir():
        logger.debug("tif directory not found, skipping scan: %s", root)
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in {".tif", ".tiff"})


def candidates(vertices: Iterable[WGS84Point], config: CatalogConfig) -> list[Path]:
    """Sorted, de-duplicated DEM paths that may cover the given polygon vertices.

    An explicit `config.datasets` list wins. Otherwise one `.hgt` per distinct
    vertex tile (missing files are skipped with a warning) plus every `.tif`
    below `config.tif_dir`.
    """
    if config.datasets:
        return sorted(set(config.datasets))

    found: set[Path] = set()
    for name in sorted({hgt_basename(v) for v in vertices}):
        path = config.hgt_dir / name
        if path.exists():
            found.add(path)
        else:
            logger.warning("hgt tile not found: %s", path)

    if config.tif_dir is not None:
        found.update(_scan_tifs(config.tif_dir))

    return sorted(found)
