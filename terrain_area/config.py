"""DEM catalog configuration (environment + CLI overrides)."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Mapping

ENV_DATASETS = "TERRAIN_AREA_DATASETS"
ENV_HGT_DIR = "TERRAIN_AREA_HGT_DIR"
ENV_TIF_DIR = "TERRAIN_AREA_TIF_DIR"

DEFAULT_HGT_DIR = Path("~/DEM/SRTM/GL3/hgt")
DEFAULT_TIF_DIR = Path("~/DEM/SRTM/GL1")


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    """Where candidate DEM files come from.

    - `datasets`: explicit list of DEM paths; when non-empty it replaces discovery.
    - `hgt_dir`: directory of SRTM `.hgt` tiles named after their SW corner.
    - `tif_dir`: directory scanned recursively for (finer) `.tif` tiles.
    """

    datasets: tuple[Path, ...] = field(default_factory=tuple)
    hgt_dir: Path = DEFAULT_HGT_DIR
    tif_dir: Path | None = DEFAULT_TIF_DIR

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CatalogConfig:
        env = os.environ if environ is None else environ
        raw = env.get(ENV_DATASETS, "")
        datasets = tuple(Path(s.strip()).expanduser() for s in raw.split(",") if s.strip())
        hgt_dir = Path(env.get(ENV_HGT_DIR) or DEFAULT_HGT_DIR).expanduser()
        tif_dir = Path(env.get(ENV_TIF_DIR) or DEFAULT_TIF_DIR).expanduser()
        return cls(datasets=datasets, hgt_dir=hgt_dir, tif_dir=tif_dir)

    def to_json(self) -> dict:
        return {
            "datasets": [str(p) for p in self.datasets],
            "hgt_dir": str(self.hgt_dir),
            "tif_dir": None if self.tif_dir is None else str(self.tif_dir),
        }
