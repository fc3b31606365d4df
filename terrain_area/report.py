"""Run outputs: results table, Typst report and run metadata."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
import re
import sys
from typing import Any, Iterable, Mapping

import pandas as pd

from terrain_area import __version__
from terrain_area.pipeline import SurfaceResult

RESULT_COLUMNS = [
    "name",
    "projection",
    "geodesic2d",
    "planar2d",
    "flat2d",
    "surface3d",
    "ratio",
    "estimate",
    "facets",
    "dropped_facets",
    "posts",
    "triangles",
    "datasets",
    "runtime_sec",
]


def safe_name(name: str) -> str:
    """File-system friendly stem for a polygon name."""
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return stem or "polygon"


def results_frame(results: Iterable[SurfaceResult]) -> pd.DataFrame:
    return pd.DataFrame.from_records([r.to_row() for r in results], columns=RESULT_COLUMNS)


def write_csv(results: Iterable[SurfaceResult], outdir: str | Path) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    path = outdir / "results.csv"
    results_frame(results).to_csv(path, index=False)
    return path


def _raw_fence(text: str) -> str:
    # A raw block must be fenced by more backticks than any run inside it.
    longest = max((len(m) for m in re.findall(r"`+", text)), default=0)
    return "`" * max(3, longest + 1)


def _typst_escape(text: str) -> str:
    return re.sub(r"([\\*_#\[\]$`<>@])", r"\\\1", text)


def make_typst_document(results: Iterable[SurfaceResult], svgs: Mapping[str, str] | None = None) -> str:
    """A4 Typst source with one page per polygon: ratio, 2D/3D table and the facet SVG."""
    svgs = svgs or {}
    parts = ['#set page(paper: "a4")\n#set text(size: 11pt)\n\n']
    for r in results:
        parts.append(f"== *{_typst_escape(r.name)}*\n\n")
        parts.append(f"== *ratio: +{100.0 * (r.ratio - 1.0):.2f}%*\n\n")
        parts.append(
            "#table(\n"
            "  columns: (1fr, 1fr, 1fr),\n"
            "  inset: 10pt,\n"
            "  align: horizon,\n"
            "  [*Field*], [*2D Value*], [*3D Value*],\n"
            f"  [Geodesic], [{r.geodesic2d:.0f} $m^2$], [{r.estimate:.0f} $m^2$],\n"
            f"  [Mercator (UTM)], [{r.planar2d:.0f} $m^2$], [{r.surface3d:.0f} $m^2$],\n"
            ")\n\n"
        )
        svg = svgs.get(r.name)
        if svg:
            fence = _raw_fence(svg)
            parts.append(f"#align(center, image(\n  bytes({fence}{svg}{fence}.text),\n  width: 80%\n))\n\n")
        parts.append("#pagebreak()\n\n")
    return "".join(parts)


def write_typst(results: Iterable[SurfaceResult], svgs: Mapping[str, str], outdir: str | Path) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    path = outdir / "report.typ"
    path.write_text(make_typst_document(results, svgs), encoding="utf-8")
    return path


def env_versions() -> dict[str, str]:
    import matplotlib
    import numpy
    import pyproj
    import rasterio
    import scipy
    import shapely

    return {
        "python": sys.version.replace("\n", " "),
        "terrain_area": __version__,
        "numpy": numpy.__version__,
        "rasterio": rasterio.__version__,
        "scipy": scipy.__version__,
        "shapely": shapely.__version__,
        "pyproj": pyproj.__version__,
        "pandas": pd.__version__,
        "matplotlib": matplotlib.__version__,
    }


def write_run_info(outdir: str | Path, payload: Mapping[str, Any]) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    doc = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "versions": env_versions(),
        **payload,
    }
    path = outdir / "run_info.json"
    path.write_text(json.dumps(doc, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
    return path
