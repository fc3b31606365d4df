"""Diagnostic figures: slope-coloured facet SVG and per-polygon summary plots."""

from __future__ import annotations

import io
import math
from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
from matplotlib.collections import PolyCollection
from matplotlib.colors import LinearSegmentedColormap, Normalize, to_hex
import pandas as pd

from terrain_area.area import slope

if TYPE_CHECKING:
    from terrain_area.pipeline import SurfaceResult


# 0 % (flat) -> green, 50 % -> yellow, >= 100 % -> red.
SLOPE_CMAP = LinearSegmentedColormap.from_list("slope", ["#00a000", "#ffd700", "#d00000"])
SLOPE_NORM = Normalize(vmin=0.0, vmax=100.0, clip=True)


def slope_color(pct: float) -> str:
    """Hex fill colour for a facet slope in percent; +inf counts as steepest."""
    if math.isnan(pct):
        return "#808080"
    v = 100.0 if math.isinf(pct) else float(pct)
    return to_hex(SLOPE_CMAP(SLOPE_NORM(v)))


def _prep_axes(title: str, xlabel: str, ylabel: str) -> tuple[plt.Figure, plt.Axes]:
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.grid(True, which="both", linestyle="--", linewidth=0.5, alpha=0.6)
    return fig, ax


def render_facets_svg(result: SurfaceResult) -> str:
    """SVG text: facets filled by slope with the polygon outline in gray."""
    fig, ax = plt.subplots(figsize=(8, 8))
    ax.set_aspect("equal")
    ax.set_axis_off()
    ax.set_title(result.name)

    verts = [[(p.x, p.y) for p in facet] for facet in result.facets]
    colors = [slope_color(slope(facet)) for facet in result.facets]
    ax.add_collection(PolyCollection(verts, facecolors=colors, edgecolors="none"))

    xs = [p.x for p in result.outline] + [result.outline[0].x]
    ys = [p.y for p in result.outline] + [result.outline[0].y]
    ax.plot(xs, ys, color="gray", linewidth=1.0)
    ax.autoscale_view()

    buf = io.StringIO()
    fig.savefig(buf, format="svg", bbox_inches="tight")
    plt.close(fig)
    return buf.getvalue()


def plot_ratio_by_polygon(df: pd.DataFrame, outdir: str | Path) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    fig, ax = _prep_axes("Surface / flat ratio per polygon", "Polygon", "A3D / A2D (-)")
    ax.bar(df["name"].astype(str), df["ratio"], color="#4c72b0")
    ax.axhline(1.0, color="gray", linewidth=0.8)
    ax.set_ylim(bottom=min(1.0, float(df["ratio"].min())) * 0.99)
    plt.setp(ax.get_xticklabels(), rotation=30, ha="right")

    path = outdir / "ratio_by_polygon.png"
    fig.tight_layout()
    fig.savefig(path, dpi=160)
    plt.close(fig)
    return path
