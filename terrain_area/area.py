"""Planar-facet area kernel (3D cross-product area) and facet slope."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from terrain_area.geometry import MercatorPoint

Facet = list[MercatorPoint]


def _xyz(polygon: Sequence[MercatorPoint]) -> np.ndarray:
    for p in polygon:
        if p.ele is None:
            raise ValueError(f"Elevation required for 3D area, got {p}")
    return np.array([(p.x, p.y, p.ele) for p in polygon], dtype=np.float64)


def area_3d(polygon: Sequence[MercatorPoint]) -> float:
    """Area of a planar ring in 3D: |sum_i P_i x P_{i+1}| / 2.

    Returns 0 for fewer than 3 vertices. Every vertex must carry an elevation.
    """
    if len(polygon) < 3:
        return 0.0
    p = _xyz(polygon)
    # Translation invariant; shifting to the first vertex keeps UTM-sized coordinates from cancelling.
    p = p - p[0]
    total = np.cross(p, np.roll(p, -1, axis=0)).sum(axis=0)
    return float(np.linalg.norm(total)) / 2.0


def flat(polygon: Sequence[MercatorPoint]) -> Facet:
    return [p.flat() for p in polygon]


def slope(polygon: Sequence[MercatorPoint]) -> float:
    """Slope in percent (rise/run * 100) of the plane through the first three vertices.

    Returns 0 for a degenerate (collinear) start and +inf for a vertical plane.
    """
    if len(polygon) < 3:
        raise ValueError("Need at least 3 points to define a plane")
    if any(q.ele is None for q in polygon):
        raise ValueError("All points must have elevation")
    p = _xyz(polygon[:3])

    n = np.cross(p[1] - p[0], p[2] - p[0])
    nx, ny, nz = (float(v) for v in n)
    if math.sqrt(nx * nx + ny * ny + nz * nz) < 1e-10:
        return 0.0
    if abs(nz) < 1e-10:
        return math.inf
    return 100.0 * math.sqrt(nx * nx + ny * ny) / abs(nz)
