"""Delaunay triangulation of projected elevation posts."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Sequence

import numpy as np
from scipy.spatial import Delaunay, QhullError

from terrain_area.geometry import MercatorPoint

logger = logging.getLogger(__name__)

MATCH_EPS = 1e-10


@dataclass(frozen=True, slots=True)
class Triangle:
    a: MercatorPoint
    b: MercatorPoint
    c: MercatorPoint

    def as_list(self) -> list[MercatorPoint]:
        return [self.a, self.b, self.c]

    def flat(self) -> Triangle:
        return Triangle(self.a.flat(), self.b.flat(), self.c.flat())

    def area(self) -> float:
        """3D area (half the cross-product magnitude); elevations required."""
        p = np.array([(q.x, q.y, q.ele) for q in self.as_list()], dtype=np.float64)
        return 0.5 * float(np.linalg.norm(np.cross(p[1] - p[0], p[2] - p[0])))

    def __str__(self) -> str:
        return f"A:{self.a} B:{self.b} C:{self.c}"


def triangulate(points: Sequence[MercatorPoint]) -> list[Triangle]:
    """2D Delaunay triangles over the posts' (x, y); elevations are carried along.

    Posts must already be unique in (x, y). Fewer than 3 posts, or posts that are
    all collinear, give an empty list.
    """
    if len(points) < 3:
        return []

    xy = np.array([(p.x, p.y) for p in points], dtype=np.float64)
    try:
        tri = Delaunay(xy)
    except QhullError as e:
        logger.debug("degenerate triangulation input (%d posts): %s", len(points), e)
        return []

    # Simplices index the input posts; their (x, y) must match within MATCH_EPS.
    drift = np.abs(tri.points[tri.simplices] - xy[tri.simplices])
    if drift.size and float(drift.max()) >= MATCH_EPS:
        raise RuntimeError(f"Triangulation vertex drifted {float(drift.max()):g} from its input post")

    return [Triangle(points[i], points[j], points[k]) for i, j, k in tri.simplices.tolist()]
