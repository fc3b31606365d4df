"""Exception types raised by the surface area pipeline."""

from __future__ import annotations


class TerrainAreaError(RuntimeError):
    pass


class InvalidPolygonError(TerrainAreaError):
    pass


class MultiZoneError(TerrainAreaError):
    """Polygon vertices fall into more than one UTM zone."""

    def __init__(self, projections: list[str]) -> None:
        self.projections = list(projections)
        joined = " | ".join(self.projections)
        super().__init__(f"Polygon spans multiple UTM zones (unsupported): [{joined}]")


class ProjectionError(TerrainAreaError):
    pass


class DatasetError(TerrainAreaError):
    pass


class NoDatasetError(TerrainAreaError):
    pass


class EmptySurfaceError(TerrainAreaError):
    pass


class ReaderError(TerrainAreaError):
    pass
