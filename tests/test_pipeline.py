from __future__ import annotations

import math
from pathlib import Path

import pytest

from terrain_area.config import CatalogConfig
from terrain_area.errors import EmptySurfaceError, InvalidPolygonError, MultiZoneError, NoDatasetError
from terrain_area.geometry import MercatorPoint
from terrain_area.pipeline import PostSet, process_polygon
from terrain_area.polygon import Polygon
from terrain_area.synthetic import SyntheticTile, generate_tile, write_tile

# ~4.6 km x 6.7 km of 0.001 degree posts in UTM zone 32.
TILE = SyntheticTile(west=7.0, north=46.1, cols=61, rows=61, step=0.001)

SQUARE = [(7.011, 46.052), (7.043, 46.052), (7.043, 46.083), (7.011, 46.083)]
PENTAGON = [(7.010, 46.050), (7.046, 46.056), (7.051, 46.079), (7.030, 46.091), (7.012, 46.080)]


def _relative_error(est: float, ref: float) -> float:
    if ref == 0:
        return abs(est - ref)
    return abs(est - ref) / abs(ref)


def _tile(tmp_path: Path, preset: str, *, relief: float = 0.0, base: float = 500.0) -> Path:
    z = generate_tile(preset, TILE, relief=relief, base=base)
    return write_tile(tmp_path / f"{preset}.tif", z, TILE)


def test_flat_tile_ratio_is_one(tmp_path: Path) -> None:
    dem = _tile(tmp_path, "flat")
    poly = Polygon.from_lonlat(SQUARE, name="square")
    r = process_polygon(poly, CatalogConfig(datasets=(dem,)))

    assert r.name == "square"
    assert r.projection == poly.projection
    assert r.datasets == (str(dem),)
    assert _relative_error(r.ratio, 1.0) < 1e-9
    assert _relative_error(r.surface3d, r.flat2d) < 1e-9
    # facets tile the polygon exactly
    assert _relative_error(r.flat2d, r.planar2d) < 1e-7
    assert _relative_error(r.estimate, r.geodesic2d) < 1e-9
    # UTM scale distortion near 7°E is well below 1 %
    assert _relative_error(r.planar2d, r.geodesic2d) < 1e-2
    assert r.posts > 0 and r.triangles > 0 and r.facet_count > 0
    assert len(r.outline) == 4


# Two tiles sharing the post column at 7.030 E; SQUARE crosses the seam.
WEST_HALF = SyntheticTile(west=7.0, north=46.1, cols=31, rows=61, step=0.001)
EAST_HALF = SyntheticTile(west=7.03, north=46.1, cols=31, rows=61, step=0.001)


def test_flat_ratio_is_one_across_adjacent_tiles(tmp_path: Path) -> None:
    paths = []
    for name, tile in (("west.tif", WEST_HALF), ("east.tif", EAST_HALF)):
        z = generate_tile("flat", tile, base=500.0)
        paths.append(write_tile(tmp_path / name, z, tile))
    r = process_polygon(Polygon.from_lonlat(SQUARE, name="seam"), CatalogConfig(datasets=tuple(paths)))

    assert r.datasets == tuple(str(p) for p in paths)
    assert len(r.datasets) == 2
    assert _relative_error(r.ratio, 1.0) < 1e-9
    assert _relative_error(r.flat2d, r.planar2d) < 1e-7

    single = process_polygon(Polygon.from_lonlat(SQUARE), CatalogConfig(datasets=(_tile(tmp_path, "flat"),)))
    assert r.posts <= single.posts + 61
    assert _relative_error(r.flat2d, single.flat2d) < 1e-7


def test_ramp_ratio_matches_gradient(tmp_path: Path) -> None:
    relief = 0.5 * TILE.height_m
    g = relief / TILE.height_m
    dem = _tile(tmp_path, "ramp", relief=relief, base=100.0)
    r = process_polygon(Polygon.from_lonlat(PENTAGON, name="pentagon"), CatalogConfig(datasets=(dem,)))

    assert r.ratio > 1.0
    assert _relative_error(r.ratio, math.sqrt(1.0 + g * g)) < 1e-2
    assert _relative_error(r.estimate, r.ratio * r.geodesic2d) < 1e-12


def test_hill_is_steeper_than_flat(tmp_path: Path) -> None:
    dem = _tile(tmp_path, "hill", relief=800.0)
    r = process_polygon(Polygon.from_lonlat(PENTAGON, name="hill"), CatalogConfig(datasets=(dem,)))
    assert r.ratio > 1.0
    assert r.surface3d > r.flat2d


def test_progress_callback_reports_every_triangle(tmp_path: Path) -> None:
    dem = _tile(tmp_path, "flat")
    calls: list[tuple[str, int, int]] = []
    r = process_polygon(
        Polygon.from_lonlat(SQUARE),
        CatalogConfig(datasets=(dem,)),
        progress=lambda stage, i, n: calls.append((stage, i, n)),
    )
    assert len(calls) == r.triangles
    assert calls[-1] == ("clip", r.triangles, r.triangles)


def test_row_has_report_columns(tmp_path: Path) -> None:
    dem = _tile(tmp_path, "flat")
    r = process_polygon(Polygon.from_lonlat(SQUARE, name="sq"), CatalogConfig(datasets=(dem,)))
    row = r.to_row()
    assert row["name"] == "sq"
    assert row["facets"] == r.facet_count
    assert row["datasets"] == str(dem)
    assert set(row) >= {"geodesic2d", "planar2d", "flat2d", "surface3d", "ratio", "estimate"}


def test_no_dataset_raises(tmp_path: Path) -> None:
    cfg = CatalogConfig(hgt_dir=tmp_path, tif_dir=None)
    with pytest.raises(NoDatasetError):
        process_polygon(Polygon.from_lonlat(SQUARE), cfg)


def test_tile_outside_polygon_raises(tmp_path: Path) -> None:
    dem = _tile(tmp_path, "flat")
    far = [(8.5, 46.5), (8.6, 46.5), (8.6, 46.6)]
    with pytest.raises(NoDatasetError):
        process_polygon(Polygon.from_lonlat(far), CatalogConfig(datasets=(dem,)))


def test_multi_zone_polygon_raises(tmp_path: Path) -> None:
    dem = _tile(tmp_path, "flat")
    poly = Polygon.from_lonlat([(5.9, 46.0), (6.1, 46.0), (6.1, 46.1)])
    with pytest.raises(MultiZoneError) as exc:
        process_polygon(poly, CatalogConfig(datasets=(dem,)))
    assert len(exc.value.projections) == 2
    assert "multiple UTM zones" in str(exc.value)


@pytest.mark.parametrize(
    "coords",
    [
        [(7.01, 46.05), (7.02, 46.05)],
        [(7.01, 46.05), (7.02, 46.05), (7.01, 46.05), (7.02, 46.05)],
        [(7.01, 46.05), (7.02, 46.05), (math.nan, 46.06)],
        [(7.01, 46.05), (7.02, 46.05), (7.02, 95.0)],
    ],
)
def test_invalid_polygon_raises(tmp_path: Path, coords) -> None:
    with pytest.raises(InvalidPolygonError):
        process_polygon(Polygon.from_lonlat(coords), CatalogConfig(datasets=(tmp_path / "unused.tif",)))


def test_sliver_polygon_leaves_no_facet(tmp_path: Path) -> None:
    dem = _tile(tmp_path, "flat")
    sliver = [(7.02, 46.06), (7.03, 46.06), (7.025, 46.06000000001)]
    with pytest.raises(EmptySurfaceError):
        process_polygon(Polygon.from_lonlat(sliver), CatalogConfig(datasets=(dem,)))


def test_closing_vertex_is_dropped() -> None:
    poly = Polygon.from_lonlat(SQUARE + [SQUARE[0]])
    assert len(poly) == 4


def test_post_set_first_insert_wins_and_sorts() -> None:
    posts = PostSet()
    assert posts.add(MercatorPoint(x=2.0, y=1.0, ele=10.0))
    assert not posts.add(MercatorPoint(x=2.0, y=1.0, ele=99.0))
    assert posts.update([MercatorPoint(x=-1.0, y=5.0, ele=1.0), MercatorPoint(x=2.0, y=0.5, ele=2.0)]) == 2
    assert len(posts) == 3
    assert MercatorPoint(x=2.0, y=1.0) in posts
    out = posts.sorted()
    assert [p.x_y() for p in out] == [(-1.0, 5.0), (2.0, 0.5), (2.0, 1.0)]
    assert out[-1].ele == 10.0
