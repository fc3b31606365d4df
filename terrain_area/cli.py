from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path
import sys

from terrain_area.config import CatalogConfig
from terrain_area.errors import TerrainAreaError
from terrain_area.logging_utils import LogOptions, configure_logging
from terrain_area.pipeline import MIN_FACET_AREA, SurfaceResult, process_polygon
from terrain_area.plotting import plot_ratio_by_polygon, render_facets_svg
from terrain_area.progress import ProgressPrinter
from terrain_area.readers import read_polygons
from terrain_area.report import results_frame, safe_name, write_csv, write_run_info, write_typst
from terrain_area.synthetic import SYNTHETIC_PRESETS, SyntheticTile, generate_tile, write_tile

logger = logging.getLogger("terrain_area")

# SRTM GL3 post spacing (3 arc-seconds).
DEFAULT_SYNTH_STEP = 1.0 / 1200.0


def _add_log_args(p: argparse.ArgumentParser) -> None:
    g = p.add_mutually_exclusive_group()
    g.add_argument("-v", "--verbose", action="count", default=0, help="Debug logging")
    g.add_argument("-q", "--quiet", action="store_true", help="Only warnings and errors")
    p.add_argument("--log_file", type=Path, default=None, help="Also write JSON-lines logs to this file")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="terrain_area", description="3D surface area of polygons draped over DEM tiles")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Estimate surface area for every polygon in the given files")
    run.add_argument("files", nargs="+", type=Path, help="Polygon files (.kml, .gpx, .geojson, .json)")
    run.add_argument("--outdir", type=Path, default=Path("out"), help="Output directory")
    run.add_argument(
        "--datasets",
        type=Path,
        nargs="+",
        default=None,
        help="Explicit DEM files; disables hgt/tif discovery",
    )
    run.add_argument("--hgt_dir", type=Path, default=None, help="Directory with SRTM .hgt tiles")
    run.add_argument("--tif_dir", type=Path, default=None, help="Directory scanned recursively for .tif tiles")
    run.add_argument("--min_facet_area", type=float, default=MIN_FACET_AREA, help="Drop facets below this area (m²)")
    run.add_argument("--svg", action=argparse.BooleanOptionalAction, default=True, help="Write <name>.svg per polygon")
    run.add_argument("--typst", action=argparse.BooleanOptionalAction, default=True, help="Write report.typ")
    run.add_argument("--plots", action="store_true", help="Generate PNG plots")
    _add_log_args(run)

    synth = sub.add_parser("synth", help="Write a synthetic EPSG:4326 DEM tile")
    synth.add_argument("--out", type=Path, required=True, help="Output GeoTIFF path")
    synth.add_argument("--preset", choices=SYNTHETIC_PRESETS, default="hill")
    synth.add_argument("--west", type=float, default=7.0, help="Longitude of the first post")
    synth.add_argument("--north", type=float, default=46.0, help="Latitude of the first post")
    synth.add_argument("--cols", type=int, default=121)
    synth.add_argument("--rows", type=int, default=121)
    synth.add_argument("--step", type=float, default=DEFAULT_SYNTH_STEP, help="Post spacing in degrees")
    synth.add_argument("--relief", type=float, default=100.0, help="Elevation range of the preset (m)")
    synth.add_argument("--base", type=float, default=0.0, help="Base elevation (m)")
    synth.add_argument("--nodata", type=float, default=None, help="Nodata value tag")
    _add_log_args(synth)

    return p


def _catalog_config(args: argparse.Namespace) -> CatalogConfig:
    config = CatalogConfig.from_env()
    overrides: dict = {}
    if args.datasets:
        overrides["datasets"] = tuple(p.expanduser() for p in args.datasets)
    if args.hgt_dir is not None:
        overrides["hgt_dir"] = args.hgt_dir.expanduser()
    if args.tif_dir is not None:
        overrides["tif_dir"] = args.tif_dir.expanduser()
    return dataclasses.replace(config, **overrides)


def _print_summary(r: SurfaceResult) -> None:
    print(r.name)
    print(f"geodesic: {r.geodesic2d:.1f}")
    print(f"  planar: {r.planar2d:.1f}")
    print()
    print(f"    flat: {r.flat2d:.1f}")
    print(f" surface: {r.surface3d:.1f}")
    print()
    print(f"   ratio: +{(r.ratio - 1.0) * 100.0:.1f}%")
    print()
    print(f"estimate: {r.estimate:.1f}")
    print()


def _unique_name(name: str, taken: set[str]) -> str:
    """First of `name`, `name-2`, `name-3`, ... whose output stem is not taken yet."""
    candidate = name
    k = 2
    while safe_name(candidate) in taken:
        candidate = f"{name}-{k}"
        k += 1
    taken.add(safe_name(candidate))
    return candidate


def cmd_run(args: argparse.Namespace) -> int:
    outdir: Path = args.outdir
    config = _catalog_config(args)
    progress = ProgressPrinter()

    results: list[SurfaceResult] = []
    svgs: dict[str, str] = {}
    taken: set[str] = set()
    try:
        outdir.mkdir(parents=True, exist_ok=True)
        for path in args.files:
            for polygon in read_polygons(path):
                name = _unique_name(polygon.name, taken)
                if name != polygon.name:
                    logger.info("renamed %s from %s to %s", polygon.name, path, name)
                    polygon.name = name
                progress.prefix = polygon.name
                try:
                    result = process_polygon(
                        polygon,
                        config,
                        min_facet_area=float(args.min_facet_area),
                        progress=progress,
                    )
                finally:
                    progress.finish()
                _print_summary(result)
                results.append(result)

                if args.svg or args.typst:
                    svg = render_facets_svg(result)
                    svgs[result.name] = svg
                    if args.svg:
                        svg_path = outdir / f"{safe_name(result.name)}.svg"
                        svg_path.write_text(svg, encoding="utf-8")
                        logger.debug("wrote %s", svg_path)
    except (TerrainAreaError, OSError) as e:
        logger.error("%s", e)
        return 2

    csv_path = write_csv(results, outdir)
    print(f"Wrote: {csv_path}")
    if args.typst:
        print(f"Wrote: {write_typst(results, svgs, outdir)}")
    if args.plots:
        plot_path = plot_ratio_by_polygon(results_frame(results), outdir)
        print(f"Wrote: {plot_path}")

    info_path = write_run_info(
        outdir,
        {
            "inputs": [str(p) for p in args.files],
            "catalog": config.to_json(),
            "params": {
                "min_facet_area": float(args.min_facet_area),
                "svg": bool(args.svg),
                "typst": bool(args.typst),
                "plots": bool(args.plots),
            },
            "polygons": [r.name for r in results],
        },
    )
    print(f"Wrote: {info_path}")
    return 0


def cmd_synth(args: argparse.Namespace) -> int:
    tile = SyntheticTile(west=args.west, north=args.north, cols=args.cols, rows=args.rows, step=args.step)
    try:
        z = generate_tile(args.preset, tile, relief=args.relief, base=args.base)
        path = write_tile(args.out, z, tile, nodata=args.nodata)
    except (ValueError, OSError) as e:
        logger.error("%s", e)
        return 2
    logger.info("synthetic %s tile: %dx%d posts, step %g deg", args.preset, tile.cols, tile.rows, tile.step)
    print(f"Wrote: {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(LogOptions(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file))

    if args.command == "run":
        return cmd_run(args)
    if args.command == "synth":
        return cmd_synth(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
