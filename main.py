from __future__ import annotations

from dataclasses import MISSING, dataclass, field
import sys
from pathlib import Path

import terrain_area.cli as terrain_area_cli
from terrain_area.readers import READERS


@dataclass(frozen=True, slots=True)
class RunConfig:
    """main.py üzerinden çalıştırma ayarları.

    IDE'de `main.py` dosyasını doğrudan çalıştırırken parametreleri tek bir
    yerden kontrol etmek için. Alanlar `python -m terrain_area run ...`
    argümanlarına çevrilir.
    """

    files: list[str] = field(
        default_factory=lambda: ["alan.kml"],
        metadata={"help": "Poligon dosyaları (.kml, .gpx, .geojson, .json)."},
    )
    outdir: str = field(
        default="out",
        metadata={"help": "Çıktı klasörü yolu (oluşturulur)."},
    )
    datasets: list[str] | None = field(
        default=None,
        metadata={"help": "Açık DEM dosya listesi. None => hgt/tif klasörlerinden otomatik bulunur."},
    )
    hgt_dir: str | None = field(
        default=None,
        metadata={"help": "SRTM .hgt klasörü. None => TERRAIN_AREA_HGT_DIR veya ~/DEM/SRTM/GL3/hgt."},
    )
    tif_dir: str | None = field(
        default=None,
        metadata={"help": "Daha ince .tif karoları için klasör. None => TERRAIN_AREA_TIF_DIR veya ~/DEM/SRTM/GL1."},
    )
    min_facet_area: float = field(
        default=terrain_area_cli.MIN_FACET_AREA,
        metadata={"help": "Bu alandan (m²) küçük yüzeyler kırpma artığı sayılır ve atılır."},
    )
    svg: bool = field(
        default=True,
        metadata={"help": "True ise her poligon için eğim renkli SVG yazar (CLI: --svg/--no-svg)."},
    )
    typst: bool = field(
        default=True,
        metadata={"help": "True ise report.typ raporu yazar (CLI: --typst/--no-typst)."},
    )
    plots: bool = field(
        default=False,
        metadata={"help": "True ise PNG grafik üretir (CLI: --plots)."},
    )
    verbose: bool = field(
        default=False,
        metadata={"help": "True ise DEBUG seviyesinde log yazar (CLI: -v)."},
    )

    def validate(self) -> None:
        if not self.files:
            raise ValueError("files list must not be empty")
        for f in self.files:
            p = Path(f)
            if not p.exists():
                raise ValueError(f"Polygon file not found: {p}")
            if p.suffix.lower() not in READERS:
                raise ValueError(f"Unsupported polygon file: {p} (use {', '.join(sorted(READERS))})")

        outdir_path = Path(self.outdir)
        if outdir_path.exists() and not outdir_path.is_dir():
            raise ValueError(f"outdir must be a directory path, got file: {outdir_path}")

        if self.datasets is not None:
            if not self.datasets:
                raise ValueError("datasets must be None or a non-empty list")
            missing = [d for d in self.datasets if not Path(d).exists()]
            if missing:
                raise ValueError(f"DEM not found: {missing}")
        if float(self.min_facet_area) < 0:
            raise ValueError("min_facet_area must be >= 0")

    def to_argv(self) -> list[str]:
        self.validate()

        argv: list[str] = [
            "run",
            *self.files,
            "--outdir",
            self.outdir,
            "--min_facet_area",
            f"{float(self.min_facet_area):g}",
            "--svg" if self.svg else "--no-svg",
            "--typst" if self.typst else "--no-typst",
        ]
        if self.datasets is not None:
            argv.extend(["--datasets", *self.datasets])
        if self.hgt_dir is not None:
            argv.extend(["--hgt_dir", self.hgt_dir])
        if self.tif_dir is not None:
            argv.extend(["--tif_dir", self.tif_dir])
        if self.plots:
            argv.append("--plots")
        if self.verbose:
            argv.append("-v")
        return argv


DEFAULT_RUN_CONFIG = RunConfig()


def _print_main_help() -> None:
    print("Usage:")
    print("  python main.py run <poligon dosyaları...> [--outdir <dir>] [--datasets ...] [--plots]")
    print("  python main.py synth --out <tif> [--preset flat|ramp|hill|waves]")
    print("  python main.py              # DEFAULT_RUN_CONFIG ile (IDE için önerilir)")
    print("  python main.py --help")
    print("")
    print("RunConfig parametreleri (main.py içinden ayarlayabilirsiniz):")
    for f in RunConfig.__dataclass_fields__.values():  # type: ignore[attr-defined]
        help_text = (f.metadata or {}).get("help", "")
        if f.default is not MISSING:
            default_repr = f.default
        elif f.default_factory is not MISSING:
            default_repr = f.default_factory()
        else:
            default_repr = None
        print(f"  - {f.name}: {help_text} (default: {default_repr})")


def main() -> int:
    argv = sys.argv[1:]
    if len(argv) == 1 and argv[0] in {"-h", "--help", "help"}:
        _print_main_help()
        return 0
    if argv:
        return int(terrain_area_cli.main(argv))

    try:
        return int(terrain_area_cli.main(DEFAULT_RUN_CONFIG.to_argv()))
    except ValueError as e:
        print(f"Invalid main.py defaults: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
