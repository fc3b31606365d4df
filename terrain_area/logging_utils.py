"""Logging setup for the terrain-area command line."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sys
from typing import Any

# Attribute set on handlers installed here, so reconfiguring only replaces ours.
_OWNED = "_terrain_area_handler"

_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


@dataclass(frozen=True)
class LogOptions:
    verbose: int = 0
    quiet: bool = False
    log_file: Path | None = None


class JsonFormatter(logging.Formatter):
    """One JSON object per line; `extra=` fields are kept under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_FIELDS}
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        polygon = getattr(record, "polygon", None)
        return f"[{polygon}] {message}" if polygon else message


def console_level(options: LogOptions) -> int:
    if options.quiet:
        return logging.WARNING
    if options.verbose > 0:
        return logging.DEBUG
    return logging.INFO


def configure_logging(options: LogOptions) -> logging.Logger:
    """Install a stderr handler (and optional JSON file handler) on the root logger."""
    root = logging.getLogger()
    for h in [h for h in root.handlers if getattr(h, _OWNED, False)]:
        root.removeHandler(h)
        h.close()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level(options))
    console.setFormatter(HumanFormatter("%(levelname)s: %(message)s"))
    setattr(console, _OWNED, True)
    root.addHandler(console)

    if options.log_file is not None:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(options.log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(JsonFormatter())
        setattr(fh, _OWNED, True)
        root.addHandler(fh)

    # Third-party loggers stay at INFO even under -v.
    for noisy in ("rasterio", "matplotlib", "fiona", "pyproj", "PIL"):
        logging.getLogger(noisy).setLevel(logging.INFO)
    return root
