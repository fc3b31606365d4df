"""Single-line terminal progress for the clipping loop."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import TextIO


def _format_seconds(seconds: float) -> str:
    s = int(max(0.0, float(seconds)))
    m, s = divmod(s, 60)
    h, m = divmod(m, 60)
    return f"{h:d}:{m:02d}:{s:02d}" if h else f"{m:02d}:{s:02d}"


@dataclass(slots=True)
class ProgressPrinter:
    """Carriage-return progress line on stderr, only when attached to a TTY.

    Instances are callable with the `(stage, current, total)` signature that
    `process_polygon(progress=...)` expects.
    """

    enabled: bool | None = None
    stream: TextIO = sys.stderr
    min_interval_s: float = 0.25
    prefix: str = ""

    _width: int = 0
    _stage: str = ""
    _stage_t0: float = 0.0
    _last_t: float = 0.0
    _last_pct: int = -1

    def __post_init__(self) -> None:
        if self.enabled is None:
            isatty = getattr(self.stream, "isatty", None)
            self.enabled = bool(isatty()) if callable(isatty) else False

    def __call__(self, stage: str, current: int, total: int) -> None:
        self.update(stage, current, total)

    def update(self, stage: str, current: int, total: int) -> None:
        if not self.enabled or total <= 0:
            return
        current = max(0, min(int(current), int(total)))
        pct = (100 * current) // int(total)

        now = time.monotonic()
        if stage != self._stage:
            self._stage = stage
            self._stage_t0 = now
            self._last_pct = -1
        done = current == total
        if not done and pct == self._last_pct and (now - self._last_t) < self.min_interval_s:
            return

        elapsed = now - self._stage_t0
        eta = _format_seconds(elapsed / current * (total - current)) if current else "--:--"
        label = f"{self.prefix} {stage}".strip()
        text = f"{label}: {pct:3d}% ({current}/{total}) ETA {eta}"
        self.stream.write("\r" + text.ljust(self._width))
        self.stream.flush()
        self._width = len(text)
        self._last_t = now
        self._last_pct = pct

    def finish(self) -> None:
        """Terminate the progress line, if one is showing."""
        if not self.enabled or not self._width:
            return
        self.stream.write("\n")
        self.stream.flush()
        self._width = 0
        self._stage = ""
        self._last_pct = -1
