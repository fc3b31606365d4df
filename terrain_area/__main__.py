from __future__ import annotations

from terrain_area.cli import main

raise SystemExit(main())
