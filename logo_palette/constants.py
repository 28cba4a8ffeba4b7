# logo_palette/constants.py
"""
Global tunables used across the project.

- Extraction (VISIBLE_ALPHA_MIN, DISTINCT_RGB_DIST, MAX_WORKING_SIDE)
- Remap alpha handling (TRANSPARENT_ALPHA_MAX, OPAQUE_SNAP_ALPHA)
- Colour pick tolerance (PICK_TOLERANCE)
- User-facing palette size bounds (MIN_COLORS, MAX_COLORS, DEFAULT_MAX_COLORS)
- Preset substitute colours (BASE_COLOURS)
"""
from __future__ import annotations

from typing import Tuple

# ==========
# Extraction
# ==========
# Pixels below this alpha are not counted when building the palette.
VISIBLE_ALPHA_MIN: int = 128
# Euclidean RGB distance (0..441) two palette entries must keep apart.
DISTINCT_RGB_DIST: float = 35.0
# Longer side of the working raster.
MAX_WORKING_SIDE: int = 600

# =====
# Remap
# =====
# Pixels with alpha below this are emitted fully transparent.
TRANSPARENT_ALPHA_MAX: int = 10
# Alpha above this snaps to 255.
OPAQUE_SNAP_ALPHA: int = 200

# ====
# Pick
# ====
PICK_TOLERANCE: float = 20.0

# ============
# Palette size
# ============
MIN_COLORS: int = 2
MAX_COLORS: int = 8
DEFAULT_MAX_COLORS: int = 4

# =======
# Presets
# =======
# Quick substitute colours, as (name, hex), in display order.
BASE_COLOURS: Tuple[Tuple[str, str], ...] = (
    ("black", "#000000"),
    ("slate", "#1e293b"),
    ("white", "#ffffff"),
    ("red", "#dc2626"),
    ("blue", "#2563eb"),
    ("green", "#16a34a"),
    ("amber", "#d97706"),
)

# Nearest-colour search processes this many pixels per chunk.
NEAREST_CHUNK: int = 200_000
