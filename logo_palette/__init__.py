# logo_palette/__init__.py
"""
logo_palette package.

Purpose:
  Reduce a logo to a small editable palette for multi-colour printing and
  recolour it interactively. See recolour_logo.py for the CLI.

Public API:
  extract_palette : greedy, frequency-ordered palette of distinct colours.
  remap_pixels    : snap pixels to the palette, apply substitutions/erasures.
  pick_colour     : map a displayed pixel back to its palette entry.
  EditorSession   : editing state with stale-result protection.
  decode_image    : bytes / data URL / path -> read-only RGBA raster.
  core_types      : shared type aliases and value objects (Thresholds, PickResult).
  constants       : numeric tunables.
  utils           : shared helpers (reports, logging).

Quick start:
  from logo_palette import EditorSession
  session = EditorSession(max_colors=4)
  session.load_image(open("logo.png", "rb").read())
  session.set_substitute(session.palette[0], "#00ff00")
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import constants
from . import core_types
from . import image_io
from . import utils

from .core_types import DEFAULT_THRESHOLDS, NO_SELECTION, PickResult, Thresholds
from .image_io import DecodeError, decode_image, encode_data_url, encode_png
from .extract import extract_palette, visible_colour_counts
from .remap import remap_pixels
from .pick import pick_colour, pick_colour_in_view
from .session import EditSettings, EditorSession, RecomputeResult, recompute

__all__ = [
    "__version__",
    "constants",
    "core_types",
    "image_io",
    "utils",
    "DEFAULT_THRESHOLDS",
    "NO_SELECTION",
    "PickResult",
    "Thresholds",
    "DecodeError",
    "decode_image",
    "encode_data_url",
    "encode_png",
    "extract_palette",
    "visible_colour_counts",
    "remap_pixels",
    "pick_colour",
    "pick_colour_in_view",
    "EditSettings",
    "EditorSession",
    "RecomputeResult",
    "recompute",
]
