# logo_palette/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, and lightweight helpers.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from . import constants as C

# Basic aliases

RGBTuple = Tuple[int, int, int]
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 4) RGBA
U8Rgb = NDArray[np.uint8]  # (..., 3)

Palette = List[RGBTuple]  # ordered by descending source frequency
ColourMapping = Mapping[RGBTuple, RGBTuple]  # palette colour -> substitute
ColourLike = Union[str, Sequence[int], NDArray[np.generic]]

# Value objects


@dataclass(frozen=True)
class Thresholds:
    """Numeric constants shared by extraction, remap and pick."""

    visible_alpha_min: int = C.VISIBLE_ALPHA_MIN
    distinct_dist: float = C.DISTINCT_RGB_DIST
    transparent_alpha_max: int = C.TRANSPARENT_ALPHA_MAX
    opaque_snap_alpha: int = C.OPAQUE_SNAP_ALPHA
    pick_tolerance: float = C.PICK_TOLERANCE


DEFAULT_THRESHOLDS = Thresholds()


@dataclass(frozen=True)
class PickResult:
    """Outcome of a colour pick. index is None when nothing was selected."""

    index: Optional[int] = None
    colour: Optional[RGBTuple] = None
    distance: float = float("inf")

    @property
    def matched(self) -> bool:
        return self.index is not None


NO_SELECTION = PickResult()


# Small helpers


def rgb_to_hex(rgb: RGBTuple) -> HexStr:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}"


def hex_to_rgb(hex_str: str) -> RGBTuple:
    """Parse '#rgb' or '#rrggbb' (case-insensitive) into an RGB tuple."""
    s = hex_str.strip().lower()
    if not s.startswith("#"):
        raise ValueError("hex must start with '#'")
    if len(s) == 4:
        r, g, b = s[1], s[2], s[3]
        s = f"#{r}{r}{g}{g}{b}{b}"
    if len(s) != 7:
        raise ValueError("hex must be '#rrggbb' or '#rgb'")
    try:
        return (int(s[1:3], 16), int(s[3:5], 16), int(s[5:7], 16))
    except ValueError:
        raise ValueError(f"invalid hex colour: {hex_str!r}") from None


def coerce_to_rgb_tuple(value: ColourLike) -> RGBTuple:
    """
    Coerce a hex string, 3-length sequence or array to an (int, int, int) tuple.
    Channels must lie in 0..255.
    """
    if isinstance(value, str):
        return hex_to_rgb(value)
    if isinstance(value, np.ndarray):
        if value.size < 3:
            raise ValueError("array too small for RGB")
        flat = value.reshape(-1)
        rgb = (int(flat[0]), int(flat[1]), int(flat[2]))
    else:
        if len(value) < 3:
            raise ValueError("sequence too small for RGB")
        rgb = (int(value[0]), int(value[1]), int(value[2]))
    if any(ch < 0 or ch > 255 for ch in rgb):
        raise ValueError(f"channel out of range 0..255: {rgb}")
    return rgb


def palette_to_array(palette: Sequence[RGBTuple]) -> U8Rgb:
    """Palette list to a (P,3) uint8 array. Empty palette gives shape (0,3)."""
    if len(palette) == 0:
        return np.zeros((0, 3), dtype=np.uint8)
    return np.array([coerce_to_rgb_tuple(c) for c in palette], dtype=np.uint8)


def displayed_colours(
    palette: Sequence[RGBTuple], mapping: Optional[ColourMapping]
) -> Palette:
    """Colour each palette entry is rendered with after substitution."""
    mapping = mapping or {}
    return [mapping.get(c, c) for c in palette]


def hex_mapping(mapping: ColourMapping) -> Dict[HexStr, HexStr]:
    """Colour mapping with hex keys and values."""
    return {rgb_to_hex(k): rgb_to_hex(v) for k, v in mapping.items()}


def assert_u8_image_rgba(image: np.ndarray) -> U8Image:
    """Validate a uint8 (H,W,4) image and return it typed as U8Image."""
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] != 4:
        raise TypeError("expected uint8 (H,W,4) RGBA image")
    return image  # type: ignore[return-value]


__all__ = [
    # aliases / types
    "RGBTuple",
    "HexStr",
    "U8Image",
    "U8Rgb",
    "Palette",
    "ColourMapping",
    "ColourLike",
    # value objects
    "Thresholds",
    "DEFAULT_THRESHOLDS",
    "PickResult",
    "NO_SELECTION",
    # helpers
    "rgb_to_hex",
    "hex_to_rgb",
    "coerce_to_rgb_tuple",
    "palette_to_array",
    "displayed_colours",
    "hex_mapping",
    "assert_u8_image_rgba",
]
