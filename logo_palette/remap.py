from __future__ import annotations

"""
Pixel remap: snap every visible pixel to its nearest palette entry, then
apply user substitutions and erasures.

Exports:
  nearest_palette_indices(rgb, palette_rgb) -> int32 [N]
  normalise_edits(colour_mapping, erased) -> (dict, frozenset)
  remap_pixels(rgba, palette, colour_mapping, erased, *, thresholds) -> uint8 [H,W,4]

Alpha rules:
  alpha < transparent_alpha_max -> RGBA (0,0,0,0)
  alpha > opaque_snap_alpha     -> 255 (drops anti-aliasing fringes)
  otherwise                     -> unchanged
"""

from typing import Dict, FrozenSet, Iterable, Optional, Sequence, Tuple

import numpy as np

from . import constants as C
from .core_types import (
    DEFAULT_THRESHOLDS,
    ColourLike,
    RGBTuple,
    Thresholds,
    U8Image,
    assert_u8_image_rgba,
    coerce_to_rgb_tuple,
    displayed_colours,
    palette_to_array,
)


def nearest_palette_indices(
    rgb: np.ndarray, palette_rgb: np.ndarray, chunk: int = C.NEAREST_CHUNK
) -> np.ndarray:
    """
    For each RGB row pick the nearest palette row by Euclidean distance.
    Ties go to the lowest palette index. Distances are computed once per
    unique colour.
    """
    if palette_rgb.shape[0] == 0:
        raise ValueError("palette is empty")
    flat = rgb.reshape(-1, 3)
    if flat.shape[0] == 0:
        return np.zeros((0,), dtype=np.int32)

    rgb32 = flat.astype(np.uint32)
    keys = (rgb32[:, 0] << 16) | (rgb32[:, 1] << 8) | rgb32[:, 2]
    uniq, inverse = np.unique(keys, return_inverse=True)
    uniq_rgb = np.stack(
        [(uniq >> 16) & 0xFF, (uniq >> 8) & 0xFF, uniq & 0xFF], axis=1
    ).astype(np.int32)

    pal = palette_rgb.astype(np.int32)
    nearest = np.empty(uniq_rgb.shape[0], dtype=np.int32)
    for i in range(0, uniq_rgb.shape[0], chunk):
        pts = uniq_rgb[i : i + chunk]
        diff = pts[:, None, :] - pal[None, :, :]
        dist2 = np.sum(diff * diff, axis=2)
        nearest[i : i + chunk] = np.argmin(dist2, axis=1)
    return nearest[inverse.reshape(-1)]


def normalise_edits(
    colour_mapping: Optional[Dict[ColourLike, ColourLike]] = None,
    erased: Optional[Iterable[ColourLike]] = None,
) -> Tuple[Dict[RGBTuple, RGBTuple], FrozenSet[RGBTuple]]:
    """Coerce mapping keys/values and erased entries (hex or tuples) to RGB tuples."""
    mapping = {
        coerce_to_rgb_tuple(k): coerce_to_rgb_tuple(v)
        for k, v in (colour_mapping or {}).items()
    }
    erased_set = frozenset(coerce_to_rgb_tuple(c) for c in (erased or ()))
    return mapping, erased_set


def remap_pixels(
    rgba: U8Image,
    palette: Sequence[RGBTuple],
    colour_mapping: Optional[Dict[ColourLike, ColourLike]] = None,
    erased: Optional[Iterable[ColourLike]] = None,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> U8Image:
    """
    Build the output raster for the current palette and edits.

    Args:
      rgba           : uint8 [H,W,4] source raster (never modified)
      palette        : ordered palette colours
      colour_mapping : palette colour -> substitute colour (sparse)
      erased         : palette colours rendered transparent
      thresholds     : alpha cut-offs

    Returns:
      fresh uint8 [H,W,4] raster. With an empty palette every pixel is transparent.
    """
    rgba = assert_u8_image_rgba(rgba)
    mapping, erased_set = normalise_edits(colour_mapping, erased)
    palette = [coerce_to_rgb_tuple(c) for c in palette]

    H, W, _ = rgba.shape
    out = np.zeros((H, W, 4), dtype=np.uint8)
    if not palette:
        return out

    flat_in = rgba.reshape(-1, 4)
    flat_out = out.reshape(-1, 4)
    alpha = flat_in[:, 3]
    live_pos = np.flatnonzero(alpha >= thresholds.transparent_alpha_max)
    if live_pos.size == 0:
        return out

    idx = nearest_palette_indices(flat_in[live_pos, :3], palette_to_array(palette))

    is_erased = np.array([c in erased_set for c in palette], dtype=bool)
    keep = ~is_erased[idx]
    live_pos = live_pos[keep]
    idx = idx[keep]

    shown = palette_to_array(displayed_colours(palette, mapping))
    flat_out[live_pos, :3] = shown[idx]
    a = alpha[live_pos]
    flat_out[live_pos, 3] = np.where(a > thresholds.opaque_snap_alpha, 255, a).astype(
        np.uint8
    )
    return out


__all__ = ["nearest_palette_indices", "normalise_edits", "remap_pixels"]
