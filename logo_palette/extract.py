from __future__ import annotations

"""
Palette extraction.

Exports:
  visible_colour_counts(rgba, min_alpha) -> (colours uint8 [U,3], counts int64 [U])
  extract_palette(rgba, max_colors, *, thresholds, max_side) -> list[RGBTuple]

Notes:
  Selection is greedy by frequency, not clustering: the most frequent visible
  colour is taken first, then each next-most-frequent colour that keeps at
  least `distinct_dist` Euclidean RGB distance from everything already taken.
  Every palette entry is an exact colour of the source raster.
"""

from typing import Optional, Tuple

import numpy as np

from .core_types import (
    DEFAULT_THRESHOLDS,
    Palette,
    Thresholds,
    U8Image,
    assert_u8_image_rgba,
)
from .image_io import downscale_to_max_side


def _pack_rgb(rgb: np.ndarray) -> np.ndarray:
    rgb32 = rgb.astype(np.uint32, copy=False)
    return (rgb32[:, 0] << 16) | (rgb32[:, 1] << 8) | rgb32[:, 2]


def _unpack_rgb(keys: np.ndarray) -> np.ndarray:
    return np.stack([(keys >> 16) & 0xFF, (keys >> 8) & 0xFF, keys & 0xFF], axis=1).astype(
        np.uint8
    )


def visible_colour_counts(
    rgba: U8Image, min_alpha: int = DEFAULT_THRESHOLDS.visible_alpha_min
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Exact RGB occurrence counts over pixels with alpha >= min_alpha.

    Rows are ordered by descending count. Equal counts keep the order in which
    each colour is first met in a row-major scan.
    """
    rgba = assert_u8_image_rgba(rgba)
    flat = rgba.reshape(-1, 4)
    visible = flat[:, 3] >= min_alpha
    if not np.any(visible):
        return np.zeros((0, 3), dtype=np.uint8), np.zeros((0,), dtype=np.int64)

    keys = _pack_rgb(flat[visible, :3])
    uniq, first_idx, counts = np.unique(keys, return_index=True, return_counts=True)
    counts = counts.astype(np.int64, copy=False)
    order = np.lexsort((first_idx, -counts))
    return _unpack_rgb(uniq[order]), counts[order]


def select_distinct(colours: np.ndarray, max_colors: int, min_dist: float) -> Palette:
    """
    Greedy pass over colours (already in priority order): keep a colour when
    its distance to every kept colour is >= min_dist, up to max_colors.
    """
    remaining = colours.astype(np.int32, copy=False)
    min_dist2 = float(min_dist) * float(min_dist)
    palette: Palette = []
    while remaining.shape[0] > 0 and len(palette) < max_colors:
        head = remaining[0]
        palette.append((int(head[0]), int(head[1]), int(head[2])))
        diff = remaining[1:] - head
        dist2 = np.sum(diff * diff, axis=1)
        remaining = remaining[1:][dist2 >= min_dist2]
    return palette


def extract_palette(
    rgba: U8Image,
    max_colors: int,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    max_side: Optional[int] = None,
) -> Palette:
    """
    Pick up to max_colors mutually distinct dominant colours.

    Args:
      rgba       : uint8 [H,W,4]
      max_colors : palette size cap, >= 1
      thresholds : visibility alpha and distinctness distance
      max_side   : optional working-size cap (nearest-neighbour downscale)

    Returns:
      list of RGB tuples, most frequent first. Empty for a fully transparent image.
    """
    if int(max_colors) < 1:
        raise ValueError(f"max_colors must be >= 1, got {max_colors}")
    work = downscale_to_max_side(rgba, max_side)
    colours, _counts = visible_colour_counts(work, thresholds.visible_alpha_min)
    return select_distinct(colours, int(max_colors), thresholds.distinct_dist)


__all__ = ["visible_colour_counts", "select_distinct", "extract_palette"]
