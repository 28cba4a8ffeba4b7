from __future__ import annotations

"""
Colour pick: map a click on the rendered preview back to a palette entry.

The user clicks what they see, so each entry is compared by its displayed
colour (after substitution), not the hidden original.
"""

from typing import Dict, Optional, Sequence

import numpy as np

from .core_types import (
    DEFAULT_THRESHOLDS,
    NO_SELECTION,
    ColourLike,
    PickResult,
    RGBTuple,
    Thresholds,
    U8Image,
    assert_u8_image_rgba,
    coerce_to_rgb_tuple,
    displayed_colours,
    palette_to_array,
)
from .remap import normalise_edits


def pick_colour(
    output_rgba: U8Image,
    x: int,
    y: int,
    palette: Sequence[RGBTuple],
    colour_mapping: Optional[Dict[ColourLike, ColourLike]] = None,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> PickResult:
    """
    Resolve pixel (x=column, y=row) of the displayed raster to a palette index.

    Returns NO_SELECTION for clicks outside the raster, on transparent pixels,
    or further than pick_tolerance from every displayed palette colour.
    """
    output_rgba = assert_u8_image_rgba(output_rgba)
    H, W, _ = output_rgba.shape
    x, y = int(x), int(y)
    if not (0 <= x < W and 0 <= y < H) or not palette:
        return NO_SELECTION

    r, g, b, a = (int(v) for v in output_rgba[y, x])
    if a == 0:
        return NO_SELECTION

    mapping, _ = normalise_edits(colour_mapping)
    palette = [coerce_to_rgb_tuple(c) for c in palette]
    shown = palette_to_array(displayed_colours(palette, mapping)).astype(np.float64)
    diff = shown - np.array([r, g, b], dtype=np.float64)
    dist = np.sqrt(np.sum(diff * diff, axis=1))
    best = int(np.argmin(dist))
    best_dist = float(dist[best])
    if best_dist > thresholds.pick_tolerance:
        return NO_SELECTION
    return PickResult(index=best, colour=palette[best], distance=best_dist)


def pick_colour_in_view(
    output_rgba: U8Image,
    view_x: float,
    view_y: float,
    view_width: float,
    view_height: float,
    palette: Sequence[RGBTuple],
    colour_mapping: Optional[Dict[ColourLike, ColourLike]] = None,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> PickResult:
    """
    Same as pick_colour for a click on a preview drawn at view_width x view_height.
    Clicks outside the view return NO_SELECTION.
    """
    if view_width <= 0 or view_height <= 0:
        raise ValueError("view size must be positive")
    if not (0 <= view_x <= view_width and 0 <= view_y <= view_height):
        return NO_SELECTION
    H, W = output_rgba.shape[0], output_rgba.shape[1]
    x = min(int(view_x / view_width * W), W - 1)
    y = min(int(view_y / view_height * H), H - 1)
    return pick_colour(
        output_rgba, x, y, palette, colour_mapping, thresholds=thresholds
    )


__all__ = ["pick_colour", "pick_colour_in_view"]
