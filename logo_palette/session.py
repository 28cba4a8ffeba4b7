from __future__ import annotations

"""
Interactive editing session.

Owns the working raster, the current EditSettings and the last committed
RecomputeResult. Every edit replaces the settings wholesale and bumps a
generation counter; a recompute result is committed only when its
generation is still the current one, so a slow, stale recompute can never
overwrite output built from newer settings.

Usage:
  session = EditorSession(max_colors=4)
  session.load_image(png_bytes)
  red = session.palette[0]
  session.set_substitute(red, "#00ff00")
  session.toggle_erase(session.palette[1])
  hit = session.pick_at(10, 12)
  png = session.preview_png()

Background recompute:
  session = EditorSession(auto_refresh=False)
  ...edits...
  future = session.recompute_in(executor)  # resolves to the committed result or None
"""

import threading
import time
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from . import constants as C
from .core_types import (
    DEFAULT_THRESHOLDS,
    NO_SELECTION,
    ColourLike,
    HexStr,
    Palette,
    PickResult,
    RGBTuple,
    Thresholds,
    U8Image,
    assert_u8_image_rgba,
    coerce_to_rgb_tuple,
    hex_mapping,
    rgb_to_hex,
)
from .extract import extract_palette
from .image_io import (
    ImageSource,
    decode_image,
    downscale_to_max_side,
    encode_data_url,
    encode_png,
)
from .pick import pick_colour, pick_colour_in_view
from .remap import remap_pixels
from .utils import (
    colour_usage_report,
    debug_log,
    format_seconds_compact,
    key_value_pairs_to_string,
)


@dataclass(frozen=True)
class EditSettings:
    """User-owned settings. Replaced wholesale on every edit."""

    max_colors: int = C.DEFAULT_MAX_COLORS
    colour_mapping: Mapping[RGBTuple, RGBTuple] = field(default_factory=dict)
    erased: FrozenSet[RGBTuple] = frozenset()


@dataclass(frozen=True)
class RecomputeResult:
    """Palette and output raster computed from one settings generation."""

    generation: int
    settings: EditSettings
    palette: Palette
    output: U8Image
    elapsed: float = 0.0


def validate_max_colors(k: Any) -> int:
    """Accept an int in [MIN_COLORS, MAX_COLORS]; raise ValueError otherwise."""
    if isinstance(k, bool) or not isinstance(k, int):
        raise ValueError(f"max_colors must be an int, got {k!r}")
    if not (C.MIN_COLORS <= k <= C.MAX_COLORS):
        raise ValueError(
            f"max_colors must be in [{C.MIN_COLORS}, {C.MAX_COLORS}], got {k}"
        )
    return k


def recompute(
    raster: U8Image,
    settings: EditSettings,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    generation: int = 0,
) -> RecomputeResult:
    """
    Pure recompute: (raster, settings) -> palette and output raster.
    Safe to call from any thread; touches no session state.
    """
    t0 = time.perf_counter()
    palette = extract_palette(raster, settings.max_colors, thresholds=thresholds)
    output = remap_pixels(
        raster,
        palette,
        dict(settings.colour_mapping),
        settings.erased,
        thresholds=thresholds,
    )
    output.setflags(write=False)
    return RecomputeResult(
        generation=generation,
        settings=settings,
        palette=palette,
        output=output,
        elapsed=time.perf_counter() - t0,
    )


class EditorSession:
    """Single logical owner of the raster, settings and last output."""

    def __init__(
        self,
        max_colors: int = C.DEFAULT_MAX_COLORS,
        *,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        max_side: Optional[int] = C.MAX_WORKING_SIDE,
        auto_refresh: bool = True,
        debug: bool = False,
    ) -> None:
        self.thresholds = thresholds
        self.max_side = max_side
        self.auto_refresh = auto_refresh
        self.debug = debug
        self._lock = threading.RLock()
        self._raster: Optional[U8Image] = None
        self._settings = EditSettings(max_colors=validate_max_colors(max_colors))
        self._generation = 0
        self._result: Optional[RecomputeResult] = None

    # Read-only views

    @property
    def raster(self) -> Optional[U8Image]:
        return self._raster

    @property
    def settings(self) -> EditSettings:
        return self._settings

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def result(self) -> Optional[RecomputeResult]:
        return self._result

    @property
    def palette(self) -> Palette:
        result = self._result
        return list(result.palette) if result is not None else []

    @property
    def output(self) -> Optional[U8Image]:
        result = self._result
        return result.output if result is not None else None

    def is_current(self, result: RecomputeResult) -> bool:
        return result.generation == self._generation

    # Source image

    def load_image(self, source: ImageSource) -> Optional[RecomputeResult]:
        """
        Decode and install a new source image. Colour mapping and erased set
        are cleared. DecodeError propagates and leaves the session untouched.
        """
        raster = decode_image(source)
        return self.load_raster(raster)

    def load_raster(self, rgba: U8Image) -> Optional[RecomputeResult]:
        rgba = assert_u8_image_rgba(rgba)
        work = downscale_to_max_side(rgba, self.max_side)
        if work.flags.writeable:
            work = work.copy()
            work.setflags(write=False)
        with self._lock:
            self._raster = work
            self._result = None
            self._settings = replace(
                self._settings, colour_mapping={}, erased=frozenset()
            )
            self._generation += 1
        if self.debug:
            debug_log(
                key_value_pairs_to_string(
                    [
                        ("Loaded", f"{rgba.shape[1]}x{rgba.shape[0]}"),
                        ("Working", f"{work.shape[1]}x{work.shape[0]}"),
                    ]
                )
            )
        return self._maybe_refresh()

    # Edits

    def _palette_entry(self, colour: ColourLike) -> RGBTuple:
        rgb = coerce_to_rgb_tuple(colour)
        if rgb not in self.palette:
            raise ValueError(f"{rgb_to_hex(rgb)} is not a palette colour")
        return rgb

    def _update(
        self, changes: Callable[[EditSettings], Dict[str, Any]]
    ) -> Optional[RecomputeResult]:
        """Apply changes(current settings) under the lock, then maybe refresh."""
        with self._lock:
            delta = changes(self._settings)
            if not delta:
                return self._result
            self._settings = replace(self._settings, **delta)
            self._generation += 1
        return self._maybe_refresh()

    def set_substitute(
        self, palette_colour: ColourLike, new_colour: ColourLike
    ) -> Optional[RecomputeResult]:
        """Render every pixel of palette_colour with new_colour instead."""
        key = self._palette_entry(palette_colour)
        value = coerce_to_rgb_tuple(new_colour)

        def add(current: EditSettings) -> Dict[str, Any]:
            mapping = dict(current.colour_mapping)
            mapping[key] = value
            return {"colour_mapping": mapping}

        return self._update(add)

    def clear_substitute(self, palette_colour: ColourLike) -> Optional[RecomputeResult]:
        key = coerce_to_rgb_tuple(palette_colour)

        def remove(current: EditSettings) -> Dict[str, Any]:
            if key not in current.colour_mapping:
                return {}
            mapping = dict(current.colour_mapping)
            del mapping[key]
            return {"colour_mapping": mapping}

        return self._update(remove)

    def toggle_erase(self, palette_colour: ColourLike) -> Optional[RecomputeResult]:
        """Add palette_colour to the erased set, or remove it if already there."""
        key = self._palette_entry(palette_colour)
        return self._update(lambda current: {"erased": current.erased ^ frozenset([key])})

    def reset_edits(self) -> Optional[RecomputeResult]:
        return self._update(lambda _current: {"colour_mapping": {}, "erased": frozenset()})

    def set_max_colors(self, k: int) -> Optional[RecomputeResult]:
        """Change the palette size cap; re-extracts the palette from scratch."""
        k = validate_max_colors(k)
        return self._update(lambda _current: {"max_colors": k})

    # Recompute / commit

    def _snapshot(self) -> Tuple[int, Optional[U8Image], EditSettings]:
        with self._lock:
            return self._generation, self._raster, self._settings

    def _maybe_refresh(self) -> Optional[RecomputeResult]:
        if not self.auto_refresh:
            return None
        return self.refresh()

    def _commit(self, result: RecomputeResult) -> bool:
        with self._lock:
            if result.generation != self._generation:
                if self.debug:
                    debug_log(
                        f"discarded stale result (generation {result.generation}, current {self._generation})"
                    )
                return False
            self._result = result
            # Keys of a palette that no longer exists are dropped.
            palette = set(result.palette)
            current = self._settings
            mapping = {k: v for k, v in current.colour_mapping.items() if k in palette}
            erased = frozenset(c for c in current.erased if c in palette)
            if len(mapping) != len(current.colour_mapping) or erased != current.erased:
                self._settings = replace(current, colour_mapping=mapping, erased=erased)
        if self.debug:
            debug_log(
                key_value_pairs_to_string(
                    [
                        ("Generation", result.generation),
                        ("Palette", " ".join(self.palette_hex()) or "-"),
                        ("Recompute", format_seconds_compact(result.elapsed)),
                    ]
                )
            )
        return True

    def _compute_and_commit(
        self, generation: int, raster: U8Image, settings: EditSettings
    ) -> Optional[RecomputeResult]:
        result = recompute(
            raster, settings, thresholds=self.thresholds, generation=generation
        )
        return result if self._commit(result) else None

    def refresh(self) -> Optional[RecomputeResult]:
        """Recompute synchronously from the current settings and commit."""
        generation, raster, settings = self._snapshot()
        if raster is None:
            return None
        return self._compute_and_commit(generation, raster, settings)

    def recompute_in(self, executor: Executor) -> "Future[Optional[RecomputeResult]]":
        """
        Recompute on executor. The future resolves to the committed result, or
        None when a newer edit arrived first and the result was discarded.
        """
        generation, raster, settings = self._snapshot()
        if raster is None:
            done: "Future[Optional[RecomputeResult]]" = Future()
            done.set_result(None)
            return done
        return executor.submit(self._compute_and_commit, generation, raster, settings)

    # Pick / preview

    def pick_at(self, x: int, y: int) -> PickResult:
        """Palette entry under pixel (x, y) of the last output, or NO_SELECTION."""
        result = self._result
        if result is None:
            return NO_SELECTION
        return pick_colour(
            result.output,
            x,
            y,
            result.palette,
            dict(result.settings.colour_mapping),
            thresholds=self.thresholds,
        )

    def pick_in_view(
        self, view_x: float, view_y: float, view_width: float, view_height: float
    ) -> PickResult:
        """pick_at for a click on a preview drawn at view_width x view_height."""
        result = self._result
        if result is None:
            return NO_SELECTION
        return pick_colour_in_view(
            result.output,
            view_x,
            view_y,
            view_width,
            view_height,
            result.palette,
            dict(result.settings.colour_mapping),
            thresholds=self.thresholds,
        )

    def preview_png(self) -> Optional[bytes]:
        output = self.output
        return encode_png(output) if output is not None else None

    def preview_data_url(self) -> Optional[str]:
        output = self.output
        return encode_data_url(output) if output is not None else None

    def palette_hex(self) -> List[HexStr]:
        return [rgb_to_hex(c) for c in self.palette]

    def colour_mapping_hex(self) -> Dict[HexStr, HexStr]:
        return hex_mapping(self._settings.colour_mapping)

    def usage_report(self) -> List[Tuple[str, int]]:
        output = self.output
        return colour_usage_report(output) if output is not None else []


__all__ = [
    "EditSettings",
    "RecomputeResult",
    "validate_max_colors",
    "recompute",
    "EditorSession",
]
