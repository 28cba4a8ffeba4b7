from __future__ import annotations

"""
Shared utilities for logo_palette.

Includes time formatting, the colour usage report used by the CLI and the
editor session, tidy print-based logging, and per-thread stdout capture for
parallel folder runs.
"""

import io
import sys
import threading
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, TextIO, Tuple

import numpy as np

from .core_types import U8Image, assert_u8_image_rgba, rgb_to_hex


#  Time formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


# Reports


def colour_usage_report(rgba: U8Image) -> List[Tuple[str, int]]:
    """
    Count visible (alpha > 0) pixels per RGB colour.

    Returns a list of (hex, count) sorted by count descending, then hex.
    """
    rgba = assert_u8_image_rgba(rgba)
    visible_mask = rgba[..., 3] > 0
    if not np.any(visible_mask):
        return []
    flat = rgba[..., :3][visible_mask].reshape(-1, 3)
    uniques, counts = np.unique(flat, axis=0, return_counts=True)
    report = [
        (rgb_to_hex((int(row[0]), int(row[1]), int(row[2]))), int(n))
        for row, n in zip(uniques, counts)
    ]
    report.sort(key=lambda kv: (-kv[1], kv[0]))
    return report


# Pretty logging


def format_bool_on_off(value: Any) -> str:
    """Pretty boolean: 'on'/'off' for bools; str(value) otherwise."""
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Pretty number: 1,234 style for ints; compact for floats; passthrough otherwise."""
    if isinstance(value, bool):
        return format_bool_on_off(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".")
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """Format (name, value) pairs as 'Name: value' blocks separated by sep."""
    return sep.join(f"{name}{eq}{format_number_compact(value)}" for name, value in pairs)


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single human-readable config line, e.g.:
      [run] Max colours: 4  Max side: 600  Substitutes: 1  Erased: 0
    Routes to debug_log() when debug=True, else to log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    """Section banner."""
    print(f"\n=== {title} ===", flush=True)


def log(message: str) -> None:
    """Plain log line."""
    print(message, flush=True)


def debug_log(message: str) -> None:
    """Debug log line."""
    print(f"[debug] {message}", flush=True)


def warn(message: str) -> None:
    """Warning log line."""
    print(f"[warn] {message}", flush=True)


def error(message: str) -> None:
    """Error log line to stderr."""
    print(f"[error] {message}", file=sys.stderr, flush=True)


# Per-thread stdout capture


class ThreadRoutedStdout:
    """
    Stand-in for sys.stdout. Writes from a thread inside capture() land in
    that thread's own buffer; every other write goes to the wrapped stream.
    """

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self._local = threading.local()

    def _target(self) -> TextIO:
        buf: Optional[io.StringIO] = getattr(self._local, "buf", None)
        return self.stream if buf is None else buf

    def write(self, text: str) -> int:
        return self._target().write(text)

    def flush(self) -> None:
        self._target().flush()

    def __getattr__(self, name: str) -> Any:
        return getattr(self.stream, name)

    @contextmanager
    def capture(self) -> Iterator[io.StringIO]:
        buf = io.StringIO()
        self._local.buf = buf
        try:
            yield buf
        finally:
            self._local.buf = None


@contextmanager
def routed_stdout() -> Iterator[ThreadRoutedStdout]:
    """Install a ThreadRoutedStdout as sys.stdout for the duration of the block."""
    router = ThreadRoutedStdout(sys.stdout)
    sys.stdout = router  # type: ignore[assignment]
    try:
        yield router
    finally:
        sys.stdout = router.stream


__all__ = [
    "format_seconds_compact",
    "colour_usage_report",
    "format_bool_on_off",
    "format_number_compact",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
    "ThreadRoutedStdout",
    "routed_stdout",
]
