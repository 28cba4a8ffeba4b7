#!/usr/bin/env python3
"""
recolour_logo.py
Reduce logo images to a small editable palette for multi-colour printing.

Usage:
  python recolour_logo.py INPUT [OUTPUT] --max-colors K --max-side N
      --substitute SRC=DST --erase COLOUR --jobs J --debug

Palette:
  Up to K (2..8) distinct colours picked greedily by frequency. Each
  visible pixel is snapped to its nearest palette colour.

Edits:
  --substitute SRC=DST  render palette entry SRC with colour DST
  --erase COLOUR        make palette entry COLOUR transparent
  SRC / COLOUR are a palette index (0 = most frequent) or a hex colour.
  DST is a hex colour or a preset: black, slate, white, red, blue, green,
  amber (by name or by index 0..6).

Input:
  Any Pillow-readable image, or a folder of them.

Output:
  PNG. If OUTPUT is omitted, writes <stem>_palette.png next to INPUT.
"""

from __future__ import annotations

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

from logo_palette import constants as C
from logo_palette.core_types import (
    Palette,
    RGBTuple,
    coerce_to_rgb_tuple,
    hex_to_rgb,
    rgb_to_hex,
)
from logo_palette.image_io import DecodeError, save_png_rgba
from logo_palette.session import EditorSession
from logo_palette.utils import (
    debug_log,
    error,
    format_seconds_compact,
    log,
    print_banner,
    ThreadRoutedStdout,
    print_config_line,
    routed_stdout,
    warn,
)

OUTPUT_SUFFIX = "_palette"
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}


# CLI args & small helpers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recolour-logo",
        description="Reduce a logo to a small editable palette.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "output", type=Path, nargs="?", default=None, help="Output PNG (single file only)"
    )
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "--max-colors",
        type=int,
        default=C.DEFAULT_MAX_COLORS,
        help=f"Palette size cap, {C.MIN_COLORS}..{C.MAX_COLORS}.",
    )
    parser.add_argument(
        "--max-side",
        type=int,
        default=C.MAX_WORKING_SIDE,
        help="Shrink so the longer side <= N before processing. 0 disables.",
    )
    parser.add_argument(
        "--substitute",
        action="append",
        default=[],
        metavar="SRC=DST",
        help=(
            "Replace palette entry SRC (index or hex) with colour DST "
            "(hex, or a preset name or index: "
            + ", ".join(name for name, _hex in C.BASE_COLOURS)
            + ")."
        ),
    )
    parser.add_argument(
        "--erase",
        action="append",
        default=[],
        metavar="COLOUR",
        help="Make palette entry COLOUR (index or hex) transparent.",
    )
    parser.add_argument("--jobs", type=int, default=2, help="Files processed in parallel")
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def resolve_palette_ref(ref: str, palette: Palette) -> RGBTuple:
    """Turn '0'.. or '#rrggbb' into a palette colour."""
    ref = ref.strip()
    if ref.isdigit():
        i = int(ref)
        if i >= len(palette):
            raise ValueError(f"palette index {i} out of range (size {len(palette)})")
        return palette[i]
    rgb = coerce_to_rgb_tuple(ref)
    if rgb not in palette:
        raise ValueError(f"{rgb_to_hex(rgb)} is not a palette colour")
    return rgb


def resolve_substitute_colour(value: str) -> RGBTuple:
    """Turn a preset name ('red'), preset index ('0'..) or hex into a colour."""
    value = value.strip()
    presets = dict(C.BASE_COLOURS)
    if value.lower() in presets:
        return hex_to_rgb(presets[value.lower()])
    if value.isdigit():
        i = int(value)
        if i >= len(C.BASE_COLOURS):
            raise ValueError(
                f"preset index {i} out of range (0..{len(C.BASE_COLOURS) - 1})"
            )
        return hex_to_rgb(C.BASE_COLOURS[i][1])
    return coerce_to_rgb_tuple(value)


def parse_substitute(spec: str) -> Tuple[str, str]:
    src, sep, dst = spec.partition("=")
    if not sep or not src.strip() or not dst.strip():
        raise ValueError(f"expected SRC=DST, got {spec!r}")
    return src, dst.strip()


# Per-file processing


def _process_single_image(
    src_path: Path,
    out_path: Optional[Path],
    args: argparse.Namespace,
) -> None:
    """load -> extract -> edits -> remap -> save -> report."""
    t_start = time.perf_counter()
    if out_path is None:
        out_path = src_path.with_name(f"{src_path.stem}{OUTPUT_SUFFIX}.png")

    print_banner(src_path.name)

    session = EditorSession(
        args.max_colors,
        max_side=args.max_side or None,
        auto_refresh=False,
        debug=args.debug,
    )
    session.load_image(src_path)
    session.refresh()
    palette = session.palette
    t_after_extract = time.perf_counter()

    log("Palette:")
    if not palette:
        warn("no visible pixels; output is fully transparent")
    for i, rgb in enumerate(palette):
        log(f"  [{i}] {rgb_to_hex(rgb)}")

    subs = [parse_substitute(s) for s in args.substitute]
    for src, dst in subs:
        session.set_substitute(
            resolve_palette_ref(src, palette), resolve_substitute_colour(dst)
        )
    # Naming an entry twice still erases it once.
    erase = {resolve_palette_ref(ref, palette) for ref in args.erase}
    for rgb in sorted(erase - session.settings.erased):
        session.toggle_erase(rgb)
    if subs or args.erase:
        session.refresh()
    t_after_map = time.perf_counter()

    output = session.output
    if output is None:
        raise ValueError("no output produced")
    out_path = save_png_rgba(out_path, output)
    t_after_save = time.perf_counter()

    height, width = output.shape[0], output.shape[1]
    log(f"Wrote {out_path.name} | size={width}x{height} | palette_size={len(palette)}")
    mapping = session.colour_mapping_hex()
    for src_hex, dst_hex in mapping.items():
        log(f"  substitute {src_hex} -> {dst_hex}")
    for rgb in sorted(session.settings.erased):
        log(f"  erased {rgb_to_hex(rgb)}")

    log("Colours used:")
    report = session.usage_report()
    for hex_code, count in report:
        log(f"  {hex_code}: {count:,}")
    log(f"Total pixels: {sum(n for _h, n in report):,}")

    if args.debug:
        debug_log(
            f"Total {format_seconds_compact(t_after_save - t_start)}  "
            f"(extract={format_seconds_compact(t_after_extract - t_start)}, "
            f"edits={format_seconds_compact(t_after_map - t_after_extract)}, "
            f"save={format_seconds_compact(t_after_save - t_after_map)})"
        )
    else:
        log(f"Total time {format_seconds_compact(t_after_save - t_start)}")


def _process_one(path: Path, out_path: Optional[Path], args: argparse.Namespace) -> bool:
    """Process one file; report failures instead of raising. Returns success."""
    try:
        _process_single_image(path, out_path, args)
    except (DecodeError, ValueError) as e:
        error(f"{path.name}: {e}")
        return False
    return True


def _process_one_captured(
    path: Path,
    out_path: Optional[Path],
    args: argparse.Namespace,
    router: ThreadRoutedStdout,
) -> Tuple[str, bool]:
    """Process a single file, buffering this thread's stdout so parallel output stays ordered."""
    with router.capture() as buf:
        ok = _process_one(path, out_path, args)
    return buf.getvalue(), ok


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = parse_cli_args(argv)

    if not (C.MIN_COLORS <= args.max_colors <= C.MAX_COLORS):
        error(f"--max-colors must be in [{C.MIN_COLORS}, {C.MAX_COLORS}]")
        return 2

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        return 2
    if src.is_dir() and args.output is not None:
        error("OUTPUT is only valid for a single file; use --outdir for a folder")
        return 2

    print_config_line(
        "run",
        [
            ("Max colours", args.max_colors),
            ("Max side", args.max_side or "-"),
            ("Substitutes", len(args.substitute)),
            ("Erased", len(args.erase)),
        ],
        debug=args.debug,
    )

    if not src.is_dir():
        out_path = args.output
        if out_path is None and args.outdir is not None:
            out_path = args.outdir / f"{src.stem}{OUTPUT_SUFFIX}.png"
        return 0 if _process_one(src, out_path, args) else 2

    files = sorted(
        (
            p
            for p in src.iterdir()
            if p.is_file()
            and p.suffix.lower() in IMAGE_EXTS
            and not p.stem.endswith(OUTPUT_SUFFIX)
        ),
        key=lambda p: p.name.lower(),
    )
    if args.debug:
        debug_log(f"Images: {len(files)}  Jobs: {args.jobs}")

    def dst_for(p: Path) -> Optional[Path]:
        return (args.outdir / f"{p.stem}{OUTPUT_SUFFIX}.png") if args.outdir else None

    if args.outdir is not None:
        args.outdir.mkdir(parents=True, exist_ok=True)

    if args.jobs <= 1:
        results = [_process_one(p, dst_for(p), args) for p in files]
    else:
        with routed_stdout() as router, ThreadPoolExecutor(max_workers=args.jobs) as ex:
            futures = [
                ex.submit(_process_one_captured, p, dst_for(p), args, router)
                for p in files
            ]
            blocks = [f.result() for f in futures]
        print("".join(text for text, _ok in blocks), end="", flush=True)
        results = [ok for _text, ok in blocks]
    return 0 if all(results) else 2


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
