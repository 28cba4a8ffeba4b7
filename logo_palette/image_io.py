# logo_palette/image_io.py
from __future__ import annotations

import base64
import binascii
import io
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .core_types import U8Image, assert_u8_image_rgba

"""
Image I/O helpers (RGBA in sRGB), data URL codec, and resize utilities.

Every decoded raster is a read-only uint8 (H, W, 4) array. Nothing in the
pipeline writes into it; remap results are always fresh arrays.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]

ImageSource = Union[bytes, bytearray, memoryview, str, Path]

_DATA_URL_PREFIX = "data:"


class DecodeError(ValueError):
    """Raised when a source image cannot be read or decoded."""


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im,
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGBA",
            )
            if im2 is None:
                return im.convert("RGBA")
            return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            # Broken or unsupported profile: keep the raw channel values.
            return im.convert("RGBA")

    return im.convert("RGBA")


def _data_url_payload(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep:
        raise DecodeError("malformed data URL (missing ',')")
    if not header.endswith(";base64"):
        raise DecodeError("only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64 payload: {e}") from e


def _open_source(source: ImageSource) -> Image.Image:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return Image.open(io.BytesIO(bytes(source)))
    if isinstance(source, str) and source.startswith(_DATA_URL_PREFIX):
        return Image.open(io.BytesIO(_data_url_payload(source)))
    return Image.open(Path(source))


def decode_image(source: ImageSource) -> U8Image:
    """
    Decode bytes, a base64 'data:' URL, or a file path to a read-only
    uint8 (H, W, 4) sRGB raster.

    Raises:
      DecodeError if the source is missing, unreadable, or not an image.
    """
    try:
        with _open_source(source) as im0:
            im0.load()
            im = _convert_to_srgb_rgba(im0)
            arr = np.array(im, dtype=np.uint8)
    except DecodeError:
        raise
    except (
        UnidentifiedImageError,
        OSError,
        ValueError,
        SyntaxError,
        EOFError,
        Image.DecompressionBombError,
    ) as e:
        raise DecodeError(f"cannot decode image: {e}") from e

    if arr.ndim != 3 or arr.shape[-1] != 4 or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise DecodeError(f"unexpected decoded shape {arr.shape}")
    arr.setflags(write=False)
    return arr


def load_image_rgba(path: Path) -> U8Image:
    """Load an image file as an RGBA raster. See decode_image."""
    return decode_image(Path(path))


def downscale_to_max_side(rgba: U8Image, max_side: Optional[int]) -> U8Image:
    """
    Shrink so the longer side is <= max_side, preserving aspect ratio.

    Nearest-neighbour resampling keeps every output pixel an exact source
    colour. Returns the input unchanged when no shrink is needed.
    """
    rgba = assert_u8_image_rgba(rgba)
    H0, W0, _ = rgba.shape
    if max_side is None or max_side <= 0 or max(H0, W0) <= max_side:
        return rgba

    scale = max_side / float(max(H0, W0))
    dst_w = max(1, int(round(W0 * scale)))
    dst_h = max(1, int(round(H0 * scale)))
    im = Image.fromarray(np.ascontiguousarray(rgba))
    im2 = im.resize((dst_w, dst_h), resample=Image.Resampling.NEAREST)
    arr = np.array(im2, dtype=np.uint8)
    arr.setflags(write=False)
    return arr


def encode_png(rgba: U8Image) -> bytes:
    """Encode an RGBA raster as PNG bytes."""
    rgba = assert_u8_image_rgba(rgba)
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(rgba)).save(buf, format="PNG")
    return buf.getvalue()


def encode_data_url(rgba: U8Image) -> str:
    """Encode an RGBA raster as a 'data:image/png;base64,...' URL."""
    payload = base64.b64encode(encode_png(rgba)).decode("ascii")
    return f"data:image/png;base64,{payload}"


def save_png_rgba(path: Path, rgba: U8Image) -> Path:
    """Write an RGBA raster to disk as PNG, forcing the .png suffix."""
    path = Path(path)
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    path.write_bytes(encode_png(rgba))
    return path


__all__ = [
    "ImageSource",
    "DecodeError",
    "decode_image",
    "load_image_rgba",
    "downscale_to_max_side",
    "encode_png",
    "encode_data_url",
    "save_png_rgba",
]
