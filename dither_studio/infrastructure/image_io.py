from __future__ import annotations

import io
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from ..config import EXPORT_FORMATS, INPUT_FORMATS, SETTINGS
from ..errors import UnsupportedImage
from ..processing.buffer import PixelBuffer

MIMETYPES = {"png": "image/png", "jpeg": "image/jpeg", "webp": "image/webp"}


def normalize_format(fmt: Optional[str]) -> str:
    name = (fmt or SETTINGS.default_format).lower().lstrip(".")
    if name == "jpg":
        name = "jpeg"
    if name not in EXPORT_FORMATS:
        raise UnsupportedImage(f"Unsupported export format: {fmt}")
    return name


def decode_image(data: bytes, max_pixels: Optional[int] = None) -> PixelBuffer:
    """Decode PNG/JPEG/WebP/GIF/BMP bytes into an RGBA :class:`PixelBuffer`.

    Animated inputs contribute their first frame only.
    """
    if not data:
        raise UnsupportedImage("Empty image payload")
    limit = SETTINGS.max_pixels if max_pixels is None else max_pixels
    try:
        img = Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise UnsupportedImage(f"Cannot decode image: {exc}") from exc

    if img.format not in INPUT_FORMATS:
        raise UnsupportedImage(f"Unsupported input format: {img.format}")
    width, height = img.size
    if width * height > limit:
        raise UnsupportedImage(f"Image is {width}x{height}, above the {limit} pixel limit")

    try:
        img.load()
    except OSError as exc:
        raise UnsupportedImage(f"Cannot decode image: {exc}") from exc
    return PixelBuffer.from_image(img)


def load_image(path: Union[str, Path], max_pixels: Optional[int] = None) -> PixelBuffer:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise UnsupportedImage(f"Cannot read {path}: {exc}") from exc
    return decode_image(data, max_pixels)


def encode_image(buffer: PixelBuffer, fmt: Optional[str] = None, quality: Optional[int] = None) -> bytes:
    name = normalize_format(fmt)
    img = buffer.to_image()
    out = io.BytesIO()
    if name == "jpeg":
        # JPEG has no alpha channel.
        img.convert("RGB").save(out, "JPEG", quality=quality or SETTINGS.jpeg_quality)
    elif name == "webp":
        if quality is None:
            img.save(out, "WEBP", lossless=True)
        else:
            img.save(out, "WEBP", quality=quality)
    else:
        img.save(out, "PNG", optimize=True)
    return out.getvalue()


def save_image(buffer: PixelBuffer, path: Union[str, Path], fmt: Optional[str] = None, quality: Optional[int] = None) -> str:
    target = Path(path)
    name = normalize_format(fmt or target.suffix or None)
    target.write_bytes(encode_image(buffer, name, quality))
    return name
