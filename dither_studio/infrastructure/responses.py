from __future__ import annotations

import io
from typing import Optional

from flask import send_file

from ..processing.buffer import PixelBuffer
from .image_io import MIMETYPES, encode_image, normalize_format


def send_encoded(data: bytes, fmt: str):
    return send_file(io.BytesIO(data), mimetype=MIMETYPES[fmt])


def send_image(buffer: PixelBuffer, fmt: Optional[str] = None, quality: Optional[int] = None):
    name = normalize_format(fmt)
    return send_encoded(encode_image(buffer, name, quality), name)
