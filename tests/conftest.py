import io

import pytest
from PIL import Image

from dither_studio.processing.buffer import PixelBuffer


def make_gradient(width: int = 8, height: int = 6) -> PixelBuffer:
    pixels = []
    for y in range(height):
        for x in range(width):
            r = (x * 255) // max(1, width - 1)
            g = (y * 255) // max(1, height - 1)
            b = (x * 37 + y * 91) % 256
            a = 255 - (x * 13 + y * 7) % 120
            pixels.append((r, g, b, a))
    return PixelBuffer.from_pixels(width, height, pixels)


def encode_png(buffer: PixelBuffer) -> bytes:
    out = io.BytesIO()
    buffer.to_image().save(out, "PNG")
    return out.getvalue()


def decode_png(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


@pytest.fixture
def gradient() -> PixelBuffer:
    return make_gradient()


@pytest.fixture
def gradient_png(gradient) -> bytes:
    return encode_png(gradient)
