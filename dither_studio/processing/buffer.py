from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from PIL import Image

RGBA = Tuple[int, int, int, int]


@dataclass
class PixelBuffer:
    """Row-major RGBA raster, four bytes per pixel.

    Alpha travels with the pixels untouched; no algorithm reads it.
    """

    width: int
    height: int
    data: bytearray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid buffer geometry {self.width}x{self.height}")
        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise ValueError(f"Buffer holds {len(self.data)} bytes, expected {expected}")

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, bytearray(self.data))

    def pixel(self, x: int, y: int) -> RGBA:
        i = (y * self.width + x) * 4
        data = self.data
        return data[i], data[i + 1], data[i + 2], data[i + 3]

    def pixels(self) -> List[RGBA]:
        data = self.data
        return [tuple(data[i : i + 4]) for i in range(0, len(data), 4)]  # type: ignore[misc]

    def channel(self, offset: int) -> List[int]:
        """Return one channel (0=R, 1=G, 2=B, 3=A) as a flat list."""
        return list(self.data[offset::4])

    def put_channel(self, offset: int, values: Iterable[float]) -> None:
        data = self.data
        for i, value in enumerate(values):
            data[i * 4 + offset] = clamp_byte(value)

    @classmethod
    def from_pixels(cls, width: int, height: int, pixels: Sequence[Sequence[int]]) -> "PixelBuffer":
        data = bytearray()
        for pixel in pixels:
            r, g, b = pixel[0], pixel[1], pixel[2]
            a = pixel[3] if len(pixel) > 3 else 255
            data.extend((r, g, b, a))
        return cls(width, height, data)

    @classmethod
    def filled(cls, width: int, height: int, rgba: Sequence[int]) -> "PixelBuffer":
        return cls(width, height, bytearray(bytes(rgba[:4])) * (width * height))

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        rgba = img.convert("RGBA")
        width, height = rgba.size
        return cls(width, height, bytearray(rgba.tobytes()))

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), bytes(self.data))


def clamp_byte(value: float) -> int:
    """Round half-to-even and clamp to ``[0, 255]`` (typed-array store semantics)."""
    if value <= 0:
        return 0
    if value >= 255:
        return 255
    return int(round(value))
