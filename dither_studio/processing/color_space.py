from __future__ import annotations

import math
from typing import Sequence, Tuple

RGB = Tuple[int, int, int]
HSV = Tuple[float, float, float]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 255.0) -> float:
    return max(low, min(high, value))


def rgb_to_hsv(r: float, g: float, b: float) -> HSV:
    """Return ``(h, s, v)`` with ``h`` in ``[0, 360)`` and ``s``/``v`` in percent."""
    r /= 255.0
    g /= 255.0
    b /= 255.0
    max_channel = max(r, g, b)
    min_channel = min(r, g, b)
    diff = max_channel - min_channel

    s = 0.0 if max_channel == 0 else diff / max_channel

    if diff == 0:
        h = 0.0
    elif max_channel == r:
        h = (60 * ((g - b) / diff) + 360) % 360
    elif max_channel == g:
        h = (60 * ((b - r) / diff) + 120) % 360
    else:
        h = (60 * ((r - g) / diff) + 240) % 360

    return h, s * 100.0, max_channel * 100.0


def hsv_to_rgb(h: float, s: float, v: float) -> RGB:
    h = (h % 360) / 60.0
    s /= 100.0
    v /= 100.0

    c = v * s
    x = c * (1 - abs((h % 2) - 1))
    m = v - c

    if h < 1:
        r, g, b = c, x, 0.0
    elif h < 2:
        r, g, b = x, c, 0.0
    elif h < 3:
        r, g, b = 0.0, c, x
    elif h < 4:
        r, g, b = 0.0, x, c
    elif h < 5:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return (
        round_half_up((r + m) * 255),
        round_half_up((g + m) * 255),
        round_half_up((b + m) * 255),
    )


def color_distance(c1: Sequence[float], c2: Sequence[float]) -> float:
    """Plain Euclidean distance in RGB space."""
    dr = c1[0] - c2[0]
    dg = c1[1] - c2[1]
    db = c1[2] - c2[2]
    return math.sqrt(dr * dr + dg * dg + db * db)


def apply_contrast(value: float, contrast: float) -> int:
    adjusted = (value / 255.0 - 0.5) * (contrast / 100.0) + 0.5
    return round_half_up(clamp(adjusted * 255.0))


def apply_brightness(value: float, brightness: float) -> float:
    return clamp(value * (brightness / 100.0))


def luminance(r: float, g: float, b: float) -> float:
    # Rec. 601 weights; callers round when they need a byte.
    return 0.299 * r + 0.587 * g + 0.114 * b
