from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import InvalidConfiguration
from .buffer import PixelBuffer
from .color_space import (
    RGB,
    apply_brightness,
    apply_contrast,
    hsv_to_rgb,
    rgb_to_hsv,
    round_half_up,
)
from .settings import ColorAdjustments

KMEANS_MAX_ITERATIONS = 20


PRESET_PALETTES: Dict[str, Tuple[str, Tuple[RGB, ...]]] = {
    "retro": (
        "Retro Gaming",
        (
            (0, 0, 0), (255, 255, 255), (255, 0, 0), (0, 255, 0),
            (0, 0, 255), (255, 255, 0), (255, 0, 255), (0, 255, 255),
            (128, 0, 0), (0, 128, 0), (0, 0, 128), (128, 128, 0),
            (128, 0, 128), (0, 128, 128), (192, 192, 192), (128, 128, 128),
        ),
    ),
    "cga": (
        "CGA (4 colors)",
        ((0, 0, 0), (0, 255, 255), (255, 0, 255), (255, 255, 255)),
    ),
    "ega": (
        "EGA (16 colors)",
        (
            (0, 0, 0), (0, 0, 170), (0, 170, 0), (0, 170, 170),
            (170, 0, 0), (170, 0, 170), (170, 85, 0), (170, 170, 170),
            (85, 85, 85), (85, 85, 255), (85, 255, 85), (85, 255, 255),
            (255, 85, 85), (255, 85, 255), (255, 255, 85), (255, 255, 255),
        ),
    ),
    "c64": (
        "Commodore 64",
        (
            (0, 0, 0), (255, 255, 255), (136, 57, 50), (103, 182, 189),
            (139, 63, 150), (85, 160, 73), (64, 49, 141), (191, 206, 114),
            (139, 84, 41), (87, 66, 0), (184, 105, 98), (80, 80, 80),
            (120, 120, 120), (148, 224, 137), (120, 105, 196), (159, 159, 159),
        ),
    ),
    "gameboy": (
        "Game Boy",
        ((15, 56, 15), (48, 98, 48), (139, 172, 15), (155, 188, 15)),
    ),
    "nes": (
        "NES",
        (
            (124, 124, 124), (0, 0, 252), (0, 0, 188), (68, 40, 188),
            (148, 0, 132), (168, 0, 32), (168, 16, 0), (136, 20, 0),
            (80, 48, 0), (0, 120, 0), (0, 104, 0), (0, 88, 0),
            (0, 64, 88), (0, 0, 0), (0, 0, 0), (0, 0, 0),
        ),
    ),
}


@dataclass
class Palette:
    name: str
    label: str
    colors: List[RGB] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"name": self.name, "label": self.label, "colors": [list(c) for c in self.colors]}


class PaletteRegistry:
    """Named preset palettes for one engine instance.

    Each registry owns its own copies of the presets, so slot edits made
    through one instance never leak into another.
    """

    def __init__(self, presets: Optional[Dict[str, Tuple[str, Sequence[RGB]]]] = None) -> None:
        self._presets = dict(PRESET_PALETTES if presets is None else presets)
        self._palettes: Dict[str, Palette] = {}
        for name in self._presets:
            self.reset(name)

    def names(self) -> List[str]:
        return list(self._palettes)

    def get(self, name: str) -> Palette:
        try:
            return self._palettes[name]
        except KeyError:
            raise InvalidConfiguration(f"Unknown palette: {name}") from None

    def colors(self, name: str) -> List[RGB]:
        return list(self.get(name).colors)

    def adjusted(self, name: str, adjustments: ColorAdjustments) -> List[RGB]:
        return adjust_palette(self.get(name).colors, adjustments)

    def set_color(self, name: str, index: int, color: Sequence[int]) -> RGB:
        palette = self.get(name)
        if not 0 <= index < len(palette.colors):
            raise InvalidConfiguration(
                f"Palette {name} has {len(palette.colors)} slots, got index {index}"
            )
        palette.colors[index] = parse_color(color)
        return palette.colors[index]

    def reset(self, name: str) -> Palette:
        if name not in self._presets:
            raise InvalidConfiguration(f"Unknown palette: {name}")
        label, colors = self._presets[name]
        self._palettes[name] = Palette(name, label, [tuple(c) for c in colors])  # type: ignore[misc]
        return self._palettes[name]


def parse_color(color: Sequence[int]) -> RGB:
    try:
        r, g, b = (int(channel) for channel in color)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"Expected an [r, g, b] triple, got {color!r}") from None
    if not all(0 <= channel <= 255 for channel in (r, g, b)):
        raise InvalidConfiguration(f"Color channels must be within 0-255, got {color!r}")
    return r, g, b


def grayscale_ramp(count: int) -> List[RGB]:
    count = max(2, count)
    step = 255.0 / (count - 1)
    return [(round_half_up(i * step),) * 3 for i in range(count)]  # type: ignore[misc]


def extract_unique_colors(buffer: PixelBuffer) -> List[RGB]:
    """Distinct RGB triples in first-seen order; alpha and position are ignored."""
    data = buffer.data
    seen: Dict[RGB, None] = {}
    for i in range(0, len(data), 4):
        seen.setdefault((data[i], data[i + 1], data[i + 2]), None)
    return list(seen)


def generate_from_image(
    buffer: PixelBuffer, k: int = 16, rng: Optional[random.Random] = None
) -> List[RGB]:
    """Build a ``k`` colour palette with k-means over the image's distinct colours.

    Centroids are seeded by uniform sampling, so the result varies between
    runs unless ``rng`` is seeded. When the image has no more than ``k``
    distinct colours those colours are returned unchanged.
    """
    colors = extract_unique_colors(buffer)
    return quantize_colors(colors, k, rng)


def quantize_colors(colors: List[RGB], k: int, rng: Optional[random.Random] = None) -> List[RGB]:
    if len(colors) <= k:
        return list(colors)

    rng = rng or random.Random()
    centroids = [colors[rng.randrange(len(colors))] for _ in range(k)]

    for _ in range(KMEANS_MAX_ITERATIONS):
        clusters = _assign_to_clusters(colors, centroids)
        previous = centroids
        centroids = [_cluster_mean(cluster) for cluster in clusters]
        if centroids == previous:
            break

    return centroids


def _assign_to_clusters(colors: List[RGB], centroids: List[RGB]) -> List[List[RGB]]:
    clusters: List[List[RGB]] = [[] for _ in centroids]
    for color in colors:
        clusters[nearest_index(color, centroids)].append(color)
    return clusters


def _cluster_mean(cluster: List[RGB]) -> RGB:
    if not cluster:
        return 0, 0, 0
    size = len(cluster)
    return (
        round_half_up(sum(c[0] for c in cluster) / size),
        round_half_up(sum(c[1] for c in cluster) / size),
        round_half_up(sum(c[2] for c in cluster) / size),
    )


def nearest_index(color: Sequence[float], palette: Sequence[Sequence[float]]) -> int:
    # Squared distance orders the same as Euclidean; strict ``<`` keeps the first tie.
    best_index = 0
    best_distance = float("inf")
    r, g, b = color[0], color[1], color[2]
    for index, (R, G, B) in enumerate(palette):
        distance = (R - r) ** 2 + (G - g) ** 2 + (B - b) ** 2
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index


def find_nearest_color(color: Sequence[float], palette: Sequence[RGB]) -> RGB:
    return palette[nearest_index(color, palette)]


def adjust_color(rgb: Sequence[float], adjustments: ColorAdjustments) -> RGB:
    """Hue shift and saturation in HSV, then brightness and contrast in RGB."""
    h, s, v = rgb_to_hsv(rgb[0], rgb[1], rgb[2])
    h = (h + adjustments.hue_shift) % 360
    s = max(0.0, min(100.0, s * (adjustments.saturation_scale / 100.0)))
    r, g, b = hsv_to_rgb(h, s, v)

    brightness = adjustments.brightness
    contrast = adjustments.contrast
    return (
        apply_contrast(apply_brightness(r, brightness), contrast),
        apply_contrast(apply_brightness(g, brightness), contrast),
        apply_contrast(apply_brightness(b, brightness), contrast),
    )


def adjust_palette(palette: Sequence[RGB], adjustments: ColorAdjustments) -> List[RGB]:
    return [adjust_color(color, adjustments) for color in palette]


def create_tinted_grayscale(luminance: float, adjustments: ColorAdjustments) -> RGB:
    """Re-colour a grey level without re-running any kernel."""
    r = g = b = float(luminance)
    saturation = adjustments.tint_saturation
    if saturation > 0:
        hue = adjustments.hue_shift % 360
        r, g, b = hsv_to_rgb(hue, saturation, (luminance / 255.0) * 100.0)

    brightness = adjustments.brightness
    return (
        round_half_up(apply_brightness(r, brightness)),
        round_half_up(apply_brightness(g, brightness)),
        round_half_up(apply_brightness(b, brightness)),
    )
