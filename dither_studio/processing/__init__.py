"""Pixel-processing engine: colour space, palettes, kernels, effects and the engine."""

from .buffer import PixelBuffer
from .color_space import apply_contrast, color_distance, hsv_to_rgb, rgb_to_hsv
from .effects import (
    apply_basic_image_adjustments,
    apply_chromatic_aberration,
    apply_levels_adjustment,
    apply_posterization,
    convert_to_grayscale,
)
from .engine import DitherEngine, dither
from .kernels import ALGORITHMS, Algorithm, AlgorithmSpec, KernelRegistry
from .palette import (
    PRESET_PALETTES,
    PaletteRegistry,
    adjust_palette,
    create_tinted_grayscale,
    find_nearest_color,
    generate_from_image,
)
from .settings import ColorAdjustments, ColorMode, DitherSettings

__all__ = [
    "PixelBuffer",
    "apply_contrast",
    "color_distance",
    "hsv_to_rgb",
    "rgb_to_hsv",
    "apply_basic_image_adjustments",
    "apply_chromatic_aberration",
    "apply_levels_adjustment",
    "apply_posterization",
    "convert_to_grayscale",
    "DitherEngine",
    "dither",
    "ALGORITHMS",
    "Algorithm",
    "AlgorithmSpec",
    "KernelRegistry",
    "PRESET_PALETTES",
    "PaletteRegistry",
    "adjust_palette",
    "create_tinted_grayscale",
    "find_nearest_color",
    "generate_from_image",
    "ColorAdjustments",
    "ColorMode",
    "DitherSettings",
]
