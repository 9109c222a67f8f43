from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence

from PIL import Image, ImageFilter

from .buffer import PixelBuffer, clamp_byte
from .color_space import clamp, luminance, round_half_up
from .dither import quantize_levels_plane
from .kernels import KernelRegistry
from .settings import BasicImageAdjustments, ChromaticEffects, LevelsSettings, PosterizeSettings

logger = logging.getLogger(__name__)

BLUR_PASSES = 3
POSTERIZE_DITHER_STRENGTH = 0.3

_IDENTITY_LUT = list(range(256))


def convert_to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    data = buffer.data
    for i in range(0, len(data), 4):
        gray = round_half_up(luminance(data[i], data[i + 1], data[i + 2]))
        data[i] = data[i + 1] = data[i + 2] = gray
    return buffer


def apply_rgb_lut(buffer: PixelBuffer, lut: Sequence[int]) -> PixelBuffer:
    """Map R, G and B through one 256-entry table; alpha keeps an identity table."""
    img = buffer.to_image().point(list(lut) * 3 + _IDENTITY_LUT)
    buffer.data[:] = img.tobytes()
    return buffer


def apply_chromatic_aberration(buffer: PixelBuffer, effects: ChromaticEffects) -> PixelBuffer:
    """Shift R, G and B by their own offsets; pixels shifted in from outside are black."""
    if effects.intensity == 0:
        return buffer

    scale = effects.intensity / 100.0
    bands = list(buffer.to_image().split())
    for channel, (offset_x, offset_y) in enumerate(effects.offsets()):
        dx = round_half_up(offset_x * scale)
        dy = round_half_up(offset_y * scale)
        if dx == 0 and dy == 0:
            continue
        shifted = Image.new("L", bands[channel].size, 0)
        shifted.paste(bands[channel], (dx, dy))
        bands[channel] = shifted
    buffer.data[:] = Image.merge("RGBA", bands).tobytes()
    return buffer


def build_levels_lut(levels: LevelsSettings) -> List[int]:
    black, white = levels.output_black, levels.output_white
    shadow, highlight = levels.input_shadow, levels.input_highlight
    if highlight == shadow:
        return [round_half_up((black + white) / 2.0)] * 256

    inv_gamma = 1.0 / levels.gamma
    lut = []
    for value in range(256):
        normalized = clamp((value - shadow) / float(highlight - shadow), 0.0, 1.0)
        corrected = normalized ** inv_gamma
        lut.append(clamp_byte(round_half_up(black + corrected * (white - black))))
    return lut


def apply_levels_adjustment(buffer: PixelBuffer, levels: LevelsSettings) -> PixelBuffer:
    return apply_rgb_lut(buffer, build_levels_lut(levels))


def box_blur(band: Image.Image, radius: int, passes: int = BLUR_PASSES) -> Image.Image:
    """Approximate a Gaussian with repeated box blurs; edge pixels extend past the border."""
    if radius <= 0:
        return band
    for _ in range(passes):
        band = band.filter(ImageFilter.BoxBlur(radius))
    return band


def _plane_to_band(plane: Sequence[float], width: int, height: int) -> Image.Image:
    return Image.frombytes("L", (width, height), bytes(clamp_byte(v) for v in plane))


def apply_posterization(
    buffer: PixelBuffer,
    posterize: PosterizeSettings,
    kernels: Optional[KernelRegistry] = None,
    rng: Optional[random.Random] = None,
) -> PixelBuffer:
    """Snap each channel to a few evenly spaced levels.

    Runs blur, gamma, quantization and softening in that order. With
    ``posterize.dither`` the quantization step diffuses its rounding error
    through the chosen algorithm at a reduced strength.
    """
    width, height = buffer.width, buffer.height
    kernels = kernels or KernelRegistry()
    spec = kernels.get(posterize.dither_algorithm) if posterize.dither else None
    bands = buffer.to_image().split()
    gamma_lut = None
    if posterize.gamma != 1.0:
        inv_gamma = 1.0 / posterize.gamma
        gamma_lut = [round_half_up(255.0 * (value / 255.0) ** inv_gamma) for value in range(256)]

    for channel, levels in enumerate(posterize.channel_levels()):
        band = box_blur(bands[channel], posterize.blur_radius)
        if gamma_lut is not None:
            band = band.point(gamma_lut)
        plane: List[float] = [float(v) for v in band.getdata()]

        if spec is not None:
            plane = quantize_levels_plane(
                plane, width, height, spec, levels, strength=POSTERIZE_DITHER_STRENGTH, rng=rng
            )
        else:
            step = 255.0 / (levels - 1)
            plane = [round_half_up(round_half_up(v / step) * step) for v in plane]

        if posterize.soften_radius > 0:
            plane = list(box_blur(_plane_to_band(plane, width, height), posterize.soften_radius).getdata())
        buffer.put_channel(channel, plane)
    return buffer


def apply_basic_image_adjustments(buffer: PixelBuffer, adjustments: BasicImageAdjustments) -> PixelBuffer:
    if not adjustments.enabled or adjustments.is_neutral:
        return buffer
    if not adjustments.in_safe_range:
        logger.warning(
            "Skipping basic adjustments outside the safe range (brightness=%s, contrast=%s)",
            adjustments.brightness,
            adjustments.contrast,
        )
        return buffer

    offset = (adjustments.brightness - 100.0) / 100.0 * 255.0
    factor = adjustments.contrast / 100.0
    return apply_rgb_lut(buffer, [clamp_byte((value + offset - 128.0) * factor + 128.0) for value in range(256)])
