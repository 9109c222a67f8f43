"""The dithering engine: one entry point over the whole processing stack."""

from __future__ import annotations

import logging
import random
import time
from typing import Dict, List, Optional, Tuple

from .buffer import PixelBuffer
from .color_space import RGB, apply_contrast
from .dither import dither_palette, dither_plane, dither_value_channel
from .effects import (
    apply_basic_image_adjustments,
    apply_chromatic_aberration,
    apply_levels_adjustment,
    apply_posterization,
    convert_to_grayscale,
)
from .kernels import AlgorithmSpec, KernelRegistry
from .palette import (
    PaletteRegistry,
    adjust_color,
    adjust_palette,
    create_tinted_grayscale,
    generate_from_image,
    grayscale_ramp,
)
from .settings import ColorAdjustments, ColorMode, DitherSettings

logger = logging.getLogger(__name__)


class DitherEngine:
    """Turns an RGBA buffer plus :class:`DitherSettings` into a new buffer.

    The engine holds no per-call state. ``palettes`` and ``kernels`` are the
    only shared tables; pass your own instances to isolate palette edits.
    """

    def __init__(
        self,
        palettes: Optional[PaletteRegistry] = None,
        kernels: Optional[KernelRegistry] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.palettes = palettes or PaletteRegistry()
        self.kernels = kernels or KernelRegistry()
        self._rng = rng

    def _random_source(self, settings: DitherSettings, rng: Optional[random.Random]) -> random.Random:
        if rng is not None:
            return rng
        if settings.seed is not None:
            return random.Random(settings.seed)
        return self._rng or random.Random()

    def dither(
        self,
        buffer: PixelBuffer,
        settings: DitherSettings,
        rng: Optional[random.Random] = None,
    ) -> PixelBuffer:
        spec = self.kernels.get(settings.algorithm)
        if settings.palette_name is not None:
            # Unknown names fail here, before any pre-step touches the pixels.
            self.palettes.get(settings.palette_name)
        started = time.perf_counter()
        logger.info(
            "Dithering %dx%d with %s in %s mode",
            buffer.width,
            buffer.height,
            spec.algorithm.value,
            settings.color_mode.value,
        )
        try:
            result = self._run(buffer.copy(), spec, settings, self._random_source(settings, rng))
        except Exception:
            logger.exception("Dithering with %s failed", spec.algorithm.value)
            raise
        logger.info("Dithering complete in %.1f ms", (time.perf_counter() - started) * 1000.0)
        return result

    def _run(
        self,
        work: PixelBuffer,
        spec: AlgorithmSpec,
        settings: DitherSettings,
        rng: random.Random,
    ) -> PixelBuffer:
        if settings.basic_adjustments.enabled and not settings.basic_adjustments.is_neutral:
            apply_basic_image_adjustments(work, settings.basic_adjustments)
        if settings.chromatic_effects.intensity > 0:
            apply_chromatic_aberration(work, settings.chromatic_effects)
        if settings.levels is not None:
            apply_levels_adjustment(work, settings.levels)
        if settings.posterize is not None:
            apply_posterization(work, settings.posterize, self.kernels, rng)

        mode = settings.color_mode
        if mode is ColorMode.GRAYSCALE:
            return self._dither_grayscale(work, spec, settings, rng)
        if mode is ColorMode.PALETTE:
            return self._dither_palette(work, spec, settings, rng)
        if mode is ColorMode.HSV:
            return self._dither_hsv(work, spec, settings, rng)
        return self._dither_rgb_channels(work, spec, settings, rng)

    def _dither_grayscale(
        self, work: PixelBuffer, spec: AlgorithmSpec, settings: DitherSettings, rng: random.Random
    ) -> PixelBuffer:
        convert_to_grayscale(work)
        plane = dither_plane(
            work.channel(0),
            work.width,
            work.height,
            spec,
            threshold=settings.threshold,
            strength=settings.strength,
            dither_size=settings.dither_size,
            rng=rng,
        )

        adjustments = settings.color_adjustments
        if adjustments.is_neutral_tint:
            for offset in range(3):
                work.put_channel(offset, plane)
            return work

        tints: Dict[int, RGB] = {}
        data = work.data
        for i, gray in enumerate(plane):
            color = tints.get(gray)
            if color is None:
                color = _tint(gray, adjustments)
                tints[gray] = color
            p = i * 4
            data[p], data[p + 1], data[p + 2] = color
        return work

    def _dither_palette(
        self, work: PixelBuffer, spec: AlgorithmSpec, settings: DitherSettings, rng: random.Random
    ) -> PixelBuffer:
        palette = self.resolve_palette(work, settings, rng)
        if not palette:
            logger.debug("Empty palette; passing pixels through")
            return work
        if not settings.color_adjustments.is_neutral:
            palette = adjust_palette(palette, settings.color_adjustments)
        return dither_palette(
            work,
            spec,
            palette,
            threshold=settings.threshold,
            strength=settings.strength,
            dither_size=settings.dither_size,
            rng=rng,
        )

    def _dither_hsv(
        self, work: PixelBuffer, spec: AlgorithmSpec, settings: DitherSettings, rng: random.Random
    ) -> PixelBuffer:
        dither_value_channel(
            work,
            spec,
            threshold=settings.threshold,
            strength=settings.strength,
            dither_size=settings.dither_size,
            rng=rng,
        )
        _recolor(work, settings.color_adjustments)
        return work

    def _dither_rgb_channels(
        self, work: PixelBuffer, spec: AlgorithmSpec, settings: DitherSettings, rng: random.Random
    ) -> PixelBuffer:
        for offset in range(3):
            plane = dither_plane(
                [float(v) for v in work.channel(offset)],
                work.width,
                work.height,
                spec,
                threshold=settings.threshold,
                strength=settings.strength,
                dither_size=settings.dither_size,
                rng=rng,
                integer=False,
            )
            work.put_channel(offset, plane)
        _recolor(work, settings.color_adjustments)
        return work

    def resolve_palette(
        self, buffer: PixelBuffer, settings: DitherSettings, rng: Optional[random.Random] = None
    ) -> List[RGB]:
        """Pick the palette for palette mode.

        An explicit palette wins, then a named preset, then a k-means palette
        of ``color_count`` colours extracted from ``buffer``, and finally a
        uniform grayscale ramp of the same size.
        """
        if settings.palette is not None:
            logger.debug("Using explicit %d-colour palette", len(settings.palette))
            return [tuple(color) for color in settings.palette]  # type: ignore[misc]
        if settings.palette_name is not None:
            logger.debug("Using preset palette %s", settings.palette_name)
            return self.palettes.colors(settings.palette_name)
        if settings.auto_palette:
            logger.debug("Generating %d-colour palette from the image", settings.color_count)
            return generate_from_image(buffer, settings.color_count, rng)
        logger.debug("Falling back to a %d-step grayscale ramp", settings.color_count)
        return grayscale_ramp(settings.color_count)


def _tint(gray: int, adjustments: ColorAdjustments) -> RGB:
    r, g, b = create_tinted_grayscale(gray, adjustments)
    contrast = adjustments.contrast
    if contrast == 100.0:
        return r, g, b
    return apply_contrast(r, contrast), apply_contrast(g, contrast), apply_contrast(b, contrast)


def _recolor(work: PixelBuffer, adjustments: ColorAdjustments) -> None:
    if adjustments.is_neutral:
        return
    cache: Dict[Tuple[int, int, int], RGB] = {}
    data = work.data
    for p in range(0, len(data), 4):
        key = (data[p], data[p + 1], data[p + 2])
        color = cache.get(key)
        if color is None:
            color = adjust_color(key, adjustments)
            cache[key] = color
        data[p], data[p + 1], data[p + 2] = color


def dither(buffer: PixelBuffer, settings: DitherSettings, rng: Optional[random.Random] = None) -> PixelBuffer:
    """Run a one-off :class:`DitherEngine` with fresh registries."""
    return DitherEngine().dither(buffer, settings, rng)
