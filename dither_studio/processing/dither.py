"""Quantization drivers: one per kind of working data.

* :func:`dither_plane`: a single scalar plane (grayscale, or one RGB channel).
* :func:`quantize_levels_plane`: a scalar plane snapped to N evenly spaced levels.
* :func:`dither_palette`: RGB vectors snapped to the nearest palette colour.
* :func:`dither_value_channel`: the HSV value channel, re-deriving HSV at
  every neighbour the error reaches.

All of them walk the pixels in the algorithm's traversal order, read the
threshold offset from its matrix and push the (scaled) error through its taps.
"""

from __future__ import annotations

import random
from typing import Callable, List, Optional, Sequence

from .buffer import PixelBuffer, clamp_byte
from .color_space import RGB, clamp, hsv_to_rgb, luminance, rgb_to_hsv, round_half_up
from .kernels import AlgorithmSpec, adaptive_factors, block_average, forward_offsets, traversal
from .palette import nearest_index

Quantizer = Callable[[float, int, int], float]


def _clamp_float(value: float) -> float:
    return clamp(value)


def _run_plane(
    plane: List[float],
    width: int,
    height: int,
    spec: AlgorithmSpec,
    quantize: Quantizer,
    *,
    strength: float,
    dither_size: float,
    integer: bool,
) -> List[float]:
    store = clamp_byte if integer else _clamp_float
    source = block_average(plane, width, height, spec.block_size) if spec.block_size > 1 else None
    factors = adaptive_factors(plane, width, height) if spec.adaptive else None
    offsets = forward_offsets(spec, dither_size)
    diffuses = spec.diffuses
    carry = 0.0

    for x, y in traversal(spec, width, height):
        i = y * width + x
        value = source[i] if source is not None else plane[i]
        if spec.carry_decay:
            value = store(value + carry)

        output = quantize(value, x, y)
        plane[i] = output
        if not diffuses:
            continue

        error = (value - output) * strength
        if spec.carry_decay:
            carry = error * spec.carry_decay
        if not offsets:
            continue

        weights = spec.weights_for(value / 255.0, factors[i] if factors else 1.0)
        for offset, (_, _, weight) in zip(offsets, weights):
            if offset is None:
                continue
            nx = x + offset[0]
            ny = y + offset[1]
            if 0 <= nx < width and 0 <= ny < height:
                j = ny * width + nx
                plane[j] = store(plane[j] + error * weight)

    return plane


def dither_plane(
    plane: List[float],
    width: int,
    height: int,
    spec: AlgorithmSpec,
    *,
    threshold: float = 128,
    strength: float = 1.0,
    dither_size: float = 1.0,
    rng: Optional[random.Random] = None,
    integer: bool = True,
) -> List[float]:
    """Binarize ``plane`` in place to 0/255 and return it.

    ``integer`` planes round and clamp every write like a byte buffer; float
    planes only clamp, keeping fractional error between pixels.
    """
    if spec.diffuses:
        def quantize(value: float, x: int, y: int) -> float:
            return 0 if value < threshold + spec.bias(x, y, rng) else 255
    else:
        def quantize(value: float, x: int, y: int) -> float:
            return 255 if value > threshold + spec.bias(x, y, rng) else 0

    return _run_plane(
        plane, width, height, spec, quantize, strength=strength, dither_size=dither_size, integer=integer
    )


def quantize_levels_plane(
    plane: List[float],
    width: int,
    height: int,
    spec: AlgorithmSpec,
    levels: int,
    *,
    strength: float = 0.3,
    rng: Optional[random.Random] = None,
) -> List[float]:
    step = 255.0 / (levels - 1)

    def quantize(value: float, x: int, y: int) -> float:
        shifted = value - spec.bias(x, y, rng) * step / 255.0
        return clamp_byte(round_half_up(shifted / step) * step)

    return _run_plane(plane, width, height, spec, quantize, strength=strength, dither_size=1.0, integer=False)


def dither_palette(
    buffer: PixelBuffer,
    spec: AlgorithmSpec,
    palette: Sequence[RGB],
    *,
    threshold: float = 128,
    strength: float = 1.0,
    dither_size: float = 1.0,
    rng: Optional[random.Random] = None,
) -> PixelBuffer:
    """Map every pixel of ``buffer`` (in place) to its nearest palette colour.

    Diffusing algorithms spread the full RGB error vector. Matrix algorithms
    offset the colour by the threshold and the matrix value before lookup.
    """
    width, height = buffer.width, buffer.height
    data = buffer.data
    work = [[float(v) for v in buffer.channel(c)] for c in range(3)]
    sources = [block_average(plane, width, height, spec.block_size) for plane in work] if spec.block_size > 1 else None
    factors = None
    if spec.adaptive:
        luma = [luminance(r, g, b) for r, g, b in zip(*work)]
        factors = adaptive_factors(luma, width, height)

    offsets = forward_offsets(spec, dither_size)
    diffuses = spec.diffuses
    spread = max(1, len(palette) - 1)
    carry = [0.0, 0.0, 0.0]

    for x, y in traversal(spec, width, height):
        i = y * width + x
        planes = sources if sources is not None else work
        color = [planes[0][i], planes[1][i], planes[2][i]]
        if spec.carry_decay:
            color = [clamp(c + k) for c, k in zip(color, carry)]

        target = color
        if spec.matrix:
            shift = (threshold - 128) + spec.bias(x, y, rng) / spread
            target = [clamp(c - shift) for c in color]

        chosen = palette[nearest_index(target, palette)]
        p = i * 4
        data[p] = chosen[0]
        data[p + 1] = chosen[1]
        data[p + 2] = chosen[2]
        if not diffuses:
            continue

        errors = [(c - q) * strength for c, q in zip(color, chosen)]
        if spec.carry_decay:
            carry = [e * spec.carry_decay for e in errors]
        if not offsets:
            continue

        weights = spec.weights_for(luminance(*color) / 255.0, factors[i] if factors else 1.0)
        for offset, (_, _, weight) in zip(offsets, weights):
            if offset is None:
                continue
            nx = x + offset[0]
            ny = y + offset[1]
            if 0 <= nx < width and 0 <= ny < height:
                j = ny * width + nx
                for c in range(3):
                    work[c][j] = clamp(work[c][j] + errors[c] * weight)

    return buffer


def dither_value_channel(
    buffer: PixelBuffer,
    spec: AlgorithmSpec,
    *,
    threshold: float = 128,
    strength: float = 1.0,
    dither_size: float = 1.0,
    rng: Optional[random.Random] = None,
) -> PixelBuffer:
    """Dither the HSV value of ``buffer`` in place, keeping hue and saturation."""
    width, height = buffer.width, buffer.height
    data = buffer.data
    needs_values = spec.block_size > 1 or spec.adaptive
    values = (
        [rgb_to_hsv(data[p], data[p + 1], data[p + 2])[2] for p in range(0, len(data), 4)]
        if needs_values
        else None
    )
    blocks = block_average(values, width, height, spec.block_size) if spec.block_size > 1 else None
    # Variance is measured on a 0-255 scale so the factor range matches scalar planes.
    factors = adaptive_factors([v * 2.55 for v in values], width, height) if spec.adaptive else None

    offsets = forward_offsets(spec, dither_size)
    diffuses = spec.diffuses
    base_limit = threshold / 255.0 * 100.0
    carry = 0.0

    for x, y in traversal(spec, width, height):
        i = y * width + x
        p = i * 4
        hue, sat, value = rgb_to_hsv(data[p], data[p + 1], data[p + 2])
        if blocks is not None:
            value = blocks[i]
        if spec.carry_decay:
            value = clamp(value + carry, 0.0, 100.0)

        limit = base_limit + spec.bias(x, y, rng) * 100.0 / 255.0
        if diffuses:
            new_value = 0.0 if value < limit else 100.0
        else:
            new_value = 100.0 if value > limit else 0.0
        data[p], data[p + 1], data[p + 2] = hsv_to_rgb(hue, sat, new_value)
        if not diffuses:
            continue

        error = (value - new_value) * strength
        if spec.carry_decay:
            carry = error * spec.carry_decay
        if not offsets:
            continue

        weights = spec.weights_for(value / 100.0, factors[i] if factors else 1.0)
        for offset, (_, _, weight) in zip(offsets, weights):
            if offset is None:
                continue
            nx = x + offset[0]
            ny = y + offset[1]
            if 0 <= nx < width and 0 <= ny < height:
                q = (ny * width + nx) * 4
                n_hue, n_sat, n_value = rgb_to_hsv(data[q], data[q + 1], data[q + 2])
                n_value = clamp(n_value + error * weight, 0.0, 100.0)
                data[q], data[q + 1], data[q + 2] = hsv_to_rgb(n_hue, n_sat, n_value)

    return buffer
