"""Error-diffusion kernels and threshold matrices, keyed by :class:`Algorithm`.

Every algorithm is plain data: an :class:`AlgorithmSpec` carrying its tap
table, threshold matrix and traversal flags. The drivers in
:mod:`dither_studio.processing.dither` interpret that data for each colour
mode, so adding an algorithm never means adding a new loop.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..errors import InvalidConfiguration

Tap = Tuple[int, int, float]
Matrix = Tuple[Tuple[int, ...], ...]


class Algorithm(str, Enum):
    FLOYD_STEINBERG = "floyd-steinberg"
    JARVIS_JUDICE_NINKE = "jarvis-judice-ninke"
    ATKINSON = "atkinson"
    SIERRA = "sierra"
    BURKES = "burkes"
    SIERRA_2_4A = "sierra-2-4a"
    FAN = "fan"
    SHIAU_FAN = "shiau-fan"
    OSTROMOUKHOV = "ostromoukhov"
    BAYER_2X2 = "bayer-2x2"
    BAYER_4X4 = "bayer-4x4"
    BAYER_8X8 = "bayer-8x8"
    BLUE_NOISE = "blue-noise"
    GREEN_NOISE = "green-noise"
    RIEMERSMA = "riemersma"
    DOT_DIFFUSION = "dot-diffusion"
    VOID_AND_CLUSTER = "void-and-cluster"
    VARIABLE_COEFFICIENT = "variable-coefficient"

    @classmethod
    def parse(cls, value: Any) -> "Algorithm":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidConfiguration(f"Unknown algorithm: {value!r}") from None


class Family(str, Enum):
    ERROR_DIFFUSION = "error-diffusion"
    ORDERED = "ordered"
    SPATIAL = "spatial"


class Traversal(str, Enum):
    RASTER = "raster"
    SPIRAL = "spiral"


def _taps(divisor: float, *entries: Tuple[int, int, int]) -> Tuple[Tap, ...]:
    return tuple((dx, dy, weight / divisor) for dx, dy, weight in entries)


FLOYD_STEINBERG_TAPS = _taps(16, (1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1))

JARVIS_JUDICE_NINKE_TAPS = _taps(
    48,
    (1, 0, 7), (2, 0, 5),
    (-2, 1, 3), (-1, 1, 5), (0, 1, 7), (1, 1, 5), (2, 1, 3),
    (-2, 2, 1), (-1, 2, 3), (0, 2, 5), (1, 2, 3), (2, 2, 1),
)

# Six eighths: a quarter of the error is dropped on purpose.
ATKINSON_TAPS = _taps(8, (1, 0, 1), (2, 0, 1), (-1, 1, 1), (0, 1, 1), (1, 1, 1), (0, 2, 1))

SIERRA_TAPS = _taps(
    32,
    (1, 0, 5), (2, 0, 3),
    (-2, 1, 2), (-1, 1, 4), (0, 1, 5), (1, 1, 4), (2, 1, 2),
    (-1, 2, 2), (0, 2, 3), (1, 2, 2),
)

BURKES_TAPS = _taps(
    32,
    (1, 0, 8), (2, 0, 4),
    (-2, 1, 2), (-1, 1, 4), (0, 1, 8), (1, 1, 4), (2, 1, 2),
)

SIERRA_2_4A_TAPS = _taps(4, (1, 0, 2), (-1, 1, 1), (0, 1, 1))

FAN_TAPS = _taps(16, (1, 0, 7), (-2, 1, 1), (-1, 1, 3), (0, 1, 5))

SHIAU_FAN_TAPS = _taps(16, (1, 0, 8), (-2, 1, 2), (-1, 1, 2), (0, 1, 4))

OSTROMOUKHOV_OFFSETS = ((1, 0), (-1, 1), (0, 1))

DOT_DIFFUSION_TAPS: Tuple[Tap, ...] = ((1, 0, 0.5),)

BAYER_2X2: Matrix = ((0, 2), (3, 1))

BAYER_4X4: Matrix = (
    (0, 8, 2, 10),
    (12, 4, 14, 6),
    (3, 11, 1, 9),
    (15, 7, 13, 5),
)

BAYER_8X8: Matrix = (
    (0, 48, 12, 60, 3, 51, 15, 63),
    (32, 16, 44, 28, 35, 19, 47, 31),
    (8, 56, 4, 52, 11, 59, 7, 55),
    (40, 24, 36, 20, 43, 27, 39, 23),
    (2, 50, 14, 62, 1, 49, 13, 61),
    (34, 18, 46, 30, 33, 17, 45, 29),
    (10, 58, 6, 54, 9, 57, 5, 53),
    (42, 26, 38, 22, 41, 25, 37, 21),
)

# Dispersed ranks (a shear of Bayer 8x8) so the jitter has no diagonal grain to lock onto.
BLUE_NOISE_8X8: Matrix = (
    (0, 50, 12, 62, 3, 49, 15, 61),
    (44, 30, 35, 17, 47, 29, 32, 18),
    (11, 57, 7, 53, 8, 58, 4, 54),
    (39, 21, 40, 26, 36, 22, 43, 25),
    (2, 48, 14, 60, 1, 51, 13, 63),
    (46, 28, 33, 19, 45, 31, 34, 16),
    (9, 59, 5, 55, 10, 56, 6, 52),
    (37, 23, 42, 24, 38, 20, 41, 27),
)

# Clustered-dot ranks: dots grow from two seeds per tile.
GREEN_NOISE_8X8: Matrix = (
    (24, 10, 12, 26, 35, 47, 49, 37),
    (8, 0, 2, 14, 45, 59, 61, 51),
    (22, 6, 4, 16, 43, 57, 63, 53),
    (30, 20, 18, 28, 33, 41, 55, 39),
    (34, 46, 48, 36, 25, 11, 13, 27),
    (44, 58, 60, 50, 9, 1, 3, 15),
    (42, 56, 62, 52, 23, 7, 5, 17),
    (32, 40, 54, 38, 31, 21, 19, 29),
)

# Knuth's class matrix.
DOT_DIFFUSION_8X8: Matrix = (
    (34, 48, 40, 32, 29, 15, 23, 31),
    (42, 58, 56, 53, 21, 5, 7, 10),
    (50, 62, 61, 45, 13, 1, 2, 18),
    (38, 46, 54, 37, 25, 17, 9, 26),
    (28, 14, 22, 30, 35, 49, 41, 33),
    (20, 4, 6, 11, 43, 59, 57, 52),
    (12, 0, 3, 19, 51, 63, 60, 44),
    (24, 16, 8, 27, 39, 47, 55, 36),
)

CLUSTER_4X4: Matrix = (
    (12, 5, 6, 13),
    (4, 0, 1, 7),
    (11, 3, 2, 8),
    (15, 10, 9, 14),
)

RIEMERSMA_DECAY = 0.9
BLUE_NOISE_JITTER = 16.0
DOT_DIFFUSION_SPREAD = 96.0
VARIANCE_NORMALIZER = 128.0
ADAPTIVE_FACTOR_RANGE = (0.1, 1.0)


@dataclass(frozen=True)
class AlgorithmSpec:
    algorithm: Algorithm
    label: str
    family: Family
    description: str
    taps: Tuple[Tap, ...] = ()
    matrix: Matrix = ()
    matrix_spread: float = 255.0
    default_error_diffusion: float = 1.0
    traversal: Traversal = Traversal.RASTER
    carry_decay: float = 0.0
    jitter: float = 0.0
    block_size: int = 1
    dynamic_weights: bool = False
    adaptive: bool = False

    @property
    def diffuses(self) -> bool:
        """True when quantization error is pushed to later pixels."""
        return bool(self.taps) or self.dynamic_weights or self.carry_decay > 0

    @property
    def weight_sum(self) -> float:
        return sum(weight for _, _, weight in self.taps)

    @property
    def tap_count(self) -> int:
        return len(OSTROMOUKHOV_OFFSETS) if self.dynamic_weights else len(self.taps)

    def bias(self, x: int, y: int, rng: Optional[random.Random] = None) -> float:
        """Threshold offset contributed by the matrix (and jitter) at ``(x, y)``."""
        if not self.matrix:
            return 0.0
        size = len(self.matrix)
        area = size * len(self.matrix[0])
        value = self.matrix[y % size][x % len(self.matrix[0])]
        offset = value * self.matrix_spread / area - self.matrix_spread / 2.0
        if self.jitter and rng is not None:
            offset += rng.uniform(-self.jitter, self.jitter)
        return offset

    def weights_for(self, intensity: float = 0.0, factor: float = 1.0) -> Sequence[Tap]:
        """Taps to use for one pixel.

        ``intensity`` is the pre-quantization value scaled to ``[0, 1]`` and
        drives the Ostromoukhov weights; ``factor`` scales adaptive kernels.
        """
        if self.dynamic_weights:
            a = 13.0 * intensity
            b = 13.0 * (1.0 - intensity)
            c = 13.0
            total = a + b + c
            (dx0, dy0), (dx1, dy1), (dx2, dy2) = OSTROMOUKHOV_OFFSETS
            return ((dx0, dy0, a / total), (dx1, dy1, b / total), (dx2, dy2, c / total))
        if self.adaptive:
            return tuple((dx, dy, weight * factor) for dx, dy, weight in self.taps)
        return self.taps

    def info(self) -> dict:
        return {
            "id": self.algorithm.value,
            "name": self.label,
            "family": self.family.value,
            "description": self.description,
            "defaultErrorDiffusion": self.default_error_diffusion,
            "taps": self.tap_count,
            "matrixSize": len(self.matrix),
        }


ALGORITHMS: Dict[Algorithm, AlgorithmSpec] = {
    spec.algorithm: spec
    for spec in (
        AlgorithmSpec(
            Algorithm.FLOYD_STEINBERG,
            "Floyd-Steinberg",
            Family.ERROR_DIFFUSION,
            "Classic error diffusion with 4-pixel error distribution",
            taps=FLOYD_STEINBERG_TAPS,
        ),
        AlgorithmSpec(
            Algorithm.JARVIS_JUDICE_NINKE,
            "Jarvis-Judice-Ninke",
            Family.ERROR_DIFFUSION,
            "Wide 12-pixel distribution over two rows; smooth gradients",
            taps=JARVIS_JUDICE_NINKE_TAPS,
        ),
        AlgorithmSpec(
            Algorithm.ATKINSON,
            "Atkinson",
            Family.ERROR_DIFFUSION,
            "Apple's dithering; spreads only 6/8 of the error for crisp highlights",
            taps=ATKINSON_TAPS,
            default_error_diffusion=0.875,
        ),
        AlgorithmSpec(
            Algorithm.SIERRA,
            "Sierra",
            Family.ERROR_DIFFUSION,
            "Three-row Sierra kernel with 10 neighbours",
            taps=SIERRA_TAPS,
        ),
        AlgorithmSpec(
            Algorithm.BURKES,
            "Burkes",
            Family.ERROR_DIFFUSION,
            "Two-row simplification of Stucki with 7 neighbours",
            taps=BURKES_TAPS,
        ),
        AlgorithmSpec(
            Algorithm.SIERRA_2_4A,
            "Sierra-2-4A",
            Family.ERROR_DIFFUSION,
            "Sierra Lite: three neighbours, fastest of the diffusion kernels",
            taps=SIERRA_2_4A_TAPS,
        ),
        AlgorithmSpec(
            Algorithm.FAN,
            "Fan",
            Family.ERROR_DIFFUSION,
            "Fan kernel; reaches two pixels left on the next row",
            taps=FAN_TAPS,
        ),
        AlgorithmSpec(
            Algorithm.SHIAU_FAN,
            "Shiau-Fan",
            Family.ERROR_DIFFUSION,
            "Shiau-Fan kernel; reduces worm artifacts of Floyd-Steinberg",
            taps=SHIAU_FAN_TAPS,
        ),
        AlgorithmSpec(
            Algorithm.OSTROMOUKHOV,
            "Ostromoukhov",
            Family.ERROR_DIFFUSION,
            "Variable coefficients recomputed from each pixel's intensity",
            dynamic_weights=True,
        ),
        AlgorithmSpec(
            Algorithm.BAYER_2X2,
            "Bayer 2x2",
            Family.ORDERED,
            "Ordered dithering with a 2x2 threshold matrix",
            matrix=BAYER_2X2,
        ),
        AlgorithmSpec(
            Algorithm.BAYER_4X4,
            "Bayer 4x4",
            Family.ORDERED,
            "Ordered dithering with a 4x4 threshold matrix",
            matrix=BAYER_4X4,
        ),
        AlgorithmSpec(
            Algorithm.BAYER_8X8,
            "Bayer 8x8",
            Family.ORDERED,
            "Ordered dithering with an 8x8 threshold matrix",
            matrix=BAYER_8X8,
        ),
        AlgorithmSpec(
            Algorithm.BLUE_NOISE,
            "Blue Noise",
            Family.ORDERED,
            "Dispersed threshold matrix with random jitter",
            matrix=BLUE_NOISE_8X8,
            jitter=BLUE_NOISE_JITTER,
        ),
        AlgorithmSpec(
            Algorithm.GREEN_NOISE,
            "Green Noise",
            Family.ORDERED,
            "Clustered-dot threshold matrix; print-like dot growth",
            matrix=GREEN_NOISE_8X8,
        ),
        AlgorithmSpec(
            Algorithm.RIEMERSMA,
            "Riemersma",
            Family.SPATIAL,
            "Spiral traversal carrying a geometrically decaying error",
            traversal=Traversal.SPIRAL,
            carry_decay=RIEMERSMA_DECAY,
        ),
        AlgorithmSpec(
            Algorithm.DOT_DIFFUSION,
            "Dot Diffusion",
            Family.SPATIAL,
            "Class-matrix threshold shift with a rightward error carry",
            taps=DOT_DIFFUSION_TAPS,
            matrix=DOT_DIFFUSION_8X8,
            matrix_spread=DOT_DIFFUSION_SPREAD,
        ),
        AlgorithmSpec(
            Algorithm.VOID_AND_CLUSTER,
            "Void and Cluster",
            Family.SPATIAL,
            "Tile-averaged intensity fills a growing cluster pattern",
            matrix=CLUSTER_4X4,
            block_size=4,
        ),
        AlgorithmSpec(
            Algorithm.VARIABLE_COEFFICIENT,
            "Variable Coefficient",
            Family.SPATIAL,
            "Floyd-Steinberg weights damped where local variance is high",
            taps=FLOYD_STEINBERG_TAPS,
            adaptive=True,
        ),
    )
}


class KernelRegistry:
    """Read-only lookup over the algorithm catalogue."""

    def __init__(self, algorithms: Optional[Dict[Algorithm, AlgorithmSpec]] = None) -> None:
        self._algorithms = dict(ALGORITHMS if algorithms is None else algorithms)

    def get(self, algorithm: Any) -> AlgorithmSpec:
        key = Algorithm.parse(algorithm)
        try:
            return self._algorithms[key]
        except KeyError:
            raise InvalidConfiguration(f"Algorithm not registered: {key.value}") from None

    def names(self) -> List[str]:
        return [algorithm.value for algorithm in self._algorithms]

    def info(self, algorithm: Any) -> dict:
        return self.get(algorithm).info()

    def catalogue(self) -> List[dict]:
        return [spec.info() for spec in self._algorithms.values()]


def scaled_offset(delta: int, dither_size: float) -> int:
    return int(math.floor(delta * dither_size + 0.5))


def forward_offsets(spec: AlgorithmSpec, dither_size: float) -> List[Optional[Tuple[int, int]]]:
    """Scaled ``(dx, dy)`` per tap, aligned with :meth:`AlgorithmSpec.weights_for`.

    A tap that scaling folds onto the current or an already visited pixel
    becomes ``None`` so it can never overwrite a quantized value.
    """
    offsets: List[Optional[Tuple[int, int]]] = []
    for dx, dy, _ in spec.weights_for():
        sx, sy = scaled_offset(dx, dither_size), scaled_offset(dy, dither_size)
        offsets.append((sx, sy) if sy > 0 or (sy == 0 and sx > 0) else None)
    return offsets


def spiral_order(width: int, height: int) -> Iterator[Tuple[int, int]]:
    """Clockwise walk from the top-left corner, ring by ring towards the centre."""
    left, top, right, bottom = 0, 0, width - 1, height - 1
    while left <= right and top <= bottom:
        for x in range(left, right + 1):
            yield x, top
        for y in range(top + 1, bottom + 1):
            yield right, y
        if top < bottom:
            for x in range(right - 1, left - 1, -1):
                yield x, bottom
        if left < right:
            for y in range(bottom - 1, top, -1):
                yield left, y
        left, top, right, bottom = left + 1, top + 1, right - 1, bottom - 1


def raster_order(width: int, height: int) -> Iterator[Tuple[int, int]]:
    for y in range(height):
        for x in range(width):
            yield x, y


def traversal(spec: AlgorithmSpec, width: int, height: int) -> Iterator[Tuple[int, int]]:
    if spec.traversal is Traversal.SPIRAL:
        return spiral_order(width, height)
    return raster_order(width, height)


def block_average(plane: Sequence[float], width: int, height: int, block: int) -> List[float]:
    """Replace every value with the mean of its ``block`` x ``block`` tile."""
    out = [0.0] * (width * height)
    for top in range(0, height, block):
        bottom = min(height, top + block)
        for left in range(0, width, block):
            right = min(width, left + block)
            total = 0.0
            for y in range(top, bottom):
                row = y * width
                for x in range(left, right):
                    total += plane[row + x]
            mean = total / ((bottom - top) * (right - left))
            for y in range(top, bottom):
                row = y * width
                for x in range(left, right):
                    out[row + x] = mean
    return out


def adaptive_factors(plane: Sequence[float], width: int, height: int) -> List[float]:
    """Per-pixel diffusion factor from the 3x3 standard deviation of ``plane``."""
    low, high = ADAPTIVE_FACTOR_RANGE
    factors = [1.0] * (width * height)
    for y in range(height):
        for x in range(width):
            total = 0.0
            total_sq = 0.0
            count = 0
            for ny in range(max(0, y - 1), min(height, y + 2)):
                row = ny * width
                for nx in range(max(0, x - 1), min(width, x + 2)):
                    value = plane[row + nx]
                    total += value
                    total_sq += value * value
                    count += 1
            mean = total / count
            variance = max(0.0, total_sq / count - mean * mean)
            factor = 1.0 - math.sqrt(variance) / VARIANCE_NORMALIZER
            factors[y * width + x] = max(low, min(high, factor))
    return factors
