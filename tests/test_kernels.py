import random

import pytest

from dither_studio.errors import InvalidConfiguration
from dither_studio.processing.kernels import (
    ALGORITHMS,
    Algorithm,
    Family,
    KernelRegistry,
    adaptive_factors,
    block_average,
    forward_offsets,
    spiral_order,
)


@pytest.mark.parametrize(
    "algorithm",
    [
        Algorithm.FLOYD_STEINBERG,
        Algorithm.JARVIS_JUDICE_NINKE,
        Algorithm.SIERRA,
        Algorithm.BURKES,
        Algorithm.SIERRA_2_4A,
        Algorithm.FAN,
        Algorithm.SHIAU_FAN,
    ],
)
def test_full_kernels_sum_to_one(algorithm):
    assert ALGORITHMS[algorithm].weight_sum == pytest.approx(1.0, abs=1e-9)


def test_atkinson_discards_a_quarter_of_the_error():
    spec = ALGORITHMS[Algorithm.ATKINSON]
    assert spec.weight_sum == pytest.approx(0.75, abs=1e-9)
    assert spec.default_error_diffusion == 0.875


@pytest.mark.parametrize(
    "algorithm, taps",
    [
        (Algorithm.FLOYD_STEINBERG, 4),
        (Algorithm.JARVIS_JUDICE_NINKE, 12),
        (Algorithm.ATKINSON, 6),
        (Algorithm.SIERRA, 10),
        (Algorithm.BURKES, 7),
        (Algorithm.SIERRA_2_4A, 3),
        (Algorithm.FAN, 4),
        (Algorithm.SHIAU_FAN, 4),
        (Algorithm.OSTROMOUKHOV, 3),
    ],
)
def test_tap_counts(algorithm, taps):
    assert ALGORITHMS[algorithm].tap_count == taps


@pytest.mark.parametrize("intensity", [0.0, 0.25, 0.5, 1.0])
def test_ostromoukhov_weights_are_normalized(intensity):
    weights = ALGORITHMS[Algorithm.OSTROMOUKHOV].weights_for(intensity)
    assert sum(w for _, _, w in weights) == pytest.approx(1.0)
    a, b, c = (w for _, _, w in weights)
    assert c == pytest.approx(13.0 / 26.0)
    assert a == pytest.approx(13.0 * intensity / 26.0)


def test_every_algorithm_is_registered():
    assert set(ALGORITHMS) == set(Algorithm)
    registry = KernelRegistry()
    assert registry.names()[0] == "floyd-steinberg"
    assert len(registry.catalogue()) == 18


def test_registry_info_and_unknown_names():
    registry = KernelRegistry()
    info = registry.info("bayer-4x4")
    assert info["family"] == Family.ORDERED.value
    assert info["matrixSize"] == 4
    with pytest.raises(InvalidConfiguration):
        registry.get("median-cut")


@pytest.mark.parametrize(
    "algorithm, matrix_size",
    [
        (Algorithm.BAYER_2X2, 2),
        (Algorithm.BAYER_4X4, 4),
        (Algorithm.BAYER_8X8, 8),
        (Algorithm.BLUE_NOISE, 8),
        (Algorithm.GREEN_NOISE, 8),
        (Algorithm.DOT_DIFFUSION, 8),
    ],
)
def test_threshold_matrices_are_rank_permutations(algorithm, matrix_size):
    matrix = ALGORITHMS[algorithm].matrix
    assert len(matrix) == matrix_size
    values = sorted(value for row in matrix for value in row)
    assert values == list(range(matrix_size * matrix_size))


def test_bayer_bias_spans_the_threshold_range():
    spec = ALGORITHMS[Algorithm.BAYER_2X2]
    assert spec.bias(0, 0) == pytest.approx(-127.5)
    assert spec.bias(1, 0) == pytest.approx(0.0)
    assert spec.bias(0, 1) == pytest.approx(63.75)
    assert spec.bias(3, 3) == spec.bias(1, 1)


def test_dot_diffusion_bias_is_narrow():
    spec = ALGORITHMS[Algorithm.DOT_DIFFUSION]
    biases = [spec.bias(x, y) for y in range(8) for x in range(8)]
    assert min(biases) == pytest.approx(-48.0)
    assert max(biases) < 48.0


def test_blue_noise_jitter_uses_the_injected_rng():
    spec = ALGORITHMS[Algorithm.BLUE_NOISE]
    first = [spec.bias(x, 0, random.Random(3)) for x in range(8)]
    second = [spec.bias(x, 0, random.Random(3)) for x in range(8)]
    assert first == second
    plain = [spec.bias(x, 0) for x in range(8)]
    assert all(abs(a - b) <= 16.0 for a, b in zip(first, plain))


def test_forward_offsets_scale_with_dither_size():
    spec = ALGORITHMS[Algorithm.FLOYD_STEINBERG]
    assert forward_offsets(spec, 1.0) == [(1, 0), (-1, 1), (0, 1), (1, 1)]
    assert forward_offsets(spec, 2.0) == [(2, 0), (-2, 2), (0, 2), (2, 2)]
    assert forward_offsets(spec, 0.4) == [None, None, None, None]


def test_spiral_order_visits_every_pixel_once():
    assert list(spiral_order(3, 3)) == [
        (0, 0), (1, 0), (2, 0), (2, 1), (2, 2), (1, 2), (0, 2), (0, 1), (1, 1),
    ]
    order = list(spiral_order(5, 2))
    assert len(order) == len(set(order)) == 10


def test_block_average_uses_partial_edge_tiles():
    plane = [0, 4, 8, 12, 100]
    assert block_average(plane, 5, 1, 4) == [6.0, 6.0, 6.0, 6.0, 100.0]


def test_adaptive_factors_damp_busy_regions():
    flat = adaptive_factors([128.0] * 9, 3, 3)
    assert flat == [1.0] * 9

    checker = [0.0 if (x + y) % 2 else 255.0 for y in range(3) for x in range(3)]
    busy = adaptive_factors(checker, 3, 3)
    assert all(0.1 <= f < 1.0 for f in busy)
