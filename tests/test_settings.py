import pytest

from dither_studio.errors import InvalidConfiguration
from dither_studio.processing.kernels import Algorithm
from dither_studio.processing.settings import ColorMode, DitherSettings


def test_defaults():
    settings = DitherSettings()
    assert settings.algorithm is Algorithm.FLOYD_STEINBERG
    assert settings.threshold == 128
    assert settings.strength == 1.0
    assert settings.dither_size == 1.0
    assert settings.color_mode is ColorMode.GRAYSCALE
    assert settings.color_count == 16


def test_strength_falls_back_to_the_algorithm_default():
    assert DitherSettings(algorithm="atkinson").strength == 0.875
    assert DitherSettings(algorithm="atkinson", error_diffusion=0.5).strength == 0.5


def test_from_dict_accepts_camel_case_payloads():
    settings = DitherSettings.from_dict(
        {
            "algorithm": "Bayer-4x4",
            "threshold": 100,
            "errorDiffusion": 0.25,
            "ditherSize": 2,
            "colorMode": "rgb-channels",
            "palette": [[0, 0, 0], [255, 255, 255]],
            "colorCount": 4,
            "colorAdjustments": {"hueOffset": 30, "saturation": 80},
            "chromaticEffects": {"intensity": 50, "redOffsetX": 2},
            "basicImageAdjustments": {"enabled": True, "brightness": 120, "contrast": 90},
            "levels": {"inputShadow": 10, "gamma": 1.5},
            "posterize": {"levels": 3, "greenLevels": 5, "dither": True, "ditherAlgorithm": "atkinson"},
            "seed": 9,
        }
    )
    assert settings.algorithm is Algorithm.BAYER_4X4
    assert settings.strength == 0.25
    assert settings.dither_size == 2.0
    assert settings.color_mode is ColorMode.RGB_CHANNELS
    assert settings.palette == ((0, 0, 0), (255, 255, 255))
    assert settings.color_adjustments.hue_shift == 30
    assert settings.color_adjustments.saturation == 80
    assert settings.chromatic_effects.red_offset_x == 2
    assert settings.basic_adjustments.enabled
    assert settings.levels.input_shadow == 10
    assert settings.posterize.channel_levels() == (3, 5, 3)
    assert settings.posterize.dither_algorithm is Algorithm.ATKINSON
    assert settings.seed == 9


def test_hue_shift_wins_over_hue_offset():
    settings = DitherSettings.from_dict({"colorAdjustments": {"hueShift": 10, "hueOffset": 50}})
    assert settings.color_adjustments.hue_shift == 10


def test_from_dict_accepts_snake_case_and_round_trips():
    original = DitherSettings.from_dict({"color_mode": "hsv", "dither_size": 1.5, "palette_name": "c64"})
    assert original.color_mode is ColorMode.HSV
    assert DitherSettings.from_dict(original.to_dict()) == original


@pytest.mark.parametrize(
    "payload",
    [
        {"algorithm": "spiral-magic"},
        {"colorMode": "cmyk"},
        {"threshold": 256},
        {"threshold": "bright"},
        {"errorDiffusion": 1.5},
        {"ditherSize": 0},
        {"colorCount": 1},
        {"palette": [[0, 0]]},
        {"palette": [[0, 0, 256]]},
        {"palette": "gameboy"},
        {"basicImageAdjustments": {"enabled": True, "brightness": 40}},
        {"basicImageAdjustments": {"enabled": True, "contrast": 151}},
        {"levels": {"gamma": 0}},
        {"levels": {"outputWhite": 300}},
        {"posterize": {"levels": 1}},
        {"posterize": {"ditherAlgorithm": "nope"}},
        {"colorAdjustments": 5},
        {"levels": 4},
        {"posterize": "x"},
        {"chromaticEffects": [1]},
        {"basicImageAdjustments": True},
        {"paletteName": 3},
    ],
)
def test_invalid_payloads_raise(payload):
    with pytest.raises(InvalidConfiguration):
        DitherSettings.from_dict(payload)


def test_invalid_configuration_is_a_value_error():
    with pytest.raises(ValueError):
        DitherSettings(threshold=-1)


def test_disabled_basic_adjustments_are_not_range_checked():
    settings = DitherSettings.from_dict({"basicImageAdjustments": {"enabled": False, "brightness": 400}})
    assert not settings.basic_adjustments.enabled


@pytest.mark.parametrize(
    "payload, deterministic",
    [
        ({}, True),
        ({"algorithm": "blue-noise"}, False),
        ({"algorithm": "blue-noise", "seed": 1}, True),
        ({"colorMode": "palette"}, False),
        ({"colorMode": "palette", "paletteName": "ega"}, True),
        ({"colorMode": "palette", "autoPalette": False}, True),
        ({"posterize": {"dither": True, "ditherAlgorithm": "blue-noise"}}, False),
    ],
)
def test_is_deterministic(payload, deterministic):
    assert DitherSettings.from_dict(payload).is_deterministic is deterministic
