"""Per-call configuration for :func:`dither_studio.processing.engine.DitherEngine.dither`.

Every dataclass here is frozen and built fresh for each call. ``from_dict``
accepts the JSON shape the desktop front end produces (camelCase keys) as
well as snake_case keys, and validates ranges up front so a bad request fails
before any pixel is touched.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from ..errors import InvalidConfiguration
from .kernels import ALGORITHMS, Algorithm

SAFE_ADJUSTMENT_RANGE = (50.0, 150.0)


class ColorMode(str, Enum):
    GRAYSCALE = "grayscale"
    PALETTE = "palette"
    HSV = "hsv"
    RGB_CHANNELS = "rgb-channels"

    @classmethod
    def parse(cls, value: Any) -> "ColorMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise InvalidConfiguration(f"Unknown color mode: {value!r} (expected one of {choices})") from None


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _section(payload: Any, name: str) -> Mapping[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise InvalidConfiguration(f"{name} must be a JSON object, got {payload!r}")
    return payload


def _number(value: Any, name: str, kind: type = float) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{name} must be a number, got {value!r}") from None


def _check_range(value: float, name: str, low: float, high: float) -> None:
    if not low <= value <= high:
        raise InvalidConfiguration(f"{name} must be within [{low:g}, {high:g}], got {value:g}")


@dataclass(frozen=True)
class ColorAdjustments:
    """Hue/saturation/brightness/contrast applied around the quantizer.

    ``saturation`` is ``None`` when the caller left it alone: palette and RGB
    adjustments then scale by 100% and the grayscale tint stays neutral. A
    given value is a percentage scale for colour adjustments and an absolute
    tint saturation for the grayscale tint.
    """

    hue_shift: float = 0.0
    saturation: Optional[float] = None
    brightness: float = 100.0
    contrast: float = 100.0

    @property
    def saturation_scale(self) -> float:
        return 100.0 if self.saturation is None else self.saturation

    @property
    def tint_saturation(self) -> float:
        return 0.0 if self.saturation is None else max(0.0, min(100.0, self.saturation))

    @property
    def is_neutral(self) -> bool:
        return (
            self.hue_shift % 360 == 0
            and self.saturation_scale == 100.0
            and self.brightness == 100.0
            and self.contrast == 100.0
        )

    @property
    def is_neutral_tint(self) -> bool:
        return self.tint_saturation == 0 and self.brightness == 100.0 and self.contrast == 100.0

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "ColorAdjustments":
        payload = _section(payload, "colorAdjustments")
        # ``hueOffset`` is the older name; ``hueShift`` wins when both are set.
        hue = _number(_pick(payload, "hueShift", "hue_shift", default=0), "hueShift")
        if hue == 0:
            hue = _number(_pick(payload, "hueOffset", "hue_offset", default=0), "hueOffset")
        saturation = _pick(payload, "saturation")
        return cls(
            hue_shift=hue,
            saturation=None if saturation is None else _number(saturation, "saturation"),
            brightness=_number(_pick(payload, "brightness", default=100), "brightness"),
            contrast=_number(_pick(payload, "contrast", default=100), "contrast"),
        )


@dataclass(frozen=True)
class ChromaticEffects:
    intensity: float = 0.0
    red_offset_x: float = 0.0
    red_offset_y: float = 0.0
    green_offset_x: float = 0.0
    green_offset_y: float = 0.0
    blue_offset_x: float = 0.0
    blue_offset_y: float = 0.0

    def offsets(self) -> Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float]]:
        return (
            (self.red_offset_x, self.red_offset_y),
            (self.green_offset_x, self.green_offset_y),
            (self.blue_offset_x, self.blue_offset_y),
        )

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "ChromaticEffects":
        payload = _section(payload, "chromaticEffects")
        values = {"intensity": _number(_pick(payload, "intensity", default=0), "intensity")}
        for color in ("red", "green", "blue"):
            for axis in ("x", "y"):
                camel = f"{color}Offset{axis.upper()}"
                snake = f"{color}_offset_{axis}"
                values[snake] = _number(_pick(payload, camel, snake, default=0), camel)
        return cls(**values)


@dataclass(frozen=True)
class BasicImageAdjustments:
    """Opt-in brightness/contrast pre-pass, limited to a safe percentage band."""

    enabled: bool = False
    brightness: float = 100.0
    contrast: float = 100.0

    @property
    def is_neutral(self) -> bool:
        return self.brightness == 100.0 and self.contrast == 100.0

    @property
    def in_safe_range(self) -> bool:
        low, high = SAFE_ADJUSTMENT_RANGE
        return low <= self.brightness <= high and low <= self.contrast <= high

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "BasicImageAdjustments":
        payload = _section(payload, "basicImageAdjustments")
        return cls(
            enabled=bool(_pick(payload, "enabled", default=False)),
            brightness=_number(_pick(payload, "brightness", default=100), "brightness"),
            contrast=_number(_pick(payload, "contrast", default=100), "contrast"),
        )


@dataclass(frozen=True)
class LevelsSettings:
    input_shadow: int = 0
    input_highlight: int = 255
    output_black: int = 0
    output_white: int = 255
    gamma: float = 1.0

    def validate(self) -> None:
        for name in ("input_shadow", "input_highlight", "output_black", "output_white"):
            _check_range(getattr(self, name), name, 0, 255)
        if self.gamma <= 0:
            raise InvalidConfiguration(f"levels gamma must be positive, got {self.gamma:g}")

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "LevelsSettings":
        payload = _section(payload, "levels")
        return cls(
            input_shadow=_number(_pick(payload, "inputShadow", "input_shadow", default=0), "inputShadow", int),
            input_highlight=_number(
                _pick(payload, "inputHighlight", "input_highlight", default=255), "inputHighlight", int
            ),
            output_black=_number(_pick(payload, "outputBlack", "output_black", default=0), "outputBlack", int),
            output_white=_number(_pick(payload, "outputWhite", "output_white", default=255), "outputWhite", int),
            gamma=_number(_pick(payload, "gamma", default=1.0), "gamma"),
        )


@dataclass(frozen=True)
class PosterizeSettings:
    levels: int = 4
    red_levels: Optional[int] = None
    green_levels: Optional[int] = None
    blue_levels: Optional[int] = None
    blur_radius: int = 0
    gamma: float = 1.0
    soften_radius: int = 0
    dither: bool = False
    dither_algorithm: Algorithm = Algorithm.FLOYD_STEINBERG

    def channel_levels(self) -> Tuple[int, int, int]:
        return (
            self.red_levels or self.levels,
            self.green_levels or self.levels,
            self.blue_levels or self.levels,
        )

    def validate(self) -> None:
        for value in self.channel_levels():
            _check_range(value, "posterize levels", 2, 256)
        if self.blur_radius < 0 or self.soften_radius < 0:
            raise InvalidConfiguration("posterize blur radii must not be negative")
        if self.gamma <= 0:
            raise InvalidConfiguration(f"posterize gamma must be positive, got {self.gamma:g}")

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "PosterizeSettings":
        payload = _section(payload, "posterize")
        per_channel = {}
        for color in ("red", "green", "blue"):
            raw = _pick(payload, f"{color}Levels", f"{color}_levels")
            per_channel[f"{color}_levels"] = None if raw is None else _number(raw, f"{color}Levels", int)
        return cls(
            levels=_number(_pick(payload, "levels", default=4), "levels", int),
            blur_radius=_number(_pick(payload, "blurRadius", "blur_radius", default=0), "blurRadius", int),
            gamma=_number(_pick(payload, "gamma", default=1.0), "gamma"),
            soften_radius=_number(_pick(payload, "softenRadius", "soften_radius", default=0), "softenRadius", int),
            dither=bool(_pick(payload, "dither", default=False)),
            dither_algorithm=Algorithm.parse(
                _pick(payload, "ditherAlgorithm", "dither_algorithm", default=Algorithm.FLOYD_STEINBERG.value)
            ),
            **per_channel,
        )


@dataclass(frozen=True)
class DitherSettings:
    algorithm: Algorithm = Algorithm.FLOYD_STEINBERG
    threshold: int = 128
    error_diffusion: Optional[float] = None
    dither_size: float = 1.0
    color_mode: ColorMode = ColorMode.GRAYSCALE
    palette: Optional[Tuple[Tuple[int, int, int], ...]] = None
    palette_name: Optional[str] = None
    auto_palette: bool = True
    color_count: int = 16
    color_adjustments: ColorAdjustments = field(default_factory=ColorAdjustments)
    chromatic_effects: ChromaticEffects = field(default_factory=ChromaticEffects)
    basic_adjustments: BasicImageAdjustments = field(default_factory=BasicImageAdjustments)
    levels: Optional[LevelsSettings] = None
    posterize: Optional[PosterizeSettings] = None
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "algorithm", Algorithm.parse(self.algorithm))
        object.__setattr__(self, "color_mode", ColorMode.parse(self.color_mode))
        if self.palette is not None:
            object.__setattr__(self, "palette", tuple(tuple(int(c) for c in color) for color in self.palette))
        self.validate()

    @property
    def strength(self) -> float:
        """Error-diffusion multiplier, falling back to the algorithm's own default."""
        if self.error_diffusion is not None:
            return self.error_diffusion
        return ALGORITHMS[self.algorithm].default_error_diffusion

    @property
    def is_deterministic(self) -> bool:
        if self.seed is not None:
            return True
        if self.algorithm is Algorithm.BLUE_NOISE:
            return False
        if self.posterize is not None and self.posterize.dither:
            if self.posterize.dither_algorithm is Algorithm.BLUE_NOISE:
                return False
        return not (
            self.color_mode is ColorMode.PALETTE
            and self.palette is None
            and self.palette_name is None
            and self.auto_palette
        )

    def validate(self) -> None:
        _check_range(self.threshold, "threshold", 0, 255)
        if self.palette_name is not None and not isinstance(self.palette_name, str):
            raise InvalidConfiguration(f"paletteName must be a string, got {self.palette_name!r}")
        if self.error_diffusion is not None:
            _check_range(self.error_diffusion, "errorDiffusion", 0.0, 1.0)
        if self.dither_size <= 0:
            raise InvalidConfiguration(f"ditherSize must be positive, got {self.dither_size:g}")
        if self.color_count < 2:
            raise InvalidConfiguration(f"colorCount must be at least 2, got {self.color_count}")
        if self.palette is not None:
            for color in self.palette:
                if len(color) != 3 or not all(0 <= c <= 255 for c in color):
                    raise InvalidConfiguration(f"Palette entries must be [r, g, b] bytes, got {list(color)}")
        basic = self.basic_adjustments
        if basic.enabled and not basic.in_safe_range:
            low, high = SAFE_ADJUSTMENT_RANGE
            raise InvalidConfiguration(
                f"Basic adjustments must stay within [{low:g}, {high:g}] "
                f"(brightness={basic.brightness:g}, contrast={basic.contrast:g})"
            )
        if self.levels is not None:
            self.levels.validate()
        if self.posterize is not None:
            self.posterize.validate()

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["algorithm"] = self.algorithm.value
        payload["color_mode"] = self.color_mode.value
        if self.posterize is not None:
            payload["posterize"]["dither_algorithm"] = self.posterize.dither_algorithm.value
        return payload

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "DitherSettings":
        payload = payload or {}
        if not isinstance(payload, Mapping):
            raise InvalidConfiguration("Settings must be a JSON object")

        error_diffusion = _pick(payload, "errorDiffusion", "error_diffusion")
        palette = _pick(payload, "palette")
        if palette is not None and not isinstance(palette, (list, tuple)):
            raise InvalidConfiguration("palette must be a list of [r, g, b] triples")
        levels = _pick(payload, "levels")
        posterize = _pick(payload, "posterize")
        seed = _pick(payload, "seed")

        return cls(
            algorithm=Algorithm.parse(_pick(payload, "algorithm", default=Algorithm.FLOYD_STEINBERG.value)),
            threshold=_number(_pick(payload, "threshold", default=128), "threshold", int),
            error_diffusion=None if error_diffusion is None else _number(error_diffusion, "errorDiffusion"),
            dither_size=_number(_pick(payload, "ditherSize", "dither_size", default=1.0), "ditherSize"),
            color_mode=ColorMode.parse(_pick(payload, "colorMode", "color_mode", default=ColorMode.GRAYSCALE.value)),
            palette=None if palette is None else tuple(_parse_triple(color) for color in palette),
            palette_name=_pick(payload, "paletteName", "palette_name"),
            auto_palette=bool(_pick(payload, "autoPalette", "auto_palette", default=True)),
            color_count=_number(_pick(payload, "colorCount", "color_count", default=16), "colorCount", int),
            color_adjustments=ColorAdjustments.from_dict(_pick(payload, "colorAdjustments", "color_adjustments")),
            chromatic_effects=ChromaticEffects.from_dict(_pick(payload, "chromaticEffects", "chromatic_effects")),
            basic_adjustments=BasicImageAdjustments.from_dict(
                _pick(payload, "basicImageAdjustments", "basic_adjustments")
            ),
            levels=None if levels is None else LevelsSettings.from_dict(levels),
            posterize=None if posterize is None else PosterizeSettings.from_dict(posterize),
            seed=None if seed is None else _number(seed, "seed", int),
        )


def _parse_triple(color: Any) -> Tuple[int, int, int]:
    if not isinstance(color, (list, tuple)) or len(color) != 3:
        raise InvalidConfiguration(f"Palette entries must be [r, g, b] triples, got {color!r}")
    return tuple(_number(c, "palette channel", int) for c in color)  # type: ignore[return-value]
