"""Command-line entry point: ``python -m dither_studio`` or ``dither-studio``."""

from __future__ import annotations

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import SETTINGS, configure_logging
from .errors import DitherError, InvalidConfiguration
from .infrastructure.image_io import load_image, save_image
from .processing.engine import DitherEngine
from .processing.kernels import Algorithm
from .processing.palette import generate_from_image
from .processing.settings import ColorMode, DitherSettings


def _load_settings_arg(value: Optional[str]) -> Dict[str, Any]:
    """``--settings`` takes inline JSON or ``@path/to/settings.json``."""
    if not value:
        return {}
    text = value
    if value.startswith("@"):
        try:
            text = Path(value[1:]).read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidConfiguration(f"Cannot read settings file {value[1:]}: {exc}") from None
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise InvalidConfiguration(f"Settings are not valid JSON: {exc}") from None
    if not isinstance(payload, dict):
        raise InvalidConfiguration("Settings must be a JSON object")
    return payload


def build_settings(args: argparse.Namespace) -> DitherSettings:
    payload = _load_settings_arg(args.settings)
    overrides = {
        "algorithm": args.algorithm,
        "colorMode": args.color_mode,
        "threshold": args.threshold,
        "errorDiffusion": args.error_diffusion,
        "ditherSize": args.dither_size,
        "paletteName": args.palette_name,
        "colorCount": args.color_count,
        "seed": args.seed,
    }
    payload.update({key: value for key, value in overrides.items() if value is not None})
    return DitherSettings.from_dict(payload)


def cmd_render(args: argparse.Namespace) -> int:
    settings = build_settings(args)
    buffer = load_image(args.input)
    result = DitherEngine().dither(buffer, settings)
    fmt = save_image(result, args.output, args.format, args.quality)
    print(f"Wrote {args.output} ({result.width}x{result.height}, {fmt})")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .app import create_app

    create_app().run(host=args.host, port=args.port, debug=False)
    return 0


def cmd_algorithms(args: argparse.Namespace) -> int:
    for info in DitherEngine().kernels.catalogue():
        print(f"{info['id']:<22} {info['family']:<16} {info['description']}")
    return 0


def cmd_palettes(args: argparse.Namespace) -> int:
    registry = DitherEngine().palettes
    for name in registry.names():
        palette = registry.get(name)
        print(f"{name:<10} {palette.label} ({len(palette.colors)} colors)")
    return 0


def cmd_extract_palette(args: argparse.Namespace) -> int:
    if args.k < 1:
        raise InvalidConfiguration(f"k must be positive, got {args.k}")
    rng = random.Random(args.seed) if args.seed is not None else None
    colors = generate_from_image(load_image(args.input), args.k, rng)
    if args.json:
        print(json.dumps([list(c) for c in colors]))
    else:
        for r, g, b in colors:
            print(f"#{r:02x}{g:02x}{b:02x}  {r:3d} {g:3d} {b:3d}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dither-studio", description="Classic and ordered image dithering")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Dither an image file")
    render.add_argument("input")
    render.add_argument("output")
    render.add_argument("--settings", help="JSON settings, or @file containing them")
    render.add_argument("--algorithm", choices=[a.value for a in Algorithm])
    render.add_argument("--color-mode", choices=[m.value for m in ColorMode])
    render.add_argument("--threshold", type=int)
    render.add_argument("--error-diffusion", type=float)
    render.add_argument("--dither-size", type=float)
    render.add_argument("--palette-name")
    render.add_argument("--color-count", type=int)
    render.add_argument("--seed", type=int)
    render.add_argument("--format", choices=["png", "jpeg", "jpg", "webp"])
    render.add_argument("--quality", type=int)
    render.set_defaults(func=cmd_render)

    serve = sub.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=SETTINGS.port)
    serve.set_defaults(func=cmd_serve)

    sub.add_parser("algorithms", help="List available algorithms").set_defaults(func=cmd_algorithms)
    sub.add_parser("palettes", help="List preset palettes").set_defaults(func=cmd_palettes)

    extract = sub.add_parser("extract-palette", help="Build a k-means palette from an image")
    extract.add_argument("input")
    extract.add_argument("-k", type=int, default=16)
    extract.add_argument("--seed", type=int)
    extract.add_argument("--json", action="store_true")
    extract.set_defaults(func=cmd_extract_palette)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        return args.func(args)
    except DitherError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
