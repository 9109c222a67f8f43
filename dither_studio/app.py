from __future__ import annotations

import json
import logging
import random
from dataclasses import asdict
from typing import Any, Optional, Tuple

from flask import Flask, jsonify, request

from .config import SETTINGS, configure_logging
from .errors import InvalidConfiguration, SourceUnavailable, UnsupportedImage
from .infrastructure.cache import CACHE, ResponseCache, render_key
from .infrastructure.image_io import decode_image, encode_image, normalize_format
from .infrastructure.network import FETCHER, SourceFetcher
from .infrastructure.responses import send_encoded, send_image
from .processing.engine import DitherEngine
from .processing.palette import generate_from_image
from .processing.settings import ColorAdjustments, DitherSettings

APP_VERSION = "1.0.0"
PALETTE_ADJUSTMENT_ARGS = ("hueShift", "hue_shift", "hueOffset", "hue_offset", "saturation", "brightness", "contrast")

logger = logging.getLogger(__name__)


def parse_settings(raw: Any) -> DitherSettings:
    """Build :class:`DitherSettings` from a JSON string or an already decoded mapping."""
    if raw is None or raw == "":
        return DitherSettings()
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise InvalidConfiguration(f"Settings are not valid JSON: {exc}") from None
    return DitherSettings.from_dict(raw)


def _optional_int(value: Optional[str], name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}") from None


def create_app(
    engine: Optional[DitherEngine] = None,
    fetcher: Optional[SourceFetcher] = None,
    cache: Optional[ResponseCache] = None,
) -> Flask:
    configure_logging()
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = SETTINGS.max_upload_bytes

    engine = engine or DitherEngine()
    fetcher = fetcher or FETCHER
    cache = CACHE if cache is None else cache

    @app.errorhandler(InvalidConfiguration)
    def invalid_configuration(exc: InvalidConfiguration):
        return jsonify(error=str(exc)), 400

    @app.errorhandler(UnsupportedImage)
    def unsupported_image(exc: UnsupportedImage):
        return jsonify(error=str(exc)), 415

    @app.errorhandler(SourceUnavailable)
    def source_unavailable(exc: SourceUnavailable):
        return jsonify(error=str(exc)), 502

    def read_request() -> Tuple[bytes, Any]:
        payload = request.get_json(silent=True) if request.is_json else None
        if payload is not None:
            if not isinstance(payload, dict):
                raise InvalidConfiguration("JSON body must be an object")
            source_url = payload.get("source_url") or request.args.get("source_url")
            if not source_url:
                raise UnsupportedImage("JSON requests must name a source_url")
            return fetcher.fetch_bytes(source_url), payload.get("settings")

        raw_settings = request.form.get("settings") or request.args.get("settings")
        upload = request.files.get("image")
        if upload is not None:
            return upload.read(), raw_settings
        source_url = request.form.get("source_url") or request.args.get("source_url")
        if source_url:
            return fetcher.fetch_bytes(source_url), raw_settings
        return request.get_data(), raw_settings

    @app.route("/dither", methods=["POST"])
    def dither_image():
        image_bytes, raw_settings = read_request()
        settings = parse_settings(raw_settings)
        fmt = normalize_format(request.args.get("format"))
        quality = _optional_int(request.args.get("quality"), "quality")

        key = render_key(image_bytes, settings, fmt, quality) if settings.is_deterministic else None
        if key is not None:
            cached = cache.get(key)
            if cached is not None:
                logger.debug("Serving cached render %s", key[:12])
                return send_encoded(cached, fmt)

        buffer = decode_image(image_bytes)
        result = engine.dither(buffer, settings)
        if key is None:
            return send_image(result, fmt, quality)
        data = encode_image(result, fmt, quality)
        cache.put(key, data)
        return send_encoded(data, fmt)

    @app.route("/algorithms")
    def algorithms():
        return jsonify(algorithms=engine.kernels.catalogue())

    @app.route("/algorithms/<name>")
    def algorithm_info(name: str):
        return jsonify(engine.kernels.info(name))

    @app.route("/palettes")
    def palettes():
        return jsonify(palettes=[engine.palettes.get(name).as_dict() for name in engine.palettes.names()])

    @app.route("/palettes/<name>", methods=["GET", "PATCH"])
    def palette(name: str):
        if request.method == "GET":
            body = engine.palettes.get(name).as_dict()
            if any(arg in request.args for arg in PALETTE_ADJUSTMENT_ARGS):
                adjustments = ColorAdjustments.from_dict(request.args)
                body["colors"] = [list(c) for c in engine.palettes.adjusted(name, adjustments)]
                body["adjusted"] = True
            return jsonify(body)

        payload = request.get_json(silent=True) or {}
        if "index" not in payload or "color" not in payload:
            raise InvalidConfiguration("Expected a JSON body with 'index' and 'color'")
        index = _optional_int(str(payload["index"]), "index")
        engine.palettes.set_color(name, index, payload["color"])
        return jsonify(engine.palettes.get(name).as_dict())

    @app.route("/palettes/<name>/reset", methods=["POST"])
    def reset_palette(name: str):
        return jsonify(engine.palettes.reset(name).as_dict())

    @app.route("/palettes/extract", methods=["POST"])
    def extract_palette():
        upload = request.files.get("image")
        image_bytes = upload.read() if upload is not None else request.get_data()
        k = _optional_int(request.args.get("k") or request.form.get("k"), "k")
        k = 16 if k is None else k
        if k < 1:
            raise InvalidConfiguration(f"k must be positive, got {k}")
        seed = _optional_int(request.args.get("seed") or request.form.get("seed"), "seed")

        rng = random.Random(seed) if seed is not None else None
        colors = generate_from_image(decode_image(image_bytes), k, rng)
        return jsonify(colors=[list(c) for c in colors], k=k)

    @app.route("/health")
    def health():
        return jsonify(ok=True, version=APP_VERSION, algorithms=len(engine.kernels.names()))

    @app.route("/settings")
    def settings_view():
        return jsonify(asdict(SETTINGS))

    return app


# Module-level application for WSGI servers (``dither_studio.app:app``).
app = create_app()
application = app
