"""Application package exports."""

from .app import APP_VERSION, app, create_app
from .processing import DitherEngine, DitherSettings, PixelBuffer, dither
from . import infrastructure, processing

__version__ = APP_VERSION

__all__ = [
    "APP_VERSION",
    "__version__",
    "app",
    "create_app",
    "DitherEngine",
    "DitherSettings",
    "PixelBuffer",
    "dither",
    "infrastructure",
    "processing",
]
