"""Infrastructure helpers for image I/O, networking and caching."""

from .cache import CACHE, ResponseCache, render_key
from .image_io import decode_image, encode_image, load_image, save_image
from .network import FETCHER, SourceFetcher
from .responses import send_encoded, send_image

__all__ = [
    "CACHE",
    "ResponseCache",
    "render_key",
    "decode_image",
    "encode_image",
    "load_image",
    "save_image",
    "FETCHER",
    "SourceFetcher",
    "send_encoded",
    "send_image",
]
