"""Exception types raised by the dithering engine and its service wrappers."""

from __future__ import annotations


class DitherError(Exception):
    """Base class for every error raised by ``dither_studio``."""


class InvalidConfiguration(DitherError, ValueError):
    """Settings that the engine refuses to run with.

    Raised before any pixel work starts: unknown algorithm or colour mode,
    unknown preset palette, or a numeric parameter outside its allowed range.
    """


class UnsupportedImage(DitherError):
    """Input or output raster that cannot be decoded, encoded or accepted."""


class SourceUnavailable(DitherError, RuntimeError):
    """A remote source image could not be fetched after every retry."""
