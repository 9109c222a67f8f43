from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence
from urllib.parse import urlsplit

import requests

from ..config import SETTINGS
from ..errors import InvalidConfiguration, SourceUnavailable
from ..processing.buffer import PixelBuffer
from .image_io import decode_image

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]

USER_AGENT = "dither-studio/1.0"


def validate_source_url(url: str, allowed_hosts: Sequence[str] = ()) -> str:
    """Accept absolute http(s) URLs; an empty ``allowed_hosts`` accepts any host."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidConfiguration(f"Source URL must be an absolute http(s) URL, got {url!r}")
    if allowed_hosts and (parts.hostname or "").lower() not in allowed_hosts:
        raise InvalidConfiguration(f"Source host {parts.hostname!r} is not in SOURCE_ALLOWED_HOSTS")
    return url


class SourceFetcher:
    """Downloads source images over HTTP, retrying with a linear back-off."""

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        *,
        retries: Optional[int] = None,
        timeout: Optional[float] = None,
        backoff: float = 0.4,
        allowed_hosts: Optional[Sequence[str]] = None,
    ) -> None:
        self._session_factory = session_factory or requests.Session
        self._session = self._create_session()
        self.retries = SETTINGS.retries if retries is None else retries
        self.timeout = SETTINGS.timeout if timeout is None else timeout
        self.backoff = backoff
        hosts = SETTINGS.allowed_hosts if allowed_hosts is None else allowed_hosts
        self.allowed_hosts = tuple(host.lower() for host in hosts)

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": USER_AGENT})
        return session

    def fetch_bytes(self, url: str) -> bytes:
        validate_source_url(url, self.allowed_hosts)
        last_exception: Optional[Exception] = None
        for attempt in range(1, self.retries + 2):
            try:
                response = self._session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.content
            except requests.RequestException as exc:
                logger.warning("Fetching %s failed (attempt %d): %s", url, attempt, exc)
                last_exception = exc
                if attempt <= self.retries:
                    time.sleep(self.backoff * attempt)
        raise SourceUnavailable(f"Could not fetch {url}: {last_exception}")

    def fetch_image(self, url: str, max_pixels: Optional[int] = None) -> PixelBuffer:
        return decode_image(self.fetch_bytes(url), max_pixels)


FETCHER = SourceFetcher()
