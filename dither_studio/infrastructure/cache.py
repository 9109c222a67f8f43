from __future__ import annotations

import hashlib
import json
import time
from typing import Dict, Optional, Tuple

from ..config import SETTINGS
from ..processing.settings import DitherSettings


CacheEntry = Tuple[float, bytes]


class ResponseCache:
    """Encoded renders keyed by input bytes and settings, bounded by age and count."""

    def __init__(self, ttl: Optional[float] = None, max_entries: Optional[int] = None) -> None:
        self.ttl = SETTINGS.cache_ttl if ttl is None else ttl
        self.max_entries = SETTINGS.cache_size if max_entries is None else max_entries
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if not entry:
            return None
        timestamp, data = entry
        if time.time() - timestamp > self.ttl:
            self._entries.pop(key, None)
            return None
        return data

    def put(self, key: str, data: bytes) -> None:
        if self.max_entries <= 0:
            return
        while len(self._entries) >= self.max_entries and key not in self._entries:
            oldest = min(self._entries.items(), key=lambda item: item[1][0])[0]
            self._entries.pop(oldest, None)
        self._entries[key] = (time.time(), data)

    def clear(self) -> None:
        self._entries.clear()


def render_key(image: bytes, settings: DitherSettings, fmt: str, quality: Optional[int]) -> str:
    digest = hashlib.sha1(image)
    digest.update(json.dumps(settings.to_dict(), sort_keys=True, default=str).encode("utf-8"))
    digest.update(f"{fmt}:{quality}".encode("utf-8"))
    return digest.hexdigest()


CACHE = ResponseCache()
