import logging
import os
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ServiceSettings:
    port: int
    log_level: str
    max_upload_bytes: int
    max_pixels: int
    default_format: str
    jpeg_quality: int
    cache_ttl: float
    cache_size: int
    timeout: float
    retries: int
    allowed_hosts: Tuple[str, ...]

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        return cls(
            port=int(os.getenv("PORT", "5600")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024))),
            max_pixels=int(os.getenv("MAX_PIXELS", "16000000")),
            default_format=os.getenv("EXPORT_FORMAT", "png").lower(),
            jpeg_quality=int(os.getenv("JPEG_QUALITY", "92")),
            cache_ttl=float(os.getenv("CACHE_TTL", "30")),
            cache_size=int(os.getenv("CACHE_SIZE", "16")),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
            allowed_hosts=tuple(
                host.strip().lower() for host in os.getenv("SOURCE_ALLOWED_HOSTS", "").split(",") if host.strip()
            ),
        )


SETTINGS = ServiceSettings.from_env()


INPUT_FORMATS: Tuple[str, ...] = ("PNG", "JPEG", "WEBP", "GIF", "BMP")
EXPORT_FORMATS: Tuple[str, ...] = ("png", "jpeg", "webp")


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger("dither_studio")
