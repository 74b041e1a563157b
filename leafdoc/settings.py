"""
Runtime configuration for the Leafdoc AI Service, read once from the
environment (and a local .env file) at process start.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    gemini_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    log_json: bool = True
    log_level: str = "INFO"

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            gemini_timeout_seconds=float(os.getenv("GEMINI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5000")),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
            max_image_bytes=max(1, int(os.getenv("MAX_IMAGE_BYTES", DEFAULT_MAX_IMAGE_BYTES))),
            log_json=_env_bool("LOG_JSON", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
