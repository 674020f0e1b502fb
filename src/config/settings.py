# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: inference provider,
cache backend, streaming and preprocessing knobs, logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docscribe.config.profiles import (
    CACHE_TTL_SECONDS,
    IMAGE_SPAN_SIZE,
    MAX_CONCURRENT_PREPROCESS,
    OUTPUT_STREAM_CHUNK_SIZE,
    QUALITY_VERIFIER_SAMPLE_CHARS,
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # === Inference ===
    inference_provider: Literal["google", "anthropic"] = "google"
    google_api_key: str = ""
    anthropic_api_key: str = ""
    model_flash: str = "gemini-3-flash-preview"
    model_pro: str = "gemini-3-pro-preview"
    inference_max_tokens: int = 32768

    # === Quality verification ===
    verifier_enabled: bool = True
    verifier_sample_chars: int = QUALITY_VERIFIER_SAMPLE_CHARS

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "json"
    cache_root: Path = Path("~/.docscribe/cache")
    cache_redis_url: str = ""
    cache_ttl_seconds: int = CACHE_TTL_SECONDS

    # === Streaming / preprocessing ===
    stream_chunk_size: int = OUTPUT_STREAM_CHUNK_SIZE
    preprocess_concurrency: int = MAX_CONCURRENT_PREPROCESS
    image_span_size: int = IMAGE_SPAN_SIZE

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("stream_chunk_size", "cache_ttl_seconds", "verifier_sample_chars")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("preprocess_concurrency", "image_span_size")
    @classmethod
    def validate_at_least_one(cls, v: int, info) -> int:  # noqa: N805
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_enabled and self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if self.model_flash == self.model_pro:
            errors.append("MODEL_FLASH and MODEL_PRO must name different models")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def model_name(self, tier: str) -> str:
        """Map a model tier (flash/pro) to the configured provider model name."""
        if tier == "pro":
            return self.model_pro
        if tier == "flash":
            return self.model_flash
        raise ValueError(f"Unknown model tier: {tier!r}")


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-request config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
