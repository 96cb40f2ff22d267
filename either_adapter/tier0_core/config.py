"""
either_adapter.tier0_core.config
──────────────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic; invalid values fail when the
config is first loaded, not during a call.

Stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EitherConfig(BaseSettings):
    """
    Typed adapter configuration.
    All env vars are prefixed with EITHER_.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ───────────────────────────────────────────────────────────
    environment: str = Field(default="development", alias="EITHER_ENVIRONMENT")

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="EITHER_LOG_LEVEL")
    log_format: str = Field(default="json", alias="EITHER_LOG_FORMAT")

    # ── Error reporting ───────────────────────────────────────────────────────
    error_backend: str = Field(default="none", alias="EITHER_ERROR_BACKEND")

    # ── Transport ─────────────────────────────────────────────────────────────
    http_timeout: float = Field(default=30.0, gt=0, alias="EITHER_HTTP_TIMEOUT")
    transport_workers: int = Field(default=4, ge=1, alias="EITHER_TRANSPORT_WORKERS")

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if v.lower() not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got {v!r}")
        return v.lower()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"log_format must be 'json' or 'console', got {v!r}")
        return v.lower()


@lru_cache(maxsize=1)
def get_config() -> EitherConfig:
    """
    Return the singleton adapter config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return EitherConfig()


def _reset_config() -> None:
    """For tests: clear the config cache."""
    get_config.cache_clear()


__all__ = ["EitherConfig", "get_config"]
