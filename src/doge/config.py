"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    mongodb_uri: str = "mongodb://localhost:27017/doge"
    mongodb_database: str = "doge"
    photo_database: str = "photos"
    photo_folder: str = "photos"
    max_upload_bytes: int = 10 * 1024 * 1024
    dispatch_core_pool_size: int = 4
    dispatch_max_pool_size: int = 10
    graphite_host: str = "localhost"
    graphite_port: int = 2003
    graphite_prefix: str = "doge.spring.io"
    graphite_period_seconds: float = 2.0
    graphite_probe_timeout_seconds: float = 1.0
    polling_timeout_seconds: float = 25.0
    polling_session_ttl_seconds: float = 60.0
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def validate_pool_sizes(settings: Settings) -> tuple[int, int]:
    """Return (core, max) dispatch pool sizes, rejecting impossible bounds."""
    core = settings.dispatch_core_pool_size
    maximum = settings.dispatch_max_pool_size
    if core < 1:
        raise ValueError(f"dispatch_core_pool_size must be >= 1, got {core}")
    if maximum < core:
        raise ValueError(
            f"dispatch_max_pool_size ({maximum}) must be >= core size ({core})"
        )
    return core, maximum
