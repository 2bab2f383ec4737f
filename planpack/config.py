"""Configuration settings for planpack.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_IMAGE = "ghcr.io/railwayapp/nixpacks:ubuntu-1716249803"


def _default_log_dir() -> Path:
    """Return the default directory for build logs."""
    return Path.home() / ".cache" / "planpack" / "logs"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the PLANPACK_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLANPACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Image executor
    base_image: str = Field(
        default=DEFAULT_BASE_IMAGE,
        min_length=1,
        description="Base image for generated Dockerfiles",
    )
    docker_binary: str = Field(
        default="docker",
        min_length=1,
        description="Executable used to run image builds",
    )

    # Paths
    plan_dir_name: str = Field(
        default=".planpack",
        min_length=1,
        description="Directory inside the build context for generated assets",
    )
    log_dir: Path = Field(
        default_factory=_default_log_dir,
        description="Root directory for build logs",
    )
    tmp_dir: Path | None = Field(
        default=None,
        description="Temporary directory for build contexts (uses system default if not set)",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    build_timeout: int | None = Field(
        default=None,
        ge=60,
        description="Timeout for image builds in seconds (unbounded if not set)",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["DEFAULT_BASE_IMAGE", "Settings", "get_settings", "print_settings_json"]
