"""Configuration settings for imagepack.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the IMAGEPACK_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGEPACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Image
    image_name: str = Field(
        default="mineru-tianshu",
        min_length=1,
        description="Image repository name",
    )
    image_tag: str = Field(
        default="latest",
        min_length=1,
        description="Image tag",
    )
    platform: str = Field(
        default="linux/amd64",
        description="Target platform the image is built for",
    )
    title: str = Field(
        default="MinerU Tianshu",
        description="Human readable title used in banners, manifest and scripts",
    )

    # Paths
    dockerfile: Path = Field(
        default=Path("Dockerfile.tianshu"),
        description="Build file passed to the engine",
    )
    build_context: Path = Field(
        default=Path("."),
        description="Build context directory",
    )
    compose_file: Path = Field(
        default=Path("docker-compose.yml"),
        description="Compose descriptor copied next to the archive",
    )
    output_dir: Path = Field(
        default=Path("./docker-images"),
        description="Directory receiving the archive and deployment files",
    )
    build_log: Path | None = Field(
        default=None,
        description="Append build output to this file instead of the terminal",
    )

    # External tools
    engine: str = Field(
        default="docker",
        description="Container engine executable",
    )
    compose_command: str = Field(
        default="docker-compose",
        description="Orchestration command used to start services after loading",
    )

    # Deployment
    data_dir: str = Field(
        default="~/mineru/output",
        description="Data directory created on the server before starting services",
    )
    service_url: str = Field(
        default="http://localhost:8100/docs",
        description="URL printed once services are started",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("platform")
    @classmethod
    def _check_platform(cls, value: str) -> str:
        parts = value.split("/")
        if len(parts) < 2 or not all(parts[:2]):
            raise ValueError(f"platform must look like os/arch, got {value!r}")
        return value


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


__all__ = ["Settings", "get_settings", "print_settings_json"]
