"""Configuration settings for wp_image_renamer.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SECRET_FIELDS = ("app_password", "anthropic_api_key")


def _default_data_dir() -> Path:
    """Return the default data directory."""
    return Path.home() / ".local" / "share" / "wp-image-renamer"


def _default_upload_dir() -> Path:
    """Return the default directory for staged image uploads."""
    return _default_data_dir() / "uploads"


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = _default_data_dir() / "db.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the WPIR_ prefix.
    The Anthropic key also accepts the SDK's own ANTHROPIC_API_KEY.
    """

    model_config = SettingsConfigDict(
        env_prefix="WPIR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Storage
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL for the local store",
    )
    upload_dir: Path = Field(
        default_factory=_default_upload_dir,
        description="Directory holding staged image files",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Password gate
    app_password: str | None = Field(
        default=None,
        description="Shared password protecting the UI and API (unset disables the gate)",
    )
    secure_cookies: bool = Field(
        default=False,
        description="Mark the auth cookie Secure (enable behind HTTPS)",
    )
    auth_cookie_max_age: int = Field(
        default=60 * 60 * 24 * 7,
        ge=60,
        description="Lifetime of the auth cookie in seconds",
    )

    # LLM
    anthropic_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("WPIR_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
        description="Anthropic API key",
    )
    llm_model: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Model used for name/alt generation and PDF fallback",
    )
    llm_max_tokens: int = Field(
        default=200,
        ge=50,
        le=4096,
        description="Maximum tokens for a naming reply",
    )

    # Timeouts (in seconds)
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for WordPress and image fetch requests",
    )

    # Image limits
    max_intake_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Largest image accepted into the upload store",
    )
    max_upload_bytes: int = Field(
        default=int(4.5 * 1024 * 1024),
        ge=1024,
        description="Largest file pushed to the WordPress media library",
    )
    vision_max_dimension: int = Field(
        default=1568,
        ge=64,
        description="Longest edge of images sent to the LLM",
    )
    vision_max_bytes: int = Field(
        default=4 * 1024 * 1024,
        ge=1024,
        description="Largest encoded image sent to the LLM",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON with secrets masked.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    data = settings.model_dump(mode="json")
    for key in SECRET_FIELDS:
        if data.get(key):
            data[key] = "********"
    return json.dumps(data, indent=2)


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from settings."""
    if settings is None:
        settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(settings.log_level)


__all__ = ["Settings", "configure_logging", "get_settings", "print_settings_json"]
