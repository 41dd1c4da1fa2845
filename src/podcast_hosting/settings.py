from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from podcast_hosting import config
from podcast_hosting.errors import ConfigError


class Settings(BaseModel):
    STORAGE_CONNECTION: str
    CHANNEL_TITLE: str
    CHANNEL_DESCRIPTION: str
    DATABASE_URL: str
    PUBLIC_BASE_URL: str | None = None
    API_TOKENS: dict[str, str] = {}
    LOG_LEVEL: str = "INFO"
    MAX_UPLOAD_BYTES: int = config.DEFAULT_MAX_UPLOAD_BYTES

    model_config = ConfigDict(frozen=True)


REQUIRED_KEYS = ("STORAGE_CONNECTION", "CHANNEL_TITLE", "CHANNEL_DESCRIPTION")


def load_settings() -> Settings:
    """Resolve settings from the environment once, at startup.

    Raises:
        ConfigError: If a required key is missing or blank.
    """
    values = {
        "STORAGE_CONNECTION": config.get_storage_connection(),
        "CHANNEL_TITLE": config.get_channel_title(),
        "CHANNEL_DESCRIPTION": config.get_channel_description(),
    }
    missing = [key for key in REQUIRED_KEYS if not values[key]]
    if missing:
        raise ConfigError(f"Missing required settings: {', '.join(missing)}")

    try:
        max_upload_bytes = config.get_max_upload_bytes()
    except ValueError as exc:
        raise ConfigError("MAX_UPLOAD_BYTES must be an integer") from exc

    return Settings(
        **values,
        DATABASE_URL=config.get_database_url(),
        PUBLIC_BASE_URL=config.get_public_base_url(),
        API_TOKENS=config.get_api_tokens(),
        LOG_LEVEL=config.get_log_level(),
        MAX_UPLOAD_BYTES=max_upload_bytes,
    )
