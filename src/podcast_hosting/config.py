from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

_ROOT_DIR = Path(__file__).resolve().parents[2]
_ENV_PATH = _ROOT_DIR / ".env"
load_dotenv(_ENV_PATH)

DEFAULT_MAX_UPLOAD_BYTES = 2 * 1024 * 1024 * 1024


def get_storage_connection() -> str:
    return os.getenv("STORAGE_CONNECTION", "").strip()


def get_channel_title() -> str:
    return os.getenv("CHANNEL_TITLE", "").strip()


def get_channel_description() -> str:
    return os.getenv("CHANNEL_DESCRIPTION", "").strip()


def get_public_base_url() -> str | None:
    value = os.getenv("PUBLIC_BASE_URL", "").strip()
    return value or None


def get_api_tokens() -> dict[str, str]:
    """Parse ``API_TOKENS`` given as ``token=user,token2=user2``."""
    raw = os.getenv("API_TOKENS", "")
    tokens: dict[str, str] = {}
    for entry in raw.split(","):
        token, sep, user = entry.strip().partition("=")
        if not sep or not token.strip() or not user.strip():
            continue
        tokens[token.strip()] = user.strip()
    return tokens


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_max_upload_bytes() -> int:
    return int(os.getenv("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES)))


def get_database_url() -> str:
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit
    user = os.getenv("POSTGRES_USER", "podcasts")
    password = os.getenv("POSTGRES_PASSWORD", "podcasts")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    db_name = os.getenv("POSTGRES_DB", "podcasts_hosting")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db_name}"
