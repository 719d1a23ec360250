import logging
import os
from dataclasses import dataclass, field
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_log_level(name: str, default: str) -> str:
    level = os.getenv(name, default).strip().upper()
    # Unknown names fall back to the default instead of breaking logging setup
    if not isinstance(logging.getLevelName(level), int):
        return default
    return level


@dataclass
class Settings:
    # Values are read when the instance is created, so tests can tweak os.environ first.

    # API settings
    api_host: str = field(default_factory=lambda: os.getenv("API_HOST", "127.0.0.1"))
    api_port: int = field(default_factory=lambda: int(os.getenv("PORT") or os.getenv("API_PORT") or "4000"))
    cors_origins: List[str] = field(default_factory=lambda: _env_list("CORS_ORIGINS", "*"))

    # Database settings
    database_file: str = field(default_factory=lambda: os.getenv("LIBRARY_DB_FILE", "library.db"))
    database_pool_size: int = field(default_factory=lambda: int(os.getenv("DATABASE_POOL_SIZE", "5")))

    # Application settings
    app_name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Library API"))
    app_version: str = field(default_factory=lambda: os.getenv("APP_VERSION", "1.0.0"))
    log_level: str = field(default_factory=lambda: _env_log_level("LOG_LEVEL", "INFO"))


settings = Settings()
