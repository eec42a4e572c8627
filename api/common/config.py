"""
Service configuration loaded from environment variables.
"""

import os
from dataclasses import dataclass

from pymongo import MongoClient
import redis

from api.common.errors import ConfigurationError

REQUIRED_VARIABLES = ("MONGO_URI",)


def parse_flag(value: str | None, default: bool = False):
    """
    Parse an environment flag.

    Args:
        value (str | None): Raw environment value.
        default (bool): Fallback when the variable is unset or empty.

    Returns:
        bool: Parsed flag.
    """
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    mongo_uri: str
    mongo_db: str = "indie_film"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    cache_ttl_seconds: int = 600
    name_cache_invalidate_on_write: bool = False
    default_page_size: int = 12
    max_page_size: int = 100
    log_level: str = "INFO"
    log_file: str | None = None
    log_dir: str = "logs"

    @classmethod
    def from_env(cls, environ=None):
        """
        Build settings from the process environment.

        Args:
            environ (Mapping | None): Source mapping, ``os.environ`` by default.

        Returns:
            Settings: Parsed settings.

        Raises:
            ConfigurationError: When a required variable is missing.
        """
        environ = os.environ if environ is None else environ
        missing = [name for name in REQUIRED_VARIABLES if not (environ.get(name) or "").strip()]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        return cls(
            mongo_uri=environ["MONGO_URI"].strip(),
            mongo_db=environ.get("MONGO_DB", "indie_film"),
            redis_host=environ.get("REDIS_HOST", "localhost"),
            redis_port=int(environ.get("REDIS_PORT", 6379)),
            redis_db=int(environ.get("REDIS_DB", 0)),
            cache_ttl_seconds=int(environ.get("CACHE_TTL_SECONDS", 600)),
            name_cache_invalidate_on_write=parse_flag(environ.get("NAME_CACHE_INVALIDATE_ON_WRITE")),
            default_page_size=int(environ.get("DEFAULT_PAGE_SIZE", 12)),
            max_page_size=int(environ.get("MAX_PAGE_SIZE", 100)),
            log_level=environ.get("LOG_LEVEL", "INFO"),
            log_file=(environ.get("LOG_FILE") or "").strip() or None,
            log_dir=environ.get("LOG_DIR", "logs"),
        )


def get_database(settings: Settings):
    """Return the MongoDB database named in the settings."""
    client = MongoClient(settings.mongo_uri)
    return client[settings.mongo_db]


def get_redis(settings: Settings):
    """Return a Redis client for the configured host."""
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
    )
