"""
Configuration settings using Pydantic Settings.
"""

from dataclasses import dataclass
from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    DATABASE_PATH: str = "database/visitlog.db"
    VISITS_TABLE: str = "visits"
    FRIENDS_TABLE: str = "friends"
    FRIEND_REQUESTS_TABLE: str = "friend_requests"
    PROFILES_TABLE: str = "profiles"
    STORE_TIMEOUT_SECONDS: float = 5.0

    AUTH_JWT_SECRET: str = ""
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str | None = None
    AUTH_JWT_ISSUER: str | None = None

    IDP_DIRECTORY_URL: str = ""
    IDP_API_KEY: str = ""
    IDP_TIMEOUT_SECONDS: float = 5.0
    IDP_MAX_RETRIES: int = 2
    IDP_RETRY_BASE_SECONDS: float = 0.25
    IDP_RETRY_MAX_SECONDS: float = 2.0
    IDP_LOOKUPS_PER_MINUTE: int = 30

    OBJECT_STORE_BASE_URL: str = "https://objects.localhost"
    OBJECT_STORE_BUCKET: str = "visit-images"
    OBJECT_STORE_SIGNING_KEY: str = ""
    UPLOAD_GRANT_SECONDS: int = 300
    READ_GRANT_SECONDS: int = 600

    FRIEND_SUMMARY_CONCURRENCY: int = 8
    LEGACY_DIRECT_ADD_ENABLED: bool = False

    CORS_ORIGINS: list[str] = [
        "http://localhost:8081",
        "http://localhost:19006",
    ]

    DEBUG: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }

    @model_validator(mode="after")
    def resolve_relative_paths(self):
        db_path = Path(self.DATABASE_PATH)
        if not db_path.is_absolute():
            self.DATABASE_PATH = str((BASE_DIR / db_path).resolve())
        return self


@dataclass(frozen=True)
class StoreConfig:
    """Where the stores live. Passed explicitly to every store constructor."""
    db_path: str
    visits_table: str = "visits"
    friends_table: str = "friends"
    friend_requests_table: str = "friend_requests"
    profiles_table: str = "profiles"
    timeout_seconds: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreConfig":
        return cls(
            db_path=settings.DATABASE_PATH,
            visits_table=settings.VISITS_TABLE,
            friends_table=settings.FRIENDS_TABLE,
            friend_requests_table=settings.FRIEND_REQUESTS_TABLE,
            profiles_table=settings.PROFILES_TABLE,
            timeout_seconds=settings.STORE_TIMEOUT_SECONDS,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    :return: Cached Settings instance
    :rtype: Settings
    """
    return Settings()
