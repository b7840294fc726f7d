"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Event Organizer API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Document store
    STORE_BACKEND: str = "memory"  # memory, redis
    EVENTS_COLLECTION: str = "events"
    USERS_COLLECTION: str = "users"
    STORE_MAX_RETRY_ATTEMPTS: int = 3
    FEED_READY_TIMEOUT: float = 10.0  # seconds

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "organizer:"

    # Event rules
    OWNER_ONLY_MUTATIONS: bool = True
    ENFORCE_MAX_LENGTHS: bool = True

    # JWT Auth
    SECRET_KEY: str = "super-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
