# anonbox/core/config.py

import os
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_database_url() -> str:
    # Same DB_* variables the deployment scripts already export
    db_user = os.getenv("DB_USER", "anonbox_user")
    db_pass = os.getenv("DB_PASS", "anonbox")
    db_host = os.getenv("DB_HOST", "localhost")
    db_port = os.getenv("DB_PORT", "5432")
    db_name = os.getenv("DB_NAME", "anonbox")
    return f"postgresql+psycopg2://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = ""
    STORE_TIMEOUT_SECONDS: float = 5.0

    # Sender identity hashing
    IDENTITY_SALT: str = "change-me-in-production"
    IDENTITY_SALT_ROTATION: str = "none"   # "none" or "daily"
    IDENTITY_TRUNCATE_ADDRESS: bool = False

    # Honour X-Forwarded-For and friends; turn off when not behind a proxy
    TRUST_FORWARDED_HEADERS: bool = True

    # Hard per-recipient limit (accepted messages per window)
    RATE_LIMIT_MAX: int = 3
    RATE_LIMIT_WINDOW_SECONDS: int = 3600

    # Advisory suspicion tiers
    SUSPICION_WINDOW_SECONDS: int = 3600
    SUSPICION_HOURLY_HIGH: int = 5
    SUSPICION_HOURLY_MEDIUM: int = 3
    SUSPICION_BURST_MAX: int = 3
    SUSPICION_BURST_WINDOW_SECONDS: int = 600

    # Coarse per-address throttle on the public send endpoint (slowapi syntax)
    INGEST_THROTTLE: str = "30/minute"

    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or _default_database_url()

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
