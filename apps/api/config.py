"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "fantabuild"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_SSL: bool = False
    DB_POOL_SIZE: int = 20

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3001

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Credits
    PRO_PERIOD_DAYS: int = 30
    CREDIT_HISTORY_LIMIT: int = 50

    # Security
    JWT_SECRET: str = "change_me_in_production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()


def get_database_url(config: Optional[Settings] = None) -> str:
    """Return the async SQLAlchemy URL, preferring DATABASE_URL over DB_* parts."""
    cfg = config or settings
    if cfg.DATABASE_URL:
        url = cfg.DATABASE_URL.strip()
        # asyncpg takes ssl=, not libpq's sslmode=
        url = url.replace("sslmode=", "ssl=")
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix):]
        return url

    password = f":{quote_plus(cfg.DB_PASSWORD)}" if cfg.DB_PASSWORD else ""
    url = f"postgresql+asyncpg://{quote_plus(cfg.DB_USER)}{password}@{cfg.DB_HOST}:{cfg.DB_PORT}/{cfg.DB_NAME}"
    if cfg.DB_SSL:
        url += "?ssl=require"
    return url
