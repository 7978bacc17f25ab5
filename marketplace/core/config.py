# marketplace/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string; sqlite:// for local dev)
      - SUPABASE_JWT_SECRET (JWT signing secret of the auth provider)

    Optional:
      - CORS_ORIGINS (JSON list of allowed origins)
      - LOG_LEVEL (default INFO)
      - DB_ECHO (log SQL statements)
    """

    PROJECT_NAME: str = "Marketplace Delivery API"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str
    DB_ECHO: bool = False

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
