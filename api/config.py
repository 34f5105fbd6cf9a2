"""
API settings, read from the environment and an optional .env file.

Search tuning (limits, over-fetch, verbose logging) lives in
legsearch.config; this module covers only what the HTTP service needs.
"""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Persistence --------------------------------------------------------
    # PostgreSQL with PostGIS enables the spatial RPCs; SQLite runs the fallback
    database_url: str = "sqlite:///./sailsmart.db"
    db_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # --- Serving ------------------------------------------------------------
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000"
    cors_credentials: bool = True
    cors_methods: str = "GET,POST,OPTIONS"

    # --- Runtime ------------------------------------------------------------
    environment: str = "development"
    log_level: str = "info"
    debug: bool = False

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def check_production_safety(self):
        """Refuse to start a production deployment with development settings."""
        if not self.is_production:
            return
        if any("localhost" in origin or "127.0.0.1" in origin for origin in self.cors_origins_list):
            raise ValueError("CORS_ORIGINS must not point at localhost in production")
        if self.debug:
            raise ValueError("DEBUG must be false in production")
        if self.is_sqlite:
            raise ValueError("DATABASE_URL must point at PostgreSQL in production")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
settings.check_production_safety()
