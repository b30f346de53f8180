"""
Application configuration using Pydantic Settings.

All settings are loaded from environment variables or .env file.
No hardcoded secrets or paths: everything is configurable.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    An empty URL (or ``DATABASE_ENABLED=false``) runs the app against the
    null store: pages and searches return empty results, imports are refused.
    """

    url: Optional[str] = "sqlite:///./data/cafe_directory.db"
    enabled: bool = True

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    @field_validator("url", mode="before")
    @classmethod
    def empty_url_is_none(cls, v: str | None) -> str | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    @property
    def configured(self) -> bool:
        return self.enabled and bool(self.url)


class APISettings(BaseSettings):
    """FastAPI server settings."""

    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = True
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(env_prefix="API_")


class ImportSettings(BaseSettings):
    """Spreadsheet import behaviour."""

    max_stored_errors: int = 10
    max_returned_errors: int = 20
    coordinate_fallback: bool = True
    max_header_skip: int = 10

    model_config = SettingsConfigDict(env_prefix="IMPORT_")


class GeoSettings(BaseSettings):
    """Geocoding and fallback coordinates (central London by default)."""

    fallback_latitude: float = 51.5074
    fallback_longitude: float = -0.1278
    postcodes_io_enabled: bool = False
    postcodes_io_url: str = "https://api.postcodes.io"
    timeout: int = 10

    model_config = SettingsConfigDict(env_prefix="GEO_")


class SearchSettings(BaseSettings):
    """Search endpoint defaults. Radius is always in miles."""

    default_radius: float = 10.0
    default_limit: int = 20
    max_limit: int = 100
    timezone: str = "Europe/London"

    model_config = SettingsConfigDict(env_prefix="SEARCH_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    file: str = "logs/cafe_directory.log"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main application settings: aggregates all sub-settings."""

    database: DatabaseSettings = DatabaseSettings()
    api: APISettings = APISettings()
    imports: ImportSettings = ImportSettings()
    geo: GeoSettings = GeoSettings()
    search: SearchSettings = SearchSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def setup(self) -> None:
        """Initialize application directories (log dir, SQLite data dir)."""
        Path(self.logging.file).parent.mkdir(parents=True, exist_ok=True)
        url = self.database.url or ""
        if url.startswith("sqlite:///") and ":memory:" not in url:
            Path(url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance: import this in other modules
settings = Settings()
