"""Application configuration models."""

from __future__ import annotations

from datetime import date
from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="GameShelf", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    rawg_api_key: str | None = Field(default=None, alias="RAWG_API_KEY")
    rawg_api_url: HttpUrl = Field(
        default="https://api.rawg.io/api", alias="RAWG_API_URL"
    )
    catalog_timeout_seconds: float = Field(
        default=20.0, alias="CATALOG_TIMEOUT", gt=0, le=120
    )

    # Release window used by the "upcoming" listing.
    upcoming_start_date: date = Field(
        default=date(2025, 3, 26), alias="UPCOMING_START_DATE"
    )
    upcoming_end_date: date = Field(
        default=date(2025, 6, 26), alias="UPCOMING_END_DATE"
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./gameshelf.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        """Accept log level names in any case."""

        if value is None:
            return "INFO"
        level = str(value).strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return level

    @field_validator("rawg_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_upcoming_window(self) -> "Settings":
        """Ensure the upcoming release window is ordered."""

        if self.upcoming_start_date > self.upcoming_end_date:
            raise ValueError(
                "UPCOMING_START_DATE must not be after UPCOMING_END_DATE"
            )
        return self

    @property
    def upcoming_dates(self) -> str:
        """Return the release window in the catalog's ``start,end`` format."""

        return (
            f"{self.upcoming_start_date.isoformat()},"
            f"{self.upcoming_end_date.isoformat()}"
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
