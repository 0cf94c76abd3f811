"""Configuration settings behaviour tests."""

from __future__ import annotations

from datetime import date

import pytest

from app.config import Settings


def test_defaults_describe_upcoming_window() -> None:
    """The upcoming window should default to the 2025 spring release range."""

    settings = Settings(_env_file=None)

    assert settings.upcoming_start_date == date(2025, 3, 26)
    assert settings.upcoming_end_date == date(2025, 6, 26)
    assert settings.upcoming_dates == "2025-03-26,2025-06-26"
    assert str(settings.rawg_api_url).rstrip("/") == "https://api.rawg.io/api"


def test_upcoming_window_is_configurable() -> None:
    settings = Settings(
        _env_file=None,
        UPCOMING_START_DATE="2026-01-01",
        UPCOMING_END_DATE="2026-03-31",
    )

    assert settings.upcoming_dates == "2026-01-01,2026-03-31"


def test_inverted_upcoming_window_is_rejected() -> None:
    """A start date after the end date should fail validation."""

    with pytest.raises(ValueError, match="must not be after"):
        Settings(
            _env_file=None,
            UPCOMING_START_DATE="2026-05-01",
            UPCOMING_END_DATE="2026-04-01",
        )


def test_blank_api_key_is_treated_as_missing() -> None:
    settings = Settings(_env_file=None, RAWG_API_KEY="   ")

    assert settings.rawg_api_key is None


def test_log_level_is_case_insensitive() -> None:
    settings = Settings(_env_file=None, LOG_LEVEL="debug")

    assert settings.log_level == "DEBUG"


def test_unknown_log_level_raises() -> None:
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        Settings(_env_file=None, LOG_LEVEL="chatty")
