"""Tests for application settings."""

from zoneinfo import ZoneInfo

from carebook.config import Settings


def test_scheduling_defaults() -> None:
    settings = Settings(SCHEDULING_TIMEZONE="UTC")

    assert settings.fallback_start_time == "10:00"
    assert settings.fallback_end_time == "17:00"
    assert settings.fallback_slot_duration == 30
    assert settings.enforce_status_transitions is True


def test_scheduling_tz_is_resolved() -> None:
    settings = Settings(SCHEDULING_TIMEZONE="Europe/Berlin")

    assert settings.scheduling_tz == ZoneInfo("Europe/Berlin")


def test_cors_origins_split_and_trimmed() -> None:
    settings = Settings(CORS_ORIGINS="http://a.test, http://b.test,")

    assert settings.cors_origins == ["http://a.test", "http://b.test"]

