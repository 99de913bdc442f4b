"""Pytest configuration and fixtures for homeboard tests."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from pydantic import SecretStr

from homeboard.cache.store import ContentCache
from homeboard.config.settings import (
    CacheSettings,
    GoogleSettings,
    NextcloudSettings,
    Settings,
)

TOKYO = ZoneInfo("Asia/Tokyo")


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock fixed at 2026-03-01 09:00 Asia/Tokyo."""
    return FixedClock(datetime(2026, 3, 1, 9, 0, tzinfo=TOKYO))


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_dir, clock):
    return ContentCache(cache_dir, clock=clock)


@pytest.fixture
def settings(cache_dir, monkeypatch):
    """Settings isolated from the host environment and any .env file."""
    monkeypatch.chdir(cache_dir.parent)
    return Settings(
        timezone="Asia/Tokyo",
        cache=CacheSettings(dir=cache_dir),
        nextcloud=NextcloudSettings(
            server_url="https://cloud.example.com",
            username="alice",
            password=SecretStr("secret"),
            calendar_names=["personal", "work"],
            task_list_names=["tasks"],
        ),
        google=GoogleSettings(access_token=SecretStr("token")),
    )
