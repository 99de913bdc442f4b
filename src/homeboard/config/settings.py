"""Configuration management for homeboard using Pydantic Settings."""

from datetime import timedelta
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RefreshSettings(BaseSettings):
    """Per-source refresh intervals (cache TTLs)."""

    model_config = SettingsConfigDict(env_prefix="REFRESH_", env_file=".env", extra="ignore")

    weather_sec: int = Field(default=300, gt=0)
    calendar_sec: int = Field(default=300, gt=0)
    tasks_sec: int = Field(default=300, gt=0)
    background: bool = False


class LocationSettings(BaseSettings):
    """Location used for the weather view."""

    model_config = SettingsConfigDict(env_prefix="LOCATION_", env_file=".env", extra="ignore")

    city_name: str = "Himeji"
    country: str = "JP"


class CacheSettings(BaseSettings):
    """On-disk content cache."""

    model_config = SettingsConfigDict(env_prefix="CACHE_", env_file=".env", extra="ignore")

    dir: Path = Path("~/.cache/homeboard")


class WeatherSettings(BaseSettings):
    """Open-Meteo forecast and Nominatim geocoding endpoints."""

    model_config = SettingsConfigDict(env_prefix="WEATHER_", env_file=".env", extra="ignore")

    base_url: str = "https://api.open-meteo.com/v1/forecast"
    geocode_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "homeboard/0.1 (personal-use)"
    timeout: float = 10.0


class NextcloudSettings(BaseSettings):
    """Nextcloud CalDAV credentials and collections."""

    model_config = SettingsConfigDict(env_prefix="NEXTCLOUD_", env_file=".env", extra="ignore")

    server_url: str = ""
    username: str = ""
    password: SecretStr = SecretStr("")
    calendar_names: list[str] = Field(default_factory=lambda: ["personal"])
    task_list_names: list[str] = Field(default_factory=lambda: ["tasks"])
    timeout: float = 30.0


class GoogleSettings(BaseSettings):
    """Google Calendar / Tasks REST settings.

    The access token is obtained out of band; refreshing it is not handled here.
    """

    model_config = SettingsConfigDict(env_prefix="GOOGLE_", env_file=".env", extra="ignore")

    access_token: SecretStr = SecretStr("")
    calendar_ids: list[str] = Field(default_factory=lambda: ["primary"])
    task_list_ids: list[str] = Field(default_factory=lambda: ["@default"])
    timeout: float = 10.0


class Settings(BaseSettings):
    """Main homeboard settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # General
    environment: Literal["development", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"
    timezone: str = "Asia/Tokyo"

    # Which upstream backs each multi-collection view
    calendar_provider: Literal["nextcloud", "google"] = "nextcloud"
    tasks_provider: Literal["nextcloud", "google"] = "nextcloud"

    # Sub-settings
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)
    nextcloud: NextcloudSettings = Field(default_factory=NextcloudSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)

    def refresh_interval(self, source: str) -> timedelta:
        """Return the refresh interval for "weather", "calendar" or "tasks"."""
        seconds = {
            "weather": self.refresh.weather_sec,
            "calendar": self.refresh.calendar_sec,
            "tasks": self.refresh.tasks_sec,
        }.get(source, 300)
        return timedelta(seconds=seconds)

    def location_label(self) -> str:
        if not self.location.city_name:
            return "Unknown"
        return f"{self.location.city_name}, {self.location.country}"


# Global settings instance
settings = Settings()
