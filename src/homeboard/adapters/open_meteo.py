"""Open-Meteo forecast adapter."""

from typing import Any

import httpx

from homeboard.adapters.base import BaseAdapter
from homeboard.config.settings import WeatherSettings

CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m"
DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min,precipitation_probability_max"
HOURLY_FIELDS = "precipitation_probability"


class OpenMeteoAdapter(BaseAdapter):
    """Adapter for the Open-Meteo forecast API (no API key required)."""

    def __init__(
        self,
        config: WeatherSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or WeatherSettings()
        super().__init__("open_meteo", timeout=self.config.timeout, transport=transport)

    def _client_options(self) -> dict[str, Any]:
        return {"headers": {"User-Agent": self.config.user_agent}}

    async def fetch_forecast(
        self, latitude: float, longitude: float, timezone: str, days: int = 7
    ) -> dict[str, Any]:
        """Fetch current conditions, daily and hourly forecast for a point."""
        params = {
            "latitude": f"{latitude:.4f}",
            "longitude": f"{longitude:.4f}",
            "current": CURRENT_FIELDS,
            "daily": DAILY_FIELDS,
            "hourly": HOURLY_FIELDS,
            "timezone": timezone,
            "forecast_days": days,
        }
        data = await self._get_json(self.config.base_url, params=params)
        self.logger.info("Fetched forecast", latitude=latitude, longitude=longitude)
        return data
