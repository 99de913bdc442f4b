"""Weather view backed by Open-Meteo."""

from datetime import timedelta, tzinfo

import structlog

from homeboard.adapters.base import ConfigurationError
from homeboard.adapters.open_meteo import OpenMeteoAdapter
from homeboard.cache import keys
from homeboard.cache.store import ContentCache
from homeboard.clock import Clock
from homeboard.conversions import weather_from_open_meteo
from homeboard.geocode import Geocoder
from homeboard.models import WeatherResponse
from homeboard.sources import SourceClient, SourceResult

logger = structlog.get_logger()


class WeatherService:
    """Current conditions, hourly precipitation and the weekly forecast for one city."""

    def __init__(
        self,
        cache: ContentCache,
        adapter: OpenMeteoAdapter,
        geocoder: Geocoder,
        ttl: timedelta,
        clock: Clock,
        tz: tzinfo,
        tz_name: str,
    ) -> None:
        self.cache = cache
        self.adapter = adapter
        self.geocoder = geocoder
        self.ttl = ttl
        self.clock = clock
        self.tz = tz
        self.tz_name = tz_name

    async def fetch(self, city: str, country: str) -> SourceResult[WeatherResponse]:
        """Return the weather for ``city``.

        Raises:
            ConfigurationError: city or country missing, or the city is unknown.
            UpstreamError: upstream failed and nothing is cached.
        """
        if not city or not country:
            raise ConfigurationError("weather", "location city and country are required")

        location = f"{city}, {country}"

        async def fetch_forecast() -> dict:
            coords = await self.geocoder.resolve(city, country)
            return await self.adapter.fetch_forecast(coords.latitude, coords.longitude, self.tz_name)

        client = SourceClient(
            cache=self.cache,
            key=keys.weather(country, city),
            ttl=self.ttl,
            fetch=fetch_forecast,
            transform=lambda raw: weather_from_open_meteo(raw, location, self.clock(), self.tz),
            shape=WeatherResponse,
            source="weather",
            timeout=self.adapter.timeout * 2,  # geocode + forecast
            meta={"city": city, "country": country},
        )
        return await client.fetch()
