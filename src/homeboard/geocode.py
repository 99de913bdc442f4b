"""City name -> coordinates."""

from datetime import timedelta
from typing import Any

import structlog

from homeboard.adapters.base import ConfigurationError, UpstreamError
from homeboard.adapters.nominatim import NominatimAdapter
from homeboard.cache import keys
from homeboard.cache.store import ContentCache
from homeboard.models import Coordinates
from homeboard.sources import SourceClient

logger = structlog.get_logger()

GEOCODE_TTL = timedelta(hours=24)

# (latitude, longitude), keyed by lower-cased city name and country code
KNOWN_CITIES: dict[tuple[str, str], tuple[float, float]] = {
    ("himeji", "jp"): (34.8151, 134.6853),
    ("姫路", "jp"): (34.8151, 134.6853),
    ("姫路市", "jp"): (34.8151, 134.6853),
    ("tokyo", "jp"): (35.6762, 139.6503),
    ("東京", "jp"): (35.6762, 139.6503),
    ("osaka", "jp"): (34.6937, 135.5023),
    ("大阪", "jp"): (34.6937, 135.5023),
    ("kyoto", "jp"): (35.0116, 135.7681),
    ("京都", "jp"): (35.0116, 135.7681),
    ("kobe", "jp"): (34.6901, 135.1955),
    ("神戸", "jp"): (34.6901, 135.1955),
    ("nagoya", "jp"): (35.1815, 136.9066),
    ("名古屋", "jp"): (35.1815, 136.9066),
    ("fukuoka", "jp"): (33.5904, 130.4017),
    ("福岡", "jp"): (33.5904, 130.4017),
    ("sapporo", "jp"): (43.0618, 141.3545),
    ("札幌", "jp"): (43.0618, 141.3545),
}


def lookup_known_city(city: str, country: str) -> Coordinates | None:
    found = KNOWN_CITIES.get((city.strip().lower(), country.strip().lower()))
    if found is None:
        return None
    return Coordinates(latitude=found[0], longitude=found[1], city_name=city, country=country)


class Geocoder:
    """Resolve a city from the built-in table, then from Nominatim (cached for a day)."""

    def __init__(self, cache: ContentCache, adapter: NominatimAdapter) -> None:
        self.cache = cache
        self.adapter = adapter

    async def resolve(self, city: str, country: str) -> Coordinates:
        """Return coordinates for ``city``.

        Raises:
            ConfigurationError: the city cannot be found.
            UpstreamError: Nominatim failed and nothing is cached.
        """
        known = lookup_known_city(city, country)
        if known is not None:
            return known

        def transform(results: list[dict[str, Any]]) -> Coordinates:
            if not results:
                raise ConfigurationError("geocode", f"unknown city: {city}, {country}")
            first = results[0]
            return Coordinates(
                latitude=float(first["lat"]),
                longitude=float(first["lon"]),
                city_name=city,
                country=country,
            )

        client = SourceClient(
            cache=self.cache,
            key=keys.geocode(city, country),
            ttl=GEOCODE_TTL,
            fetch=lambda: self.adapter.search(city, country),
            transform=transform,
            shape=Coordinates,
            source="geocode",
            timeout=self.adapter.timeout,
        )
        try:
            result = await client.fetch()
        except UpstreamError:
            logger.error("Geocoding failed", city=city, country=country)
            raise
        return result.value
