"""Nominatim (OpenStreetMap) geocoding adapter."""

from typing import Any

import httpx

from homeboard.adapters.base import BaseAdapter
from homeboard.config.settings import WeatherSettings


class NominatimAdapter(BaseAdapter):
    """Adapter for the Nominatim search endpoint.

    Nominatim's usage policy asks for an identifying User-Agent and at most
    one request per second; results are cached upstream of this adapter.
    """

    def __init__(
        self,
        config: WeatherSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or WeatherSettings()
        super().__init__("nominatim", timeout=self.config.timeout, transport=transport)

    def _client_options(self) -> dict[str, Any]:
        return {"headers": {"User-Agent": self.config.user_agent}}

    async def search(self, city: str, country: str) -> list[dict[str, Any]]:
        """Look up a city. Returns raw Nominatim results (``lat``/``lon`` as strings)."""
        params = {"q": city, "countrycodes": country, "format": "json", "limit": 1}
        url = self.config.geocode_url.rstrip("/") + "/search"
        results = await self._get_json(url, params=params)
        self.logger.info("Geocoded city", city=city, country=country, count=len(results))
        return results
