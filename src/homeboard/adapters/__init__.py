"""Upstream source adapters."""

from homeboard.adapters.base import (
    AllSourcesFailedError,
    AuthenticationError,
    BaseAdapter,
    ConfigurationError,
    SourceError,
    UpstreamError,
)
from homeboard.adapters.google import GoogleAdapter
from homeboard.adapters.nextcloud import NextcloudAdapter
from homeboard.adapters.nominatim import NominatimAdapter
from homeboard.adapters.open_meteo import OpenMeteoAdapter

__all__ = [
    "AllSourcesFailedError",
    "AuthenticationError",
    "BaseAdapter",
    "ConfigurationError",
    "GoogleAdapter",
    "NextcloudAdapter",
    "NominatimAdapter",
    "OpenMeteoAdapter",
    "SourceError",
    "UpstreamError",
]
