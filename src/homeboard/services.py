"""Explicit dependency container shared by the HTTP layer, CLI and refresher."""

from dataclasses import dataclass, field
from datetime import tzinfo

import httpx
import structlog

from homeboard.adapters.base import BaseAdapter, SourceError
from homeboard.adapters.google import GoogleAdapter
from homeboard.adapters.nextcloud import NextcloudAdapter
from homeboard.adapters.nominatim import NominatimAdapter
from homeboard.adapters.open_meteo import OpenMeteoAdapter
from homeboard.aggregators.calendar import CalendarAggregator
from homeboard.aggregators.tasks import TasksAggregator
from homeboard.cache import keys
from homeboard.cache.store import CacheError, ContentCache
from homeboard.clock import Clock, make_clock, resolve_timezone
from homeboard.config.settings import Settings
from homeboard.geocode import Geocoder
from homeboard.models import (
    CalendarResponse,
    LastUpdated,
    StatusResponse,
    TasksResponse,
    WeatherResponse,
)
from homeboard.status import ErrorStatusStore
from homeboard.weather import WeatherService

logger = structlog.get_logger()


@dataclass
class Services:
    """Everything a request handler needs, built once per process."""

    settings: Settings
    cache: ContentCache
    clock: Clock
    tz: tzinfo
    status: ErrorStatusStore
    weather: WeatherService
    calendar: CalendarAggregator
    tasks: TasksAggregator
    adapters: list[BaseAdapter] = field(default_factory=list)

    async def aclose(self) -> None:
        for adapter in self.adapters:
            await adapter.disconnect()

    async def load_weather(self) -> WeatherResponse:
        """Weather body; errors are recorded in the status store, never raised."""
        location = self.settings.location
        try:
            result = await self.weather.fetch(location.city_name, location.country)
        except (SourceError, CacheError) as e:
            logger.error("Weather unavailable", error=str(e))
            self.status.set("weather", str(e))
            return WeatherResponse(location=self.settings.location_label())

        self.status.record("weather", result.error)
        return result.value

    async def load_calendar(self) -> CalendarResponse:
        """Calendar body for the next seven days; errors are recorded, never raised."""
        try:
            result = await self.calendar.fetch()
        except (SourceError, CacheError) as e:
            logger.error("Calendar unavailable", error=str(e))
            self.status.set("calendar", str(e))
            return self.calendar.render([])

        self.status.record("calendar", result.error)
        return self.calendar.render(result.value)

    async def load_tasks(self) -> TasksResponse:
        """Tasks body; errors are recorded, never raised."""
        try:
            result = await self.tasks.fetch()
        except (SourceError, CacheError) as e:
            logger.error("Tasks unavailable", error=str(e))
            self.status.set("tasks", str(e))
            return TasksResponse()

        self.status.record("tasks", result.error)
        return self.tasks.render(result.value)

    def status_view(self) -> StatusResponse:
        errors = self.status.list()
        location = self.settings.location
        return StatusResponse(
            ok=not errors,
            now=self.clock().isoformat(),
            errors=errors,
            last_updated=LastUpdated(
                weather=self.cache.fetched_at(keys.weather(location.country, location.city_name)),
                calendar=self.cache.fetched_at(self.calendar.aggregate_key),
                tasks=self.cache.fetched_at(self.tasks.aggregate_key),
            ),
        )


def _provider_adapter(
    provider: str, settings: Settings, transport: httpx.AsyncBaseTransport | None
) -> BaseAdapter:
    if provider == "google":
        return GoogleAdapter(settings.google, transport=transport)
    return NextcloudAdapter(settings.nextcloud, transport=transport)


def build_services(
    settings: Settings,
    clock: Clock | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    """Wire adapters, cache and aggregators from ``settings``.

    Args:
        settings: Application settings
        clock: Override for the process clock (tests)
        transport: httpx transport shared by every adapter (tests)
    """
    tz = resolve_timezone(settings.timezone)
    clock = clock or make_clock(tz)
    cache = ContentCache(settings.cache.dir, clock=clock)

    open_meteo = OpenMeteoAdapter(settings.weather, transport=transport)
    nominatim = NominatimAdapter(settings.weather, transport=transport)
    calendar_adapter = _provider_adapter(settings.calendar_provider, settings, transport)
    if settings.tasks_provider == settings.calendar_provider:
        tasks_adapter = calendar_adapter
    else:
        tasks_adapter = _provider_adapter(settings.tasks_provider, settings, transport)

    if settings.calendar_provider == "google":
        calendar_names = settings.google.calendar_ids
    else:
        calendar_names = settings.nextcloud.calendar_names
    if settings.tasks_provider == "google":
        task_list_names = settings.google.task_list_ids
    else:
        task_list_names = settings.nextcloud.task_list_names

    weather = WeatherService(
        cache=cache,
        adapter=open_meteo,
        geocoder=Geocoder(cache, nominatim),
        ttl=settings.refresh_interval("weather"),
        clock=clock,
        tz=tz,
        tz_name=settings.timezone,
    )
    calendar = CalendarAggregator(
        cache=cache,
        adapter=calendar_adapter,
        provider=settings.calendar_provider,
        collections=calendar_names,
        ttl=settings.refresh_interval("calendar"),
        clock=clock,
        tz=tz,
    )
    tasks = TasksAggregator(
        cache=cache,
        adapter=tasks_adapter,
        provider=settings.tasks_provider,
        collections=task_list_names,
        ttl=settings.refresh_interval("tasks"),
        clock=clock,
        tz=tz,
    )

    adapters = [open_meteo, nominatim, calendar_adapter]
    if tasks_adapter is not calendar_adapter:
        adapters.append(tasks_adapter)

    logger.info(
        "Services ready",
        cache_dir=str(cache.directory),
        calendar_provider=settings.calendar_provider,
        tasks_provider=settings.tasks_provider,
        timezone=settings.timezone,
    )
    return Services(
        settings=settings,
        cache=cache,
        clock=clock,
        tz=tz,
        status=ErrorStatusStore(clock=clock),
        weather=weather,
        calendar=calendar,
        tasks=tasks,
        adapters=adapters,
    )
