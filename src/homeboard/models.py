"""Response models shared by the cache, aggregators and HTTP layer.

Fields are snake_case in Python and camelCase on the wire.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Status


class ErrorInfo(WireModel):
    """Most recent failure of one logical source."""

    source: str
    message: str
    at: str


class LastUpdated(WireModel):
    weather: str = ""
    calendar: str = ""
    tasks: str = ""


class StatusResponse(WireModel):
    ok: bool
    now: str
    errors: list[ErrorInfo] = Field(default_factory=list)
    last_updated: LastUpdated = Field(default_factory=LastUpdated)


# Calendar


class CalendarEvent(WireModel):
    """A calendar event.

    ``start``/``end`` are ISO-8601 datetimes with offset for timed events and
    plain ``YYYY-MM-DD`` dates for all-day events.
    """

    id: str
    title: str
    start: str
    end: str
    color: str = ""
    calendar: str = ""
    description: str = ""
    all_day: bool = False


class CalendarDay(WireModel):
    date: str
    all_day: list[CalendarEvent] = Field(default_factory=list)
    timed: list[CalendarEvent] = Field(default_factory=list)


class CalendarResponse(WireModel):
    days: list[CalendarDay] = Field(default_factory=list)


# Tasks


class TaskItem(WireModel):
    """A task. ``priority`` is 3 (high), 2 (medium) or 1 (low)."""

    id: str
    title: str
    notes: str = ""
    status: str = "needsAction"
    due_date: date | None = None
    priority: int = Field(default=2, ge=1, le=3)
    created_at: datetime


class TasksResponse(WireModel):
    items: list[TaskItem] = Field(default_factory=list)


# Weather


class CurrentWeather(WireModel):
    temperature: float = 0.0
    condition: str = ""
    icon: str = ""
    humidity: int = 0
    wind_speed: float = 0.0


class TodayWeather(WireModel):
    max_temp: float = 0.0
    min_temp: float = 0.0
    summary: str = ""


class PrecipSlot(WireModel):
    time: str
    precip: int


class WeeklyWeather(WireModel):
    date: str
    max_temp: float
    min_temp: float
    condition: str
    icon: str


class WeatherAlert(WireModel):
    title: str
    headline: str = ""
    description: str = ""
    severity: str = ""


class WeatherResponse(WireModel):
    location: str
    current: CurrentWeather = Field(default_factory=CurrentWeather)
    today: TodayWeather = Field(default_factory=TodayWeather)
    precip_slots: list[PrecipSlot] = Field(default_factory=list)
    weekly: list[WeeklyWeather] = Field(default_factory=list)
    alerts: list[WeatherAlert] = Field(default_factory=list)


class Coordinates(WireModel):
    latitude: float
    longitude: float
    city_name: str = ""
    country: str = ""
