"""Normalisation of upstream records into the internal models.

Upstream adapters hand over raw records keyed by upstream-native field
names (iCalendar property names, Google REST fields, Open-Meteo arrays).
Everything here is pure: the timezone and "now" are passed in.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any

from homeboard.models import (
    CalendarEvent,
    CurrentWeather,
    PrecipSlot,
    TaskItem,
    TodayWeather,
    WeatherResponse,
    WeeklyWeather,
)

DEFAULT_EVENT_COLOR = "#3788D8"
DEFAULT_GOOGLE_COLOR = "#A4BDFC"

# https://developers.google.com/calendar/api/v3/reference/colors
GOOGLE_EVENT_COLORS = {
    "1": "#A4BDFC",
    "2": "#7AE7BF",
    "3": "#DBADFF",
    "4": "#FF887C",
    "5": "#FBE983",
    "6": "#FFB878",
    "7": "#46D6DB",
    "8": "#E1E1E1",
    "9": "#5484ED",
    "10": "#51B749",
    "11": "#DC2127",
}

PRIORITY_HIGH = 3
PRIORITY_MEDIUM = 2
PRIORITY_LOW = 1


# Dates and times


def parse_ical_time(value: Any, tz: tzinfo) -> tuple[datetime | None, bool]:
    """Parse an iCalendar DTSTART/DTEND/DUE/CREATED value.

    Accepts the ``date``/``datetime`` objects produced by ``icalendar`` as well
    as raw ``YYYYMMDD``, ``YYYYMMDDTHHMMSS[Z]`` and ISO-8601 strings. Naive
    times are taken to be in ``tz``.

    Returns:
        (aware datetime in ``tz`` or None, whether the value was a bare date)
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=tz), False
        return value.astimezone(tz), False
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz), True
    if not isinstance(value, str):
        return None, False

    text = value.strip()
    if len(text) == 8 and text.isdigit():
        try:
            return datetime.strptime(text, "%Y%m%d").replace(tzinfo=tz), True
        except ValueError:
            return None, False

    if len(text) >= 15 and "T" in text and "-" not in text:
        utc = text.endswith("Z")
        try:
            parsed = datetime.strptime(text.rstrip("Z")[:15], "%Y%m%dT%H%M%S")
        except ValueError:
            return None, False
        if utc:
            return parsed.replace(tzinfo=timezone.utc).astimezone(tz), False
        return parsed.replace(tzinfo=tz), False

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None, False
    if len(text) == 10:
        return parsed.replace(tzinfo=tz), True
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz), False
    return parsed.astimezone(tz), False


def event_start(event: CalendarEvent, tz: tzinfo) -> datetime:
    """Start instant of a stored event, in ``tz``."""
    start, _ = parse_ical_time(event.start, tz)
    if start is None:
        raise ValueError(f"event {event.id!r} has an unreadable start: {event.start!r}")
    return start


def _format_event_time(value: datetime, all_day: bool) -> str:
    return value.date().isoformat() if all_day else value.isoformat()


# Colours


def normalize_hex_color(value: str | None) -> str | None:
    """Normalise ``#RGB``, ``#RRGGBB``, ``#RRGGBBAA`` (``#`` optional) to ``#RRGGBB``."""
    if not value:
        return None
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) == 8:
        text = text[:6]
    if len(text) != 6:
        return None
    try:
        int(text, 16)
    except ValueError:
        return None
    return "#" + text.upper()


# Calendar events


def event_from_ical(
    raw: dict[str, Any],
    calendar: str,
    tz: tzinfo,
    calendar_color: str | None = None,
) -> CalendarEvent | None:
    """Convert a VEVENT record. Returns None when UID, SUMMARY or DTSTART is missing."""
    uid = raw.get("UID")
    summary = raw.get("SUMMARY")
    if not uid or summary is None or raw.get("DTSTART") is None:
        return None

    start, all_day = parse_ical_time(raw["DTSTART"], tz)
    if start is None:
        return None

    end, _ = parse_ical_time(raw.get("DTEND"), tz)
    if end is None:
        end = start + (timedelta(days=1) if all_day else timedelta(hours=1))

    color = (
        normalize_hex_color(raw.get("COLOR"))
        or normalize_hex_color(calendar_color)
        or DEFAULT_EVENT_COLOR
    )

    return CalendarEvent(
        id=str(uid),
        title=str(summary),
        start=_format_event_time(start, all_day),
        end=_format_event_time(end, all_day),
        color=color,
        calendar=calendar,
        description=str(raw.get("DESCRIPTION") or ""),
        all_day=all_day,
    )


def event_from_google(raw: dict[str, Any], calendar: str, tz: tzinfo) -> CalendarEvent | None:
    """Convert a Google Calendar ``events#resource``."""
    start_raw = raw.get("start") or {}
    end_raw = raw.get("end") or {}

    start, start_all_day = parse_ical_time(start_raw.get("dateTime") or start_raw.get("date"), tz)
    end, end_all_day = parse_ical_time(end_raw.get("dateTime") or end_raw.get("date"), tz)
    if start is None or not raw.get("id"):
        return None

    all_day = start_all_day and (end is None or end_all_day)
    if end is None:
        end = start + (timedelta(days=1) if all_day else timedelta(hours=1))

    color = GOOGLE_EVENT_COLORS.get(str(raw.get("colorId", ""))) or DEFAULT_GOOGLE_COLOR

    return CalendarEvent(
        id=str(raw["id"]),
        title=str(raw.get("summary") or "(No title)"),
        start=_format_event_time(start, all_day),
        end=_format_event_time(end, all_day),
        color=color,
        calendar=calendar,
        description=str(raw.get("description") or ""),
        all_day=all_day,
    )


# Tasks


def normalize_ical_priority(value: Any) -> int:
    """Map iCalendar PRIORITY (1 highest .. 9 lowest, 0 undefined) to 3/2/1."""
    try:
        priority = int(str(value).strip())
    except (TypeError, ValueError):
        return PRIORITY_MEDIUM
    if 1 <= priority <= 3:
        return PRIORITY_HIGH
    if 4 <= priority <= 6:
        return PRIORITY_MEDIUM
    if 7 <= priority <= 9:
        return PRIORITY_LOW
    return PRIORITY_MEDIUM


def task_from_ical(raw: dict[str, Any], tz: tzinfo, now: datetime) -> TaskItem | None:
    """Convert a VTODO record. Returns None when UID or SUMMARY is missing."""
    uid = raw.get("UID")
    summary = raw.get("SUMMARY")
    if not uid or summary is None:
        return None

    status = "completed" if str(raw.get("STATUS", "")).upper() == "COMPLETED" else "needsAction"

    due, _ = parse_ical_time(raw.get("DUE"), tz)
    created, _ = parse_ical_time(raw.get("CREATED"), tz)

    return TaskItem(
        id=str(uid),
        title=str(summary),
        notes=str(raw.get("DESCRIPTION") or ""),
        status=status,
        due_date=due.date() if due else None,
        priority=normalize_ical_priority(raw.get("PRIORITY")),
        created_at=created or now,
    )


def task_from_google(raw: dict[str, Any], tz: tzinfo, now: datetime) -> TaskItem | None:
    """Convert a Google Tasks ``tasks#task``.

    Google Tasks has no priority field, so every task is medium priority.
    ``due`` only ever carries a date even though it is sent as RFC 3339.
    """
    if not raw.get("id"):
        return None

    due_date = None
    due = raw.get("due")
    if due:
        try:
            due_date = date.fromisoformat(str(due)[:10])
        except ValueError:
            due_date = None

    created, _ = parse_ical_time(raw.get("updated"), tz)

    return TaskItem(
        id=str(raw["id"]),
        title=str(raw.get("title") or ""),
        notes=str(raw.get("notes") or ""),
        status=raw.get("status") or "needsAction",
        due_date=due_date,
        priority=PRIORITY_MEDIUM,
        created_at=created or now,
    )


# Weather

_WEATHER_CODES: list[tuple[tuple[int, ...], str, str]] = [
    ((0,), "Clear", "01d"),
    ((1,), "Mostly clear", "02d"),
    ((2, 3), "Cloudy", "03d"),
    ((45, 48), "Fog", "50d"),
    ((51, 53, 55), "Drizzle", "09d"),
    ((61, 63, 65), "Rain", "10d"),
    ((71, 73, 75), "Snow", "13d"),
    ((77,), "Snow grains", "14d"),
    ((80, 81, 82), "Rain showers", "11d"),
    ((85, 86), "Snow showers", "12d"),
    ((95, 96, 99), "Thunderstorm", "15d"),
]


def weather_code_condition(code: int) -> str:
    """WMO weather interpretation code -> condition label."""
    for codes, label, _ in _WEATHER_CODES:
        if code in codes:
            return label
    return "Unknown"


def weather_code_icon(code: int) -> str:
    for codes, _, icon in _WEATHER_CODES:
        if code in codes:
            return icon
    return "04u"


def _at(values: list[Any] | None, index: int, default: Any = 0) -> Any:
    if not values or index >= len(values) or values[index] is None:
        return default
    return values[index]


def precip_slots(
    hourly: dict[str, Any], now: datetime, tz: tzinfo, limit: int = 8
) -> list[PrecipSlot]:
    """Future hours on 3-hour boundaries, precipitation rounded to the nearest 10%."""
    slots: list[PrecipSlot] = []
    times = hourly.get("time") or []
    probs = hourly.get("precipitation_probability") or []

    for i, stamp in enumerate(times):
        if len(slots) >= limit:
            break
        try:
            moment = datetime.fromisoformat(stamp)
        except (TypeError, ValueError):
            continue
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=tz)
        if moment <= now or moment.hour % 3 != 0:
            continue
        # round half up: 25 -> 30
        rounded = int((float(_at(probs, i)) + 5) // 10 * 10)
        slots.append(PrecipSlot(time=f"{moment.hour:02d}:00", precip=rounded))

    return slots


def weather_from_open_meteo(
    raw: dict[str, Any], location: str, now: datetime, tz: tzinfo
) -> WeatherResponse:
    """Convert an Open-Meteo forecast response."""
    current_raw = raw.get("current") or {}
    daily = raw.get("daily") or {}

    code = int(current_raw.get("weather_code") or 0)
    condition = weather_code_condition(code)

    current = CurrentWeather(
        temperature=float(current_raw.get("temperature_2m") or 0.0),
        condition=condition,
        icon=weather_code_icon(code),
        humidity=int(current_raw.get("relative_humidity_2m") or 0),
        wind_speed=float(current_raw.get("wind_speed_10m") or 0.0),
    )
    today = TodayWeather(
        max_temp=float(_at(daily.get("temperature_2m_max"), 0, 0.0)),
        min_temp=float(_at(daily.get("temperature_2m_min"), 0, 0.0)),
        summary=condition,
    )

    weekly = []
    for i, day in enumerate((daily.get("time") or [])[:7]):
        day_code = int(_at(daily.get("weather_code"), i))
        weekly.append(
            WeeklyWeather(
                date=day,
                max_temp=float(_at(daily.get("temperature_2m_max"), i, 0.0)),
                min_temp=float(_at(daily.get("temperature_2m_min"), i, 0.0)),
                condition=weather_code_condition(day_code),
                icon=weather_code_icon(day_code),
            )
        )

    return WeatherResponse(
        location=location,
        current=current,
        today=today,
        precip_slots=precip_slots(raw.get("hourly") or {}, now, tz),
        weekly=weekly,
        alerts=[],
    )
