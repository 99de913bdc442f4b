"""Calendar view: events from every configured calendar, bucketed by day."""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any

from homeboard.aggregators.base import CollectionAggregator
from homeboard.conversions import event_start
from homeboard.models import CalendarDay, CalendarEvent, CalendarResponse

WINDOW_DAYS = 7


def window_bounds(today: date, tz: tzinfo, days: int = WINDOW_DAYS) -> tuple[datetime, datetime]:
    """Start of ``today`` and start of the day after the window, in ``tz``."""
    start = datetime.combine(today, time.min, tzinfo=tz)
    return start, start + timedelta(days=days)


def event_day(event: CalendarEvent, tz: tzinfo) -> date:
    return event_start(event, tz).date()


def build_calendar_days(
    events: list[CalendarEvent], start_day: date, tz: tzinfo, days: int = WINDOW_DAYS
) -> list[CalendarDay]:
    """Bucket events into ``days`` consecutive days starting at ``start_day``.

    Every day of the window appears once, in order, even when empty. Events
    starting outside the window are dropped. All-day events are ordered by
    title, timed events by start instant.
    """
    buckets: dict[date, tuple[list[CalendarEvent], list[CalendarEvent]]] = {
        start_day + timedelta(days=offset): ([], []) for offset in range(days)
    }

    for event in events:
        try:
            day = event_day(event, tz)
        except ValueError:
            continue
        bucket = buckets.get(day)
        if bucket is None:
            continue
        all_day, timed = bucket
        (all_day if event.all_day else timed).append(event)

    result = []
    for day in sorted(buckets):
        all_day, timed = buckets[day]
        result.append(
            CalendarDay(
                date=day.isoformat(),
                all_day=sorted(all_day, key=lambda e: e.title),
                timed=sorted(timed, key=lambda e: event_start(e, tz)),
            )
        )
    return result


class CalendarAggregator(CollectionAggregator[CalendarEvent, CalendarResponse]):
    """Events of the next seven days across calendars of one provider."""

    kind = "calendar"
    record_shape = CalendarEvent

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    async def fetch_collection(self, collection: str) -> list[dict[str, Any]]:
        start, end = window_bounds(self.today(), self.tz)
        return await self.adapter.fetch_events(collection, start, end)

    def to_record(self, raw: dict[str, Any], collection: str) -> CalendarEvent | None:
        return self.adapter.to_event(raw, collection, self.tz)

    def merge(self, records: list[CalendarEvent]) -> list[CalendarEvent]:
        """Keep events starting inside the window, ordered by start then title."""
        today = self.today()
        last = today + timedelta(days=WINDOW_DAYS - 1)
        kept = []
        for event in records:
            try:
                start = event_start(event, self.tz)
            except ValueError:
                continue
            if today <= start.date() <= last:
                kept.append((start, event))
        kept.sort(key=lambda pair: (pair[0], pair[1].title))
        return [event for _, event in kept]

    def render(self, records: list[CalendarEvent]) -> CalendarResponse:
        return CalendarResponse(days=build_calendar_days(records, self.today(), self.tz))
