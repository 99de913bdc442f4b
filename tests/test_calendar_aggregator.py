"""Tests for calendar day bucketing."""

from datetime import date
from zoneinfo import ZoneInfo

from homeboard.aggregators.calendar import build_calendar_days, window_bounds
from homeboard.models import CalendarEvent

TOKYO = ZoneInfo("Asia/Tokyo")
TODAY = date(2026, 3, 1)


def timed(id, start, title=None):
    return CalendarEvent(id=id, title=title or id, start=start, end=start)


def all_day(id, day, title):
    return CalendarEvent(id=id, title=title, start=day, end=day, all_day=True)


class TestBuildCalendarDays:
    def test_every_day_of_window_appears_once_even_when_empty(self):
        days = build_calendar_days([], TODAY, TOKYO)

        assert [d.date for d in days] == [
            "2026-03-01",
            "2026-03-02",
            "2026-03-03",
            "2026-03-04",
            "2026-03-05",
            "2026-03-06",
            "2026-03-07",
        ]
        assert all(not d.all_day and not d.timed for d in days)

    def test_events_outside_window_are_dropped(self):
        events = [
            timed("before", "2026-02-28T23:59:00+09:00"),
            timed("first", "2026-03-01T00:00:00+09:00"),
            timed("last", "2026-03-07T23:59:00+09:00"),
            timed("after", "2026-03-08T00:00:00+09:00"),
            all_day("far", "2026-04-01", "Far away"),
        ]

        days = build_calendar_days(events, TODAY, TOKYO)
        ids = [e.id for d in days for e in d.all_day + d.timed]

        assert len(days) == 7
        assert ids == ["first", "last"]

    def test_day_boundaries_use_configured_timezone(self):
        # 2026-03-01T16:00Z is 2026-03-02 01:00 in Tokyo
        days = build_calendar_days([timed("x", "2026-03-01T16:00:00Z")], TODAY, TOKYO)

        assert days[1].timed[0].id == "x"
        assert days[0].timed == []

    def test_all_day_sorted_by_title_and_timed_by_start(self):
        events = [
            timed("late", "2026-03-02T18:00:00+09:00", title="A late one"),
            all_day("z", "2026-03-02", "Zoo"),
            timed("early", "2026-03-02T08:00:00+09:00", title="Z early one"),
            all_day("a", "2026-03-02", "Anniversary"),
            # same instant as "early", written in UTC
            timed("utc", "2026-03-01T23:00:00Z", title="M"),
        ]

        day = build_calendar_days(events, TODAY, TOKYO)[1]

        assert [e.id for e in day.all_day] == ["a", "z"]
        assert [e.id for e in day.timed] == ["early", "utc", "late"]

    def test_unreadable_start_is_skipped(self):
        days = build_calendar_days([timed("bad", "soon")], TODAY, TOKYO)

        assert all(not d.timed for d in days)


def test_window_bounds_cover_seven_local_days():
    start, end = window_bounds(TODAY, TOKYO)

    assert start.isoformat() == "2026-03-01T00:00:00+09:00"
    assert end.isoformat() == "2026-03-08T00:00:00+09:00"
