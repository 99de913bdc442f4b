"""Tests for multi-collection fan-out, partial failure and fallback."""

from datetime import timedelta
from zoneinfo import ZoneInfo

import pytest

from homeboard.adapters.base import AllSourcesFailedError, ConfigurationError, UpstreamError
from homeboard.aggregators.calendar import CalendarAggregator
from homeboard.aggregators.tasks import TasksAggregator
from homeboard.cache import keys
from homeboard.conversions import event_from_google, task_from_google
from homeboard.models import TaskItem

TOKYO = ZoneInfo("Asia/Tokyo")


class FakeAdapter:
    """Stands in for a provider adapter; returns canned Google-shaped records."""

    timeout = 1.0

    def __init__(self, tasks=None, events=None, failing=(), configured=True):
        self.tasks = tasks or {}
        self.events = events or {}
        self.failing = set(failing)
        self.configured = configured
        self.calls: list[str] = []

    def check_configured(self):
        if not self.configured:
            raise ConfigurationError("fake", "missing settings: access_token")

    async def fetch_tasks(self, collection):
        self.calls.append(collection)
        if collection in self.failing:
            raise UpstreamError("fake", f"{collection} is down")
        return self.tasks.get(collection, [])

    async def fetch_events(self, collection, start, end):
        self.calls.append(collection)
        if collection in self.failing:
            raise UpstreamError("fake", f"{collection} is down")
        return self.events.get(collection, [])

    to_task = staticmethod(task_from_google)
    to_event = staticmethod(event_from_google)


def raw_tasks(prefix, count):
    return [
        {
            "id": f"{prefix}{i}",
            "title": f"{prefix} task {i}",
            "due": f"2026-03-{i + 1:02d}T00:00:00.000Z",
            "updated": "2026-02-01T00:00:00.000Z",
        }
        for i in range(count)
    ]


def make_tasks(cache, clock, adapter, collections=("home", "work", "shared")):
    return TasksAggregator(
        cache=cache,
        adapter=adapter,
        provider="google",
        collections=list(collections),
        ttl=timedelta(minutes=5),
        clock=clock,
        tz=TOKYO,
    )


class TestPartialAggregation:
    @pytest.mark.asyncio
    async def test_one_of_three_failing_returns_merged_records(self, cache, clock):
        adapter = FakeAdapter(
            tasks={"home": raw_tasks("h", 5), "shared": raw_tasks("s", 3)},
            failing={"work"},
        )

        result = await make_tasks(cache, clock, adapter).fetch()

        assert len(result.value) == 8
        assert result.failed == 1
        assert result.total == 3
        assert result.partial is True
        assert result.error is None
        assert len(result.errors) == 1

        stored = cache.read_typed(keys.aggregate("google", "tasks"), timedelta(0), list[TaskItem])
        assert len(stored.value) == 8

    @pytest.mark.asyncio
    async def test_merged_records_are_sorted(self, cache, clock):
        adapter = FakeAdapter(tasks={"home": raw_tasks("h", 2), "work": raw_tasks("w", 2)})

        result = await make_tasks(cache, clock, adapter, ["home", "work"]).fetch()

        # due dates 03-01, 03-01, 03-02, 03-02; ties keep collection order
        assert [t.id for t in result.value] == ["h0", "w0", "h1", "w1"]

    @pytest.mark.asyncio
    async def test_fresh_aggregate_skips_fan_out(self, cache, clock):
        adapter = FakeAdapter(tasks={"home": raw_tasks("h", 2)})
        aggregator = make_tasks(cache, clock, adapter, ["home"])
        await aggregator.fetch()
        adapter.calls.clear()

        result = await aggregator.fetch()

        assert adapter.calls == []
        assert len(result.value) == 2


class TestAllFailed:
    @pytest.mark.asyncio
    async def test_all_failed_without_cache_is_fatal(self, cache, clock):
        adapter = FakeAdapter(failing={"home", "work", "shared"})

        with pytest.raises(AllSourcesFailedError) as excinfo:
            await make_tasks(cache, clock, adapter).fetch()

        assert excinfo.value.failed == 3
        assert excinfo.value.total == 3

    @pytest.mark.asyncio
    async def test_all_failed_serves_cached_aggregate(self, cache, clock):
        adapter = FakeAdapter(tasks={"home": raw_tasks("h", 2)})
        aggregator = make_tasks(cache, clock, adapter, ["home"])
        await aggregator.fetch()

        cache.delete(keys.collection("google", "tasks", "home"))
        clock.advance(hours=1)
        adapter.failing = {"home"}

        result = await aggregator.fetch()

        assert [t.id for t in result.value] == ["h0", "h1"]
        assert isinstance(result.error, AllSourcesFailedError)
        assert "serving cached aggregate" in str(result.error)
        assert result.stale is True

    @pytest.mark.asyncio
    async def test_only_cached_collections_is_degraded(self, cache, clock):
        adapter = FakeAdapter(tasks={"home": raw_tasks("h", 2), "work": raw_tasks("w", 1)})
        aggregator = make_tasks(cache, clock, adapter, ["home", "work"])
        first = await aggregator.fetch()

        clock.advance(hours=1)
        adapter.failing = {"home", "work"}

        result = await aggregator.fetch()

        assert len(result.value) == 3
        assert isinstance(result.error, AllSourcesFailedError)
        assert "2 of 2 collections failed" in str(result.error)
        assert result.stale is True
        assert result.fetched_at == first.fetched_at
        assert all(isinstance(e, UpstreamError) for e in result.errors)
        assert cache.fetched_at(keys.aggregate("google", "tasks")) == first.fetched_at

    @pytest.mark.asyncio
    async def test_cached_collections_do_not_refresh_aggregate(self, cache, clock):
        adapter = FakeAdapter(tasks={"home": raw_tasks("h", 2)})
        aggregator = make_tasks(cache, clock, adapter, ["home"])
        await aggregator.fetch()

        clock.advance(hours=1)
        adapter.failing = {"home"}
        await aggregator.fetch()

        adapter.failing.clear()
        adapter.calls.clear()
        result = await aggregator.fetch()

        assert adapter.calls == ["home"]
        assert result.error is None
        assert result.fetched_at == clock.now.isoformat()

    @pytest.mark.asyncio
    async def test_one_fresh_collection_is_enough(self, cache, clock):
        adapter = FakeAdapter(tasks={"home": raw_tasks("h", 2), "work": raw_tasks("w", 1)})
        aggregator = make_tasks(cache, clock, adapter, ["home", "work"])
        await aggregator.fetch()

        clock.advance(hours=1)
        adapter.failing = {"work"}

        result = await aggregator.fetch()

        assert len(result.value) == 3
        assert result.error is None
        assert result.failed == 0
        assert isinstance(result.errors[0], UpstreamError)
        assert cache.fetched_at(keys.aggregate("google", "tasks")) == clock.now.isoformat()


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_no_collections_raises_before_fetching(self, cache, clock):
        adapter = FakeAdapter()

        with pytest.raises(ConfigurationError):
            await make_tasks(cache, clock, adapter, []).fetch()

        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_missing_credentials_raise_before_fetching(self, cache, clock):
        adapter = FakeAdapter(configured=False)

        with pytest.raises(ConfigurationError):
            await make_tasks(cache, clock, adapter).fetch()

        assert adapter.calls == []


class TestCalendarAggregator:
    @pytest.mark.asyncio
    async def test_events_from_all_calendars_are_bucketed(self, cache, clock):
        adapter = FakeAdapter(
            events={
                "primary": [
                    {"id": "1", "summary": "Dentist", "start": {"dateTime": "2026-03-02T10:00:00+09:00"}},
                    {"id": "2", "summary": "Old", "start": {"dateTime": "2026-02-20T10:00:00+09:00"}},
                ],
                "family": [
                    {"id": "3", "summary": "Holiday", "start": {"date": "2026-03-02"}, "end": {"date": "2026-03-03"}},
                ],
            }
        )
        aggregator = CalendarAggregator(
            cache=cache,
            adapter=adapter,
            provider="google",
            collections=["primary", "family"],
            ttl=timedelta(minutes=5),
            clock=clock,
            tz=TOKYO,
        )

        result = await aggregator.fetch()
        body = aggregator.render(result.value)

        assert [e.id for e in result.value] == ["3", "1"]
        assert len(body.days) == 7
        assert [e.id for e in body.days[1].all_day] == ["3"]
        assert [e.id for e in body.days[1].timed] == ["1"]
        assert body.days[1].timed[0].calendar == "primary"
