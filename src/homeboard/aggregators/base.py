"""Fan-out / merge / fallback pipeline shared by multi-collection views."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta, tzinfo
from typing import Any, Generic, TypeVar

import structlog

from homeboard.adapters.base import (
    AllSourcesFailedError,
    BaseAdapter,
    ConfigurationError,
    SourceError,
)
from homeboard.cache import keys
from homeboard.cache.store import CacheError, ContentCache
from homeboard.clock import Clock
from homeboard.sources import SourceClient

logger = structlog.get_logger()

R = TypeVar("R")
V = TypeVar("V")


@dataclass
class AggregateResult(Generic[R]):
    """Merged records of one view.

    ``error`` is set only when no collection was refreshed and cached data
    (the aggregate, or each collection's own entry) is served instead.
    Partial failures are reported through ``failed`` and ``errors`` and leave
    ``error`` unset.
    """

    value: list[R]
    error: Exception | None = None
    stale: bool = False
    failed: int = 0
    total: int = 0
    errors: list[Exception] = field(default_factory=list)
    fetched_at: str = ""

    @property
    def partial(self) -> bool:
        return 0 < self.failed < self.total


class CollectionAggregator(ABC, Generic[R, V]):
    """Base class for views spanning several upstream collections.

    Subclasses say how to fetch one collection, how to normalise one raw
    record, how to merge and order the combined records and how to render
    them as a response body.
    """

    kind: keys.Kind
    record_shape: Any

    def __init__(
        self,
        cache: ContentCache,
        adapter: BaseAdapter,
        provider: keys.Provider,
        collections: Sequence[str],
        ttl: timedelta,
        clock: Clock,
        tz: tzinfo,
    ) -> None:
        self.cache = cache
        self.adapter = adapter
        self.provider = provider
        self.collections = list(collections)
        self.ttl = ttl
        self.clock = clock
        self.tz = tz
        self.logger = logger.bind(provider=provider, kind=self.kind)

    @property
    def source(self) -> str:
        return self.kind

    @property
    def aggregate_key(self) -> str:
        return keys.aggregate(self.provider, self.kind)

    @abstractmethod
    async def fetch_collection(self, collection: str) -> list[dict[str, Any]]:
        """Fetch raw upstream records of one collection."""

    @abstractmethod
    def to_record(self, raw: dict[str, Any], collection: str) -> R | None:
        """Normalise one raw record; None drops it."""

    @abstractmethod
    def merge(self, records: list[R]) -> list[R]:
        """Filter and order the combined records."""

    @abstractmethod
    def render(self, records: list[R]) -> V:
        """Build the response body from merged records."""

    def client_for(self, collection: str) -> SourceClient[list[R]]:
        def transform(raws: list[dict[str, Any]]) -> list[R]:
            records = (self.to_record(raw, collection) for raw in raws)
            return [record for record in records if record is not None]

        return SourceClient(
            cache=self.cache,
            key=keys.collection(self.provider, self.kind, collection),
            ttl=self.ttl,
            fetch=lambda: self.fetch_collection(collection),
            transform=transform,
            shape=list[self.record_shape],
            source=f"{self.provider}:{collection}",
            timeout=self.adapter.timeout,
            meta={"provider": self.provider, "collection": collection},
        )

    async def fetch(self, deadline: float | None = None) -> AggregateResult[R]:
        """Return merged records of every configured collection.

        Args:
            deadline: Time budget in seconds for each upstream call.

        Raises:
            ConfigurationError: no collections, or missing credentials.
            AllSourcesFailedError: every collection failed and no cached
                aggregate exists.
            CacheIOError: a cache file exists but cannot be read.
        """
        if not self.collections:
            raise ConfigurationError(self.source, f"no {self.kind} collections configured")
        self.adapter.check_configured()

        cached = self.cache.read_typed(self.aggregate_key, self.ttl, list[self.record_shape])
        if cached.fresh:
            self.logger.debug("Aggregate cache hit")
            return AggregateResult(
                value=cached.value,
                total=len(self.collections),
                fetched_at=cached.entry.fetched_at,
            )

        outcomes = await asyncio.gather(
            *(self.client_for(name).fetch(deadline) for name in self.collections),
            return_exceptions=True,
        )

        records: list[R] = []
        errors: list[Exception] = []
        failed = 0
        stale_fetched: list[str] = []
        for name, outcome in zip(self.collections, outcomes):
            if isinstance(outcome, (ConfigurationError, CacheError)):
                raise outcome
            if isinstance(outcome, SourceError):
                failed += 1
                errors.append(outcome)
                self.logger.warning("Collection failed", collection=name, error=str(outcome))
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            if outcome.error is not None:
                errors.append(outcome.error)
            if outcome.stale:
                stale_fetched.append(outcome.fetched_at)
            records.extend(outcome.value)

        total = len(self.collections)
        if not records and failed:
            return self._fallback(failed, total, errors)
        if len(stale_fetched) + failed == total:
            return self._stale_merge(records, failed, stale_fetched, errors)

        merged = self.merge(records)
        fetched_at = ""
        try:
            fetched_at = self.cache.write(
                self.aggregate_key, merged, {"provider": self.provider, "kind": self.kind}
            ).fetched_at
        except CacheError as e:
            self.logger.warning("Failed to write aggregate cache", error=str(e))
            errors.append(e)

        if failed:
            self.logger.warning("Partial aggregation", failed=failed, total=total)
        else:
            self.logger.info("Aggregated collections", total=total, records=len(merged))

        return AggregateResult(
            value=merged,
            failed=failed,
            total=total,
            errors=errors,
            fetched_at=fetched_at,
        )

    def _fallback(self, failed: int, total: int, errors: list[Exception]) -> AggregateResult[R]:
        cached = self.cache.read_typed(self.aggregate_key, timedelta(0), list[self.record_shape])
        if not cached.usable:
            raise AllSourcesFailedError(
                self.source, failed, total, f"{failed} of {total} collections failed"
            )

        error = AllSourcesFailedError(
            self.source,
            failed,
            total,
            f"{failed} of {total} collections failed, serving cached aggregate",
        )
        self.logger.warning("All collections failed, serving cached aggregate", failed=failed)
        return AggregateResult(
            value=self.merge(cached.value),
            error=error,
            stale=True,
            failed=failed,
            total=total,
            errors=errors,
            fetched_at=cached.entry.fetched_at,
        )

    def _stale_merge(
        self,
        records: list[R],
        failed: int,
        stale_fetched: list[str],
        errors: list[Exception],
    ) -> AggregateResult[R]:
        # Built only from cached collections; the aggregate entry keeps its old fetchedAt.
        total = len(self.collections)
        unavailable = failed + len(stale_fetched)
        error = AllSourcesFailedError(
            self.source,
            unavailable,
            total,
            f"{unavailable} of {total} collections failed, serving cached collections",
        )
        self.logger.warning("No collection refreshed, serving cached collections", failed=unavailable)
        return AggregateResult(
            value=self.merge(records),
            error=error,
            stale=True,
            failed=unavailable,
            total=total,
            errors=errors,
            fetched_at=min(stale_fetched),
        )
