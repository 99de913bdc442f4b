"""Cache-backed fetch of one upstream dataset with serve-stale-on-failure."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Generic, TypeVar

import structlog

from homeboard.adapters.base import ConfigurationError, UpstreamError
from homeboard.cache.store import CacheError, ContentCache

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class SourceResult(Generic[T]):
    """Value produced by a :class:`SourceClient`.

    ``error`` is a soft error: the value is still usable, but was served from
    cache after an upstream failure (``stale=True``) or could not be written
    back to cache.
    """

    value: T
    error: Exception | None = None
    stale: bool = False
    fetched_at: str = ""

    @property
    def degraded(self) -> bool:
        return self.error is not None


class SourceClient(Generic[T]):
    """Fetch one logical dataset from one upstream collection.

    Policy:
        1. Fresh cache hit -> returned without calling upstream.
        2. Otherwise upstream is called under ``timeout``; the transformed
           value is written back to cache and returned.
        3. On upstream failure the last cached value (any age) is returned
           with the failure attached; with no cached value the failure is
           raised.
    """

    def __init__(
        self,
        cache: ContentCache,
        key: str,
        ttl: timedelta,
        fetch: Callable[[], Awaitable[Any]],
        transform: Callable[[Any], T],
        shape: Any,
        source: str,
        timeout: float = 10.0,
        meta: dict[str, str] | None = None,
    ) -> None:
        self.cache = cache
        self.key = key
        self.ttl = ttl
        self._fetch = fetch
        self._transform = transform
        self.shape = shape
        self.source = source
        self.timeout = timeout
        self.meta = meta or {}
        self.logger = logger.bind(source=source, key=key)

    async def _call_upstream(self, timeout: float) -> T:
        try:
            raw = await asyncio.wait_for(self._fetch(), timeout=timeout)
            return self._transform(raw)
        except (ConfigurationError, UpstreamError):
            raise
        except asyncio.TimeoutError as e:
            raise UpstreamError(self.source, f"timed out after {timeout:g}s") from e
        except Exception as e:
            raise UpstreamError(self.source, f"{type(e).__name__}: {e}") from e

    async def fetch(self, deadline: float | None = None) -> SourceResult[T]:
        """Return the dataset, preferring fresh cache, then upstream, then stale cache.

        Args:
            deadline: Caller's time budget in seconds. The upstream call is
                bounded by the shorter of this and the client timeout; running
                out is handled like any other upstream failure.

        Raises:
            ConfigurationError: required settings are missing.
            UpstreamError: upstream failed and nothing is cached.
            CacheIOError: the cache file exists but cannot be read.
        """
        cached = self.cache.read_typed(self.key, self.ttl, self.shape)
        if cached.fresh:
            self.logger.debug("Cache hit")
            return SourceResult(value=cached.value, fetched_at=cached.entry.fetched_at)
        if cached.error is not None:
            self.logger.warning("Ignoring corrupt cache entry", error=str(cached.error))

        timeout = self.timeout if deadline is None else min(self.timeout, deadline)
        try:
            value = await self._call_upstream(timeout)
        except UpstreamError as e:
            return self._fallback(e)

        try:
            entry = self.cache.write(self.key, value, self.meta)
        except CacheError as e:
            self.logger.warning("Failed to write cache", error=str(e))
            return SourceResult(value=value, error=e)

        return SourceResult(value=value, fetched_at=entry.fetched_at)

    def _fallback(self, error: UpstreamError) -> SourceResult[T]:
        cached = self.cache.read_typed(self.key, timedelta(0), self.shape)
        if not cached.usable:
            self.logger.error("Upstream failed with no cached fallback", error=str(error))
            raise error

        self.logger.warning(
            "Upstream failed, serving cached value",
            error=str(error),
            fetched_at=cached.entry.fetched_at,
        )
        return SourceResult(
            value=cached.value,
            error=error,
            stale=True,
            fetched_at=cached.entry.fetched_at,
        )
