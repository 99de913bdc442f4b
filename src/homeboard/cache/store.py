"""Durable JSON content cache.

One file per key under the cache directory. Every write goes to a temporary
file in the same directory and is renamed over the final path, so a reader
only ever sees a complete entry.

Staleness is not stored: it is computed on each read from ``fetchedAt`` and
the TTL the caller passes, so the same entry can be fresh for one caller and
stale for another.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Generic, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from homeboard.clock import Clock, make_clock

logger = structlog.get_logger()

T = TypeVar("T")

EMPTY_KEY_NAME = "cache"
FILE_SUFFIX = ".json"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class CacheError(Exception):
    """Base exception for cache errors."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"[cache:{key}] {message}")


class CacheIOError(CacheError):
    """Raised when a cache file cannot be read or written."""


class CorruptEntryError(CacheError):
    """Reported (not raised) when a cache file exists but cannot be decoded."""


def safe_file_name(key: str) -> str:
    """Map a cache key to a filesystem-safe file stem.

    Characters outside ``[A-Za-z0-9_-]`` become ``_``. When anything was
    replaced, a short digest of the raw key is appended so that keys differing
    only in replaced characters get different files. The result only holds
    safe characters, so applying this twice returns the same name.
    """
    if not key:
        return EMPTY_KEY_NAME

    clean = _UNSAFE_CHARS.sub("_", key)
    if clean == key:
        return clean

    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
    return f"{clean}-{digest}"


@dataclass(frozen=True)
class CacheEntry:
    """A stored payload with the time it was written."""

    payload: Any
    fetched_at: str
    meta: dict[str, str] = field(default_factory=dict)

    @property
    def fetched_at_dt(self) -> datetime:
        return datetime.fromisoformat(self.fetched_at)

    def to_json(self) -> dict[str, Any]:
        return {"payload": self.payload, "fetchedAt": self.fetched_at, "meta": self.meta}


@dataclass
class CacheRead(Generic[T]):
    """Outcome of a cache lookup.

    ``found`` is False when the key was never written. A corrupt entry is
    reported with ``found=True``, ``stale=True`` and ``error`` set.
    """

    entry: CacheEntry | None = None
    found: bool = False
    stale: bool = False
    error: CorruptEntryError | None = None
    value: T | None = None

    @property
    def usable(self) -> bool:
        """True when the entry exists and decoded cleanly (fresh or not)."""
        return self.found and self.error is None

    @property
    def fresh(self) -> bool:
        return self.usable and not self.stale


class ContentCache:
    """Key-addressed, TTL-aware JSON file cache."""

    def __init__(self, directory: Path | str, clock: Clock | None = None) -> None:
        self.directory = Path(directory).expanduser()
        self._clock = clock or make_clock("UTC")

    def path_for(self, key: str) -> Path:
        return self.directory / f"{safe_file_name(key)}{FILE_SUFFIX}"

    def write(self, key: str, payload: Any, meta: dict[str, str] | None = None) -> CacheEntry:
        """Serialise ``payload`` and atomically replace the entry for ``key``.

        Raises:
            CacheError: payload cannot be serialised to JSON.
            CacheIOError: the directory or file cannot be written.
        """
        try:
            jsonable = to_jsonable_python(payload, by_alias=True)
        except PydanticSerializationError as e:
            raise CacheError(key, f"payload is not JSON serialisable: {e}") from e

        entry = CacheEntry(
            payload=jsonable,
            fetched_at=self._clock().isoformat(),
            meta=dict(meta or {}),
        )
        data = json.dumps(entry.to_json(), ensure_ascii=False).encode("utf-8")

        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f"{path.stem}-", suffix=".tmp"
            )
        except OSError as e:
            raise CacheIOError(key, f"cannot create temporary file: {e}") from e

        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise CacheIOError(key, f"write failed: {e}") from e

        logger.debug("Cache entry written", key=key, path=str(path))
        return entry

    def read(self, key: str, ttl: timedelta) -> CacheRead[Any]:
        """Read the entry for ``key`` and judge it against ``ttl``.

        A ``ttl`` of zero or less means the entry is never stale.

        Raises:
            CacheIOError: the file exists but cannot be read.
        """
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return CacheRead()
        except OSError as e:
            raise CacheIOError(key, f"read failed: {e}") from e

        try:
            data = json.loads(raw)
            entry = CacheEntry(
                payload=data["payload"],
                fetched_at=str(data["fetchedAt"]),
                meta=dict(data.get("meta") or {}),
            )
            fetched_at = entry.fetched_at_dt
            if fetched_at.tzinfo is None:
                raise ValueError("fetchedAt has no UTC offset")
        except (ValueError, KeyError, TypeError) as e:
            return CacheRead(
                found=True,
                stale=True,
                error=CorruptEntryError(key, f"cannot decode entry: {e}"),
            )

        if ttl <= timedelta(0):
            return CacheRead(entry=entry, found=True, stale=False)

        stale = self._clock() - fetched_at > ttl
        return CacheRead(entry=entry, found=True, stale=stale)

    def read_typed(self, key: str, ttl: timedelta, shape: Any) -> CacheRead[Any]:
        """Like :meth:`read`, also validating the payload into ``shape``.

        ``shape`` is anything :class:`pydantic.TypeAdapter` accepts. A payload
        that fails validation forces ``stale=True`` whatever its age.
        """
        result = self.read(key, ttl)
        if not result.usable:
            return result

        try:
            result.value = TypeAdapter(shape).validate_python(result.entry.payload)
        except ValidationError as e:
            result.stale = True
            result.error = CorruptEntryError(key, f"payload does not match {shape!r}: {e}")
        return result

    def delete(self, key: str) -> None:
        """Remove the entry for ``key``. A missing entry is not an error."""
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise CacheIOError(key, f"delete failed: {e}") from e

    def fetched_at(self, key: str) -> str:
        """Return the entry's ``fetchedAt``, or ``""`` when absent or corrupt."""
        result = self.read(key, timedelta(0))
        if not result.usable:
            return ""
        return result.entry.fetched_at
