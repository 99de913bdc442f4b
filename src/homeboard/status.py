"""Per-source error tracking for the dashboard status view."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from homeboard.clock import Clock, make_clock
from homeboard.models import ErrorInfo

logger = structlog.get_logger()


class ReadWriteLock:
    """Many concurrent readers or one writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ErrorStatusStore:
    """Most recent failure per logical source ("weather", "calendar", "tasks").

    A record lives until the source's next success clears it.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or make_clock("UTC")
        self._lock = ReadWriteLock()
        self._errors: dict[str, ErrorInfo] = {}

    def set(self, source: str, message: str) -> None:
        with self._lock.write():
            self._errors[source] = ErrorInfo(
                source=source,
                message=message,
                at=self._clock().isoformat(),
            )
        logger.info("Source marked degraded", source=source, message=message)

    def clear(self, source: str) -> None:
        with self._lock.write():
            removed = self._errors.pop(source, None)
        if removed is not None:
            logger.info("Source recovered", source=source)

    def record(self, source: str, error: BaseException | None) -> None:
        """Set the source's error, or clear it when ``error`` is None."""
        if error is None:
            self.clear(source)
        else:
            self.set(source, str(error))

    def list(self) -> list[ErrorInfo]:
        """All current records, sorted by source name."""
        with self._lock.read():
            return [self._errors[key] for key in sorted(self._errors)]
