"""Process-wide clock in one fixed timezone."""

from collections.abc import Callable
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def resolve_timezone(name: str) -> tzinfo:
    """Load a named zone, falling back to UTC when it is unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone, using UTC", timezone=name)
        return timezone.utc


def make_clock(tz: tzinfo | str) -> Clock:
    """Return a clock producing aware datetimes in ``tz``."""
    zone = resolve_timezone(tz) if isinstance(tz, str) else tz

    def now() -> datetime:
        return datetime.now(zone)

    return now
