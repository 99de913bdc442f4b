"""Nextcloud CalDAV adapter for calendar events and VTODO tasks."""

import xml.etree.ElementTree as ET
from datetime import date, datetime, timezone, tzinfo
from typing import Any
from urllib.parse import quote

import httpx
from icalendar import Calendar

from homeboard.adapters.base import BaseAdapter, ConfigurationError, UpstreamError
from homeboard.config.settings import NextcloudSettings
from homeboard.conversions import event_from_ical, task_from_ical
from homeboard.models import CalendarEvent, TaskItem

DAV_NS = "DAV:"
CALDAV_NS = "urn:ietf:params:xml:ns:caldav"
APPLE_NS = "http://apple.com/ns/ical/"

EVENT_FIELDS = ("UID", "SUMMARY", "DTSTART", "DTEND", "DESCRIPTION", "COLOR")
TASK_FIELDS = ("UID", "SUMMARY", "STATUS", "DUE", "CREATED", "PRIORITY", "DESCRIPTION")

EVENTS_QUERY = """<?xml version="1.0" encoding="utf-8"?>
<c:calendar-query xmlns:d="DAV:" xmlns:c="urn:ietf:params:xml:ns:caldav">
  <d:prop><d:getetag/><c:calendar-data/></d:prop>
  <c:filter>
    <c:comp-filter name="VCALENDAR">
      <c:comp-filter name="VEVENT">
        <c:time-range start="{start}" end="{end}"/>
      </c:comp-filter>
    </c:comp-filter>
  </c:filter>
</c:calendar-query>"""

TASKS_QUERY = """<?xml version="1.0" encoding="utf-8"?>
<c:calendar-query xmlns:d="DAV:" xmlns:c="urn:ietf:params:xml:ns:caldav">
  <d:prop><d:getetag/><c:calendar-data/></d:prop>
  <c:filter>
    <c:comp-filter name="VCALENDAR">
      <c:comp-filter name="VTODO"/>
    </c:comp-filter>
  </c:filter>
</c:calendar-query>"""

COLOR_QUERY = """<?xml version="1.0" encoding="utf-8"?>
<d:propfind xmlns:d="DAV:" xmlns:a="http://apple.com/ns/ical/">
  <d:prop><a:calendar-color/></d:prop>
</d:propfind>"""


def format_caldav_time(value: datetime) -> str:
    """Format an aware datetime as a CalDAV UTC timestamp (``YYYYMMDDTHHMMSSZ``)."""
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _ical_value(value: Any) -> Any:
    """Unwrap an icalendar property into a date/datetime or a plain string."""
    if hasattr(value, "dt"):
        return value.dt
    if isinstance(value, (date, datetime)):
        return value
    return str(value)


def parse_calendar_data(ics: str, component: str, fields: tuple[str, ...]) -> list[dict[str, Any]]:
    """Extract ``component`` records (VEVENT/VTODO) from an iCalendar document."""
    records = []
    calendar = Calendar.from_ical(ics)
    for comp in calendar.walk(component):
        records.append(
            {name: _ical_value(comp.get(name)) for name in fields if comp.get(name) is not None}
        )
    return records


def parse_multistatus(body: str | bytes) -> list[str]:
    """Return every ``calendar-data`` payload of a WebDAV multistatus response."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ValueError(f"invalid multistatus XML: {e}") from e
    return [
        node.text
        for node in root.iter(f"{{{CALDAV_NS}}}calendar-data")
        if node.text and node.text.strip()
    ]


class NextcloudAdapter(BaseAdapter):
    """Adapter for Nextcloud calendars and task lists over CalDAV.

    Collections are addressed by their URI name under
    ``/remote.php/dav/calendars/<user>/``.
    """

    def __init__(
        self,
        config: NextcloudSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or NextcloudSettings()
        super().__init__("nextcloud", timeout=self.config.timeout, transport=transport)

    def check_configured(self) -> None:
        missing = [
            name
            for name, value in (
                ("server_url", self.config.server_url),
                ("username", self.config.username),
                ("password", self.config.password.get_secret_value()),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(self.name, f"missing settings: {', '.join(missing)}")

    def _client_options(self) -> dict[str, Any]:
        return {
            "auth": httpx.BasicAuth(self.config.username, self.config.password.get_secret_value()),
            "headers": {"Content-Type": "application/xml; charset=utf-8"},
        }

    def collection_url(self, collection: str) -> str:
        user = quote(self.config.username, safe="")
        name = quote(collection, safe="")
        return f"{self.config.server_url.rstrip('/')}/remote.php/dav/calendars/{user}/{name}/"

    async def _report(self, collection: str, body: str, component: str, fields: tuple[str, ...]):
        url = self.collection_url(collection)
        response = await self._request(
            "REPORT", url, content=body.encode("utf-8"), headers={"Depth": "1"}
        )

        records: list[dict[str, Any]] = []
        try:
            for ics in parse_multistatus(response.content):
                records.extend(parse_calendar_data(ics, component, fields))
        except ValueError as e:
            raise UpstreamError(self.name, f"cannot parse {collection}: {e}") from e
        return records

    async def fetch_calendar_color(self, collection: str) -> str | None:
        """Look up the collection's display colour. Failures are logged and ignored."""
        try:
            response = await self._request(
                "PROPFIND",
                self.collection_url(collection),
                content=COLOR_QUERY.encode("utf-8"),
                headers={"Depth": "0"},
            )
            root = ET.fromstring(response.content)
        except (UpstreamError, ET.ParseError) as e:
            self.logger.warning("Failed to fetch calendar color", collection=collection, error=str(e))
            return None

        node = root.find(f".//{{{APPLE_NS}}}calendar-color")
        if node is None or not node.text:
            return None
        return node.text.strip()

    async def fetch_events(
        self, collection: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Fetch VEVENT records overlapping ``[start, end)``.

        Each record carries ``calendarColor`` from the collection properties.
        """
        body = EVENTS_QUERY.format(start=format_caldav_time(start), end=format_caldav_time(end))
        records = await self._report(collection, body, "VEVENT", EVENT_FIELDS)
        color = await self.fetch_calendar_color(collection)
        for record in records:
            record["calendarColor"] = color
        self.logger.info("Fetched events", collection=collection, count=len(records))
        return records

    async def fetch_tasks(self, collection: str) -> list[dict[str, Any]]:
        """Fetch all VTODO records of a task list."""
        records = await self._report(collection, TASKS_QUERY, "VTODO", TASK_FIELDS)
        self.logger.info("Fetched tasks", collection=collection, count=len(records))
        return records

    @staticmethod
    def to_event(raw: dict[str, Any], collection: str, tz: tzinfo) -> CalendarEvent | None:
        return event_from_ical(raw, collection, tz, raw.get("calendarColor"))

    @staticmethod
    def to_task(raw: dict[str, Any], tz: tzinfo, now: datetime) -> TaskItem | None:
        return task_from_ical(raw, tz, now)
