"""Google Calendar and Google Tasks REST adapter."""

from datetime import datetime, tzinfo
from typing import Any
from urllib.parse import quote

import httpx

from homeboard.adapters.base import BaseAdapter, ConfigurationError
from homeboard.config.settings import GoogleSettings
from homeboard.conversions import event_from_google, task_from_google
from homeboard.models import CalendarEvent, TaskItem

API_BASE = "https://www.googleapis.com"


class GoogleAdapter(BaseAdapter):
    """Adapter for Google Calendar v3 and Tasks v1.

    Uses a pre-issued OAuth access token as a bearer credential.
    """

    def __init__(
        self,
        config: GoogleSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = API_BASE,
    ) -> None:
        self.config = config or GoogleSettings()
        self.base_url = base_url.rstrip("/")
        super().__init__("google", timeout=self.config.timeout, transport=transport)

    def check_configured(self) -> None:
        if not self.config.access_token.get_secret_value():
            raise ConfigurationError(self.name, "missing settings: access_token")

    def _client_options(self) -> dict[str, Any]:
        token = self.config.access_token.get_secret_value()
        return {"headers": {"Authorization": f"Bearer {token}"}}

    async def fetch_events(
        self, calendar_id: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Fetch expanded (single) events between ``start`` and ``end``."""
        url = f"{self.base_url}/calendar/v3/calendars/{quote(calendar_id, safe='')}/events"
        params = {
            "timeMin": start.isoformat(),
            "timeMax": end.isoformat(),
            "maxResults": 250,
            "orderBy": "startTime",
            "singleEvents": "true",
        }
        data = await self._get_json(url, params=params)
        items = data.get("items", [])
        self.logger.info("Fetched events", calendar=calendar_id, count=len(items))
        return items

    async def fetch_tasks(self, task_list_id: str) -> list[dict[str, Any]]:
        """Fetch open tasks of a task list."""
        url = f"{self.base_url}/tasks/v1/lists/{quote(task_list_id, safe='')}/tasks"
        params = {"showCompleted": "false", "maxResults": 100}
        data = await self._get_json(url, params=params)
        items = data.get("items", [])
        self.logger.info("Fetched tasks", task_list=task_list_id, count=len(items))
        return items

    @staticmethod
    def to_event(raw: dict[str, Any], calendar_id: str, tz: tzinfo) -> CalendarEvent | None:
        return event_from_google(raw, calendar_id, tz)

    @staticmethod
    def to_task(raw: dict[str, Any], tz: tzinfo, now: datetime) -> TaskItem | None:
        return task_from_google(raw, tz, now)
