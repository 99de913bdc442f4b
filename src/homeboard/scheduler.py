"""Background cache warming for the dashboard views."""

from collections.abc import Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from homeboard.services import Services

logger = structlog.get_logger()


class DashboardRefresher:
    """Refresh each view at its configured interval.

    Jobs call the same entrypoints as the HTTP handlers, so outcomes land in
    the status store the same way.
    """

    def __init__(self, services: Services, scheduler: AsyncIOScheduler | None = None) -> None:
        self.services = services
        self.scheduler = scheduler or AsyncIOScheduler(timezone=services.tz)
        self._setup_jobs()

    def _setup_jobs(self) -> None:
        """Configure one interval job per view."""
        self._views: dict[str, Callable[[], Awaitable[object]]] = {
            "weather": self.services.load_weather,
            "calendar": self.services.load_calendar,
            "tasks": self.services.load_tasks,
        }
        for name, load in self._views.items():
            interval = self.services.settings.refresh_interval(name)
            self.scheduler.add_job(
                self._run,
                IntervalTrigger(seconds=int(interval.total_seconds())),
                args=[name, load],
                id=f"refresh_{name}",
                name=f"Refresh {name}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        logger.info("Refresh jobs configured", jobs=list(self._views))

    async def _run(self, name: str, load: Callable[[], Awaitable[object]]) -> None:
        logger.debug("Refreshing view", view=name)
        await load()

    async def refresh_all(self) -> None:
        """Refresh every view once, now."""
        for name, load in self._views.items():
            await self._run(name, load)

    def start(self) -> None:
        """Start the scheduler."""
        self.scheduler.start()
        logger.info("Refresher started")

    def shutdown(self) -> None:
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Refresher stopped")
