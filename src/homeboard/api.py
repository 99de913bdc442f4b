"""homeboard API server for the dashboard."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from homeboard import __version__
from homeboard.config.settings import Settings
from homeboard.config.settings import settings as default_settings
from homeboard.models import CalendarResponse, StatusResponse, TasksResponse, WeatherResponse
from homeboard.scheduler import DashboardRefresher
from homeboard.services import Services, build_services

logger = structlog.get_logger()


def get_services(request: Request) -> Services:
    return request.app.state.services


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        services: Prebuilt services (tests). Built from ``settings`` when omitted.
        settings: Settings used to build services; defaults to the process settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan handler for startup/shutdown."""
        owned = services is None
        app.state.services = services or build_services(settings or default_settings)

        refresher = None
        if app.state.services.settings.refresh.background:
            refresher = DashboardRefresher(app.state.services)
            refresher.start()

        yield

        if refresher is not None:
            refresher.shutdown()
        if owned:
            await app.state.services.aclose()
            logger.info("Services closed")

    app = FastAPI(
        title="homeboard API",
        description="Home dashboard data: weather, calendar and tasks",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS for the dashboard frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/api/weather", response_model=WeatherResponse, response_model_by_alias=True)
    async def get_weather(request: Request) -> WeatherResponse:
        """Current weather, precipitation slots and the weekly forecast."""
        return await get_services(request).load_weather()

    @app.get("/api/calendar", response_model=CalendarResponse, response_model_by_alias=True)
    async def get_calendar(request: Request) -> CalendarResponse:
        """Events for today and the following six days."""
        return await get_services(request).load_calendar()

    @app.get("/api/tasks", response_model=TasksResponse, response_model_by_alias=True)
    async def get_tasks(request: Request) -> TasksResponse:
        """Tasks ordered by due date, priority and creation time."""
        return await get_services(request).load_tasks()

    @app.get("/api/status", response_model=StatusResponse, response_model_by_alias=True)
    async def get_status(request: Request) -> StatusResponse:
        """Degraded sources and the last successful update of each view."""
        return get_services(request).status_view()

    @app.get("/api/health")
    async def get_health() -> dict[str, bool]:
        return {"ok": True}

    return app


def run_server(host: str = "0.0.0.0", port: int = 8080, settings: Settings | None = None) -> None:
    """Run the API server."""
    import uvicorn

    uvicorn.run(create_app(settings=settings), host=host, port=port, log_config=None)
