"""homeboard Command Line Interface."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from homeboard import __version__
from homeboard.config.settings import Settings
from homeboard.log import configure_logging
from homeboard.services import Services, build_services

app = typer.Typer(
    name="homeboard",
    help="homeboard - home dashboard backend",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")

PRIORITY_LABELS = {3: "[red]high[/red]", 2: "[yellow]medium[/yellow]", 1: "[dim]low[/dim]"}


def _load_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.log_level, settings.log_format)
    return settings


def _run(action: Callable[[Services], Awaitable[T]]) -> tuple[T, Services]:
    """Build services, run ``action`` and close the services."""
    services = build_services(_load_settings())

    async def main() -> T:
        try:
            return await action(services)
        finally:
            await services.aclose()

    return asyncio.run(main()), services


def _print_errors(services: Services) -> None:
    for error in services.status.list():
        console.print(f"[red]✗ {error.source}:[/red] {escape(error.message)}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8080, help="Port to listen on"),
):
    """Run the HTTP API server."""
    from homeboard.api import run_server

    settings = _load_settings()
    console.print(Panel(f"homeboard API on http://{host}:{port}", style="blue"))
    run_server(host=host, port=port, settings=settings)


@app.command()
def weather():
    """Show current weather and the weekly forecast."""
    data, services = _run(lambda s: s.load_weather())
    console.print(Panel(f"Weather - {data.location}", style="blue"))

    current = data.current
    console.print(
        f"[bold]{current.temperature:.1f}°C[/bold] {current.condition}"
        f"  humidity {current.humidity}%  wind {current.wind_speed:.1f} km/h"
    )
    console.print(f"Today: {data.today.min_temp:.0f}° / {data.today.max_temp:.0f}°")

    if data.precip_slots:
        slots = "  ".join(f"{slot.time} {slot.precip}%" for slot in data.precip_slots)
        console.print(f"[cyan]Precipitation:[/cyan] {slots}")

    table = Table(title="Weekly")
    table.add_column("Date", style="cyan")
    table.add_column("Condition")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")
    for day in data.weekly:
        table.add_row(day.date, day.condition, f"{day.min_temp:.0f}°", f"{day.max_temp:.0f}°")
    console.print(table)
    _print_errors(services)


@app.command()
def calendar():
    """Show events for the next seven days."""
    data, services = _run(lambda s: s.load_calendar())
    console.print(Panel("Calendar", style="blue"))

    for day in data.days:
        console.print(f"\n[bold cyan]{day.date}[/bold cyan]")
        if not day.all_day and not day.timed:
            console.print("  [dim]No events[/dim]")
        for event in day.all_day:
            console.print(f"  • [bold]all day[/bold]  {escape(event.title)}")
        for event in day.timed:
            console.print(f"  • {event.start[11:16]}-{event.end[11:16]}  {escape(event.title)}")
    _print_errors(services)


@app.command()
def tasks():
    """Show tasks ordered by due date and priority."""
    data, services = _run(lambda s: s.load_tasks())

    table = Table(title="Tasks")
    table.add_column("Due", style="cyan")
    table.add_column("Priority")
    table.add_column("Title")
    table.add_column("Status", style="dim")
    for item in data.items:
        due = item.due_date.isoformat() if item.due_date else "-"
        table.add_row(due, PRIORITY_LABELS.get(item.priority, str(item.priority)), escape(item.title), item.status)
    console.print(table)
    _print_errors(services)


@app.command()
def status(
    refresh: bool = typer.Option(False, "--refresh", help="Fetch every view before reporting"),
):
    """Show degraded sources and when each view was last updated."""

    async def collect(services: Services):
        if refresh:
            await services.load_weather()
            await services.load_calendar()
            await services.load_tasks()
        return services.status_view()

    view, services = _run(collect)

    table = Table(title="Last Updated")
    table.add_column("View", style="cyan")
    table.add_column("Fetched At")
    for name, value in view.last_updated.model_dump().items():
        table.add_row(name, value or "[dim]never[/dim]")
    console.print(table)

    if view.ok:
        console.print("[green]✓ No degraded sources[/green]")
    _print_errors(services)


@app.command("clear-cache")
def clear_cache(
    keys: list[str] = typer.Argument(..., help="Cache keys to delete"),
):
    """Delete cache entries by key."""
    services = build_services(_load_settings())
    for key in keys:
        path = services.cache.path_for(key)
        existed = path.exists()
        services.cache.delete(key)
        if existed:
            console.print(f"[green]✓ Deleted[/green] {escape(key)} ({path.name})")
        else:
            console.print(f"[dim]- Not cached[/dim] {escape(key)}")


@app.command()
def version():
    """Show version information."""
    console.print(f"homeboard v{__version__}")


if __name__ == "__main__":
    app()
