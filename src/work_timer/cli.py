"""Command-line interface for the work timer."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import typer

from .clock import today
from .config import AppSettings, load_settings
from .errors import WorkTimerError
from .reporting import SummaryPrinter, format_clock, format_duration, session_lines, stop_lines
from .storage import Storage
from .timer import TimerManager

app = typer.Typer(help="Track work sessions from the command line or a local dashboard.")
session_app = typer.Typer(help="Manage timer sessions (start/stop/pause/resume/status).")
app.add_typer(session_app, name="session")


@app.callback(no_args_is_help=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        path_type=Path,
        help="Directory holding day files and the active session.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        path_type=Path,
        help="Path to config.toml (defaults to the user config directory).",
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    settings = load_settings(config_path)
    if data_dir is not None:
        settings.data_dir = data_dir
    ctx.obj = settings


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except WorkTimerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _timer(ctx: typer.Context) -> TimerManager:
    settings: AppSettings = ctx.obj or AppSettings()
    return TimerManager(Storage(settings.data_dir))


@session_app.command("start")
def session_start(
    ctx: typer.Context,
    task: str = typer.Argument(..., help="Task name."),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Optional task description."
    ),
) -> None:
    """Start a new timer session."""
    with _reported_errors():
        session = _timer(ctx).start(task, description)
    typer.echo("✓ Session started")
    typer.echo(f"  Task: {session.task_name}")
    if session.description:
        typer.echo(f"  Description: {session.description}")
    typer.echo(f"  Started at: {format_clock(session.start_time)}")


@session_app.command("stop")
def session_stop(ctx: typer.Context) -> None:
    """Stop the running session and record it."""
    timer = _timer(ctx)
    with _reported_errors():
        session = timer.status().session
        result = timer.stop()
    typer.echo("✓ Session stopped")
    for line in stop_lines(session, result):
        typer.echo(line)


@session_app.command("pause")
def session_pause(ctx: typer.Context) -> None:
    """Pause the running session."""
    timer = _timer(ctx)
    with _reported_errors():
        session = timer.pause()
    typer.echo("⏸ Session paused")
    typer.echo(f"  Task: {session.task_name}")
    typer.echo(f"  Elapsed: {format_duration(timer.elapsed(session))}")


@session_app.command("resume")
def session_resume(ctx: typer.Context) -> None:
    """Resume the paused session."""
    timer = _timer(ctx)
    with _reported_errors():
        session = timer.resume()
    typer.echo("▶ Session resumed")
    typer.echo(f"  Task: {session.task_name}")
    typer.echo(f"  Elapsed: {format_duration(timer.elapsed(session))}")


@session_app.command("status")
def session_status(ctx: typer.Context) -> None:
    """Show the running session, if any."""
    with _reported_errors():
        snapshot = _timer(ctx).status()
    typer.echo("⏱ Session Status")
    for line in session_lines(snapshot.session, snapshot.elapsed):
        typer.echo(line)


@app.command()
def summary(
    ctx: typer.Context,
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
) -> None:
    """Print a per-task summary for a specific day."""
    settings: AppSettings = ctx.obj or AppSettings()
    with _reported_errors():
        target = datetime.strptime(date, "%Y-%m-%d").date() if date else today()
        SummaryPrinter(data_dir=settings.data_dir).print_daily_summary(target)


@app.command()
def web(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    poll_seconds: Optional[float] = typer.Option(
        None,
        "--interval",
        min=0.1,
        max=1.0,
        help="Seconds between checks for changes made by other processes.",
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically launch the dashboard in your default browser.",
    ),
) -> None:
    """Start the local dashboard."""
    from .server_runner import run_dashboard

    settings: AppSettings = ctx.obj or AppSettings()
    if poll_seconds is not None:
        settings = AppSettings.from_intervals(
            poll_seconds=poll_seconds,
            data_dir=settings.data_dir,
            history_depth=settings.history_depth,
        )
    run_dashboard(
        host=host,
        port=port,
        data_dir=settings.data_dir,
        settings=settings,
        open_browser=open_browser,
    )
