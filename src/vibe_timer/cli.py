"""Command-line interface for the vibe timer."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, Optional

import typer

from .colors import PALETTE
from .config import BACKENDS, TrackerSettings
from .errors import NotFoundError, VibeError
from .gateway import open_gateway
from .reporting import SummaryPrinter, render_board, summarize
from .ticker import Ticker
from .timeutils import format_duration
from .tracker import VibeTracker

app = typer.Typer(help="Track your day against named vibes.")

logger = logging.getLogger(__name__)


@app.callback(no_args_is_help=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        envvar="VIBE_TIMER_DB",
        path_type=Path,
        help="Location of the vibe SQLite database.",
    ),
    backend: str = typer.Option(
        "sqlite",
        "--backend",
        envvar="VIBE_TIMER_BACKEND",
        help=f"Storage backend ({', '.join(BACKENDS)}).",
    ),
    ephemeral: bool = typer.Option(
        False, "--ephemeral", help="Keep everything in memory for this run."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        ctx.obj = TrackerSettings.from_options(
            db_path, ephemeral=ephemeral, backend=backend
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--backend") from exc


@contextmanager
def _user_errors() -> Iterator[None]:
    """Show domain failures as a notice instead of a traceback."""
    try:
        yield
    except VibeError as exc:
        logger.debug("Command failed: %s", exc.kind)
        typer.secho(exc.message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _tracker(ctx: typer.Context, date: Optional[str] = None) -> VibeTracker:
    settings: TrackerSettings = ctx.obj
    tracker = VibeTracker(open_gateway(settings))
    if date:
        try:
            tracker.set_selected_date(date)
        except ValueError as exc:
            raise typer.BadParameter("Use YYYY-MM-DD.", param_hint="--date") from exc
    return tracker


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the new vibe."),
    color: Optional[str] = typer.Option(
        None, "--color", "-c", help="Palette name or hex color."
    ),
) -> None:
    """Add a vibe to today's board."""
    with _user_errors():
        tracker = _tracker(ctx)
        vibe = tracker.create_vibe(name, color)
    typer.echo(f'Added "{vibe.name}" ({vibe.color}).')


@app.command()
def edit(
    ctx: typer.Context,
    vibe: str = typer.Argument(..., help="Vibe id or name."),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New name."),
    color: Optional[str] = typer.Option(None, "--color", "-c", help="New color."),
    date: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD)."),
) -> None:
    """Rename or recolor a vibe."""
    if name is None and color is None:
        raise typer.BadParameter("Pass --name and/or --color.")
    with _user_errors():
        tracker = _tracker(ctx, date)
        entry = tracker.resolve(vibe)
        updated = tracker.rename_or_recolor(entry.vibe_id, name, color)
    typer.echo(f'Updated "{updated.name}" ({updated.color}).')


@app.command()
def delete(
    ctx: typer.Context,
    vibe: str = typer.Argument(..., help="Vibe id or name."),
    date: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD)."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a vibe and its time on the selected date."""
    with _user_errors():
        tracker = _tracker(ctx, date)
        entry = tracker.resolve(vibe)
        if not yes:
            typer.confirm(f'Delete "{entry.name}"?', abort=True)
        tracker.delete_vibe(entry.vibe_id)
    typer.echo(f'Deleted "{entry.name}".')


@app.command()
def start(
    ctx: typer.Context,
    vibe: str = typer.Argument(..., help="Vibe id or name."),
) -> None:
    """Start a vibe's timer, stopping whichever one is running."""
    with _user_errors():
        tracker = _tracker(ctx)
        previous = tracker.running_vibe
        entry = tracker.start(tracker.resolve(vibe).vibe_id)
    if previous and previous.vibe_id != entry.vibe_id:
        typer.echo(f'Stopped "{previous.name}".')
    typer.echo(f'Started "{entry.name}" (today {format_duration(entry.total_time)}).')


@app.command()
def stop(
    ctx: typer.Context,
    vibe: Optional[str] = typer.Argument(None, help="Vibe id or name; defaults to the running one."),
) -> None:
    """Stop a running timer."""
    with _user_errors():
        tracker = _tracker(ctx)
        if vibe is None:
            running = tracker.running_vibe
            if running is None:
                raise NotFoundError("No timer is running.")
            entry = tracker.stop(running.vibe_id, day=running.date)
        else:
            entry = tracker.stop(tracker.resolve(vibe).vibe_id)
    typer.echo(f'"{entry.name}" stopped at {format_duration(entry.total_time)}.')


@app.command()
def reset(
    ctx: typer.Context,
    date: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD)."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Zero every timer for the day."""
    with _user_errors():
        tracker = _tracker(ctx, date)
        if not yes:
            typer.confirm(f"Reset all timers for {tracker.selected_date}?", abort=True)
        tracker.reset_all()
    typer.echo(f"All timers reset for {tracker.selected_date}.")


@app.command("list")
def list_vibes(
    ctx: typer.Context,
    date: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD)."),
) -> None:
    """Show every vibe with its time for the day."""
    with _user_errors():
        tracker = _tracker(ctx, date)
        typer.echo(_board_text(tracker))


@app.command()
def summary(
    ctx: typer.Context,
    date: Optional[str] = typer.Option(
        None, "--date", help="Date (YYYY-MM-DD) to summarize. Defaults to today."
    ),
    ascending: bool = typer.Option(False, "--ascending", help="Smallest first."),
) -> None:
    """Print how the day's time was distributed."""
    with _user_errors():
        tracker = _tracker(ctx, date)
        result = summarize(
            tracker.selected_date,
            tracker.selected_date_vibes,
            tracker.now_ms(),
            ascending=ascending,
        )
    SummaryPrinter().print_daily_summary(result)


@app.command()
def watch(
    ctx: typer.Context,
    interval: float = typer.Option(
        1.0, "--interval", min=0.2, help="Refresh interval in seconds."
    ),
) -> None:
    """Redraw today's board every second until interrupted."""
    with _user_errors():
        tracker = _tracker(ctx)

    def redraw() -> None:
        typer.clear()
        typer.echo(_watch_frame(tracker))
        typer.echo("\nCtrl-C to exit.")

    ticker = Ticker(redraw, timedelta(seconds=interval))
    ticker.start()
    try:
        while ticker.is_running():
            ticker.wait(timeout=0.5)
    except KeyboardInterrupt:
        pass
    finally:
        ticker.stop()


@app.command()
def web(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Open the API docs in your default browser.",
    ),
) -> None:
    """Serve the JSON API."""
    from .server_runner import run_dashboard

    settings = replace(ctx.obj, host=host, port=port)
    run_dashboard(settings=settings, open_browser=open_browser)


@app.command()
def palette() -> None:
    """List the built-in colors."""
    for name, hex_value in PALETTE:
        typer.echo(f"  {name:<10} {hex_value}")


def _watch_frame(tracker: VibeTracker) -> str:
    # Follow the calendar across midnight.
    tracker.set_selected_date(tracker.today)
    return _board_text(tracker)


def _board_text(tracker: VibeTracker) -> str:
    day = tracker.selected_date
    stamp = datetime.now().strftime("%H:%M:%S")
    header = f"Vibes for {day}" + ("" if tracker.is_today else " (view only)")
    return f"{header}  [{stamp}]\n{render_board(tracker.selected_date_vibes, tracker.now_ms())}"
