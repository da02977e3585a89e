"""Daily summaries for the console and the summary API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .colors import chart_color
from .models import LedgerEntry
from .timeutils import format_duration, now_ms


@dataclass(slots=True)
class VibeShare:
    vibe_id: str
    name: str
    color: str
    seconds: int
    percentage: float
    is_running: bool


@dataclass(slots=True)
class DaySummary:
    date: str
    total_seconds: int
    shares: list[VibeShare]


def summarize(
    date: str,
    entries: Iterable[LedgerEntry],
    now: Optional[int] = None,
    *,
    ascending: bool = False,
) -> DaySummary:
    """Live time per vibe for one date, skipping vibes with no time.

    Running sessions count up to ``now``; percentages are of the day total.
    """
    current = now if now is not None else now_ms()
    timed = [(entry, entry.display_seconds(current)) for entry in entries]
    timed = [(entry, seconds) for entry, seconds in timed if seconds > 0]
    total = sum(seconds for _, seconds in timed)
    timed.sort(key=lambda item: item[1], reverse=not ascending)
    shares = [
        VibeShare(
            vibe_id=entry.vibe_id,
            name=entry.name,
            color=chart_color(entry.vibe_id, entry.name, entry.color),
            seconds=seconds,
            percentage=(seconds / total * 100.0) if total else 0.0,
            is_running=entry.is_running,
        )
        for entry, seconds in timed
    ]
    return DaySummary(date=date, total_seconds=total, shares=shares)


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def print_daily_summary(self, summary: DaySummary) -> None:
        if not summary.shares:
            print(f"No time tracked on {summary.date}.")
            return

        print(f"Summary for {summary.date}")
        print("-" * 40)
        for share in summary.shares:
            marker = "*" if share.is_running else " "
            print(
                f"{marker} {share.name[:24]:<24} {format_duration(share.seconds)}"
                f" {share.percentage:5.1f}%"
            )
        print("-" * 40)
        print(f"  {'Total':<24} {format_duration(summary.total_seconds)}")


def render_board(entries: Iterable[LedgerEntry], now: Optional[int] = None) -> str:
    """One line per vibe: total time, and the live session when running."""
    current = now if now is not None else now_ms()
    lines: list[str] = []
    for entry in entries:
        line = f"  {entry.name[:24]:<24} {format_duration(entry.display_seconds(current))}"
        if entry.is_running:
            session = format_duration(entry.session_seconds(current))
            line += f"  running (session {session})"
        lines.append(line)
    if not lines:
        return "  No vibes yet. Add one with `vibe-timer add NAME`."
    return "\n".join(lines)
