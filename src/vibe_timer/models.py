"""Domain models for vibes and their per-date ledger entries."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from .timeutils import elapsed_seconds


@dataclass(slots=True)
class Vibe:
    """A named activity that time is tracked against."""

    id: str
    name: str
    color: str
    created_at: Optional[str] = None


@dataclass(slots=True)
class LedgerEntry:
    """Accumulated time and running state of one vibe on one date.

    ``start_time`` is epoch milliseconds and is set exactly when
    ``is_running`` is true. Session time is always derived from it.
    """

    date: str
    vibe_id: str
    name: str
    color: str
    total_time: int = 0
    is_running: bool = False
    start_time: Optional[int] = None

    @classmethod
    def zero(cls, date: str, vibe: Vibe) -> "LedgerEntry":
        return cls(date=date, vibe_id=vibe.id, name=vibe.name, color=vibe.color)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LedgerEntry":
        start_time = row["start_time"]
        return cls(
            date=row["date"],
            vibe_id=row["vibe_id"],
            name=row["name"],
            color=row["color"],
            total_time=int(row["total_time"] or 0),
            is_running=bool(row["is_running"]),
            start_time=int(start_time) if start_time is not None else None,
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "vibe_id": self.vibe_id,
            "name": self.name,
            "color": self.color,
            "total_time": self.total_time,
            "is_running": self.is_running,
            "start_time": self.start_time,
        }

    def session_seconds(self, now: Optional[int] = None) -> int:
        if not self.is_running:
            return 0
        return elapsed_seconds(self.start_time, now)

    def display_seconds(self, now: Optional[int] = None) -> int:
        return self.total_time + self.session_seconds(now)

    def started(self, at: int) -> "LedgerEntry":
        return replace(self, is_running=True, start_time=at)

    def stopped(self, at: int) -> "LedgerEntry":
        """Bank the running session into ``total_time`` and stop."""
        return replace(
            self,
            total_time=self.total_time + self.session_seconds(at),
            is_running=False,
            start_time=None,
        )

    def cleared(self) -> "LedgerEntry":
        return replace(self, total_time=0, is_running=False, start_time=None)
