"""Timer state machine: at most one vibe runs at any time."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional, Union

from .errors import NotFoundError, ReadOnlyPeriodError
from .gateway import LedgerGateway
from .ledger import DailyLedger
from .models import LedgerEntry, Vibe
from .normalization import name_key
from .registry import VibeRegistry
from .timeutils import Clock, date_key, format_duration, now_ms, parse_date_key

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime]


class VibeTracker:
    """Start, stop and reset vibe timers against the daily ledger.

    Only today's ledger accepts timer changes; other dates are view only.
    All writes run under one lock and inside a gateway batch, so concurrent
    callers cannot both observe "nothing is running" and a failed write
    leaves the stored state as it was.
    """

    def __init__(self, gateway: LedgerGateway, *, clock: Optional[Clock] = None) -> None:
        self.gateway = gateway
        self._clock: Clock = clock or datetime.now
        self.ledger = DailyLedger(gateway)
        self.registry = VibeRegistry(gateway, self.ledger)
        self._lock = threading.RLock()
        self._selected_date = self.today

    @property
    def today(self) -> str:
        return date_key(self._clock())

    @property
    def selected_date(self) -> str:
        return self._selected_date

    def set_selected_date(self, value: DateLike) -> None:
        self._selected_date = _to_date_key(value)
        logger.debug("Selected date is now %s", self._selected_date)

    @property
    def is_today(self) -> bool:
        return self._selected_date == self.today

    @property
    def selected_date_vibes(self) -> list[LedgerEntry]:
        return self.ledger.get(self._selected_date)

    @property
    def running_vibe(self) -> Optional[LedgerEntry]:
        running = self.ledger.running()
        if len(running) > 1:
            logger.warning(
                "%d timers are marked running; the next start will stop them all",
                len(running),
            )
        return running[0] if running else None

    def now_ms(self) -> int:
        return now_ms(self._clock)

    def vibes_for(self, day: Optional[DateLike] = None) -> list[LedgerEntry]:
        return self.ledger.get(self._resolve_date(day))

    def resolve(self, reference: str, day: Optional[DateLike] = None) -> LedgerEntry:
        """Find an entry by vibe id or by case-insensitive name."""
        entries = self.vibes_for(day)
        for entry in entries:
            if entry.vibe_id == reference:
                return entry
        key = name_key(reference)
        for entry in entries:
            if name_key(entry.name) == key:
                return entry
        raise NotFoundError(f'No vibe matching "{reference}".')

    def create_vibe(
        self, name: str, color: Optional[str] = None, *, day: Optional[DateLike] = None
    ) -> Vibe:
        target = self._resolve_date(day)
        with self._write(target, "add vibes"):
            return self.registry.create(name, color, date=target)

    def rename_or_recolor(
        self,
        vibe_id: str,
        new_name: Optional[str] = None,
        new_color: Optional[str] = None,
        *,
        day: Optional[DateLike] = None,
    ) -> LedgerEntry:
        target = self._resolve_date(day)
        with self._lock, self.gateway.batch():
            return self.registry.rename_or_recolor(
                vibe_id, new_name, new_color, date=target, today=self.today
            )

    def delete_vibe(self, vibe_id: str, *, day: Optional[DateLike] = None) -> None:
        """Delete a vibe; its running session is stopped first, whatever its date."""
        target = self._resolve_date(day)
        with self._lock, self.gateway.batch():
            now = self.now_ms()
            for running in self.ledger.running():
                if running.vibe_id == vibe_id:
                    self._bank(running, now)
            self.registry.delete(vibe_id, date=target)

    def start(self, vibe_id: str, *, day: Optional[DateLike] = None) -> LedgerEntry:
        target_day = self._resolve_date(day)
        with self._write(target_day, "start timers"):
            target = self.ledger.find(target_day, vibe_id)
            if target is None:
                raise NotFoundError(f"Could not find vibe {vibe_id} to start.")
            if target.is_running:
                logger.debug("%r is already running", target.name)
                return target

            now = self.now_ms()
            for running in self.ledger.running():
                self._bank(running, now)
            started = target.started(now)
            self.ledger.upsert(target_day, started)
            logger.info("Started %r on %s", started.name, target_day)
            return started

    def stop(self, vibe_id: str, *, day: Optional[DateLike] = None) -> LedgerEntry:
        target_day = self._resolve_date(day)
        with self._write(target_day, "stop timers"):
            target = self.ledger.find(target_day, vibe_id)
            if target is None:
                raise NotFoundError(f"Could not find vibe {vibe_id} to stop.")
            if not target.is_running:
                return target
            return self._bank(target, self.now_ms())

    def reset_all(self, day: Optional[DateLike] = None) -> list[LedgerEntry]:
        """Zero every entry on the date; running sessions are discarded."""
        target_day = self._resolve_date(day)
        with self._write(target_day, "reset timers"):
            for entry in self.ledger.get(target_day):
                if self.ledger.is_stored(target_day, entry.vibe_id):
                    self.ledger.upsert(target_day, entry.cleared())
            logger.info("Reset all timers for %s", target_day)
            return self.ledger.get(target_day)

    def _bank(self, entry: LedgerEntry, now: int) -> LedgerEntry:
        stopped = entry.stopped(now)
        self.ledger.upsert(entry.date, stopped)
        logger.info(
            "Stopped %r on %s after %s (total %s)",
            entry.name,
            entry.date,
            format_duration(stopped.total_time - entry.total_time),
            format_duration(stopped.total_time),
        )
        return stopped

    def _resolve_date(self, day: Optional[DateLike]) -> str:
        return self._selected_date if day is None else _to_date_key(day)

    @contextmanager
    def _write(self, day: str, action: str) -> Iterator[None]:
        with self._lock:
            if day != self.today:
                logger.info("Rejected attempt to %s on %s", action, day)
                raise ReadOnlyPeriodError(day, action)
            with self.gateway.batch():
                yield


def _to_date_key(value: DateLike) -> str:
    if isinstance(value, str):
        return date_key(parse_date_key(value))
    return date_key(value)
