"""Per-date accounting records for each vibe."""

from __future__ import annotations

from typing import Optional

from .gateway import LedgerGateway
from .models import LedgerEntry


class DailyLedger:
    """Read and write ledger entries through a persistence gateway."""

    def __init__(self, gateway: LedgerGateway) -> None:
        self._gateway = gateway

    def get(self, date: str) -> list[LedgerEntry]:
        """Return one entry per registered vibe, then orphaned rows.

        Missing entries are zero-seeded in memory only; they are written the
        first time an operation changes them.
        """
        stored = {
            row["vibe_id"]: LedgerEntry.from_row(row) for row in self._gateway.read(date)
        }
        entries: list[LedgerEntry] = []
        for vibe in self._gateway.list_vibes():
            entry = stored.pop(vibe.id, None)
            entries.append(entry if entry is not None else LedgerEntry.zero(date, vibe))
        orphans = sorted(stored.values(), key=lambda entry: entry.name.casefold())
        return entries + orphans

    def find(self, date: str, vibe_id: str) -> Optional[LedgerEntry]:
        for entry in self.get(date):
            if entry.vibe_id == vibe_id:
                return entry
        return None

    def is_stored(self, date: str, vibe_id: str) -> bool:
        return any(row["vibe_id"] == vibe_id for row in self._gateway.read(date))

    def upsert(self, date: str, entry: LedgerEntry) -> None:
        fields = entry.to_row()
        if self.is_stored(date, entry.vibe_id):
            self._gateway.update(date, entry.vibe_id, fields)
        else:
            self._gateway.create(date, entry.vibe_id, fields)

    def remove(self, date: str, vibe_id: str) -> bool:
        if not self.is_stored(date, vibe_id):
            return False
        self._gateway.delete(date, vibe_id)
        return True

    def running(self) -> list[LedgerEntry]:
        """Every stored entry with a live session, on any date."""
        return [LedgerEntry.from_row(row) for row in self._gateway.read_running()]

    def dates(self) -> list[str]:
        return self._gateway.list_dates()
