"""The user's set of named, colored vibes."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from .colors import keyword_color, next_palette_color
from .errors import DuplicateNameError, InvalidVibeError, NotFoundError
from .gateway import LedgerGateway
from .ledger import DailyLedger
from .models import LedgerEntry, Vibe
from .normalization import name_key, normalize_color, normalize_vibe_name

logger = logging.getLogger(__name__)


class VibeRegistry:
    def __init__(self, gateway: LedgerGateway, ledger: DailyLedger) -> None:
        self._gateway = gateway
        self._ledger = ledger

    def list_vibes(self) -> list[Vibe]:
        return self._gateway.list_vibes()

    def find(self, vibe_id: str) -> Optional[Vibe]:
        for vibe in self.list_vibes():
            if vibe.id == vibe_id:
                return vibe
        return None

    def find_by_name(self, name: str) -> Optional[Vibe]:
        key = name_key(name)
        for vibe in self.list_vibes():
            if name_key(vibe.name) == key:
                return vibe
        return None

    def create(self, name: str, color: Optional[str], *, date: str) -> Vibe:
        """Register a vibe and seed a zero entry for ``date``.

        Names are unique case-insensitively across the registry and the
        entries already recorded on ``date``.
        """
        clean_name = normalize_vibe_name(name)
        if not clean_name:
            raise InvalidVibeError("A vibe needs a name.")
        key = name_key(clean_name)
        taken = [vibe.name for vibe in self.list_vibes()]
        taken.extend(entry.name for entry in self._ledger.get(date))
        if any(name_key(existing) == key for existing in taken):
            raise DuplicateNameError(clean_name)

        vibe_id = str(uuid.uuid4())
        resolved_color = (
            normalize_color(color)
            or keyword_color(clean_name)
            or next_palette_color(vibe.color for vibe in self.list_vibes())
        )
        vibe = Vibe(id=vibe_id, name=clean_name, color=resolved_color)
        self._gateway.create_vibe(vibe)
        self._ledger.upsert(date, LedgerEntry.zero(date, vibe))
        logger.info("Vibe %r (%s) created", vibe.name, vibe.id)
        return vibe

    def rename_or_recolor(
        self,
        vibe_id: str,
        new_name: Optional[str],
        new_color: Optional[str],
        *,
        date: str,
        today: Optional[str] = None,
    ) -> LedgerEntry:
        """Edit a vibe in place; other vibes' names are not re-checked.

        When the vibe is still registered, today's stored entry follows the
        new definition as well, so the live board and the registry agree.
        """
        clean_name: Optional[str] = None
        if new_name is not None:
            clean_name = normalize_vibe_name(new_name)
            if not clean_name:
                raise InvalidVibeError("A vibe needs a name.")
        clean_color = normalize_color(new_color)

        entry = self._ledger.find(date, vibe_id)
        if entry is None:
            raise NotFoundError(f"Could not find vibe {vibe_id} to edit.")

        days = [date]
        if self.find(vibe_id) is not None:
            self._gateway.update_vibe(vibe_id, name=clean_name, color=clean_color)
            if today is not None and today != date:
                days.append(today)
        for day in days:
            current = entry if day == date else self._ledger.find(day, vibe_id)
            if current is None:
                continue
            if clean_name is not None:
                current.name = clean_name
            if clean_color is not None:
                current.color = clean_color
            if self._ledger.is_stored(day, vibe_id):
                self._ledger.upsert(day, current)
        logger.info("Vibe %s updated: name=%r color=%s", vibe_id, entry.name, entry.color)
        return entry

    def delete(self, vibe_id: str, *, date: str) -> None:
        """Forget the vibe and drop its entry on ``date``.

        Entries on other dates are kept as history.
        """
        vibe = self.find(vibe_id)
        removed = self._ledger.remove(date, vibe_id)
        if vibe is None and not removed:
            raise NotFoundError(f"Could not find vibe {vibe_id} to delete.")
        if vibe is not None:
            self._gateway.delete_vibe(vibe_id)
        logger.info("Vibe %s deleted for %s", vibe_id, date)
