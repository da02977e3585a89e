"""Persistence gateways for ledger rows and vibe definitions.

The tracker only talks to the narrow :class:`LedgerGateway` contract, so the
SQLite store and the in-memory store are interchangeable.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from copy import deepcopy
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Protocol

from .config import TrackerSettings
from .db import (
    SESSION_FIELDS,
    database_connection,
    delete_session,
    delete_vibe,
    fetch_running_sessions,
    fetch_session_dates,
    fetch_sessions_for_day,
    fetch_vibes,
    insert_session,
    insert_vibe,
    transaction,
    update_session,
    update_vibe,
)
from .errors import NotFoundError, PersistenceError
from .models import Vibe

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class LedgerGateway(Protocol):
    name: str

    def create(self, date: str, vibe_id: str, fields: Mapping[str, Any]) -> None: ...

    def read(self, date: str) -> list[Row]: ...

    def read_running(self) -> list[Row]: ...

    def list_dates(self) -> list[str]: ...

    def update(self, date: str, vibe_id: str, fields: Mapping[str, Any]) -> None: ...

    def delete(self, date: str, vibe_id: str) -> None: ...

    def list_vibes(self) -> list[Vibe]: ...

    def create_vibe(self, vibe: Vibe) -> None: ...

    def update_vibe(
        self, vibe_id: str, *, name: Optional[str] = None, color: Optional[str] = None
    ) -> None: ...

    def delete_vibe(self, vibe_id: str) -> None: ...

    def batch(self) -> Any: ...

    def describe(self) -> str: ...


def _session_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - set(SESSION_FIELDS) - {"date", "vibe_id"}
    if unknown:
        raise ValueError(f"Unknown session fields: {', '.join(sorted(unknown))}")
    return {key: value for key, value in fields.items() if key in SESSION_FIELDS}


def _missing_entry(date: str, vibe_id: str) -> NotFoundError:
    return NotFoundError(f"No ledger entry for vibe {vibe_id} on {date}.")


class SqliteGateway:
    """Gateway backed by a local SQLite file."""

    name = "sqlite"

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._local = threading.local()
        with self._connection():
            pass

    def describe(self) -> str:
        return str(self.db_path)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Run the enclosed gateway calls in a single transaction."""
        if getattr(self._local, "conn", None) is not None:
            yield
            return
        with self._translate_errors(), database_connection(
            self.db_path, check_same_thread=False
        ) as conn, transaction(conn):
            self._local.conn = conn
            try:
                yield
            finally:
                self._local.conn = None

    def create(self, date: str, vibe_id: str, fields: Mapping[str, Any]) -> None:
        with self._connection() as conn:
            insert_session(conn, date, vibe_id, _session_fields(fields))
        logger.debug("Created session row date=%s vibe=%s", date, vibe_id)

    def read(self, date: str) -> list[Row]:
        with self._connection() as conn:
            return [dict(row) for row in fetch_sessions_for_day(conn, date)]

    def read_running(self) -> list[Row]:
        with self._connection() as conn:
            return [dict(row) for row in fetch_running_sessions(conn)]

    def list_dates(self) -> list[str]:
        with self._connection() as conn:
            return fetch_session_dates(conn)

    def update(self, date: str, vibe_id: str, fields: Mapping[str, Any]) -> None:
        with self._connection() as conn:
            try:
                update_session(conn, date, vibe_id, **_session_fields(fields))
            except ValueError as exc:
                raise _missing_entry(date, vibe_id) from exc

    def delete(self, date: str, vibe_id: str) -> None:
        with self._connection() as conn:
            try:
                delete_session(conn, date, vibe_id)
            except ValueError as exc:
                raise _missing_entry(date, vibe_id) from exc

    def list_vibes(self) -> list[Vibe]:
        with self._connection() as conn:
            return [
                Vibe(
                    id=row["id"],
                    name=row["name"],
                    color=row["color"],
                    created_at=row["created_at"],
                )
                for row in fetch_vibes(conn)
            ]

    def create_vibe(self, vibe: Vibe) -> None:
        with self._connection() as conn:
            insert_vibe(conn, vibe.id, vibe.name, vibe.color)

    def update_vibe(
        self, vibe_id: str, *, name: Optional[str] = None, color: Optional[str] = None
    ) -> None:
        with self._connection() as conn:
            try:
                update_vibe(conn, vibe_id, name=name, color=color)
            except ValueError as exc:
                raise NotFoundError(f"No vibe with id {vibe_id}.") from exc

    def delete_vibe(self, vibe_id: str) -> None:
        with self._connection() as conn:
            try:
                delete_vibe(conn, vibe_id)
            except ValueError as exc:
                raise NotFoundError(f"No vibe with id {vibe_id}.") from exc

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return
        with self._translate_errors(), database_connection(self.db_path) as conn:
            yield conn

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            logger.exception("SQLite operation failed on %s", self.db_path)
            raise PersistenceError(f"Could not save to {self.db_path}: {exc}") from exc


class MemoryGateway:
    """Process-local gateway; nothing survives a restart."""

    name = "memory"

    def __init__(self) -> None:
        self._sessions: dict[tuple[str, str], Row] = {}
        self._vibes: list[Vibe] = []
        self._lock = threading.RLock()
        self._depth = 0

    def describe(self) -> str:
        return "in-memory"

    @contextmanager
    def batch(self) -> Iterator[None]:
        with self._lock:
            snapshot = deepcopy((self._sessions, self._vibes)) if self._depth == 0 else None
            self._depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._sessions, self._vibes = snapshot
                raise
            finally:
                self._depth -= 1

    def create(self, date: str, vibe_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            key = (date, vibe_id)
            if key in self._sessions:
                raise PersistenceError(f"Entry for vibe {vibe_id} on {date} already exists.")
            values = _session_fields(fields)
            self._sessions[key] = {
                "date": date,
                "vibe_id": vibe_id,
                "name": values["name"],
                "color": values["color"],
                "total_time": int(values.get("total_time", 0)),
                "is_running": bool(values.get("is_running", False)),
                "start_time": values.get("start_time"),
            }

    def read(self, date: str) -> list[Row]:
        with self._lock:
            return [dict(row) for (day, _), row in self._sessions.items() if day == date]

    def read_running(self) -> list[Row]:
        with self._lock:
            rows = [dict(row) for row in self._sessions.values() if row["is_running"]]
        return sorted(rows, key=lambda row: row["date"])

    def list_dates(self) -> list[str]:
        with self._lock:
            return sorted({day for day, _ in self._sessions}, reverse=True)

    def update(self, date: str, vibe_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            row = self._sessions.get((date, vibe_id))
            if row is None:
                raise _missing_entry(date, vibe_id)
            row.update(_session_fields(fields))

    def delete(self, date: str, vibe_id: str) -> None:
        with self._lock:
            if self._sessions.pop((date, vibe_id), None) is None:
                raise _missing_entry(date, vibe_id)

    def list_vibes(self) -> list[Vibe]:
        with self._lock:
            return [deepcopy(vibe) for vibe in self._vibes]

    def create_vibe(self, vibe: Vibe) -> None:
        with self._lock:
            if any(existing.id == vibe.id for existing in self._vibes):
                raise PersistenceError(f"Vibe {vibe.id} already exists.")
            self._vibes.append(deepcopy(vibe))

    def update_vibe(
        self, vibe_id: str, *, name: Optional[str] = None, color: Optional[str] = None
    ) -> None:
        with self._lock:
            vibe = self._find_vibe(vibe_id)
            if name is not None:
                vibe.name = name
            if color is not None:
                vibe.color = color

    def delete_vibe(self, vibe_id: str) -> None:
        with self._lock:
            self._vibes.remove(self._find_vibe(vibe_id))

    def _find_vibe(self, vibe_id: str) -> Vibe:
        for vibe in self._vibes:
            if vibe.id == vibe_id:
                return vibe
        raise NotFoundError(f"No vibe with id {vibe_id}.")


def open_gateway(settings: TrackerSettings) -> LedgerGateway:
    if settings.backend == "memory":
        logger.info("Using in-memory storage; data will not be saved.")
        return MemoryGateway()
    logger.debug("Using SQLite storage at %s", settings.db_path)
    return SqliteGateway(settings.db_path)
