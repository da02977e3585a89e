"""SQLite database layer for vibes and their per-date sessions."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

_UNSET = object()

SESSION_FIELDS = ("name", "color", "total_time", "is_running", "start_time")


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Group statements on an autocommit connection into one transaction."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS vibes (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            color TEXT NOT NULL,
            created_at TEXT NOT NULL,
            position INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS vibe_sessions (
            date TEXT NOT NULL,
            vibe_id TEXT NOT NULL,
            name TEXT NOT NULL,
            color TEXT NOT NULL,
            total_time INTEGER NOT NULL DEFAULT 0 CHECK (total_time >= 0),
            is_running INTEGER NOT NULL DEFAULT 0,
            start_time INTEGER,
            PRIMARY KEY (date, vibe_id)
        );

        CREATE INDEX IF NOT EXISTS idx_sessions_running
            ON vibe_sessions(is_running);
        """
    )


def fetch_vibes(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return list(
        conn.execute(
            "SELECT id, name, color, created_at FROM vibes ORDER BY position, created_at"
        )
    )


def insert_vibe(
    conn: sqlite3.Connection,
    vibe_id: str,
    name: str,
    color: str,
    *,
    created_at: Optional[datetime] = None,
) -> None:
    stamp = (created_at or datetime.now()).strftime(DATETIME_FMT)
    conn.execute(
        """
        INSERT INTO vibes (id, name, color, created_at, position)
        VALUES (?, ?, ?, ?, (SELECT COALESCE(MAX(position), -1) + 1 FROM vibes))
        """,
        (vibe_id, name, color, stamp),
    )


def update_vibe(
    conn: sqlite3.Connection,
    vibe_id: str,
    *,
    name: Optional[str] = None,
    color: Optional[str] = None,
) -> None:
    fields: list[str] = []
    params: list[object] = []
    if name is not None:
        fields.append("name = ?")
        params.append(name)
    if color is not None:
        fields.append("color = ?")
        params.append(color)
    if not fields:
        return
    params.append(vibe_id)
    cur = conn.execute(f"UPDATE vibes SET {', '.join(fields)} WHERE id = ?", params)
    if cur.rowcount == 0:
        raise ValueError(f"No vibe found for id={vibe_id}")


def delete_vibe(conn: sqlite3.Connection, vibe_id: str) -> None:
    cur = conn.execute("DELETE FROM vibes WHERE id = ?", (vibe_id,))
    if cur.rowcount == 0:
        raise ValueError(f"No vibe found for id={vibe_id}")


def insert_session(
    conn: sqlite3.Connection, date: str, vibe_id: str, fields: Mapping[str, Any]
) -> None:
    conn.execute(
        """
        INSERT INTO vibe_sessions (
            date,
            vibe_id,
            name,
            color,
            total_time,
            is_running,
            start_time
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            date,
            vibe_id,
            fields["name"],
            fields["color"],
            int(fields.get("total_time", 0)),
            1 if fields.get("is_running") else 0,
            fields.get("start_time"),
        ),
    )


def fetch_sessions_for_day(conn: sqlite3.Connection, date: str) -> list[sqlite3.Row]:
    """Fetch every stored session row for the provided date key."""
    return list(
        conn.execute(
            """
            SELECT date, vibe_id, name, color, total_time, is_running, start_time
            FROM vibe_sessions
            WHERE date = ?
            ORDER BY rowid;
            """,
            (date,),
        )
    )


def fetch_running_sessions(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return list(
        conn.execute(
            """
            SELECT date, vibe_id, name, color, total_time, is_running, start_time
            FROM vibe_sessions
            WHERE is_running = 1
            ORDER BY date, rowid;
            """
        )
    )


def fetch_session_dates(conn: sqlite3.Connection) -> list[str]:
    return [
        row["date"]
        for row in conn.execute(
            "SELECT DISTINCT date FROM vibe_sessions ORDER BY date DESC"
        )
    ]


def update_session(
    conn: sqlite3.Connection,
    date: str,
    vibe_id: str,
    *,
    name: object = _UNSET,
    color: object = _UNSET,
    total_time: Optional[int] = None,
    is_running: Optional[bool] = None,
    start_time: object = _UNSET,
) -> None:
    """Update a single session row."""
    fields: list[str] = []
    params: list[object] = []

    if name is not _UNSET:
        fields.append("name = ?")
        params.append(name)
    if color is not _UNSET:
        fields.append("color = ?")
        params.append(color)
    if total_time is not None:
        fields.append("total_time = ?")
        params.append(int(total_time))
    if is_running is not None:
        fields.append("is_running = ?")
        params.append(1 if is_running else 0)
    if start_time is not _UNSET:
        fields.append("start_time = ?")
        params.append(start_time)

    if not fields:
        return

    params.extend([date, vibe_id])
    cur = conn.execute(
        f"UPDATE vibe_sessions SET {', '.join(fields)} WHERE date = ? AND vibe_id = ?",
        params,
    )
    if cur.rowcount == 0:
        raise ValueError(f"No session found for date={date} vibe_id={vibe_id}")


def delete_session(conn: sqlite3.Connection, date: str, vibe_id: str) -> None:
    cur = conn.execute(
        "DELETE FROM vibe_sessions WHERE date = ? AND vibe_id = ?", (date, vibe_id)
    )
    if cur.rowcount == 0:
        raise ValueError(f"No session found for date={date} vibe_id={vibe_id}")
