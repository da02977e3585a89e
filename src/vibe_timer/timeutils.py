"""Time arithmetic shared by the ledger, the reports and the web API."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Callable, Optional, Union

DATE_FMT = "%Y-%m-%d"

Clock = Callable[[], datetime]

_DURATION_PATTERN = re.compile(r"^(\d+):([0-5]\d):([0-5]\d)$")


def now_ms(clock: Optional[Clock] = None) -> int:
    """Return the current instant as epoch milliseconds."""
    current = clock() if clock is not None else datetime.now()
    return int(current.timestamp() * 1000)


def elapsed_seconds(start_time: Optional[int], now: Optional[int] = None) -> int:
    """Whole seconds since ``start_time`` (epoch ms), truncated.

    The wall clock is read on every call unless ``now`` is given, so a running
    session reports an increasing value.
    """
    if not start_time:
        return 0
    current = now if now is not None else now_ms()
    # Clock moved backwards: report nothing rather than a negative session.
    return max(0, (current - start_time) // 1000)


def format_duration(seconds: Union[int, float]) -> str:
    total_seconds = max(0, int(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_duration(value: str) -> int:
    """Parse an ``HH:MM:SS`` string produced by :func:`format_duration`."""
    match = _DURATION_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid duration {value!r}; expected HH:MM:SS")
    hours, minutes, secs = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + secs


def date_key(value: Union[date, datetime]) -> str:
    return value.strftime(DATE_FMT)


def parse_date_key(value: str) -> date:
    return datetime.strptime(value, DATE_FMT).date()
