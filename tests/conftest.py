from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from vibe_timer.gateway import MemoryGateway, SqliteGateway
from vibe_timer.tracker import VibeTracker


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0, **kwargs: float) -> None:
        self.current += timedelta(seconds=seconds, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 1, 9, 0, 0))


@pytest.fixture(params=["memory", "sqlite"])
def gateway(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return MemoryGateway()
    return SqliteGateway(tmp_path / "vibes.sqlite3")


@pytest.fixture
def tracker(gateway, clock: FakeClock) -> VibeTracker:
    return VibeTracker(gateway, clock=clock)
