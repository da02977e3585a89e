"""Timer state machine behaviour against both storage backends."""

from __future__ import annotations

import threading

import pytest

from vibe_timer.errors import (
    DuplicateNameError,
    InvalidVibeError,
    NotFoundError,
    PersistenceError,
    ReadOnlyPeriodError,
)
from vibe_timer.gateway import MemoryGateway
from vibe_timer.models import LedgerEntry
from vibe_timer.timeutils import format_duration
from vibe_timer.tracker import VibeTracker


def _entry(tracker: VibeTracker, vibe_id: str) -> LedgerEntry:
    return next(e for e in tracker.selected_date_vibes if e.vibe_id == vibe_id)


def _running_count(tracker: VibeTracker) -> int:
    return len(tracker.ledger.running())


class TestScenarios:
    def test_focus_session_is_banked_on_stop(self, tracker, clock):
        focus = tracker.create_vibe("Focus", "Blue")
        tracker.start(focus.id)
        clock.advance(65)

        running = tracker.running_vibe
        assert running is not None
        assert format_duration(running.session_seconds(tracker.now_ms())) == "00:01:05"

        stopped = tracker.stop(focus.id)
        assert stopped.total_time == 65
        assert stopped.is_running is False
        assert _entry(tracker, focus.id).total_time == 65

    def test_starting_another_vibe_stops_the_running_one(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        rest = tracker.create_vibe("Break")
        tracker.start(focus.id)
        clock.advance(30)

        started = tracker.start(rest.id)

        focus_entry = _entry(tracker, focus.id)
        assert focus_entry.total_time == 30
        assert focus_entry.is_running is False
        assert focus_entry.start_time is None
        assert started.is_running is True
        assert started.start_time == tracker.now_ms()
        assert tracker.running_vibe.vibe_id == rest.id

    def test_duplicate_name_is_case_insensitive(self, tracker):
        tracker.create_vibe("Focus", "#000")

        with pytest.raises(DuplicateNameError):
            tracker.create_vibe("focus", "#111")

        vibes = tracker.registry.list_vibes()
        assert [(v.name, v.color) for v in vibes] == [("Focus", "#000")]

    def test_reset_discards_running_session(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        tracker.start(focus.id)
        clock.advance(500)
        tracker.stop(focus.id)
        tracker.start(focus.id)
        clock.advance(20)

        entries = tracker.reset_all("2025-01-01")

        for entry in entries:
            assert entry.total_time == 0
            assert entry.is_running is False
            assert entry.start_time is None
        assert tracker.running_vibe is None


class TestTimerTransitions:
    def test_only_one_timer_runs_across_many_switches(self, tracker, clock):
        vibes = [tracker.create_vibe(name) for name in ("Work", "Study", "Social")]
        sequence = [0, 1, 1, 2, 0, 2, 1]
        for index in sequence:
            tracker.start(vibes[index].id)
            clock.advance(7)
            assert _running_count(tracker) == 1
            tracker.stop(vibes[(index + 1) % 3].id)
            assert _running_count(tracker) == 1

        total = sum(e.display_seconds(tracker.now_ms()) for e in tracker.selected_date_vibes)
        assert total == 7 * len(sequence)

    def test_stop_on_stopped_entry_changes_nothing(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        tracker.start(focus.id)
        clock.advance(12.7)
        tracker.stop(focus.id)
        clock.advance(100)

        again = tracker.stop(focus.id)
        tracker.stop(focus.id)

        assert again.total_time == 12
        assert _entry(tracker, focus.id).total_time == 12

    def test_starting_the_running_vibe_keeps_its_session(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        first = tracker.start(focus.id)
        clock.advance(40)

        again = tracker.start(focus.id)

        assert again.start_time == first.start_time
        clock.advance(5)
        assert tracker.stop(focus.id).total_time == 45

    def test_sub_second_time_is_never_double_counted(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        for _ in range(4):
            tracker.start(focus.id)
            clock.advance(1.5)
            tracker.stop(focus.id)
        assert _entry(tracker, focus.id).total_time == 4

    def test_start_stops_timer_left_running_on_previous_day(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        rest = tracker.create_vibe("Break")
        tracker.start(focus.id)
        clock.advance(hours=16)
        assert tracker.today == "2025-01-02"

        tracker.set_selected_date("2025-01-02")
        tracker.start(rest.id)

        yesterday = tracker.ledger.find("2025-01-01", focus.id)
        assert yesterday.is_running is False
        assert yesterday.total_time == 16 * 3600
        assert tracker.running_vibe.date == "2025-01-02"

    def test_unknown_vibe_is_not_found(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.start("missing")
        with pytest.raises(NotFoundError):
            tracker.stop("missing")


class TestReadOnlyDates:
    def test_timer_operations_on_past_dates_are_rejected(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        tracker.start(focus.id)
        clock.advance(10)
        tracker.stop(focus.id)
        clock.advance(days=1)
        before = tracker.vibes_for("2025-01-01")

        with pytest.raises(ReadOnlyPeriodError):
            tracker.start(focus.id, day="2025-01-01")
        with pytest.raises(ReadOnlyPeriodError):
            tracker.stop(focus.id, day="2025-01-01")
        with pytest.raises(ReadOnlyPeriodError):
            tracker.reset_all("2025-01-01")

        assert tracker.vibes_for("2025-01-01") == before
        assert tracker.running_vibe is None

    def test_vibes_can_only_be_added_today(self, tracker):
        tracker.set_selected_date("2024-12-31")
        assert tracker.is_today is False

        with pytest.raises(ReadOnlyPeriodError):
            tracker.create_vibe("Focus")
        assert tracker.registry.list_vibes() == []


class TestRegistry:
    def test_create_seeds_zero_entry_for_selected_date(self, tracker, gateway):
        focus = tracker.create_vibe("  Deep   Work ")

        assert focus.name == "Deep Work"
        rows = gateway.read("2025-01-01")
        assert len(rows) == 1
        assert rows[0]["total_time"] == 0
        assert not rows[0]["is_running"]

    def test_colors_are_resolved(self, tracker):
        assert tracker.create_vibe("Exercise").color == "#10B981"
        assert tracker.create_vibe("Reading", "green").color == "#10B981"
        assert tracker.create_vibe("Music", "#abc").color == "#ABC"
        assert tracker.create_vibe("Chores").color == "#0EA5E9"

    def test_blank_name_is_rejected(self, tracker):
        with pytest.raises(InvalidVibeError):
            tracker.create_vibe("   ")

    def test_rename_does_not_recheck_uniqueness(self, tracker):
        tracker.create_vibe("Focus")
        rest = tracker.create_vibe("Break")

        updated = tracker.rename_or_recolor(rest.id, "focus", "Gold")

        assert updated.name == "focus"
        assert updated.color == "#F59E0B"
        assert [v.name for v in tracker.registry.list_vibes()] == ["Focus", "focus"]

    def test_rename_unknown_vibe(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.rename_or_recolor("missing", "x", None)

    def test_delete_running_vibe_stops_it_first(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        tracker.start(focus.id)
        clock.advance(30)

        tracker.delete_vibe(focus.id)

        assert tracker.running_vibe is None
        assert tracker.selected_date_vibes == []
        assert tracker.registry.list_vibes() == []

    def test_delete_from_past_date_stops_todays_timer(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        tracker.start(focus.id)
        clock.advance(30)
        tracker.set_selected_date("2024-12-31")

        tracker.delete_vibe(focus.id)

        assert tracker.running_vibe is None
        assert tracker.registry.list_vibes() == []
        today = tracker.ledger.find("2025-01-01", focus.id)
        assert today.is_running is False
        assert today.start_time is None
        assert today.total_time == 30

    def test_rename_from_past_date_updates_todays_entry(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        tracker.start(focus.id)
        clock.advance(20)
        tracker.stop(focus.id)
        tracker.set_selected_date("2024-12-31")

        tracker.rename_or_recolor(focus.id, "Deep", "Gold")

        assert [v.name for v in tracker.registry.list_vibes()] == ["Deep"]
        today = tracker.vibes_for("2025-01-01")
        assert [(e.name, e.color, e.total_time) for e in today] == [("Deep", "#F59E0B", 20)]
        assert tracker.create_vibe("Focus", day="2025-01-01").name == "Focus"
        with pytest.raises(DuplicateNameError):
            tracker.create_vibe("deep", day="2025-01-01")

    def test_deleted_vibe_history_stays_visible(self, tracker, clock):
        focus = tracker.create_vibe("Focus")
        tracker.start(focus.id)
        clock.advance(60)
        tracker.stop(focus.id)
        clock.advance(days=1)
        tracker.set_selected_date(tracker.today)

        tracker.delete_vibe(focus.id)

        history = tracker.vibes_for("2025-01-01")
        assert [(e.name, e.total_time) for e in history] == [("Focus", 60)]

    def test_delete_unknown_vibe(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.delete_vibe("missing")


class FailingGateway(MemoryGateway):
    """Fails any write that would start a timer."""

    def update(self, date, vibe_id, fields):
        super().update(date, vibe_id, fields)
        if fields.get("is_running"):
            raise PersistenceError("disk full")


def test_failed_write_leaves_previous_state(clock):
    tracker = VibeTracker(FailingGateway(), clock=clock)
    focus = tracker.create_vibe("Focus")
    rest = tracker.create_vibe("Break")
    # Put Focus into a running state without going through the failing path.
    tracker.gateway._sessions[("2025-01-01", focus.id)].update(
        {"is_running": True, "start_time": tracker.now_ms()}
    )
    clock.advance(10)

    with pytest.raises(PersistenceError):
        tracker.start(rest.id)

    running = tracker.running_vibe
    assert running.vibe_id == focus.id
    assert running.total_time == 0
    assert _entry(tracker, rest.id).is_running is False


def test_concurrent_starts_leave_one_timer_running(gateway, clock):
    setup = VibeTracker(gateway, clock=clock)
    focus = setup.create_vibe("Focus")
    rest = setup.create_vibe("Break")
    barrier = threading.Barrier(2)
    errors: list[BaseException] = []

    def worker(vibe_id: str) -> None:
        # Separate trackers do not share a lock; only the gateway batch orders them.
        tracker = VibeTracker(gateway, clock=clock)
        barrier.wait()
        try:
            for _ in range(50):
                tracker.start(vibe_id)
        except BaseException as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(vibe_id,)) for vibe_id in (focus.id, rest.id)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    assert _running_count(setup) == 1
    assert setup.running_vibe.vibe_id in {focus.id, rest.id}
