from datetime import date, datetime

import pytest

from vibe_timer.timeutils import (
    date_key,
    elapsed_seconds,
    format_duration,
    now_ms,
    parse_date_key,
    parse_duration,
)


class TestElapsedSeconds:
    def test_missing_start_is_zero(self):
        assert elapsed_seconds(None, now=5_000) == 0
        assert elapsed_seconds(0, now=5_000) == 0

    def test_truncates_sub_second_time(self):
        assert elapsed_seconds(1_000, now=66_999) == 65

    def test_clock_moving_backwards_reports_zero(self):
        assert elapsed_seconds(10_000, now=4_000) == 0

    def test_reads_wall_clock_when_now_not_given(self):
        started = now_ms() - 5_000
        assert elapsed_seconds(started) >= 5


class TestFormatDuration:
    def test_pads_fields(self):
        assert format_duration(65) == "00:01:05"

    def test_hours_are_not_wrapped_at_a_day(self):
        assert format_duration(90_000) == "25:00:00"

    def test_fractions_are_truncated(self):
        assert format_duration(3.9) == "00:00:03"

    @pytest.mark.parametrize("seconds", [0, 59, 3_600, 86_399, 360_000])
    def test_parse_back_gives_same_text(self, seconds):
        text = format_duration(seconds)
        assert format_duration(parse_duration(text)) == text

    @pytest.mark.parametrize("value", ["", "1:2:3", "00:60:00", "abc", "-01:00:00"])
    def test_parse_rejects_malformed_text(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


def test_date_key_uses_local_calendar_day():
    assert date_key(datetime(2025, 1, 2, 23, 59, 59)) == "2025-01-02"
    assert date_key(date(2025, 12, 31)) == "2025-12-31"


def test_parse_date_key():
    assert parse_date_key("2025-03-04") == date(2025, 3, 4)
    with pytest.raises(ValueError):
        parse_date_key("04/03/2025")


def test_now_ms_uses_injected_clock():
    moment = datetime(2025, 1, 1, 9, 0, 0)
    assert now_ms(lambda: moment) == int(moment.timestamp() * 1000)
