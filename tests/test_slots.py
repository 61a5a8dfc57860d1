"""Tests for first-fit slot search."""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from slotplan.core.availability import TimeWindow
from slotplan.core.intervals import BusyInterval
from slotplan.core.slots import (
    add_elapsed,
    clamp_to_next_quarter_hour,
    find_next_slot,
    parse_time_to_minutes,
    set_time_on_date,
)


@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def at(today):
    """Factory for datetimes on `today` (or an offset day)."""
    def _make(hour: int, minute: int = 0, second: int = 0, days: int = 0) -> datetime:
        return datetime.combine(today + timedelta(days=days), time(hour, minute, second))
    return _make


def work_hours(d: date) -> list[TimeWindow]:
    return [TimeWindow("09:00", "17:00")]


class TestClampToNextQuarterHour:
    def test_rounds_up(self, at):
        assert clamp_to_next_quarter_hour(at(9, 7, 30)) == at(9, 15)

    def test_on_boundary_unchanged(self, at):
        assert clamp_to_next_quarter_hour(at(9, 15)) == at(9, 15)

    def test_seconds_dropped_on_boundary_minute(self, at):
        assert clamp_to_next_quarter_hour(at(9, 0, 45)) == at(9, 0)

    def test_rolls_over_hour(self, at):
        assert clamp_to_next_quarter_hour(at(9, 50)) == at(10, 0)


class TestParseTime:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("09:30", 570),
            ("00:00", 0),
            ("23:59", 1439),
            (" 7:05 ", 425),
            ("24:00", None),
            ("12:60", None),
            ("noon", None),
            ("9", None),
            (None, None),
        ],
    )
    def test_parse_time_to_minutes(self, raw, expected):
        assert parse_time_to_minutes(raw) == expected

    def test_set_time_on_date(self, today, at):
        assert set_time_on_date(today, "14:45") == at(14, 45)

    def test_set_time_on_date_with_tz(self, today):
        result = set_time_on_date(today, "08:00", timezone.utc)
        assert result.tzinfo is timezone.utc

    def test_set_time_on_date_invalid(self, today):
        assert set_time_on_date(today, "bad") is None


class TestFindNextSlot:
    def test_first_slot_at_window_start(self, at):
        slot = find_next_slot(30, at(8, 0), 7, [], work_hours)
        assert slot == BusyInterval(at(9, 0), at(9, 30))

    def test_skips_busy_time(self, at):
        busy = [BusyInterval(at(9, 0), at(10, 0))]
        slot = find_next_slot(30, at(8, 0), 7, busy, work_hours)
        assert slot.start == at(10, 0)

    def test_steps_in_quarter_hours(self, at):
        busy = [BusyInterval(at(9, 0), at(9, 20))]
        slot = find_next_slot(30, at(8, 0), 7, busy, work_hours)
        assert slot.start == at(9, 30)

    def test_start_day_cursor_snaps_forward(self, at):
        slot = find_next_slot(30, at(10, 7), 7, [], work_hours)
        assert slot.start == at(10, 15)

    def test_rolls_to_next_day_when_today_full(self, at):
        slot = find_next_slot(30, at(16, 50), 7, [], work_hours)
        assert slot == BusyInterval(at(9, 0, days=1), at(9, 30, days=1))

    def test_candidate_must_fit_in_window(self, at):
        def short_window(d: date) -> list[TimeWindow]:
            return [TimeWindow("09:00", "09:30")]

        assert find_next_slot(60, at(8, 0), 1, [], short_window) is None

    def test_windows_scanned_in_configured_order(self, at):
        def windows(d: date) -> list[TimeWindow]:
            return [TimeWindow("14:00", "15:00"), TimeWindow("09:00", "10:00")]

        slot = find_next_slot(30, at(8, 0), 7, [], windows)
        assert slot.start == at(14, 0)

    def test_invalid_window_skipped(self, at):
        def windows(d: date) -> list[TimeWindow]:
            return [TimeWindow("nine", "ten"), TimeWindow("11:00", "12:00")]

        slot = find_next_slot(30, at(8, 0), 7, [], windows)
        assert slot.start == at(11, 0)

    def test_no_windows_on_some_days(self, at, today):
        def windows(d: date) -> list[TimeWindow]:
            return [] if d == today else [TimeWindow("09:00", "10:00")]

        slot = find_next_slot(30, at(8, 0), 7, [], windows)
        assert slot.start == at(9, 0, days=1)

    def test_horizon_is_inclusive(self, at):
        busy = [BusyInterval(at(0, 0), at(0, 0, days=3))]
        assert find_next_slot(30, at(8, 0), 3, busy, work_hours).start == at(9, 0, days=3)
        assert find_next_slot(30, at(8, 0), 2, busy, work_hours) is None

    def test_horizon_zero_still_checks_next_day(self, at):
        slot = find_next_slot(30, at(17, 0), 0, [], work_hours)
        assert slot.start == at(9, 0, days=1)

    def test_horizon_exhausted(self, at):
        busy = [BusyInterval(at(0, 0), at(0, 0, days=30))]
        assert find_next_slot(30, at(8, 0), 7, busy, work_hours) is None

    def test_unsorted_overlapping_busy(self, at):
        busy = [
            BusyInterval(at(9, 25), at(10, 0)),
            BusyInterval(at(9, 0), at(9, 30)),
        ]
        slot = find_next_slot(15, at(8, 0), 7, busy, work_hours)
        assert slot.start == at(10, 0)

    def test_timezone_aware_start(self):
        tz = timezone(timedelta(hours=-5))
        start_at = datetime(2025, 1, 15, 8, 0, tzinfo=tz)
        slot = find_next_slot(30, start_at, 7, [], work_hours)
        assert slot.start == datetime(2025, 1, 15, 9, 0, tzinfo=tz)
        assert slot.start.tzinfo is tz

    def test_deterministic(self, at):
        busy = [BusyInterval(at(9, 0), at(11, 0)), BusyInterval(at(11, 30), at(12, 0))]
        first = find_next_slot(30, at(8, 0), 7, busy, work_hours)
        second = find_next_slot(30, at(8, 0), 7, list(reversed(busy)), work_hours)
        assert first == second == BusyInterval(at(11, 0), at(11, 30))

    def test_aware_busy_with_naive_windows_does_not_raise(self, at):
        busy = [BusyInterval(datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc), datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc))]
        slot = find_next_slot(30, at(8, 0), 7, busy, work_hours)
        assert slot is not None
        assert slot.end - slot.start == timedelta(minutes=30)


class TestDaylightSaving:
    """2025-03-09 in New York skips from 02:00 EST to 03:00 EDT."""

    @pytest.fixture
    def ny(self):
        return ZoneInfo("America/New_York")

    def test_add_elapsed_crosses_gap(self, ny):
        start = datetime(2025, 3, 9, 1, 30, tzinfo=ny)
        end = add_elapsed(start, timedelta(hours=1))
        assert end == datetime(2025, 3, 9, 3, 30, tzinfo=ny)
        assert end.timestamp() - start.timestamp() == 3600

    def test_add_elapsed_naive(self):
        assert add_elapsed(datetime(2025, 3, 9, 1, 30), timedelta(hours=1)) == datetime(2025, 3, 9, 2, 30)

    def test_slot_keeps_real_length_against_utc_busy(self, ny):
        def early_hours(d: date) -> list[TimeWindow]:
            return [TimeWindow("01:00", "04:00")]

        # 06:00-07:00 UTC is 01:00 EST to 03:00 EDT
        busy = [BusyInterval(datetime(2025, 3, 9, 6, 0, tzinfo=timezone.utc), datetime(2025, 3, 9, 7, 0, tzinfo=timezone.utc))]
        slot = find_next_slot(60, datetime(2025, 3, 9, 0, 0, tzinfo=ny), 1, busy, early_hours)

        assert slot.start == datetime(2025, 3, 9, 3, 0, tzinfo=ny)
        assert slot.end == datetime(2025, 3, 9, 4, 0, tzinfo=ny)
        assert slot.end.timestamp() - slot.start.timestamp() == 3600
