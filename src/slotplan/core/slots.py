"""First-fit slot search over availability windows - no I/O dependencies."""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Iterator

from .availability import TimeWindow
from .intervals import BusyInterval, conflicts, normalize_busy

SLOT_STEP = timedelta(minutes=15)

WindowsForDay = Callable[[date], list[TimeWindow]]


def clamp_to_next_quarter_hour(dt: datetime) -> datetime:
    """Drop seconds and round up to the next 15-minute boundary."""
    dt = dt.replace(second=0, microsecond=0)
    remainder = dt.minute % 15
    if remainder:
        dt += timedelta(minutes=15 - remainder)
    return dt


def parse_time_to_minutes(raw: str) -> int | None:
    """Minutes after midnight for an 'HH:MM' string, or None if invalid."""
    if not isinstance(raw, str):
        return None
    hour_raw, _, minute_raw = raw.strip().partition(":")
    try:
        hour = int(hour_raw)
        minute = int(minute_raw)
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour * 60 + minute


def set_time_on_date(d: date, raw: str, tz: tzinfo | None = None) -> datetime | None:
    """Combine a date with an 'HH:MM' time, or None if the time is invalid."""
    minutes = parse_time_to_minutes(raw)
    if minutes is None:
        return None
    return datetime.combine(d, time(minutes // 60, minutes % 60), tzinfo=tz)


def window_bounds(
    d: date, window: TimeWindow, tz: tzinfo | None = None
) -> tuple[datetime, datetime] | None:
    start = set_time_on_date(d, window.start, tz)
    end = set_time_on_date(d, window.end, tz)
    if start is None or end is None:
        return None
    return start, end


def add_elapsed(dt: datetime, delta: timedelta) -> datetime:
    """Add real elapsed time; aware values are shifted in UTC, not wall-clock."""
    if dt.tzinfo is None:
        return dt + delta
    return (dt.astimezone(timezone.utc) + delta).astimezone(dt.tzinfo)


def iter_candidates(
    cursor: datetime, window_end: datetime, duration: timedelta
) -> Iterator[BusyInterval]:
    """
    Candidate intervals stepping 15 minutes, each fully inside the window.

    Aware values step in UTC and come back in the cursor's zone, so a slot
    keeps its real length across DST changes.
    """
    limit = window_end.timestamp()
    while True:
        end = add_elapsed(cursor, duration)
        if end.timestamp() > limit:
            return
        yield BusyInterval(start=cursor, end=end)
        cursor = add_elapsed(cursor, SLOT_STEP)


def first_free_in_window(
    cursor: datetime,
    window_end: datetime,
    duration: timedelta,
    busy: list[BusyInterval],
) -> BusyInterval | None:
    """Earliest candidate in a window that overlaps nothing busy."""
    for candidate in iter_candidates(cursor, window_end, duration):
        if not conflicts(candidate, busy):
            return candidate
    return None


def find_next_slot(
    duration_minutes: int,
    start_at: datetime,
    horizon_days: int,
    busy: list[BusyInterval],
    windows_for_day: WindowsForDay,
) -> BusyInterval | None:
    """
    Find the earliest conflict-free slot within the horizon.

    Scans day offsets 0..horizon (inclusive), each day's windows in configured
    order, then time in 15-minute steps. The first free candidate wins; there
    is no best-fit. On the start day the cursor never precedes `start_at`
    (snapped forward to a quarter hour). Window instants use `start_at`'s
    timezone.

    Pure function - no I/O.

    Returns:
        The slot, or None when the horizon holds no room.
    """
    duration = timedelta(minutes=duration_minutes)
    merged = normalize_busy(busy)
    tz = start_at.tzinfo
    start_day = start_at.date()

    for offset in range(max(1, horizon_days) + 1):
        day = start_day + timedelta(days=offset)
        for window in windows_for_day(day):
            bounds = window_bounds(day, window, tz)
            if bounds is None:
                continue
            window_start, window_end = bounds

            cursor = window_start
            if offset == 0 and cursor < start_at:
                cursor = clamp_to_next_quarter_hour(start_at)

            slot = first_free_in_window(cursor, window_end, duration, merged)
            if slot is not None:
                return slot

    return None
