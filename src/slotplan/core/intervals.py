"""Pure busy-interval logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable


def instant(dt: datetime) -> float:
    """POSIX timestamp; naive values are read as local wall-clock time."""
    return dt.timestamp()


@dataclass
class BusyInterval:
    """A time range that is already occupied."""

    start: datetime
    end: datetime

    def duration_minutes(self) -> int:
        return int((instant(self.end) - instant(self.start)) / 60)

    def is_empty(self) -> bool:
        """Zero-width or inverted intervals never block anything."""
        return instant(self.end) <= instant(self.start)


def overlaps(a: BusyInterval, b: BusyInterval) -> bool:
    """
    Check if two half-open intervals share any time.

    Compared as instants, so naive and aware values can be mixed.
    """
    return instant(a.start) < instant(b.end) and instant(b.start) < instant(a.end)


def conflicts(candidate: BusyInterval, busy: Iterable[BusyInterval]) -> bool:
    """Check if a candidate overlaps any busy interval."""
    return any(overlaps(b, candidate) for b in busy)


def normalize_busy(intervals: Iterable[BusyInterval]) -> list[BusyInterval]:
    """
    Merge busy intervals into a sorted, non-overlapping list.

    Touching intervals merge. Empty intervals are dropped. Returns new objects,
    the input is left untouched.

    Pure function - no I/O.
    """
    ordered = sorted((i for i in intervals if not i.is_empty()), key=lambda i: instant(i.start))

    merged: list[BusyInterval] = []
    for interval in ordered:
        if merged and instant(interval.start) <= instant(merged[-1].end):
            if instant(interval.end) > instant(merged[-1].end):
                merged[-1].end = interval.end
        else:
            merged.append(BusyInterval(start=interval.start, end=interval.end))
    return merged
