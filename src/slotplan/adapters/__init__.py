"""Adapters - I/O implementations of ports."""

from .calendar_api import CalendarApiAdapter, CalendarApiError
from .json_snapshot import JsonSnapshotStore, Snapshot, SnapshotError
from .ranking import InputOrderRanker
from .snapshot_provider import SnapshotCalendarProvider

__all__ = [
    "CalendarApiAdapter",
    "CalendarApiError",
    "JsonSnapshotStore",
    "Snapshot",
    "SnapshotError",
    "InputOrderRanker",
    "SnapshotCalendarProvider",
]
