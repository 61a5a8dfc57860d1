"""JSON snapshot store - reads planning inputs from a file."""

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from pathlib import Path

from slotplan.core.activities import Activity, Goal, parse_instant
from slotplan.core.intervals import BusyInterval
from slotplan.core.reconcile import CalendarEvent

logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read."""

    pass


@dataclass
class Snapshot:
    """Everything a planning run needs, as already-fetched data."""

    activities: list[Activity] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    availability: dict | None = None
    busy_by_calendar_id: dict[str, list[BusyInterval]] = field(default_factory=dict)
    external_events: list[CalendarEvent] = field(default_factory=list)
    write_calendar_id: str | None = None
    dismissed_activity_ids: list[str] = field(default_factory=list)

    def all_busy(self) -> list[BusyInterval]:
        """Busy intervals from every calendar, flattened."""
        return [i for intervals in self.busy_by_calendar_id.values() for i in intervals]


def _localize(dt: datetime | None, tz: tzinfo | None) -> datetime | None:
    """Attach `tz` to naive instants so they compare with aware ones."""
    if dt is None or tz is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=tz)


def _parse_busy(items: list, tz: tzinfo | None = None) -> list[BusyInterval]:
    busy = []
    for item in items or []:
        start = _localize(parse_instant(item.get("start")), tz)
        end = _localize(parse_instant(item.get("end")), tz)
        if start is None or end is None:
            logger.warning(f"Skipping busy interval with bad instants: {item}")
            continue
        busy.append(BusyInterval(start=start, end=end))
    return busy


def _parse_records(items: list, factory, label: str) -> list:
    records = []
    for item in items or []:
        try:
            records.append(factory(item))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed {label}: {e}")
    return records


class JsonSnapshotStore:
    """
    Loads a Snapshot from a JSON file.

    Expected top-level keys (all optional): activities, goals, availability,
    busy (list, or object keyed by calendar id), externalEvents,
    writeCalendarId, dismissedActivityIds.

    When `tz` is given, naive instants in busy intervals and activity start
    times are read as wall-clock times in that zone.
    """

    def __init__(self, path: Path, tz: tzinfo | None = None):
        self.path = Path(path).expanduser()
        self.tz = tz

    def _activity(self, data: dict) -> Activity:
        activity = Activity.from_api(data)
        if activity.scheduled_at is None:
            return activity
        return replace(activity, scheduled_at=_localize(activity.scheduled_at, self.tz))

    def load(self) -> Snapshot:
        try:
            data = json.loads(self.path.read_text())
        except FileNotFoundError:
            raise SnapshotError(f"Snapshot not found: {self.path}")
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Invalid JSON in {self.path}: {e}")
        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot must be a JSON object: {self.path}")

        raw_busy = data.get("busy") or {}
        if isinstance(raw_busy, list):
            busy = {"__all__": _parse_busy(raw_busy, self.tz)}
        else:
            busy = {str(cal_id): _parse_busy(items, self.tz) for cal_id, items in raw_busy.items()}

        return Snapshot(
            activities=_parse_records(data.get("activities"), self._activity, "activity"),
            goals=_parse_records(data.get("goals"), Goal.from_api, "goal"),
            availability=data.get("availability"),
            busy_by_calendar_id=busy,
            external_events=_parse_records(
                data.get("externalEvents"), CalendarEvent.from_api, "external event"
            ),
            write_calendar_id=data.get("writeCalendarId"),
            dismissed_activity_ids=[str(i) for i in data.get("dismissedActivityIds") or []],
        )
