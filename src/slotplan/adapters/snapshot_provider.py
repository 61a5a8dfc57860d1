"""Snapshot calendar adapter - serves a loaded snapshot as a calendar provider."""

import logging
from datetime import datetime

from slotplan.core.activities import ExternalEventRef, parse_instant
from slotplan.core.intervals import BusyInterval, overlaps
from slotplan.core.reconcile import CalendarEvent
from slotplan.ports.calendar_provider import (
    CalendarAccount,
    CalendarListItem,
    CalendarPreferences,
    CalendarRef,
)

from .json_snapshot import Snapshot, SnapshotError

logger = logging.getLogger(__name__)

PROVIDER = "snapshot"
ACCOUNT_ID = "local"


class SnapshotCalendarProvider:
    """
    In-memory calendar backed by a Snapshot.

    Implements CalendarProvider protocol. Each busy-list key in the snapshot
    is one read calendar. Created and updated events live on the snapshot's
    external event list and are not written back to disk.
    """

    def __init__(self, snapshot: Snapshot, default_write_calendar_id: str | None = None):
        self.snapshot = snapshot
        self.write_calendar_id = snapshot.write_calendar_id or default_write_calendar_id
        self._created = 0

    def _ref(self, calendar_id: str) -> CalendarRef:
        return CalendarRef(provider=PROVIDER, account_id=ACCOUNT_ID, calendar_id=calendar_id)

    def list_accounts(self) -> list[CalendarAccount]:
        return [CalendarAccount(id=ACCOUNT_ID, provider=PROVIDER, account_id=ACCOUNT_ID)]

    def list_calendars(self) -> list[CalendarListItem]:
        ids = list(self.snapshot.busy_by_calendar_id)
        if self.write_calendar_id and self.write_calendar_id not in ids:
            ids.append(self.write_calendar_id)
        return [
            CalendarListItem(ref=self._ref(cal_id), name=cal_id, can_write=cal_id == self.write_calendar_id)
            for cal_id in ids
        ]

    def get_preferences(self) -> CalendarPreferences:
        return CalendarPreferences(
            read_calendar_refs=[self._ref(cal_id) for cal_id in self.snapshot.busy_by_calendar_id],
            write_calendar_ref=self._ref(self.write_calendar_id) if self.write_calendar_id else None,
        )

    def list_busy(
        self, start: datetime, end: datetime, read_calendar_refs: list[CalendarRef] | None = None
    ) -> list[BusyInterval]:
        """Busy intervals overlapping the range, from the given calendars (all if None)."""
        wanted = None if read_calendar_refs is None else {r.calendar_id for r in read_calendar_refs}
        window = BusyInterval(start=start, end=end)
        return [
            interval
            for cal_id, intervals in self.snapshot.busy_by_calendar_id.items()
            if wanted is None or cal_id in wanted
            for interval in intervals
            if overlaps(interval, window)
        ]

    def list_events(
        self, start: datetime, end: datetime, read_calendar_refs: list[CalendarRef] | None = None
    ) -> list[CalendarEvent]:
        """Events overlapping the range. Events without usable times are always kept."""
        window = BusyInterval(start=start, end=end)
        events = []
        for event in self.snapshot.external_events:
            event_start = parse_instant(event.start)
            event_end = parse_instant(event.end)
            if event_start is None or event_end is None:
                events.append(event)
            elif overlaps(BusyInterval(start=event_start, end=event_end), window):
                events.append(event)
        return events

    def create_event(
        self, title: str, start: datetime, end: datetime, write_calendar_ref: CalendarRef
    ) -> ExternalEventRef:
        self._created += 1
        event = CalendarEvent(
            provider=write_calendar_ref.provider,
            account_id=write_calendar_ref.account_id,
            calendar_id=write_calendar_ref.calendar_id,
            event_id=f"created-{self._created}",
            title=title,
            start=start,
            end=end,
        )
        self.snapshot.external_events.append(event)
        logger.debug(f"Created snapshot event {event.key}")
        return ExternalEventRef(event.provider, event.account_id, event.calendar_id, event.event_id)

    def update_event(
        self,
        event_ref: ExternalEventRef,
        start: datetime,
        end: datetime,
        title: str | None = None,
    ) -> None:
        for event in self.snapshot.external_events:
            if event.key == event_ref.key:
                event.start = start
                event.end = end
                if title is not None:
                    event.title = title
                return
        raise SnapshotError(f"No event {event_ref.key} in snapshot")
