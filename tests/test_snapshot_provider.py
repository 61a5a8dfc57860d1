"""Tests for the snapshot-backed calendar provider."""

from datetime import datetime, timezone

import pytest

from slotplan.adapters.json_snapshot import Snapshot, SnapshotError
from slotplan.adapters.snapshot_provider import SnapshotCalendarProvider
from slotplan.core.activities import ExternalEventRef
from slotplan.core.intervals import BusyInterval
from slotplan.core.reconcile import CalendarEvent
from slotplan.ports.calendar_provider import CalendarRef

UTC = timezone.utc


def at(hour: int, minute: int = 0, day: int = 15) -> datetime:
    return datetime(2025, 1, day, hour, minute, tzinfo=UTC)


@pytest.fixture
def snapshot():
    return Snapshot(
        busy_by_calendar_id={
            "work": [BusyInterval(at(9, 0), at(10, 0)), BusyInterval(at(9, 0, day=16), at(10, 0, day=16))],
            "home": [BusyInterval(at(18, 0), at(19, 0))],
        },
        external_events=[
            CalendarEvent("google", "me", "work", "evt-1", "Standup", at(9, 0), at(9, 15)),
            CalendarEvent("google", "me", "work", "evt-2", "Offsite", at(9, 0, day=17), at(17, 0, day=17)),
            CalendarEvent("google", "me", "work", "evt-3", "Mystery", "soon", None),
        ],
        write_calendar_id="primary",
    )


@pytest.fixture
def provider(snapshot):
    return SnapshotCalendarProvider(snapshot)


def ref(calendar_id: str) -> CalendarRef:
    return CalendarRef(provider="snapshot", account_id="local", calendar_id=calendar_id)


class TestPreferences:
    def test_busy_keys_are_read_calendars(self, provider):
        prefs = provider.get_preferences()
        assert prefs.read_calendar_refs == [ref("work"), ref("home")]
        assert prefs.write_calendar_ref == ref("primary")

    def test_default_write_calendar(self):
        provider = SnapshotCalendarProvider(Snapshot(), default_write_calendar_id="fallback")
        assert provider.get_preferences().write_calendar_ref == ref("fallback")

    def test_snapshot_write_calendar_wins(self, snapshot):
        provider = SnapshotCalendarProvider(snapshot, default_write_calendar_id="fallback")
        assert provider.write_calendar_id == "primary"

    def test_no_write_calendar(self):
        assert SnapshotCalendarProvider(Snapshot()).get_preferences().write_calendar_ref is None

    def test_list_calendars(self, provider):
        calendars = {c.name: c.can_write for c in provider.list_calendars()}
        assert calendars == {"work": False, "home": False, "primary": True}

    def test_list_accounts(self, provider):
        assert [a.id for a in provider.list_accounts()] == ["local"]


class TestListBusy:
    def test_filters_by_range(self, provider):
        busy = provider.list_busy(at(0, 0), at(0, 0, day=16))
        assert busy == [BusyInterval(at(9, 0), at(10, 0)), BusyInterval(at(18, 0), at(19, 0))]

    def test_filters_by_calendar(self, provider):
        busy = provider.list_busy(at(0, 0), at(0, 0, day=16), [ref("home")])
        assert busy == [BusyInterval(at(18, 0), at(19, 0))]

    def test_no_calendars_selected(self, provider):
        assert provider.list_busy(at(0, 0), at(0, 0, day=16), []) == []


class TestListEvents:
    def test_keeps_overlapping_and_unparseable(self, provider):
        events = provider.list_events(at(0, 0), at(0, 0, day=16))
        assert [e.event_id for e in events] == ["evt-1", "evt-3"]


class TestWrites:
    def test_create_event(self, provider, snapshot):
        created = provider.create_event("Focus", at(11, 0), at(11, 30), ref("primary"))

        assert created == ExternalEventRef("snapshot", "local", "primary", "created-1")
        assert snapshot.external_events[-1].title == "Focus"
        assert [e.event_id for e in provider.list_events(at(11, 0), at(12, 0))] == ["evt-3", "created-1"]

    def test_create_numbers_events(self, provider):
        provider.create_event("A", at(11, 0), at(11, 30), ref("primary"))
        second = provider.create_event("B", at(12, 0), at(12, 30), ref("primary"))
        assert second.event_id == "created-2"

    def test_update_event(self, provider, snapshot):
        provider.update_event(ExternalEventRef("google", "me", "work", "evt-1"), at(10, 0), at(10, 15), title="Moved")
        event = snapshot.external_events[0]
        assert (event.title, event.start, event.end) == ("Moved", at(10, 0), at(10, 15))

    def test_update_keeps_title(self, provider, snapshot):
        provider.update_event(ExternalEventRef("google", "me", "work", "evt-1"), at(10, 0), at(10, 15))
        assert snapshot.external_events[0].title == "Standup"

    def test_update_unknown_event(self, provider):
        with pytest.raises(SnapshotError, match="No event google:me:work:nope"):
            provider.update_event(ExternalEventRef("google", "me", "work", "nope"), at(10, 0), at(10, 15))
