"""Tests for external event reconciliation."""

from datetime import datetime, timedelta, timezone

import pytest

from slotplan.core.activities import Activity, ExternalEventRef
from slotplan.core.daily_plan import ScheduledBlock
from slotplan.core.reconcile import (
    CalendarEvent,
    is_same_time_window,
    is_title_similar,
    normalize_title,
    reconcile_calendar_events,
)


@pytest.fixture
def at():
    def _make(hour: int, minute: int = 0) -> datetime:
        return datetime(2025, 1, 15, hour, minute, tzinfo=timezone.utc)
    return _make


@pytest.fixture
def make_event():
    """Factory for external events on the primary calendar."""
    def _make(event_id: str, title: str | None, start, end, **kwargs) -> CalendarEvent:
        return CalendarEvent(
            provider="google",
            account_id="me@example.com",
            calendar_id="primary",
            event_id=event_id,
            title=title,
            start=start,
            end=end,
            **kwargs,
        )
    return _make


def block(title: str, start: datetime, end: datetime, ref: ExternalEventRef | None = None) -> ScheduledBlock:
    activity = Activity(id=title, title=title, scheduled_at=start, external_ref=ref)
    return ScheduledBlock(activity=activity, start=start, end=end)


class TestNormalizeTitle:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Team Standup", "team standup"),
            ("  1:1 -- Sam!! ", "1 1 sam"),
            ("Café", "caf"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_title(raw) == expected


class TestTitleSimilarity:
    def test_equal(self):
        assert is_title_similar("gym", "gym")

    def test_substring(self):
        assert is_title_similar("standup", "team standup")
        assert is_title_similar("team standup", "standup")

    def test_short_substring_rejected(self):
        assert not is_title_similar("gym", "gym class")

    def test_empty_never_similar(self):
        assert not is_title_similar("", "")
        assert not is_title_similar("", "standup")


class TestTimeWindow:
    def test_within_tolerance(self, at):
        assert is_same_time_window(
            at(9, 0).timestamp(), at(9, 15).timestamp(), at(9, 2).timestamp(), at(9, 13).timestamp()
        )

    def test_strong_overlap(self, at):
        assert is_same_time_window(
            at(10, 0).timestamp(), at(11, 0).timestamp(), at(10, 5).timestamp(), at(11, 3).timestamp()
        )

    def test_duration_mismatch(self, at):
        assert not is_same_time_window(
            at(10, 0).timestamp(), at(11, 0).timestamp(), at(10, 0).timestamp(), at(10, 30).timestamp()
        )

    def test_zero_length(self, at):
        t = at(10, 0).timestamp()
        assert is_same_time_window(t, t, t, t)


class TestReconcile:
    def test_exact_key_match(self, at, make_event):
        event = make_event("evt-1", "Something else", at(14, 0), at(15, 0))
        ref = ExternalEventRef("google", "me@example.com", "primary", "evt-1")
        result = reconcile_calendar_events([event], [block("Write report", at(9, 0), at(9, 30), ref)])
        assert result.external_events == []
        assert result.matched_keys == {event.key}

    def test_incomplete_ref_is_not_exact(self, at, make_event):
        event = make_event("", "Something else", at(14, 0), at(15, 0))
        ref = ExternalEventRef("google", "me@example.com", "primary", "")
        result = reconcile_calendar_events([event], [block("Write report", at(9, 0), at(9, 30), ref)])
        assert result.external_events == [event]

    def test_fuzzy_match(self, at, make_event):
        event = make_event("evt-1", "Team Standup", at(9, 1), at(9, 14))
        result = reconcile_calendar_events([event], [block("Standup", at(9, 0), at(9, 15))])
        assert result.external_events == []
        assert result.matched_keys == {event.key}

    def test_iso_strings(self, at, make_event):
        event = make_event("evt-1", "Standup", "2025-01-15T09:00:00Z", "2025-01-15T09:15:00Z")
        result = reconcile_calendar_events([event], [block("Standup", at(9, 0), at(9, 15))])
        assert result.external_events == []

    def test_offset_strings_compare_as_instants(self, at, make_event):
        event = make_event("evt-1", "Standup", "2025-01-15T04:00:00-05:00", "2025-01-15T04:15:00-05:00")
        result = reconcile_calendar_events([event], [block("Standup", at(9, 0), at(9, 15))])
        assert result.external_events == []

    def test_overlap_rule(self, at, make_event):
        close = make_event("close", "Deep work", at(10, 5), at(11, 3))
        result = reconcile_calendar_events([close], [block("Deep work", at(10, 0), at(11, 0))])
        assert result.matched_keys == {close.key}

        half = make_event("half", "Deep work", at(10, 0), at(10, 30))
        result = reconcile_calendar_events([half], [block("Deep work", at(10, 0), at(11, 0))])
        assert result.matched_keys == set()

    def test_title_mismatch_kept(self, at, make_event):
        event = make_event("evt-1", "Dentist", at(9, 0), at(9, 30))
        result = reconcile_calendar_events([event], [block("Standup", at(9, 0), at(9, 30))])
        assert result.external_events == [event]

    def test_all_day_and_unparseable_kept(self, at, make_event):
        all_day = make_event("all-day", "Standup", at(9, 0), at(9, 15), is_all_day=True)
        broken = make_event("broken", "Standup", "not a date", None)
        result = reconcile_calendar_events([all_day, broken], [block("Standup", at(9, 0), at(9, 15))])
        assert result.external_events == [all_day, broken]
        assert result.matched_keys == set()

    def test_closest_candidate_wins(self, at, make_event):
        far = make_event("far", "Standup", at(9, 2), at(9, 17))
        near = make_event("near", "Standup", at(9, 0), at(9, 16))
        result = reconcile_calendar_events([far, near], [block("Standup", at(9, 0), at(9, 15))])
        assert result.external_events == [far]

    def test_first_block_claims_event(self, at, make_event):
        event = make_event("evt-1", "Standup", at(9, 0), at(9, 15))
        blocks = [
            block("Standup", at(9, 1), at(9, 16)),
            block("Standup", at(9, 0), at(9, 15)),
        ]
        result = reconcile_calendar_events([event], blocks)
        assert result.external_events == []
        assert result.matched_keys == {event.key}

    def test_event_matched_at_most_once(self, at, make_event):
        first = make_event("a", "Standup", at(9, 0), at(9, 15))
        second = make_event("b", "Standup", at(9, 0), at(9, 15))
        result = reconcile_calendar_events([first, second], [block("Standup", at(9, 0), at(9, 15))])
        assert result.external_events == [second]

    def test_exact_match_block_skips_fuzzy(self, at, make_event):
        linked = make_event("linked", "Other", at(14, 0), at(15, 0))
        lookalike = make_event("lookalike", "Standup", at(9, 0), at(9, 15))
        ref = ExternalEventRef("google", "me@example.com", "primary", "linked")
        result = reconcile_calendar_events([linked, lookalike], [block("Standup", at(9, 0), at(9, 15), ref)])
        assert result.external_events == [lookalike]

    def test_idempotent(self, at, make_event):
        events = [
            make_event("a", "Standup", at(9, 0), at(9, 15)),
            make_event("b", "Lunch", at(12, 0), at(13, 0)),
        ]
        blocks = [block("Standup", at(9, 0), at(9, 15))]
        once = reconcile_calendar_events(events, blocks)
        twice = reconcile_calendar_events(once.external_events, blocks)
        assert twice.external_events == once.external_events
        assert twice.matched_keys == set()

    def test_mixed_naive_and_aware(self, make_event):
        event = make_event("evt-1", "Standup", "2025-01-15T09:00:00Z", "2025-01-15T09:15:00Z")
        naive = datetime(2025, 1, 15, 9, 0)
        result = reconcile_calendar_events([event], [block("Standup", naive, naive + timedelta(minutes=15))])
        assert len(result.external_events) + len(result.matched_keys) == 1

    def test_custom_matchers(self, at, make_event):
        event = make_event("evt-1", "Dentist", at(9, 0), at(9, 30))
        result = reconcile_calendar_events(
            [event],
            [block("Standup", at(9, 0), at(9, 30))],
            title_matcher=lambda a, b: True,
        )
        assert result.external_events == []
