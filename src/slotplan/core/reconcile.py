"""Reconcile external calendar events with internally scheduled blocks.

When an activity was pushed to an external calendar and the event is later read
back, or the user already had a matching external event, the same real-world
event would render twice. This module finds those duplicates.

Pure functions - no I/O.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .activities import event_key, parse_instant
from .daily_plan import ScheduledBlock

TIME_TOLERANCE_SECONDS = 2 * 60
MIN_OVERLAP_RATIO = 0.85
MAX_DURATION_DIFF_SECONDS = 5 * 60
MIN_SUBSTRING_LENGTH = 4

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

TitleMatcher = Callable[[str, str], bool]
TimeMatcher = Callable[[float, float, float, float], bool]


@dataclass
class CalendarEvent:
    """An event fetched from an external calendar."""

    provider: str
    account_id: str
    calendar_id: str
    event_id: str
    title: str | None
    start: datetime | str | None
    end: datetime | str | None
    is_all_day: bool = False

    @property
    def key(self) -> str:
        return event_key(self.provider, self.account_id, self.calendar_id, self.event_id)

    @classmethod
    def from_api(cls, data: dict) -> "CalendarEvent":
        return cls(
            provider=data.get("provider") or "",
            account_id=data.get("accountId") or "",
            calendar_id=data.get("calendarId") or "",
            event_id=data.get("eventId") or "",
            title=data.get("title"),
            start=data.get("start"),
            end=data.get("end"),
            is_all_day=bool(data.get("isAllDay")),
        )


@dataclass
class ReconciledCalendar:
    """External events to render, and the keys matched as duplicates."""

    external_events: list[CalendarEvent] = field(default_factory=list)
    matched_keys: set[str] = field(default_factory=set)


def normalize_title(raw: str | None) -> str:
    """Lower-case, collapse non-alphanumeric runs to single spaces, trim."""
    if not isinstance(raw, str):
        return ""
    return _NON_ALNUM.sub(" ", raw.lower()).strip()


def is_title_similar(a: str, b: str) -> bool:
    """Equal normalized titles, or one (4+ chars) contained in the other."""
    if not a or not b:
        return False
    if a == b:
        return True
    if len(a) >= MIN_SUBSTRING_LENGTH and a in b:
        return True
    if len(b) >= MIN_SUBSTRING_LENGTH and b in a:
        return True
    return False


def is_same_time_window(a_start: float, a_end: float, b_start: float, b_end: float) -> bool:
    """
    Near-identical bounds, or strong overlap with near-equal durations.

    Arguments are POSIX timestamps in seconds.
    """
    if (
        abs(a_start - b_start) <= TIME_TOLERANCE_SECONDS
        and abs(a_end - b_end) <= TIME_TOLERANCE_SECONDS
    ):
        return True

    overlap = max(0.0, min(a_end, b_end) - max(a_start, b_start))
    # Durations floor at 1ms so zero-length events never divide by zero
    a_duration = max(0.001, a_end - a_start)
    b_duration = max(0.001, b_end - b_start)
    ratio = overlap / min(a_duration, b_duration)
    return ratio >= MIN_OVERLAP_RATIO and abs(a_duration - b_duration) <= MAX_DURATION_DIFF_SECONDS


@dataclass
class _TimedEvent:
    index: int
    event: CalendarEvent
    start: float
    end: float
    title: str


def _timed_events(events: list[CalendarEvent]) -> list[_TimedEvent]:
    timed = []
    for i, e in enumerate(events):
        if e.is_all_day:
            continue
        start = parse_instant(e.start)
        end = parse_instant(e.end)
        if start is None or end is None:
            continue
        timed.append(_TimedEvent(i, e, start.timestamp(), end.timestamp(), normalize_title(e.title)))
    return timed


def reconcile_calendar_events(
    external_events: list[CalendarEvent],
    blocks: list[ScheduledBlock],
    title_matcher: TitleMatcher = is_title_similar,
    time_matcher: TimeMatcher = is_same_time_window,
) -> ReconciledCalendar:
    """
    Drop external events that duplicate internally scheduled blocks.

    1. Exact: a block whose activity carries the external event's full
       provider/account/calendar/event key claims it, whatever its time or title.
    2. Fuzzy: each remaining block claims the unclaimed timed event with a
       similar time window and title, closest by start + end distance. Blocks
       are processed in order and the first to claim an event keeps it.

    Events with missing or unparseable instants are never fuzzy-matched but
    still appear in the output.
    """
    known_keys = {e.key for e in external_events}

    matched_keys: set[str] = set()
    for block in blocks:
        key = block.activity.external_key
        if key and key in known_keys:
            matched_keys.add(key)

    timed = _timed_events(external_events)
    claimed: set[int] = set()

    for block in blocks:
        key = block.activity.external_key
        if key and key in matched_keys:
            continue

        title = normalize_title(block.activity.title)
        if not title:
            continue

        block_start = block.start.timestamp()
        block_end = block.end.timestamp()

        best: _TimedEvent | None = None
        best_score = float("inf")
        for candidate in timed:
            if candidate.index in claimed or candidate.event.key in matched_keys:
                continue
            if not time_matcher(block_start, block_end, candidate.start, candidate.end):
                continue
            if not title_matcher(title, candidate.title):
                continue
            score = abs(block_start - candidate.start) + abs(block_end - candidate.end)
            if score < best_score:
                best, best_score = candidate, score

        if best is not None:
            claimed.add(best.index)
            matched_keys.add(best.event.key)

    return ReconciledCalendar(
        external_events=[e for e in external_events if e.key not in matched_keys],
        matched_keys=matched_keys,
    )
