"""Multi-day batch scheduling - no I/O dependencies."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Mapping

from .activities import Activity, ActivityStatus, Goal
from .availability import (
    TimeWindow,
    WeekAvailability,
    resolve_availability,
    weekday_key,
    windows_for_mode,
)
from .domain import DomainClassifier, infer_scheduling_domain, mode_for_domain
from .intervals import BusyInterval, normalize_busy
from .slots import clamp_to_next_quarter_hour, find_next_slot

logger = logging.getLogger(__name__)

ALL_CALENDARS = "__all__"
DEFAULT_HORIZON_DAYS = 7
MIN_BATCH_MINUTES = 5

PREFERRED_WINDOWS = {
    "morning": TimeWindow("08:00", "12:00"),
    "afternoon": TimeWindow("12:00", "17:00"),
    "evening": TimeWindow("17:00", "21:00"),
}
FALLBACK_WINDOW = TimeWindow("09:00", "21:00")


@dataclass
class ProposedEvent:
    """A proposed calendar placement for one activity."""

    activity_id: str
    title: str
    start: datetime
    end: datetime
    calendar_id: str
    domain: str
    goal_id: str | None = None
    arc_id: str | None = None

    def duration_minutes(self) -> int:
        return int((self.end.timestamp() - self.start.timestamp()) / 60)

    def format(self) -> str:
        return f"{self.start.strftime('%a %H:%M')}-{self.end.strftime('%H:%M')} {self.title}"

    def to_dict(self) -> dict:
        return {
            "activityId": self.activity_id,
            "title": self.title,
            "startDate": self.start.isoformat(),
            "endDate": self.end.isoformat(),
            "calendarId": self.calendar_id,
            "domain": self.domain,
            "goalId": self.goal_id,
            "arcId": self.arc_id,
        }


@dataclass
class SchedulingPreferences:
    """User scheduling preferences relevant to placement."""

    domain_calendar_mapping: dict[str, str] = field(default_factory=dict)
    preferred_windows: list[str] = field(default_factory=list)


def resolve_preferred_windows(names: list[str]) -> list[TimeWindow]:
    """Map named day parts to windows; unknown names are ignored."""
    windows = [PREFERRED_WINDOWS[n] for n in names if n in PREFERRED_WINDOWS]
    return windows or [FALLBACK_WINDOW]


class BusyLedger:
    """
    Busy time for one scheduling call.

    Starts from the caller's busy snapshot and accumulates every placement
    committed during the call. Placements block all calendars, not only
    their own. Owned by a single call; never reuse across calls.
    """

    def __init__(self, busy_by_calendar_id: Mapping[str, list[BusyInterval]] | None = None):
        self._existing = {
            cal_id: normalize_busy(intervals or [])
            for cal_id, intervals in (busy_by_calendar_id or {}).items()
        }
        self._committed: dict[str, list[BusyInterval]] = {}
        self._committed_all: list[BusyInterval] = []

    def busy_for(self, calendar_id: str) -> list[BusyInterval]:
        """Merged busy time that a placement on `calendar_id` must avoid."""
        return normalize_busy(
            [
                *self._existing.get(ALL_CALENDARS, []),
                *self._committed_all,
                *self._existing.get(calendar_id, []),
                *self._committed.get(calendar_id, []),
            ]
        )

    def commit(self, calendar_id: str, interval: BusyInterval) -> None:
        self._committed.setdefault(calendar_id, []).append(interval)
        self._committed_all.append(interval)


def resolve_calendar_id(
    activity: Activity,
    domain: str,
    preferences: SchedulingPreferences,
    default_calendar_id: str | None,
) -> str | None:
    """Explicit override, then domain mapping, then the default calendar."""
    return (
        activity.calendar_id
        or preferences.domain_calendar_mapping.get(domain)
        or default_calendar_id
    )


def _windows_source(
    week: WeekAvailability | None, mode: str, preferred: list[TimeWindow]
) -> Callable[[date], list[TimeWindow]]:
    if week is None:
        return lambda d: preferred

    def windows_for_day(d: date) -> list[TimeWindow]:
        day = week[weekday_key(d)]
        return windows_for_mode(day, mode) if day.enabled else []

    return windows_for_day


def propose_schedule(
    activities: list[Activity],
    preferences: SchedulingPreferences | None,
    default_calendar_id: str | None,
    busy_by_calendar_id: Mapping[str, list[BusyInterval]] | None = None,
    now: datetime | None = None,
    goals: list[Goal] | None = None,
    availability: Mapping | None = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    classifier: DomainClassifier | None = None,
) -> list[ProposedEvent]:
    """
    Greedily place activities, in input order, into the earliest free slots.

    Done and already-scheduled activities are skipped, as are activities with
    no resolvable calendar. Each placement becomes busy for the rest of the
    call, so no two proposals overlap. Earlier activities are never moved to
    make room for later ones.

    When `availability` is given, each day's windows for the activity's mode
    are used; otherwise the preferred day parts apply every day.

    Pure function - no I/O.
    """
    preferences = preferences or SchedulingPreferences()
    goals = goals or []
    now = now or datetime.now().astimezone()
    start_cursor = clamp_to_next_quarter_hour(now)
    preferred = resolve_preferred_windows(preferences.preferred_windows)
    ledger = BusyLedger(busy_by_calendar_id)
    week = resolve_availability(availability) if availability is not None else None

    proposals: list[ProposedEvent] = []
    for activity in activities:
        if activity.status == ActivityStatus.DONE or activity.scheduled_at:
            continue

        domain = infer_scheduling_domain(activity, goals, classifier)
        calendar_id = resolve_calendar_id(activity, domain, preferences, default_calendar_id)
        if not calendar_id:
            logger.debug(f"No calendar for activity {activity.id}; skipping")
            continue

        slot = find_next_slot(
            duration_minutes=activity.duration_minutes(floor=MIN_BATCH_MINUTES),
            start_at=start_cursor,
            horizon_days=horizon_days,
            busy=ledger.busy_for(calendar_id),
            windows_for_day=_windows_source(week, mode_for_domain(domain), preferred),
        )
        if slot is None:
            logger.debug(f"No slot within {horizon_days} days for activity {activity.id}")
            continue

        proposals.append(
            ProposedEvent(
                activity_id=activity.id,
                title=activity.title,
                start=slot.start,
                end=slot.end,
                calendar_id=calendar_id,
                domain=domain,
                goal_id=activity.goal_id,
            )
        )
        ledger.commit(calendar_id, slot)

    return proposals
