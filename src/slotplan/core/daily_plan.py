"""Single-day planning - no I/O dependencies."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Mapping

from .activities import Activity, Goal
from .availability import DayAvailability, availability_for_date, windows_for_mode
from .domain import DomainClassifier, infer_scheduling_domain, mode_for_domain
from .intervals import BusyInterval, conflicts, instant, normalize_busy
from .scheduling import ProposedEvent
from .slots import (
    add_elapsed,
    clamp_to_next_quarter_hour,
    first_free_in_window,
    iter_candidates,
    window_bounds,
)

logger = logging.getLogger(__name__)

MIN_DAILY_MINUTES = 10
DEFAULT_MAX_ITEMS = 4
DEFAULT_SLOT_LIMIT = 6

DailyPlanProposal = ProposedEvent


@dataclass
class DailyPlanResult:
    """Proposals for a day, plus due items that could not be placed."""

    proposals: list[DailyPlanProposal] = field(default_factory=list)
    unplaced_due_activity_ids: list[str] = field(default_factory=list)


@dataclass
class ScheduledBlock:
    """An activity already placed on the calendar."""

    activity: Activity
    start: datetime
    end: datetime

    def as_busy(self) -> BusyInterval:
        return BusyInterval(start=self.start, end=self.end)


class MoveCheck(Enum):
    """Outcome of validating a manual move."""

    OK = "ok"
    OUTSIDE_AVAILABILITY = "outside_availability"
    CONFLICT = "conflict"


def _make_proposal(
    activity: Activity,
    slot: BusyInterval,
    calendar_id: str,
    domain: str,
    goals: list[Goal],
) -> DailyPlanProposal:
    goal = next((g for g in goals if g.id == activity.goal_id), None)
    return DailyPlanProposal(
        activity_id=activity.id,
        title=activity.title,
        start=slot.start,
        end=slot.end,
        calendar_id=calendar_id,
        domain=domain,
        goal_id=activity.goal_id,
        arc_id=goal.arc_id if goal else None,
    )


class _DayPlanner:
    """Places activities on one day against a busy list it owns."""

    def __init__(
        self,
        day: DayAvailability,
        target_date: date,
        busy_intervals: Iterable[BusyInterval],
        now: datetime,
        goals: list[Goal],
        classifier: DomainClassifier | None,
    ):
        self.day = day
        self.target_date = target_date
        self.busy = normalize_busy(busy_intervals)
        self.tz = now.tzinfo
        self.floor = clamp_to_next_quarter_hour(now) if target_date == now.date() else None
        self.goals = goals
        self.classifier = classifier

    def windows(self, activity: Activity) -> tuple[str, list[tuple[datetime, datetime]]]:
        domain = infer_scheduling_domain(activity, self.goals, self.classifier)
        bounds = []
        for window in windows_for_mode(self.day, mode_for_domain(domain)):
            b = window_bounds(self.target_date, window, self.tz)
            if b is not None:
                bounds.append(b)
        return domain, bounds

    def cursor(self, window_start: datetime) -> datetime:
        if self.floor is not None and window_start < self.floor:
            return self.floor
        return window_start.replace(second=0, microsecond=0)

    def try_place(self, activity: Activity, calendar_id: str | None) -> DailyPlanProposal | None:
        if not calendar_id:
            return None
        domain, windows = self.windows(activity)
        duration = timedelta(minutes=activity.duration_minutes(floor=MIN_DAILY_MINUTES))
        for window_start, window_end in windows:
            slot = first_free_in_window(self.cursor(window_start), window_end, duration, self.busy)
            if slot is not None:
                self.busy.append(slot)
                return _make_proposal(activity, slot, calendar_id, domain, self.goals)
        return None

    def candidates(self, activity: Activity, calendar_id: str, limit: int) -> list[DailyPlanProposal]:
        domain, windows = self.windows(activity)
        duration = timedelta(minutes=activity.duration_minutes(floor=MIN_DAILY_MINUTES))
        found: list[DailyPlanProposal] = []
        for window_start, window_end in windows:
            for candidate in iter_candidates(self.cursor(window_start), window_end, duration):
                if len(found) >= limit:
                    return found
                if not conflicts(candidate, self.busy):
                    found.append(_make_proposal(activity, candidate, calendar_id, domain, self.goals))
                    self.busy.append(candidate)
        return found


def propose_daily_plan(
    ranked_activities: list[Activity],
    goals: list[Goal],
    availability: Mapping | None,
    target_date: date,
    busy_intervals: list[BusyInterval],
    write_calendar_id: str | None,
    max_items: int = DEFAULT_MAX_ITEMS,
    dismissed_activity_ids: Iterable[str] | None = None,
    now: datetime | None = None,
    classifier: DomainClassifier | None = None,
) -> DailyPlanResult:
    """
    Propose up to `max_items` placements on one day.

    Activities due on the target day are placed first, in ranked order; any
    that do not fit are reported in `unplaced_due_activity_ids`. Remaining
    capacity is filled from the rest of the ranked list, and failures there
    are skipped silently.

    Pure function - no I/O. Ranking happens before this call.
    """
    day = availability_for_date(availability, target_date)
    if not day.enabled:
        return DailyPlanResult()

    now = now or datetime.now().astimezone()
    dismissed = set(dismissed_activity_ids or ())
    planner = _DayPlanner(day, target_date, busy_intervals, now, goals, classifier)

    def eligible(activity: Activity) -> bool:
        return not activity.is_closed and not activity.scheduled_at and activity.id not in dismissed

    def due_today(activity: Activity) -> bool:
        return activity.scheduled_date == target_date

    result = DailyPlanResult()

    # Due items first
    for activity in ranked_activities:
        if len(result.proposals) >= max_items:
            break
        if not (eligible(activity) and due_today(activity)):
            continue
        proposal = planner.try_place(activity, write_calendar_id)
        if proposal is None:
            logger.info(f"Could not place due activity {activity.id} on {target_date}")
            result.unplaced_due_activity_ids.append(activity.id)
        else:
            result.proposals.append(proposal)

    for activity in ranked_activities:
        if len(result.proposals) >= max_items:
            break
        if not eligible(activity) or due_today(activity):
            continue
        proposal = planner.try_place(activity, write_calendar_id)
        if proposal is not None:
            result.proposals.append(proposal)

    return result


def propose_slots_for_activity(
    activity: Activity,
    goals: list[Goal],
    availability: Mapping | None,
    target_date: date,
    busy_intervals: list[BusyInterval],
    write_calendar_id: str | None,
    limit: int = DEFAULT_SLOT_LIMIT,
    now: datetime | None = None,
    classifier: DomainClassifier | None = None,
) -> list[DailyPlanProposal]:
    """Suggest up to `limit` non-overlapping slots for one activity on a day."""
    if not write_calendar_id:
        return []
    day = availability_for_date(availability, target_date)
    if not day.enabled:
        return []

    now = now or datetime.now().astimezone()
    planner = _DayPlanner(day, target_date, busy_intervals, now, goals, classifier)
    return planner.candidates(activity, write_calendar_id, limit)


def blocks_for_day(
    activities: Iterable[Activity], target_date: date, tz: tzinfo | None = None
) -> list[ScheduledBlock]:
    """
    Activities scheduled to start on the target day, as calendar blocks.

    With `tz`, aware start times are bucketed by their date in that zone;
    naive start times are taken as already local.
    """
    blocks = []
    for activity in activities:
        start = activity.scheduled_at
        if start is None:
            continue
        if tz is not None and start.tzinfo is not None:
            start = start.astimezone(tz)
        if start.date() != target_date:
            continue
        duration = timedelta(minutes=activity.duration_minutes(floor=MIN_DAILY_MINUTES))
        blocks.append(ScheduledBlock(activity=activity, start=start, end=add_elapsed(start, duration)))
    return blocks


def _within(inner: BusyInterval, outer: BusyInterval) -> bool:
    return instant(outer.start) <= instant(inner.start) and instant(inner.end) <= instant(outer.end)


def check_move(
    activity: Activity,
    goals: list[Goal],
    availability: Mapping | None,
    target_date: date,
    new_start: datetime,
    busy_intervals: Iterable[BusyInterval],
    classifier: DomainClassifier | None = None,
) -> MoveCheck:
    """
    Validate moving an activity to start at `new_start` on the target day.

    The moved interval must sit fully inside one window for the activity's
    mode and must not overlap any busy interval. Pass busy time that excludes
    the activity's own current placement.
    """
    day = availability_for_date(availability, target_date)
    if not day.enabled:
        return MoveCheck.OUTSIDE_AVAILABILITY

    duration = timedelta(minutes=activity.duration_minutes(floor=MIN_DAILY_MINUTES))
    moved = BusyInterval(start=new_start, end=add_elapsed(new_start, duration))

    mode = mode_for_domain(infer_scheduling_domain(activity, goals, classifier))
    inside = False
    for window in windows_for_mode(day, mode):
        bounds = window_bounds(target_date, window, new_start.tzinfo)
        if bounds is not None and _within(moved, BusyInterval(*bounds)):
            inside = True
            break
    if not inside:
        return MoveCheck.OUTSIDE_AVAILABILITY

    if conflicts(moved, busy_intervals):
        return MoveCheck.CONFLICT
    return MoveCheck.OK
