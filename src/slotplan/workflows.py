"""Workflow layer between the CLI and the functional core.

Each function fetches through ports, runs a pure core function, and returns
its result. Errors from providers propagate to the caller.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Mapping

from .config import Config
from .core.activities import Activity, ExternalEventRef, Goal
from .core.daily_plan import (
    DailyPlanProposal,
    DailyPlanResult,
    blocks_for_day,
    propose_daily_plan,
    propose_slots_for_activity,
)
from .core.domain import KeywordDomainClassifier
from .core.intervals import BusyInterval
from .core.reconcile import ReconciledCalendar, reconcile_calendar_events
from .core.scheduling import ProposedEvent, propose_schedule
from .ports.activity_ranker import ActivityRanker
from .ports.calendar_provider import CalendarProvider, CalendarRef

logger = logging.getLogger(__name__)


def day_bounds(target_date: date, config: Config) -> tuple[datetime, datetime]:
    """Start and end instants of a calendar day in the configured timezone."""
    start = datetime.combine(target_date, time(0, 0), tzinfo=config.tz)
    return start, datetime.combine(target_date + timedelta(days=1), time(0, 0), tzinfo=config.tz)


def ranking_anchor(target_date: date, now: datetime) -> datetime:
    """Now for today; midday on other days, clear of midnight edge cases."""
    if target_date == now.date():
        return now
    return datetime.combine(target_date, time(12, 0), tzinfo=now.tzinfo)


def _local_now(config: Config, now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(config.tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=config.tz)
    return now.astimezone(config.tz)


def _write_calendar_id(write_ref: CalendarRef | None, config: Config) -> str | None:
    if write_ref is not None:
        return write_ref.calendar_id
    return config.default_calendar_id or None


def _day_busy(
    provider: CalendarProvider, activities: list[Activity], config: Config, target_date: date
) -> tuple[list[BusyInterval], str | None]:
    """Provider busy time plus the day's scheduled activities, and the write calendar id."""
    prefs = provider.get_preferences()
    start, end = day_bounds(target_date, config)
    busy = list(provider.list_busy(start, end, prefs.read_calendar_refs))
    busy.extend(b.as_busy() for b in blocks_for_day(activities, target_date, config.tz))
    logger.debug(f"{len(busy)} busy intervals for {target_date}")
    return busy, _write_calendar_id(prefs.write_calendar_ref, config)


def plan_day(
    provider: CalendarProvider,
    ranker: ActivityRanker,
    activities: list[Activity],
    goals: list[Goal],
    config: Config,
    target_date: date,
    now: datetime | None = None,
    dismissed: list[str] | None = None,
    availability: Mapping | None = None,
) -> DailyPlanResult:
    """Fetch busy time and preferences, rank, and propose a plan for one day."""
    now = _local_now(config, now)
    busy, write_calendar_id = _day_busy(provider, activities, config, target_date)

    ranked = ranker.rank(
        activities,
        goals,
        now=ranking_anchor(target_date, now),
        limit=max(10, config.max_items * 3),
    )
    return propose_daily_plan(
        ranked_activities=ranked,
        goals=goals,
        availability=availability if availability is not None else config.availability,
        target_date=target_date,
        busy_intervals=busy,
        write_calendar_id=write_calendar_id,
        max_items=config.max_items,
        dismissed_activity_ids=dismissed,
        now=now,
        classifier=KeywordDomainClassifier(config.work_keywords),
    )


def suggest_slots(
    provider: CalendarProvider,
    activity: Activity,
    activities: list[Activity],
    goals: list[Goal],
    config: Config,
    target_date: date,
    now: datetime | None = None,
    availability: Mapping | None = None,
) -> list[DailyPlanProposal]:
    """Candidate slots for one activity on a day, around existing busy time."""
    busy, write_calendar_id = _day_busy(provider, activities, config, target_date)
    return propose_slots_for_activity(
        activity=activity,
        goals=goals,
        availability=availability if availability is not None else config.availability,
        target_date=target_date,
        busy_intervals=busy,
        write_calendar_id=write_calendar_id,
        limit=config.slot_limit,
        now=_local_now(config, now),
        classifier=KeywordDomainClassifier(config.work_keywords),
    )


def schedule_activities(
    provider: CalendarProvider,
    activities: list[Activity],
    goals: list[Goal],
    config: Config,
    now: datetime | None = None,
    availability: Mapping | None = None,
) -> list[ProposedEvent]:
    """Fetch busy time per read calendar over the horizon and batch-schedule."""
    now = _local_now(config, now)
    prefs = provider.get_preferences()
    start, _ = day_bounds(now.date(), config)
    _, end = day_bounds(now.date() + timedelta(days=max(1, config.horizon_days)), config)

    busy_by_calendar_id = {
        ref.calendar_id: provider.list_busy(start, end, [ref]) for ref in prefs.read_calendar_refs
    }
    return propose_schedule(
        activities=activities,
        preferences=config.scheduling_preferences(),
        default_calendar_id=_write_calendar_id(prefs.write_calendar_ref, config),
        busy_by_calendar_id=busy_by_calendar_id,
        now=now,
        goals=goals,
        availability=availability if availability is not None else config.availability,
        horizon_days=config.horizon_days,
        classifier=KeywordDomainClassifier(config.work_keywords),
    )


def reconcile_day(
    provider: CalendarProvider,
    activities: list[Activity],
    config: Config,
    target_date: date,
) -> ReconciledCalendar:
    """Fetch a day's external events and drop those duplicating our blocks."""
    prefs = provider.get_preferences()
    start, end = day_bounds(target_date, config)
    events = provider.list_events(start, end, prefs.read_calendar_refs)
    return reconcile_calendar_events(events, blocks_for_day(activities, target_date, config.tz))


def apply_proposals(
    provider: CalendarProvider,
    proposals: list[ProposedEvent],
    write_ref: CalendarRef,
) -> dict[str, ExternalEventRef]:
    """Create an external event for each proposal; map activity id to its event."""
    created: dict[str, ExternalEventRef] = {}
    for proposal in proposals:
        created[proposal.activity_id] = provider.create_event(
            title=proposal.title,
            start=proposal.start,
            end=proposal.end,
            write_calendar_ref=write_ref,
        )
    return created
