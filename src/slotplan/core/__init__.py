"""Functional core - pure scheduling and reconciliation logic with no I/O."""

from .activities import Activity, ActivityStatus, ExternalEventRef, Goal
from .intervals import BusyInterval, normalize_busy, overlaps
from .availability import (
    DayAvailability,
    TimeWindow,
    default_availability,
    resolve_availability,
    availability_for_date,
    windows_for_mode,
)
from .domain import KeywordDomainClassifier, infer_scheduling_domain, resolve_mode
from .slots import clamp_to_next_quarter_hour, find_next_slot
from .scheduling import ProposedEvent, SchedulingPreferences, BusyLedger, propose_schedule
from .daily_plan import (
    DailyPlanResult,
    MoveCheck,
    ScheduledBlock,
    blocks_for_day,
    check_move,
    propose_daily_plan,
    propose_slots_for_activity,
)
from .reconcile import CalendarEvent, ReconciledCalendar, reconcile_calendar_events

__all__ = [
    # Activities
    "Activity",
    "ActivityStatus",
    "ExternalEventRef",
    "Goal",
    # Intervals
    "BusyInterval",
    "normalize_busy",
    "overlaps",
    # Availability
    "DayAvailability",
    "TimeWindow",
    "default_availability",
    "resolve_availability",
    "availability_for_date",
    "windows_for_mode",
    # Domain
    "KeywordDomainClassifier",
    "infer_scheduling_domain",
    "resolve_mode",
    # Slots
    "clamp_to_next_quarter_hour",
    "find_next_slot",
    # Scheduling
    "ProposedEvent",
    "SchedulingPreferences",
    "BusyLedger",
    "propose_schedule",
    # Daily plan
    "DailyPlanResult",
    "MoveCheck",
    "ScheduledBlock",
    "blocks_for_day",
    "check_move",
    "propose_daily_plan",
    "propose_slots_for_activity",
    # Reconciliation
    "CalendarEvent",
    "ReconciledCalendar",
    "reconcile_calendar_events",
]
