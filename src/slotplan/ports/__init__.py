"""Ports - interfaces/protocols for external dependencies."""

from .calendar_provider import (
    CalendarAccount,
    CalendarListItem,
    CalendarPreferences,
    CalendarProvider,
    CalendarRef,
)
from .activity_ranker import ActivityRanker

__all__ = [
    "CalendarAccount",
    "CalendarListItem",
    "CalendarPreferences",
    "CalendarProvider",
    "CalendarRef",
    "ActivityRanker",
]
