"""Activity ranking interface."""

from datetime import datetime
from typing import Protocol

from slotplan.core.activities import Activity, Goal


class ActivityRanker(Protocol):
    """Interface for ordering activities by what should happen next."""

    def rank(
        self, activities: list[Activity], goals: list[Goal], now: datetime, limit: int
    ) -> list[Activity]:
        """Return at most `limit` activities, best first."""
        ...
