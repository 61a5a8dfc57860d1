"""Input-order ranker - keeps activities in the order they were given."""

from datetime import datetime

from slotplan.core.activities import Activity, Goal


class InputOrderRanker:
    """
    Trivial ranker for callers that rank upstream.

    Implements ActivityRanker protocol.
    """

    def rank(
        self, activities: list[Activity], goals: list[Goal], now: datetime, limit: int
    ) -> list[Activity]:
        return list(activities[:limit])
