"""Pure activity domain model - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

DEFAULT_ESTIMATE_MINUTES = 30


class ActivityStatus(Enum):
    """Lifecycle state of an activity."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, raw: str | None) -> "ActivityStatus":
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


@dataclass(frozen=True)
class ExternalEventRef:
    """Identifies one event in an external calendar."""

    provider: str
    account_id: str
    calendar_id: str
    event_id: str

    @property
    def key(self) -> str:
        return event_key(self.provider, self.account_id, self.calendar_id, self.event_id)

    def is_complete(self) -> bool:
        return all((self.provider, self.account_id, self.calendar_id, self.event_id))


def event_key(provider: str, account_id: str, calendar_id: str, event_id: str) -> str:
    """Composite reconciliation key for an external event."""
    return f"{provider}:{account_id}:{calendar_id}:{event_id}"


@dataclass
class Goal:
    """A goal that activities may link to."""

    id: str
    title: str
    arc_id: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "Goal":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            arc_id=data.get("arcId"),
        )


@dataclass
class Activity:
    """A task that may be placed on a calendar."""

    id: str
    title: str
    status: ActivityStatus = ActivityStatus.TODO
    scheduled_at: datetime | None = None
    scheduled_date: date | None = None
    estimate_minutes: int | None = None
    scheduling_domain: str | None = None
    goal_id: str | None = None
    calendar_id: str | None = None
    external_ref: ExternalEventRef | None = None

    @property
    def is_closed(self) -> bool:
        return self.status in (ActivityStatus.DONE, ActivityStatus.CANCELLED)

    def duration_minutes(self, floor: int) -> int:
        """Estimated duration, defaulting to 30 and never below `floor`."""
        estimate = self.estimate_minutes
        if estimate is None:
            estimate = DEFAULT_ESTIMATE_MINUTES
        return max(floor, round(estimate))

    @property
    def external_key(self) -> str | None:
        """Reconciliation key of the linked external event, if fully known."""
        if self.external_ref is None or not self.external_ref.is_complete():
            return None
        return self.external_ref.key

    @classmethod
    def from_api(cls, data: dict) -> "Activity":
        """Create Activity from a camelCase JSON record."""
        ref = None
        if data.get("scheduledProvider"):
            ref = ExternalEventRef(
                provider=data.get("scheduledProvider") or "",
                account_id=data.get("scheduledProviderAccountId") or "",
                calendar_id=data.get("scheduledProviderCalendarId") or "",
                event_id=data.get("scheduledProviderEventId") or "",
            )
        estimate = data.get("estimateMinutes")
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            status=ActivityStatus.parse(data.get("status")),
            scheduled_at=parse_instant(data.get("scheduledAt")),
            scheduled_date=_parse_date(data.get("scheduledDate")),
            estimate_minutes=estimate if isinstance(estimate, (int, float)) else None,
            scheduling_domain=data.get("schedulingDomain") or None,
            goal_id=data.get("goalId"),
            calendar_id=data.get("calendarId") or None,
            external_ref=ref,
        )


def parse_instant(raw) -> datetime | None:
    """Parse an ISO-8601 instant, returning None when missing or malformed."""
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _parse_date(raw) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return date.fromisoformat(raw.strip()[:10])
    except ValueError:
        return None
