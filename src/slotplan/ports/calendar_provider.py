"""Calendar provider interface."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from slotplan.core.activities import ExternalEventRef
from slotplan.core.intervals import BusyInterval
from slotplan.core.reconcile import CalendarEvent


@dataclass(frozen=True)
class CalendarRef:
    """Identifies one calendar in one connected account."""

    provider: str
    account_id: str
    calendar_id: str

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "accountId": self.account_id,
            "calendarId": self.calendar_id,
        }

    @classmethod
    def from_api(cls, data: dict) -> "CalendarRef":
        return cls(
            provider=data["provider"],
            account_id=data["accountId"],
            calendar_id=data["calendarId"],
        )


@dataclass
class CalendarAccount:
    """A connected calendar account."""

    id: str
    provider: str
    account_id: str
    email: str | None = None
    active: bool = True


@dataclass
class CalendarListItem:
    """A calendar the user can see."""

    ref: CalendarRef
    name: str
    can_write: bool = False
    shared: bool = False
    hidden: bool = False


@dataclass
class CalendarPreferences:
    """Which calendars to read busy time from, and where to write."""

    read_calendar_refs: list[CalendarRef] = field(default_factory=list)
    write_calendar_ref: CalendarRef | None = None


class CalendarProvider(Protocol):
    """Interface for the backend calendar proxy."""

    def list_accounts(self) -> list[CalendarAccount]:
        ...

    def list_calendars(self) -> list[CalendarListItem]:
        ...

    def get_preferences(self) -> CalendarPreferences:
        ...

    def list_busy(
        self, start: datetime, end: datetime, read_calendar_refs: list[CalendarRef] | None = None
    ) -> list[BusyInterval]:
        """Busy intervals across the read calendars for a range."""
        ...

    def list_events(
        self, start: datetime, end: datetime, read_calendar_refs: list[CalendarRef] | None = None
    ) -> list[CalendarEvent]:
        """Events across the read calendars for a range."""
        ...

    def create_event(
        self, title: str, start: datetime, end: datetime, write_calendar_ref: CalendarRef
    ) -> ExternalEventRef:
        ...

    def update_event(
        self,
        event_ref: ExternalEventRef,
        start: datetime,
        end: datetime,
        title: str | None = None,
    ) -> None:
        ...
