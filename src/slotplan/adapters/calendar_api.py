"""Calendar proxy adapter - HTTP client for calendar data."""

import logging
from datetime import datetime

import requests

from slotplan.config import Config, load_config
from slotplan.core.activities import ExternalEventRef, parse_instant
from slotplan.core.intervals import BusyInterval
from slotplan.core.reconcile import CalendarEvent
from slotplan.ports.calendar_provider import (
    CalendarAccount,
    CalendarListItem,
    CalendarPreferences,
    CalendarRef,
)

logger = logging.getLogger(__name__)

FUNCTION_NAME = "calendar-api"
CLIENT_NAME = "slotplan"


class CalendarApiError(Exception):
    """Raised when the calendar proxy rejects a request."""

    pass


class CalendarApiAdapter:
    """
    Calendar proxy adapter.

    Implements CalendarProvider protocol. Every call is a JSON POST with an
    `action` field. No business logic - just I/O.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.config.calendar_api_url}/{FUNCTION_NAME}"

    def _headers(self) -> dict[str, str]:
        if not self.config.calendar_api_key:
            raise CalendarApiError("Missing CALENDAR_API_KEY in slotplan.conf")
        if not self.config.access_token:
            raise CalendarApiError("Missing ACCESS_TOKEN in slotplan.conf")
        return {
            "Content-Type": "application/json",
            "x-client": CLIENT_NAME,
            "apikey": self.config.calendar_api_key,
            "Authorization": f"Bearer {self.config.access_token}",
        }

    def _post(self, action: str, **body) -> dict:
        """Make an authenticated request to the proxy."""
        if not self.config.calendar_api_url:
            raise CalendarApiError("Missing CALENDAR_API_URL in slotplan.conf")

        resp = self._session.post(self.url, headers=self._headers(), json={"action": action, **body})
        try:
            data = resp.json() if resp.text else {}
        except ValueError:
            data = {}

        if resp.status_code >= 400:
            message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
            raise CalendarApiError(message or f"Request failed ({resp.status_code})")
        return data if isinstance(data, dict) else {}

    def list_accounts(self) -> list[CalendarAccount]:
        data = self._post("list_accounts")
        return [
            CalendarAccount(
                id=str(a.get("id", "")),
                provider=a.get("provider", ""),
                account_id=a.get("accountId", ""),
                email=a.get("email"),
                active=a.get("status", "active") == "active",
            )
            for a in data.get("accounts") or []
        ]

    def list_calendars(self) -> list[CalendarListItem]:
        data = self._post("list_calendars")
        errors = data.get("errors") or []
        if errors:
            raise CalendarApiError(errors[0] or "Unable to list calendars")
        return [
            CalendarListItem(
                ref=CalendarRef.from_api(c),
                name=c.get("aliasName") or c.get("name") or "",
                can_write=bool(c.get("canWrite")),
                shared=bool(c.get("shared")),
                hidden=bool(c.get("hidden")),
            )
            for c in data.get("calendars") or []
        ]

    def get_preferences(self) -> CalendarPreferences:
        data = self._post("get_preferences")
        write_ref = data.get("writeCalendarRef")
        return CalendarPreferences(
            read_calendar_refs=[CalendarRef.from_api(r) for r in data.get("readCalendarRefs") or []],
            write_calendar_ref=CalendarRef.from_api(write_ref) if write_ref else None,
        )

    def list_busy(
        self, start: datetime, end: datetime, read_calendar_refs: list[CalendarRef] | None = None
    ) -> list[BusyInterval]:
        body = {"start": start.isoformat(), "end": end.isoformat()}
        if read_calendar_refs is not None:
            body["readCalendarRefs"] = [r.to_dict() for r in read_calendar_refs]
        data = self._post("list_busy", **body)

        intervals = []
        for item in data.get("intervals") or []:
            s = parse_instant(item.get("start"))
            e = parse_instant(item.get("end"))
            if s is None or e is None:
                logger.warning(f"Skipping busy interval with bad instants: {item}")
                continue
            intervals.append(BusyInterval(start=s, end=e))
        return intervals

    def list_events(
        self, start: datetime, end: datetime, read_calendar_refs: list[CalendarRef] | None = None
    ) -> list[CalendarEvent]:
        body = {"start": start.isoformat(), "end": end.isoformat()}
        if read_calendar_refs is not None:
            body["readCalendarRefs"] = [r.to_dict() for r in read_calendar_refs]
        data = self._post("list_events", **body)
        return [CalendarEvent.from_api(e) for e in data.get("events") or []]

    def create_event(
        self, title: str, start: datetime, end: datetime, write_calendar_ref: CalendarRef
    ) -> ExternalEventRef:
        data = self._post(
            "create_event",
            title=title,
            start=start.isoformat(),
            end=end.isoformat(),
            writeCalendarRef=write_calendar_ref.to_dict(),
        )
        ref = data.get("eventRef") or {}
        return ExternalEventRef(
            provider=ref.get("provider", write_calendar_ref.provider),
            account_id=ref.get("accountId", write_calendar_ref.account_id),
            calendar_id=ref.get("calendarId", write_calendar_ref.calendar_id),
            event_id=ref.get("eventId", ""),
        )

    def update_event(
        self,
        event_ref: ExternalEventRef,
        start: datetime,
        end: datetime,
        title: str | None = None,
    ) -> None:
        body = {
            "eventRef": {
                "provider": event_ref.provider,
                "accountId": event_ref.account_id,
                "calendarId": event_ref.calendar_id,
                "eventId": event_ref.event_id,
            },
            "start": start.isoformat(),
            "end": end.isoformat(),
        }
        if title is not None:
            body["title"] = title
        self._post("update_event", **body)
