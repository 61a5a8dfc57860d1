"""Per-weekday availability windows - no I/O dependencies."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping

logger = logging.getLogger(__name__)

WORK = "work"
PERSONAL = "personal"
MODES = (WORK, PERSONAL)

WEEKDAY_KEYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


@dataclass
class TimeWindow:
    """A time-of-day range, as HH:MM strings."""

    start: str
    end: str

    @classmethod
    def from_api(cls, data: Mapping) -> "TimeWindow":
        return cls(start=str(data["start"]), end=str(data["end"]))


@dataclass
class DayAvailability:
    """Whether a weekday is plannable, and its windows per mode."""

    enabled: bool
    windows: dict[str, list[TimeWindow]] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Mapping) -> "DayAvailability":
        raw_windows = data.get("windows") or {}
        if not isinstance(raw_windows, Mapping):
            raise ValueError("windows must be an object")
        windows = {
            mode: [TimeWindow.from_api(w) for w in raw_windows.get(mode) or []]
            for mode in MODES
            if mode in raw_windows
        }
        enabled = data.get("enabled", False)
        if not isinstance(enabled, bool):
            raise ValueError(f"enabled must be true or false, got {enabled!r}")
        return cls(enabled=enabled, windows=windows)

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "windows": {
                mode: [{"start": w.start, "end": w.end} for w in windows]
                for mode, windows in self.windows.items()
            },
        }


WeekAvailability = dict[str, DayAvailability]


def default_availability() -> WeekAvailability:
    """Built-in week: Sunday off, Mon-Sat work 09-17 and personal 17-21."""

    def base(enabled: bool) -> DayAvailability:
        return DayAvailability(
            enabled=enabled,
            windows={
                WORK: [TimeWindow("09:00", "17:00")],
                PERSONAL: [TimeWindow("17:00", "21:00")],
            },
        )

    return {key: base(key != "sun") for key in WEEKDAY_KEYS}


def resolve_availability(stored: Mapping | None) -> WeekAvailability:
    """
    Resolve stored availability against the defaults.

    A stored weekday replaces the default for that weekday wholesale. Missing
    weekdays, or malformed entries, keep the default.
    """
    fallback = default_availability()
    if not stored or not isinstance(stored, Mapping):
        return fallback

    resolved: WeekAvailability = {}
    for key in WEEKDAY_KEYS:
        entry = stored.get(key)
        if entry is None:
            resolved[key] = fallback[key]
        elif isinstance(entry, DayAvailability):
            resolved[key] = entry
        else:
            try:
                resolved[key] = DayAvailability.from_api(entry)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed availability for {key}: {e}")
                resolved[key] = fallback[key]
    return resolved


def weekday_key(d: date) -> str:
    """Weekday key for a date ('sun'..'sat')."""
    # date.weekday() is Monday=0; keys start at Sunday
    return WEEKDAY_KEYS[(d.weekday() + 1) % 7]


def availability_for_date(stored: Mapping | None, d: date) -> DayAvailability:
    return resolve_availability(stored)[weekday_key(d)]


def windows_for_mode(day: DayAvailability, mode: str) -> list[TimeWindow]:
    """Windows for a mode in configured order; empty if the mode is unset."""
    return list((day.windows or {}).get(mode) or [])
