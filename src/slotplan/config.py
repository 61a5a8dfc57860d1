"""Configuration management for slotplan."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .core.domain import WORK_KEYWORDS
from .core.scheduling import SchedulingPreferences

logger = logging.getLogger(__name__)

SLOTPLAN_HOME = Path(os.environ.get("SLOTPLAN_HOME", Path.home() / "slotplan"))
CONFIG_FILE = SLOTPLAN_HOME / "config" / "slotplan.conf"


@dataclass
class Config:
    """slotplan configuration."""

    calendar_api_url: str = ""
    calendar_api_key: str = ""
    access_token: str = ""
    timezone: str = "UTC"
    default_calendar_id: str = ""
    horizon_days: int = 7
    max_items: int = 4
    slot_limit: int = 6
    domain_calendar_mapping: dict[str, str] = field(default_factory=dict)
    preferred_windows: list[str] = field(default_factory=list)
    availability: dict | None = None
    work_keywords: list[str] = field(default_factory=lambda: list(WORK_KEYWORDS))

    @property
    def tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {self.timezone!r}, using UTC")
            return ZoneInfo("UTC")

    def scheduling_preferences(self) -> SchedulingPreferences:
        return SchedulingPreferences(
            domain_calendar_mapping=dict(self.domain_calendar_mapping),
            preferred_windows=list(self.preferred_windows),
        )


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}")
        return default


def _parse_json_object(key: str, value: str) -> dict | None:
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse {key.upper()} JSON: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"{key.upper()} must be a JSON object")
        return None
    return data


def _split_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def parse_config(text: str) -> Config:
    """Parse KEY=value lines into a Config. Unknown keys are ignored."""
    config = Config()

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "calendar_api_url":
                config.calendar_api_url = value.rstrip("/")
            case "calendar_api_key":
                config.calendar_api_key = value
            case "access_token":
                config.access_token = value
            case "timezone":
                config.timezone = value
            case "default_calendar_id":
                config.default_calendar_id = value
            case "horizon_days":
                config.horizon_days = _parse_int(key, value, config.horizon_days)
            case "max_items":
                config.max_items = _parse_int(key, value, config.max_items)
            case "slot_limit":
                config.slot_limit = _parse_int(key, value, config.slot_limit)
            case "domain_calendar_mapping":
                # JSON format: {"work": "cal-id", "personal": "cal-id"}
                data = _parse_json_object(key, value)
                if data is not None:
                    config.domain_calendar_mapping = {str(k): str(v) for k, v in data.items()}
            case "preferred_windows":
                config.preferred_windows = _split_list(value)
            case "availability":
                # JSON format: {"mon": {"enabled": true, "windows": {"work": [...]}}}
                data = _parse_json_object(key, value)
                if data is not None:
                    config.availability = data
            case "work_keywords":
                keywords = _split_list(value)
                if keywords:
                    config.work_keywords = keywords

    return config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from slotplan.conf, or defaults if it is missing."""
    path = path or CONFIG_FILE
    if not path.exists():
        return Config()
    return parse_config(path.read_text())
