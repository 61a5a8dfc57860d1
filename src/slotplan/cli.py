"""slotplan CLI - scheduling proposals from calendar snapshots or the calendar proxy."""

import json
import logging
import sys
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import click

from .adapters.calendar_api import CalendarApiAdapter, CalendarApiError
from .adapters.json_snapshot import JsonSnapshotStore, Snapshot, SnapshotError
from .adapters.ranking import InputOrderRanker
from .adapters.snapshot_provider import SnapshotCalendarProvider
from .config import Config, load_config
from .core.activities import parse_instant
from .core.availability import MODES, availability_for_date, weekday_key, windows_for_mode
from .core.scheduling import ProposedEvent
from .ports.calendar_provider import CalendarProvider
from .workflows import (
    apply_proposals,
    plan_day,
    reconcile_day,
    schedule_activities,
    suggest_slots,
)

SOURCES = ("snapshot", "api")

source_option = click.option(
    "--source",
    type=click.Choice(SOURCES),
    default="snapshot",
    show_default=True,
    help="Where calendar busy time and events come from",
)


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load(ctx: click.Context, snapshot_path: str) -> tuple[Config, Snapshot]:
    config: Config = ctx.obj["config"]
    try:
        snapshot = JsonSnapshotStore(Path(snapshot_path), tz=config.tz).load()
    except SnapshotError as e:
        _fail(str(e))
    if snapshot.availability is None:
        snapshot.availability = config.availability
    return config, snapshot


def _provider(config: Config, snapshot: Snapshot, source: str) -> CalendarProvider:
    if source == "api":
        return CalendarApiAdapter(config)
    return SnapshotCalendarProvider(snapshot, config.default_calendar_id or None)


def _now(config: Config, raw: str | None) -> datetime:
    """Current time in the configured zone; naive --now values are local."""
    if not raw:
        return datetime.now(config.tz)
    parsed = parse_instant(raw)
    if parsed is None:
        _fail(f"invalid --now value: {raw}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=config.tz)
    return parsed.astimezone(config.tz)


def _target_date(raw: str | None, now: datetime) -> date:
    if not raw:
        return now.date()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        _fail(f"invalid --date value: {raw}")


def _echo_proposals(proposals: list[ProposedEvent], as_json: bool, empty: str) -> None:
    if as_json:
        click.echo(json.dumps([p.to_dict() for p in proposals], indent=2))
        return
    if not proposals:
        click.echo(empty)
        return
    for p in proposals:
        click.echo(f"{p.format()} [{p.domain} -> {p.calendar_id}]")


@click.group()
@click.version_option(package_name="slotplan")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """slotplan - calendar placement proposals."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    if "config" not in ctx.obj:
        ctx.obj["config"] = load_config()


@main.command()
@click.argument("snapshot")
@click.option("--now", "now_raw", help="Anchor time (ISO 8601)")
@click.option("--horizon", type=int, default=None, help="Days to search ahead")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@source_option
@click.pass_context
def propose(
    ctx: click.Context,
    snapshot: str,
    now_raw: str | None,
    horizon: int | None,
    as_json: bool,
    source: str,
):
    """Propose slots for every unscheduled activity."""
    config, snap = _load(ctx, snapshot)
    if horizon is not None:
        config = replace(config, horizon_days=horizon)

    try:
        proposals = schedule_activities(
            _provider(config, snap, source),
            snap.activities,
            snap.goals,
            config,
            now=_now(config, now_raw),
            availability=snap.availability,
        )
    except CalendarApiError as e:
        _fail(str(e))

    _echo_proposals(proposals, as_json, "Nothing to schedule.")


@main.command()
@click.argument("snapshot")
@click.option("--date", "date_raw", help="Day to plan (YYYY-MM-DD), defaults to today")
@click.option("--now", "now_raw", help="Current time (ISO 8601)")
@click.option("--max-items", type=int, default=None, help="Maximum proposals")
@click.option("--apply", "apply_", is_flag=True, help="Create calendar events for the proposals")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@source_option
@click.pass_context
def daily(
    ctx: click.Context,
    snapshot: str,
    date_raw: str | None,
    now_raw: str | None,
    max_items: int | None,
    apply_: bool,
    as_json: bool,
    source: str,
):
    """Plan a single day from the snapshot's activity order."""
    config, snap = _load(ctx, snapshot)
    if max_items is not None:
        config = replace(config, max_items=max_items)
    now = _now(config, now_raw)
    target = _target_date(date_raw, now)
    provider = _provider(config, snap, source)

    created = {}
    try:
        result = plan_day(
            provider,
            InputOrderRanker(),
            snap.activities,
            snap.goals,
            config,
            target,
            now=now,
            dismissed=snap.dismissed_activity_ids,
            availability=snap.availability,
        )
        if apply_ and result.proposals:
            write_ref = provider.get_preferences().write_calendar_ref
            if write_ref is None:
                _fail("no write calendar to create events in")
            created = apply_proposals(provider, result.proposals, write_ref)
    except (CalendarApiError, SnapshotError) as e:
        _fail(str(e))

    if as_json:
        click.echo(
            json.dumps(
                {
                    "proposals": [p.to_dict() for p in result.proposals],
                    "unplacedDueActivityIds": result.unplaced_due_activity_ids,
                    "created": {activity_id: ref.key for activity_id, ref in created.items()},
                },
                indent=2,
            )
        )
        return

    _echo_proposals(result.proposals, False, f"Nothing to plan for {target}.")
    for activity_id in result.unplaced_due_activity_ids:
        click.echo(f"! Due today but no room: {activity_id}")
    for activity_id, ref in created.items():
        click.echo(f"Created {ref.key} for {activity_id}")


@main.command()
@click.argument("snapshot")
@click.argument("activity_id")
@click.option("--date", "date_raw", help="Day to search (YYYY-MM-DD), defaults to today")
@click.option("--now", "now_raw", help="Current time (ISO 8601)")
@click.option("--limit", type=int, default=None, help="Maximum suggestions")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@source_option
@click.pass_context
def slots(
    ctx: click.Context,
    snapshot: str,
    activity_id: str,
    date_raw: str | None,
    now_raw: str | None,
    limit: int | None,
    as_json: bool,
    source: str,
):
    """Suggest candidate slots for one activity."""
    config, snap = _load(ctx, snapshot)
    activity = next((a for a in snap.activities if a.id == activity_id), None)
    if activity is None:
        _fail(f"no activity with id {activity_id}")
    if limit is not None:
        config = replace(config, slot_limit=limit)

    now = _now(config, now_raw)
    target = _target_date(date_raw, now)
    try:
        suggestions = suggest_slots(
            _provider(config, snap, source),
            activity,
            snap.activities,
            snap.goals,
            config,
            target,
            now=now,
            availability=snap.availability,
        )
    except CalendarApiError as e:
        _fail(str(e))

    _echo_proposals(suggestions, as_json, f"No free slots on {target}.")


@main.command()
@click.argument("snapshot")
@click.option("--date", "date_raw", help="Day to reconcile (YYYY-MM-DD), defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@source_option
@click.pass_context
def reconcile(ctx: click.Context, snapshot: str, date_raw: str | None, as_json: bool, source: str):
    """List external events, hiding duplicates of scheduled activities."""
    config, snap = _load(ctx, snapshot)
    target = _target_date(date_raw, datetime.now(config.tz))
    try:
        result = reconcile_day(_provider(config, snap, source), snap.activities, config, target)
    except CalendarApiError as e:
        _fail(str(e))

    if as_json:
        click.echo(
            json.dumps(
                {
                    "externalEvents": [e.key for e in result.external_events],
                    "matchedKeys": sorted(result.matched_keys),
                },
                indent=2,
            )
        )
        return

    for event in result.external_events:
        click.echo(f"{event.start} {event.title or '(untitled)'}")
    if result.matched_keys:
        click.echo(f"Hidden {len(result.matched_keys)} duplicate(s)")


@main.command()
@click.option("--date", "date_raw", help="Day to show (YYYY-MM-DD), defaults to today")
@click.pass_context
def availability(ctx: click.Context, date_raw: str | None):
    """Show the resolved availability for a day."""
    config: Config = ctx.obj["config"]
    target = _target_date(date_raw, datetime.now(config.tz))
    day = availability_for_date(config.availability, target)

    click.echo(f"{target} ({weekday_key(target)}): {'enabled' if day.enabled else 'disabled'}")
    for mode in MODES:
        windows = windows_for_mode(day, mode)
        ranges = ", ".join(f"{w.start}-{w.end}" for w in windows) or "none"
        click.echo(f"  {mode}: {ranges}")
