"""Event log reconciler: JSONL outcome records to the latest valid event per task."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from plan_tracker.engine.models import Event, EventLogParseResult, EventStatus

logger = logging.getLogger(__name__)

_TIMESTAMP_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(\.\d+)?Z?$",
    re.ASCII,
)
_EVENT_STATUSES = frozenset(status.value for status in EventStatus)


def parse_event_log(text: str) -> EventLogParseResult:
    """Parse line-delimited JSON events and keep the latest event per task.

    Every non-blank line is validated on its own; a line with any problem is
    dropped as a whole and all of its problems are reported.
    """

    errors: list[str] = []
    valid_events: list[Event] = []

    for line_number, line in enumerate(text.split("\n"), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        try:
            raw = json.loads(stripped, parse_constant=_reject_constant)
        except (ValueError, RecursionError):
            errors.append(f"Line {line_number}: Invalid JSON")
            continue

        event, line_errors = _validate_event(raw, line_number=line_number)
        if line_errors:
            errors.extend(line_errors)
            continue
        if event is not None:
            valid_events.append(event)

    latest = latest_by_task(valid_events)
    logger.debug(
        "Parsed event log: valid=%d tasks=%d errors=%d",
        len(valid_events),
        len(latest),
        len(errors),
    )
    return EventLogParseResult(events=list(latest.values()), errors=errors)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a JSON value")


def latest_by_task(events: Iterable[Event]) -> dict[str, Event]:
    """Reduce events to one per task: a strictly greater timestamp replaces, a tie keeps the first."""

    latest: dict[str, Event] = {}
    for event in events:
        existing = latest.get(event.task_id)
        if existing is None or event.timestamp > existing.timestamp:
            latest[event.task_id] = event
    return latest


def is_valid_timestamp(value: str) -> bool:
    """Accept ``YYYY-MM-DDTHH:MM:SS[.fff][Z]`` denoting a real calendar instant."""

    match = _TIMESTAMP_RE.match(value)
    if match is None:
        return False
    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    try:
        datetime(year, month, day, hour, minute, second)
    except ValueError:
        return False
    return True


def _validate_event(raw: Any, *, line_number: int) -> tuple[Event | None, list[str]]:
    prefix = f"Line {line_number}:"
    if not isinstance(raw, dict):
        return None, [f"{prefix} Event must be an object"]

    errors: list[str] = []
    task_id = raw.get("task_id")
    if not isinstance(task_id, str) or not task_id:
        errors.append(f"{prefix} Missing or invalid task_id")

    status = raw.get("status")
    if not isinstance(status, str) or status not in _EVENT_STATUSES:
        errors.append(f"{prefix} Invalid status (must be DONE, FAILED, or BLOCKED)")

    reason = raw.get("reason")
    if status == EventStatus.BLOCKED.value:
        if not isinstance(reason, str) or not reason:
            errors.append(f"{prefix} reason is required when status is BLOCKED")
    elif reason is not None and not isinstance(reason, str):
        errors.append(f"{prefix} reason must be a string if provided")

    timestamp = raw.get("timestamp")
    if not isinstance(timestamp, str) or not is_valid_timestamp(timestamp):
        errors.append(f"{prefix} Missing or invalid timestamp (must be ISO-8601)")

    agent = raw.get("agent")
    if not isinstance(agent, str) or not agent:
        errors.append(f"{prefix} Missing or invalid agent")

    meta = raw.get("meta")
    if "meta" in raw and not isinstance(meta, dict):
        errors.append(f"{prefix} meta must be an object if provided")

    if errors:
        return None, errors

    return (
        Event(
            task_id=task_id,
            status=EventStatus(status),
            timestamp=timestamp,
            agent=agent,
            reason=reason,
            meta=meta,
        ),
        [],
    )
