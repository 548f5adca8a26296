"""Quality gate timeline derived from event metadata."""

from __future__ import annotations

from plan_tracker.engine.event_log import parse_event_log
from plan_tracker.engine.models import QualityChecks, QualityEvent

_CHECK_NAMES = ("lint", "typecheck", "test")


def parse_quality_timeline(log_text: str) -> list[QualityEvent]:
    """Collect quality results from ``meta.quality`` of the reconciled events.

    Only events carrying at least one boolean check are kept; the result is in
    chronological order.
    """

    timeline: list[QualityEvent] = []
    for event in parse_event_log(log_text).events:
        meta = event.meta or {}
        raw = meta.get("quality")
        if not isinstance(raw, dict):
            continue
        checks = {name: raw[name] for name in _CHECK_NAMES if isinstance(raw.get(name), bool)}
        if not checks:
            continue
        file = meta.get("file")
        timeline.append(
            QualityEvent(
                timestamp=event.timestamp,
                file=file if isinstance(file, str) and file else event.task_id,
                checks=QualityChecks(**checks),
                task_id=event.task_id,
            ),
        )

    timeline.sort(key=lambda entry: entry.timestamp)
    return timeline
