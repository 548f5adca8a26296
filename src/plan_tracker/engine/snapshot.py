"""Snapshot assembly and JSON-ready payloads for collaborators."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from plan_tracker.engine.aggregator import aggregate
from plan_tracker.engine.document import DocumentSyntax, parse_document
from plan_tracker.engine.event_log import latest_by_task, parse_event_log
from plan_tracker.engine.models import ComputedTask, Event, PlanReport, Snapshot, Task
from plan_tracker.engine.resolver import resolve_statuses

logger = logging.getLogger(__name__)


def resolve_snapshot(tasks: list[Task], events: list[Event]) -> Snapshot:
    """Combine a validated task graph and reconciled events into one snapshot."""

    computed = resolve_statuses(tasks, latest_by_task(events))
    groups, summary = aggregate(computed)
    return Snapshot(tasks=computed, groups=groups, summary=summary)


def build_plan_report(
    document_text: str,
    log_text: str,
    *,
    syntax: DocumentSyntax | None = None,
    generated_at: datetime | None = None,
) -> PlanReport:
    """Parse both inputs and resolve a snapshot unless the document is invalid.

    Document errors are fatal: no snapshot is produced and the log is not read.
    Log errors are surfaced next to a snapshot built from the valid events.
    """

    stamp = (generated_at or datetime.now(tz=UTC)).isoformat()
    document = parse_document(document_text, syntax=syntax)
    if document.errors:
        logger.info("Plan document has %d errors; skipping resolution", len(document.errors))
        return PlanReport(
            snapshot=None,
            document_errors=document.errors,
            log_errors=[],
            total_tasks=0,
            generated_at=stamp,
        )

    event_log = parse_event_log(log_text)
    return PlanReport(
        snapshot=resolve_snapshot(document.tasks, event_log.events),
        document_errors=[],
        log_errors=event_log.errors,
        total_tasks=len(document.tasks),
        generated_at=stamp,
    )


def snapshot_payload(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "tasks": [_computed_task_payload(computed) for computed in snapshot.tasks],
        "groups": {group: asdict(stats) for group, stats in snapshot.groups.items()},
        "summary": asdict(snapshot.summary),
    }


def report_payload(report: PlanReport) -> dict[str, Any]:
    return {
        "snapshot": snapshot_payload(report.snapshot) if report.snapshot is not None else None,
        "document_errors": list(report.document_errors),
        "log_errors": list(report.log_errors),
        "meta": {
            "generated_at": report.generated_at,
            "total_tasks": report.total_tasks,
        },
    }


def event_payload(event: Event) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "task_id": event.task_id,
        "status": event.status.value,
        "timestamp": event.timestamp,
        "agent": event.agent,
    }
    if event.reason is not None:
        payload["reason"] = event.reason
    if event.meta is not None:
        payload["meta"] = event.meta
    return payload


def _computed_task_payload(computed: ComputedTask) -> dict[str, Any]:
    task = computed.task
    return {
        "id": task.id,
        "group": task.group,
        "area": task.area,
        "description": task.description,
        "acceptance_criteria": task.acceptance_criteria,
        "depends_on": list(task.depends_on),
        "extra": dict(task.extra),
        "status": computed.status.value,
        "last_event": event_payload(computed.last_event) if computed.last_event else None,
    }
