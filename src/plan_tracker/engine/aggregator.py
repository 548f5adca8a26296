"""Per-group and global statistics over resolved tasks."""

from __future__ import annotations

import math

from plan_tracker.engine.models import ComputedTask, GroupStats, SnapshotSummary, TaskStatus


def aggregate(
    computed_tasks: list[ComputedTask],
) -> tuple[dict[str, GroupStats], SnapshotSummary]:
    """Roll task statuses into group statistics and a global summary."""

    groups: dict[str, GroupStats] = {}
    summary = SnapshotSummary()
    for computed in computed_tasks:
        stats = groups.setdefault(computed.group, GroupStats())
        _count(stats, computed.status)
        _count(summary, computed.status)

    for stats in groups.values():
        stats.progress = percentage(stats.done, stats.total)

    completed = summary.done + summary.failed
    if completed > 0:
        summary.success_rate = round_half_up(summary.done / completed, digits=2)
    return groups, summary


def percentage(part: int, total: int) -> int:
    if total == 0:
        return 0
    return int(round_half_up(part / total * 100))


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for non-negative values (12.5 -> 13)."""

    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def _count(counters: GroupStats | SnapshotSummary, status: TaskStatus) -> None:
    counters.total += 1
    if status is TaskStatus.DONE:
        counters.done += 1
    elif status is TaskStatus.FAILED:
        counters.failed += 1
    elif status is TaskStatus.BLOCKED:
        counters.blocked += 1
    elif status is TaskStatus.READY:
        counters.ready += 1
