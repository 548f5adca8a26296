"""Dependency-aware status resolution over a validated task graph."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from plan_tracker.engine.models import ComputedTask, Event, EventStatus, Task, TaskStatus

logger = logging.getLogger(__name__)


class StatusResolver:
    """Resolve task statuses with a memo table scoped to one resolution call.

    Priority per task: latest event FAILED, then DONE, then BLOCKED when any
    dependency is unknown or not DONE, otherwise READY. Resolution walks the
    graph with an explicit stack; a cycle that bypassed document validation
    leaves the tasks on it BLOCKED.
    """

    def __init__(self, tasks: list[Task], events_by_task_id: Mapping[str, Event]) -> None:
        self._tasks_by_id = {task.id: task for task in tasks}
        self._events = events_by_task_id
        self._memo: dict[str, TaskStatus] = {}

    def status_of(self, task_id: str) -> TaskStatus:
        if task_id in self._memo:
            return self._memo[task_id]
        if task_id not in self._tasks_by_id:
            return TaskStatus.BLOCKED

        path = [task_id]
        on_path = {task_id}
        cursors = [0]
        while path:
            current = path[-1]
            own_status = self._status_from_event(current)
            if own_status is not None:
                self._settle(current, own_status, path, on_path, cursors)
                continue

            dependencies = self._tasks_by_id[current].depends_on
            index = cursors[-1]
            settled: TaskStatus | None = None
            descend_into: str | None = None
            while index < len(dependencies):
                dependency = dependencies[index]
                if dependency not in self._tasks_by_id:
                    logger.warning("Task %s depends on unknown task %s", current, dependency)
                    settled = TaskStatus.BLOCKED
                    break
                if dependency in on_path:
                    logger.warning(
                        "Dependency cycle reached during resolution: %s -> %s",
                        current,
                        dependency,
                    )
                    settled = TaskStatus.BLOCKED
                    break
                dependency_status = self._memo.get(dependency)
                if dependency_status is None:
                    descend_into = dependency
                    break
                if dependency_status is not TaskStatus.DONE:
                    settled = TaskStatus.BLOCKED
                    break
                index += 1

            if descend_into is not None:
                cursors[-1] = index
                path.append(descend_into)
                on_path.add(descend_into)
                cursors.append(0)
                continue
            self._settle(current, settled or TaskStatus.READY, path, on_path, cursors)

        return self._memo[task_id]

    def _status_from_event(self, task_id: str) -> TaskStatus | None:
        event = self._events.get(task_id)
        if event is None:
            return None
        if event.status is EventStatus.FAILED:
            return TaskStatus.FAILED
        if event.status is EventStatus.DONE:
            return TaskStatus.DONE
        return None

    def _settle(
        self,
        task_id: str,
        status: TaskStatus,
        path: list[str],
        on_path: set[str],
        cursors: list[int],
    ) -> None:
        self._memo[task_id] = status
        path.pop()
        cursors.pop()
        on_path.discard(task_id)


def resolve_statuses(
    tasks: list[Task],
    events_by_task_id: Mapping[str, Event],
) -> list[ComputedTask]:
    """Compute the status of every task, ordered by task id."""

    resolver = StatusResolver(tasks, events_by_task_id)
    return [
        ComputedTask(
            task=task,
            status=resolver.status_of(task.id),
            last_event=events_by_task_id.get(task.id),
        )
        for task in sorted(tasks, key=lambda task: task.id)
    ]
