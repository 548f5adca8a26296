"""Domain models for the task dependency state engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Derived task lifecycle states."""

    READY = "READY"
    BLOCKED = "BLOCKED"
    DONE = "DONE"
    FAILED = "FAILED"


class EventStatus(str, Enum):
    """Outcome states reported by external workers."""

    DONE = "DONE"
    FAILED = "FAILED"
    BLOCKED = "BLOCKED"


class FieldKind(str, Enum):
    """How a `Key: value` line inside a task block is interpreted."""

    TEXT = "text"
    ENUM = "enum"
    REFS = "refs"


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """One recognized key inside a task block."""

    name: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = True
    values: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Task:
    """One declared unit of work."""

    id: str
    group: str
    area: str
    description: str
    acceptance_criteria: str
    depends_on: tuple[str, ...] = ()
    extra: dict[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True, slots=True)
class Event:
    """One validated outcome record from the event log."""

    task_id: str
    status: EventStatus
    timestamp: str
    agent: str
    reason: str | None = None
    meta: dict[str, Any] | None = field(default=None, hash=False)


@dataclass(frozen=True, slots=True)
class ComputedTask:
    """Task together with its resolved status and latest event."""

    task: Task
    status: TaskStatus
    last_event: Event | None = None

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def group(self) -> str:
        return self.task.group


@dataclass(slots=True)
class GroupStats:
    """Status counters for one group."""

    total: int = 0
    done: int = 0
    failed: int = 0
    blocked: int = 0
    ready: int = 0
    progress: int = 0


@dataclass(slots=True)
class SnapshotSummary:
    """Status counters across all tasks."""

    total: int = 0
    done: int = 0
    failed: int = 0
    blocked: int = 0
    ready: int = 0
    success_rate: float = 0.0


@dataclass(slots=True)
class Snapshot:
    """Point-in-time view over tasks, their statuses and aggregated statistics."""

    tasks: list[ComputedTask]
    groups: dict[str, GroupStats]
    summary: SnapshotSummary


@dataclass(slots=True)
class DocumentParseResult:
    """Parsed tasks plus structural and semantic diagnostics."""

    tasks: list[Task]
    errors: list[str]


@dataclass(slots=True)
class EventLogParseResult:
    """Latest event per task plus per-line diagnostics."""

    events: list[Event]
    errors: list[str]

    @property
    def events_by_task_id(self) -> dict[str, Event]:
        return {event.task_id: event for event in self.events}


@dataclass(slots=True)
class PlanReport:
    """Snapshot bundled with the diagnostics of both inputs."""

    snapshot: Snapshot | None
    document_errors: list[str]
    log_errors: list[str]
    total_tasks: int
    generated_at: str


@dataclass(frozen=True, slots=True)
class QualityChecks:
    """Boolean results of quality gates reported with an event."""

    lint: bool | None = None
    typecheck: bool | None = None
    test: bool | None = None


@dataclass(frozen=True, slots=True)
class QualityEvent:
    """One quality gate result on the timeline."""

    timestamp: str
    file: str
    checks: QualityChecks
    task_id: str
