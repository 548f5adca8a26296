"""Controllers for plan-tracker CLI commands."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from plan_tracker.config import Settings
from plan_tracker.engine import parse_document, parse_event_log
from plan_tracker.engine.models import Event, FieldKind, PlanReport
from plan_tracker.engine.quality import parse_quality_timeline
from plan_tracker.engine.snapshot import build_plan_report, report_payload

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlanInitCommand:
    """CLI input for plan directory scaffolding."""

    plan_dir: Path | None


@dataclass(slots=True)
class PlanValidateCommand:
    """CLI input for document and log validation."""

    plan_dir: Path | None


@dataclass(slots=True)
class PlanSnapshotCommand:
    """CLI input for snapshot rendering."""

    plan_dir: Path | None
    output_format: str = "table"


@dataclass(slots=True)
class PlanQualityCommand:
    """CLI input for quality timeline rendering."""

    plan_dir: Path | None
    task_id: str | None = None
    output_format: str = "table"


@dataclass(slots=True)
class PlanCommandResult:
    """Rendered lines plus whether the command succeeded."""

    lines: list[str]
    success: bool


@dataclass(slots=True)
class _PlanInputs:
    document_text: str
    log_text: str


class PlanCliController:
    """Reads plan files, runs the engine, and renders CLI output."""

    def init_plan(self, command: PlanInitCommand) -> PlanCommandResult:
        settings = _settings(command.plan_dir)
        files = settings.files
        if files.plan_dir.exists():
            return PlanCommandResult(
                lines=[f"Plan directory already exists: {files.plan_dir}"],
                success=False,
            )

        files.plan_dir.mkdir(parents=True)
        files.document_path.write_text(_document_template(settings), "utf-8")
        files.log_path.write_text("", "utf-8")
        logger.info("Initialized plan directory %s", files.plan_dir)
        return PlanCommandResult(
            lines=[
                f"Created {files.plan_dir}",
                f"Created {files.document_path}",
                f"Created {files.log_path}",
                "Append one JSON object per line to the log, for example:",
                json.dumps(
                    {
                        "task_id": "S1-T1",
                        "status": "DONE",
                        "timestamp": "2026-02-16T14:31:22Z",
                        "agent": "worker-1",
                    },
                ),
            ],
            success=True,
        )

    def validate(self, command: PlanValidateCommand) -> PlanCommandResult:
        settings = _settings(command.plan_dir)
        inputs = _read_inputs(settings)
        document = parse_document(
            inputs.document_text,
            syntax=settings.syntax.to_document_syntax(),
        )
        event_log = parse_event_log(inputs.log_text)

        lines = [f"Document: {settings.files.document_path} tasks={len(document.tasks)}"]
        lines.extend(f"  error: {error}" for error in document.errors)
        lines.append(f"Log: {settings.files.log_path} tasks_with_events={len(event_log.events)}")
        lines.extend(f"  warning: {error}" for error in event_log.errors)
        lines.append("Document is valid." if not document.errors else "Document is invalid.")
        return PlanCommandResult(lines=lines, success=not document.errors)

    def snapshot(self, command: PlanSnapshotCommand) -> PlanCommandResult:
        """Resolve the current snapshot and render it as table lines or JSON."""

        settings = _settings(command.plan_dir)
        inputs = _read_inputs(settings)
        report = build_plan_report(
            inputs.document_text,
            inputs.log_text,
            syntax=settings.syntax.to_document_syntax(),
        )
        success = report.snapshot is not None
        if command.output_format == "json":
            return PlanCommandResult(
                lines=[json.dumps(report_payload(report), indent=2, ensure_ascii=False)],
                success=success,
            )
        return PlanCommandResult(lines=_render_report(report), success=success)

    def quality(self, command: PlanQualityCommand) -> list[str]:
        settings = _settings(command.plan_dir)
        log_text = _read_optional(settings.files.log_path)
        timeline = parse_quality_timeline(log_text)
        if command.task_id:
            timeline = [entry for entry in timeline if entry.task_id == command.task_id]

        if command.output_format == "json":
            entries = [
                {
                    "timestamp": entry.timestamp,
                    "file": entry.file,
                    "task_id": entry.task_id,
                    "checks": {
                        name: value
                        for name, value in asdict(entry.checks).items()
                        if value is not None
                    },
                }
                for entry in timeline
            ]
            return [json.dumps({"events": entries, "count": len(entries)}, indent=2)]

        lines = [f"Quality events: {len(timeline)}"]
        for entry in timeline:
            lines.append(
                "  "
                f"{entry.timestamp} task_id={entry.task_id} file={entry.file} "
                f"lint={_check_label(entry.checks.lint)} "
                f"typecheck={_check_label(entry.checks.typecheck)} "
                f"test={_check_label(entry.checks.test)}",
            )
        return lines


def _settings(plan_dir: Path | None) -> Settings:
    settings = Settings.from_env(plan_dir=plan_dir)
    settings.validate()
    return settings


def _read_inputs(settings: Settings) -> _PlanInputs:
    document_path = settings.files.document_path
    if not document_path.exists():
        raise FileNotFoundError(f"Plan document not found: {document_path}")
    return _PlanInputs(
        document_text=document_path.read_text("utf-8"),
        log_text=_read_optional(settings.files.log_path),
    )


def _read_optional(path: Path) -> str:
    if not path.exists():
        logger.debug("Event log %s not found; treating as empty", path)
        return ""
    return path.read_text("utf-8")


def _render_report(report: PlanReport) -> list[str]:
    if report.snapshot is None:
        lines = [f"Plan document has {len(report.document_errors)} error(s):"]
        lines.extend(f"  {error}" for error in report.document_errors)
        return lines

    summary = report.snapshot.summary
    lines = [
        "Summary: "
        f"total={summary.total} done={summary.done} failed={summary.failed} "
        f"blocked={summary.blocked} ready={summary.ready} "
        f"success_rate={summary.success_rate:.2f}",
    ]
    for group, stats in report.snapshot.groups.items():
        lines.append(
            f"Group {group}: "
            f"total={stats.total} done={stats.done} failed={stats.failed} "
            f"blocked={stats.blocked} ready={stats.ready} progress={stats.progress}%",
        )
    for computed in report.snapshot.tasks:
        event = computed.last_event
        lines.append(
            "  "
            f"{computed.id} status={computed.status.value} area={computed.task.area} "
            f"depends={','.join(computed.task.depends_on) or '-'} "
            f"last_event={_event_label(event)}",
        )
    if report.log_errors:
        lines.append(f"Log warnings: {len(report.log_errors)}")
        lines.extend(f"  {error}" for error in report.log_errors)
    return lines


def _document_template(settings: Settings) -> str:
    syntax = settings.syntax
    task_id = syntax.id_template.replace("{group}", "S1").replace("{n}", "1")
    lines = [
        syntax.group_heading.replace("{name}", "S1"),
        "",
        syntax.task_heading.replace("{id}", task_id),
        "Area: Core",
        "Depends: -",
        "Description: First task",
        "AC: Task completed successfully",
    ]
    for definition in syntax.extra_fields:
        if not definition.required:
            continue
        if definition.kind is FieldKind.ENUM and definition.values:
            lines.append(f"{definition.name}: {definition.values[0]}")
        else:
            lines.append(f"{definition.name}: -")
    return "\n".join(lines) + "\n"


def _event_label(event: Event | None) -> str:
    if event is None:
        return "-"
    return f"{event.status.value}@{event.timestamp} by {event.agent}"


def _check_label(value: bool | None) -> str:
    if value is None:
        return "-"
    return "pass" if value else "fail"
