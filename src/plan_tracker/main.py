"""CLI entrypoint for plan-tracker."""

from collections.abc import Callable
from pathlib import Path

import rich_click as click

from plan_tracker import __version__
from plan_tracker.controllers import (
    PlanCliController,
    PlanCommandResult,
    PlanInitCommand,
    PlanQualityCommand,
    PlanSnapshotCommand,
    PlanValidateCommand,
)

click.rich_click.USE_MARKDOWN = True
PLAN_CONTROLLER = PlanCliController()

_PLAN_DIR_OPTION = click.option(
    "--plan-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Plan directory. Defaults to PLAN_TRACKER_DIR or .plan-tracker.",
)
_FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format.",
)


@click.group()
@click.version_option(version=__version__, prog_name="plan-tracker")
def plan_tracker() -> None:
    """Task dependency state tracker."""


@plan_tracker.command("init")
@_PLAN_DIR_OPTION
def init_plan(plan_dir: Path | None) -> None:
    """Create a plan directory with a template document and an empty event log."""

    _finish(
        _run(lambda: PLAN_CONTROLLER.init_plan(PlanInitCommand(plan_dir=plan_dir))),
        "Init failed.",
    )


@plan_tracker.command("validate")
@_PLAN_DIR_OPTION
def validate(plan_dir: Path | None) -> None:
    """Validate the plan document and the event log."""

    _finish(
        _run(lambda: PLAN_CONTROLLER.validate(PlanValidateCommand(plan_dir=plan_dir))),
        "Plan document is invalid.",
    )


@plan_tracker.command("snapshot")
@_PLAN_DIR_OPTION
@_FORMAT_OPTION
def snapshot(plan_dir: Path | None, output_format: str) -> None:
    """Resolve task statuses and print the **current snapshot**."""

    _finish(
        _run(
            lambda: PLAN_CONTROLLER.snapshot(
                PlanSnapshotCommand(plan_dir=plan_dir, output_format=output_format),
            ),
        ),
        "Snapshot unavailable: plan document is invalid.",
    )


@plan_tracker.command("quality")
@_PLAN_DIR_OPTION
@click.option("--task-id", default=None, help="Only show events for this task.")
@_FORMAT_OPTION
def quality(plan_dir: Path | None, task_id: str | None, output_format: str) -> None:
    """Show the quality gate timeline recorded in event metadata."""

    try:
        lines = PLAN_CONTROLLER.quality(
            PlanQualityCommand(plan_dir=plan_dir, task_id=task_id, output_format=output_format),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _run(action: Callable[[], PlanCommandResult]) -> PlanCommandResult:
    try:
        return action()
    except (FileNotFoundError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _finish(result: PlanCommandResult, failure_message: str) -> None:
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(failure_message)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    plan_tracker()
