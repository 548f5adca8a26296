"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

_ENV_VARS = (
    "PLAN_TRACKER_DIR",
    "PLAN_TRACKER_DOCUMENT_FILE",
    "PLAN_TRACKER_LOG_FILE",
    "PLAN_TRACKER_GROUP_HEADING",
    "PLAN_TRACKER_TASK_HEADING",
    "PLAN_TRACKER_ID_TEMPLATE",
    "PLAN_TRACKER_EXTRA_FIELDS",
)

TWO_TASK_DOCUMENT = """# Group S1

## S1-T1
Area: Core
Depends: -
Description: First task
AC: Works

## S1-T2
Area: Core
Depends: S1-T1
Description: Second task
AC: Works
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment out of settings-driven tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def plan_dir(tmp_path: Path) -> Path:
    """Plan directory with a two-task document and one DONE event."""
    directory = tmp_path / "plan"
    directory.mkdir()
    (directory / "queue.md").write_text(TWO_TASK_DOCUMENT, "utf-8")
    (directory / "execution.log").write_text(
        '{"task_id":"S1-T1","status":"DONE","timestamp":"2026-02-16T14:31:22Z","agent":"w1"}\n',
        "utf-8",
    )
    return directory
