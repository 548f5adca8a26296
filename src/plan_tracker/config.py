"""Runtime configuration for plan document syntax and plan file locations."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from plan_tracker.engine.document import BUILTIN_FIELDS, DocumentSyntax
from plan_tracker.engine.models import FieldDefinition, FieldKind


@dataclass(slots=True)
class PlanFileSettings:
    """Where the plan document and the event log live."""

    plan_dir: Path = Path(".plan-tracker")
    document_file: str = "queue.md"
    log_file: str = "execution.log"

    @property
    def document_path(self) -> Path:
        return self.plan_dir / self.document_file

    @property
    def log_path(self) -> Path:
        return self.plan_dir / self.log_file


@dataclass(slots=True)
class SyntaxSettings:
    """Heading templates and extra fields recognized in the plan document."""

    group_heading: str = "# Group {name}"
    task_heading: str = "## {id}"
    id_template: str = "{group}-T{n}"
    extra_fields: tuple[FieldDefinition, ...] = ()

    def to_document_syntax(self) -> DocumentSyntax:
        return DocumentSyntax(
            group_heading=self.group_heading,
            task_heading=self.task_heading,
            id_template=self.id_template,
            extra_fields=self.extra_fields,
        )


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    files: PlanFileSettings = field(default_factory=PlanFileSettings)
    syntax: SyntaxSettings = field(default_factory=SyntaxSettings)

    @classmethod
    def from_env(cls, plan_dir: Path | None = None) -> Settings:
        """Load settings from environment with defaults matching `plan-tracker init`."""

        return cls(
            files=PlanFileSettings(
                plan_dir=plan_dir or Path(os.getenv("PLAN_TRACKER_DIR", ".plan-tracker")),
                document_file=os.getenv("PLAN_TRACKER_DOCUMENT_FILE", "queue.md"),
                log_file=os.getenv("PLAN_TRACKER_LOG_FILE", "execution.log"),
            ),
            syntax=SyntaxSettings(
                group_heading=os.getenv("PLAN_TRACKER_GROUP_HEADING", "# Group {name}"),
                task_heading=os.getenv("PLAN_TRACKER_TASK_HEADING", "## {id}"),
                id_template=os.getenv("PLAN_TRACKER_ID_TEMPLATE", "{group}-T{n}"),
                extra_fields=_collect_extra_fields(),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if templates or field declarations are unusable."""

        for name, value in (
            ("PLAN_TRACKER_GROUP_HEADING", self.syntax.group_heading),
            ("PLAN_TRACKER_TASK_HEADING", self.syntax.task_heading),
            ("PLAN_TRACKER_ID_TEMPLATE", self.syntax.id_template),
        ):
            if not value.strip():
                raise ValueError(f"{name} must not be empty.")
        if self.syntax.group_heading.strip() == self.syntax.task_heading.strip():
            raise ValueError(
                "PLAN_TRACKER_GROUP_HEADING and PLAN_TRACKER_TASK_HEADING must differ.",
            )

        builtin_names = {definition.name for definition in BUILTIN_FIELDS}
        seen: set[str] = set()
        for definition in self.syntax.extra_fields:
            if definition.name in builtin_names:
                raise ValueError(
                    f"Extra field {definition.name!r} collides with a built-in field.",
                )
            if definition.name in seen:
                raise ValueError(f"Extra field {definition.name!r} is declared twice.")
            seen.add(definition.name)
        if not self.files.document_file or not self.files.log_file:
            raise ValueError("PLAN_TRACKER_DOCUMENT_FILE and PLAN_TRACKER_LOG_FILE are required.")


def _collect_extra_fields() -> tuple[FieldDefinition, ...]:
    raw = os.getenv("PLAN_TRACKER_EXTRA_FIELDS", "").strip()
    if not raw:
        return ()

    definitions: list[FieldDefinition] = []
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        definitions.append(_parse_field_declaration(token))
    return tuple(definitions)


def _parse_field_declaration(token: str) -> FieldDefinition:
    """Parse ``Name:kind[:required][:v1|v2|...]``."""

    name, _, rest = token.partition(":")
    name = name.strip()
    if not name or not rest:
        raise ValueError(
            "Invalid PLAN_TRACKER_EXTRA_FIELDS entry: "
            f"{token!r}. Expected format 'Name:kind[:required][:v1|v2]'.",
        )

    options = [option.strip() for option in rest.split(":")]
    try:
        kind = FieldKind(options[0].lower())
    except ValueError as error:
        raise ValueError(
            f"Invalid PLAN_TRACKER_EXTRA_FIELDS kind for {name!r}: {options[0]!r}",
        ) from error

    required = False
    values: tuple[str, ...] = ()
    for option in options[1:]:
        if option.lower() == "required":
            required = True
        elif option:
            values = tuple(value.strip() for value in option.split("|") if value.strip())
    if values and kind is not FieldKind.ENUM:
        raise ValueError(
            f"Invalid PLAN_TRACKER_EXTRA_FIELDS entry for {name!r}: "
            "allowed values are only supported for enum fields.",
        )
    return FieldDefinition(name=name, kind=kind, required=required, values=values)
