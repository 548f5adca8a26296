"""Plan document parser: turns the human-edited task list into a validated task graph.

Document grammar (templates are configurable through `DocumentSyntax`):

    # Group <GroupId>

    ## <TaskId>
    Area: <string>
    Depends: - | <id>[, <id>...]
    Description: <string>
    AC: <string>

Group headings are informational only; the group of a task is derived from its id.
All diagnostics are collected in one pass and returned next to the parsed tasks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from plan_tracker.engine.models import DocumentParseResult, FieldDefinition, FieldKind, Task

logger = logging.getLogger(__name__)

DEPENDS_FIELD = "Depends"
NO_DEPENDENCIES = "-"

BUILTIN_FIELDS: tuple[FieldDefinition, ...] = (
    FieldDefinition(name="Area"),
    FieldDefinition(name=DEPENDS_FIELD, kind=FieldKind.REFS),
    FieldDefinition(name="Description"),
    FieldDefinition(name="AC"),
)

_PLACEHOLDER_RE = re.compile(r"\{(id|name|group|n)\}")
_PLACEHOLDER_PATTERNS = {
    "id": r"\S+",
    "name": r"\S+",
    "group": r"\S+?",
    "n": r"\d+",
}


@dataclass(frozen=True, slots=True)
class DocumentSyntax:
    """Heading templates and recognized fields of a plan document."""

    group_heading: str = "# Group {name}"
    task_heading: str = "## {id}"
    id_template: str = "{group}-T{n}"
    extra_fields: tuple[FieldDefinition, ...] = ()

    @property
    def fields(self) -> tuple[FieldDefinition, ...]:
        return BUILTIN_FIELDS + self.extra_fields


@dataclass(slots=True)
class _Grammar:
    group_heading: re.Pattern[str]
    task_heading: re.Pattern[str]
    group_from_id: re.Pattern[str] | None
    field_matchers: list[tuple[FieldDefinition, re.Pattern[str]]]

    @classmethod
    def from_syntax(cls, syntax: DocumentSyntax) -> _Grammar:
        return cls(
            group_heading=template_to_regex(syntax.group_heading),
            task_heading=template_to_regex(syntax.task_heading),
            group_from_id=_group_prefix_regex(syntax.id_template),
            field_matchers=[
                (definition, re.compile(rf"^{re.escape(definition.name)}:\s*(.+)$"))
                for definition in syntax.fields
            ],
        )

    def group_of(self, task_id: str) -> str:
        if self.group_from_id is None:
            return task_id
        match = self.group_from_id.match(task_id)
        return match.group(1) if match else task_id


@dataclass(slots=True)
class _TaskBlock:
    task_id: str | None
    line_number: int
    values: dict[str, str] = field(default_factory=dict)

    def consume(self, line: str, matchers: list[tuple[FieldDefinition, re.Pattern[str]]]) -> None:
        for definition, regex in matchers:
            match = regex.match(line)
            if match:
                self.values[definition.name] = match.group(1).strip()
                return


def template_to_regex(template: str) -> re.Pattern[str]:
    """Compile a heading template such as ``## {id}`` into an anchored regex.

    The first occurrence of each placeholder becomes a named group; literal text is
    escaped and every whitespace run matches ``\\s+``.
    """

    parts = ["^"]
    named: set[str] = set()
    position = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        parts.append(_literal_pattern(template[position : match.start()]))
        placeholder = match.group(1)
        pattern = _PLACEHOLDER_PATTERNS[placeholder]
        if placeholder in named:
            parts.append(f"(?:{pattern})")
        else:
            parts.append(f"(?P<{placeholder}>{pattern})")
            named.add(placeholder)
        position = match.end()
    parts.append(_literal_pattern(template[position:]))
    parts.append("$")
    return re.compile("".join(parts))


def parse_document(text: str, syntax: DocumentSyntax | None = None) -> DocumentParseResult:
    """Parse a plan document into tasks plus every validation error found."""

    syntax = syntax or DocumentSyntax()
    grammar = _Grammar.from_syntax(syntax)
    tasks: list[Task] = []
    errors: list[str] = []
    block: _TaskBlock | None = None

    for line_number, line in enumerate(text.split("\n"), start=1):
        stripped = line.strip()
        if grammar.group_heading.match(stripped):
            continue

        heading = grammar.task_heading.match(stripped)
        if heading:
            if block is not None:
                _close_block(block, syntax=syntax, grammar=grammar, tasks=tasks, errors=errors)
            block = _TaskBlock(task_id=heading.groupdict().get("id"), line_number=line_number)
            continue

        if block is not None and stripped:
            block.consume(stripped, grammar.field_matchers)

    if block is not None:
        _close_block(block, syntax=syntax, grammar=grammar, tasks=tasks, errors=errors)

    errors.extend(_duplicate_id_errors(tasks))
    errors.extend(_unknown_dependency_errors(tasks))
    errors.extend(detect_cycles(tasks))

    logger.debug("Parsed plan document: tasks=%d errors=%d", len(tasks), len(errors))
    return DocumentParseResult(tasks=tasks, errors=errors)


def detect_cycles(tasks: list[Task]) -> list[str]:
    """Report every back-edge of the dependency graph as a circular dependency.

    Depth-first search with an explicit stack and an on-stack set. Duplicate ids
    contribute the union of their dependencies; unknown ids are not traversed.
    """

    graph: dict[str, list[str]] = {}
    for task in tasks:
        graph.setdefault(task.id, []).extend(task.depends_on)

    errors: list[str] = []
    visited: set[str] = set()
    for root in graph:
        if root in visited:
            continue
        visited.add(root)
        path = [root]
        on_stack = {root}
        pending = [iter(graph[root])]
        while pending:
            dependency = next(pending[-1], None)
            if dependency is None:
                pending.pop()
                on_stack.discard(path.pop())
                continue
            if dependency not in graph:
                continue
            if dependency in on_stack:
                cycle = [*path[path.index(dependency) :], dependency]
                errors.append(f"Circular dependency: {' → '.join(cycle)}")
            elif dependency not in visited:
                visited.add(dependency)
                on_stack.add(dependency)
                path.append(dependency)
                pending.append(iter(graph[dependency]))
    return errors


def _close_block(
    block: _TaskBlock,
    *,
    syntax: DocumentSyntax,
    grammar: _Grammar,
    tasks: list[Task],
    errors: list[str],
) -> None:
    if not block.task_id:
        errors.append(f"Task at line {block.line_number} missing ID")
        return

    block_errors: list[str] = []
    for definition in syntax.fields:
        value = block.values.get(definition.name)
        if value is None:
            if definition.required:
                block_errors.append(f"Task {block.task_id} missing {definition.name} field")
            continue
        if (
            definition.kind is FieldKind.ENUM
            and definition.values
            and value not in definition.values
        ):
            block_errors.append(
                f"Task {block.task_id} has invalid {definition.name} value: {value}",
            )

    if block_errors:
        errors.extend(block_errors)
        return

    builtin_names = {definition.name for definition in BUILTIN_FIELDS}
    tasks.append(
        Task(
            id=block.task_id,
            group=grammar.group_of(block.task_id),
            area=block.values["Area"],
            description=block.values["Description"],
            acceptance_criteria=block.values["AC"],
            depends_on=_split_refs(block.values[DEPENDS_FIELD]),
            extra={
                name: value for name, value in block.values.items() if name not in builtin_names
            },
        ),
    )


def _split_refs(value: str) -> tuple[str, ...]:
    if value == NO_DEPENDENCIES:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _duplicate_id_errors(tasks: list[Task]) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            errors.append(f"Duplicate task ID: {task.id}")
        seen.add(task.id)
    return errors


def _unknown_dependency_errors(tasks: list[Task]) -> list[str]:
    known = {task.id for task in tasks}
    return [
        f"Task {task.id} depends on unknown task: {dependency}"
        for task in tasks
        for dependency in task.depends_on
        if dependency not in known
    ]


def _literal_pattern(text: str) -> str:
    return r"\s+".join(re.escape(chunk) for chunk in re.split(r"\s+", text))


def _group_prefix_regex(id_template: str) -> re.Pattern[str] | None:
    marker = "{group}"
    index = id_template.find(marker)
    if index == -1:
        return None
    after = id_template[index + len(marker) :]
    next_placeholder = after.find("{")
    separator = after if next_placeholder == -1 else after[:next_placeholder]
    if not separator:
        return None
    return re.compile(r"^(\S+?)" + re.escape(separator))
