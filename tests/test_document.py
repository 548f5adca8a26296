from __future__ import annotations

import allure

from plan_tracker.engine.document import DocumentSyntax, detect_cycles, parse_document
from plan_tracker.engine.models import FieldDefinition, FieldKind, Task

pytestmark = [
    allure.epic("State Engine"),
    allure.feature("Document Parser"),
]


def _block(task_id: str, depends: str = "-", area: str = "Core") -> str:
    return (
        f"## {task_id}\n"
        f"Area: {area}\n"
        f"Depends: {depends}\n"
        f"Description: Task {task_id}\n"
        "AC: Works\n"
    )


def _document(*blocks: str) -> str:
    return "# Group S1\n\n" + "\n".join(blocks)


def _task(task_id: str, *depends_on: str) -> Task:
    return Task(
        id=task_id,
        group="S1",
        area="Core",
        description="",
        acceptance_criteria="",
        depends_on=depends_on,
    )


def test_parse_simple_document() -> None:
    result = parse_document(_document(_block("S1-T1"), _block("S1-T2", "S1-T1")))

    assert result.errors == []
    assert result.tasks == [
        Task(
            id="S1-T1",
            group="S1",
            area="Core",
            description="Task S1-T1",
            acceptance_criteria="Works",
            depends_on=(),
        ),
        Task(
            id="S1-T2",
            group="S1",
            area="Core",
            description="Task S1-T2",
            acceptance_criteria="Works",
            depends_on=("S1-T1",),
        ),
    ]


def test_group_is_derived_from_task_id_not_heading() -> None:
    content = "# Group S1\n\n" + _block("S1-T1") + "\n# Group S2\n\n" + _block("S2-T1", "S1-T1")

    result = parse_document(content)

    assert result.errors == []
    assert [task.group for task in result.tasks] == ["S1", "S2"]
    assert result.tasks[1].depends_on == ("S1-T1",)


def test_comma_separated_dependencies_are_trimmed_and_ordered() -> None:
    result = parse_document(
        _document(
            _block("S1-T1"),
            _block("S1-T2"),
            _block("S1-T3", "S1-T2 ,  S1-T1,"),
        ),
    )

    assert result.errors == []
    assert result.tasks[2].depends_on == ("S1-T2", "S1-T1")


def test_extra_whitespace_and_crlf_are_ignored() -> None:
    content = "# Group S1\r\n\r\n## S1-T1\r\nArea:   Auth\r\nDepends:  -\r\n"
    content += "Description:   Setup auth\r\nAC:  Works  \r\n"

    result = parse_document(content)

    assert result.errors == []
    assert result.tasks[0].area == "Auth"
    assert result.tasks[0].description == "Setup auth"
    assert result.tasks[0].acceptance_criteria == "Works"


def test_unrecognized_and_wrong_case_lines_are_ignored() -> None:
    content = (
        "## S1-T1\n"
        "Area: Core\n"
        "area: ignored\n"
        "Owner: someone\n"
        "free text line\n"
        "Depends: -\n"
        "Description: First\n"
        "AC: Works\n"
    )

    result = parse_document(content)

    assert result.errors == []
    assert result.tasks[0].area == "Core"
    assert result.tasks[0].extra == {}


def test_missing_field_is_reported_and_task_rejected() -> None:
    content = "## S1-T1\nDepends: -\nDescription: Setup\nAC: Works\n"

    result = parse_document(content)

    assert result.errors == ["Task S1-T1 missing Area field"]
    assert result.tasks == []


def test_each_missing_field_is_reported_separately() -> None:
    result = parse_document("## S1-T1\nArea: Auth\n")

    assert result.errors == [
        "Task S1-T1 missing Depends field",
        "Task S1-T1 missing Description field",
        "Task S1-T1 missing AC field",
    ]


def test_empty_field_value_counts_as_missing() -> None:
    result = parse_document("## S1-T1\nArea:\nDepends: -\nDescription: x\nAC: y\n")

    assert result.errors == ["Task S1-T1 missing Area field"]


def test_rejected_task_does_not_stop_later_tasks() -> None:
    content = "## S1-T1\nArea: Core\n\n" + _block("S1-T2")

    result = parse_document(content)

    assert [task.id for task in result.tasks] == ["S1-T2"]
    assert len(result.errors) == 3


def test_duplicate_ids_are_reported_and_kept() -> None:
    result = parse_document(_document(_block("S1-T1"), _block("S1-T1", area="API")))

    assert result.errors == ["Duplicate task ID: S1-T1"]
    assert [task.area for task in result.tasks] == ["Core", "API"]


def test_unknown_dependencies_are_reported_each() -> None:
    result = parse_document(_document(_block("S1-T1", "S1-T99, S2-T88")))

    assert result.errors == [
        "Task S1-T1 depends on unknown task: S1-T99",
        "Task S1-T1 depends on unknown task: S2-T88",
    ]
    assert len(result.tasks) == 1


def test_self_dependency_is_a_cycle() -> None:
    result = parse_document(_document(_block("S1-T1", "S1-T1")))

    assert result.errors == ["Circular dependency: S1-T1 → S1-T1"]


def test_two_node_cycle_is_detected() -> None:
    result = parse_document(_document(_block("S1-T1", "S1-T2"), _block("S1-T2", "S1-T1")))

    assert result.errors == ["Circular dependency: S1-T1 → S1-T2 → S1-T1"]


def test_indirect_cycle_is_detected() -> None:
    result = parse_document(
        _document(
            _block("S1-T1", "S1-T3"),
            _block("S1-T2", "S1-T1"),
            _block("S1-T3", "S1-T2"),
        ),
    )

    assert result.errors == ["Circular dependency: S1-T1 → S1-T3 → S1-T2 → S1-T1"]


def test_chain_and_diamond_have_no_cycles() -> None:
    chain = parse_document(
        _document(_block("S1-T1"), _block("S1-T2", "S1-T1"), _block("S1-T3", "S1-T2")),
    )
    diamond = parse_document(
        _document(
            _block("S1-T1"),
            _block("S1-T2", "S1-T1"),
            _block("S1-T3", "S1-T1"),
            _block("S1-T4", "S1-T2, S1-T3"),
        ),
    )

    assert chain.errors == []
    assert diamond.errors == []
    assert len(diamond.tasks) == 4


def test_independent_cycles_are_all_reported() -> None:
    errors = detect_cycles(
        [_task("A", "B"), _task("B", "A"), _task("C", "C"), _task("D")],
    )

    assert errors == ["Circular dependency: A → B → A", "Circular dependency: C → C"]


def test_cycle_detection_handles_long_chains() -> None:
    tasks = [_task("T0")] + [_task(f"T{index}", f"T{index - 1}") for index in range(1, 5000)]

    assert detect_cycles(tasks) == []


def test_several_error_kinds_are_collected_in_one_pass() -> None:
    result = parse_document(
        _document(
            "## S1-T0\nArea: Core\nDepends: -\nDescription: x\n",
            _block("S1-T1", "S1-T1"),
            _block("S1-T1"),
            _block("S1-T2", "S1-T9"),
        ),
    )

    assert result.errors == [
        "Task S1-T0 missing AC field",
        "Duplicate task ID: S1-T1",
        "Task S1-T2 depends on unknown task: S1-T9",
        "Circular dependency: S1-T1 → S1-T1",
    ]


def test_empty_and_heading_only_documents_have_no_tasks_or_errors() -> None:
    for content in ("", "   \n\n   \n", "# Group S1\n# Group S2"):
        result = parse_document(content)
        assert result.tasks == []
        assert result.errors == []


def test_task_heading_without_id_is_reported_by_line() -> None:
    syntax = DocumentSyntax(task_heading="## Task")
    content = "# Group S1\n\n## Task\nArea: Core\nDepends: -\nDescription: x\nAC: y\n"

    result = parse_document(content, syntax=syntax)

    assert result.errors == ["Task at line 3 missing ID"]
    assert result.tasks == []


def test_custom_templates_drive_headings_and_group_derivation() -> None:
    syntax = DocumentSyntax(
        group_heading="# Slice {name}",
        task_heading="### Task {id}",
        id_template="{group}.{n}",
    )
    content = (
        "# Slice API\n\n"
        "### Task API.1\nArea: Core\nDepends: -\nDescription: x\nAC: y\n\n"
        "### Task API.2\nArea: Core\nDepends: API.1\nDescription: x\nAC: y\n"
    )

    result = parse_document(content, syntax=syntax)

    assert result.errors == []
    assert [(task.id, task.group) for task in result.tasks] == [("API.1", "API"), ("API.2", "API")]


def test_id_without_group_separator_uses_whole_id_as_group() -> None:
    result = parse_document("## setup\nArea: Core\nDepends: -\nDescription: x\nAC: y\n")

    assert result.tasks[0].group == "setup"


def test_extra_fields_are_collected_and_enum_values_checked() -> None:
    syntax = DocumentSyntax(
        extra_fields=(
            FieldDefinition(name="Priority", kind=FieldKind.ENUM, values=("P0", "P1")),
            FieldDefinition(name="Owner", required=False),
        ),
    )
    content = _document(
        _block("S1-T1") + "Priority: P1\nOwner: alice\n",
        _block("S1-T2") + "Priority: P7\n",
        _block("S1-T3"),
    )

    result = parse_document(content, syntax=syntax)

    assert [task.id for task in result.tasks] == ["S1-T1"]
    assert result.tasks[0].extra == {"Priority": "P1", "Owner": "alice"}
    assert result.errors == [
        "Task S1-T2 has invalid Priority value: P7",
        "Task S1-T3 missing Priority field",
    ]
