"""Unit tests for dependency and date-field validation."""

import pytest
from datetime import date

from schedkit.errors import (
    CIRCULAR_DEPENDENCY,
    DEPENDS_ON_COMPLETED_TASK,
    DERIVED_DUE_DATE_WARNING,
    INVALID_DATE_COMBINATION,
    SELF_DEPENDENCY,
    UNKNOWN_DEPENDENCY,
)
from schedkit.models import Task
from schedkit.validation import (
    check_deadline_overdue,
    has_circular_dependency,
    validate_dependencies,
    validate_task,
    validate_task_date_fields,
)


@pytest.fixture
def chain():
    """C depends on B, B depends on A; D is unrelated and E is completed."""
    return [
        Task(task_id="A", title="Alpha"),
        Task(task_id="B", title="Beta", depends_on_task_ids=["A"]),
        Task(task_id="C", title="Gamma", depends_on_task_ids=["B"]),
        Task(task_id="D", title="Delta"),
        Task(task_id="E", title="Epsilon", is_completed=True, completed_at=date(2024, 1, 1)),
    ]


class TestCircularDependency:
    """Test cases for cycle detection."""

    def test_self_reference(self, chain):
        """Test that a task depending on itself is circular."""
        assert has_circular_dependency("A", "A", chain) is True

    def test_transitive_cycle(self, chain):
        """Test that A depending on C closes A <- B <- C."""
        assert has_circular_dependency("A", "C", chain) is True

    def test_no_cycle(self, chain):
        """Test that unrelated edges are accepted."""
        assert has_circular_dependency("C", "D", chain) is False
        assert has_circular_dependency("D", "C", chain) is False

    def test_malformed_graph_terminates(self):
        """Test that an existing cycle not involving the candidate terminates."""
        tasks = [
            Task(task_id="X", depends_on_task_ids=["Y"]),
            Task(task_id="Y", depends_on_task_ids=["X"]),
            Task(task_id="Z"),
        ]
        assert has_circular_dependency("Z", "X", tasks) is False


class TestValidateDependencies:
    """Test cases for validate_dependencies."""

    def test_empty_dependencies_are_valid(self, chain):
        """Test that no dependencies is trivially valid."""
        result = validate_dependencies("A", [], chain)
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_valid_dependencies(self, chain):
        """Test a valid dependency set."""
        result = validate_dependencies("D", ["C", "A"], chain)
        assert result.valid

    def test_unknown_dependency(self, chain):
        """Test that unknown ids are fatal."""
        result = validate_dependencies("D", ["nope"], chain)

        assert not result.valid
        assert result.error_kinds() == [UNKNOWN_DEPENDENCY]
        assert "nope" in result.errors[0].message

    def test_circular_dependency(self, chain):
        """Test that closing a cycle is fatal."""
        result = validate_dependencies("A", ["C"], chain)

        assert not result.valid
        assert result.error_kinds() == [CIRCULAR_DEPENDENCY]
        assert "Gamma" in result.errors[0].message

    def test_self_dependency_checked_first(self, chain):
        """Test that self-dependency is reported once and before other errors."""
        result = validate_dependencies("B", ["B", "nope"], chain)

        assert result.error_kinds() == [SELF_DEPENDENCY, UNKNOWN_DEPENDENCY]

    def test_completed_dependency_warns(self, chain):
        """Test that completed dependencies are advisory only."""
        result = validate_dependencies("D", ["E"], chain)

        assert result.valid
        assert result.warning_kinds() == [DEPENDS_ON_COMPLETED_TASK]
        assert "Epsilon" in result.warnings[0].message

    def test_new_task_skips_cycle_check(self, chain):
        """Test validating dependencies for a task that does not exist yet."""
        result = validate_dependencies(None, ["C", "E"], chain)

        assert result.valid
        assert result.warning_kinds() == [DEPENDS_ON_COMPLETED_TASK]

    def test_duplicate_ids_reported_once(self, chain):
        """Test that duplicate proposed ids do not duplicate errors."""
        result = validate_dependencies("D", ["nope", "nope"], chain)
        assert len(result.errors) == 1

    def test_idempotent_and_pure(self, chain):
        """Test that validation neither mutates tasks nor changes on repeat."""
        before = [task.to_dict() for task in chain]

        first = validate_dependencies("A", ["C", "E"], chain)
        second = validate_dependencies("A", ["C", "E"], chain)

        assert first.to_dict() == second.to_dict()
        assert [task.to_dict() for task in chain] == before

    def test_errors_fatal_warnings_advisory(self, chain):
        """Test that reported kinds land on the right side of the result."""
        result = validate_dependencies("A", ["A", "C", "nope", "E"], chain)

        assert all(issue.is_fatal for issue in result.errors)
        assert not any(issue.is_fatal for issue in result.warnings)


class TestValidateTaskDateFields:
    """Test cases for date-field combinations."""

    def test_consistent_fields(self):
        """Test a consistent combination."""
        result = validate_task_date_fields("2024-01-01", "2024-01-03", None, True)
        assert result.valid
        assert result.warnings == []

    def test_duration_without_start(self):
        """Test that a duration needs a start date."""
        result = validate_task_date_fields(duration_days=3)

        assert result.error_kinds() == [INVALID_DATE_COMBINATION]
        assert "start date" in result.errors[0].message

    def test_fixed_without_due_date(self):
        """Test that a fixed deadline needs a due date."""
        result = validate_task_date_fields(start_date="2024-01-01", is_due_date_fixed=True)
        assert result.error_kinds() == [INVALID_DATE_COMBINATION]

    def test_due_before_start(self):
        """Test that the due date must not precede the start date."""
        result = validate_task_date_fields(start_date=date(2024, 1, 5), due_date=date(2024, 1, 1))
        assert not result.valid

    def test_non_positive_duration(self):
        """Test that zero-day durations are rejected."""
        result = validate_task_date_fields(start_date="2024-01-01", duration_days=0)
        assert not result.valid

    def test_derived_due_date_warning(self):
        """Test the warning when a due date will be derived anyway."""
        result = validate_task_date_fields("2024-01-01", "2024-01-10", 3, False)

        assert result.valid
        assert result.warning_kinds() == [DERIVED_DUE_DATE_WARNING]

    def test_validate_task_combines_results(self, chain):
        """Test combined date and dependency validation."""
        result = validate_task(
            task_id="A",
            duration_days=2,
            depends_on_task_ids=["C"],
            all_tasks=chain,
        )

        assert result.error_kinds() == [INVALID_DATE_COMBINATION, CIRCULAR_DEPENDENCY]


class TestCheckDeadlineOverdue:
    """Test cases for the deadline overrun advisory."""

    def test_overrun_message(self):
        """Test that the message names the number of days over."""
        message = check_deadline_overdue(date(2024, 1, 13), date(2024, 1, 10))
        assert message is not None
        assert "3 day(s)" in message

    def test_no_overrun(self):
        """Test that meeting the deadline yields no message."""
        assert check_deadline_overdue(date(2024, 1, 10), date(2024, 1, 10)) is None
