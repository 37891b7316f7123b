"""
Contract tests for the scheduling engine:
dependency changes that would close a cycle are refused, date edits
reconcile to a stable triplet, predicted dates follow dependency chains,
and analyses are deterministic and never pull work earlier.
"""

import pytest
from datetime import date

from schedkit import (
    Task,
    critical_path,
    effective_dates,
    notify_dependency_delays,
    recalculate_dates,
    validate_dependencies,
)
from schedkit.errors import CIRCULAR_DEPENDENCY


class TestCycleRejection:
    """Contract tests for refusing circular dependencies."""

    @pytest.fixture
    def project(self):
        """A depends on M, M depends on B; C is unrelated."""
        return [
            Task(task_id="A", title="Assemble", depends_on_task_ids=["M"]),
            Task(task_id="M", title="Machine", depends_on_task_ids=["B"]),
            Task(task_id="B", title="Buy parts"),
            Task(task_id="C", title="Catalogue"),
        ]

    def test_reverse_edge_is_rejected(self, project):
        """
        Contract Test: closing a transitive cycle fails.

        Given: A transitively depends on B
        When: B is proposed to depend on A
        Then: Validation fails with CircularDependency
        """
        result = validate_dependencies("B", ["A"], project)

        assert not result.valid
        assert result.error_kinds() == [CIRCULAR_DEPENDENCY]

    def test_unrelated_edge_is_accepted(self, project):
        """
        Contract Test: unrelated edges pass.

        Given: C is unrelated to the A/M/B chain
        When: B is proposed to depend on C
        Then: Validation succeeds without warnings
        """
        result = validate_dependencies("B", ["C"], project)

        assert result.valid
        assert result.warnings == []


class TestDateReconciliation:
    """Contract tests for start/due/duration reconciliation."""

    def test_derived_due_date_is_stable(self):
        """
        Contract Test: reconciliation is idempotent.

        Given: A task whose duration was just edited
        When: The result is reconciled again with no changes
        Then: The same triplet comes back
        """
        task = Task(task_id="T", start_date=date(2024, 1, 1), duration_days=2, due_date=date(2024, 1, 2))

        first = recalculate_dates(task, {"duration_days": 7})
        second = recalculate_dates(first, {})

        assert second.triplet() == first.triplet()
        assert first.due_date == date(2024, 1, 7)

    def test_duration_preserving_start_shift(self):
        """
        Contract Test: a start shift keeps the duration when it is authoritative.

        Given: start 2024-01-01, duration 3, due date not fixed
        When: The start moves to 2024-01-10
        Then: The due date becomes 2024-01-12 and the duration stays 3
        """
        task = Task(
            task_id="T",
            start_date=date(2024, 1, 1),
            duration_days=3,
            due_date=date(2024, 1, 3),
        )

        result = recalculate_dates(task, {"start_date": date(2024, 1, 10)})

        assert result.due_date == date(2024, 1, 12)
        assert result.duration_days == 3

    def test_fixed_deadline_duration_adaptation(self):
        """
        Contract Test: a start shift adapts the duration under a fixed deadline.

        Given: due date 2024-01-10, fixed
        When: The start moves to 2024-01-05
        Then: The duration becomes 6 and the due date is unchanged
        """
        task = Task(
            task_id="T",
            start_date=date(2024, 1, 1),
            duration_days=10,
            due_date=date(2024, 1, 10),
            is_due_date_fixed=True,
        )

        result = recalculate_dates(task, {"start_date": date(2024, 1, 5)})

        assert result.duration_days == 6
        assert result.due_date == date(2024, 1, 10)


class TestEffectiveDates:
    """Contract tests for predicted dates."""

    def test_start_follows_dependency_end(self):
        """
        Contract Test: a dependent starts the day after its dependency ends.

        Given: A starts 2024-02-01 for 2 days; B depends on A with no start
        When: B's effective dates are computed
        Then: B is predicted to start 2024-02-03
        """
        a = Task(task_id="A", start_date=date(2024, 2, 1), duration_days=2)
        b = Task(task_id="B", depends_on_task_ids=["A"])

        assert effective_dates(a, [a, b]).predicted_end == date(2024, 2, 2)
        assert effective_dates(b, [a, b]).predicted_start == date(2024, 2, 3)

    def test_end_to_end_fixed_deadline_overrun(self):
        """
        Contract Test: a fixed deadline before any feasible start is overdue.

        Given: A (2 days from 2024-03-01) <- B <- C with C fixed due 2024-03-02
        When: Effective dates are computed
        Then: B starts 2024-03-03 and C is flagged overdue
        """
        tasks = [
            Task(task_id="A", start_date=date(2024, 3, 1), duration_days=2),
            Task(task_id="B", depends_on_task_ids=["A"]),
            Task(
                task_id="C",
                depends_on_task_ids=["B"],
                due_date=date(2024, 3, 2),
                is_due_date_fixed=True,
            ),
        ]

        assert effective_dates(tasks[1], tasks).predicted_start == date(2024, 3, 3)
        assert effective_dates(tasks[2], tasks).is_deadline_overdue is True


class TestAnalyses:
    """Contract tests for critical path and delay propagation."""

    @pytest.fixture
    def project(self):
        return [
            Task(task_id="A", start_date=date(2024, 1, 1), duration_days=3, due_date=date(2024, 1, 3)),
            Task(task_id="B", depends_on_task_ids=["A"], duration_days=2, due_date=date(2024, 1, 9)),
            Task(task_id="C", depends_on_task_ids=["A"], duration_days=4, due_date=date(2024, 1, 7)),
            Task(task_id="D", depends_on_task_ids=["B", "C"], duration_days=1, due_date=date(2024, 1, 8)),
            Task(task_id="E", duration_days=2),
        ]

    def test_critical_path_determinism(self, project):
        """
        Contract Test: the critical path is stable across calls.

        Given: A fixed task set and ordering
        When: The critical path is computed twice
        Then: Both calls return the same ids in the same order
        """
        first = [task.task_id for task in critical_path(project)]
        second = [task.task_id for task in critical_path(project)]

        assert first == second == ["A", "C", "D"]

    @pytest.mark.parametrize("new_end", ["2023-12-25", "2024-01-03", "2024-01-06", "2024-01-20"])
    def test_delay_days_never_negative(self, project, new_end):
        """
        Contract Test: delay propagation never reports negative slips.

        Given: A delayed (or early) end date for A
        When: Dependency delays are computed
        Then: No affected task reports delay_days below zero
        """
        report = notify_dependency_delays("A", new_end, project)

        assert [a.task.task_id for a in report.affected_tasks] != []
        assert all(item.delay_days >= 0 for item in report.affected_tasks)
