"""Validation of proposed task mutations.

Every function here is pure: it inspects a snapshot and reports fatal
errors and advisories without touching the tasks. Callers must refuse to
persist a mutation whose result is not ``valid`` and surface the messages
unmodified.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional, Sequence, Union

from .errors import (
    CIRCULAR_DEPENDENCY,
    DEADLINE_OVERDUE_WARNING,
    DEPENDS_ON_COMPLETED_TASK,
    DERIVED_DUE_DATE_WARNING,
    INVALID_DATE_COMBINATION,
    SELF_DEPENDENCY,
    UNKNOWN_DEPENDENCY,
)
from .graph import TaskGraph
from .models import Task, ValidationIssue, ValidationResult, days_between, parse_date

logger = logging.getLogger("schedkit.validation")

TaskSnapshot = Union[TaskGraph, Sequence[Task]]


def has_circular_dependency(task_id: str, new_dependency_id: str, all_tasks: TaskSnapshot) -> bool:
    """Return True if ``task_id -> new_dependency_id`` would close a cycle.

    Walks existing dependency edges forward from ``new_dependency_id``
    looking for ``task_id``. The visited set bounds the walk on graphs
    that already contain cycles.
    """
    if task_id == new_dependency_id:
        return True

    graph = TaskGraph.of(all_tasks)
    visited = set()
    stack = [new_dependency_id]

    while stack:
        current_id = stack.pop()
        if current_id == task_id:
            return True
        if current_id in visited:
            continue
        visited.add(current_id)

        current = graph.get(current_id)
        if current is not None:
            stack.extend(current.depends_on_task_ids)

    return False


def validate_dependencies(
    candidate_task_id: Optional[str],
    proposed_depends_on_ids: Iterable[str],
    all_tasks: TaskSnapshot,
) -> ValidationResult:
    """Check a proposed dependency set for a task.

    ``candidate_task_id`` may be ``None`` for a task that does not exist
    yet; such a task cannot close a cycle, so only existence and
    completion are checked.
    """
    result = ValidationResult()
    graph = TaskGraph.of(all_tasks)

    proposed = []
    for dep_id in proposed_depends_on_ids or []:
        if dep_id not in proposed:
            proposed.append(dep_id)

    if not proposed:
        return result

    if candidate_task_id is not None and candidate_task_id in proposed:
        result.errors.append(
            ValidationIssue(
                SELF_DEPENDENCY,
                "A task cannot depend on itself.",
                candidate_task_id,
            )
        )
        proposed = [dep_id for dep_id in proposed if dep_id != candidate_task_id]

    for dep_id in proposed:
        dep_task = graph.get(dep_id)
        if dep_task is None:
            result.errors.append(
                ValidationIssue(
                    UNKNOWN_DEPENDENCY,
                    f"Dependency task (ID: {dep_id}) was not found.",
                    dep_id,
                )
            )
            continue

        if candidate_task_id is not None and has_circular_dependency(candidate_task_id, dep_id, graph):
            result.errors.append(
                ValidationIssue(
                    CIRCULAR_DEPENDENCY,
                    f"Depending on task '{dep_task.display_name}' would create a circular dependency.",
                    dep_id,
                )
            )

        if dep_task.is_completed:
            result.warnings.append(
                ValidationIssue(
                    DEPENDS_ON_COMPLETED_TASK,
                    f"Dependency task '{dep_task.display_name}' is already completed.",
                    dep_id,
                )
            )

    if result.errors:
        logger.debug(
            "Rejected dependencies for %s: %s",
            candidate_task_id,
            ", ".join(result.error_kinds()),
        )
    return result


def validate_task_date_fields(
    start_date: Any = None,
    due_date: Any = None,
    duration_days: Optional[int] = None,
    is_due_date_fixed: Optional[bool] = None,
) -> ValidationResult:
    """Validate a start/due/duration/fixed-flag combination.

    Rules:
    - duration without a start date is an error
    - a fixed due date without a due date is an error
    - a due date before the start date is an error
    - start, duration and an explicit due date together raise a warning,
      since the due date will be derived from the other two
    """
    result = ValidationResult()
    start = parse_date(start_date)
    due = parse_date(due_date)

    if duration_days is not None:
        if duration_days < 1:
            result.errors.append(
                ValidationIssue(
                    INVALID_DATE_COMBINATION,
                    f"Duration must be at least one day, got {duration_days}.",
                )
            )
        if start is None:
            result.errors.append(
                ValidationIssue(
                    INVALID_DATE_COMBINATION,
                    "A start date is required when a duration is specified.",
                )
            )

    if is_due_date_fixed and due is None:
        result.errors.append(
            ValidationIssue(
                INVALID_DATE_COMBINATION,
                "A due date is required when the due date is fixed.",
            )
        )

    if start and due and due < start:
        result.errors.append(
            ValidationIssue(
                INVALID_DATE_COMBINATION,
                "The due date must be on or after the start date.",
            )
        )

    if duration_days is not None and start and due and not is_due_date_fixed:
        result.warnings.append(
            ValidationIssue(
                DERIVED_DUE_DATE_WARNING,
                "Start date and duration are both set; the given due date is ignored and derived instead.",
            )
        )

    return result


def validate_task(
    task_id: Optional[str] = None,
    start_date: Any = None,
    due_date: Any = None,
    duration_days: Optional[int] = None,
    is_due_date_fixed: Optional[bool] = None,
    depends_on_task_ids: Optional[Iterable[str]] = None,
    all_tasks: Optional[TaskSnapshot] = None,
) -> ValidationResult:
    """Run date-field and dependency validation for a create/update."""
    result = validate_task_date_fields(start_date, due_date, duration_days, is_due_date_fixed)
    if depends_on_task_ids is not None and all_tasks is not None:
        result.extend(validate_dependencies(task_id, depends_on_task_ids, all_tasks))
    return result


def check_deadline_overdue(predicted_end: date, fixed_due_date: date) -> Optional[str]:
    """Advisory text when a predicted end overruns a fixed due date."""
    if predicted_end > fixed_due_date:
        days_over = days_between(predicted_end, fixed_due_date)
        return (
            f"Dependencies push the predicted end {days_over} day(s) past the fixed due date. "
            "Consider extending the due date or shortening the duration."
        )
    return None


def deadline_overdue_issue(task: Task, predicted_end: date) -> Optional[ValidationIssue]:
    if task.due_date is None:
        return None
    message = check_deadline_overdue(predicted_end, task.due_date)
    if message is None:
        return None
    return ValidationIssue(DEADLINE_OVERDUE_WARNING, message, task.task_id)
