"""Error taxonomy for the scheduling engine.

Issue kinds are plain strings so they serialize unchanged across the tool
boundary. Fatal kinds block a mutation; advisory kinds travel alongside a
successful result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .models import ValidationIssue


UNKNOWN_DEPENDENCY = "UnknownDependency"
CIRCULAR_DEPENDENCY = "CircularDependency"
SELF_DEPENDENCY = "SelfDependency"
INVALID_DATE_COMBINATION = "InvalidDateCombination"
DEPENDS_ON_COMPLETED_TASK = "DependsOnCompletedTask"
DEADLINE_OVERDUE_WARNING = "DeadlineOverdueWarning"
DERIVED_DUE_DATE_WARNING = "DerivedDueDateWarning"

FATAL_KINDS = frozenset(
    {
        UNKNOWN_DEPENDENCY,
        CIRCULAR_DEPENDENCY,
        SELF_DEPENDENCY,
        INVALID_DATE_COMBINATION,
    }
)


class SchedulingError(ValueError):
    """Base class for errors raised by the scheduling engine."""


class TaskNotFoundError(SchedulingError):
    def __init__(self, task_id: str):
        super().__init__(f"Task '{task_id}' not found")
        self.task_id = task_id


class InvalidDateCombination(SchedulingError):
    """Start/due/duration values that violate the date invariants."""

    def __init__(self, issues: List["ValidationIssue"]):
        super().__init__("\n".join(issue.message for issue in issues))
        self.issues = list(issues)
