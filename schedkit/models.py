"""Data models for the schedkit scheduling engine.

This module contains the value types shared by every engine component:
tasks as supplied by the external store, computed effective dates,
validation outcomes and the results of the planning analyses.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from .errors import FATAL_KINDS


PRIORITY_ORDER: Dict[str, int] = {
    "high": 0,
    "medium": 1,
    "low": 2,
}


# ----------------------------------------------------------------------
# Date helpers
# ----------------------------------------------------------------------

def parse_date(value: Any) -> Optional[date]:
    """Coerce an ISO-8601 string, date or datetime into a date.

    Time-of-day components are dropped; ``None`` and empty strings map to
    ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text or text.lower() == "null":
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError as exc:
            raise ValueError(f"Invalid ISO-8601 date: {value!r}") from exc
    raise TypeError(f"Cannot interpret {type(value).__name__} as a date")


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def days_between(later: date, earlier: date) -> int:
    """Whole days from ``earlier`` to ``later`` (negative if reversed)."""
    return (later - earlier).days


def inclusive_end(start: date, duration_days: int) -> date:
    """End date of a task spanning ``duration_days`` starting on ``start``.

    A one-day task starts and ends on the same date.
    """
    return add_days(start, duration_days - 1)


def inclusive_duration(start: date, end: date) -> int:
    return days_between(end, start) + 1


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


# ----------------------------------------------------------------------
# Tasks
# ----------------------------------------------------------------------

@dataclass(slots=True)
class Task:
    """A task as held by the external store.

    The engine treats every task as an immutable value for the duration of
    a computation; nothing in schedkit mutates a task it was given.
    """

    task_id: str
    title: str = ""
    depends_on_task_ids: List[str] = field(default_factory=list)
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    duration_days: Optional[int] = None
    is_due_date_fixed: bool = False
    is_completed: bool = False
    completed_at: Optional[date] = None
    priority: Optional[str] = None  # 'high', 'medium', 'low'
    assignee_ids: List[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.title or self.task_id

    @property
    def priority_rank(self) -> int:
        """Sort key for priority; tasks without one sort last."""
        if self.priority is None:
            return len(PRIORITY_ORDER)
        return PRIORITY_ORDER.get(self.priority, len(PRIORITY_ORDER))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "title": self.title,
            "depends_on_task_ids": list(self.depends_on_task_ids),
            "start_date": format_date(self.start_date),
            "due_date": format_date(self.due_date),
            "duration_days": self.duration_days,
            "is_due_date_fixed": self.is_due_date_fixed,
            "is_completed": self.is_completed,
            "completed_at": format_date(self.completed_at),
            "priority": self.priority,
            "assignee_ids": list(self.assignee_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from dictionary representation.

        Accepts the snake_case keys produced by ``to_dict`` as well as the
        camelCase keys used by the document store.
        """
        task_id = _pick(data, "task_id", "id", "taskId")
        if not task_id:
            raise ValueError("Task data requires a 'task_id'")
        duration = _pick(data, "duration_days", "durationDays")
        return cls(
            task_id=str(task_id),
            title=_pick(data, "title", default="") or "",
            depends_on_task_ids=[
                str(dep) for dep in (_pick(data, "depends_on_task_ids", "dependsOnTaskIds") or [])
            ],
            start_date=parse_date(_pick(data, "start_date", "startDate")),
            due_date=parse_date(_pick(data, "due_date", "dueDate")),
            duration_days=int(duration) if duration is not None else None,
            is_due_date_fixed=bool(_pick(data, "is_due_date_fixed", "isDueDateFixed", default=False)),
            is_completed=bool(_pick(data, "is_completed", "isCompleted", default=False)),
            completed_at=parse_date(_pick(data, "completed_at", "completedAt")),
            priority=_pick(data, "priority"),
            assignee_ids=list(_pick(data, "assignee_ids", "assigneeIds") or []),
        )

    def validate(self) -> List[str]:
        """Validate task data and return any issues."""
        issues = []

        if not self.task_id:
            issues.append("Task ID is required")
        if self.task_id in self.depends_on_task_ids:
            issues.append("A task cannot depend on itself")
        if self.duration_days is not None and self.duration_days < 1:
            issues.append(f"Duration must be a positive number of days, got: {self.duration_days}")
        if self.duration_days is not None and self.start_date is None:
            issues.append("Duration requires a start date")
        if self.is_due_date_fixed and self.due_date is None:
            issues.append("A fixed due date requires a due date")
        if self.start_date and self.due_date and self.due_date < self.start_date:
            issues.append("Due date must not be before the start date")
        if self.priority is not None and self.priority not in PRIORITY_ORDER:
            issues.append(f"Invalid priority: {self.priority}")

        return issues

    def summary(self) -> Dict[str, Any]:
        """Short reference used inside analysis results."""
        return {
            "id": self.task_id,
            "title": self.title,
            "duration_days": self.duration_days,
        }


# ----------------------------------------------------------------------
# Computed values
# ----------------------------------------------------------------------

@dataclass(slots=True)
class EffectiveDates:
    """Predicted schedule of a task derived from its dependency chain."""

    task_id: str
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    predicted_start: Optional[date] = None
    predicted_end: Optional[date] = None
    is_predicted: bool = False
    is_deadline_overdue: bool = False
    unresolved: bool = False
    cycle_detected: bool = False

    @property
    def earliest_end(self) -> Optional[date]:
        """Earliest date the task can be finished by.

        Falls back to the predicted start (a one-day minimum) when no end
        can be derived.
        """
        return self.predicted_end or self.predicted_start

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "start_date": format_date(self.start_date),
            "due_date": format_date(self.due_date),
            "predicted_start": format_date(self.predicted_start),
            "predicted_end": format_date(self.predicted_end),
            "is_predicted": self.is_predicted,
            "is_deadline_overdue": self.is_deadline_overdue,
            "unresolved": self.unresolved,
            "cycle_detected": self.cycle_detected,
        }


@dataclass(slots=True)
class ValidationIssue:
    """A single validation error or advisory."""

    kind: str
    message: str
    task_id: Optional[str] = None

    @property
    def is_fatal(self) -> bool:
        return self.kind in FATAL_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "task_id": self.task_id}


@dataclass(slots=True)
class ValidationResult:
    """Outcome of a validation pass: fatal errors plus advisories."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error_kinds(self) -> List[str]:
        return [issue.kind for issue in self.errors]

    def warning_kinds(self) -> List[str]:
        return [issue.kind for issue in self.warnings]

    def extend(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "valid": self.valid,
            "errors": [issue.message for issue in self.errors],
            "warnings": [issue.message for issue in self.warnings],
            "error_kinds": self.error_kinds(),
            "warning_kinds": self.warning_kinds(),
        }


class DateMode(str, enum.Enum):
    """Which of the date fields is authoritative for a task."""

    DURATION_AUTHORITATIVE = "duration_authoritative"
    DEADLINE_AUTHORITATIVE = "deadline_authoritative"

    @classmethod
    def from_flag(cls, is_due_date_fixed: bool) -> "DateMode":
        return cls.DEADLINE_AUTHORITATIVE if is_due_date_fixed else cls.DURATION_AUTHORITATIVE


@dataclass(slots=True)
class DateReconciliation:
    """Consistent start/due/duration triplet produced by reconciliation."""

    start_date: Optional[date]
    due_date: Optional[date]
    duration_days: Optional[int]
    is_due_date_fixed: bool
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def mode(self) -> DateMode:
        return DateMode.from_flag(self.is_due_date_fixed)

    def triplet(self) -> tuple:
        return (self.start_date, self.due_date, self.duration_days, self.is_due_date_fixed)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "start_date": format_date(self.start_date),
            "due_date": format_date(self.due_date),
            "duration_days": self.duration_days,
            "is_due_date_fixed": self.is_due_date_fixed,
            "mode": self.mode.value,
            "warnings": [issue.message for issue in self.warnings],
        }


# ----------------------------------------------------------------------
# Analysis results
# ----------------------------------------------------------------------

@dataclass(slots=True)
class Bottleneck:
    """A task whose schedule is holding back blocked downstream work."""

    task: Task
    dependent_count: int
    reason: str
    kind: str  # 'deadline_overdue' or 'no_due_date'

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.task.task_id,
            "title": self.task.title,
            "dependent_count": self.dependent_count,
            "reason": self.reason,
            "kind": self.kind,
        }


@dataclass(slots=True)
class AffectedTask:
    """Predicted slip of one dependent of a delayed task."""

    task: Task
    new_predicted_end: date
    delay_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.task.task_id,
            "title": self.task.title,
            "original_due_date": format_date(self.task.due_date),
            "new_predicted_end": format_date(self.new_predicted_end),
            "delay_days": self.delay_days,
            "assignee_ids": list(self.task.assignee_ids),
        }


@dataclass(slots=True)
class DelayReport:
    """Downstream impact of moving one task's end date."""

    delayed_task: Task
    original_end_date: Optional[date]
    new_end_date: date
    delay_days: int
    affected_tasks: List[AffectedTask] = field(default_factory=list)
    critical_path_affected: bool = False

    @property
    def total_affected_count(self) -> int:
        return len(self.affected_tasks)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "delayed_task": {
                "id": self.delayed_task.task_id,
                "title": self.delayed_task.title,
                "original_end_date": format_date(self.original_end_date),
                "new_end_date": format_date(self.new_end_date),
                "delay_days": self.delay_days,
            },
            "affected_tasks": [affected.to_dict() for affected in self.affected_tasks],
            "total_affected_count": self.total_affected_count,
            "critical_path_affected": self.critical_path_affected,
        }


@dataclass(slots=True)
class ScheduleSuggestion:
    """One advisory schedule change; never applied automatically."""

    type: str
    task_id: str
    task_title: str
    reason: str
    suggested_changes: Dict[str, Any] = field(default_factory=dict)
    days_gained: int = 0
    affected_tasks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type,
            "task_id": self.task_id,
            "task_title": self.task_title,
            "reason": self.reason,
            "suggested_changes": dict(self.suggested_changes),
            "impact": {
                "days_gained": self.days_gained,
                "affected_tasks": list(self.affected_tasks),
            },
        }


@dataclass(slots=True)
class ScheduleAnalysis:
    """Combined output of the schedule suggestion generator."""

    suggestions: List[ScheduleSuggestion]
    critical_path: List[Task]
    total_critical_path_days: int
    bottleneck_tasks: List[Bottleneck]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "suggestions": [suggestion.to_dict() for suggestion in self.suggestions],
            "critical_path": [task.summary() for task in self.critical_path],
            "total_critical_path_days": self.total_critical_path_days,
            "bottleneck_tasks": [bottleneck.to_dict() for bottleneck in self.bottleneck_tasks],
        }
