"""schedkit: task dependency and scheduling engine."""

from .analysis import (
    critical_path,
    critical_path_days,
    find_bottlenecks,
    notify_dependency_delays,
    suggest_schedule_changes,
)
from .dates import (
    bottleneck_task,
    effective_dates,
    filter_overdue_tasks,
    filter_tasks_due_soon,
    is_task_blocked,
    is_task_overdue,
)
from .errors import InvalidDateCombination, SchedulingError, TaskNotFoundError
from .graph import TaskGraph
from .models import (
    DateMode,
    DateReconciliation,
    EffectiveDates,
    Task,
    ValidationIssue,
    ValidationResult,
)
from .planner import SchedulePlanner, load_tasks_file
from .reconcile import recalculate_dates
from .validation import (
    check_deadline_overdue,
    validate_dependencies,
    validate_task,
    validate_task_date_fields,
)

__all__ = [
    "Task",
    "TaskGraph",
    "EffectiveDates",
    "DateMode",
    "DateReconciliation",
    "ValidationIssue",
    "ValidationResult",
    "SchedulingError",
    "TaskNotFoundError",
    "InvalidDateCombination",
    "validate_dependencies",
    "validate_task",
    "validate_task_date_fields",
    "check_deadline_overdue",
    "effective_dates",
    "bottleneck_task",
    "is_task_blocked",
    "is_task_overdue",
    "filter_overdue_tasks",
    "filter_tasks_due_soon",
    "recalculate_dates",
    "critical_path",
    "critical_path_days",
    "find_bottlenecks",
    "notify_dependency_delays",
    "suggest_schedule_changes",
    "SchedulePlanner",
    "load_tasks_file",
]
