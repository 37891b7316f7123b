"""Tool-facing service over the scheduling engine.

``SchedulePlanner`` holds one task snapshot and exposes every engine
operation as a method returning a JSON-ready dictionary. Fatal validation
errors are reported with their messages unmodified; advisories travel as
``warnings``. Caller errors (unknown task ids, bad dates) become
``error`` responses instead of exceptions.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .analysis import (
    DEFAULT_BOTTLENECK_LIMIT,
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
)
from .errors import SchedulingError, TaskNotFoundError
from .graph import TaskGraph
from .models import Task, days_between, format_date, parse_date
from .reconcile import recalculate_dates
from .schedkit_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    log_schedule_event,
)
from .validation import deadline_overdue_issue, validate_dependencies, validate_task_date_fields

logger = logging.getLogger("schedkit.planner")

TaskInput = Union[Task, Mapping[str, Any]]


def tasks_from_payload(payload: Iterable[TaskInput]) -> List[Task]:
    """Build tasks from dictionaries (or pass existing tasks through)."""
    return [item if isinstance(item, Task) else Task.from_dict(item) for item in payload]


def load_tasks_file(path: Union[str, Path]) -> List[Task]:
    """Load a task snapshot from a JSON file.

    The file holds either a list of task objects or an object with a
    ``tasks`` list.
    """
    tasks_path = Path(path).expanduser()
    if not tasks_path.exists():
        raise ValueError(f"Task snapshot '{tasks_path}' does not exist.")

    try:
        data = json.loads(tasks_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Task snapshot '{tasks_path}' is not valid JSON: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("tasks", [])
    if not isinstance(data, list):
        raise ValueError(f"Task snapshot '{tasks_path}' must contain a list of tasks.")
    return tasks_from_payload(data)


class SchedulePlanner:
    """Runs scheduling operations against one project snapshot."""

    def __init__(self, tasks: Iterable[TaskInput]):
        self.graph = TaskGraph(tasks_from_payload(tasks))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SchedulePlanner":
        return cls(load_tasks_file(path))

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @log_performance("validate_dependencies")
    def validate_dependencies(
        self,
        task_id: Optional[str],
        depends_on_task_ids: List[str],
    ) -> Dict[str, Any]:
        """Validate a proposed dependency set before it is persisted."""
        with log_operation("validate_dependencies", task_id=task_id, count=len(depends_on_task_ids)):
            result = validate_dependencies(task_id, depends_on_task_ids, self.graph)

        if not result.valid:
            log_schedule_event(
                "dependency_rejected",
                task_id=task_id,
                kinds=result.error_kinds(),
            )

        response = result.to_dict()
        response["task_id"] = task_id
        response["depends_on_task_ids"] = list(depends_on_task_ids)
        response["message"] = (
            "Dependencies are valid" if result.valid
            else f"Dependencies rejected with {len(result.errors)} error(s)"
        )
        return response

    def validate_task_dates(
        self,
        start_date: Optional[str] = None,
        due_date: Optional[str] = None,
        duration_days: Optional[int] = None,
        is_due_date_fixed: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Validate a start/due/duration combination."""
        try:
            result = validate_task_date_fields(start_date, due_date, duration_days, is_due_date_fixed)
        except ValueError as e:
            return self._error_response("validate_task_dates", e, "Dates must be ISO-8601 (YYYY-MM-DD)")

        response = result.to_dict()
        response["message"] = "Dates are consistent" if result.valid else "Date combination rejected"
        return response

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    @log_performance("get_effective_dates")
    def get_effective_dates(self, task_id: str) -> Dict[str, Any]:
        """Predicted dates plus blocked/bottleneck annotations for one task."""
        try:
            task = self.graph.require(task_id)
        except TaskNotFoundError as e:
            return self._error_response("get_effective_dates", e, "Check the task id against the snapshot")

        dates = effective_dates(task, self.graph)
        gate = bottleneck_task(task, self.graph)

        warnings = []
        if dates.is_deadline_overdue:
            overrun = max(d for d in (dates.predicted_start, dates.predicted_end) if d)
            issue = deadline_overdue_issue(task, overrun)
            if issue is not None:
                warnings.append(issue.message)
            log_schedule_event("deadline_overdue", task_id=task_id, due_date=format_date(task.due_date))

        response = dates.to_dict()
        response.update(
            {
                "is_blocked": is_task_blocked(task, self.graph),
                "bottleneck_task": gate.summary() if gate else None,
                "warnings": warnings,
            }
        )
        return response

    @log_performance("recalculate_dates")
    def recalculate_dates(self, task_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Reconcile a partial date edit against the stored task."""
        try:
            task = self.graph.require(task_id)
        except TaskNotFoundError as e:
            return self._error_response("recalculate_dates", e, "Check the task id against the snapshot")

        try:
            with log_operation("recalculate_dates", task_id=task_id, fields=sorted(changes)):
                result = recalculate_dates(task, changes, self.graph)
        except SchedulingError as e:
            return self._error_response(
                "recalculate_dates",
                e,
                "A duration needs a start date, a fixed due date needs a due date, "
                "and the due date must not precede the start date",
            )
        except ValueError as e:
            return self._error_response("recalculate_dates", e, "Dates must be ISO-8601 (YYYY-MM-DD)")

        response = result.to_dict()
        response["task_id"] = task_id
        response["updated"] = [
            name
            for name, before, after in (
                ("start_date", task.start_date, result.start_date),
                ("due_date", task.due_date, result.due_date),
                ("duration_days", task.duration_days, result.duration_days),
                ("is_due_date_fixed", task.is_due_date_fixed, result.is_due_date_fixed),
            )
            if before != after
        ]
        response["message"] = f"Recalculated dates for task {task_id}"
        return response

    def get_overdue_tasks(self, today: date, due_soon_days: int = 0) -> Dict[str, Any]:
        """Overdue tasks and, optionally, those due within ``due_soon_days``."""
        tasks = self.graph.tasks()
        overdue = filter_overdue_tasks(tasks, today)
        due_soon = filter_tasks_due_soon(tasks, due_soon_days, today) if due_soon_days > 0 else []
        return {
            "today": format_date(today),
            "overdue_tasks": [
                {
                    **task.summary(),
                    "due_date": format_date(task.due_date),
                    "days_overdue": days_between(today, task.due_date),
                }
                for task in overdue
            ],
            "due_soon_tasks": [
                {**task.summary(), "due_date": format_date(task.due_date)} for task in due_soon
            ],
            "message": f"Found {len(overdue)} overdue task(s)" if overdue else "No overdue tasks",
        }

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    @log_performance("get_critical_path")
    def get_critical_path(self) -> Dict[str, Any]:
        path = critical_path(self.graph)
        return {
            "critical_path": [task.summary() for task in path],
            "total_critical_path_days": critical_path_days(path),
            "message": (
                f"Critical path spans {len(path)} task(s)" if path
                else "No incomplete tasks to schedule"
            ),
        }

    @log_performance("find_bottlenecks")
    def find_bottlenecks(self, limit: int = DEFAULT_BOTTLENECK_LIMIT) -> Dict[str, Any]:
        bottlenecks = find_bottlenecks(self.graph, limit=limit)
        return {
            "bottleneck_tasks": [bottleneck.to_dict() for bottleneck in bottlenecks],
            "count": len(bottlenecks),
            "message": f"Found {len(bottlenecks)} bottleneck task(s)" if bottlenecks else "No bottlenecks found",
        }

    @log_performance("notify_dependency_delays")
    def notify_dependency_delays(self, task_id: str, new_end_date: Optional[str] = None) -> Dict[str, Any]:
        try:
            report = notify_dependency_delays(task_id, parse_date(new_end_date), self.graph)
        except ValueError as e:
            return self._error_response(
                "notify_dependency_delays",
                e,
                "Pass an existing task id and an ISO-8601 new_end_date when the task has no due date",
            )

        if report.critical_path_affected:
            log_schedule_event(
                "critical_path_delayed",
                task_id=task_id,
                delay_days=report.delay_days,
            )

        response = report.to_dict()
        response["message"] = (
            f"Delay affects {report.total_affected_count} dependent task(s)"
            if report.affected_tasks else "No dependent tasks are affected"
        )
        return response

    @log_performance("suggest_schedule_changes")
    def suggest_schedule_changes(
        self,
        target_task_id: Optional[str] = None,
        deadline: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            analysis = suggest_schedule_changes(self.graph, target_task_id, parse_date(deadline))
        except ValueError as e:
            return self._error_response(
                "suggest_schedule_changes",
                e,
                "Pass an existing target_task_id and an ISO-8601 deadline",
            )

        response = analysis.to_dict()
        response["message"] = f"Generated {len(analysis.suggestions)} suggestion(s)"
        return response

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _error_response(self, operation: str, error: Exception, suggestion: str) -> Dict[str, Any]:
        log_error_with_context(error, {"operation": operation, "task_count": len(self.graph)})
        return {
            "error": str(error),
            "suggestion": suggestion,
            "message": f"Error: {error}",
        }
