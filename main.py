"""MCP server exposing the schedkit scheduling engine as tools."""

from __future__ import annotations

import os
from datetime import date
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from schedkit import SchedulePlanner
from schedkit.models import parse_date
from schedkit.schedkit_logging import setup_logging

mcp = FastMCP("schedkit")


TASKS_FILE_ENV = "SCHEDKIT_TASKS_FILE"


def _resolve_tasks_file(tasks_file: Optional[str]) -> str:
    if tasks_file:
        return tasks_file

    env_file = os.getenv(TASKS_FILE_ENV)
    if env_file:
        return env_file

    raise ValueError(
        "No task snapshot available. Pass the project's tasks in the 'tasks' argument, "
        f"provide 'tasks_file', or set the {TASKS_FILE_ENV} environment variable."
    )


def _planner(tasks: Optional[List[Dict[str, Any]]], tasks_file: Optional[str]) -> SchedulePlanner:
    if tasks is not None:
        return SchedulePlanner(tasks)
    return SchedulePlanner.from_file(_resolve_tasks_file(tasks_file))


@mcp.tool()
def validate_dependencies(
    task_id: Optional[str],
    depends_on_task_ids: List[str],
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Check a proposed dependency list before saving it.

    Fails on self-dependency, unknown task ids and circular dependencies;
    warns when a dependency is already completed. Pass task_id=None for a
    task that has not been created yet."""

    return _planner(tasks, tasks_file).validate_dependencies(task_id, depends_on_task_ids)


@mcp.tool()
def validate_task_dates(
    start_date: Optional[str] = None,
    due_date: Optional[str] = None,
    duration_days: Optional[int] = None,
    is_due_date_fixed: Optional[bool] = None,
) -> Dict[str, Any]:
    """Check a start date / due date / duration combination (ISO-8601 dates)."""

    return SchedulePlanner([]).validate_task_dates(start_date, due_date, duration_days, is_due_date_fixed)


@mcp.tool()
def get_effective_dates(
    task_id: str,
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Predict a task's start and end from its dependency chain.

    Also reports whether the task is blocked, which dependency gates it,
    and whether a fixed due date is predicted to be overrun."""

    return _planner(tasks, tasks_file).get_effective_dates(task_id)


@mcp.tool()
def recalculate_dates(
    task_id: str,
    start_date: Optional[str] = None,
    due_date: Optional[str] = None,
    duration_days: Optional[int] = None,
    is_due_date_fixed: Optional[bool] = None,
    clear_duration: bool = False,
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Reconcile an edit to a task's start date, due date, duration or fixed-deadline flag.

    Setting due_date fixes the deadline; setting duration_days makes the
    duration authoritative and derives the due date. Pass "" or "null" to
    clear a date, and clear_duration=true to clear the duration. Nothing is
    saved: persist the returned values yourself."""

    changes: Dict[str, Any] = {}
    if start_date is not None:
        changes["start_date"] = start_date
    if due_date is not None:
        changes["due_date"] = due_date
    if clear_duration:
        changes["duration_days"] = None
    elif duration_days is not None:
        changes["duration_days"] = duration_days
    if is_due_date_fixed is not None:
        changes["is_due_date_fixed"] = is_due_date_fixed

    return _planner(tasks, tasks_file).recalculate_dates(task_id, changes)


@mcp.tool()
def get_critical_path(
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Return the longest duration-weighted chain of incomplete tasks."""

    return _planner(tasks, tasks_file).get_critical_path()


@mcp.tool()
def find_bottlenecks(
    limit: int = 5,
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """List tasks holding back blocked work because they overrun a fixed deadline or have no due date."""

    return _planner(tasks, tasks_file).find_bottlenecks(limit=limit)


@mcp.tool()
def notify_dependency_delays(
    task_id: str,
    new_end_date: Optional[str] = None,
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Analyze how a task's delay affects every task that depends on it.

    new_end_date is ISO-8601; when omitted the task's current due date is used."""

    return _planner(tasks, tasks_file).notify_dependency_delays(task_id, new_end_date)


@mcp.tool()
def suggest_schedule_changes(
    target_task_id: Optional[str] = None,
    deadline: Optional[str] = None,
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Suggest schedule adjustments (reduce scope, split, drop a dependency, reschedule).

    Identifies the critical path and bottleneck tasks. With a deadline
    (ISO-8601), critical-path tasks finishing after it get reschedule
    suggestions. Suggestions are advisory and never applied automatically."""

    return _planner(tasks, tasks_file).suggest_schedule_changes(target_task_id, deadline)


@mcp.tool()
def get_overdue_tasks(
    today: Optional[str] = None,
    due_soon_days: int = 0,
    tasks: Optional[List[Dict[str, Any]]] = None,
    tasks_file: Optional[str] = None,
) -> Dict[str, Any]:
    """List incomplete tasks past their due date, plus those due within due_soon_days.

    today defaults to the server's current date."""

    current = parse_date(today) or date.today()
    return _planner(tasks, tasks_file).get_overdue_tasks(current, due_soon_days=due_soon_days)


@mcp.resource("schedkit://critical-path")
def resource_critical_path() -> str:
    """Critical path of the default task snapshot."""

    try:
        planner = SchedulePlanner.from_file(_resolve_tasks_file(None))
    except ValueError as e:
        return str(e)

    result = planner.get_critical_path()
    if not result["critical_path"]:
        return "No incomplete tasks to schedule."

    lines = [f"Critical Path ({result['total_critical_path_days']} days)"]
    for item in result["critical_path"]:
        days = item["duration_days"] or 1
        lines.append(f"- {item['id']}: {item['title']} ({days}d)")
    return "\n".join(lines)


if __name__ == "__main__":
    setup_logging()
    mcp.run(transport="stdio")
