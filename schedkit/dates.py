"""Effective date calculation over dependency chains.

A task's predicted start is the day after its latest-finishing
dependency. Completed dependencies contribute their recorded completion
date (or due date) as a fixed end and are not traversed further.
Dependencies whose end cannot be resolved make the dependent's start
unknown; nothing here ever substitutes "today" for a missing date.

Recursion threads an explicit ``visiting`` set so malformed cyclic
snapshots terminate with ``cycle_detected`` set instead of raising.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Union

from .graph import TaskGraph
from .models import EffectiveDates, Task, add_days, inclusive_end

logger = logging.getLogger("schedkit.dates")

TaskSnapshot = Union[TaskGraph, Sequence[Task]]

_Memo = Dict[str, EffectiveDates]


def effective_dates(task: Task, all_tasks: TaskSnapshot) -> EffectiveDates:
    """Compute the predicted start/end of ``task`` from its dependency chain."""
    graph = TaskGraph.of(all_tasks)
    return _effective_dates(task, graph, set(), {})


def _effective_dates(task: Task, graph: TaskGraph, visiting: Set[str], memo: _Memo) -> EffectiveDates:
    cached = memo.get(task.task_id)
    if cached is not None:
        return cached

    result = EffectiveDates(
        task_id=task.task_id,
        start_date=task.start_date,
        due_date=task.due_date,
    )
    dependencies = graph.dependencies_of(task)

    if not dependencies:
        result.predicted_start = task.start_date
    else:
        visiting.add(task.task_id)
        latest_end: Optional[date] = None
        for dep in dependencies:
            end = _dependency_end(dep, graph, visiting, memo, result)
            if end is None:
                continue
            if latest_end is None or end > latest_end:
                latest_end = end
        visiting.discard(task.task_id)

        if result.unresolved:
            result.predicted_start = None
        elif latest_end is None:
            # only completed dependencies without recorded dates
            result.predicted_start = task.start_date
        else:
            predicted_start = add_days(latest_end, 1)
            if task.start_date and task.start_date > predicted_start:
                predicted_start = task.start_date
            result.predicted_start = predicted_start

    derived_end = None
    if result.predicted_start and task.duration_days:
        derived_end = inclusive_end(result.predicted_start, task.duration_days)
    result.predicted_end = derived_end or task.due_date

    result.is_predicted = (
        result.predicted_start != task.start_date or result.predicted_end != task.due_date
    )
    result.is_deadline_overdue = _is_deadline_overdue(task, result.predicted_start, derived_end)

    memo[task.task_id] = result
    return result


def _dependency_end(
    dep: Task,
    graph: TaskGraph,
    visiting: Set[str],
    memo: _Memo,
    result: EffectiveDates,
) -> Optional[date]:
    """End date a dependency imposes, updating ``result`` flags as a side channel."""
    if dep.is_completed:
        return dep.completed_at or dep.due_date

    if dep.task_id in visiting:
        logger.debug("Cycle detected while reading dependency %s of %s", dep.task_id, result.task_id)
        result.cycle_detected = True
        result.unresolved = True
        return None

    dep_dates = _effective_dates(dep, graph, visiting, memo)
    if dep_dates.cycle_detected:
        result.cycle_detected = True
    end = dep_dates.earliest_end
    if end is None:
        result.unresolved = True
    return end


def _is_deadline_overdue(task: Task, predicted_start: Optional[date], derived_end: Optional[date]) -> bool:
    if not task.is_due_date_fixed or task.due_date is None:
        return False
    if derived_end is not None and derived_end > task.due_date:
        return True
    return predicted_start is not None and predicted_start > task.due_date


def resolved_end(task: Task, all_tasks: TaskSnapshot) -> Optional[date]:
    """Date by which ``task`` is expected to be finished, if known."""
    if task.is_completed:
        return task.completed_at or task.due_date
    return effective_dates(task, all_tasks).earliest_end


def bottleneck_task(task: Task, all_tasks: TaskSnapshot) -> Optional[Task]:
    """The direct dependency that actually gates ``task``'s start.

    Returns the dependency with the latest resolved end; ties keep the
    first dependency in declaration order.
    Completed dependencies are only considered when every dependency is
    completed.
    """
    graph = TaskGraph.of(all_tasks)
    dependencies = graph.dependencies_of(task)
    if not dependencies:
        return None

    pending = [dep for dep in dependencies if not dep.is_completed]
    if pending:
        dependencies = pending

    memo: _Memo = {}
    latest: Optional[Task] = None
    latest_end: Optional[date] = None
    for dep in dependencies:
        if dep.is_completed:
            end = dep.completed_at or dep.due_date
        else:
            end = _effective_dates(dep, graph, {task.task_id}, memo).earliest_end
        if end is None:
            continue
        if latest_end is None or end > latest_end:
            latest, latest_end = dep, end
    return latest


def is_task_blocked(task: Task, all_tasks: TaskSnapshot) -> bool:
    """True if any direct dependency is not yet completed."""
    graph = TaskGraph.of(all_tasks)
    return any(not dep.is_completed for dep in graph.dependencies_of(task))


def is_task_overdue(task: Task, today: date) -> bool:
    if task.due_date is None or task.is_completed:
        return False
    return task.due_date < today


def filter_overdue_tasks(tasks: Sequence[Task], today: date) -> List[Task]:
    """Incomplete tasks whose due date is before ``today``."""
    return [task for task in tasks if is_task_overdue(task, today)]


def filter_tasks_due_soon(tasks: Sequence[Task], days: int, today: date) -> List[Task]:
    """Incomplete tasks due between ``today`` and ``today + days`` inclusive.

    Overdue tasks and tasks without a due date are excluded.
    """
    horizon = add_days(today, days)
    return [
        task
        for task in tasks
        if task.due_date is not None
        and not task.is_completed
        and today <= task.due_date <= horizon
    ]
