"""Planning analyses built on top of effective dates.

- ``critical_path``: longest duration-weighted chain of incomplete tasks.
- ``find_bottlenecks``: tasks whose schedule holds back blocked work.
- ``notify_dependency_delays``: downstream slip caused by a moved end date.
- ``suggest_schedule_changes``: advisory changes composed from the above.

All functions are deterministic for a fixed input ordering and never
mutate the tasks they are given.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from .dates import bottleneck_task, effective_dates, is_task_blocked
from .errors import SchedulingError
from .graph import TaskGraph
from .models import (
    AffectedTask,
    Bottleneck,
    DelayReport,
    ScheduleAnalysis,
    ScheduleSuggestion,
    Task,
    add_days,
    days_between,
    format_date,
    parse_date,
)

logger = logging.getLogger("schedkit.analysis")

TaskSnapshot = Union[TaskGraph, Sequence[Task]]

DEFAULT_BOTTLENECK_LIMIT = 5
REDUCE_SCOPE_MIN_DAYS = 3
SPLIT_MIN_DAYS = 5
REDUCE_SCOPE_FACTOR = 0.7

_Chain = Tuple[int, Tuple[Task, ...]]


# ----------------------------------------------------------------------
# Critical path
# ----------------------------------------------------------------------

def task_weight(task: Task) -> int:
    """Duration used for path weighting; tasks without one count as a day."""
    return task.duration_days or 1


def critical_path(all_tasks: TaskSnapshot) -> List[Task]:
    """Longest duration-weighted chain of incomplete tasks, start to end.

    Every leaf (an incomplete task no other incomplete task depends on) is
    walked backwards through its incomplete dependencies. On equal totals
    the chain discovered first wins.
    """
    graph = TaskGraph.of(all_tasks)
    incomplete = graph.incomplete()

    depended_on: Set[str] = set()
    for task in incomplete:
        for dep in graph.dependencies_of(task):
            if not dep.is_completed:
                depended_on.add(dep.task_id)
    leaves = [task for task in incomplete if task.task_id not in depended_on]

    memo: Dict[str, _Chain] = {}
    best_total = 0
    best_chain: Tuple[Task, ...] = ()
    for leaf in leaves:
        total, chain = _longest_chain(leaf, graph, set(), memo)
        if total > best_total:
            best_total, best_chain = total, chain

    return list(best_chain)


def _longest_chain(task: Task, graph: TaskGraph, visiting: Set[str], memo: Dict[str, _Chain]) -> _Chain:
    cached = memo.get(task.task_id)
    if cached is not None:
        return cached

    visiting.add(task.task_id)
    best_total = 0
    best_chain: Tuple[Task, ...] = ()
    for dep in graph.dependencies_of(task):
        if dep.is_completed:
            continue
        if dep.task_id in visiting:
            logger.debug("Cycle through %s cut while tracing critical path", dep.task_id)
            continue
        total, chain = _longest_chain(dep, graph, visiting, memo)
        if total > best_total:
            best_total, best_chain = total, chain
    visiting.discard(task.task_id)

    result = (best_total + task_weight(task), best_chain + (task,))
    memo[task.task_id] = result
    return result


def critical_path_days(path: Sequence[Task]) -> int:
    return sum(task_weight(task) for task in path)


# ----------------------------------------------------------------------
# Bottlenecks
# ----------------------------------------------------------------------

def find_bottlenecks(all_tasks: TaskSnapshot, limit: int = DEFAULT_BOTTLENECK_LIMIT) -> List[Bottleneck]:
    """Rank incomplete tasks that are holding back blocked dependents.

    A task qualifies when at least one transitive dependent is blocked and
    either its fixed deadline is predicted to be overrun or it has no due
    date at all. Results are ordered by transitive dependent count, with
    priority and input order breaking ties.
    """
    graph = TaskGraph.of(all_tasks)
    found: List[Bottleneck] = []

    for task in graph:
        if task.is_completed:
            continue

        dependents = graph.all_dependents_of(task.task_id)
        if not any(is_task_blocked(dependent, graph) for dependent in dependents):
            continue

        if effective_dates(task, graph).is_deadline_overdue:
            found.append(
                Bottleneck(
                    task=task,
                    dependent_count=len(dependents),
                    reason="Predicted to overrun its fixed due date, delaying the start of dependent tasks.",
                    kind="deadline_overdue",
                )
            )
        elif task.due_date is None:
            found.append(
                Bottleneck(
                    task=task,
                    dependent_count=len(dependents),
                    reason="Has no due date, so the schedule of dependent tasks is indeterminate.",
                    kind="no_due_date",
                )
            )

    found.sort(key=lambda b: (-b.dependent_count, b.task.priority_rank))
    return found[:limit]


# ----------------------------------------------------------------------
# Delay propagation
# ----------------------------------------------------------------------

def notify_dependency_delays(
    task_id: str,
    new_end_date: Optional[Union[date, str]],
    all_tasks: TaskSnapshot,
) -> DelayReport:
    """Predict how moving ``task_id``'s end date slips its dependents.

    Without ``new_end_date`` the task's current due date is reused (a zero
    delay). A delay only ever pushes dependents later.
    """
    graph = TaskGraph.of(all_tasks)
    delayed = graph.require(task_id)

    new_end = parse_date(new_end_date) or delayed.due_date
    if new_end is None:
        raise SchedulingError(
            f"No new end date was given and task '{delayed.display_name}' has no due date."
        )

    delay = days_between(new_end, delayed.due_date) if delayed.due_date else 0
    shift = max(0, delay)

    affected: List[AffectedTask] = []
    for dependent in graph.all_dependents_of(task_id):
        original_end = effective_dates(dependent, graph).predicted_end
        if original_end is not None:
            new_predicted_end = add_days(original_end, shift)
        else:
            new_predicted_end = add_days(new_end, dependent.duration_days or 1)

        delay_days = 0
        if dependent.due_date is not None:
            delay_days = max(0, days_between(new_predicted_end, dependent.due_date))

        affected.append(AffectedTask(dependent, new_predicted_end, delay_days))

    affected.sort(key=lambda item: -item.delay_days)

    path_ids = {task.task_id for task in critical_path(graph)}
    critical_path_affected = any(item.task.task_id in path_ids for item in affected)

    logger.debug(
        "Delay of %s by %d day(s) affects %d task(s)", task_id, delay, len(affected)
    )
    return DelayReport(
        delayed_task=delayed,
        original_end_date=delayed.due_date,
        new_end_date=new_end,
        delay_days=delay,
        affected_tasks=affected,
        critical_path_affected=critical_path_affected,
    )


# ----------------------------------------------------------------------
# Suggestions
# ----------------------------------------------------------------------

def suggest_schedule_changes(
    all_tasks: TaskSnapshot,
    target_task_id: Optional[str] = None,
    deadline: Optional[Union[date, str]] = None,
) -> ScheduleAnalysis:
    """Propose schedule adjustments for bottlenecks and the critical path.

    Suggestions are advisory; ``remove_dependency`` in particular is a
    heuristic and may name a dependency that is semantically required.
    """
    graph = TaskGraph.of(all_tasks)
    deadline_date = parse_date(deadline)

    path = critical_path(graph)
    bottlenecks = find_bottlenecks(graph)

    relevant_ids: Optional[Set[str]] = None
    if target_task_id:
        target = graph.require(target_task_id)
        relevant_ids = {target.task_id}
        relevant_ids.update(dep.task_id for dep in graph.dependencies_of(target))
        relevant_ids.update(dep.task_id for dep in graph.all_dependents_of(target.task_id))

    suggestions: List[ScheduleSuggestion] = []
    for bottleneck in bottlenecks:
        task = bottleneck.task
        if relevant_ids is not None and task.task_id not in relevant_ids:
            continue
        suggestions.extend(_bottleneck_suggestions(task, graph))

    if deadline_date is not None:
        for task in path:
            suggestion = _reschedule_suggestion(task, graph, deadline_date)
            if suggestion is not None:
                suggestions.append(suggestion)

    return ScheduleAnalysis(
        suggestions=suggestions,
        critical_path=path,
        total_critical_path_days=critical_path_days(path),
        bottleneck_tasks=bottlenecks,
    )


def _dependent_titles(task: Task, graph: TaskGraph) -> List[str]:
    return [dependent.display_name for dependent in graph.all_dependents_of(task.task_id)]


def _bottleneck_suggestions(task: Task, graph: TaskGraph) -> List[ScheduleSuggestion]:
    suggestions = []
    affected = _dependent_titles(task, graph)
    duration = task.duration_days

    if duration and duration > REDUCE_SCOPE_MIN_DAYS:
        reduced = math.ceil(duration * REDUCE_SCOPE_FACTOR)
        suggestions.append(
            ScheduleSuggestion(
                type="reduce_scope",
                task_id=task.task_id,
                task_title=task.title,
                reason=f"A duration of {duration} days makes this task a bottleneck.",
                suggested_changes={"new_duration": reduced},
                days_gained=duration - reduced,
                affected_tasks=affected,
            )
        )

    if duration and duration > SPLIT_MIN_DAYS:
        suggestions.append(
            ScheduleSuggestion(
                type="split",
                task_id=task.task_id,
                task_title=task.title,
                reason=f"Splitting this {duration}-day task allows parts of it to proceed in parallel.",
                suggested_changes={"split_into": math.ceil(duration / 2)},
                days_gained=duration // 2,
                affected_tasks=affected,
            )
        )

    blocking = [dep for dep in graph.dependencies_of(task) if not dep.is_completed]
    if len(blocking) > 1:
        gate = bottleneck_task(task, graph)
        if gate is not None:
            others = [dep for dep in blocking if dep.task_id != gate.task_id]
            if others:
                suggestions.append(
                    ScheduleSuggestion(
                        type="remove_dependency",
                        task_id=task.task_id,
                        task_title=task.title,
                        reason=(
                            f"Only '{gate.display_name}' gates the start; the other dependencies "
                            "add ordering constraints and may be parallelizable."
                        ),
                        suggested_changes={
                            "remove_dependency_ids": [dep.task_id for dep in others],
                            "keep_dependency_id": gate.task_id,
                        },
                        days_gained=0,
                        affected_tasks=affected,
                    )
                )

    return suggestions


def _reschedule_suggestion(task: Task, graph: TaskGraph, deadline: date) -> Optional[ScheduleSuggestion]:
    predicted_end = effective_dates(task, graph).predicted_end
    if predicted_end is None or predicted_end <= deadline:
        return None

    days_over = days_between(predicted_end, deadline)
    changes: Dict[str, Any] = {"new_due_date": format_date(deadline), "days_over": days_over}
    if task.duration_days:
        changes["new_duration"] = max(1, task.duration_days - days_over)

    return ScheduleSuggestion(
        type="reschedule",
        task_id=task.task_id,
        task_title=task.title,
        reason=f"On the critical path and predicted to finish {days_over} day(s) after the target deadline.",
        suggested_changes=changes,
        days_gained=days_over,
        affected_tasks=_dependent_titles(task, graph),
    )
