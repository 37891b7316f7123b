"""Reconciliation of the start date / due date / duration triplet.

A task is always in one of two modes:

- ``DURATION_AUTHORITATIVE``: the duration is the truth and the due date
  is derived as ``start + duration - 1``.
- ``DEADLINE_AUTHORITATIVE``: the due date is fixed and the duration
  adapts when the start date moves.

Mode transitions happen only on explicit edits. Rules are applied in a
fixed order; see ``recalculate_dates``.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import date
from typing import Any, Mapping, Optional, Sequence, Union

from .dates import effective_dates
from .errors import InvalidDateCombination
from .graph import TaskGraph
from .models import (
    DateMode,
    DateReconciliation,
    Task,
    inclusive_duration,
    inclusive_end,
    parse_date,
)
from .validation import deadline_overdue_issue, validate_task_date_fields

logger = logging.getLogger("schedkit.reconcile")

DATE_FIELDS = ("start_date", "due_date", "duration_days", "is_due_date_fixed")


@dataclasses.dataclass
class _DateState:
    start: Optional[date]
    due: Optional[date]
    duration: Optional[int]
    mode: DateMode

    @classmethod
    def of(cls, existing: Any) -> "_DateState":
        return cls(
            start=existing.start_date,
            due=existing.due_date,
            duration=existing.duration_days,
            mode=DateMode.from_flag(bool(existing.is_due_date_fixed)),
        )

    def transition(self, mode: DateMode, reason: str) -> None:
        if mode is not self.mode:
            logger.debug("Date mode %s -> %s (%s)", self.mode.value, mode.value, reason)
            self.mode = mode


def recalculate_dates(
    existing: Any,
    changes: Optional[Mapping[str, Any]] = None,
    all_tasks: Optional[Union[TaskGraph, Sequence[Task]]] = None,
) -> DateReconciliation:
    """Apply a partial date edit and return a consistent triplet.

    ``existing`` is anything exposing ``start_date``, ``due_date``,
    ``duration_days`` and ``is_due_date_fixed`` (a ``Task`` or a previous
    ``DateReconciliation``). In ``changes`` a present key means the field
    was edited and ``None`` clears it; absent keys keep the existing value.

    Rules, in order:

    1. Overlay the supplied values on the existing ones.
    2. An explicit due date switches to deadline-authoritative mode
       (clearing it switches back), unless the flag is supplied too.
    3. An explicit duration switches to duration-authoritative mode,
       unless the flag is supplied too. Either way the due date is
       re-derived from a known start.
    4. In duration-authoritative mode an edit re-derives the due date from
       start and duration. An empty edit leaves stored dates untouched.
    5. In deadline-authoritative mode a moved start (or due) date
       recomputes the duration so the deadline stays put.

    Raises ``InvalidDateCombination`` if the result violates the date
    invariants. If ``all_tasks`` is given and the deadline is fixed, a
    dependency-driven overrun is reported in ``warnings``.
    """
    changes = dict(changes or {})
    unknown = sorted(set(changes) - set(DATE_FIELDS))
    if unknown:
        raise ValueError(f"Unknown date fields: {', '.join(unknown)}")

    state = _DateState.of(existing)

    start_supplied = "start_date" in changes
    due_supplied = "due_date" in changes
    duration_supplied = "duration_days" in changes
    flag_supplied = changes.get("is_due_date_fixed") is not None
    edited = start_supplied or due_supplied or duration_supplied or flag_supplied

    # Rule 1
    if start_supplied:
        state.start = parse_date(changes["start_date"])
    if due_supplied:
        state.due = parse_date(changes["due_date"])
    if duration_supplied:
        duration = changes["duration_days"]
        state.duration = int(duration) if duration is not None else None
    if flag_supplied:
        state.transition(DateMode.from_flag(bool(changes["is_due_date_fixed"])), "explicit flag")

    # Rule 2
    if due_supplied and not flag_supplied:
        if state.due is not None:
            state.transition(DateMode.DEADLINE_AUTHORITATIVE, "due date edited")
        else:
            state.transition(DateMode.DURATION_AUTHORITATIVE, "due date cleared")

    # Rule 3
    if duration_supplied and state.duration is not None:
        if not flag_supplied:
            state.transition(DateMode.DURATION_AUTHORITATIVE, "duration edited")
        if state.start is not None and state.duration >= 1:
            state.due = inclusive_end(state.start, state.duration)

    if state.mode is DateMode.DURATION_AUTHORITATIVE:
        # Rule 4 (covers the duration-preserving start shift); stored dates
        # are only re-derived when something was edited
        if edited and state.start is not None and state.duration is not None and state.duration >= 1:
            state.due = inclusive_end(state.start, state.duration)
    else:
        # Rule 5
        edited_anchor = start_supplied or due_supplied
        keep_explicit_duration = duration_supplied and state.duration is not None
        if (
            edited_anchor
            and not keep_explicit_duration
            and state.start is not None
            and state.due is not None
        ):
            state.duration = inclusive_duration(state.start, state.due)

    is_fixed = state.mode is DateMode.DEADLINE_AUTHORITATIVE
    check = validate_task_date_fields(state.start, state.due, state.duration, is_fixed)
    if check.errors:
        raise InvalidDateCombination(check.errors)

    result = DateReconciliation(
        start_date=state.start,
        due_date=state.due,
        duration_days=state.duration,
        is_due_date_fixed=is_fixed,
    )

    if is_fixed and all_tasks is not None and isinstance(existing, Task):
        candidate = dataclasses.replace(
            existing,
            start_date=result.start_date,
            due_date=result.due_date,
            duration_days=result.duration_days,
            is_due_date_fixed=True,
        )
        predicted = effective_dates(candidate, all_tasks)
        if predicted.is_deadline_overdue:
            overrun = max(d for d in (predicted.predicted_start, predicted.predicted_end) if d)
            issue = deadline_overdue_issue(candidate, overrun)
            if issue is not None:
                result.warnings.append(issue)

    return result
