"""Read-only view over a project's task snapshot."""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .errors import TaskNotFoundError
from .models import Task

logger = logging.getLogger("schedkit.graph")


class TaskGraph:
    """Index of tasks by id with forward and reverse dependency lookups.

    Insertion order of the supplied tasks is preserved everywhere, which
    keeps every traversal deterministic for a given input ordering.
    """

    def __init__(self, tasks: Iterable[Task]):
        self._tasks: Dict[str, Task] = {}
        for task in tasks:
            if task.task_id in self._tasks:
                logger.debug("Duplicate task id %s in snapshot; keeping the last one", task.task_id)
            self._tasks[task.task_id] = task

        self._dependents: Dict[str, List[str]] = {task_id: [] for task_id in self._tasks}
        for task in self._tasks.values():
            for dep_id in _unique(task.depends_on_task_ids):
                self._dependents.setdefault(dep_id, []).append(task.task_id)

    @classmethod
    def of(cls, tasks: Union["TaskGraph", Iterable[Task]]) -> "TaskGraph":
        if isinstance(tasks, TaskGraph):
            return tasks
        return cls(tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def tasks(self) -> List[Task]:
        return list(self._tasks.values())

    def incomplete(self) -> List[Task]:
        return [task for task in self._tasks.values() if not task.is_completed]

    def dependencies_of(self, task: Task) -> List[Task]:
        """Direct dependency tasks; ids missing from the snapshot are skipped."""
        found = []
        for dep_id in _unique(task.depends_on_task_ids):
            dep = self._tasks.get(dep_id)
            if dep is None:
                logger.debug("Task %s depends on unknown task %s", task.task_id, dep_id)
                continue
            found.append(dep)
        return found

    def dependents_of(self, task_id: str) -> List[Task]:
        """Tasks that list ``task_id`` directly in their dependencies."""
        return [self._tasks[dependent_id] for dependent_id in self._dependents.get(task_id, [])]

    def all_dependents_of(self, task_id: str) -> List[Task]:
        """Every task depending on ``task_id`` at any depth, in BFS order."""
        result: List[Task] = []
        visited = {task_id}
        queue = deque([task_id])

        while queue:
            current_id = queue.popleft()
            for dependent in self.dependents_of(current_id):
                if dependent.task_id in visited:
                    continue
                visited.add(dependent.task_id)
                result.append(dependent)
                queue.append(dependent.task_id)

        return result


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered
