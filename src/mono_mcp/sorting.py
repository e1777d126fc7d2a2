"""Deterministic task orderings used by the planning tools."""

from collections.abc import Iterable
from datetime import UTC, datetime

from .models import Task, TaskPriority

# Lower rank sorts first
PRIORITY_ORDER: dict[TaskPriority, int] = {
    TaskPriority.URGENT: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}

_NO_DUE = datetime.max.replace(tzinfo=UTC)


def due_key(task: Task) -> tuple[int, datetime]:
    """Sort key: due time (earliest first), tasks without one last."""
    if task.due_time is None:
        return (1, _NO_DUE)
    return (0, task.due_time)


def priority_due_key(task: Task) -> tuple[int, int, datetime]:
    """Sort key: priority (urgent first), then due_key."""
    return (PRIORITY_ORDER[task.priority], *due_key(task))


def sort_by_priority_and_due_date(tasks: Iterable[Task]) -> list[Task]:
    """
    Sort tasks by priority, then by due date.

    The sort is stable, so tasks that tie keep their merge order.

    Example:
        [low, high (due 2025-01-01), medium] -> [high, medium, low]
    """
    return sorted(tasks, key=priority_due_key)


def sort_by_due_date(tasks: Iterable[Task]) -> list[Task]:
    """Sort tasks by due date, tasks without one last."""
    return sorted(tasks, key=due_key)
