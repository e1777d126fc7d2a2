"""Temporal, status and tag filters over tasks."""

import re
from collections.abc import Iterable
from datetime import datetime, timedelta

from .models import Task, TaskStatus

PLANNABLE_STATUSES: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.BLOCKED,
)

_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")


def plannable_statuses(include_blocked: bool = True) -> tuple[TaskStatus, ...]:
    """Statuses of tasks that can still be worked on."""
    if include_blocked:
        return PLANNABLE_STATUSES
    return tuple(s for s in PLANNABLE_STATUSES if s != TaskStatus.BLOCKED)


def due_soon_window(now: datetime, days_ahead: int) -> tuple[datetime, datetime]:
    """Return the inclusive [now, now + days_ahead] window."""
    return now, now + timedelta(days=days_ahead)


def is_overdue(task: Task, now: datetime) -> bool:
    """True if the task has a due time strictly before now."""
    return task.due_time is not None and task.due_time < now


def is_due_soon(task: Task, now: datetime, days_ahead: int) -> bool:
    """True if the task is due within [now, now + days_ahead], both ends included."""
    if task.due_time is None:
        return False
    start, end = due_soon_window(now, days_ahead)
    return start <= task.due_time <= end


def filter_overdue(tasks: Iterable[Task], now: datetime) -> list[Task]:
    return [task for task in tasks if is_overdue(task, now)]


def filter_due_soon(tasks: Iterable[Task], now: datetime, days_ahead: int) -> list[Task]:
    return [task for task in tasks if is_due_soon(task, now, days_ahead)]


def filter_by_status(
    tasks: Iterable[Task], statuses: Iterable[TaskStatus]
) -> list[Task]:
    wanted = set(statuses)
    return [task for task in tasks if task.status in wanted]


def filter_by_tag(tasks: Iterable[Task], tag: str) -> list[Task]:
    return [task for task in tasks if tag in task.tags]


def parse_duration_hours(duration: str | None) -> float:
    """
    Convert an ISO 8601 duration of the form PT[n]H[n]M to hours.

    Missing or unparseable durations count as zero.

    Example:
        parse_duration_hours("PT2H30M") -> 2.5
    """
    if not duration:
        return 0.0
    match = _DURATION_PATTERN.match(duration)
    if not match:
        return 0.0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return hours + minutes / 60
