"""Data models for Mono tasks, lists and error reporting."""

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    """Task status enumeration."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """Task priority enumeration."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RecurrencePattern(str, Enum):
    """Recurrence pattern of a recurring template."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    QUARTERLY = "quarterly"
    WEEKDAYS = "weekdays"


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken as UTC. Offsets are converted, so the
    result compares as an instant regardless of how it was written.

    Args:
        value: Timestamp string (e.g. "2025-01-01T09:00:00Z")

    Returns:
        UTC datetime, or None if value is empty or unparseable
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Ignoring unparseable timestamp '{value}'")
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass(frozen=True)
class Task:
    """Read-only view of a remote Mono item."""

    id: str
    title: str
    status: TaskStatus | None
    priority: TaskPriority
    due_time: datetime | None = None
    tags: frozenset[str] = frozenset()
    estimated_duration: str | None = None
    actual_duration: str | None = None
    etag: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Task":
        """Build a task from an API item payload."""
        try:
            status = TaskStatus(data.get("status"))
        except ValueError:
            status = None

        priority = TaskPriority.MEDIUM
        if data.get("priority"):
            try:
                priority = TaskPriority(data["priority"])
            except ValueError:
                logger.warning(
                    f"Invalid priority '{data['priority']}', defaulting to medium"
                )

        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            status=status,
            priority=priority,
            due_time=parse_timestamp(data.get("due_time")),
            tags=frozenset(data.get("tags") or ()),
            estimated_duration=data.get("estimated_duration"),
            actual_duration=data.get("actual_duration"),
            etag=data.get("etag"),
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a copy of the original API payload."""
        return dict(self.raw)


@dataclass(frozen=True)
class TaskList:
    """Remote Mono list."""

    id: str
    title: str
    create_time: datetime | None = None
    total_items: int | None = None
    undone_items: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "TaskList":
        """Build a list from an API list payload."""
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            create_time=parse_timestamp(data.get("create_time")),
            total_items=data.get("total_items"),
            undone_items=data.get("undone_items"),
        )


@dataclass(frozen=True)
class FieldIssue:
    """Field-level detail of a remote validation error."""

    field: str
    issue: str


@dataclass(frozen=True)
class RequestContext:
    """Describes the call that produced an error, for resource-specific guidance."""

    operation: str
    params: dict[str, Any] = field(default_factory=dict)
    resource_type: str | None = None
    resource_id: str | None = None
    hint: str | None = None

    def for_resource(
        self, resource_type: str, resource_id: str | None = None
    ) -> "RequestContext":
        """Return a copy scoped to one remote resource."""
        return replace(self, resource_type=resource_type, resource_id=resource_id)

    def for_list(self, list_id: str) -> "RequestContext":
        """Return a copy scoped to one list, used by fan-out branches."""
        return self.for_resource("list", list_id)


@dataclass(frozen=True)
class ActionableError:
    """Caller-facing error with recovery guidance."""

    error: str
    code: str
    suggestion: str
    field: str | None = None
    recovery_action: str | None = None
    valid_values: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the error payload returned to MCP callers."""
        payload: dict[str, Any] = {"error": self.error, "code": self.code}
        if self.field is not None:
            payload["field"] = self.field
        payload["suggestion"] = self.suggestion
        if self.recovery_action is not None:
            payload["recovery_action"] = self.recovery_action
        if self.valid_values is not None:
            payload["valid_values"] = list(self.valid_values)
        return payload
