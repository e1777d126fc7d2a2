"""Planning aggregator: cross-list queries the Mono API cannot answer in one call."""

import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from .api_client import MonoApiClient
from .config import (
    CATALOG_PAGE_SIZE,
    DEFAULT_DAYS_AHEAD,
    DEFAULT_FANOUT_CONCURRENCY,
    DEFAULT_MAX_ITEMS,
    FANOUT_PAGE_SIZE,
    WORKLOAD_DUE_WINDOW_DAYS,
)
from .error_classifier import INVALID_REQUEST, classified_errors
from .exceptions import InputValidationError
from .filtering import (
    filter_by_status,
    filter_by_tag,
    filter_due_soon,
    filter_overdue,
    is_due_soon,
    is_overdue,
    parse_duration_hours,
    plannable_statuses,
)
from .models import (
    ActionableError,
    RequestContext,
    Task,
    TaskList,
    TaskPriority,
    TaskStatus,
)
from .sorting import sort_by_due_date, sort_by_priority_and_due_date

logger = logging.getLogger(__name__)


def round_half_up(hours: float) -> float:
    """Round to one decimal place with halves going up (0.25 -> 0.3)."""
    return math.floor(hours * 10 + 0.5) / 10


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _items_payload(tasks: Sequence[Task]) -> dict[str, Any]:
    return {"items": [task.to_dict() for task in tasks]}


def _require_at_least(name: str, value: int, minimum: int = 1) -> None:
    if value < minimum:
        raise InputValidationError(
            ActionableError(
                error=f"Invalid {name}: {value}",
                code=INVALID_REQUEST,
                field=name,
                suggestion=f"{name} must be at least {minimum}.",
                recovery_action=f"Pass {name} >= {minimum} or omit it to use the default.",
            )
        )


class PlanningAggregator:
    """
    Answers planning questions across one or all lists.

    Unscoped queries read the full list catalog, then fetch one page of up
    to 100 matching items per list. Any failure aborts the whole operation
    with the classified error of the first failing call; partial results
    are discarded.
    """

    def __init__(
        self,
        client: MonoApiClient,
        fanout_concurrency: int = DEFAULT_FANOUT_CONCURRENCY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            client: Mono API client
            fanout_concurrency: Maximum concurrent per-list requests
            clock: Returns the current aware UTC time
        """
        self._client = client
        self._fanout_concurrency = fanout_concurrency
        self._clock = clock

    async def get_plannable_tasks(
        self,
        list_id: str | None = None,
        include_blocked: bool = True,
        max_items: int | None = None,
    ) -> dict[str, Any]:
        """
        Get tasks that can be worked on now, most important first.

        Args:
            list_id: Restrict to one list (all lists if None)
            include_blocked: Include blocked tasks
            max_items: Maximum number of tasks returned (default 50)

        Returns:
            {"items": [...]}
        """
        max_items = DEFAULT_MAX_ITEMS if max_items is None else max_items
        _require_at_least("max_items", max_items)
        statuses = plannable_statuses(include_blocked)
        context = RequestContext(
            "get_plannable_tasks",
            {
                "list_id": list_id,
                "include_blocked": include_blocked,
                "max_items": max_items,
            },
        )

        if list_id:
            # Scoped: the API sorts, we only truncate
            tasks = await self._fetch_list_items(
                context,
                list_id,
                statuses,
                sort_by="priority",
                sort_dir="desc",
                page_size=min(max_items, FANOUT_PAGE_SIZE),
            )
            return _items_payload(tasks[:max_items])

        tasks = await self._collect(context, None, statuses)
        return _items_payload(sort_by_priority_and_due_date(tasks)[:max_items])

    async def get_overdue_tasks(self, list_id: str | None = None) -> dict[str, Any]:
        """Get unfinished tasks whose due time has passed, oldest first."""
        now = self._clock()
        context = RequestContext("get_overdue_tasks", {"list_id": list_id})
        tasks = await self._collect(
            context, list_id, plannable_statuses(), sort_by="due_time", sort_dir="asc"
        )
        return _items_payload(sort_by_due_date(filter_overdue(tasks, now)))

    async def get_tasks_due_soon(
        self, list_id: str | None = None, days_ahead: int | None = None
    ) -> dict[str, Any]:
        """Get unfinished tasks due within the next days_ahead days (default 7)."""
        days_ahead = DEFAULT_DAYS_AHEAD if days_ahead is None else days_ahead
        _require_at_least("days_ahead", days_ahead, minimum=0)
        now = self._clock()
        context = RequestContext(
            "get_tasks_due_soon", {"list_id": list_id, "days_ahead": days_ahead}
        )
        tasks = await self._collect(
            context, list_id, plannable_statuses(), sort_by="due_time", sort_dir="asc"
        )
        return _items_payload(sort_by_due_date(filter_due_soon(tasks, now, days_ahead)))

    async def get_tasks_by_tag(
        self, tag: str, list_id: str | None = None
    ) -> dict[str, Any]:
        """Get unfinished tasks carrying a tag, sorted by priority then due date."""
        if not tag:
            raise InputValidationError(
                ActionableError(
                    error="Tag is required",
                    code=INVALID_REQUEST,
                    field="tag",
                    suggestion="Provide the tag to filter by.",
                    recovery_action="Pass a non-empty 'tag' string, e.g. 'work'.",
                )
            )
        context = RequestContext("get_tasks_by_tag", {"tag": tag, "list_id": list_id})
        tasks = await self._collect(
            context,
            list_id,
            plannable_statuses(),
            tags=[tag],
            sort_by="priority",
            sort_dir="desc",
        )
        return _items_payload(sort_by_priority_and_due_date(filter_by_tag(tasks, tag)))

    async def get_workload_summary(self, list_id: str | None = None) -> dict[str, Any]:
        """
        Summarize the open workload.

        Returns:
            Dictionary with:
            - total_tasks, total_hours (one decimal)
            - overdue_count, due_this_week_count
            - by_priority: {priority: {count, hours}} for every priority
            - by_tag: {tag: {count, hours}}
        """
        now = self._clock()
        context = RequestContext("get_workload_summary", {"list_id": list_id})
        tasks = await self._collect(context, list_id, plannable_statuses())

        by_priority: dict[str, dict[str, float]] = {
            priority.value: {"count": 0, "hours": 0.0}
            for priority in (
                TaskPriority.URGENT,
                TaskPriority.HIGH,
                TaskPriority.MEDIUM,
                TaskPriority.LOW,
            )
        }
        by_tag: dict[str, dict[str, float]] = {}
        total_hours = 0.0
        overdue_count = 0
        due_this_week_count = 0

        for task in tasks:
            hours = parse_duration_hours(task.estimated_duration)
            total_hours += hours

            bucket = by_priority[task.priority.value]
            bucket["count"] += 1
            bucket["hours"] += hours

            if is_overdue(task, now):
                overdue_count += 1
            if is_due_soon(task, now, WORKLOAD_DUE_WINDOW_DAYS):
                due_this_week_count += 1

            for tag in sorted(task.tags):
                tag_bucket = by_tag.setdefault(tag, {"count": 0, "hours": 0.0})
                tag_bucket["count"] += 1
                tag_bucket["hours"] += hours

        return {
            "total_tasks": len(tasks),
            "total_hours": round_half_up(total_hours),
            "overdue_count": overdue_count,
            "due_this_week_count": due_this_week_count,
            "by_priority": by_priority,
            "by_tag": dict(sorted(by_tag.items())),
        }

    async def quick_add_task(
        self,
        list_id: str,
        title: str,
        priority: str | None = None,
        due_time: str | None = None,
        tags: list[str] | None = None,
        estimated_duration: str | None = None,
    ) -> dict[str, Any]:
        """Create a task with priority defaulting to medium."""
        context = RequestContext(
            "quick_add_task",
            {"list_id": list_id, "title": title, "priority": priority},
            resource_type="list",
            resource_id=list_id,
        )
        body: dict[str, Any] = {
            "title": title,
            "priority": priority or TaskPriority.MEDIUM.value,
        }
        if due_time is not None:
            body["due_time"] = due_time
        if tags is not None:
            body["tags"] = tags
        if estimated_duration is not None:
            body["estimated_duration"] = estimated_duration

        with classified_errors(context):
            created = await self._client.create_item(list_id, body)
        logger.info(f"Quick-added task to list {list_id}: {title}")
        return created

    async def _collect(
        self,
        context: RequestContext,
        list_id: str | None,
        statuses: Sequence[TaskStatus],
        tags: list[str] | None = None,
        sort_by: str | None = None,
        sort_dir: str | None = None,
    ) -> list[Task]:
        """Fetch matching tasks from one list, or from every list when list_id is None."""
        if list_id:
            return await self._fetch_list_items(
                context, list_id, statuses, tags=tags, sort_by=sort_by, sort_dir=sort_dir
            )

        list_ids = await self._list_catalog(context)
        results: list[list[Task]] = [[] for _ in list_ids]
        semaphore = asyncio.Semaphore(self._fanout_concurrency)

        async def fetch(index: int, branch_list_id: str) -> None:
            async with semaphore:
                results[index] = await self._fetch_list_items(
                    context, branch_list_id, statuses, tags=tags
                )

        try:
            async with asyncio.TaskGroup() as group:
                for index, branch_list_id in enumerate(list_ids):
                    group.create_task(fetch(index, branch_list_id))
        except ExceptionGroup as eg:
            # The first branch to fail cancelled the others
            raise eg.exceptions[0]

        merged = [task for branch in results for task in branch]
        logger.debug(
            f"{context.operation}: merged {len(merged)} tasks from {len(list_ids)} lists"
        )
        return merged

    async def _list_catalog(self, context: RequestContext) -> list[str]:
        """Walk every page of the list catalog and return the list ids."""
        list_ids: list[str] = []
        seen_tokens: set[str] = set()
        page_token: str | None = None

        while True:
            with classified_errors(context.for_resource("list")):
                page = await self._client.list_lists(
                    page_size=CATALOG_PAGE_SIZE, page_token=page_token
                )
            list_ids.extend(
                TaskList.from_api(entry).id for entry in page.get("lists") or []
            )

            page_token = page.get("next_page_token")
            if not page_token:
                break
            if page_token in seen_tokens:
                logger.warning(
                    f"List catalog returned repeated page token '{page_token}', stopping"
                )
                break
            seen_tokens.add(page_token)

        return list_ids

    async def _fetch_list_items(
        self,
        context: RequestContext,
        list_id: str,
        statuses: Sequence[TaskStatus],
        tags: list[str] | None = None,
        sort_by: str | None = None,
        sort_dir: str | None = None,
        page_size: int = FANOUT_PAGE_SIZE,
    ) -> list[Task]:
        """Fetch one page of a list's items and keep those with a wanted status."""
        with classified_errors(context.for_list(list_id)):
            page = await self._client.list_items(
                list_id,
                status=[s.value for s in statuses],
                tags=tags,
                sort_by=sort_by,
                sort_dir=sort_dir,
                page_size=page_size,
            )
        tasks = [Task.from_api(item) for item in page.get("items") or []]
        return filter_by_status(tasks, statuses)
