"""MCP Server exposing Mono task management using FastMCP."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal

from fastmcp import FastMCP

from .config import DEFAULT_MCP_SERVER_NAME
from .error_classifier import INVALID_REQUEST, classify_error
from .exceptions import OperationFailedError
from .models import ActionableError, RequestContext
from .planning import PlanningAggregator
from .task_list_manager import TaskListManager
from .update_mask import ItemUpdateField, TemplateUpdateField

logger = logging.getLogger(__name__)

Status = Literal["todo", "in_progress", "blocked", "done", "archived", "cancelled"]
Priority = Literal["low", "medium", "high", "urgent"]
Recurrence = Literal[
    "daily", "weekly", "biweekly", "monthly", "yearly", "quarterly", "weekdays"
]
SortDir = Literal["asc", "desc"]

# Create FastMCP server instance
mcp = FastMCP(DEFAULT_MCP_SERVER_NAME)

# Global collaborators (initialized in main())
_task_manager: TaskListManager | None = None
_planner: PlanningAggregator | None = None


def get_task_manager() -> TaskListManager:
    """Get the global task manager instance."""
    if _task_manager is None:
        raise RuntimeError("Task manager not initialized")
    return _task_manager


def set_task_manager(task_manager: TaskListManager) -> None:
    """Set the global task manager instance."""
    global _task_manager
    _task_manager = task_manager


def get_planner() -> PlanningAggregator:
    """Get the global planning aggregator instance."""
    if _planner is None:
        raise RuntimeError("Planning aggregator not initialized")
    return _planner


def set_planner(planner: PlanningAggregator) -> None:
    """Set the global planning aggregator instance."""
    global _planner
    _planner = planner


async def _guarded(
    operation: str,
    params: dict[str, Any],
    call: Callable[[], Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    """
    Run one tool call and turn failures into an error payload.

    Classified failures return their ActionableError. Anything else is
    logged with its traceback and returned through the classifier fallback.
    """
    try:
        return await call()
    except OperationFailedError as e:
        return e.actionable.to_dict()
    except Exception as e:
        logger.exception(f"Unexpected error in {operation}")
        context = RequestContext(operation, params)
        return classify_error(0, None, str(e), (), context).to_dict()


# Planning tools


async def _get_plannable_tasks_impl(
    list_id: str | None = None,
    include_blocked: bool = True,
    max_items: int | None = None,
) -> dict[str, Any]:
    """Implementation of get_plannable_tasks tool."""
    return await _guarded(
        "get_plannable_tasks",
        {"list_id": list_id, "include_blocked": include_blocked, "max_items": max_items},
        lambda: get_planner().get_plannable_tasks(
            list_id=list_id, include_blocked=include_blocked, max_items=max_items
        ),
    )


async def _get_overdue_tasks_impl(list_id: str | None = None) -> dict[str, Any]:
    """Implementation of get_overdue_tasks tool."""
    return await _guarded(
        "get_overdue_tasks",
        {"list_id": list_id},
        lambda: get_planner().get_overdue_tasks(list_id=list_id),
    )


async def _get_tasks_due_soon_impl(
    list_id: str | None = None, days_ahead: int | None = None
) -> dict[str, Any]:
    """Implementation of get_tasks_due_soon tool."""
    return await _guarded(
        "get_tasks_due_soon",
        {"list_id": list_id, "days_ahead": days_ahead},
        lambda: get_planner().get_tasks_due_soon(list_id=list_id, days_ahead=days_ahead),
    )


async def _get_tasks_by_tag_impl(tag: str, list_id: str | None = None) -> dict[str, Any]:
    """Implementation of get_tasks_by_tag tool."""
    return await _guarded(
        "get_tasks_by_tag",
        {"tag": tag, "list_id": list_id},
        lambda: get_planner().get_tasks_by_tag(tag=tag, list_id=list_id),
    )


async def _get_workload_summary_impl(list_id: str | None = None) -> dict[str, Any]:
    """Implementation of get_workload_summary tool."""
    return await _guarded(
        "get_workload_summary",
        {"list_id": list_id},
        lambda: get_planner().get_workload_summary(list_id=list_id),
    )


async def _quick_add_task_impl(
    list_id: str,
    title: str,
    priority: str | None = None,
    due_time: str | None = None,
    tags: list[str] | None = None,
    estimated_duration: str | None = None,
) -> dict[str, Any]:
    """Implementation of quick_add_task tool."""
    return await _guarded(
        "quick_add_task",
        {"list_id": list_id, "title": title},
        lambda: get_planner().quick_add_task(
            list_id=list_id,
            title=title,
            priority=priority,
            due_time=due_time,
            tags=tags,
            estimated_duration=estimated_duration,
        ),
    )


# Lists


async def _list_lists_impl(
    page_size: int | None = None,
    page_token: str | None = None,
    title_contains: str | None = None,
    created_after: str | None = None,
    created_before: str | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> dict[str, Any]:
    """Implementation of list_lists tool."""
    return await _guarded(
        "list_lists",
        {"page_token": page_token},
        lambda: get_task_manager().list_lists(
            page_size=page_size,
            page_token=page_token,
            title_contains=title_contains,
            created_after=created_after,
            created_before=created_before,
            sort_by=sort_by,
            sort_dir=sort_dir,
        ),
    )


async def _create_list_impl(title: str) -> dict[str, Any]:
    """Implementation of create_list tool."""
    return await _guarded(
        "create_list",
        {"title": title},
        lambda: get_task_manager().create_list(title=title),
    )


async def _get_list_impl(list_id: str) -> dict[str, Any]:
    """Implementation of get_list tool."""
    return await _guarded(
        "get_list",
        {"list_id": list_id},
        lambda: get_task_manager().get_list(list_id=list_id),
    )


# Items


async def _list_items_impl(
    list_id: str,
    status: list[str] | None = None,
    priority: list[str] | None = None,
    tags: list[str] | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
    page_size: int | None = None,
    page_token: str | None = None,
) -> dict[str, Any]:
    """Implementation of list_items tool."""
    return await _guarded(
        "list_items",
        {"list_id": list_id},
        lambda: get_task_manager().list_items(
            list_id=list_id,
            status=status,
            priority=priority,
            tags=tags,
            sort_by=sort_by,
            sort_dir=sort_dir,
            page_size=page_size,
            page_token=page_token,
        ),
    )


async def _create_item_impl(
    list_id: str,
    title: str,
    due_time: str | None = None,
    tags: list[str] | None = None,
    priority: str | None = None,
    estimated_duration: str | None = None,
    timezone: str | None = None,
) -> dict[str, Any]:
    """Implementation of create_item tool."""
    return await _guarded(
        "create_item",
        {"list_id": list_id, "title": title},
        lambda: get_task_manager().create_item(
            list_id=list_id,
            title=title,
            due_time=due_time,
            tags=tags,
            priority=priority,
            estimated_duration=estimated_duration,
            timezone=timezone,
        ),
    )


async def _update_item_impl(
    list_id: str,
    item_id: str,
    update_mask: list[str],
    title: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    due_time: str | None = None,
    tags: list[str] | None = None,
    estimated_duration: str | None = None,
    actual_duration: str | None = None,
    timezone: str | None = None,
) -> dict[str, Any]:
    """Implementation of update_item tool."""
    fields = {
        "title": title,
        "status": status,
        "priority": priority,
        "due_time": due_time,
        "tags": tags,
        "estimated_duration": estimated_duration,
        "actual_duration": actual_duration,
        "timezone": timezone,
    }
    return await _guarded(
        "update_item",
        {"list_id": list_id, "item_id": item_id, "update_mask": update_mask},
        lambda: get_task_manager().update_item(
            list_id=list_id, item_id=item_id, update_mask=update_mask, fields=fields
        ),
    )


async def _complete_item_impl(list_id: str, item_id: str) -> dict[str, Any]:
    """Implementation of complete_item tool."""
    return await _guarded(
        "complete_item",
        {"list_id": list_id, "item_id": item_id},
        lambda: get_task_manager().complete_item(list_id=list_id, item_id=item_id),
    )


# Recurring templates


async def _list_recurring_templates_impl(
    list_id: str, active_only: bool | None = None
) -> dict[str, Any]:
    """Implementation of list_recurring_templates tool."""
    return await _guarded(
        "list_recurring_templates",
        {"list_id": list_id},
        lambda: get_task_manager().list_recurring_templates(
            list_id=list_id, active_only=active_only
        ),
    )


async def _create_recurring_template_impl(
    list_id: str,
    title: str,
    recurrence_pattern: str,
    tags: list[str] | None = None,
    priority: str | None = None,
    estimated_duration: str | None = None,
    due_offset: str | None = None,
    generation_window_days: int | None = None,
) -> dict[str, Any]:
    """Implementation of create_recurring_template tool."""
    return await _guarded(
        "create_recurring_template",
        {"list_id": list_id, "title": title},
        lambda: get_task_manager().create_recurring_template(
            list_id=list_id,
            title=title,
            recurrence_pattern=recurrence_pattern,
            tags=tags,
            priority=priority,
            estimated_duration=estimated_duration,
            due_offset=due_offset,
            generation_window_days=generation_window_days,
        ),
    )


async def _get_recurring_template_impl(list_id: str, template_id: str) -> dict[str, Any]:
    """Implementation of get_recurring_template tool."""
    return await _guarded(
        "get_recurring_template",
        {"list_id": list_id, "template_id": template_id},
        lambda: get_task_manager().get_recurring_template(
            list_id=list_id, template_id=template_id
        ),
    )


async def _update_recurring_template_impl(
    list_id: str,
    template_id: str,
    update_mask: list[str],
    title: str | None = None,
    tags: list[str] | None = None,
    priority: str | None = None,
    estimated_duration: str | None = None,
    recurrence_pattern: str | None = None,
    recurrence_config: dict[str, Any] | None = None,
    due_offset: str | None = None,
    is_active: bool | None = None,
    generation_window_days: int | None = None,
) -> dict[str, Any]:
    """Implementation of update_recurring_template tool."""
    fields = {
        "title": title,
        "tags": tags,
        "priority": priority,
        "estimated_duration": estimated_duration,
        "recurrence_pattern": recurrence_pattern,
        "recurrence_config": recurrence_config,
        "due_offset": due_offset,
        "is_active": is_active,
        "generation_window_days": generation_window_days,
    }
    return await _guarded(
        "update_recurring_template",
        {"list_id": list_id, "template_id": template_id, "update_mask": update_mask},
        lambda: get_task_manager().update_recurring_template(
            list_id=list_id,
            template_id=template_id,
            update_mask=update_mask,
            fields=fields,
        ),
    )


async def _delete_recurring_template_impl(
    list_id: str, template_id: str
) -> dict[str, Any]:
    """Implementation of delete_recurring_template tool."""
    return await _guarded(
        "delete_recurring_template",
        {"list_id": list_id, "template_id": template_id},
        lambda: get_task_manager().delete_recurring_template(
            list_id=list_id, template_id=template_id
        ),
    )


# FastMCP decorated wrappers (for actual MCP server)
@mcp.tool()
async def get_plannable_tasks(
    list_id: str | None = None,
    include_blocked: bool = True,
    max_items: int | None = None,
) -> dict[str, Any]:
    """
    Get tasks that can be worked on now, sorted by priority then due date.

    Args:
        list_id: Restrict to one list (all lists when omitted)
        include_blocked: Include blocked tasks (default true)
        max_items: Maximum number of tasks to return (default 50)

    Returns:
        Dictionary with items list
    """
    return await _get_plannable_tasks_impl(
        list_id=list_id, include_blocked=include_blocked, max_items=max_items
    )


@mcp.tool()
async def get_overdue_tasks(list_id: str | None = None) -> dict[str, Any]:
    """
    Get unfinished tasks past their due time, oldest first.

    Args:
        list_id: Restrict to one list (all lists when omitted)
    """
    return await _get_overdue_tasks_impl(list_id=list_id)


@mcp.tool()
async def get_tasks_due_soon(
    list_id: str | None = None, days_ahead: int | None = None
) -> dict[str, Any]:
    """
    Get unfinished tasks due within the next days, soonest first.

    Args:
        list_id: Restrict to one list (all lists when omitted)
        days_ahead: Size of the window in days (default 7)
    """
    return await _get_tasks_due_soon_impl(list_id=list_id, days_ahead=days_ahead)


@mcp.tool()
async def get_tasks_by_tag(tag: str, list_id: str | None = None) -> dict[str, Any]:
    """
    Get unfinished tasks carrying a tag, sorted by priority then due date.

    Args:
        tag: Tag to filter by (e.g. "work")
        list_id: Restrict to one list (all lists when omitted)
    """
    return await _get_tasks_by_tag_impl(tag=tag, list_id=list_id)


@mcp.tool()
async def get_workload_summary(list_id: str | None = None) -> dict[str, Any]:
    """
    Summarize open work: task counts and estimated hours by priority and tag.

    Args:
        list_id: Restrict to one list (all lists when omitted)

    Returns:
        Dictionary with total_tasks, total_hours, overdue_count,
        due_this_week_count, by_priority and by_tag
    """
    return await _get_workload_summary_impl(list_id=list_id)


@mcp.tool()
async def quick_add_task(
    list_id: str,
    title: str,
    priority: Priority | None = None,
    due_time: str | None = None,
    tags: list[str] | None = None,
    estimated_duration: str | None = None,
) -> dict[str, Any]:
    """
    Add a task with sensible defaults (priority medium).

    Args:
        list_id: List UUID
        title: Task title
        priority: Task priority (default medium)
        due_time: Due time in RFC 3339 format (optional)
        tags: Tags (optional)
        estimated_duration: ISO 8601 duration such as PT1H30M (optional)
    """
    return await _quick_add_task_impl(
        list_id=list_id,
        title=title,
        priority=priority,
        due_time=due_time,
        tags=tags,
        estimated_duration=estimated_duration,
    )


@mcp.tool()
async def list_lists(
    page_size: int | None = None,
    page_token: str | None = None,
    title_contains: str | None = None,
    created_after: str | None = None,
    created_before: str | None = None,
    sort_by: Literal["create_time", "title"] | None = None,
    sort_dir: SortDir | None = None,
) -> dict[str, Any]:
    """
    List todo lists with pagination, filtering and sorting.

    Args:
        page_size: Lists per page (max 100)
        page_token: Token from a previous response's next_page_token
        title_contains: Case-insensitive title substring
        created_after: Only lists created after this RFC 3339 time
        created_before: Only lists created before this RFC 3339 time
        sort_by: Sort field
        sort_dir: Sort direction
    """
    return await _list_lists_impl(
        page_size=page_size,
        page_token=page_token,
        title_contains=title_contains,
        created_after=created_after,
        created_before=created_before,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


@mcp.tool()
async def create_list(title: str) -> dict[str, Any]:
    """
    Create a new todo list.

    Args:
        title: List title
    """
    return await _create_list_impl(title=title)


@mcp.tool()
async def get_list(list_id: str) -> dict[str, Any]:
    """
    Get list metadata including item counts.

    Args:
        list_id: List UUID
    """
    return await _get_list_impl(list_id=list_id)


@mcp.tool()
async def list_items(
    list_id: str,
    status: list[Status] | None = None,
    priority: list[Priority] | None = None,
    tags: list[str] | None = None,
    sort_by: Literal["due_time", "priority", "created_at", "updated_at"] | None = None,
    sort_dir: SortDir | None = None,
    page_size: int | None = None,
    page_token: str | None = None,
) -> dict[str, Any]:
    """
    List items in a list with filters, sorting and pagination.

    Args:
        list_id: List UUID
        status: Match any of these statuses
        priority: Match any of these priorities
        tags: Items must carry all of these tags
        sort_by: Sort field
        sort_dir: Sort direction
        page_size: Items per page (max 100)
        page_token: Token from a previous response's next_page_token
    """
    return await _list_items_impl(
        list_id=list_id,
        status=status,
        priority=priority,
        tags=tags,
        sort_by=sort_by,
        sort_dir=sort_dir,
        page_size=page_size,
        page_token=page_token,
    )


@mcp.tool()
async def create_item(
    list_id: str,
    title: str,
    due_time: str | None = None,
    tags: list[str] | None = None,
    priority: Priority | None = None,
    estimated_duration: str | None = None,
    timezone: str | None = None,
) -> dict[str, Any]:
    """
    Create an item in a list.

    Args:
        list_id: List UUID
        title: Item title
        due_time: Due time in RFC 3339 format
        tags: Tags
        priority: Item priority
        estimated_duration: ISO 8601 duration such as PT2H
        timezone: IANA timezone name, e.g. Europe/Paris
    """
    return await _create_item_impl(
        list_id=list_id,
        title=title,
        due_time=due_time,
        tags=tags,
        priority=priority,
        estimated_duration=estimated_duration,
        timezone=timezone,
    )


@mcp.tool()
async def update_item(
    list_id: str,
    item_id: str,
    update_mask: list[ItemUpdateField],
    title: str | None = None,
    status: Status | None = None,
    priority: Priority | None = None,
    due_time: str | None = None,
    tags: list[str] | None = None,
    estimated_duration: str | None = None,
    actual_duration: str | None = None,
    timezone: str | None = None,
) -> dict[str, Any]:
    """
    Update an item. Only the fields named in update_mask are changed.

    Args:
        list_id: List UUID
        item_id: Item UUID
        update_mask: Fields to update (title, status, priority, due_time, tags,
            estimated_duration, actual_duration, timezone)
    """
    return await _update_item_impl(
        list_id=list_id,
        item_id=item_id,
        update_mask=update_mask,
        title=title,
        status=status,
        priority=priority,
        due_time=due_time,
        tags=tags,
        estimated_duration=estimated_duration,
        actual_duration=actual_duration,
        timezone=timezone,
    )


@mcp.tool()
async def complete_item(list_id: str, item_id: str) -> dict[str, Any]:
    """
    Mark an item as done.

    Args:
        list_id: List UUID
        item_id: Item UUID
    """
    return await _complete_item_impl(list_id=list_id, item_id=item_id)


@mcp.tool()
async def list_recurring_templates(
    list_id: str, active_only: bool | None = None
) -> dict[str, Any]:
    """
    List recurring task templates of a list.

    Args:
        list_id: List UUID
        active_only: Only return active templates
    """
    return await _list_recurring_templates_impl(list_id=list_id, active_only=active_only)


@mcp.tool()
async def create_recurring_template(
    list_id: str,
    title: str,
    recurrence_pattern: Recurrence,
    tags: list[str] | None = None,
    priority: Priority | None = None,
    estimated_duration: str | None = None,
    due_offset: str | None = None,
    generation_window_days: int | None = None,
) -> dict[str, Any]:
    """
    Create a template that generates tasks on a schedule.

    Args:
        list_id: List UUID
        title: Title of generated tasks
        recurrence_pattern: How often tasks are generated
        tags: Tags of generated tasks
        priority: Priority of generated tasks
        estimated_duration: ISO 8601 duration of generated tasks
        due_offset: ISO 8601 duration from generation to due time
        generation_window_days: Days ahead to generate (1-365)
    """
    return await _create_recurring_template_impl(
        list_id=list_id,
        title=title,
        recurrence_pattern=recurrence_pattern,
        tags=tags,
        priority=priority,
        estimated_duration=estimated_duration,
        due_offset=due_offset,
        generation_window_days=generation_window_days,
    )


@mcp.tool()
async def get_recurring_template(list_id: str, template_id: str) -> dict[str, Any]:
    """
    Get a recurring template.

    Args:
        list_id: List UUID
        template_id: Template UUID
    """
    return await _get_recurring_template_impl(list_id=list_id, template_id=template_id)


@mcp.tool()
async def update_recurring_template(
    list_id: str,
    template_id: str,
    update_mask: list[TemplateUpdateField],
    title: str | None = None,
    tags: list[str] | None = None,
    priority: Priority | None = None,
    estimated_duration: str | None = None,
    recurrence_pattern: Recurrence | None = None,
    recurrence_config: dict[str, Any] | None = None,
    due_offset: str | None = None,
    is_active: bool | None = None,
    generation_window_days: int | None = None,
) -> dict[str, Any]:
    """
    Update a recurring template. Changes apply to future tasks only.

    Args:
        list_id: List UUID
        template_id: Template UUID
        update_mask: Fields to update (title, tags, priority,
            estimated_duration, recurrence_pattern, recurrence_config,
            due_offset, is_active, generation_window_days)
    """
    return await _update_recurring_template_impl(
        list_id=list_id,
        template_id=template_id,
        update_mask=update_mask,
        title=title,
        tags=tags,
        priority=priority,
        estimated_duration=estimated_duration,
        recurrence_pattern=recurrence_pattern,
        recurrence_config=recurrence_config,
        due_offset=due_offset,
        is_active=is_active,
        generation_window_days=generation_window_days,
    )


@mcp.tool()
async def delete_recurring_template(list_id: str, template_id: str) -> dict[str, Any]:
    """
    Delete a recurring template. Tasks it already generated are kept.

    Args:
        list_id: List UUID
        template_id: Template UUID
    """
    return await _delete_recurring_template_impl(list_id=list_id, template_id=template_id)


_TOOL_IMPLS: dict[str, Callable[..., Awaitable[dict[str, Any]]]] = {
    "get_plannable_tasks": _get_plannable_tasks_impl,
    "get_overdue_tasks": _get_overdue_tasks_impl,
    "get_tasks_due_soon": _get_tasks_due_soon_impl,
    "get_tasks_by_tag": _get_tasks_by_tag_impl,
    "get_workload_summary": _get_workload_summary_impl,
    "quick_add_task": _quick_add_task_impl,
    "list_lists": _list_lists_impl,
    "create_list": _create_list_impl,
    "get_list": _get_list_impl,
    "list_items": _list_items_impl,
    "create_item": _create_item_impl,
    "update_item": _update_item_impl,
    "complete_item": _complete_item_impl,
    "list_recurring_templates": _list_recurring_templates_impl,
    "create_recurring_template": _create_recurring_template_impl,
    "get_recurring_template": _get_recurring_template_impl,
    "update_recurring_template": _update_recurring_template_impl,
    "delete_recurring_template": _delete_recurring_template_impl,
}


class MCPServer:
    """
    Programmatic wrapper around the tool catalog.

    The MCP server itself uses FastMCP with function decorators. This class
    calls the same implementations by name, for embedding and tests.
    """

    def __init__(
        self,
        task_manager: TaskListManager,
        planner: PlanningAggregator,
    ) -> None:
        """Initialize MCP Server wrapper."""
        self._task_manager = task_manager
        self._planner = planner
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the server."""
        set_task_manager(self._task_manager)
        set_planner(self._planner)
        self._initialized = True

    async def shutdown(self) -> None:
        """Shutdown the server."""
        self._initialized = False

    def get_available_tools(self) -> list[str]:
        """Get list of available tools, planning tools first."""
        return list(_TOOL_IMPLS)

    async def call_tool(self, name: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Call a tool by name.

        Installs this wrapper's collaborators first if initialize was not
        called.

        Args:
            name: Tool name
            params: Tool arguments

        Returns:
            Tool result, or an error payload for unknown tools and missing
            or unexpected arguments
        """
        if not self._initialized:
            await self.initialize()

        impl = _TOOL_IMPLS.get(name)
        if impl is None:
            return ActionableError(
                error=f"Unknown tool: {name}",
                code=INVALID_REQUEST,
                suggestion="The requested tool does not exist.",
                recovery_action="Call one of the available tools.",
                valid_values=tuple(_TOOL_IMPLS),
            ).to_dict()

        signature = inspect.signature(impl)
        for param in signature.parameters.values():
            if param.default is inspect.Parameter.empty and param.name not in params:
                return ActionableError(
                    error=f"Missing required field: {param.name}",
                    code=INVALID_REQUEST,
                    field=param.name,
                    suggestion=f"{name} requires '{param.name}'.",
                    recovery_action=f"Provide '{param.name}' and call {name} again.",
                ).to_dict()

        unexpected = sorted(set(params) - set(signature.parameters))
        if unexpected:
            return ActionableError(
                error=f"Unexpected field(s): {', '.join(unexpected)}",
                code=INVALID_REQUEST,
                field=unexpected[0],
                suggestion=f"{name} does not accept these arguments.",
                recovery_action="Remove the unexpected fields.",
                valid_values=tuple(signature.parameters),
            ).to_dict()

        return await impl(**params)
