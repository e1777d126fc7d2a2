"""Task List Manager: direct operations on Mono lists, items and recurring templates."""

import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from .api_client import MonoApiClient
from .error_classifier import classified_errors
from .models import RequestContext, TaskStatus
from .update_mask import (
    ITEM_UPDATE_FIELDS,
    TEMPLATE_UPDATE_FIELDS,
    extract_update_fields,
    validate_update_mask,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _without_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class TaskListManager:
    """
    Relays list, item and recurring-template operations to the Mono API.

    Holds no state between calls. Every remote failure is classified once,
    with the context of the call that failed, and raised as
    OperationFailedError.
    """

    def __init__(self, client: MonoApiClient) -> None:
        """
        Initialize Task List Manager.

        Args:
            client: Mono API client
        """
        self._client = client

    async def _call(self, context: RequestContext, call: Awaitable[T]) -> T:
        with classified_errors(context):
            return await call

    # Lists

    async def list_lists(
        self,
        page_size: int | None = None,
        page_token: str | None = None,
        title_contains: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
        sort_by: str | None = None,
        sort_dir: str | None = None,
    ) -> dict[str, Any]:
        """
        List todo lists with pagination, filtering and sorting.

        Returns:
            API response with "lists" and "next_page_token"
        """
        params = {
            "page_size": page_size,
            "page_token": page_token,
            "title_contains": title_contains,
            "created_after": created_after,
            "created_before": created_before,
            "sort_by": sort_by,
            "sort_dir": sort_dir,
        }
        context = RequestContext("list_lists", params)
        return await self._call(context, self._client.list_lists(**params))

    async def create_list(self, title: str) -> dict[str, Any]:
        """Create a list with the given title."""
        context = RequestContext("create_list", {"title": title})
        created = await self._call(context, self._client.create_list({"title": title}))
        logger.info(f"Created list: {title}")
        return created

    async def get_list(self, list_id: str) -> dict[str, Any]:
        """Get list metadata (counts, not the items)."""
        context = RequestContext(
            "get_list", {"list_id": list_id}, resource_type="list", resource_id=list_id
        )
        return await self._call(context, self._client.get_list(list_id))

    # Items

    async def list_items(
        self,
        list_id: str,
        status: list[str] | None = None,
        priority: list[str] | None = None,
        tags: list[str] | None = None,
        sort_by: str | None = None,
        sort_dir: str | None = None,
        page_size: int | None = None,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        """
        List items in a list.

        Array filters are OR-ed for status and priority; items must carry
        all of the given tags.

        Returns:
            API response with "items" and "next_page_token"
        """
        query = {
            "status": status,
            "priority": priority,
            "tags": tags,
            "sort_by": sort_by,
            "sort_dir": sort_dir,
            "page_size": page_size,
            "page_token": page_token,
        }
        context = RequestContext(
            "list_items",
            {"list_id": list_id, **query},
            resource_type="list",
            resource_id=list_id,
        )
        return await self._call(context, self._client.list_items(list_id, **query))

    async def create_item(
        self,
        list_id: str,
        title: str,
        due_time: str | None = None,
        tags: list[str] | None = None,
        priority: str | None = None,
        estimated_duration: str | None = None,
        timezone: str | None = None,
    ) -> dict[str, Any]:
        """Create an item in a list."""
        body = _without_none(
            {
                "title": title,
                "due_time": due_time,
                "tags": tags,
                "priority": priority,
                "estimated_duration": estimated_duration,
                "timezone": timezone,
            }
        )
        context = RequestContext(
            "create_item",
            {"list_id": list_id, **body},
            resource_type="list",
            resource_id=list_id,
        )
        created = await self._call(context, self._client.create_item(list_id, body))
        logger.info(f"Created item in list {list_id}: {title}")
        return created

    async def update_item(
        self,
        list_id: str,
        item_id: str,
        update_mask: list[str] | None,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Update the fields named in update_mask.

        Args:
            list_id: List UUID
            item_id: Item UUID
            update_mask: Fields to change (required, non-empty)
            fields: New values; fields outside the mask are ignored

        Raises:
            InputValidationError: If update_mask is empty or names unknown fields
            OperationFailedError: If the API rejects the update
        """
        mask = validate_update_mask(update_mask, ITEM_UPDATE_FIELDS)
        item = extract_update_fields(fields, mask)
        context = RequestContext(
            "update_item",
            {"list_id": list_id, "item_id": item_id, "update_mask": mask, **item},
            resource_type="item",
            resource_id=item_id,
        )
        updated = await self._call(
            context, self._client.update_item(list_id, item_id, mask, item)
        )
        logger.info(f"Updated item {item_id} fields: {mask}")
        return updated

    async def complete_item(self, list_id: str, item_id: str) -> dict[str, Any]:
        """Mark an item as done."""
        context = RequestContext(
            "complete_item",
            {"list_id": list_id, "item_id": item_id},
            resource_type="item",
            resource_id=item_id,
        )
        updated = await self._call(
            context,
            self._client.update_item(
                list_id, item_id, ["status"], {"status": TaskStatus.DONE.value}
            ),
        )
        logger.info(f"Completed item {item_id}")
        return updated

    # Recurring templates

    async def list_recurring_templates(
        self, list_id: str, active_only: bool | None = None
    ) -> dict[str, Any]:
        """List recurring templates of a list."""
        context = RequestContext(
            "list_recurring_templates",
            {"list_id": list_id, "active_only": active_only},
            resource_type="list",
            resource_id=list_id,
        )
        return await self._call(
            context, self._client.list_recurring_templates(list_id, active_only)
        )

    async def create_recurring_template(
        self,
        list_id: str,
        title: str,
        recurrence_pattern: str,
        tags: list[str] | None = None,
        priority: str | None = None,
        estimated_duration: str | None = None,
        due_offset: str | None = None,
        generation_window_days: int | None = None,
    ) -> dict[str, Any]:
        """Create a template that generates tasks on a schedule."""
        body = _without_none(
            {
                "title": title,
                "recurrence_pattern": recurrence_pattern,
                "tags": tags,
                "priority": priority,
                "estimated_duration": estimated_duration,
                "due_offset": due_offset,
                "generation_window_days": generation_window_days,
            }
        )
        context = RequestContext(
            "create_recurring_template",
            {"list_id": list_id, **body},
            resource_type="list",
            resource_id=list_id,
        )
        created = await self._call(
            context, self._client.create_recurring_template(list_id, body)
        )
        logger.info(f"Created {recurrence_pattern} template in list {list_id}: {title}")
        return created

    async def get_recurring_template(
        self, list_id: str, template_id: str
    ) -> dict[str, Any]:
        """Get one recurring template."""
        context = RequestContext(
            "get_recurring_template",
            {"list_id": list_id, "template_id": template_id},
            resource_type="recurring_template",
            resource_id=template_id,
        )
        return await self._call(
            context, self._client.get_recurring_template(list_id, template_id)
        )

    async def update_recurring_template(
        self,
        list_id: str,
        template_id: str,
        update_mask: list[str] | None,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Update the template fields named in update_mask.

        Changes apply to future generated tasks only.

        Raises:
            InputValidationError: If update_mask is empty or names unknown fields
            OperationFailedError: If the API rejects the update
        """
        mask = validate_update_mask(update_mask, TEMPLATE_UPDATE_FIELDS)
        template = extract_update_fields(fields, mask)
        context = RequestContext(
            "update_recurring_template",
            {
                "list_id": list_id,
                "template_id": template_id,
                "update_mask": mask,
                **template,
            },
            resource_type="recurring_template",
            resource_id=template_id,
        )
        updated = await self._call(
            context,
            self._client.update_recurring_template(list_id, template_id, mask, template),
        )
        logger.info(f"Updated template {template_id} fields: {mask}")
        return updated

    async def delete_recurring_template(
        self, list_id: str, template_id: str
    ) -> dict[str, Any]:
        """
        Delete a recurring template.

        Already generated tasks are kept.

        Returns:
            Acknowledgement with the deleted template id
        """
        context = RequestContext(
            "delete_recurring_template",
            {"list_id": list_id, "template_id": template_id},
            resource_type="recurring_template",
            resource_id=template_id,
        )
        await self._call(
            context, self._client.delete_recurring_template(list_id, template_id)
        )
        logger.info(f"Deleted template {template_id}")
        return {"deleted": True, "template_id": template_id}
