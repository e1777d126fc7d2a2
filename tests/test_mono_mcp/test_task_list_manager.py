"""Unit tests for Task List Manager and update-mask handling."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from mono_mcp.exceptions import ApiError, InputValidationError, OperationFailedError


@pytest.fixture
def mock_client() -> AsyncMock:
    """Create a mock Mono API client."""
    client = AsyncMock()
    client.list_lists = AsyncMock(return_value={"lists": [], "next_page_token": None})
    client.create_list = AsyncMock(return_value={"id": "L1", "title": "Inbox"})
    client.get_list = AsyncMock(return_value={"id": "L1", "total_items": 3})
    client.list_items = AsyncMock(return_value={"items": []})
    client.create_item = AsyncMock(return_value={"id": "I1"})
    client.update_item = AsyncMock(return_value={"id": "I1", "status": "done"})
    client.list_recurring_templates = AsyncMock(return_value={"templates": []})
    client.create_recurring_template = AsyncMock(return_value={"id": "T1"})
    client.get_recurring_template = AsyncMock(return_value={"id": "T1"})
    client.update_recurring_template = AsyncMock(return_value={"id": "T1"})
    client.delete_recurring_template = AsyncMock(return_value=None)
    return client


def make_manager(client: Any) -> Any:
    from mono_mcp.task_list_manager import TaskListManager

    return TaskListManager(client)


@pytest.mark.unit
class TestUpdateMask:
    """Test update-mask validation and field extraction."""

    @pytest.mark.parametrize("mask", [None, []])
    def test_empty_mask_rejected(self, mask: list[str] | None) -> None:
        """Test a missing or empty mask lists the allowed fields."""
        from mono_mcp.update_mask import ITEM_UPDATE_FIELDS, validate_update_mask

        with pytest.raises(InputValidationError) as exc_info:
            validate_update_mask(mask, ITEM_UPDATE_FIELDS)

        actionable = exc_info.value.actionable
        assert actionable.field == "update_mask"
        assert actionable.valid_values == ITEM_UPDATE_FIELDS

    def test_unknown_field_rejected(self) -> None:
        """Test a mask naming a non-mutable field is rejected."""
        from mono_mcp.update_mask import TEMPLATE_UPDATE_FIELDS, validate_update_mask

        with pytest.raises(InputValidationError) as exc_info:
            validate_update_mask(["title", "status"], TEMPLATE_UPDATE_FIELDS)

        assert "status" in exc_info.value.actionable.error

    def test_valid_mask_keeps_order(self) -> None:
        """Test a valid mask is returned as given."""
        from mono_mcp.update_mask import ITEM_UPDATE_FIELDS, validate_update_mask

        assert validate_update_mask(("tags", "title"), ITEM_UPDATE_FIELDS) == [
            "tags",
            "title",
        ]

    def test_extract_only_masked_fields(self) -> None:
        """Test unmasked and unset fields are dropped."""
        from mono_mcp.update_mask import extract_update_fields

        values = {"title": "New", "priority": "high", "tags": None}

        assert extract_update_fields(values, ["title", "tags"]) == {"title": "New"}

    @pytest.mark.asyncio
    async def test_masked_null_is_not_sent(self, mock_client: AsyncMock) -> None:
        """Test a masked field without a value is left out of the update body."""
        manager = make_manager(mock_client)

        await manager.update_item(
            list_id="L1",
            item_id="I1",
            update_mask=["title", "due_time"],
            fields={"title": "New", "due_time": None},
        )

        args = mock_client.update_item.await_args.args
        assert args[2] == ["title", "due_time"]
        assert args[3] == {"title": "New"}

    @pytest.mark.parametrize(
        ("alias", "fields"),
        [
            ("ItemUpdateField", "ITEM_UPDATE_FIELDS"),
            ("TemplateUpdateField", "TEMPLATE_UPDATE_FIELDS"),
        ],
    )
    def test_mask_schema_lists_allowed_fields(self, alias: str, fields: str) -> None:
        """Test the mask item type publishes the mutable fields as an enum."""
        from pydantic import TypeAdapter

        from mono_mcp import update_mask

        schema = TypeAdapter(list[getattr(update_mask, alias)]).json_schema()

        assert schema["items"]["enum"] == list(getattr(update_mask, fields))


@pytest.mark.unit
class TestListOperations:
    """Test list operations."""

    @pytest.mark.asyncio
    async def test_list_lists_passes_query(self, mock_client: AsyncMock) -> None:
        """Test pagination and filter parameters reach the client."""
        manager = make_manager(mock_client)

        await manager.list_lists(page_size=10, title_contains="work", sort_dir="asc")

        kwargs = mock_client.list_lists.await_args.kwargs
        assert kwargs["page_size"] == 10
        assert kwargs["title_contains"] == "work"
        assert kwargs["sort_dir"] == "asc"
        assert kwargs["page_token"] is None

    @pytest.mark.asyncio
    async def test_create_list(self, mock_client: AsyncMock) -> None:
        """Test creating a list sends the title."""
        manager = make_manager(mock_client)

        result = await manager.create_list("Inbox")

        mock_client.create_list.assert_awaited_once_with({"title": "Inbox"})
        assert result["id"] == "L1"

    @pytest.mark.asyncio
    async def test_get_list_not_found(self, mock_client: AsyncMock) -> None:
        """Test a missing list is reported with its id."""
        mock_client.get_list.side_effect = ApiError(404, "NOT_FOUND", "list not found")
        manager = make_manager(mock_client)

        with pytest.raises(OperationFailedError) as exc_info:
            await manager.get_list("L404")

        assert exc_info.value.actionable.suggestion == "No list exists with ID 'L404'."


@pytest.mark.unit
class TestItemOperations:
    """Test item operations."""

    @pytest.mark.asyncio
    async def test_list_items_filters(self, mock_client: AsyncMock) -> None:
        """Test array filters are forwarded to the client."""
        manager = make_manager(mock_client)

        await manager.list_items("L1", status=["todo", "blocked"], priority=["high"])

        args, kwargs = mock_client.list_items.await_args
        assert args == ("L1",)
        assert kwargs["status"] == ["todo", "blocked"]
        assert kwargs["priority"] == ["high"]

    @pytest.mark.asyncio
    async def test_create_item_drops_unset_fields(self, mock_client: AsyncMock) -> None:
        """Test only provided fields are sent."""
        manager = make_manager(mock_client)

        await manager.create_item("L1", "Write report", priority="high")

        mock_client.create_item.assert_awaited_once_with(
            "L1", {"title": "Write report", "priority": "high"}
        )

    @pytest.mark.asyncio
    async def test_update_item_sends_masked_fields(self, mock_client: AsyncMock) -> None:
        """Test fields outside the mask are not sent."""
        manager = make_manager(mock_client)

        await manager.update_item(
            "L1", "I1", ["title"], {"title": "New", "priority": "high"}
        )

        mock_client.update_item.assert_awaited_once_with(
            "L1", "I1", ["title"], {"title": "New"}
        )

    @pytest.mark.asyncio
    async def test_update_item_rejects_empty_mask(self, mock_client: AsyncMock) -> None:
        """Test an empty mask fails before any remote call."""
        manager = make_manager(mock_client)

        with pytest.raises(InputValidationError):
            await manager.update_item("L1", "I1", [], {"title": "New"})

        mock_client.update_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_item_conflict(self, mock_client: AsyncMock) -> None:
        """Test a stale etag is reported as a conflict."""
        mock_client.update_item.side_effect = ApiError(409, "CONFLICT", "etag mismatch")
        manager = make_manager(mock_client)

        with pytest.raises(OperationFailedError) as exc_info:
            await manager.update_item("L1", "I1", ["title"], {"title": "New"})

        assert exc_info.value.actionable.code == "CONFLICT"

    @pytest.mark.asyncio
    async def test_complete_item(self, mock_client: AsyncMock) -> None:
        """Test completing sets status to done through the update mask."""
        manager = make_manager(mock_client)

        result = await manager.complete_item("L1", "I1")

        mock_client.update_item.assert_awaited_once_with(
            "L1", "I1", ["status"], {"status": "done"}
        )
        assert result["status"] == "done"

    @pytest.mark.asyncio
    async def test_complete_missing_item(self, mock_client: AsyncMock) -> None:
        """Test a missing item is reported with its id."""
        mock_client.update_item.side_effect = ApiError(404, "NOT_FOUND", "item not found")
        manager = make_manager(mock_client)

        with pytest.raises(OperationFailedError) as exc_info:
            await manager.complete_item("L1", "I404")

        assert "'I404'" in exc_info.value.actionable.suggestion


@pytest.mark.unit
class TestRecurringTemplateOperations:
    """Test recurring template operations."""

    @pytest.mark.asyncio
    async def test_list_active_only(self, mock_client: AsyncMock) -> None:
        """Test the active_only flag is forwarded."""
        manager = make_manager(mock_client)

        await manager.list_recurring_templates("L1", active_only=True)

        mock_client.list_recurring_templates.assert_awaited_once_with("L1", True)

    @pytest.mark.asyncio
    async def test_create_template(self, mock_client: AsyncMock) -> None:
        """Test creation sends only provided fields."""
        manager = make_manager(mock_client)

        await manager.create_recurring_template(
            "L1", "Standup", "weekdays", generation_window_days=14
        )

        mock_client.create_recurring_template.assert_awaited_once_with(
            "L1",
            {
                "title": "Standup",
                "recurrence_pattern": "weekdays",
                "generation_window_days": 14,
            },
        )

    @pytest.mark.asyncio
    async def test_create_template_invalid_pattern(self, mock_client: AsyncMock) -> None:
        """Test an invalid pattern lists the valid patterns."""
        from mono_mcp.models import FieldIssue

        mock_client.create_recurring_template.side_effect = ApiError(
            400,
            "VALIDATION_ERROR",
            "validation failed",
            [FieldIssue("recurrence_pattern", "invalid recurrence pattern")],
        )
        manager = make_manager(mock_client)

        with pytest.raises(OperationFailedError) as exc_info:
            await manager.create_recurring_template("L1", "Standup", "hourly")

        assert "weekdays" in exc_info.value.actionable.valid_values

    @pytest.mark.asyncio
    async def test_get_missing_template(self, mock_client: AsyncMock) -> None:
        """Test a missing template is reported with its id."""
        mock_client.get_recurring_template.side_effect = ApiError(
            404, "NOT_FOUND", "recurring template not found"
        )
        manager = make_manager(mock_client)

        with pytest.raises(OperationFailedError) as exc_info:
            await manager.get_recurring_template("L1", "T404")

        assert exc_info.value.actionable.suggestion == "No template exists with ID 'T404'."

    @pytest.mark.asyncio
    async def test_update_template(self, mock_client: AsyncMock) -> None:
        """Test template updates send the masked fields."""
        manager = make_manager(mock_client)

        await manager.update_recurring_template(
            "L1", "T1", ["is_active"], {"is_active": False, "title": "ignored"}
        )

        mock_client.update_recurring_template.assert_awaited_once_with(
            "L1", "T1", ["is_active"], {"is_active": False}
        )

    @pytest.mark.asyncio
    async def test_update_template_rejects_item_fields(
        self, mock_client: AsyncMock
    ) -> None:
        """Test item-only fields are not accepted in a template mask."""
        manager = make_manager(mock_client)

        with pytest.raises(InputValidationError):
            await manager.update_recurring_template(
                "L1", "T1", ["status"], {"status": "done"}
            )

        mock_client.update_recurring_template.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_template(self, mock_client: AsyncMock) -> None:
        """Test deletion returns an acknowledgement."""
        manager = make_manager(mock_client)

        result = await manager.delete_recurring_template("L1", "T1")

        assert result == {"deleted": True, "template_id": "T1"}
        mock_client.delete_recurring_template.assert_awaited_once_with("L1", "T1")
