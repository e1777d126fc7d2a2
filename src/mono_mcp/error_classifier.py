"""
Classification of Mono API failures into actionable errors.

classify_error() is pure and total: every combination of status, code,
message and field details yields an ActionableError with a non-empty
suggestion. Dispatch order (first match wins):

1. VALIDATION_ERROR with a field -> VALIDATION_GUIDANCE table, else generic
2. NOT_FOUND -> list / item / recurring template guidance, else generic
3. UNAUTHORIZED -> credential guidance
4. CONFLICT -> re-fetch etag and retry
5. INTERNAL_ERROR or 5xx -> transient server failure
6. INVALID_REQUEST -> update_mask guidance, else generic
7. NETWORK_ERROR -> connectivity guidance
8. Anything else -> echo of the raw message and code
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from .exceptions import ApiError, OperationFailedError, RequestFailedError
from .models import (
    ActionableError,
    FieldIssue,
    RecurrencePattern,
    RequestContext,
    TaskPriority,
    TaskStatus,
)
from .update_mask import ITEM_UPDATE_FIELDS, TEMPLATE_UPDATE_FIELDS

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
UNAUTHORIZED = "UNAUTHORIZED"
CONFLICT = "CONFLICT"
INTERNAL_ERROR = "INTERNAL_ERROR"
INVALID_REQUEST = "INVALID_REQUEST"
NETWORK_ERROR = "NETWORK_ERROR"
UNKNOWN = "UNKNOWN"

STATUS_VALUES = tuple(s.value for s in TaskStatus)
PRIORITY_VALUES = tuple(p.value for p in TaskPriority)
RECURRENCE_VALUES = tuple(p.value for p in RecurrencePattern)


def _validation(
    field: str,
    error: str,
    suggestion: str,
    recovery_action: str,
    valid_values: tuple[str, ...] | None = None,
) -> ActionableError:
    return ActionableError(
        error=error,
        code=VALIDATION_ERROR,
        field=field,
        suggestion=suggestion,
        recovery_action=recovery_action,
        valid_values=valid_values,
    )


# Known (field, issue) pairs reported by the API
VALIDATION_GUIDANCE: dict[tuple[str, str], ActionableError] = {
    ("title", "required field missing"): _validation(
        "title",
        "Title is required",
        "Every task and list must have a title. Provide a non-empty title string.",
        "Add a 'title' field with 1-255 characters.",
    ),
    ("title", "must be 255 characters or less"): _validation(
        "title",
        "Title too long",
        "Title exceeds 255 character limit. Shorten it or split into multiple tasks.",
        "Truncate title to 255 characters or create subtasks.",
    ),
    ("status", "value is required when status is in update_mask"): _validation(
        "status",
        "Status value missing",
        "You included 'status' in update_mask but didn't provide a status value.",
        "Either remove 'status' from update_mask, or provide a status value.",
        STATUS_VALUES,
    ),
    ("status", "invalid task status"): _validation(
        "status",
        "Invalid status value",
        "The status value is not recognized.",
        "Use one of the valid status values.",
        STATUS_VALUES,
    ),
    ("priority", "invalid priority level"): _validation(
        "priority",
        "Invalid priority value",
        "The priority value is not recognized.",
        "Use one of the valid priority values.",
        PRIORITY_VALUES,
    ),
    ("id", "invalid ID format"): _validation(
        "id",
        "Invalid UUID format",
        "IDs must be valid UUIDs (e.g., '550e8400-e29b-41d4-a716-446655440000').",
        "Use list_lists or list_items to get valid IDs.",
    ),
    ("recurrence_pattern", "invalid recurrence pattern"): _validation(
        "recurrence_pattern",
        "Invalid recurrence pattern",
        "The recurrence pattern is not recognized.",
        "Use one of the valid recurrence patterns.",
        RECURRENCE_VALUES,
    ),
    (
        "recurrence_pattern",
        "value is required when recurrence_pattern is in update_mask",
    ): _validation(
        "recurrence_pattern",
        "Recurrence pattern value missing",
        "You included 'recurrence_pattern' in update_mask but didn't provide a value.",
        "Either remove it from update_mask or provide a recurrence_pattern value.",
        RECURRENCE_VALUES,
    ),
    (
        "estimated_duration",
        "invalid duration format (expected ISO 8601 duration like 'PT1H30M')",
    ): _validation(
        "estimated_duration",
        "Invalid duration format",
        "Duration must be ISO 8601 format: PT[hours]H[minutes]M",
        "Examples: 'PT30M' (30 min), 'PT1H' (1 hour), 'PT2H30M' (2.5 hours).",
    ),
    ("estimated_duration", "duration cannot be empty"): _validation(
        "estimated_duration",
        "Empty duration",
        "Duration was provided but is an empty string.",
        "Provide a valid duration like 'PT1H' or remove the field entirely.",
    ),
    ("generation_window_days", "must be between 1 and 365"): _validation(
        "generation_window_days",
        "Invalid generation window",
        "Generation window must be 1-365 days.",
        "Use a value between 1 (generate 1 day ahead) and 365 (1 year ahead). "
        "Default is 30.",
    ),
    ("etag", 'must be a numeric string (e.g., "1", "2")'): _validation(
        "etag",
        "Invalid ETag format",
        "ETag for optimistic concurrency must be a quoted numeric string.",
        "Get the current item first; its etag field contains the correct format.",
    ),
    ("recurring_template_id", "required for recurring tasks"): _validation(
        "recurring_template_id",
        "Missing template ID for recurring task",
        "Tasks with instance_date must reference a recurring template.",
        "Either create the item without instance_date, or provide "
        "recurring_template_id.",
    ),
}


def _context_id(context: RequestContext, resource_type: str, param: str) -> str:
    """Resolve a resource id, preferring the branch-scoped id over call params."""
    if context.resource_type == resource_type and context.resource_id:
        return context.resource_id
    value = context.params.get(param)
    return str(value) if value else "unknown"


def _not_found(message: str, context: RequestContext) -> ActionableError:
    text = message.lower()
    if "list" in text:
        return ActionableError(
            error="List not found",
            code=NOT_FOUND,
            suggestion=f"No list exists with ID '{_context_id(context, 'list', 'list_id')}'.",
            recovery_action="Use list_lists to see all available lists and their IDs.",
        )
    if "item" in text:
        return ActionableError(
            error="Item not found",
            code=NOT_FOUND,
            suggestion=(
                f"No item exists with ID '{_context_id(context, 'item', 'item_id')}' "
                "in this list."
            ),
            recovery_action="Use list_items with the list_id to see valid item IDs.",
        )
    if "recurring template" in text:
        template_id = _context_id(context, "recurring_template", "template_id")
        return ActionableError(
            error="Recurring template not found",
            code=NOT_FOUND,
            suggestion=f"No template exists with ID '{template_id}'.",
            recovery_action=(
                "Use list_recurring_templates with the list_id to see valid template IDs."
            ),
        )
    return ActionableError(
        error="Resource not found",
        code=NOT_FOUND,
        suggestion="The requested resource does not exist.",
        recovery_action="Verify the ID is correct. Use list operations to find valid IDs.",
    )


def _invalid_request(message: str, context: RequestContext) -> ActionableError:
    if "update_mask" in message:
        if context.resource_type == "recurring_template" or "template" in context.operation:
            allowed = TEMPLATE_UPDATE_FIELDS
        else:
            allowed = ITEM_UPDATE_FIELDS
        return ActionableError(
            error="Invalid update_mask",
            code=INVALID_REQUEST,
            field="update_mask",
            suggestion="update_mask specifies which fields to update. It cannot be empty.",
            recovery_action=(
                "Provide update_mask array with fields to update: "
                + ", ".join(allowed)
            ),
            valid_values=allowed,
        )
    return ActionableError(
        error=message or "Invalid request",
        code=INVALID_REQUEST,
        suggestion="The request format is invalid.",
        recovery_action="Check required parameters and their formats.",
    )


def classify_error(
    status: int,
    code: str | None,
    message: str | None,
    details: Sequence[FieldIssue],
    context: RequestContext,
) -> ActionableError:
    """
    Map a raw API failure onto actionable guidance.

    Args:
        status: HTTP status code (0 when no response was received)
        code: Remote error code (e.g. "VALIDATION_ERROR"), may be empty
        message: Remote error message, may be empty
        details: Field-level issues; only the first one is considered
        context: The call that failed

    Returns:
        ActionableError for the caller
    """
    code = code or ""
    message = message or ""
    field = details[0].field if details else ""
    issue = details[0].issue if details else ""

    if code == VALIDATION_ERROR and field:
        known = VALIDATION_GUIDANCE.get((field, issue))
        if known is not None:
            return known
        return ActionableError(
            error=message or f"Invalid value for '{field}'",
            code=VALIDATION_ERROR,
            field=field,
            suggestion=(
                f"Validation failed for field '{field}': {issue}"
                if issue
                else f"Validation failed for field '{field}'."
            ),
            recovery_action="Check the field value and format.",
        )

    if code == NOT_FOUND or (not code and status == 404):
        return _not_found(message, context)

    if code == UNAUTHORIZED or (not code and status == 401):
        return ActionableError(
            error="Authentication failed",
            code=UNAUTHORIZED,
            suggestion="The API key is invalid, expired, or missing.",
            recovery_action=(
                "Verify the MONO_API_KEY environment variable. Keys start with "
                "'sk-'. Contact the user if the key needs regeneration."
            ),
        )

    if code == CONFLICT or (not code and status == 409):
        return ActionableError(
            error="Resource was modified",
            code=CONFLICT,
            suggestion="Another process updated this item since you last fetched it.",
            recovery_action=(
                "Fetch the item again to get the latest etag, then retry your "
                "update with the new etag."
            ),
        )

    if code == INTERNAL_ERROR or status >= 500:
        return ActionableError(
            error="Server error",
            code=INTERNAL_ERROR,
            suggestion="The Mono API encountered an internal error.",
            recovery_action=(
                "Wait a few seconds and retry. If persistent, the service may be "
                "experiencing issues."
            ),
        )

    if code == INVALID_REQUEST:
        return _invalid_request(message, context)

    if code == NETWORK_ERROR:
        return ActionableError(
            error="Could not reach the Mono API",
            code=NETWORK_ERROR,
            suggestion=message or "The request did not complete after all retries.",
            recovery_action=(
                "Check network connectivity and the MONO_API_URL setting, then retry."
            ),
        )

    return ActionableError(
        error=message or "Unknown error",
        code=code or UNKNOWN,
        suggestion="An unexpected error occurred.",
        recovery_action="Check the request parameters and retry.",
    )


@contextmanager
def classified_errors(context: RequestContext) -> Iterator[None]:
    """
    Classify remote failures raised inside the block.

    ApiError and RequestFailedError become OperationFailedError carrying
    the ActionableError for this context. Other exceptions pass through.
    """
    try:
        yield
    except ApiError as e:
        actionable = classify_error(
            e.status_code, e.code, e.message, e.details, context
        )
        logger.warning(
            f"{context.operation} failed: HTTP {e.status_code} {e.code or '-'} "
            f"classified as {actionable.code}"
        )
        raise OperationFailedError(actionable) from e
    except RequestFailedError as e:
        actionable = classify_error(0, NETWORK_ERROR, str(e), (), context)
        logger.warning(f"{context.operation} failed: {e}")
        raise OperationFailedError(actionable) from e
