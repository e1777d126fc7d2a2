"""Update-mask validation and field extraction for mutation operations."""

from collections.abc import Iterable, Mapping
from typing import Any, Literal, get_args

from .exceptions import InputValidationError
from .models import ActionableError

ItemUpdateField = Literal[
    "title",
    "status",
    "priority",
    "due_time",
    "tags",
    "estimated_duration",
    "actual_duration",
    "timezone",
]

TemplateUpdateField = Literal[
    "title",
    "tags",
    "priority",
    "estimated_duration",
    "recurrence_pattern",
    "recurrence_config",
    "due_offset",
    "is_active",
    "generation_window_days",
]

ITEM_UPDATE_FIELDS: tuple[str, ...] = get_args(ItemUpdateField)
TEMPLATE_UPDATE_FIELDS: tuple[str, ...] = get_args(TemplateUpdateField)


def validate_update_mask(
    update_mask: Iterable[str] | None, allowed: tuple[str, ...]
) -> list[str]:
    """
    Validate an update mask before any remote call is made.

    Args:
        update_mask: Field names the caller wants to change
        allowed: Field names the resource accepts in a mask

    Returns:
        The mask as a list, order preserved

    Raises:
        InputValidationError: If the mask is missing, empty or names an
            unknown field
    """
    mask = list(update_mask or [])
    if not mask:
        raise InputValidationError(
            ActionableError(
                error="update_mask cannot be empty",
                code="INVALID_REQUEST",
                field="update_mask",
                suggestion="update_mask lists the fields to change and must name at least one.",
                recovery_action="Provide update_mask with fields to update: "
                + ", ".join(allowed),
                valid_values=allowed,
            )
        )

    unknown = [name for name in mask if name not in allowed]
    if unknown:
        raise InputValidationError(
            ActionableError(
                error=f"Unknown update_mask field(s): {', '.join(unknown)}",
                code="INVALID_REQUEST",
                field="update_mask",
                suggestion="update_mask may only name mutable fields of this resource.",
                recovery_action="Remove the unknown fields from update_mask.",
                valid_values=allowed,
            )
        )
    return mask


def extract_update_fields(
    values: Mapping[str, Any], update_mask: Iterable[str]
) -> dict[str, Any]:
    """
    Pick the masked fields out of the caller's values.

    Fields not named in the mask are ignored, as are masked fields the
    caller left unset (None). Tool arguments cannot tell an omitted value
    from an explicit null, so a masked field can be changed but never
    cleared to null through this path.
    """
    return {
        name: values[name]
        for name in update_mask
        if values.get(name) is not None
    }
