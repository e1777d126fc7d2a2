"""Async client for the Mono task API."""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from . import __version__
from .config import (
    API_VERSION_PREFIX,
    DEFAULT_API_URL,
    DEFAULT_RETRY_CONFIG,
    RetryConfig,
)
from .exceptions import ApiError
from .executor import ResilientExecutor

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    """Quote an identifier for use as one URL path segment."""
    return quote(str(value), safe="")


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drop unset query parameters. Lists become repeated keys."""
    if not params:
        return {}
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple, set, frozenset)):
            if value:
                cleaned[key] = [str(v) for v in value]
        else:
            cleaned[key] = value
    return cleaned


class MonoApiClient:
    """
    Thin wrapper over the Mono REST API.

    Every request goes through a ResilientExecutor. Non-success responses
    raise ApiError with the raw remote code, message and field details;
    turning those into caller guidance is left to the error classifier.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_URL,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the API client.

        Args:
            api_key: Bearer token for the Mono API
            base_url: API base URL
            retry_config: Default retry policy for every request
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "User-Agent": f"mono-mcp/{__version__}",
            },
            timeout=retry_config.timeout,
            transport=transport,
        )
        self._executor = ResilientExecutor(self._http, retry_config)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        retry_config: RetryConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any] | None:
        """
        Send a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the API version prefix
            params: Query parameters (None values dropped)
            json: JSON body
            retry_config: Per-call retry policy override
            cancel_event: Optional caller cancellation signal

        Returns:
            Decoded JSON body, or None for empty (e.g. 204) responses

        Raises:
            ApiError: If the API returned a non-success status
            RequestFailedError: If the request could not be delivered
            RequestCancelledError: If cancel_event was set
        """
        request = self._http.build_request(
            method,
            f"{API_VERSION_PREFIX}{path}",
            params=_clean_params(params),
            json=json,
        )
        response = await self._executor.execute(
            request, retry_config, cancel_event=cancel_event
        )

        if not response.is_success:
            raise ApiError.from_response(response)

        logger.debug(f"{method} {path} -> {response.status_code}")
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Lists

    async def list_lists(self, **query: Any) -> dict[str, Any]:
        """GET /lists with optional pagination, filter and sort parameters."""
        return await self.request("GET", "/lists", params=query) or {}

    async def create_list(self, body: dict[str, Any]) -> dict[str, Any]:
        """POST /lists."""
        return await self.request("POST", "/lists", json=body) or {}

    async def get_list(self, list_id: str) -> dict[str, Any]:
        """GET /lists/{list_id}."""
        return await self.request("GET", f"/lists/{_segment(list_id)}") or {}

    # Items

    async def list_items(self, list_id: str, **query: Any) -> dict[str, Any]:
        """GET /lists/{list_id}/items; array filters are sent as repeated keys."""
        return (
            await self.request(
                "GET", f"/lists/{_segment(list_id)}/items", params=query
            )
            or {}
        )

    async def create_item(self, list_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST /lists/{list_id}/items."""
        return (
            await self.request(
                "POST", f"/lists/{_segment(list_id)}/items", json=body
            )
            or {}
        )

    async def update_item(
        self,
        list_id: str,
        item_id: str,
        update_mask: list[str],
        item: dict[str, Any],
    ) -> dict[str, Any]:
        """PATCH /lists/{list_id}/items/{item_id} with an explicit update mask."""
        return (
            await self.request(
                "PATCH",
                f"/lists/{_segment(list_id)}/items/{_segment(item_id)}",
                json={"update_mask": update_mask, "item": item},
            )
            or {}
        )

    # Recurring templates

    async def list_recurring_templates(
        self, list_id: str, active_only: bool | None = None
    ) -> dict[str, Any]:
        """GET /lists/{list_id}/recurring-templates."""
        return (
            await self.request(
                "GET",
                f"/lists/{_segment(list_id)}/recurring-templates",
                params={"active_only": active_only},
            )
            or {}
        )

    async def create_recurring_template(
        self, list_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """POST /lists/{list_id}/recurring-templates."""
        return (
            await self.request(
                "POST", f"/lists/{_segment(list_id)}/recurring-templates", json=body
            )
            or {}
        )

    async def get_recurring_template(
        self, list_id: str, template_id: str
    ) -> dict[str, Any]:
        """GET /lists/{list_id}/recurring-templates/{template_id}."""
        return (
            await self.request(
                "GET",
                f"/lists/{_segment(list_id)}/recurring-templates/{_segment(template_id)}",
            )
            or {}
        )

    async def update_recurring_template(
        self,
        list_id: str,
        template_id: str,
        update_mask: list[str],
        template: dict[str, Any],
    ) -> dict[str, Any]:
        """PATCH /lists/{list_id}/recurring-templates/{template_id}."""
        return (
            await self.request(
                "PATCH",
                f"/lists/{_segment(list_id)}/recurring-templates/{_segment(template_id)}",
                json={"update_mask": update_mask, "template": template},
            )
            or {}
        )

    async def delete_recurring_template(self, list_id: str, template_id: str) -> None:
        """DELETE /lists/{list_id}/recurring-templates/{template_id} (204, no body)."""
        await self.request(
            "DELETE",
            f"/lists/{_segment(list_id)}/recurring-templates/{_segment(template_id)}",
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
