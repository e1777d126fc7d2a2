"""Custom exceptions for the Mono MCP server."""

from collections.abc import Sequence

import httpx

from .models import ActionableError, FieldIssue


class MonoError(Exception):
    """Base exception for Mono MCP errors."""

    pass


class ConfigurationError(MonoError):
    """Exception raised for missing or invalid configuration."""

    pass


class ApiError(MonoError):
    """Raw non-success response from the Mono API, not yet classified."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Sequence[FieldIssue] = (),
    ) -> None:
        super().__init__(f"HTTP {status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = tuple(details)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        """Parse an error body of the form {error: {code, message, details}}."""
        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return cls(
                response.status_code,
                "",
                response.reason_phrase or f"HTTP {response.status_code}",
            )

        details = [
            FieldIssue(
                field=str(entry.get("field") or ""),
                issue=str(entry.get("issue") or ""),
            )
            for entry in error.get("details") or []
            if isinstance(entry, dict)
        ]
        return cls(
            response.status_code,
            str(error.get("code") or ""),
            str(error.get("message") or ""),
            details,
        )


class RequestFailedError(MonoError):
    """Exception raised when every attempt of a request failed at network level."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class RequestCancelledError(MonoError):
    """Exception raised when the caller cancelled a request."""

    pass


class OperationFailedError(MonoError):
    """Exception carrying a classified, caller-facing error."""

    def __init__(self, actionable: ActionableError) -> None:
        super().__init__(actionable.error)
        self.actionable = actionable


class InputValidationError(OperationFailedError):
    """Exception raised for caller input rejected before any remote call."""

    pass
