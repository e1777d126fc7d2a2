"""MCP server for the Mono task API."""

__version__ = "0.1.0"

from .api_client import MonoApiClient  # noqa: E402
from .config import RetryConfig, Settings  # noqa: E402
from .error_classifier import classified_errors, classify_error  # noqa: E402
from .exceptions import (  # noqa: E402
    ApiError,
    ConfigurationError,
    InputValidationError,
    MonoError,
    OperationFailedError,
    RequestCancelledError,
    RequestFailedError,
)
from .executor import ResilientExecutor  # noqa: E402
from .models import (  # noqa: E402
    ActionableError,
    RequestContext,
    Task,
    TaskList,
    TaskPriority,
    TaskStatus,
)
from .planning import PlanningAggregator  # noqa: E402
from .task_list_manager import TaskListManager  # noqa: E402

__all__ = [
    "__version__",
    "MonoApiClient",
    "ResilientExecutor",
    "RetryConfig",
    "Settings",
    "PlanningAggregator",
    "TaskListManager",
    "Task",
    "TaskList",
    "TaskStatus",
    "TaskPriority",
    "RequestContext",
    "ActionableError",
    "classify_error",
    "classified_errors",
    "MonoError",
    "ConfigurationError",
    "ApiError",
    "RequestFailedError",
    "RequestCancelledError",
    "OperationFailedError",
    "InputValidationError",
]
