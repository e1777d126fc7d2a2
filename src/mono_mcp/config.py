"""Configuration constants and settings for the Mono MCP server."""

from dataclasses import dataclass, field

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Remote API
DEFAULT_API_URL = "https://monodo.app/api"
API_VERSION_PREFIX = "/v1"

# Retry policy
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 4.0  # seconds
DEFAULT_ATTEMPT_TIMEOUT = 1.5  # seconds
DEFAULT_RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

# Planning
DEFAULT_MAX_ITEMS = 50
FANOUT_PAGE_SIZE = 100  # items per list, also the API's page size ceiling
CATALOG_PAGE_SIZE = 100
DEFAULT_DAYS_AHEAD = 7
WORKLOAD_DUE_WINDOW_DAYS = 7
DEFAULT_FANOUT_CONCURRENCY = 8

# MCP Server Configuration
DEFAULT_MCP_SERVER_NAME = "mono-mcp-server"
DEFAULT_MCP_HOST = "localhost"
DEFAULT_MCP_PORT = 3000


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy for one logical request."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    timeout: float = DEFAULT_ATTEMPT_TIMEOUT
    retryable_statuses: frozenset[int] = field(
        default_factory=lambda: DEFAULT_RETRYABLE_STATUSES
    )

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")
        if self.max_delay < 0:
            raise ValueError(f"max_delay must be >= 0, got {self.max_delay}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        object.__setattr__(
            self, "retryable_statuses", frozenset(self.retryable_statuses)
        )


DEFAULT_RETRY_CONFIG = RetryConfig()


class Settings(BaseSettings):
    """Server settings loaded from MONO_* environment variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="MONO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str | None = None
    api_url: str = DEFAULT_API_URL

    # Delays are configured in milliseconds
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    base_delay_ms: int = Field(default=int(DEFAULT_BASE_DELAY * 1000), ge=0)
    max_delay_ms: int = Field(default=int(DEFAULT_MAX_DELAY * 1000), ge=0)
    timeout_ms: int = Field(default=int(DEFAULT_ATTEMPT_TIMEOUT * 1000), gt=0)

    fanout_concurrency: int = Field(default=DEFAULT_FANOUT_CONCURRENCY, ge=1)

    def retry_config(self) -> RetryConfig:
        """Build the executor retry policy from these settings."""
        return RetryConfig(
            max_retries=self.max_retries,
            base_delay=self.base_delay_ms / 1000,
            max_delay=self.max_delay_ms / 1000,
            timeout=self.timeout_ms / 1000,
        )


def get_settings() -> Settings:
    """Return settings read from the current environment."""
    return Settings()
