"""Command-line entry point for the Mono MCP server."""

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from .api_client import MonoApiClient
from .config import DEFAULT_MCP_HOST, DEFAULT_MCP_PORT, Settings, get_settings
from .exceptions import ConfigurationError
from .mcp_server import mcp, set_planner, set_task_manager
from .planning import PlanningAggregator
from .task_list_manager import TaskListManager

logger = logging.getLogger(__name__)


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Mono MCP server - task management tools for LLM clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mono-mcp                                  # stdio transport (default)
  mono-mcp --transport http --port 8080     # HTTP transport
  mono-mcp --transport sse --host 0.0.0.0   # SSE transport on all interfaces
  mono-mcp -v                               # Verbose logging

Environment:
  MONO_API_KEY              API key (required)
  MONO_API_URL              API base URL (default https://monodo.app/api)
  MONO_MAX_RETRIES          Retries per request (default 3)
  MONO_BASE_DELAY_MS        Backoff base delay (default 1000)
  MONO_MAX_DELAY_MS         Backoff cap (default 4000)
  MONO_TIMEOUT_MS           Per-attempt timeout (default 1500)
  MONO_FANOUT_CONCURRENCY   Concurrent per-list requests (default 8)
        """,
    )

    parser.add_argument(
        "--transport",
        choices=("stdio", "sse", "http"),
        default="stdio",
        help="MCP transport (default: stdio)",
    )

    parser.add_argument(
        "--host",
        default=DEFAULT_MCP_HOST,
        help=f"Host for sse/http transports (default: {DEFAULT_MCP_HOST})",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_MCP_PORT,
        help=f"Port for sse/http transports (default: {DEFAULT_MCP_PORT})",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging and debug information",
    )

    return parser


def configure_logging(verbose: bool) -> None:
    """Log to stderr so the stdio transport stays clean."""
    if verbose:
        logging.basicConfig(
            level="DEBUG",
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            stream=sys.stderr,
        )
    else:
        logging.basicConfig(
            level="INFO",
            format="%(asctime)s - %(levelname)s - %(message)s",
            stream=sys.stderr,
        )
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)


def load_settings() -> Settings:
    """
    Read settings from the environment.

    Raises:
        ConfigurationError: If the API key is missing or a value is out of range
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid MONO_* configuration: {e}") from e
    if not settings.api_key:
        raise ConfigurationError(
            "MONO_API_KEY is not set. Export your Mono API key and restart."
        )
    return settings


async def serve(settings: Settings, transport: str, host: str, port: int) -> None:
    """
    Wire the collaborators and run the MCP server until it stops.

    Args:
        settings: Loaded settings (api_key must be set)
        transport: "stdio", "sse" or "http"
        host: Bind host for sse/http
        port: Bind port for sse/http
    """
    client = MonoApiClient(
        api_key=settings.api_key or "",
        base_url=settings.api_url,
        retry_config=settings.retry_config(),
    )
    set_task_manager(TaskListManager(client))
    set_planner(
        PlanningAggregator(client, fanout_concurrency=settings.fanout_concurrency)
    )

    logger.info(f"MCP Server initialized (transport={transport}, api={settings.api_url})")

    try:
        if transport == "stdio":
            await mcp.run_async(transport="stdio")
        else:
            logger.info(f"Server will listen on http://{host}:{port}")
            await mcp.run_async(transport=transport, host=host, port=port)  # type: ignore[arg-type]
    finally:
        await client.aclose()


def cli_entry() -> None:
    """CLI entry point with argument parsing."""
    parser = create_argument_parser()
    args = parser.parse_args()
    configure_logging(args.verbose)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(serve(settings, args.transport, args.host, args.port))
    except KeyboardInterrupt:
        pass  # Graceful shutdown


if __name__ == "__main__":
    cli_entry()
