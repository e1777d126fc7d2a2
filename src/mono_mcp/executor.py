"""Resilient request executor with retries, full-jitter backoff and timeouts."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

import httpx

from .config import DEFAULT_RETRY_CONFIG, RetryConfig
from .exceptions import RequestCancelledError, RequestFailedError

logger = logging.getLogger(__name__)


class AttemptTimeoutError(Exception):
    """Raised internally when one attempt exceeds its timeout."""

    pass


def calculate_backoff(
    attempt: int, config: RetryConfig, rng: random.Random | None = None
) -> float:
    """
    Calculate the delay before retrying after a failed attempt.

    Uses full jitter: sleep = uniform(0, min(cap, base * 2^attempt)).

    Args:
        attempt: Zero-based index of the attempt that just failed
        config: Retry policy
        rng: Random source (module-level random if None)

    Returns:
        Delay in seconds
    """
    ceiling = min(config.max_delay, config.base_delay * 2**attempt)
    return (rng or random).uniform(0, ceiling)


class ResilientExecutor:
    """
    Sends one logical request as a bounded sequence of attempts.

    The executor never classifies errors. It returns the final response,
    whatever its status, and raises only when the request could not be
    delivered (RequestFailedError) or the caller cancelled it
    (RequestCancelledError).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: RetryConfig = DEFAULT_RETRY_CONFIG,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            client: HTTP client used for each attempt
            config: Default retry policy, overridable per call
            sleep: Coroutine used to wait between attempts
            rng: Random source for jitter
        """
        self._client = client
        self.config = config
        self._sleep = sleep
        self._rng = rng

    async def execute(
        self,
        request: httpx.Request,
        config: RetryConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> httpx.Response:
        """
        Execute a request with retries.

        Args:
            request: Prepared request, re-sent unchanged on each attempt
            config: Retry policy for this call (executor default if None)
            cancel_event: Optional caller signal; setting it ends the request

        Returns:
            First non-retryable response, or the last response once the
            retry budget is spent

        Raises:
            RequestFailedError: If the final attempt failed at network level
            RequestCancelledError: If cancel_event was set
        """
        cfg = config or self.config

        attempt = 0
        while True:
            is_last = attempt == cfg.max_retries

            try:
                response = await self._attempt(request, cfg.timeout, cancel_event)
            except (httpx.TransportError, AttemptTimeoutError) as e:
                reason = str(e) or type(e).__name__
                if is_last:
                    logger.error(
                        f"{request.method} {request.url.path} failed after "
                        f"{attempt + 1} attempts: {reason}"
                    )
                    raise RequestFailedError(
                        f"Request failed after {attempt + 1} attempts: {reason}",
                        attempts=attempt + 1,
                    ) from e
                logger.warning(
                    f"{request.method} {request.url.path} attempt "
                    f"{attempt + 1}/{cfg.max_retries + 1} failed: {reason}"
                )
            else:
                if (
                    response.is_success
                    or response.status_code not in cfg.retryable_statuses
                ):
                    return response
                if is_last:
                    logger.error(
                        f"{request.method} {request.url.path} still returning "
                        f"{response.status_code} after {attempt + 1} attempts"
                    )
                    return response
                logger.warning(
                    f"{request.method} {request.url.path} attempt "
                    f"{attempt + 1}/{cfg.max_retries + 1} returned "
                    f"{response.status_code}, retrying"
                )
                await response.aclose()

            if cfg.base_delay > 0:
                delay = calculate_backoff(attempt, cfg, self._rng)
                logger.debug(f"Backing off {delay:.3f}s before retry")
                await self._sleep(delay)
            attempt += 1

    async def _attempt(
        self,
        request: httpx.Request,
        timeout: float,
        cancel_event: asyncio.Event | None,
    ) -> httpx.Response:
        """Send once, racing the timeout and the caller's cancel signal."""
        # Transport timeouts follow this attempt's budget, not the client's default
        request.extensions["timeout"] = httpx.Timeout(timeout).as_dict()
        send_task = asyncio.ensure_future(self._client.send(request))
        waiters: set[asyncio.Future] = {send_task}
        cancel_task = None
        if cancel_event is not None:
            cancel_task = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()

        if cancel_task is not None and cancel_task in done:
            if send_task.done() and not send_task.cancelled():
                send_task.exception()
            raise RequestCancelledError(
                f"{request.method} {request.url.path} cancelled by caller"
            )
        if send_task in done:
            return send_task.result()
        raise AttemptTimeoutError(f"attempt timed out after {timeout}s")
