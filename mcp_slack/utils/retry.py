"""Bounded retry loop for channel membership operations."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Tuple

from mcp_slack.utils.errors import get_error_code, is_retryable_error

logger = logging.getLogger("mcp-slack-retry")


def backoff_delay_ms(attempt: int, delay_ms: int, backoff: str = "exponential") -> int:
    """Delay before retrying after ``attempt`` (1-based) failed."""
    if backoff == "fixed":
        return delay_ms
    return delay_ms * (2 ** (attempt - 1))


async def retry_async(
    operation: Callable[[], Awaitable[Any]],
    attempts: int = 3,
    delay_ms: int = 1000,
    backoff: str = "exponential",
    retry_all: bool = False,
) -> Tuple[Any, int]:
    """Run ``operation`` up to ``attempts`` times.

    Only retryable Slack errors (rate limits, internal errors) are retried
    unless ``retry_all`` is set. The last error is re-raised.

    Returns:
        Tuple of (result, attempts used).
    """
    attempts = max(1, attempts)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation(), attempt
        except Exception as e:
            code = get_error_code(e)
            if attempt >= attempts or not (retry_all or is_retryable_error(code)):
                raise
            wait_ms = backoff_delay_ms(attempt, delay_ms, backoff)
            logger.warning(
                f"Attempt {attempt}/{attempts} failed ({code or type(e).__name__}), "
                f"retrying in {wait_ms}ms"
            )
            await asyncio.sleep(wait_ms / 1000)
