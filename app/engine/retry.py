"""
Exponential backoff retry logic for idempotent upstream calls.

Only status polling goes through here. Creation calls are never retried,
since a retried POST /payments can initiate the same payment twice.
Retriable: transport failures and 429/502/503/504 answers. Everything else
(4xx client errors, signing failures) is raised immediately.
"""

import asyncio
import logging
from typing import Any, Callable

from app.engine.errors import BrokerError, NetworkError, UpstreamError

logger = logging.getLogger("payflow.retry")

RETRIABLE_STATUS_CODES = {429, 502, 503, 504}
MAX_RETRIES = 2
BASE_DELAY = 0.5
MAX_DELAY = 5.0


def is_retriable(error: BrokerError) -> bool:
    if isinstance(error, NetworkError):
        return True
    if isinstance(error, UpstreamError):
        return error.status in RETRIABLE_STATUS_CODES
    return False


async def with_retry(
    func: Callable[..., Any],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    **kwargs: Any,
) -> Any:
    """
    Execute an async function with exponential backoff on retriable errors.

    Args:
        func: Async callable to execute.
        max_retries: Maximum number of retry attempts.
        base_delay: Initial sleep between attempts, doubled each time.

    Returns:
        The result of the function call.

    Raises:
        BrokerError: On non-retriable failure or exhausted retries.
    """
    delay = base_delay

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except BrokerError as e:
            if not is_retriable(e):
                raise

            if attempt >= max_retries:
                logger.error("Exhausted %d retries for upstream call: %s", max_retries, e)
                raise

            sleep_for = min(delay, MAX_DELAY)
            logger.warning(
                "Retriable error on attempt %d/%d: %s - sleeping %.1fs",
                attempt + 1,
                max_retries + 1,
                e,
                sleep_for,
            )
            await asyncio.sleep(sleep_for)
            delay = min(delay * 2, MAX_DELAY)
