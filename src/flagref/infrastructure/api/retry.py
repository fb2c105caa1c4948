"""Retry policy for the management API client."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import ApiClientError, RetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Methods whose repetition cannot change server state twice
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts for transient errors.
        base_delay: Delay in seconds before the first retry, doubled per attempt.
        max_delay: Upper bound for any delay, including server supplied ones.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    def delay_for(self, retry_number: int, retry_after: Optional[float] = None) -> float:
        """Seconds to wait before retry ``retry_number`` (1-based)."""
        if retry_after is not None:
            return min(max(retry_after, 0.0), self.max_delay)
        return min(self.base_delay * (2 ** (retry_number - 1)), self.max_delay)


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a ``Retry-After`` header value.

    Accepts delta seconds or an HTTP date. Returns None for a missing or
    unparseable value; dates in the past give 0.
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return max((when - now).total_seconds(), 0.0)


def can_retry(method: str, error: RetryableError) -> bool:
    """Requests the server never processed can be repeated whatever the method."""
    return not error.request_processed or method.upper() in IDEMPOTENT_METHODS


async def with_retry(method: str, operation: Callable[[], Awaitable[T]], config: RetryConfig) -> T:
    """
    Execute an API call, retrying transient failures with exponential backoff.

    Args:
        method: HTTP method of the call, used to decide whether a failure
            after the server received the request may be retried
        operation: Async callable performing one attempt
        config: Retry configuration

    Returns:
        Result of the operation

    Raises:
        NonRetryableError: Immediately, without retrying
        RetryableError: Without retrying, if repeating ``method`` is unsafe
        ApiClientError: If all attempts failed
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except RetryableError as e:
            if not can_retry(method, e):
                logger.debug(f"Not retrying {method} after a processed request: {e}")
                raise

            if attempt > config.max_retries:
                logger.error(f"{method} failed after {attempt} attempt(s). Last error: {e}")
                raise ApiClientError(f"{method} failed after {attempt} attempt(s): {e}") from e

            delay = config.delay_for(attempt, e.retry_after)
            logger.warning(f"Attempt {attempt} failed: {e}. Retrying in {delay:.1f}s...")
            await asyncio.sleep(delay)
