"""Retry helpers for the GitHub contents fetcher.

The harvester makes a single attempt per URL by default. When more attempts
are configured, only rate limits and timeouts are retried.
"""

import httpx
from tenacity import retry_if_exception, wait_exponential


def should_retry_on_rate_limit(exception: BaseException) -> bool:
    """Check if exception is a retryable rate limit.

    Handles both:
    - 429 responses (secondary rate limits)
    - 403 responses with ``X-RateLimit-Remaining: 0`` (GitHub primary rate limit)

    Args:
        exception: Exception to check

    Returns:
        True if this is a rate limit that should be retried
    """
    if not isinstance(exception, httpx.HTTPStatusError):
        return False
    response = exception.response
    if response.status_code == 429:
        return True
    return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"


def should_retry_on_timeout(exception: BaseException) -> bool:
    """Check if exception is a timeout that should be retried.

    Args:
        exception: Exception to check

    Returns:
        True if this is a timeout exception
    """
    return isinstance(exception, (httpx.ConnectTimeout, httpx.ReadTimeout))


def should_retry_on_rate_limit_or_timeout(exception: BaseException) -> bool:
    """Combined retry condition for rate limits and timeouts."""
    return should_retry_on_rate_limit(exception) or should_retry_on_timeout(exception)


def wait_rate_limit_with_backoff(retry_state) -> float:
    """Wait strategy that respects Retry-After for rate limits, exponential backoff otherwise.

    For rate limits:
    - Uses Retry-After header if present (at least 1s, at most 120s)
    - Falls back to exponential backoff if no header

    For timeouts:
    - Uses exponential backoff: 2s, 4s, 8s, max 10s

    Args:
        retry_state: tenacity retry state

    Returns:
        Number of seconds to wait before retry
    """
    exception = retry_state.outcome.exception()

    if should_retry_on_rate_limit(exception):
        retry_after = exception.response.headers.get("Retry-After")
        if retry_after:
            try:
                wait_seconds = max(float(retry_after), 1.0)
                return min(wait_seconds, 120.0)
            except (ValueError, TypeError):
                pass
        return wait_exponential(multiplier=1, min=2, max=30)(retry_state)

    return wait_exponential(multiplier=1, min=2, max=10)(retry_state)


retry_if_rate_limit_or_timeout = retry_if_exception(should_retry_on_rate_limit_or_timeout)
