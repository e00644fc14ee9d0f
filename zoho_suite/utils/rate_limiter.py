import asyncio
import functools

from zoho_suite.http.errors import ApiError, ClassifiedError, RateLimitError
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)


def is_retryable(error: ClassifiedError) -> bool:
    """RateLimitError and transient ApiError (5xx, transport) are worth another try."""
    return isinstance(error, RateLimitError | ApiError) and error.retryable


def compute_retry_delay(error: ClassifiedError, attempt: int, base_delay: float) -> float:
    """Seconds to wait before retry ``attempt + 1``: the server's Retry-After if any, else exponential."""
    if isinstance(error, RateLimitError):
        return error.retry_after_seconds
    return base_delay * (2**attempt)


def _handle_retryable_error(
    e: ClassifiedError, attempt: int, max_retries: int, base_delay: float, func_name: str
) -> float:
    if attempt >= max_retries - 1:
        logger.error("Max retries reached", function=func_name, max_retries=max_retries, error=str(e))
        raise e

    delay = compute_retry_delay(e, attempt, base_delay)
    delay_source = "server says" if isinstance(e, RateLimitError) else "calculated delay"

    logger.warning(
        f"Retryable Zoho error, {delay_source} wait {delay} seconds",
        function=func_name,
        attempt=attempt + 1,
        max_retries=max_retries,
        error=str(e),
    )
    return delay


def rate_limited(max_retries: int = 5, base_delay: float = 5):
    """
    Decorator adding retry with backoff to a coroutine making a single Zoho call.

    RequestDispatcher never retries rate limits or transient failures itself; wrap a
    single-call helper with this when the caller wants them retried. AuthError,
    ValidationError and non-retryable ApiError propagate immediately.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds for exponential backoff

    Usage:
        @rate_limited(max_retries=3, base_delay=1)
        async def fetch_deal(client, deal_id):
            return await client.get(f"Deals/{deal_id}")
    """

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except ClassifiedError as e:
                    if not is_retryable(e):
                        raise
                    delay = _handle_retryable_error(e, attempt, max_retries, base_delay, func.__name__)
                    await asyncio.sleep(delay)

            raise RuntimeError(f"Unexpected exit from retry loop in {func.__name__}")

        return async_wrapper

    return decorator
