"""Shared retry utilities using tenacity."""

from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


@dataclass
class RetryConfig:
    """Configuration for retries with exponential backoff."""

    max_attempts: int = 3
    min_wait: float = 1.0
    max_wait: float = 10.0
    multiplier: float = 1.0


def get_retrying(
    exception_types: type[BaseException] | tuple[type[BaseException], ...],
    config: RetryConfig | None = None,
) -> AsyncRetrying:
    """Get configured AsyncRetrying that retries on the given exception types.

    Usage:
        async for attempt in get_retrying(httpx.RequestError):
            with attempt:
                response = await client.get(url)

    Args:
        exception_types: Exception type(s) considered transient
        config: Optional retry configuration. Uses defaults if not provided.

    Returns:
        AsyncRetrying instance that re-raises the last error when attempts run out.
    """
    cfg = config or RetryConfig()
    return AsyncRetrying(
        retry=retry_if_exception_type(exception_types),
        stop=stop_after_attempt(cfg.max_attempts),
        wait=wait_exponential(
            multiplier=cfg.multiplier,
            min=cfg.min_wait,
            max=cfg.max_wait,
        ),
        reraise=True,
    )
