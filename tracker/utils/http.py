"""HTTP utilities providing retry/backoff semantics for idempotent reads."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 0.5) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> httpx.Response:
    """
    Call ``func`` until it yields a successful response.

    Only transport failures and 5xx responses are retried; a 4xx response is
    raised immediately since repeating the request cannot change the outcome.
    """
    config = retry_config or RetryConfig()
    last_exception: Exception | None = None

    for attempt in range(1, config.attempts + 1):
        try:
            response = await func(*args, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code < 500:
                raise
            last_exception = exc
        except httpx.TransportError as exc:
            last_exception = exc

        if attempt < config.attempts:
            logger.warning(
                "Request failed (attempt %s/%s): %s", attempt, config.attempts, last_exception
            )
            await asyncio.sleep(config.backoff_seconds * attempt)

    if last_exception is not None:
        raise last_exception
    raise RuntimeError("Request failed without raising an exception")


__all__ = ["RetryConfig", "request_with_retry"]
