"""
Retry strategy for model backend calls.

This module provides retry logic with exponential backoff for transient
failures, and maps the OpenAI SDK's errors into Ponder's hierarchy.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from openai import APIConnectionError, APIStatusError
from openai import APIError as OpenAIAPIError
from openai import RateLimitError as OpenAIRateLimitError

from ponder.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_MAX_DELAY,
)
from ponder.exceptions import APIError, ConnectionError, RateLimitError

logger = logging.getLogger(__name__)


class RetryStrategy:
    """
    Strategy for retrying failed operations with exponential backoff.

    Rate limits and connection failures are retried; other API errors are
    raised immediately as ``APIError``.

    Parameters
    ----------
    max_retries : int, default=3
        Maximum number of retry attempts.
    base_delay : float, default=1.0
        Base delay in seconds for exponential backoff.
    max_delay : float, default=60.0
        Maximum delay in seconds between retries.
    endpoint : str | None, optional
        Endpoint reported in connection errors.

    Examples
    --------
    >>> strategy = RetryStrategy(max_retries=3, base_delay=1.0)
    >>> result = await strategy.execute(lambda: client.chat.completions.create(**kwargs))
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        max_delay: float = DEFAULT_RETRY_MAX_DELAY,
        endpoint: str | None = None,
    ) -> None:
        self.max_retries: int = max_retries
        self.base_delay: float = base_delay
        self.max_delay: float = max_delay
        self.endpoint: str | None = endpoint

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a retry attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            The attempt number (0-indexed).

        Returns
        -------
        float
            Delay in seconds.
        """
        delay: float = self.base_delay * (2**attempt)
        return min(delay, self.max_delay)

    async def execute(
        self,
        func: Callable[[], Awaitable[Any]],
        *,
        on_retry: Callable[[Exception, int], None] | None = None,
    ) -> Any:
        """
        Execute a function with retry logic.

        Parameters
        ----------
        func : Callable[[], Awaitable[Any]]
            Async function to execute.
        on_retry : Callable[[Exception, int], None] | None, optional
            Callback called before each retry with the exception and attempt number.

        Returns
        -------
        Any
            Result of the function execution.

        Raises
        ------
        RateLimitError
            If the backend keeps rate limiting after all retries.
        ConnectionError
            If the backend stays unreachable after all retries.
        APIError
            If the backend returns a non-retryable error.
        """
        wait_time: float | None = None
        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return await func()
            except OpenAIRateLimitError as e:
                if attempt >= self.max_retries:
                    raise RateLimitError(
                        f"Rate limit exceeded after {self.max_retries} retries: {e}",
                        retry_after=wait_time,
                        cause=e,
                    ) from e
                wait_time = self._calculate_delay(attempt)
                last_exception = e
                logger.warning(
                    f"Rate limit exceeded (attempt {attempt + 1}/{self.max_retries + 1}), "
                    f"retrying in {wait_time:.2f}s",
                )
            except APIConnectionError as e:
                if attempt >= self.max_retries:
                    raise ConnectionError(
                        f"Cannot reach the model backend after {self.max_retries} retries: {e}",
                        endpoint=self.endpoint,
                        cause=e,
                    ) from e
                wait_time = self._calculate_delay(attempt)
                last_exception = e
                logger.warning(
                    f"Connection error (attempt {attempt + 1}/{self.max_retries + 1}), "
                    f"retrying in {wait_time:.2f}s: {e}",
                )
            except APIStatusError as e:
                logger.error(f"API error: {e}")
                raise APIError(str(e), status_code=e.status_code, cause=e) from e
            except OpenAIAPIError as e:
                logger.error(f"API error: {e}")
                raise APIError(str(e), cause=e) from e

            if on_retry and last_exception is not None:
                on_retry(last_exception, attempt)
            await asyncio.sleep(wait_time)

        raise RuntimeError("Retry strategy exhausted without result")
