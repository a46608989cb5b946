"""
Retry Manager for source downloads.

This module provides retry logic with exponential backoff for transient
download failures (timeouts, 5xx responses, rate limiting, dropped
connections). Non-transient failures such as TLS errors or 4xx responses are
returned immediately.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import RetryConfig
from .enums import FetchErrorCode
from .exceptions import NetworkError

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    """Result of a retry operation."""

    success: bool
    result: Optional[T]
    attempts: int
    last_error: Optional[Exception]


class RetryManager:
    """
    Manages retry logic with exponential backoff.

    The delay before retry ``n`` (0-indexed) is ``base_delay * 2**n``,
    capped at ``max_delay``.
    """

    # Error codes that indicate transient errors (should retry)
    TRANSIENT_ERROR_CODES = frozenset({
        FetchErrorCode.TIMEOUT.value,
        FetchErrorCode.SERVER_ERROR.value,
        FetchErrorCode.RATE_LIMITED.value,
        FetchErrorCode.NETWORK_ERROR.value,
    })

    def __init__(
        self,
        config: RetryConfig,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        """
        Initialize the retry manager.

        Args:
            config: Retry configuration with max_retries, delays, and retryable errors
            sleep: Awaitable sleep function (defaults to asyncio.sleep)
        """
        self._config = config
        self._sleep = sleep or asyncio.sleep

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate wait time with exponential backoff.

        Args:
            attempt: The current attempt number (0-indexed)

        Returns:
            The delay in seconds before the next retry
        """
        delay = self._config.base_delay_seconds * (2 ** attempt)
        return min(delay, self._config.max_delay_seconds)

    def is_retryable_error(self, error_code) -> bool:
        """
        Check if an error code indicates a retryable (transient) error.

        Args:
            error_code: The error code to check (string or FetchErrorCode)

        Returns:
            True if the error is transient and should be retried
        """
        code = error_code.value if isinstance(error_code, FetchErrorCode) else str(error_code)
        if code in self._config.retryable_errors:
            return True
        return code in self.TRANSIENT_ERROR_CODES

    def is_retryable_exception(self, error: Exception) -> bool:
        """Retry only NetworkErrors carrying a transient code."""
        return isinstance(error, NetworkError) and self.is_retryable_error(error.code)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        is_retryable: Optional[Callable[[Exception], bool]] = None,
    ) -> RetryResult[T]:
        """
        Execute an operation with retry logic and exponential backoff.

        Args:
            operation: The async operation to execute
            is_retryable: Optional function to determine if an exception is retryable.
                         If not provided, all exceptions are considered retryable.

        Returns:
            RetryResult containing success status, result, attempts, and last error
        """
        last_error: Optional[Exception] = None
        attempts = 0

        # Total attempts = 1 initial + max_retries
        max_attempts = self._config.max_retries + 1

        while attempts < max_attempts:
            try:
                result = await operation()
                return RetryResult(
                    success=True,
                    result=result,
                    attempts=attempts + 1,
                    last_error=None,
                )
            except Exception as e:
                last_error = e
                attempts += 1

                should_retry = is_retryable(e) if is_retryable else True
                if not should_retry or attempts >= max_attempts:
                    break

                await self._sleep(self.calculate_delay(attempts - 1))

        return RetryResult(
            success=False,
            result=None,
            attempts=attempts,
            last_error=last_error,
        )
