from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from .errors import DomainError, classify_failure, invalid_account_data, is_retryable

T = TypeVar("T")


class RetryPolicy:
    """
    Bounded exponential backoff around a single-attempt remote call.

    With the defaults an operation gets 4 attempts in total, sleeping
    1s, 2s and 4s between them. Only 5xx downstream errors and
    connection-level failures are retried. A 4xx surfaces immediately as
    DownstreamClientError; other domain errors pass through untouched.
    Retry exhaustion and unclassified failures become InvalidAccountData.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_s: float = 1.0,
        multiplier: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay_s < 0:
            raise ValueError("base_delay_s must be >= 0")
        self.max_retries = max_retries
        self.base_delay_s = base_delay_s
        self.multiplier = multiplier
        self._sleep = sleep
        self._logger = logger or logging.getLogger("starling_roundup.retry")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """Delay before retry number `retry_number` (1-based)."""
        return self.base_delay_s * (self.multiplier ** (retry_number - 1))

    def with_retry(self, operation: Callable[[], T], label: str) -> T:
        last_err: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation()
            except Exception as e:
                last_err = e

                if not is_retryable(e):
                    classified = classify_failure(e)
                    if classified is None:
                        raise self._wrap(label, e) from e
                    if classified is e:
                        raise
                    raise classified from e

                if attempt == self.max_attempts:
                    break

                delay = self.delay_for(attempt)
                self._logger.warning(
                    "Retrying %s (attempt %s/%s) in %.1fs after error: %s",
                    label,
                    attempt + 1,
                    self.max_attempts,
                    delay,
                    e,
                )
                self._sleep(delay)

        raise self._wrap(label, last_err) from last_err

    def _wrap(self, label: str, exc: BaseException | None) -> DomainError:
        message = str(exc) if exc is not None else "unknown error"
        cause = exc.__cause__ if exc is not None else None
        if cause is not None:
            message += f": {cause}"
        self._logger.error("Failed to execute %s: %s", label, message)
        return invalid_account_data(f"Failed to execute {label}: {message}")
