"""
============================================================================
Order Management API - Store Retry Policy
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Wrapped operations must be idempotent at the row level
Side Effects: Sleeps between attempts; logs every retry

Bounded exponential backoff around persistence-mutating calls. Only
TransientStoreError is retried; every other exception (constraint
violations, programming errors) propagates on the first attempt.

    attempt 1 fails -> wait base_delay
    attempt 2 fails -> wait base_delay * multiplier
    attempt 3 fails -> wait base_delay * multiplier^2
    attempt 4 fails -> re-raise

Defaults: 3 retries, 100ms base, 2x multiplier (100ms, 200ms, 400ms).

============================================================================
"""

from typing import Callable, Optional, TypeVar
import logging
import time

from services.persistence import TransientStoreError
from app.observability.metrics import record_store_retry

# Configure module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")


DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 0.1
DEFAULT_MULTIPLIER = 2.0
DEFAULT_MAX_DELAY_SECONDS = 5.0


class RetryPolicy:
    """
    Retry wrapper for transient store faults.

    Reliability Level: L5 High

    The sleep function is injectable so tests run without real delays.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        multiplier: float = DEFAULT_MULTIPLIER,
        max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        log: Optional[logging.Logger] = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self._sleep = sleep
        self._logger = log or logger

    def get_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based), capped at max_delay."""
        delay = self.base_delay * (self.multiplier ** (attempt - 1))
        return min(delay, self.max_delay)

    def execute(
        self,
        operation: Callable[[], T],
        operation_name: str = "store",
        correlation_id: Optional[str] = None,
    ) -> T:
        """
        Run operation, retrying on TransientStoreError.

        Raises:
            TransientStoreError: when every attempt failed
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except TransientStoreError:
                if attempt > self.max_retries:
                    self._logger.error(
                        f"[RETRY] Giving up after {self.max_retries} retries | "
                        f"operation={operation_name} | "
                        f"correlation_id={correlation_id}"
                    )
                    raise
                delay = self.get_delay(attempt)
                self._logger.warning(
                    f"[RETRY] attempt {attempt}/{self.max_retries} failed, "
                    f"retrying in {int(delay * 1000)}ms | "
                    f"operation={operation_name} | "
                    f"correlation_id={correlation_id}"
                )
                record_store_retry(correlation_id)
                self._sleep(delay)


__all__ = ["RetryPolicy"]
