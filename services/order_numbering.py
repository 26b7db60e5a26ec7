"""
============================================================================
Order Management API - Order Numbering & Total Calculator
============================================================================

Reliability Level: L5 High (Production Tier)
Decimal Integrity: Totals use decimal.Decimal with ROUND_HALF_EVEN
Traceability: Collisions are logged with correlation_id

ORDER NUMBER FORMAT:
    <PREFIX>-<UTC yyyyMMddHHmmss>-<8 lowercase hex>
    e.g. ORD-20240105143000-3fa85f64

Every candidate is checked against the full order table (soft-deleted
rows included) and regenerated on collision. The loop is capped; hitting
the cap means the store's existence check is broken, not bad luck.

============================================================================
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, List, Optional
import logging
import uuid

from services.order_models import (
    OrderItem,
    OrderItemInput,
    PRECISION_MONEY,
    quantize_money,
)

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_ORDER_NUMBER_PREFIX = "ORD"
DEFAULT_MAX_ATTEMPTS = 10
ORDER_NUMBER_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
SUFFIX_LENGTH = 8

ZERO_TOTAL = Decimal("0.00")


# =============================================================================
# Exceptions
# =============================================================================

class OrderNumberExhaustedError(Exception):
    """Raised when no free order number is found within the attempt cap."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No unique order number after {attempts} attempts")


# =============================================================================
# OrderNumberGenerator Class
# =============================================================================

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _random_suffix() -> str:
    return uuid.uuid4().hex[:SUFFIX_LENGTH]


class OrderNumberGenerator:
    """
    Generates collision-checked order numbers.

    Reliability Level: L5 High
    Input Constraints: exists callable must query ALL orders, deleted included
    Side Effects: Logs collisions

    The clock and suffix source are injectable so collisions can be
    forced in tests.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_ORDER_NUMBER_PREFIX,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Optional[Callable[[], datetime]] = None,
        suffix_factory: Optional[Callable[[], str]] = None,
        log: Optional[logging.Logger] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._prefix = prefix
        self._max_attempts = max_attempts
        self._clock = clock or _utc_now
        self._suffix_factory = suffix_factory or _random_suffix
        self._logger = log or logger

    def candidate(self) -> str:
        """Build one candidate number without checking the store."""
        stamp = self._clock().astimezone(timezone.utc).strftime(ORDER_NUMBER_TIMESTAMP_FORMAT)
        return f"{self._prefix}-{stamp}-{self._suffix_factory()}"

    def generate_unique(
        self,
        exists: Callable[[str], bool],
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Return an order number that exists() reports as unused.

        Raises:
            OrderNumberExhaustedError: after max_attempts collisions
        """
        for attempt in range(1, self._max_attempts + 1):
            number = self.candidate()
            if not exists(number):
                return number
            self._logger.warning(
                f"[COLLISION] Order number already taken, regenerating | "
                f"order_number={number} | "
                f"attempt={attempt}/{self._max_attempts} | "
                f"correlation_id={correlation_id}"
            )

        self._logger.error(
            f"[COLLISION] Order number generation exhausted | "
            f"attempts={self._max_attempts} | "
            f"correlation_id={correlation_id}"
        )
        raise OrderNumberExhaustedError(self._max_attempts)


# =============================================================================
# Totals
# =============================================================================

def complete_items(items: Iterable[OrderItemInput]) -> List[OrderItemInput]:
    """Drop placeholder items (blank product name)."""
    return [item for item in items if item.is_complete]


def build_order_items(items: Iterable[OrderItemInput]) -> List[OrderItem]:
    """
    Materialize persistable line items from caller input.

    Blank-name items are dropped, names are trimmed and each total_price
    is derived as quantity x unit_price.
    """
    built = []
    for item in complete_items(items):
        unit_price = quantize_money(item.unit_price)
        built.append(OrderItem(
            id=None,
            order_id=None,
            product_name=item.product_name.strip(),
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=quantize_money(unit_price * item.quantity),
        ))
    return built


def compute_total(items: Iterable[OrderItemInput]) -> Decimal:
    """
    Sum quantity x unit_price over complete items.

    Returns Decimal("0.00") if nothing remains. Callers reject a total
    <= 0 as a business rule violation.
    """
    total = ZERO_TOTAL
    for item in build_order_items(items):
        total += item.total_price
    return total.quantize(PRECISION_MONEY)


__all__ = [
    "OrderNumberGenerator",
    "OrderNumberExhaustedError",
    "complete_items",
    "build_order_items",
    "compute_total",
]
