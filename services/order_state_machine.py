"""
============================================================================
Order Fulfillment State Machine
============================================================================

Reliability Level: L5 High (Production Tier)
Traceability: Rejected transitions are logged with correlation_id

FULFILLMENT TRANSITIONS (strict mode):
    PENDING   → CONFIRMED, CANCELLED
    CONFIRMED → SHIPPED, CANCELLED
    SHIPPED   → DELIVERED, CANCELLED
    DELIVERED → (terminal)
    CANCELLED → (terminal)

    Re-submitting the current state is always allowed.

The table is only enforced when ORDER_STRICT_STATUS_TRANSITIONS is on.
By default an update may set any status, which lets an owner correct a
status that was set by mistake.

ERROR CODES:
    - BUS-003: Invalid status transition attempted

============================================================================
"""

from typing import Dict, List, Optional, Tuple
import logging

from services.order_models import OrderErrorCode, OrderStatus

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# VALID_TRANSITIONS Constant
# =============================================================================

VALID_TRANSITIONS: Dict[OrderStatus, List[OrderStatus]] = {
    OrderStatus.PENDING: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED, OrderStatus.CANCELLED],
    OrderStatus.DELIVERED: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
}

TERMINAL_STATES: List[OrderStatus] = [OrderStatus.DELIVERED, OrderStatus.CANCELLED]


def is_terminal_state(status: OrderStatus) -> bool:
    return status in TERMINAL_STATES


def validate_transition(
    current: OrderStatus,
    target: OrderStatus,
    correlation_id: Optional[str] = None
) -> Tuple[bool, Optional[str]]:
    """
    Check a fulfillment status change against VALID_TRANSITIONS.

    Returns:
        (True, None) if allowed, (False, "BUS-003") otherwise
    """
    if current == target:
        return (True, None)

    valid_targets = VALID_TRANSITIONS.get(current, [])
    if target not in valid_targets:
        valid_str = "/".join(s.name for s in valid_targets) if valid_targets else "NONE (terminal state)"
        logger.warning(
            f"[{OrderErrorCode.INVALID_TRANSITION}] "
            f"Invalid status transition: {current.name} → {target.name}. "
            f"Valid transitions from {current.name}: {valid_str} | "
            f"correlation_id={correlation_id}"
        )
        return (False, OrderErrorCode.INVALID_TRANSITION)

    logger.debug(
        f"[ORDER-STATE] Transition validated: {current.name} → {target.name} | "
        f"correlation_id={correlation_id}"
    )
    return (True, None)


__all__ = [
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "is_terminal_state",
    "validate_transition",
]
