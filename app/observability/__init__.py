"""
============================================================================
Order Management API
Observability Module - Prometheus Metrics
============================================================================
"""

from app.observability.metrics import (
    ORDERS_CREATED,
    ORDER_DECISIONS,
    STORE_RETRIES,
    AUTH_ATTEMPTS,
    record_order_created,
    record_order_decision,
    record_store_retry,
    record_auth_attempt,
)

__all__ = [
    "ORDERS_CREATED",
    "ORDER_DECISIONS",
    "STORE_RETRIES",
    "AUTH_ATTEMPTS",
    "record_order_created",
    "record_order_decision",
    "record_store_retry",
    "record_auth_attempt",
]
