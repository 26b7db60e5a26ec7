"""
============================================================================
Order Management API - Services Layer
============================================================================

Account and order business logic, credential handling, numbering,
retry policy and the SQL persistence gateway.

Reliability Level: L5 High
============================================================================
"""

from services.order_models import (
    Account,
    AccountRole,
    ApprovalStatus,
    ErrorKind,
    FieldError,
    Order,
    OrderErrorCode,
    OrderItem,
    OrderItemInput,
    OrderStatus,
)

__all__ = [
    "Account",
    "AccountRole",
    "ApprovalStatus",
    "ErrorKind",
    "FieldError",
    "Order",
    "OrderErrorCode",
    "OrderItem",
    "OrderItemInput",
    "OrderStatus",
]
