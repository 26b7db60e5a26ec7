# ============================================================================
# Order Management API
# Pydantic Schemas - Request/Response Shapes
# ============================================================================

from app.schemas.auth import RegisterRequest, LoginRequest, AccountOut, AuthResponse
from app.schemas.orders import (
    OrderItemIn,
    CreateOrderRequest,
    UpdateOrderRequest,
    RejectOrderRequest,
    OrderItemOut,
    OrderOut,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "AccountOut",
    "AuthResponse",
    "OrderItemIn",
    "CreateOrderRequest",
    "UpdateOrderRequest",
    "RejectOrderRequest",
    "OrderItemOut",
    "OrderOut",
]
