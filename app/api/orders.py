"""
============================================================================
Order Management API
Order API Endpoints
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints:
    - Bearer token authentication required on every route
    - Admin role for /admin/all, /approve and /reject
    - Monetary values serialized as strings
Side Effects:
    - Database writes to orders and order_items tables
    - Audit log entries for every mutation
    - Prometheus metrics updates

ENDPOINTS:
    POST   /api/orders                - Create order
    GET    /api/orders                - List caller's orders (newest first)
    GET    /api/orders/admin/all      - List every order (Admin)
    GET    /api/orders/{id}           - Get caller's order
    PUT    /api/orders/{id}           - Update caller's order
    DELETE /api/orders/{id}           - Soft-delete caller's order
    POST   /api/orders/{id}/approve   - Approve any order (Admin)
    POST   /api/orders/{id}/reject    - Reject any order (Admin)

Orders belonging to another account answer 404, exactly like orders
that do not exist.

============================================================================
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response

from app.api.dependencies import (
    Principal,
    get_correlation_id,
    get_current_principal,
    get_order_service,
    require_admin,
)
from app.api.errors import raise_for_result
from app.schemas.orders import (
    CreateOrderRequest,
    OrderOut,
    RejectOrderRequest,
    UpdateOrderRequest,
)
from services.order_service import OrderLifecycleService

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# Router Configuration
# ============================================================================

router = APIRouter()


# ============================================================================
# Owner Endpoints
# ============================================================================

@router.post("", response_model=OrderOut, status_code=201, summary="Create an order")
def create_order(
    body: CreateOrderRequest,
    principal: Principal = Depends(get_current_principal),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> OrderOut:
    result = service.create_order(
        principal.account_id,
        body.description,
        body.item_inputs() if body.items is not None else None,
        correlation_id,
    )
    raise_for_result(result)
    return OrderOut.from_order(result.order)


@router.get("", response_model=List[OrderOut], summary="List my orders")
def list_my_orders(
    principal: Principal = Depends(get_current_principal),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> List[OrderOut]:
    result = service.list_orders_for_user(principal.account_id, correlation_id)
    raise_for_result(result)
    return [OrderOut.from_order(order) for order in result.orders]


# ============================================================================
# Administrator Endpoints
# ============================================================================
# Declared before /{order_id} so "admin" is never parsed as an id.

@router.get("/admin/all", response_model=List[OrderOut], summary="List all orders (Admin)")
def list_all_orders(
    admin: Principal = Depends(require_admin),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> List[OrderOut]:
    result = service.list_all_orders(correlation_id)
    raise_for_result(result)
    return [OrderOut.from_order(order) for order in result.orders]


@router.post("/{order_id}/approve", response_model=OrderOut, summary="Approve an order (Admin)")
def approve_order(
    order_id: int,
    admin: Principal = Depends(require_admin),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> OrderOut:
    logger.info(
        f"[ORDER-API] Approval requested | "
        f"order_id={order_id} | "
        f"admin_id={admin.account_id} | "
        f"correlation_id={correlation_id}"
    )
    result = service.approve_order(order_id, correlation_id)
    raise_for_result(result)
    return OrderOut.from_order(result.order)


@router.post("/{order_id}/reject", response_model=OrderOut, summary="Reject an order (Admin)")
def reject_order(
    order_id: int,
    body: RejectOrderRequest,
    admin: Principal = Depends(require_admin),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> OrderOut:
    logger.info(
        f"[ORDER-API] Rejection requested | "
        f"order_id={order_id} | "
        f"admin_id={admin.account_id} | "
        f"correlation_id={correlation_id}"
    )
    result = service.reject_order(order_id, body.reason, correlation_id)
    raise_for_result(result)
    return OrderOut.from_order(result.order)


# ============================================================================
# Single-Order Endpoints
# ============================================================================

@router.get("/{order_id}", response_model=OrderOut, summary="Get one of my orders")
def get_order(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> OrderOut:
    result = service.get_order(order_id, principal.account_id, correlation_id)
    raise_for_result(result)
    return OrderOut.from_order(result.order)


@router.put("/{order_id}", response_model=OrderOut, summary="Update one of my orders")
def update_order(
    order_id: int,
    body: UpdateOrderRequest,
    principal: Principal = Depends(get_current_principal),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> OrderOut:
    result = service.update_order(
        order_id,
        principal.account_id,
        body.description,
        body.status,
        body.item_inputs(),
        correlation_id,
    )
    raise_for_result(result)
    return OrderOut.from_order(result.order)


@router.delete("/{order_id}", status_code=204, summary="Delete one of my orders")
def delete_order(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    service: OrderLifecycleService = Depends(get_order_service),
    correlation_id: str = Depends(get_correlation_id),
) -> Response:
    result = service.soft_delete_order(order_id, principal.account_id, correlation_id)
    raise_for_result(result)
    return Response(status_code=204)
