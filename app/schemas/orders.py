"""
============================================================================
Order Management API
Order Schemas - Pydantic Models for Order Endpoints
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Monetary values arrive as JSON strings or numbers and
                   are parsed into Decimal (never float)
Side Effects: None (pure data)

Field-level business rules (lengths, ranges, blank placeholders) belong
to services.validation; these models only fix the JSON shape.

============================================================================
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from services.order_models import Order, OrderItem, OrderItemInput


# ============================================================================
# REQUEST MODELS
# ============================================================================

class OrderItemIn(BaseModel):
    """One line item. A blank product_name marks an incomplete placeholder."""

    model_config = ConfigDict(extra="forbid")

    product_name: Optional[str] = Field(None, description="Product name (max 200 chars)")
    quantity: int = Field(0, description="Units ordered (> 0)")
    unit_price: Decimal = Field(Decimal("0"), description="Price per unit, 0.01-999999.99")

    def to_input(self) -> OrderItemInput:
        return OrderItemInput(
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


class CreateOrderRequest(BaseModel):
    """Create-order body."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "description": "Office supplies",
                "items": [
                    {"product_name": "Widget", "quantity": 2, "unit_price": "10.00"}
                ],
            }
        }
    )

    description: Optional[str] = Field(None, description="Order description (max 500 chars)")
    items: Optional[List[OrderItemIn]] = Field(None, description="1-100 line items")

    def item_inputs(self) -> List[OrderItemInput]:
        return [item.to_input() for item in self.items or []]


class UpdateOrderRequest(BaseModel):
    """Update-order body. Omit items to keep the current set."""

    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(None, description="New description; blank keeps the current one")
    status: Optional[int] = Field(None, description="Fulfillment status 0-4")
    items: Optional[List[OrderItemIn]] = Field(None, description="Replacement item set")

    def item_inputs(self) -> Optional[List[OrderItemInput]]:
        if self.items is None:
            return None
        return [item.to_input() for item in self.items]


class RejectOrderRequest(BaseModel):
    """Reject-order body."""

    model_config = ConfigDict(extra="forbid")

    reason: Optional[str] = Field(None, description="Why the order is rejected (required)")


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class OrderItemOut(BaseModel):
    id: Optional[int]
    product_name: str
    quantity: int
    unit_price: str = Field(..., description="Decimal as string")
    total_price: str = Field(..., description="Decimal as string")

    @classmethod
    def from_item(cls, item: OrderItem) -> "OrderItemOut":
        return cls(
            id=item.id,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price=str(item.unit_price),
            total_price=str(item.total_price),
        )


class OrderOut(BaseModel):
    """Order as returned to clients."""
    id: int
    order_number: str
    owner_id: int
    owner_username: Optional[str] = None
    description: str
    total: str = Field(..., description="Decimal as string")
    status: int = Field(..., description="0=Pending 1=Confirmed 2=Shipped 3=Delivered 4=Cancelled")
    status_label: str
    approval_status: int = Field(..., description="0=Pending 1=Approved 2=Rejected")
    approval_status_label: str
    rejection_reason: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None
    approved_at: Optional[str] = None
    items: List[OrderItemOut] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order: Order) -> "OrderOut":
        data = order.to_dict()
        data.pop("items")
        return cls(**data, items=[OrderItemOut.from_item(item) for item in order.items])
