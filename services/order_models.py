"""
============================================================================
Order Management API - Domain Models
============================================================================

Reliability Level: L5 High (Production Tier)
Decimal Integrity: All monetary values use decimal.Decimal with ROUND_HALF_EVEN
Traceability: All results carry a correlation_id for audit

This module defines the data structures shared by the account and order
services:
- Enums for fulfillment status, approval status and account role
- Account, Order and OrderItem records (foreign-key ids, no back-references)
- Error kinds, error codes and typed operation results

ERROR CODES:
    - VAL-001: Request failed field validation
    - BUS-001: Order total must be greater than zero
    - BUS-002: Account with username or email already exists
    - BUS-003: Fulfillment status transition not allowed
    - NF-001: Order not found (or not owned by requester)
    - NF-002: Account not found
    - SEC-001: Authentication required
    - SEC-010: Invalid credentials
    - SEC-011: Account is deactivated
    - SEC-090: Role not permitted
    - DB-001: Store unavailable after retries
    - SYS-500: Unexpected internal error
    - SYS-501: Order number generation exhausted

============================================================================
"""

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
import logging

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Monetary precision (2 decimal places)
PRECISION_MONEY = Decimal("0.01")

# Field bounds
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
PRODUCT_NAME_MAX_LENGTH = 200
MAX_ITEMS_PER_ORDER = 100
# Largest quantity the items table stores (signed 32-bit INTEGER)
QUANTITY_MAX = 2_147_483_647
UNIT_PRICE_MIN = Decimal("0.01")
UNIT_PRICE_MAX = Decimal("999999.99")


# =============================================================================
# Error Codes
# =============================================================================

class OrderErrorCode:
    """Error codes surfaced by the account and order services."""
    VALIDATION_FAILED = "VAL-001"
    INVALID_TOTAL = "BUS-001"
    ACCOUNT_EXISTS = "BUS-002"
    INVALID_TRANSITION = "BUS-003"
    ORDER_NOT_FOUND = "NF-001"
    ACCOUNT_NOT_FOUND = "NF-002"
    AUTH_REQUIRED = "SEC-001"
    INVALID_CREDENTIALS = "SEC-010"
    ACCOUNT_INACTIVE = "SEC-011"
    ROLE_FORBIDDEN = "SEC-090"
    TRANSIENT_STORE = "DB-001"
    INTERNAL = "SYS-500"
    NUMBERING_EXHAUSTED = "SYS-501"


class ErrorKind(Enum):
    """
    Failure taxonomy for operation results.

    The HTTP boundary maps each kind to one status code. Transient store
    faults never appear here: they are retried and then reported as
    INTERNAL.
    """
    VALIDATION = "VALIDATION"
    BUSINESS_RULE = "BUSINESS_RULE"
    NOT_FOUND = "NOT_FOUND"
    AUTH = "AUTH"
    INTERNAL = "INTERNAL"


# =============================================================================
# Enums
# =============================================================================

class OrderStatus(IntEnum):
    """
    Fulfillment status of an order. Wire value is the integer.

    Pending → Confirmed → Shipped → Delivered, Cancelled reachable from
    any non-terminal state.
    """
    PENDING = 0
    CONFIRMED = 1
    SHIPPED = 2
    DELIVERED = 3
    CANCELLED = 4

    @property
    def label(self) -> str:
        return ORDER_STATUS_LABELS[self]


class ApprovalStatus(IntEnum):
    """Administrative review outcome, orthogonal to fulfillment status."""
    PENDING = 0
    APPROVED = 1
    REJECTED = 2

    @property
    def label(self) -> str:
        return APPROVAL_STATUS_LABELS[self]


class AccountRole(Enum):
    """Account roles. Values are the role names carried in tokens."""
    STANDARD = "User"
    ADMINISTRATOR = "Admin"


ORDER_STATUS_LABELS = {
    OrderStatus.PENDING: "Registrado",
    OrderStatus.CONFIRMED: "Confirmado",
    OrderStatus.SHIPPED: "Enviado",
    OrderStatus.DELIVERED: "Entregado",
    OrderStatus.CANCELLED: "Cancelado",
}

APPROVAL_STATUS_LABELS = {
    ApprovalStatus.PENDING: "Pendiente",
    ApprovalStatus.APPROVED: "Aprobado",
    ApprovalStatus.REJECTED: "Rechazado",
}


# =============================================================================
# Helpers
# =============================================================================

def quantize_money(value: Any) -> Decimal:
    """
    Coerce a value to Decimal with 2 decimal places (ROUND_HALF_EVEN).

    Floats are routed through str() so binary artefacts never leak in.
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        amount = Decimal(value)
    return amount.quantize(PRECISION_MONEY, rounding=ROUND_HALF_EVEN)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into an aware UTC datetime.

    SQLite hands back ISO strings through raw text() queries while
    PostgreSQL returns datetimes, so both are accepted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# Records
# =============================================================================

@dataclass
class Account:
    """
    Registered identity.

    Reliability Level: L5 High
    Input Constraints: username/email unique across the store
    Side Effects: None (data container)
    """
    id: int
    username: str
    email: str
    password_hash: str
    role: AccountRole = AccountRole.STANDARD
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Public summary. The password hash is never included."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
        }


@dataclass
class OrderItemInput:
    """Line item as supplied by a caller, before filtering and pricing."""
    product_name: Optional[str]
    quantity: int
    unit_price: Decimal

    @property
    def is_complete(self) -> bool:
        return bool(self.product_name and self.product_name.strip())


@dataclass
class OrderItem:
    """Persisted line item. Linked to its order by order_id only."""
    id: Optional[int]
    order_id: Optional[int]
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "total_price": str(self.total_price),
        }


@dataclass
class Order:
    """
    Purchase record owned by exactly one account.

    ownership is expressed as owner_id; owner_username is attached by the
    store when the row is read and is never written back.

    Reliability Level: L5 High
    Input Constraints: total > 0, order_number globally unique
    Side Effects: None (data container)
    """
    id: Optional[int]
    order_number: str
    owner_id: int
    description: str
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    is_deleted: bool = False
    rejection_reason: Optional[str] = None
    owner_username: Optional[str] = None
    items: List[OrderItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "owner_id": self.owner_id,
            "owner_username": self.owner_username,
            "description": self.description,
            "total": str(self.total),
            "status": int(self.status),
            "status_label": self.status.label,
            "approval_status": int(self.approval_status),
            "approval_status_label": self.approval_status.label,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "approved_at": _iso(self.approved_at),
            "rejection_reason": self.rejection_reason,
            "items": [item.to_dict() for item in self.items],
        }


# =============================================================================
# Results
# =============================================================================

@dataclass
class FieldError:
    """One (field, message) validation failure."""
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass
class OperationResult:
    """
    Outcome of a service operation.

    success=True carries a payload; success=False carries error_kind,
    error_code and a caller-safe error_message.
    """
    success: bool
    error_kind: Optional[ErrorKind] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    correlation_id: Optional[str] = None
    field_errors: List[FieldError] = field(default_factory=list)


@dataclass
class OrderResult(OperationResult):
    """Result carrying a single order."""
    order: Optional[Order] = None


@dataclass
class OrderListResult(OperationResult):
    """Result carrying a list of orders."""
    orders: List[Order] = field(default_factory=list)


@dataclass
class AccountResult(OperationResult):
    """Result carrying an account summary."""
    account: Optional[Account] = None


@dataclass
class AuthResult(OperationResult):
    """Result of register/login: the account plus a freshly issued token."""
    account: Optional[Account] = None
    token: Optional[str] = None
    expires_at: Optional[datetime] = None


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "PRECISION_MONEY",
    "OrderErrorCode",
    "ErrorKind",
    "OrderStatus",
    "ApprovalStatus",
    "AccountRole",
    "quantize_money",
    "parse_timestamp",
    "Account",
    "OrderItemInput",
    "OrderItem",
    "Order",
    "FieldError",
    "OperationResult",
    "OrderResult",
    "OrderListResult",
    "AccountResult",
    "AuthResult",
]
