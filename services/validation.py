"""
============================================================================
Order Management API - Request Validation
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: Raw request values (may be None or malformed)
Side Effects: None (pure functions)

One explicit validation function per request type. Each returns a list
of FieldError; an empty list means the request may proceed to business
logic. Validation never raises and never touches the store.

VALIDATORS:
    - validate_register(username, email, password)
    - validate_login(username, password)
    - validate_create_order(description, items)
    - validate_update_order(description, status, items)
    - validate_reject_reason(reason)

============================================================================
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Sequence, Any

from services.order_models import (
    FieldError,
    OrderItemInput,
    OrderStatus,
    USERNAME_MIN_LENGTH,
    USERNAME_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    PASSWORD_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
    MAX_ITEMS_PER_ORDER,
    PRECISION_MONEY,
    QUANTITY_MAX,
    UNIT_PRICE_MIN,
    UNIT_PRICE_MAX,
)


# =============================================================================
# Patterns
# =============================================================================

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")

# Pragmatic address check: local@domain.tld, no whitespace
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

REJECTION_REASON_MAX_LENGTH = 500


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


# =============================================================================
# Account Requests
# =============================================================================

def validate_register(
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> List[FieldError]:
    """
    Validate a registration request.

    Rules:
        - username: required, 3-50 chars, letters/digits/._- only
        - email: required, address format
        - password: required, 8-100 chars, at least one upper, one lower, one digit
    """
    errors: List[FieldError] = []

    if _is_blank(username):
        errors.append(FieldError("username", "Username is required"))
    else:
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            errors.append(FieldError(
                "username",
                f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
            ))
        if not USERNAME_PATTERN.match(username):
            errors.append(FieldError(
                "username",
                "Username may only contain letters, digits, '.', '_' and '-'",
            ))

    if _is_blank(email):
        errors.append(FieldError("email", "Email is required"))
    elif not EMAIL_PATTERN.match(email):
        errors.append(FieldError("email", "Email must be a valid address"))

    if _is_blank(password):
        errors.append(FieldError("password", "Password is required"))
    else:
        if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
            errors.append(FieldError(
                "password",
                f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
            ))
        if not re.search(r"[A-Z]", password):
            errors.append(FieldError("password", "Password must contain an uppercase letter"))
        if not re.search(r"[a-z]", password):
            errors.append(FieldError("password", "Password must contain a lowercase letter"))
        if not re.search(r"[0-9]", password):
            errors.append(FieldError("password", "Password must contain a digit"))

    return errors


def validate_login(username: Optional[str], password: Optional[str]) -> List[FieldError]:
    """Login only requires both fields to be present."""
    errors: List[FieldError] = []
    if _is_blank(username):
        errors.append(FieldError("username", "Username is required"))
    if _is_blank(password):
        errors.append(FieldError("password", "Password is required"))
    return errors


# =============================================================================
# Order Requests
# =============================================================================

def _validate_item(index: int, item: OrderItemInput) -> List[FieldError]:
    prefix = f"items[{index}]"
    errors: List[FieldError] = []

    if item.product_name is not None and len(item.product_name.strip()) > PRODUCT_NAME_MAX_LENGTH:
        errors.append(FieldError(
            f"{prefix}.product_name",
            f"Product name must not exceed {PRODUCT_NAME_MAX_LENGTH} characters",
        ))

    if not isinstance(item.quantity, int) or isinstance(item.quantity, bool) or item.quantity <= 0:
        errors.append(FieldError(f"{prefix}.quantity", "Quantity must be greater than zero"))
    elif item.quantity > QUANTITY_MAX:
        errors.append(FieldError(f"{prefix}.quantity", f"Quantity must not exceed {QUANTITY_MAX}"))

    price = _as_decimal(item.unit_price)
    if price is None or not price.is_finite() or not UNIT_PRICE_MIN <= price <= UNIT_PRICE_MAX:
        errors.append(FieldError(
            f"{prefix}.unit_price",
            f"Unit price must be between {UNIT_PRICE_MIN} and {UNIT_PRICE_MAX}",
        ))
    elif price != price.quantize(PRECISION_MONEY):
        errors.append(FieldError(f"{prefix}.unit_price", "Unit price must have at most 2 decimal places"))

    return errors


def _validate_description(description: Optional[str], required: bool) -> List[FieldError]:
    if _is_blank(description):
        if required:
            return [FieldError("description", "Description is required")]
        return []
    if len(description) > DESCRIPTION_MAX_LENGTH:
        return [FieldError(
            "description",
            f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters",
        )]
    return []


def validate_create_order(
    description: Optional[str],
    items: Optional[Sequence[OrderItemInput]],
) -> List[FieldError]:
    """
    Validate an order creation request.

    Items with a blank product name are placeholders: they are skipped
    here and dropped later, but at least one complete item must remain.
    Only complete items are checked field by field.
    """
    errors = _validate_description(description, required=True)

    if not items:
        errors.append(FieldError("items", "At least one item is required"))
        return errors

    if len(items) > MAX_ITEMS_PER_ORDER:
        errors.append(FieldError(
            "items",
            f"An order may not contain more than {MAX_ITEMS_PER_ORDER} items",
        ))

    complete = [(i, item) for i, item in enumerate(items) if item.is_complete]
    if not complete:
        errors.append(FieldError("items", "At least one item must have a product name"))
        return errors

    for index, item in complete:
        errors.extend(_validate_item(index, item))

    return errors


def validate_update_order(
    description: Optional[str],
    status: Any,
    items: Optional[Sequence[OrderItemInput]],
) -> List[FieldError]:
    """
    Validate an order update request.

    Description is optional. When items are supplied they replace the
    whole set, so every one of them must be complete and valid.
    """
    errors = _validate_description(description, required=False)

    valid_statuses = {int(s) for s in OrderStatus}
    if isinstance(status, bool) or not isinstance(status, int) or status not in valid_statuses:
        errors.append(FieldError("status", "Status must be one of 0, 1, 2, 3, 4"))

    if items:
        if len(items) > MAX_ITEMS_PER_ORDER:
            errors.append(FieldError(
                "items",
                f"An order may not contain more than {MAX_ITEMS_PER_ORDER} items",
            ))
        for index, item in enumerate(items):
            if not item.is_complete:
                errors.append(FieldError(f"items[{index}].product_name", "Product name is required"))
            errors.extend(_validate_item(index, item))

    return errors


def validate_reject_reason(reason: Optional[str]) -> List[FieldError]:
    """A rejection must say why."""
    if _is_blank(reason):
        return [FieldError("reason", "Rejection reason is required")]
    if len(reason) > REJECTION_REASON_MAX_LENGTH:
        return [FieldError(
            "reason",
            f"Rejection reason must not exceed {REJECTION_REASON_MAX_LENGTH} characters",
        )]
    return []


__all__ = [
    "validate_register",
    "validate_login",
    "validate_create_order",
    "validate_update_order",
    "validate_reject_reason",
]
