"""
Unit Tests for Request Validation

Tests the explicit per-request validators:
- validate_register()
- validate_login()
- validate_create_order()
- validate_update_order()
- validate_reject_reason()
"""

from decimal import Decimal
from typing import List

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from services.order_models import QUANTITY_MAX, FieldError, OrderItemInput
from services.validation import (
    validate_create_order,
    validate_login,
    validate_register,
    validate_reject_reason,
    validate_update_order,
)


def fields(errors: List[FieldError]) -> List[str]:
    return [e.field for e in errors]


def item(name, quantity=1, price="10.00") -> OrderItemInput:
    return OrderItemInput(product_name=name, quantity=quantity, unit_price=Decimal(price))


# =============================================================================
# Registration / Login
# =============================================================================

class TestValidateRegister:
    """Test validate_register()."""

    def test_valid_request(self) -> None:
        assert validate_register("alice", "alice@x.com", "Secur3!pass") == []

    def test_all_missing(self) -> None:
        assert set(fields(validate_register(None, None, None))) == {"username", "email", "password"}

    @pytest.mark.parametrize("username", ["ab", "a" * 51, "bad name", "semi;colon"])
    def test_bad_usernames(self, username: str) -> None:
        assert "username" in fields(validate_register(username, "a@b.co", "Secur3!pass"))

    @pytest.mark.parametrize("username", ["abc", "a.b_c-d", "A" * 50])
    def test_good_usernames(self, username: str) -> None:
        assert validate_register(username, "a@b.co", "Secur3!pass") == []

    @pytest.mark.parametrize("email", ["plain", "a@b", "@b.co", "a b@c.co"])
    def test_bad_emails(self, email: str) -> None:
        assert fields(validate_register("alice", email, "Secur3!pass")) == ["email"]

    @pytest.mark.parametrize("password", ["Sh0rt", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere", "A1a" + "x" * 98])
    def test_weak_passwords(self, password: str) -> None:
        assert "password" in fields(validate_register("alice", "a@b.co", password))


class TestValidateLogin:
    """Test validate_login()."""

    def test_valid(self) -> None:
        assert validate_login("alice", "whatever") == []

    def test_blank_fields(self) -> None:
        assert fields(validate_login("  ", "")) == ["username", "password"]


# =============================================================================
# Orders
# =============================================================================

class TestValidateCreateOrder:
    """Test validate_create_order()."""

    def test_valid(self) -> None:
        assert validate_create_order("Office supplies", [item("Widget", 2, "10.00")]) == []

    def test_description_required(self) -> None:
        assert fields(validate_create_order("  ", [item("Widget")])) == ["description"]

    def test_description_too_long(self) -> None:
        assert fields(validate_create_order("x" * 501, [item("Widget")])) == ["description"]

    def test_items_required(self) -> None:
        assert fields(validate_create_order("desc", [])) == ["items"]
        assert fields(validate_create_order("desc", None)) == ["items"]

    def test_all_items_blank(self) -> None:
        assert fields(validate_create_order("desc", [item("", 0, "0.00")])) == ["items"]

    def test_blank_placeholders_are_not_field_checked(self) -> None:
        assert validate_create_order("desc", [item("Widget"), item("", 0, "0.00")]) == []

    def test_too_many_items(self) -> None:
        assert "items" in fields(validate_create_order("desc", [item("W")] * 101))

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity(self, quantity: int) -> None:
        assert fields(validate_create_order("desc", [item("W", quantity)])) == ["items[0].quantity"]

    @pytest.mark.parametrize("quantity", [QUANTITY_MAX + 1, 2 ** 63])
    def test_quantity_above_column_range(self, quantity: int) -> None:
        assert fields(validate_create_order("desc", [item("W", quantity)])) == ["items[0].quantity"]

    def test_quantity_upper_bound_inclusive(self) -> None:
        assert validate_create_order("desc", [item("W", QUANTITY_MAX)]) == []

    @pytest.mark.parametrize("price", ["0.014", "10.005", "1.0000001"])
    def test_unit_price_sub_cent_rejected(self, price: str) -> None:
        errors = validate_create_order("desc", [item("W", 1, price)])
        assert fields(errors) == ["items[0].unit_price"]
        assert "2 decimal places" in errors[0].message

    def test_unit_price_trailing_zeros_allowed(self) -> None:
        assert validate_create_order("desc", [item("W", 1, "10.000"), item("V", 1, "3")]) == []

    @pytest.mark.parametrize("price", ["0.00", "-1.00", "1000000.00"])
    def test_unit_price_out_of_range(self, price: str) -> None:
        assert fields(validate_create_order("desc", [item("W", 1, price)])) == ["items[0].unit_price"]

    def test_unit_price_bounds_inclusive(self) -> None:
        assert validate_create_order("desc", [item("W", 1, "0.01"), item("V", 1, "999999.99")]) == []

    def test_product_name_too_long(self) -> None:
        assert fields(validate_create_order("desc", [item("x" * 201)])) == ["items[0].product_name"]


class TestValidateUpdateOrder:
    """Test validate_update_order()."""

    def test_status_only(self) -> None:
        assert validate_update_order(None, 1, None) == []

    @pytest.mark.parametrize("status", [-1, 5, None, "1", True])
    def test_bad_status(self, status) -> None:
        assert "status" in fields(validate_update_order(None, status, None))

    def test_items_must_all_be_complete(self) -> None:
        errors = validate_update_order(None, 0, [item("Widget"), item("")])
        assert "items[1].product_name" in fields(errors)

    def test_empty_items_list_is_allowed(self) -> None:
        assert validate_update_order(None, 0, []) == []

    def test_long_description(self) -> None:
        assert fields(validate_update_order("x" * 501, 0, None)) == ["description"]


class TestValidateRejectReason:
    """Test validate_reject_reason()."""

    def test_reason_present(self) -> None:
        assert validate_reject_reason("out of stock") == []

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_blank_reason(self, reason) -> None:
        assert fields(validate_reject_reason(reason)) == ["reason"]

    def test_reason_too_long(self) -> None:
        assert fields(validate_reject_reason("x" * 501)) == ["reason"]
