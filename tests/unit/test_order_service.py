"""
Unit Tests for the Order Lifecycle Service

Tests OrderLifecycleService against in-memory SQLite:
- create_order() totals, placeholder items, owner checks
- owner-scoped reads (other owners see NOT_FOUND)
- update_order() description/status/items semantics
- soft_delete_order() idempotence
- approve_order()/reject_order() mutual exclusivity
- store faults reported as INTERNAL with a generic message
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from unittest.mock import Mock

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.database.schema import create_schema
from app.database.session import create_db_engine, create_session_factory
from services.order_config import OrderApiConfig
from services.order_models import (
    Account,
    AccountRole,
    ApprovalStatus,
    ErrorKind,
    OrderErrorCode,
    OrderItemInput,
    OrderStatus,
)
from services.order_numbering import OrderNumberGenerator
from services.order_service import INTERNAL_ERROR_MESSAGE, OrderLifecycleService
from services.persistence import AccountStore, OrderStore, TransientStoreError
from services.retry_policy import RetryPolicy


BASE_TIME = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def item(name, quantity=1, price="1.00") -> OrderItemInput:
    return OrderItemInput(product_name=name, quantity=quantity, unit_price=Decimal(price))


def ticking_clock():
    """Each call is one second later than the previous one."""
    ticks = count()
    return lambda: BASE_TIME + timedelta(seconds=next(ticks))


class Harness:
    def __init__(self, strict: bool = False, numbering: OrderNumberGenerator = None):
        self.engine = create_db_engine("sqlite://")
        create_schema(self.engine)
        self.session = create_session_factory(self.engine)()
        self.accounts = AccountStore(self.session)
        self.orders = OrderStore(self.session)
        self.service = OrderLifecycleService(
            order_store=self.orders,
            account_store=self.accounts,
            config=OrderApiConfig(jwt_secret="x" * 32, strict_status_transitions=strict),
            numbering=numbering,
            retry_policy=RetryPolicy(sleep=lambda delay: None),
            clock=ticking_clock(),
        )

    def account(self, username: str) -> int:
        return self.accounts.add(Account(
            id=0,
            username=username,
            email=f"{username}@x.com",
            password_hash="$2b$04$placeholder",
            role=AccountRole.STANDARD,
        )).id

    def close(self) -> None:
        self.session.close()
        self.engine.dispose()


@pytest.fixture
def harness():
    h = Harness()
    yield h
    h.close()


class TestCreateOrder:
    """Test create_order()."""

    def test_total_derived_from_items(self, harness) -> None:
        alice = harness.account("alice")
        result = harness.service.create_order(alice, "Office supplies", [item("Widget", 2, "10.00")], "corr-1")

        assert result.success
        assert result.correlation_id == "corr-1"
        order = result.order
        assert order.total == Decimal("20.00")
        assert order.status == OrderStatus.PENDING
        assert order.approval_status == ApprovalStatus.PENDING
        assert order.owner_username == "alice"
        assert order.order_number.startswith("ORD-")
        assert [(i.product_name, i.total_price) for i in order.items] == [("Widget", Decimal("20.00"))]

    def test_placeholder_items_dropped(self, harness) -> None:
        alice = harness.account("alice")
        placeholder = OrderItemInput(product_name="  ", quantity=0, unit_price=Decimal("0"))
        result = harness.service.create_order(
            alice, "Mixed", [item("Widget", 1, "4.00"), placeholder, item("Gadget", 3, "2.00")],
        )
        assert result.success
        assert [i.product_name for i in result.order.items] == ["Widget", "Gadget"]
        assert result.order.total == Decimal("10.00")

    def test_only_placeholders_is_validation_error(self, harness) -> None:
        alice = harness.account("alice")
        result = harness.service.create_order(alice, "Empty", [item("")])
        assert not result.success
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error_code == OrderErrorCode.VALIDATION_FAILED
        assert harness.orders.list_active() == []

    def test_quantity_beyond_storage_range_is_validation_error(self, harness) -> None:
        alice = harness.account("alice")
        result = harness.service.create_order(alice, "Huge", [item("Widget", 2 ** 63, "1.00")])
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error_code == OrderErrorCode.VALIDATION_FAILED
        assert [e.field for e in result.field_errors] == ["items[0].quantity"]

        # Nothing half-written is left behind for a later commit to pick up
        assert harness.service.create_order(alice, "Normal", [item("Widget")]).success
        assert [o.description for o in harness.orders.list_active()] == ["Normal"]

    def test_unknown_owner(self, harness) -> None:
        result = harness.service.create_order(4242, "Ghost", [item("Widget")])
        assert result.error_kind == ErrorKind.NOT_FOUND
        assert result.error_code == OrderErrorCode.ACCOUNT_NOT_FOUND

    def test_order_number_exhaustion(self) -> None:
        numbering = OrderNumberGenerator(
            max_attempts=3,
            clock=lambda: BASE_TIME,
            suffix_factory=lambda: "aaaaaaaa",
        )
        h = Harness(numbering=numbering)
        try:
            alice = h.account("alice")
            assert h.service.create_order(alice, "First", [item("Widget")]).success

            result = h.service.create_order(alice, "Second", [item("Widget")])
            assert result.error_kind == ErrorKind.INTERNAL
            assert result.error_code == OrderErrorCode.NUMBERING_EXHAUSTED
            assert result.error_message == INTERNAL_ERROR_MESSAGE
            assert len(h.orders.list_active()) == 1
        finally:
            h.close()


class TestOwnerScopedReads:
    """Test get_order() and list_orders_for_user()."""

    def test_other_owner_sees_not_found(self, harness) -> None:
        alice = harness.account("alice")
        bob = harness.account("bob")
        order = harness.service.create_order(alice, "Mine", [item("Widget")]).order

        assert harness.service.get_order(order.id, alice).success
        foreign = harness.service.get_order(order.id, bob)
        missing = harness.service.get_order(9999, bob)
        assert foreign.error_code == missing.error_code == OrderErrorCode.ORDER_NOT_FOUND
        assert foreign.error_message == missing.error_message

    def test_lists_are_scoped_and_newest_first(self, harness) -> None:
        alice = harness.account("alice")
        bob = harness.account("bob")
        first = harness.service.create_order(alice, "First", [item("A")]).order
        harness.service.create_order(bob, "Bob's", [item("B")])
        second = harness.service.create_order(alice, "Second", [item("C")]).order

        mine = harness.service.list_orders_for_user(alice)
        assert [o.id for o in mine.orders] == [second.id, first.id]
        assert len(harness.service.list_all_orders().orders) == 3


class TestUpdateOrder:
    """Test update_order()."""

    def test_blank_description_keeps_existing(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Original", [item("Widget", 2, "10.00")]).order

        result = harness.service.update_order(order.id, alice, "   ", int(OrderStatus.CONFIRMED))
        assert result.success
        assert result.order.description == "Original"
        assert result.order.status == OrderStatus.CONFIRMED
        assert result.order.total == Decimal("20.00")
        assert result.order.updated_at is not None

    def test_items_replace_set_and_total(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Original", [item("Widget", 2, "10.00")]).order

        result = harness.service.update_order(
            order.id, alice, "Revised", 0, [item("Gizmo", 4, "2.50"), item("Bolt", 10, "0.10")],
        )
        assert result.success
        assert result.order.description == "Revised"
        assert [i.product_name for i in result.order.items] == ["Gizmo", "Bolt"]
        assert result.order.total == Decimal("11.00")

    def test_empty_items_leave_items_untouched(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Original", [item("Widget", 2, "10.00")]).order

        result = harness.service.update_order(order.id, alice, None, 1, [])
        assert [i.product_name for i in result.order.items] == ["Widget"]

    def test_permissive_status_by_default(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Original", [item("Widget")]).order
        result = harness.service.update_order(order.id, alice, None, int(OrderStatus.DELIVERED))
        assert result.success
        result = harness.service.update_order(order.id, alice, None, int(OrderStatus.PENDING))
        assert result.success

    def test_strict_transitions(self) -> None:
        h = Harness(strict=True)
        try:
            alice = h.account("alice")
            order = h.service.create_order(alice, "Original", [item("Widget")]).order
            result = h.service.update_order(order.id, alice, None, int(OrderStatus.SHIPPED))
            assert result.error_kind == ErrorKind.BUSINESS_RULE
            assert result.error_code == OrderErrorCode.INVALID_TRANSITION
            assert h.service.update_order(order.id, alice, None, int(OrderStatus.CONFIRMED)).success
        finally:
            h.close()

    def test_strict_terminal_status_is_named(self) -> None:
        h = Harness(strict=True)
        try:
            alice = h.account("alice")
            order = h.service.create_order(alice, "Original", [item("Widget")]).order
            for status in (OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
                assert h.service.update_order(order.id, alice, None, int(status)).success

            result = h.service.update_order(order.id, alice, None, int(OrderStatus.CONFIRMED))
            assert result.error_code == OrderErrorCode.INVALID_TRANSITION
            assert result.error_message == "Order is in terminal status DELIVERED"

            result = h.service.update_order(order.id, alice, None, int(OrderStatus.PENDING))
            assert "terminal" in result.error_message
        finally:
            h.close()

    def test_invalid_status(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Original", [item("Widget")]).order
        result = harness.service.update_order(order.id, alice, None, 7)
        assert result.error_kind == ErrorKind.VALIDATION
        assert [e.field for e in result.field_errors] == ["status"]

    def test_other_owner_cannot_update(self, harness) -> None:
        alice = harness.account("alice")
        bob = harness.account("bob")
        order = harness.service.create_order(alice, "Original", [item("Widget")]).order
        result = harness.service.update_order(order.id, bob, "Hijacked", 4)
        assert result.error_code == OrderErrorCode.ORDER_NOT_FOUND
        assert harness.service.get_order(order.id, alice).order.description == "Original"


class TestSoftDelete:
    """Test soft_delete_order()."""

    def test_delete_hides_order(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Doomed", [item("Widget")]).order

        result = harness.service.soft_delete_order(order.id, alice)
        assert result.success
        assert result.order.is_deleted
        assert result.order.deleted_at is not None

        assert harness.service.get_order(order.id, alice).error_code == OrderErrorCode.ORDER_NOT_FOUND
        assert harness.service.list_orders_for_user(alice).orders == []
        assert harness.service.list_all_orders().orders == []
        assert harness.service.approve_order(order.id).error_code == OrderErrorCode.ORDER_NOT_FOUND

    def test_second_delete_not_found(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Doomed", [item("Widget")]).order
        assert harness.service.soft_delete_order(order.id, alice).success
        assert harness.service.soft_delete_order(order.id, alice).error_code == OrderErrorCode.ORDER_NOT_FOUND


class TestApprovalDecisions:
    """Test approve_order() and reject_order()."""

    def test_approve_then_reject_then_approve(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Review me", [item("Widget")]).order

        approved = harness.service.approve_order(order.id).order
        assert approved.approval_status == ApprovalStatus.APPROVED
        assert approved.approved_at is not None
        assert approved.rejection_reason is None

        rejected = harness.service.reject_order(order.id, "out of stock").order
        assert rejected.approval_status == ApprovalStatus.REJECTED
        assert rejected.rejection_reason == "out of stock"
        assert rejected.approved_at is None

        again = harness.service.approve_order(order.id).order
        assert again.rejection_reason is None
        assert again.approved_at is not None

        stored = harness.service.get_order(order.id, alice).order
        assert stored.approval_status == ApprovalStatus.APPROVED
        assert stored.rejection_reason is None

    def test_blank_reason_rejected(self, harness) -> None:
        alice = harness.account("alice")
        order = harness.service.create_order(alice, "Review me", [item("Widget")]).order
        result = harness.service.reject_order(order.id, "  ")
        assert result.error_kind == ErrorKind.VALIDATION
        assert harness.service.get_order(order.id, alice).order.approval_status == ApprovalStatus.PENDING

    def test_missing_order(self, harness) -> None:
        assert harness.service.approve_order(12345).error_code == OrderErrorCode.ORDER_NOT_FOUND
        assert harness.service.reject_order(12345, "nope").error_code == OrderErrorCode.ORDER_NOT_FOUND


class TestStoreFaults:
    """Store failures surface as INTERNAL without leaking details."""

    def _service(self, order_store) -> OrderLifecycleService:
        account_store = Mock()
        account_store.find_by_id.return_value = Account(
            id=1, username="alice", email="alice@x.com", password_hash="h",
        )
        return OrderLifecycleService(
            order_store=order_store,
            account_store=account_store,
            retry_policy=RetryPolicy(max_retries=2, sleep=lambda delay: None),
        )

    def test_transient_fault_retried_then_reported(self) -> None:
        order_store = Mock()
        order_store.order_number_exists.return_value = False
        order_store.add_order.side_effect = TransientStoreError("down")

        result = self._service(order_store).create_order(1, "Desc", [item("Widget")])
        assert order_store.add_order.call_count == 3
        assert result.error_kind == ErrorKind.INTERNAL
        assert result.error_code == OrderErrorCode.TRANSIENT_STORE
        assert result.error_message == INTERNAL_ERROR_MESSAGE

    def test_transient_fault_recovers(self) -> None:
        order_store = Mock()
        order_store.order_number_exists.return_value = False
        order_store.add_order.side_effect = [TransientStoreError("down"), None]
        order_store.find_active.return_value = None

        result = self._service(order_store).create_order(1, "Desc", [item("Widget", 2, "3.00")])
        assert result.success
        assert result.order.total == Decimal("6.00")

    def test_unexpected_error_is_generic(self) -> None:
        order_store = Mock()
        order_store.find_active.side_effect = RuntimeError("secret connection string")

        result = self._service(order_store).get_order(1, 1)
        assert result.error_code == OrderErrorCode.INTERNAL
        assert "secret" not in result.error_message
