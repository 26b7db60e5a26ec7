"""
============================================================================
Property-Based Tests for Soft Delete
============================================================================

Reliability Level: L5 High

Deleting an order hides it from every read path while the row stays in
the store. Repeating the delete is harmless and reports NOT_FOUND.

Properties tested:
- Only the first delete succeeds; later ones yield NF-001
- Deleted orders vanish from get, owner list, admin list and decisions
- The order number of a deleted order stays reserved

============================================================================
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.database.schema import create_schema
from app.database.session import create_db_engine, create_session_factory
from services.order_models import Account, OrderErrorCode, OrderItemInput
from services.order_service import OrderLifecycleService
from services.persistence import AccountStore, OrderStore
from services.retry_policy import RetryPolicy


ITEM = OrderItemInput(product_name="Widget", quantity=1, unit_price=Decimal("1.00"))


class TestSoftDeleteIdempotence:
    """Repeated soft_delete_order() calls."""

    @settings(max_examples=100, deadline=None)
    @given(repeats=st.integers(min_value=1, max_value=5), keep=st.integers(min_value=0, max_value=3))
    def test_repeated_delete(self, repeats, keep) -> None:
        engine = create_db_engine("sqlite://")
        create_schema(engine)
        session = create_session_factory(engine)()
        try:
            accounts = AccountStore(session)
            orders = OrderStore(session)
            owner = accounts.add(Account(id=0, username="alice", email="alice@x.com", password_hash="h"))
            service = OrderLifecycleService(
                order_store=orders,
                account_store=accounts,
                retry_policy=RetryPolicy(sleep=lambda delay: None),
            )
            kept = [service.create_order(owner.id, f"Keep {i}", [ITEM]).order.id for i in range(keep)]
            doomed = service.create_order(owner.id, "Doomed", [ITEM]).order

            outcomes = [service.soft_delete_order(doomed.id, owner.id) for _ in range(repeats)]
            assert outcomes[0].success
            assert all(r.error_code == OrderErrorCode.ORDER_NOT_FOUND for r in outcomes[1:])

            assert service.get_order(doomed.id, owner.id).error_code == OrderErrorCode.ORDER_NOT_FOUND
            assert sorted(o.id for o in service.list_orders_for_user(owner.id).orders) == sorted(kept)
            assert sorted(o.id for o in service.list_all_orders().orders) == sorted(kept)
            assert service.approve_order(doomed.id).error_code == OrderErrorCode.ORDER_NOT_FOUND
            assert service.reject_order(doomed.id, "gone").error_code == OrderErrorCode.ORDER_NOT_FOUND

            assert orders.order_number_exists(doomed.order_number)
        finally:
            session.close()
            engine.dispose()
