"""
============================================================================
Property-Based Tests for Order Ownership Isolation
============================================================================

Reliability Level: L5 High

A caller only ever observes or mutates its own orders. Someone else's
order is indistinguishable from one that does not exist.

Properties tested:
- list_orders_for_user() returns exactly the caller's non-deleted orders
- get/update/delete of a foreign order yields NF-001 and changes nothing
- list_all_orders() is the union of every owner's list

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


# =============================================================================
# HYPOTHESIS STRATEGIES
# =============================================================================

USERNAMES = ["alice", "bob", "carol"]

# Each entry is the index of the owner placing that order
assignments_strategy = st.lists(st.integers(min_value=0, max_value=len(USERNAMES) - 1), min_size=1, max_size=12)

ITEM = OrderItemInput(product_name="Widget", quantity=1, unit_price=Decimal("9.99"))


class TestOwnershipIsolation:
    """Orders are partitioned by owner."""

    @settings(max_examples=100, deadline=None)
    @given(assignments=assignments_strategy, deleted=st.sets(st.integers(min_value=0, max_value=11)))
    def test_owners_only_see_their_orders(self, assignments, deleted) -> None:
        engine = create_db_engine("sqlite://")
        create_schema(engine)
        session = create_session_factory(engine)()
        try:
            accounts = AccountStore(session)
            owner_ids = [
                accounts.add(Account(id=0, username=name, email=f"{name}@x.com", password_hash="h")).id
                for name in USERNAMES
            ]
            service = OrderLifecycleService(
                order_store=OrderStore(session),
                account_store=accounts,
                retry_policy=RetryPolicy(sleep=lambda delay: None),
            )

            placed = {owner_id: set() for owner_id in owner_ids}
            for index, owner_index in enumerate(assignments):
                owner_id = owner_ids[owner_index]
                order = service.create_order(owner_id, f"Order {index}", [ITEM]).order
                if index in deleted:
                    assert service.soft_delete_order(order.id, owner_id).success
                else:
                    placed[owner_id].add(order.id)

            for owner_id in owner_ids:
                listed = service.list_orders_for_user(owner_id).orders
                assert {o.id for o in listed} == placed[owner_id]
                assert all(o.owner_id == owner_id for o in listed)

            all_ids = {o.id for o in service.list_all_orders().orders}
            assert all_ids == set().union(*placed.values())
        finally:
            session.close()
            engine.dispose()

    @settings(max_examples=100, deadline=None)
    @given(
        owner_index=st.integers(min_value=0, max_value=2),
        intruder_index=st.integers(min_value=0, max_value=2),
        status=st.integers(min_value=0, max_value=4),
    )
    def test_foreign_access_is_not_found(self, owner_index, intruder_index, status) -> None:
        if owner_index == intruder_index:
            intruder_index = (intruder_index + 1) % len(USERNAMES)

        engine = create_db_engine("sqlite://")
        create_schema(engine)
        session = create_session_factory(engine)()
        try:
            accounts = AccountStore(session)
            owner_ids = [
                accounts.add(Account(id=0, username=name, email=f"{name}@x.com", password_hash="h")).id
                for name in USERNAMES
            ]
            owner = owner_ids[owner_index]
            intruder = owner_ids[intruder_index]
            service = OrderLifecycleService(
                order_store=OrderStore(session),
                account_store=accounts,
                retry_policy=RetryPolicy(sleep=lambda delay: None),
            )
            order = service.create_order(owner, "Private", [ITEM]).order

            results = [
                service.get_order(order.id, intruder),
                service.update_order(order.id, intruder, "Hijacked", status),
                service.soft_delete_order(order.id, intruder),
            ]
            assert all(r.error_code == OrderErrorCode.ORDER_NOT_FOUND for r in results)

            untouched = service.get_order(order.id, owner).order
            assert untouched.description == "Private"
            assert int(untouched.status) == 0
            assert not untouched.is_deleted
        finally:
            session.close()
            engine.dispose()
