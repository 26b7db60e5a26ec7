"""
============================================================================
Order Management API - Persistence Gateway
============================================================================

Reliability Level: L5 High (Production Tier)
Decimal Integrity: Monetary values are bound as str(Decimal) and read back
                   through quantize_money()
Traceability: Store faults are re-raised as typed errors for the services

Raw SQL over an injected SQLAlchemy Session. Two stores:

    AccountStore - accounts table
    OrderStore   - orders + order_items tables

Every mutating call runs in one transaction and commits before it
returns. On failure the session is rolled back and the SQLAlchemy error
is translated:

    OperationalError / DisconnectionError / TimeoutError -> TransientStoreError
    IntegrityError                                       -> StoreConstraintError

Anything else propagates unchanged.

============================================================================
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Sequence
import logging

from sqlalchemy import text, bindparam
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session

from services.order_models import (
    Account,
    AccountRole,
    ApprovalStatus,
    Order,
    OrderItem,
    OrderStatus,
    parse_timestamp,
    quantize_money,
)

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class StoreError(Exception):
    """Base class for persistence failures surfaced to the services."""


class TransientStoreError(StoreError):
    """Retryable fault: the store was momentarily unavailable."""


class StoreConstraintError(StoreError):
    """Deterministic constraint violation (unique key, foreign key)."""


TRANSIENT_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)


def _ts(value: Optional[datetime]) -> Optional[str]:
    """Timestamps are bound as ISO-8601 UTC strings (sortable, portable)."""
    return value.isoformat(timespec="microseconds") if value else None


class _StoreBase:
    """Shared transaction handling."""

    def __init__(self, session: Session):
        self._session = session

    def _fail(self, exc: SQLAlchemyError, operation: str) -> None:
        self._session.rollback()
        if isinstance(exc, TRANSIENT_ERRORS):
            logger.warning(f"[STORE] Transient fault | operation={operation} | error={type(exc).__name__}")
            raise TransientStoreError(f"{operation}: store unavailable") from exc
        if isinstance(exc, IntegrityError):
            logger.warning(f"[STORE] Constraint violation | operation={operation}")
            raise StoreConstraintError(f"{operation}: constraint violated") from exc
        raise exc

    def _read(self, operation: str, sql, params: Dict[str, Any]):
        try:
            return self._session.execute(sql, params).fetchall()
        except SQLAlchemyError as e:
            self._fail(e, operation)


# =============================================================================
# AccountStore Class
# =============================================================================

_ACCOUNT_COLUMNS = "id, username, email, password_hash, role, is_active, created_at"


def _row_to_account(row) -> Account:
    return Account(
        id=row[0],
        username=row[1],
        email=row[2],
        password_hash=row[3],
        role=AccountRole(row[4]),
        is_active=bool(row[5]),
        created_at=parse_timestamp(row[6]),
    )


class AccountStore(_StoreBase):
    """
    Account persistence.

    Reliability Level: L5 High
    Input Constraints: Session owned by the caller (one per request)
    Side Effects: Reads/writes the accounts table
    """

    def find_by_id(self, account_id: int) -> Optional[Account]:
        rows = self._read(
            "account.find_by_id",
            text(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = :id"),
            {"id": account_id},
        )
        return _row_to_account(rows[0]) if rows else None

    def find_by_username(self, username: str) -> Optional[Account]:
        rows = self._read(
            "account.find_by_username",
            text(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE username = :username"),
            {"username": username},
        )
        return _row_to_account(rows[0]) if rows else None

    def exists_username_or_email(self, username: str, email: str) -> bool:
        rows = self._read(
            "account.exists",
            text("SELECT 1 FROM accounts WHERE username = :username OR email = :email"),
            {"username": username, "email": email},
        )
        return bool(rows)

    def add(self, account: Account) -> Account:
        """Insert the account and populate its id."""
        try:
            result = self._session.execute(
                text("""
                    INSERT INTO accounts (
                        username, email, password_hash, role, is_active, created_at
                    ) VALUES (
                        :username, :email, :password_hash, :role, :is_active, :created_at
                    )
                    RETURNING id
                """),
                {
                    "username": account.username,
                    "email": account.email,
                    "password_hash": account.password_hash,
                    "role": account.role.value,
                    "is_active": account.is_active,
                    "created_at": _ts(account.created_at),
                },
            )
            account.id = result.scalar_one()
            self._session.commit()
        except SQLAlchemyError as e:
            self._fail(e, "account.add")
        except Exception:
            self._session.rollback()
            raise
        return account

    def set_active(self, account_id: int, active: bool) -> bool:
        """Returns False if no such account."""
        try:
            result = self._session.execute(
                text("UPDATE accounts SET is_active = :active WHERE id = :id"),
                {"active": active, "id": account_id},
            )
            self._session.commit()
        except SQLAlchemyError as e:
            self._fail(e, "account.set_active")
        except Exception:
            self._session.rollback()
            raise
        return result.rowcount > 0


# =============================================================================
# OrderStore Class
# =============================================================================

_ORDER_SELECT = """
    SELECT o.id, o.order_number, o.owner_id, o.description, o.total,
           o.status, o.approval_status, o.created_at, o.updated_at,
           o.approved_at, o.deleted_at, o.is_deleted, o.rejection_reason,
           a.username
    FROM orders o
    JOIN accounts a ON a.id = o.owner_id
"""


def _row_to_order(row) -> Order:
    return Order(
        id=row[0],
        order_number=row[1],
        owner_id=row[2],
        description=row[3],
        total=quantize_money(str(row[4])),
        status=OrderStatus(int(row[5])),
        approval_status=ApprovalStatus(int(row[6])),
        created_at=parse_timestamp(row[7]),
        updated_at=parse_timestamp(row[8]),
        approved_at=parse_timestamp(row[9]),
        deleted_at=parse_timestamp(row[10]),
        is_deleted=bool(row[11]),
        rejection_reason=row[12],
        owner_username=row[13],
    )


def _row_to_item(row) -> OrderItem:
    return OrderItem(
        id=row[0],
        order_id=row[1],
        product_name=row[2],
        quantity=int(row[3]),
        unit_price=quantize_money(str(row[4])),
        total_price=quantize_money(str(row[5])),
    )


class OrderStore(_StoreBase):
    """
    Order and line-item persistence.

    Reliability Level: L5 High
    Input Constraints: Session owned by the caller (one per request)
    Side Effects: Reads/writes orders and order_items

    Header and items are always written in the same commit, so a header
    without its items is never observable.
    """

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def order_number_exists(self, order_number: str) -> bool:
        """Checks every row, soft-deleted ones included."""
        rows = self._read(
            "order.number_exists",
            text("SELECT 1 FROM orders WHERE order_number = :order_number"),
            {"order_number": order_number},
        )
        return bool(rows)

    def find_active(self, order_id: int, owner_id: Optional[int] = None) -> Optional[Order]:
        """
        Load a non-deleted order with its items.

        With owner_id set, an order owned by someone else is reported
        exactly like a missing one.
        """
        sql = _ORDER_SELECT + " WHERE o.id = :id AND o.is_deleted = :deleted"
        params: Dict[str, Any] = {"id": order_id, "deleted": False}
        if owner_id is not None:
            sql += " AND o.owner_id = :owner_id"
            params["owner_id"] = owner_id

        rows = self._read("order.find_active", text(sql), params)
        if not rows:
            return None
        order = _row_to_order(rows[0])
        self._attach_items([order])
        return order

    def list_active(self, owner_id: Optional[int] = None) -> List[Order]:
        """Non-deleted orders, newest first; all owners when owner_id is None."""
        sql = _ORDER_SELECT + " WHERE o.is_deleted = :deleted"
        params: Dict[str, Any] = {"deleted": False}
        if owner_id is not None:
            sql += " AND o.owner_id = :owner_id"
            params["owner_id"] = owner_id
        sql += " ORDER BY o.created_at DESC, o.id DESC"

        orders = [_row_to_order(row) for row in self._read("order.list_active", text(sql), params)]
        self._attach_items(orders)
        return orders

    def _attach_items(self, orders: Sequence[Order]) -> None:
        if not orders:
            return
        by_id = {order.id: order for order in orders}
        query = text("""
            SELECT id, order_id, product_name, quantity, unit_price, total_price
            FROM order_items
            WHERE order_id IN :order_ids
            ORDER BY id
        """).bindparams(bindparam("order_ids", expanding=True))
        for row in self._read("order.items", query, {"order_ids": list(by_id)}):
            item = _row_to_item(row)
            by_id[item.order_id].items.append(item)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def add_order(self, order: Order) -> Order:
        """Insert header and items in one transaction; populates ids."""
        try:
            result = self._session.execute(
                text("""
                    INSERT INTO orders (
                        order_number, owner_id, description, total, status,
                        approval_status, rejection_reason, created_at, updated_at,
                        approved_at, deleted_at, is_deleted
                    ) VALUES (
                        :order_number, :owner_id, :description, :total, :status,
                        :approval_status, :rejection_reason, :created_at, :updated_at,
                        :approved_at, :deleted_at, :is_deleted
                    )
                    RETURNING id
                """),
                {
                    "order_number": order.order_number,
                    "owner_id": order.owner_id,
                    **self._header_params(order),
                    "created_at": _ts(order.created_at),
                },
            )
            order_id = result.scalar_one()
            self._insert_items(order_id, order.items)
            self._session.commit()
        except SQLAlchemyError as e:
            self._fail(e, "order.add")
        except Exception:
            self._session.rollback()
            raise

        order.id = order_id
        for item in order.items:
            item.order_id = order_id
        return order

    def save_header(self, order: Order) -> None:
        """Persist mutable header fields (status, approval, soft delete)."""
        try:
            self._update_header(order)
            self._session.commit()
        except SQLAlchemyError as e:
            self._fail(e, "order.save_header")
        except Exception:
            self._session.rollback()
            raise

    def replace_items(self, order: Order) -> None:
        """Swap the full item set and save the header in one transaction."""
        try:
            self._session.execute(
                text("DELETE FROM order_items WHERE order_id = :order_id"),
                {"order_id": order.id},
            )
            self._insert_items(order.id, order.items)
            self._update_header(order)
            self._session.commit()
        except SQLAlchemyError as e:
            self._fail(e, "order.replace_items")
        except Exception:
            self._session.rollback()
            raise

        for item in order.items:
            item.order_id = order.id

    @staticmethod
    def _header_params(order: Order) -> Dict[str, Any]:
        return {
            "description": order.description,
            "total": str(order.total),
            "status": int(order.status),
            "approval_status": int(order.approval_status),
            "rejection_reason": order.rejection_reason,
            "updated_at": _ts(order.updated_at),
            "approved_at": _ts(order.approved_at),
            "deleted_at": _ts(order.deleted_at),
            "is_deleted": order.is_deleted,
        }

    def _update_header(self, order: Order) -> None:
        self._session.execute(
            text("""
                UPDATE orders
                SET description = :description,
                    total = :total,
                    status = :status,
                    approval_status = :approval_status,
                    rejection_reason = :rejection_reason,
                    updated_at = :updated_at,
                    approved_at = :approved_at,
                    deleted_at = :deleted_at,
                    is_deleted = :is_deleted
                WHERE id = :id
            """),
            {"id": order.id, **self._header_params(order)},
        )

    def _insert_items(self, order_id: int, items: Sequence[OrderItem]) -> None:
        if not items:
            return
        self._session.execute(
            text("""
                INSERT INTO order_items (
                    order_id, product_name, quantity, unit_price, total_price
                ) VALUES (
                    :order_id, :product_name, :quantity, :unit_price, :total_price
                )
            """),
            [
                {
                    "order_id": order_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "unit_price": str(item.unit_price),
                    "total_price": str(item.total_price),
                }
                for item in items
            ],
        )


__all__ = [
    "StoreError",
    "TransientStoreError",
    "StoreConstraintError",
    "AccountStore",
    "OrderStore",
]
