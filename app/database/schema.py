"""
============================================================================
Order Management API
Database Schema - Table Definitions
============================================================================

Reliability Level: L5 High (Production Tier)
Side Effects: DDL on create_schema()

TABLES:
    accounts     - registered identities (username/email unique)
    orders       - order headers (order_number unique, soft-delete columns)
    order_items  - line items, cascade-deleted with their order

Monetary columns are NUMERIC(18, 2). Timestamps are stored in UTC.

============================================================================
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
)
from sqlalchemy.engine import Engine


metadata = MetaData()


accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False, default="User"),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_number", String(64), nullable=False, unique=True),
    Column(
        "owner_id",
        Integer,
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("description", String(500), nullable=False),
    Column("total", Numeric(18, 2), nullable=False),
    Column("status", Integer, nullable=False, default=0),
    Column("approval_status", Integer, nullable=False, default=0),
    Column("rejection_reason", String(500), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    Column("approved_at", DateTime(timezone=True), nullable=True),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Column("is_deleted", Boolean, nullable=False, default=False),
)

Index("ix_orders_owner_active", orders.c.owner_id, orders.c.is_deleted)


order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "order_id",
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("product_name", String(200), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Numeric(18, 2), nullable=False),
    Column("total_price", Numeric(18, 2), nullable=False),
)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)


__all__ = ["metadata", "accounts", "orders", "order_items", "create_schema"]
