# ============================================================================
# Order Management API
# Database Module - SQLAlchemy Engine, Sessions & Schema
# ============================================================================

from app.database.session import (
    get_db,
    create_db_engine,
    create_session_factory,
    check_database_connection,
)
from app.database.schema import create_schema

__all__ = [
    "get_db",
    "create_db_engine",
    "create_session_factory",
    "check_database_connection",
    "create_schema",
]
