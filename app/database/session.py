"""
============================================================================
Order Management API
Database Session - SQLAlchemy Engine & Session Management
============================================================================

Reliability Level: L5 High (Production Tier)
Input Constraints: SQLAlchemy database URL (PostgreSQL or SQLite)
Side Effects: Database connections

The engine and session factory are built by the application factory and
kept on app.state; nothing is created at import time.

- Server databases get a QueuePool sized for request concurrency
- SQLite (development/tests) enforces foreign keys on every connection
- All connections run in UTC

============================================================================
"""

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool


DEFAULT_DATABASE_URL = "sqlite:///./orders.db"


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


# ============================================================================
# SQLALCHEMY ENGINE
# ============================================================================

def create_db_engine(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """
    Create the SQLAlchemy engine for the given URL.

    Reliability Level: L5 High
    Input Constraints: Valid SQLAlchemy URL
    Side Effects: Registers connection event listeners

    In-memory SQLite URLs share a single connection (StaticPool) so every
    session sees the same database.
    """
    if _is_sqlite(url):
        connect_args = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine = create_engine(
                url,
                connect_args=connect_args,
                poolclass=StaticPool,
                echo=echo,
            )
        else:
            engine = create_engine(url, connect_args=connect_args, echo=echo)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=10,           # Maintain 10 connections
        max_overflow=20,        # Allow up to 20 additional connections under load
        pool_timeout=30,        # Wait up to 30s for a connection
        pool_recycle=1800,      # Recycle connections after 30 minutes
        pool_pre_ping=True,     # Verify connections before use
        echo=echo,
        execution_options={
            "isolation_level": "READ COMMITTED"
        }
    )
    event.listen(engine, "connect", _set_timezone)
    return engine


# ============================================================================
# CONNECTION EVENT LISTENERS
# ============================================================================

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _set_timezone(dbapi_connection, connection_record):
    """All timestamps are UTC."""
    cursor = dbapi_connection.cursor()
    cursor.execute("SET timezone TO 'UTC'")
    cursor.close()


# ============================================================================
# SESSION FACTORY
# ============================================================================

def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory with explicit transaction control."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine
    )


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================

def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency for database session injection.

    Reliability Level: L5 High
    Input Constraints: app.state.session_factory set by the lifespan
    Side Effects: Creates and closes database session

    Yields:
        Session: SQLAlchemy database session

    - Session is automatically closed after request
    - Rollback on exception
    - Connection returned to pool
    """
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ============================================================================
# HEALTH CHECK
# ============================================================================

def check_database_connection(engine: Engine) -> bool:
    """
    Verify database connectivity.

    Returns:
        bool: True if database is reachable

    Raises:
        Exception: If database connection fails
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        raise Exception(f"Database connection failed: {e}")


# ============================================================================
# END OF DATABASE SESSION MODULE
# ============================================================================
