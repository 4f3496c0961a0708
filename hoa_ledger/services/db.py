"""Database session management for the ledger workflows.

Provides SQLAlchemy session management with proper cleanup.
"""

from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hoa_ledger.models import Base


def create_db_engine(database_url: str, create_tables: bool = False) -> Engine:
    """Create an engine (SQLite uses StaticPool for simplicity in dev/test).

    Args:
        database_url: SQLAlchemy database URL (e.g., "sqlite:///./hoa_ledger.db")
        create_tables: Create missing tables (dev/test databases)
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url, pool_pre_ping=True)

    if create_tables:
        Base.metadata.create_all(engine)

    return engine


def create_session_factory(database_url: str, create_tables: bool = False) -> sessionmaker:
    """Build a session factory bound to a new engine."""
    engine = create_db_engine(database_url, create_tables=create_tables)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def session_scope(database_url: str, create_tables: bool = False) -> Generator[Session, None, None]:
    """
    Create a database session context.

    Yields:
        SQLAlchemy Session; closed and its engine disposed on exit

    Example:
        ```python
        for session in session_scope("sqlite:///./hoa_ledger.db"):
            units = session.query(Unit).all()
        ```
    """
    engine = create_db_engine(database_url, create_tables=create_tables)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


__all__ = ["create_db_engine", "create_session_factory", "session_scope"]
