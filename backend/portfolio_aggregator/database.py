# backend/portfolio_aggregator/database.py
"""
Database engine and session management.

SQLite (tests, local runs) shares one connection through StaticPool so an
in-memory database survives across sessions. PostgreSQL uses a QueuePool
sized from settings.
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool, QueuePool

from portfolio_aggregator.config import settings

logger = logging.getLogger(__name__)


def _create_engine():
    """Build the engine for the configured database URL."""
    if settings.is_sqlite:
        logger.info("Configuring SQLite database")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info(
        f"Configuring PostgreSQL database pool: "
        f"size={settings.db_pool_size}, "
        f"max_overflow={settings.db_pool_max_overflow}, "
        f"recycle={settings.db_pool_recycle}s"
    )
    return create_engine(
        settings.database_url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_timeout=30,
        echo=settings.debug,
    )


engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Yields:
        Session: closed automatically once the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create every table registered on the declarative base."""
    from portfolio_aggregator.models import Base

    Base.metadata.create_all(bind=engine)


def check_database_health(db: Session) -> dict:
    """
    Run a trivial query against the database.

    Returns:
        dict with "status" of "healthy" or "unhealthy" and the backend name
    """
    backend = "sqlite" if settings.is_sqlite else "postgresql"
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": backend}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": backend, "error": str(e)}
