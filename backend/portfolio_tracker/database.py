# backend/portfolio_tracker/database.py
"""
Database connection and session management.

This module configures SQLAlchemy with:
- Connection pooling for production performance
- Environment-aware settings (test vs production)
- Health check capabilities

Pool Configuration (configurable via environment variables):
- DB_POOL_SIZE: Persistent connections (default: 5)
- DB_POOL_MAX_OVERFLOW: Burst capacity (default: 10)
- DB_POOL_RECYCLE: Connection lifetime (default: 3600s)

Services do not receive a Session from the request. They hold the
SessionLocal factory and open one short session per read, which keeps
concurrent price fetches on separate connections.
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool, QueuePool

from .config import settings

logger = logging.getLogger(__name__)


def _create_engine():
    """
    Create SQLAlchemy engine with environment-appropriate configuration.

    Configuration varies by database type:
    - SQLite: StaticPool so an in-memory database is shared by all sessions
    - PostgreSQL: QueuePool with configurable connection pooling
    """
    if settings.is_sqlite:
        # check_same_thread=False required for FastAPI's threadpool
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
        pool_pre_ping=True,
        pool_timeout=30,
        echo=settings.debug,
    )


engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Yields:
        Session: A SQLAlchemy database session that auto-closes after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_health(session: Session) -> dict:
    """
    Check database connectivity.

    Returns:
        dict: Health status, used by the /health endpoint
    """
    try:
        session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "sqlite" if settings.is_sqlite else "postgresql",
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
        }


def init_db() -> None:
    """
    Create the portfolios, trades and prices tables if they do not exist.

    Run once against a fresh database:
        portfolio-tracker-init-db
    """
    from .models import Base

    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
