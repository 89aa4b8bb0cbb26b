"""Database engine and session factory construction"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from authcore.config import Settings

logger = logging.getLogger(__name__)

# Create base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _take_over_sqlite_transactions(dbapi_connection, connection_record) -> None:
    # Let SQLAlchemy emit BEGIN itself.
    dbapi_connection.isolation_level = None


def _begin_immediate(conn) -> None:
    # Writers queue on the busy timeout instead of failing a SHARED->RESERVED upgrade.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str, *, pool_size: int = 10, max_overflow: int = 20, echo: bool = False) -> Engine:
    """
    Build an engine for the given URL

    SQLite engines get foreign-key enforcement so refresh tokens cascade
    with their account; in-memory SQLite shares one connection and
    file-backed SQLite opens every transaction with BEGIN IMMEDIATE.

    Args:
        url: SQLAlchemy database URL
        pool_size: Connection pool size (ignored for SQLite)
        max_overflow: Pool overflow (ignored for SQLite)
        echo: Log emitted SQL

    Returns:
        Engine: Configured engine
    """
    if url.startswith("sqlite"):
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
        else:
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False, "timeout": 30},
                echo=echo,
            )
            event.listen(engine, "connect", _take_over_sqlite_transactions)
            event.listen(engine, "begin", _begin_immediate)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=echo,
    )


def engine_from_settings(settings: Settings) -> Engine:
    return create_db_engine(
        settings.get_database_url(),
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        echo=settings.DEBUG,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory whose objects stay readable after commit"""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create missing tables"""
    # Import models so metadata is populated.
    from authcore import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured (%s)", engine.dialect.name)
