"""
Module: startupcall_kernel.db.engine
Responsibility: SQLAlchemy engine construction per backend, session factories,
    and transactional scope utilities.  This is the single point of database
    connection configuration for the entire system.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from models/, services/, selectors/, domain/, or outer layers
    (except for create_tables, which imports the ORM registry).

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED.  Cross-row consistency (budget
      category totals) relies on atomic conditional UPDATEs, which take the
      row lock and re-check the predicate against the committed row.
    - SQLite file databases start every transaction with BEGIN IMMEDIATE, so
      concurrent writers serialize on the database lock instead of failing
      late on lock upgrade.
    - SQLite in-memory databases share one connection (StaticPool) so that
      every session sees the same database.
    - Foreign keys are enforced on SQLite connections.

Failure modes:
    - OperationalError ("database is locked") if a SQLite writer waits longer
      than the configured busy timeout.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from startupcall_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _is_memory_sqlite(database: str | None) -> bool:
    return database in (None, "", ":memory:")


def _install_sqlite_listeners(engine: Engine, *, immediate: bool) -> None:
    """Enable FK enforcement, and when requested, BEGIN IMMEDIATE transactions."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        if immediate:
            # Hand transaction control to the "begin" listener below
            dbapi_connection.isolation_level = None

    if immediate:

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: float = 30.0,
) -> Engine:
    """
    Create an engine configured for the backend named by ``database_url``.

    Args:
        database_url: PostgreSQL or SQLite connection URL.
        echo: If True, log all SQL statements.
        pool_size: Number of connections to keep in the pool (PostgreSQL).
        max_overflow: Max connections beyond pool_size (PostgreSQL).
        pool_pre_ping: If True, test connections before use.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.
        sqlite_busy_timeout: Seconds a SQLite writer waits for the lock.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if _is_memory_sqlite(url.database):
            engine = create_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            _install_sqlite_listeners(engine, immediate=False)
        else:
            engine = create_engine(
                url,
                echo=echo,
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                connect_args={
                    "check_same_thread": False,
                    "timeout": sqlite_busy_timeout,
                },
            )
            _install_sqlite_listeners(engine, immediate=True)
        return engine

    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to ``engine``; objects stay loaded after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  The exception
        is re-raised to the caller.

    Usage:
        with session_scope(factory) as session:
            session.add(entity)
    """
    session = factory()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """
    Create all tables defined by the ORM models.

    All module ORM models are imported first so Base.metadata contains
    every table definition.
    """
    from startupcall_kernel.db.base import Base
    from startupcall_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(engine)
    logger.info(
        "tables_created",
        extra={"table_count": len(Base.metadata.tables), "dialect": engine.dialect.name},
    )
