"""
Module: supply_kernel.db.engine
Responsibility: one process-wide engine and session factory for the ledger
    database, plus the schema helpers used at startup and by tests.
Architecture position: Kernel > DB.  May import from db/base.py.  MUST NOT
    import from services/, selectors/, domain/, or outer layers (except
    create_tables, which imports models so Base.metadata is complete).

Invariants enforced:
    - SQLite (the default local backend) runs in WAL mode and opens every
      transaction with BEGIN IMMEDIATE.  A unit of work holds the write lock
      from its first statement to commit, so a concurrent reader sees either
      the state before it or the state after it, never a mix.
      Sessions opened with the READ_ONLY execution option begin DEFERRED
      instead and read the last committed snapshot without taking the lock.
    - Server databases (PostgreSQL) use READ COMMITTED with a pre-pinged
      QueuePool.

Failure modes:
    - RuntimeError if a session is requested before init_engine_from_url().
    - sqlite3.OperationalError ("database is locked") if a writer waits
      longer than ``sqlite_timeout`` seconds.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from supply_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

# Execution option marking a connection that only reads
READ_ONLY = "supply_read_only"

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    sqlite_timeout: float = 30.0,
) -> Engine:
    """
    Bind the module to ``database_url``.

    A second call disposes the previous engine first.  ``pool_size`` and
    ``max_overflow`` apply to server databases only; ``sqlite_timeout`` is
    how long a SQLite writer waits for the database lock.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        _engine = _sqlite_engine(database_url, echo, sqlite_timeout)
    else:
        _engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
        )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "database": url.database},
    )
    return _engine


def _sqlite_engine(database_url: str, echo: bool, timeout: float) -> Engine:
    database = make_url(database_url).database
    in_memory = database in (None, "", ":memory:")

    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": timeout},
        **({"poolclass": StaticPool} if in_memory else {}),
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # pysqlite must not issue its own BEGIN; "begin" below does
        dbapi_connection.isolation_level = None
        pragmas = ["PRAGMA foreign_keys=ON"]
        if not in_memory:
            pragmas.insert(0, "PRAGMA journal_mode=WAL")
        cursor = dbapi_connection.cursor()
        for pragma in pragmas:
            cursor.execute(pragma)
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(READ_ONLY):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def _require_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    return _require_factory()()


def get_session_factory() -> sessionmaker[Session]:
    """
    The factory handed to LotStore.

    Each thread needs its own session; pass the factory, not a session, to
    components that may run concurrently.
    """
    return _require_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Session committed on normal exit, rolled back on any exception.

    Usage:
        with session_scope() as session:
            session.execute(text("CREATE TABLE ..."))
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_scope_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from supply_kernel.db.base import Base
    import supply_kernel.models  # noqa: F401

    return Base.metadata


def create_tables() -> None:
    """Create missing ledger tables; existing tables and rows are untouched."""
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    """Drop every ledger table.  Tests and the reset command only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(lambda: _engine.dispose() if _engine is not None else None)
