"""
Process-wide database engine and session factory.

``init_engine_from_url`` is called once at startup (by the batch
orchestrator, the CLI, or a test fixture); everything else asks this module
for sessions.  PostgreSQL runs at READ COMMITTED and relies on
``SELECT ... FOR UPDATE`` in the services for read-then-write sequences.
SQLite gets foreign keys on every connection, and in-memory URLs share a
single connection so all sessions see one database.
"""

import atexit
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from fincontrol_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_READY = "Engine not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def build_engine(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Engine for ``database_url`` with backend-appropriate pooling.

    ``pool_options`` (pool_size, max_overflow, pool_timeout, pool_recycle)
    only apply to server databases; SQLite ignores them.
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
            **pool_options,
        )

    in_memory = url.database in (None, "", ":memory:")
    engine = create_engine(
        url,
        echo=echo,
        **(
            {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
            if in_memory
            else {}
        ),
    )
    event.listen(engine, "connect", _sqlite_pragmas)
    return engine


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """Install a new engine, disposing whichever one was installed before."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = build_engine(database_url, echo=echo, **pool_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory the scheduler uses to open one session per job run."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_READY)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One unit of work on a fresh session.

    Services commit their own work; whatever is still pending when the block
    exits normally is committed here.  On an exception the session is rolled
    back and the exception propagates.  The session is always closed.
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
    from fincontrol_kernel.db.base import Base
    import fincontrol_kernel.models  # noqa: F401  (registers every table)

    return Base.metadata


def create_tables() -> None:
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    """Drop every FinControl table.  Tests only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"


atexit.register(lambda: _engine.dispose() if _engine is not None else None)
