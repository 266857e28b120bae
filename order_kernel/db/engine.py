"""
Module: order_kernel.db.engine
Responsibility: Owns the process-wide SQLAlchemy engine behind
    ``SqlDocumentStore`` and hands out transactional sessions.
Architecture position: Kernel > DB.  May import from db/base.py and
    db/models.py.  MUST NOT import from domain/ or outer layers.

Invariants enforced:
    - At most one engine is live.  Re-initialising disposes the previous
      one; ``reset_engine()`` drops it entirely.
    - An in-memory SQLite URL is served by a single shared connection
      (StaticPool), otherwise every session would see an empty database.
      Server backends get a pre-pinged QueuePool.
    - ``session_scope`` commits exactly once or rolls back; the session is
      closed either way.

Failure modes:
    - RuntimeError when a session or the engine is requested before
      ``init_engine_from_url()``.
    - SQLAlchemyError from the driver propagates; the store wraps it.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from order_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Database engine not initialized; call init_engine_from_url() first"


def _pool_options(url: URL, pool_size: int, max_overflow: int, pool_pre_ping: bool) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": pool_pre_ping,
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    Args:
        database_url: SQLAlchemy URL; ``sqlite://`` keeps everything in memory.
        echo: Log emitted SQL.
        pool_size, max_overflow, pool_pre_ping: QueuePool tuning, ignored
            for SQLite.
    """
    global _engine, _sessions

    url = make_url(database_url)
    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(
        url, echo=echo, **_pool_options(url, pool_size, max_overflow, pool_pre_ping),
    )
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": url.get_backend_name(), "database": url.database or ":memory:"},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    if _sessions is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _sessions()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Yield a session; commit on success, roll back and re-raise on error."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create the ``order_documents`` table when it is missing."""
    from order_kernel.db import models  # noqa: F401  (registers the table)
    from order_kernel.db.base import Base

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every table of the document store.  Test suites only."""
    from order_kernel.db import models  # noqa: F401
    from order_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None


@atexit.register
def _dispose_at_exit() -> None:
    if _engine is not None:
        _engine.dispose()
