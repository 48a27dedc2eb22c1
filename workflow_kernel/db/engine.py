"""
Module: workflow_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities for the transition history store.
Architecture position: Kernel > DB.  May import from db/base.py.  MUST NOT
    import from services/ or outer layers (create_tables imports models).

Invariants enforced:
    - Any SQLAlchemy URL is accepted.  In-memory SQLite uses a StaticPool so
      every session shares the one connection that holds the schema.
    - session_scope() commits on success and rolls back on any exception.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory called before
      init_engine_from_url().

Audit relevance:
    Transition history rows are added by TransitionHistoryRecorder inside the
    caller's session; they become durable with the caller's own commit, in
    the same transaction as the entity change.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from workflow_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

# Module-level engine and session factory
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
    **engine_kwargs: Any,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Postconditions: Module-level _engine and _SessionFactory are initialized.
        A second call overwrites the first.

    Args:
        database_url: Any SQLAlchemy URL (sqlite:///:memory:, postgresql://...).
        echo: If True, log all SQL statements.
        pool_pre_ping: If True, test connections before use.
        **engine_kwargs: Passed through to ``create_engine`` (pool sizing).

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    if _is_memory_sqlite(database_url):
        engine_kwargs.setdefault("poolclass", StaticPool)
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})

    _engine = create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=pool_pre_ping,
        **engine_kwargs,
    )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "echo": echo,
        },
    )

    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory for creating sessions.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  The exception
        is re-raised to the caller.

    Usage:
        with session_scope() as session:
            engine.transit("review")
            session.add(article)
            # Commits entity and history row together
    """
    session = get_session()
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


def create_tables() -> None:
    """
    Create all tables known to Base.metadata.

    Integrator models must be imported before calling so that their tables
    are registered; the kernel's own models are imported here.
    """
    from workflow_kernel.db.base import Base
    import workflow_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from workflow_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """
    Reset the engine and session factory.

    Useful for test cleanup.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)
