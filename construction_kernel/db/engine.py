"""
Module: construction_kernel.db.engine
Responsibility: Owns the single engine/session factory pair used by the
    hierarchy services, the schedule scanner and the monitor script.
Architecture position: Kernel > DB.  create_tables/drop_tables import the
    model package lazily so every table is registered on Base.metadata.

Invariants enforced:
    - Sessions autoflush: a cascade that runs after a write reads the value
      that was just written.
    - sqlite:// URLs share one connection (StaticPool), so an in-memory
      hierarchy outlives the session that built it.

Failure modes:
    - RuntimeError when a session is requested before init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from construction_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

# Applied to server databases only.
SERVER_POOL_OPTIONS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 5,
    "pool_pre_ping": True,
    "pool_recycle": 1800,
}


def _engine_options(backend: str, echo: bool, pool_options: dict[str, Any] | None) -> dict[str, Any]:
    if backend == "sqlite":
        return {
            "echo": echo,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    options = dict(SERVER_POOL_OPTIONS)
    options.update(pool_options or {})
    options["echo"] = echo
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_options: dict[str, Any] | None = None,
) -> Engine:
    """
    Bind the module engine to ``database_url`` and build its session factory.

    A later call disposes nothing; it simply replaces the module globals, so
    callers that switch databases should call reset_engine() first.
    ``pool_options`` override SERVER_POOL_OPTIONS and are ignored for SQLite.
    """
    global _engine, _SessionFactory

    backend = make_url(database_url).get_backend_name()
    _engine = create_engine(database_url, **_engine_options(backend, echo, pool_options))
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": backend, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit on success, roll back and re-raise on error.

    Services only flush; this is where a scan tick or a batch of hierarchy
    edits becomes durable.
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("unit_of_work_committed")
    except Exception:
        session.rollback()
        logger.warning("unit_of_work_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from construction_kernel.db.base import Base
    import construction_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from construction_kernel.db.base import Base
    import construction_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (test teardown)."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
