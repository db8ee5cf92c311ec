"""
Module: ledger_kernel.db.engine
Responsibility: Own the process-wide SQLAlchemy engine and session factory
    used by the reference persistence collaborator.
Architecture position: Kernel > DB.  ORM modules are imported lazily inside
    create_tables() so Base.metadata is complete when tables are built.

Invariants enforced:
    - In-memory SQLite shares one connection (StaticPool); every session
      sees the same database.
    - File SQLite hands each session its own connection, so concurrent
      sessions contend on real rows.
    - Sessions do not expire attributes on commit; services return DTOs
      built from committed rows.

Failure modes:
    - RuntimeError from get_engine/get_session before init_engine_from_url().
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _engine_options(database_url: str) -> dict[str, Any]:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}
    if url.database in (None, "", ":memory:"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"connect_args": {"check_same_thread": False, "timeout": 30}}


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Create the engine for ``database_url``, replacing any previous one."""
    global _engine, _session_factory

    reset_engine()
    _engine = create_engine(database_url, echo=echo, **_engine_options(database_url))
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized; call init_engine_from_url() first")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError("Engine not initialized; call init_engine_from_url() first")
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One unit of work: commit on success, otherwise roll back and re-raise.

    The session is always closed on exit.
    """
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
    from ledger_kernel.db.base import Base
    from ledger_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    from ledger_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any, and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
