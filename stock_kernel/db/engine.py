"""
Module: stock_kernel.db.engine
Responsibility: Engine and session-factory construction for the SQL
    key-value backend, plus the unit-of-work helper it runs every statement in.
Architecture position: Kernel > DB.  Imports db/base.py, and storage/orm.py
    inside ``create_tables`` so that ``Base.metadata`` knows every table.

Invariants enforced:
    - There is no module-level engine; whoever builds one owns it, so tests
      can run isolated in-memory databases side by side.
    - ``session_scope`` commits when the block exits normally and rolls back
      when it raises.

Failure modes:
    - OperationalError if the database URL cannot be opened.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stock_kernel.logging_config import get_logger

logger = get_logger("db.engine")

DEFAULT_DATABASE_URL = "sqlite:///:memory:"


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_engine_from_url(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """
    Build an engine for ``database_url``.

    An in-memory SQLite database lives inside a single connection, so it is
    pinned with a StaticPool and shared across threads.
    """
    if _is_memory_sqlite(database_url):
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "in_memory": _is_memory_sqlite(database_url)},
    )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Unit of work: commit on success, roll back and re-raise on error."""
    with session_factory() as session:
        try:
            yield session
        except Exception as exc:
            session.rollback()
            logger.debug(
                "session_rolled_back",
                extra={"error_type": type(exc).__name__},
            )
            raise
        session.commit()


def create_tables(engine: Engine) -> None:
    from stock_kernel.db.base import Base
    import stock_kernel.storage.orm  # noqa: F401  registers kv_entries

    Base.metadata.create_all(engine)


def drop_tables(engine: Engine) -> None:
    """Drop every table on ``Base.metadata`` (test teardown)."""
    from stock_kernel.db.base import Base

    Base.metadata.drop_all(engine)
