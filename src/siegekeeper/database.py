"""Database connection, session management and the transactional executor.

This module provides engine and session factories, schema helpers, and
:func:`run_atomically` / :func:`atomic`, the single place where
transactions are opened, committed and rolled back.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy import create_engine, event, func, inspect, select, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from siegekeeper.config import get_settings
from siegekeeper.errors import SnapshotIntegrityError, TransientStorageError
from siegekeeper.models import Base

T = TypeVar("T")


def _configure_sqlite(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
    """Enable foreign keys (and WAL for file databases) on every SQLite connection.

    Args:
        dbapi_connection: The DBAPI connection
        connection_record: Connection record (required by SQLAlchemy event API)

    Note:
        SQLite ignores ``ON DELETE CASCADE`` and foreign-key checks unless
        ``PRAGMA foreign_keys`` is switched on per connection.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode")
    mode = cursor.fetchone()
    if mode is not None and str(mode[0]).lower() != "memory":
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_db_engine(url: str | None = None, *, echo: bool | None = None) -> Engine:
    """Create and configure a database engine.

    Args:
        url: Database URL; defaults to ``Settings.DATABASE_URL``
        echo: Override for ``Settings.DATABASE_ECHO``

    Returns:
        Engine: Configured SQLAlchemy engine

    Note:
        SQLite engines get foreign keys switched on. In-memory SQLite uses a
        single shared connection so every session sees the same database.
    """
    settings = get_settings()
    url = url or settings.DATABASE_URL
    echo = settings.DATABASE_ECHO if echo is None else echo

    if url.startswith("sqlite"):
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            engine = create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                url,
                echo=echo,
                pool_pre_ping=True,
                connect_args={"check_same_thread": False},
            )
        event.listen(engine, "connect", _configure_sqlite)
    else:
        # Non-SQLite (e.g., PostgreSQL): honor pool settings for production use
        engine = create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_recycle=settings.DATABASE_POOL_RECYCLE,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        )

    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Build a session factory bound to ``engine``."""

    return sessionmaker(bind=engine, autoflush=False)


# Global engine and session factory
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Get or create the global database engine.

    Returns:
        Engine: The SQLAlchemy engine instance
    """
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the global session factory.

    Returns:
        sessionmaker: Session factory for creating database sessions
    """
    global _SessionLocal  # noqa: PLW0603
    if _SessionLocal is None:
        _SessionLocal = make_session_factory(get_engine())
    return _SessionLocal


def dispose_engine() -> None:
    """Dispose the global engine and forget the cached session factory."""

    global _engine, _SessionLocal  # noqa: PLW0603
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


@contextmanager
def translate_storage_errors() -> Iterator[None]:
    """Re-raise SQLAlchemy failures as the engine's own error types.

    Constraint violations become :class:`SnapshotIntegrityError`; lost
    connections, locks and pool timeouts become :class:`TransientStorageError`.
    """
    try:
        yield
    except sa_exc.IntegrityError as exc:
        raise SnapshotIntegrityError(
            "Storage rejected the write", details={"reason": str(exc.orig)}
        ) from exc
    except (sa_exc.OperationalError, sa_exc.DisconnectionError, sa_exc.TimeoutError) as exc:
        raise TransientStorageError(
            "Storage engine unavailable", details={"reason": str(exc)}
        ) from exc


@contextmanager
def atomic(session_factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Open a session inside one transaction.

    Everything issued through the yielded session commits when the block
    exits normally and rolls back when it exits with any exception,
    cancellation included. The session is closed on every exit path.

    Example:
        ```python
        with atomic() as session:
            session.add(Campaign(name="Neverwinter"))
        ```
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        with translate_storage_errors(), session.begin():
            yield session
    finally:
        session.close()


def run_atomically(
    fn: Callable[[Session], T],
    *,
    session_factory: sessionmaker[Session] | None = None,
) -> T:
    """Run ``fn`` with a transactional session and return its result.

    Args:
        fn: Callable receiving the session; all writes it issues commit together
        session_factory: Factory to draw the session from (global by default)

    Returns:
        Whatever ``fn`` returns. Returned ORM objects are detached, so ``fn``
        should return plain values.

    Raises:
        SnapshotIntegrityError: A constraint rejected a write
        TransientStorageError: The storage engine was unreachable
    """
    with atomic(session_factory) as session:
        return fn(session)


def init_db(engine: Engine | None = None) -> None:
    """Initialize the database by creating all tables.

    Note:
        This creates tables directly without migrations. For production,
        use alembic migrations instead.
    """
    Base.metadata.create_all(bind=engine or get_engine())


def check_database_health(engine: Engine | None = None) -> bool:
    """Check if the database is accessible.

    Returns:
        bool: True if database is healthy, False otherwise
    """
    try:
        with (engine or get_engine()).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except sa_exc.SQLAlchemyError:
        return False


def get_table_names(engine: Engine | None = None) -> list[str]:
    """Get list of all table names in the database."""

    inspector = inspect(engine or get_engine())
    return inspector.get_table_names()


def count_rows(session: Session, table_name: str) -> int:
    """Count rows in a specific table.

    Args:
        session: Database session
        table_name: Name of the table to count; must be part of the schema

    Returns:
        int: Number of rows in the table

    Raises:
        ValueError: If table_name is not a valid table in the schema
    """
    if table_name not in Base.metadata.tables:
        valid_tables = sorted(Base.metadata.tables.keys())
        raise ValueError(
            f"Invalid table name: {table_name}. Valid tables: {', '.join(valid_tables)}"
        )

    table = Base.metadata.tables[table_name]
    result = session.execute(select(func.count()).select_from(table)).scalar()
    return result or 0
