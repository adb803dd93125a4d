"""
Database session management for the Library Catalog service.

Sessions are short-lived: one per HTTP request (or per sweeper row), opened
through ``session_scope()`` so they are committed or rolled back and always
closed.

SQLite file databases run every transaction as ``BEGIN IMMEDIATE``: the write
lock is taken when the transaction starts, so two loan requests for the same
member cannot both read the active-loan count before either commits. Other
backends rely on ``SELECT ... FOR UPDATE`` row locks taken by the services.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import RepositoryException
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:")


class DatabaseManager:
    """
    Manages database connections and sessions.

    This class provides:
    - Lazily created engine configured per backend
    - Session factory with explicit transactions
    - Schema creation for development and tests
    """

    def __init__(self, database_url: str | None = None, echo: bool = False):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses the configured one.
            echo: Log emitted SQL
        """
        if database_url is None:
            database_url = get_config().get_database_url()
            logger.info("Using configured database at: %s", database_url)

        self.database_url = database_url
        self.echo = echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        - In-memory SQLite shares one connection (StaticPool) so every session
          sees the same database
        - File SQLite enables foreign keys and immediate transactions
        - Other databases get a pre-pinged connection pool
        """
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                in_memory = _is_memory_sqlite(self.database_url)
                engine_kwargs = {
                    "connect_args": {"check_same_thread": False},
                    "echo": self.echo,
                }
                if in_memory:
                    engine_kwargs["poolclass"] = StaticPool
                self._engine = create_engine(self.database_url, **engine_kwargs)

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
                    if not in_memory:
                        # Let SQLAlchemy emit BEGIN instead of the sqlite3 driver
                        dbapi_connection.isolation_level = None

                if not in_memory:

                    @event.listens_for(self._engine, "begin")
                    def begin_immediate(conn):
                        conn.exec_driver_sql("BEGIN IMMEDIATE")

            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=self.echo,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,  # Keep objects usable after commit
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Create a new database session. Callers must close it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            book = session.get(Book, book_id)
        # Session is automatically committed or rolled back
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.debug("Rolling back database transaction")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Initialize the database schema.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Verify the database connection is working (used by the health check)."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose of and forget the global database manager."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Convenience context manager around the global database manager."""
    with get_db_manager().session_scope() as session:
        yield session


def safe_commit(session: Session, operation: str) -> None:
    """
    Commit a session, rolling back on failure.

    Integrity errors propagate unchanged so callers can translate them into
    duplicate or conflict errors; other database errors become
    ``RepositoryException``.
    """
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryException(f"Database operation '{operation}' failed: {e!s}") from e


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, converting database errors into ``RepositoryException``.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Message prefix for the raised exception
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise RepositoryException(f"{error_msg}: Database query failed") from e
