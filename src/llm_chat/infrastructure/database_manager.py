from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from llm_chat.app.errors import PersistenceError
from llm_chat.infrastructure.data_models import Base


class DatabaseManager:
    """
    Thin wrapper around a SQLAlchemy engine for the session store.

    This class is designed for dependency injection: callers provide a
    configured engine (e.g., via `create_engine(url)`) and use `transaction()`
    for every unit of work.

    Args:
        engine (Engine): A configured SQLAlchemy engine.

    Note:
        - Every SQLAlchemyError raised inside `transaction()` is rolled back and
          re-raised as a PersistenceError, so callers only handle one error type.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine: Engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_tables(self) -> None:
        """Create any missing tables."""
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to initialise the database: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Open a session wrapped in a transaction.

        Commits on normal exit, rolls back on any exception.

        Yields:
            Session: The ORM session for this unit of work.

        Raises:
            PersistenceError: If the database raises during the unit of work.
        """
        try:
            with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            raise PersistenceError(f"Database error: {e}") from e

    def close(self) -> None:
        self._engine.dispose()


def build_database_manager(
    database_url: str | None = None,
    *,
    engine: Engine | None = None,
    create_tables: bool = True,
    echo: bool = False,
) -> DatabaseManager:
    """
    Factory to create a DatabaseManager with sensible defaults.

    You can provide either `database_url` (preferred) and this function will
    create the engine, or pass an existing `engine` (for tests/advanced use).

    Args:
        database_url (str | None): SQLAlchemy URL (e.g., "sqlite:///llm-chat.db").
        engine (Engine | None): Pre-configured engine instance.
        create_tables (bool): Whether to create missing tables on startup.
        echo (bool): If creating the engine, whether to log emitted SQL.

    Returns:
        DatabaseManager: Configured manager instance.
    """
    if engine is None:
        if not database_url:
            raise ValueError("Provide either database_url or engine")

        # SQLite will not create missing parent directories by itself
        url = make_url(database_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

        try:
            engine = create_engine(database_url, echo=echo)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to open database {database_url}: {e}") from e

    manager = DatabaseManager(engine)
    if create_tables:
        manager.create_tables()
    return manager
