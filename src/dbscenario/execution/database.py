"""Database access used by arrange statements and query assertions.

Statements are opaque: they go to the driver verbatim through
``Connection.exec_driver_sql``, never through SQLAlchemy's text() parser.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol, Sequence, Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError

from dbscenario.core.logger import get_logger

logger = get_logger(__name__)

# Statements are never parameterized; drivers must not scan them for placeholders.
_VERBATIM = {"no_parameters": True}


class DatabaseError(RuntimeError):
    """Driver-level failure; the orchestrator wraps it into ArrangeFailure or QueryFailure."""

    pass


class QueryResult(Protocol):
    columns: Sequence[str]

    def __iter__(self) -> Iterator[Tuple[Any, ...]]: ...


class Database(Protocol):
    def execute(self, statement: str) -> None: ...

    def query(self, sql: str): ...


class _CursorRows:
    def __init__(self, result: CursorResult):
        self._result = result
        self.columns = tuple(result.keys())

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        try:
            for row in self._result:
                yield tuple(row)
        except SQLAlchemyError as exc:
            raise DatabaseError(str(exc)) from exc


class SQLAlchemyDatabase:
    """
    Database adapter over an open SQLAlchemy ``Connection``.

    Every arrange statement is committed on its own, matching the autocommit
    behaviour test authors expect from plain driver connections.

    Example:
        >>> engine = create_engine("sqlite://")
        >>> with engine.connect() as conn:
        ...     db = SQLAlchemyDatabase(conn)
        ...     db.execute("CREATE TABLE t (id INTEGER)")
    """

    def __init__(self, connection: Connection, *, autocommit: bool = True):
        self.connection = connection
        self.autocommit = autocommit

    def execute(self, statement: str) -> None:
        logger.debug(f"Executing statement: {statement}")
        try:
            self.connection.exec_driver_sql(statement, execution_options=_VERBATIM)
            if self.autocommit:
                self.connection.commit()
        except SQLAlchemyError as exc:
            if self.connection.in_transaction():
                self.connection.rollback()
            raise DatabaseError(str(exc)) from exc

    @contextmanager
    def query(self, sql: str) -> Iterator[_CursorRows]:
        """Run ``sql`` and yield its rows; the cursor is closed on every exit path."""
        logger.debug(f"Running query: {sql}")
        result = None
        try:
            result = self.connection.exec_driver_sql(sql, execution_options=_VERBATIM)
            rows = _CursorRows(result)
        except SQLAlchemyError as exc:
            if result is not None:
                result.close()
            if self.connection.in_transaction():
                self.connection.rollback()
            raise DatabaseError(str(exc)) from exc
        try:
            yield rows
        finally:
            result.close()
            if self.autocommit and self.connection.in_transaction():
                self.connection.commit()


def create_database_engine(url: str, *, echo: bool = False) -> Engine:
    return create_engine(url, echo=echo)
