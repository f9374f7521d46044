"""Reference database executor backed by a SQLAlchemy engine.

Install the optional dependency before using this module::

    pip install "querykit[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from querykit import config
    from querykit.executors import SQLAlchemyExecutor

    config.set_default_executor(SQLAlchemyExecutor(create_engine("sqlite:///app.db")))

The executor runs the compiled SQL verbatim through the DB-API driver
(``exec_driver_sql``), rewriting QueryKit's ``?`` placeholders into the
driver's paramstyle.  Every call runs in its own transaction.  The async
``execute_query`` runs the blocking driver call in a worker thread, except for
in-memory SQLite, whose single connection belongs to the creating thread.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from querykit.actions import WriteResult
from querykit.interfaces import QueryResult

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

#: SQLAlchemy dialect names mapped to QueryKit dialect names.
_DIALECT_NAMES = {
    "sqlite": "sqlite",
    "postgresql": "postgres",
    "mysql": "mysql",
    "mariadb": "mysql",
    "mssql": "mssql",
    "oracle": "oracle",
}


def translate_placeholders(sql: str, paramstyle: str) -> str:
    """Rewrite ``?`` placeholders for a DB-API ``paramstyle``.

    Question marks inside single-quoted string literals are left alone.
    For the ``format`` / ``pyformat`` styles literal ``%`` signs are doubled.

    Args:
        sql: SQL with ``?`` placeholders.
        paramstyle: The driver's DB-API paramstyle.

    Returns:
        The rewritten SQL (unchanged for ``qmark``).
    """
    if paramstyle == "qmark":
        return sql

    percent = paramstyle in ("format", "pyformat")
    out: list[str] = []
    in_string = False
    position = 0
    for char in sql:
        if char == "'":
            in_string = not in_string
            out.append(char)
        elif char == "?" and not in_string:
            position += 1
            out.append("%s" if percent else f":{position}")
        elif char == "%" and percent:
            out.append("%%")
        else:
            out.append(char)
    return "".join(out)


def _is_memory_sqlite(engine: Engine) -> bool:
    if engine.dialect.name != "sqlite":
        return False
    database = engine.url.database
    return not database or database == ":memory:" or "mode=memory" in str(engine.url)


class SQLAlchemyExecutor:
    """:class:`~querykit.interfaces.DatabaseExecutor` over a SQLAlchemy engine.

    Args:
        engine: A :class:`sqlalchemy.engine.Engine`.

    Attributes:
        dialect: QueryKit dialect name derived from the engine (``None`` for
            backends QueryKit has no fragments for).
        threaded: Whether :meth:`execute_query` offloads to a worker thread.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.dialect = _DIALECT_NAMES.get(engine.dialect.name)
        self.threaded = not _is_memory_sqlite(engine)
        self._paramstyle = engine.dialect.paramstyle

    @classmethod
    def from_url(cls, url: str, **engine_options: Any) -> SQLAlchemyExecutor:
        """Create the engine for ``url`` and wrap it.

        Raises:
            ImportError: If ``sqlalchemy`` is not installed.
        """
        try:
            from sqlalchemy import create_engine
        except ImportError as exc:
            raise ImportError(
                "SQLAlchemy is required for SQLAlchemyExecutor.from_url(). "
                'Install it with: pip install "querykit[sqlalchemy]"'
            ) from exc
        return cls(create_engine(url, **engine_options))

    def __repr__(self) -> str:
        return f"SQLAlchemyExecutor({self.engine.url!r})"

    def _run(self, sql: str, bindings: list[Any]) -> tuple[list[dict[str, Any]], WriteResult]:
        statement = translate_placeholders(sql, self._paramstyle)
        logger.debug("Executing %s with %d binding(s)", statement, len(bindings))
        with self.engine.begin() as conn:
            result = conn.exec_driver_sql(statement, tuple(bindings))
            if result.returns_rows:
                rows = [dict(row._mapping) for row in result]
                return rows, WriteResult(changes=len(rows))
            last_id = getattr(result, "lastrowid", None)
            changes = result.rowcount if result.rowcount and result.rowcount > 0 else 0
            return [], WriteResult(changes=changes, last_insert_rowid=last_id or 0)

    def execute_query_sync(self, sql: str, bindings: list[Any]) -> QueryResult:
        rows, outcome = self._run(sql, bindings)
        return QueryResult(
            data=rows,
            affected_rows=outcome.changes,
            last_insert_id=outcome.last_insert_rowid or None,
        )

    async def execute_query(self, sql: str, bindings: list[Any]) -> QueryResult:
        if self.threaded:
            return await asyncio.to_thread(self.execute_query_sync, sql, bindings)
        return self.execute_query_sync(sql, bindings)

    def run_sync(self, sql: str, bindings: list[Any]) -> WriteResult:
        """Execute a statement and report ``changes`` / ``last_insert_rowid``."""
        _, outcome = self._run(sql, bindings)
        return outcome
