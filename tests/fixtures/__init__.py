"""Test fixtures: sample rows, SQLite DDL and in-process executor fakes."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

from querykit.actions import WriteResult
from querykit.interfaces import QueryResult

_FIXTURES_DIR = Path(__file__).parent

USERS: list[dict[str, Any]] = [
    {"id": 1, "name": "Ada", "email": "ada@example.com", "role": "admin", "active": 1, "score": 10},
    {"id": 2, "name": "Bob", "email": "bob@example.com", "role": "user", "active": 1, "score": 5},
    {"id": 3, "name": "Cyd", "email": "cyd@example.com", "role": "user", "active": 0, "score": 0},
]


def sample_users() -> list[dict[str, Any]]:
    """Return a fresh copy of the sample ``users`` rows."""
    return copy.deepcopy(USERS)


def load_ddl() -> list[str]:
    """Return the SQLite DDL statements of the sample schema, one per entry."""
    text = (_FIXTURES_DIR / "ddl_sqlite.sql").read_text()
    return [stmt.strip() for stmt in text.split(";") if stmt.strip()]


class RecordingExecutor:
    """Async executor that records every statement and returns canned results.

    SELECT statements return ``rows``; other statements pop the next entry
    of ``write_results`` (default ``{"affectedRows": 1, "insertId": 0}``).
    """

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        write_results: list[Any] | None = None,
        dialect: str | None = None,
    ) -> None:
        self.rows = rows or []
        self.write_results = list(write_results or [])
        self.dialect = dialect
        self.calls: list[tuple[str, list[Any]]] = []

    def _respond(self, sql: str, bindings: list[Any]) -> Any:
        self.calls.append((sql, list(bindings)))
        if sql.startswith("SELECT"):
            return QueryResult(data=copy.deepcopy(self.rows))
        if self.write_results:
            return self.write_results.pop(0)
        return {"affectedRows": 1, "insertId": 0}

    async def execute_query(self, sql: str, bindings: list[Any]) -> Any:
        return self._respond(sql, bindings)


class SyncExecutor(RecordingExecutor):
    """Executor that also offers the blocking ``run_sync`` / ``execute_query_sync``."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.sync_calls = 0

    def execute_query_sync(self, sql: str, bindings: list[Any]) -> QueryResult:
        self.sync_calls += 1
        return self._respond(sql, bindings)

    def run_sync(self, sql: str, bindings: list[Any]) -> WriteResult:
        self.sync_calls += 1
        self.calls.append((sql, list(bindings)))
        if self.write_results:
            return self.write_results.pop(0)
        return WriteResult(changes=1)


class FailingExecutor:
    """Executor whose every call raises ``RuntimeError``."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[Any]]] = []

    async def execute_query(self, sql: str, bindings: list[Any]) -> Any:
        self.calls.append((sql, list(bindings)))
        raise RuntimeError("connection lost")


class RecordingBus:
    """External event bus collecting ``(event, args)`` pairs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []

    def emit(self, event: str, *args: Any) -> None:
        self.events.append((event, args))
