"""Contracts of the collaborators QueryKit talks to.

Database executors, the external event bus, simulation controllers and
multi-database registries are supplied by the application.  These
protocols describe the methods QueryKit calls on them; optional executor
methods (``execute_query_sync``, ``run_sync``) and the ``dialect``
attribute are looked up with ``getattr`` and are not part of the protocol.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Literal, Protocol, runtime_checkable

#: Backend names an executor may declare in its ``dialect`` attribute.
DialectName = Literal["sqlite", "mysql", "postgres", "mssql", "oracle"]


@dataclass
class QueryResult:
    """Result of a statement executed by a database executor.

    Attributes:
        data: Rows returned by the statement (empty for writes).
        affected_rows: Rows changed by an INSERT / UPDATE / DELETE.
        last_insert_id: Identifier generated by the last INSERT.
    """

    data: list[dict[str, Any]] = field(default_factory=list)
    affected_rows: int | None = None
    last_insert_id: int | str | None = None


@runtime_checkable
class DatabaseExecutor(Protocol):
    """Runs SQL produced by QueryKit against a real backend.

    Implementations may additionally provide::

        def execute_query_sync(self, sql, bindings) -> QueryResult: ...
        def run_sync(self, sql, bindings) -> WriteResult | mapping: ...
        dialect: DialectName
    """

    async def execute_query(self, sql: str, bindings: list[Any]) -> QueryResult | Any:
        ...


@runtime_checkable
class EventBus(Protocol):
    """External sink receiving every trigger event QueryKit emits."""

    def emit(self, event: str, *args: Any) -> None:
        ...


@runtime_checkable
class SimulationController(Protocol):
    """Replaces the built-in virtual snapshot store when registered."""

    def is_active(self) -> bool:
        ...

    def start(self, initial_state: dict[str, Any]) -> Awaitable[None] | None:
        ...

    def stop(self) -> None:
        ...

    def get_state_for(self, table: str) -> list[dict[str, Any]] | None:
        ...

    def update_state_for(self, table: str, rows: list[dict[str, Any]]) -> None:
        ...


@runtime_checkable
class MultiDbRegistry(Protocol):
    """Resolves a named database to its executor."""

    def get_adapter(self, name: str) -> DatabaseExecutor:
        ...
