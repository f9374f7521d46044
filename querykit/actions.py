"""Write-action state machine.

A builder holds at most one pending write action (``insert``, ``update``,
``delete``, ``increment``, ``decrement`` or ``updateOrInsert``).  Calling
``make()`` hands the descriptor to :class:`WriteActionRunner`, which
compiles the statement(s), runs them on the executor, emits the trigger
events and clears the pending action.

States::

    Idle ──insert()/update()/…──▶ Pending ──make() succeeds──▶ Idle

If the executor raises, the action stays pending so ``make()`` can be
retried; the WHERE list of an ``updateOrInsert`` is restored either way.

Drivers report write outcomes in many shapes; :func:`normalize_write_result`
folds them all into :class:`WriteResult`.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from querykit.compile.base import CompiledWrite
from querykit.compile.compiler import SQLCompiler
from querykit.errors import (
    MissingWhereClauseError,
    NoPendingActionError,
    UnsupportedPendingActionError,
)
from querykit.events import EventManager, trigger_payload, trigger_topic
from querykit.interfaces import DatabaseExecutor
from querykit.schema.clauses import (
    WHERE_REQUIRED_ACTIONS,
    ActionType,
    BasicClause,
    PendingAction,
)
from querykit.schema.descriptor import QueryDescriptor

logger = logging.getLogger(__name__)

_CHANGES_KEYS = ("affected_rows", "affectedRows", "changes", "rowcount")
_LAST_ID_KEYS = (
    "last_insert_id", "lastInsertId", "last_insert_rowid",
    "lastInsertRowid", "insert_id", "insertId", "lastrowid",
)


@dataclass(frozen=True)
class WriteResult:
    """Canonical outcome of a write statement.

    Attributes:
        changes: Number of rows affected.
        last_insert_rowid: Identifier generated by the last INSERT (0 if none).
    """

    changes: int = 0
    last_insert_rowid: int | str = 0


def _lookup(source: Any, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if isinstance(source, Mapping):
            value = source.get(key)
        else:
            value = getattr(source, key, None)
        # DB-API cursors report -1 when the count is unknown.
        if value is not None and value != -1:
            return value
    return None


def normalize_write_result(raw: Any) -> WriteResult:
    """Fold a driver-specific write result into a :class:`WriteResult`.

    Accepted shapes:

    * ``(rows, info)`` tuples or lists, where ``info`` is one of the shapes
      below (mysql-style drivers);
    * mappings or objects exposing an affected-row count
      (``affected_rows`` / ``affectedRows`` / ``changes`` / ``rowcount``)
      and an insert id (``last_insert_id`` / ``lastInsertId`` /
      ``last_insert_rowid`` / ``lastInsertRowid`` / ``insert_id`` /
      ``insertId`` / ``lastrowid``);
    * ``None`` (nothing reported).
    """
    if isinstance(raw, WriteResult):
        return raw
    if isinstance(raw, (list, tuple)):
        raw = raw[1] if len(raw) > 1 and raw[1] is not None else {}
    if raw is None:
        return WriteResult()
    changes = _lookup(raw, _CHANGES_KEYS)
    last_id = _lookup(raw, _LAST_ID_KEYS)
    return WriteResult(changes=int(changes or 0), last_insert_rowid=last_id or 0)


def rows_of(result: Any) -> list[dict[str, Any]]:
    """Return the row list carried by an executor read result."""
    if result is None:
        return []
    if isinstance(result, Mapping):
        return list(result.get("data") or [])
    if isinstance(result, list):
        return result
    return list(getattr(result, "data", None) or [])


class WriteActionRunner:
    """Executes the pending write action of a descriptor on a real executor.

    Args:
        descriptor: The builder's descriptor; its ``pending_action`` is
            consumed and, for ``updateOrInsert``, its ``where_clauses`` are
            temporarily replaced.
        executor: Executor running the statements.
        events: Event manager receiving BEFORE / AFTER trigger events.
        compiler: SQL compiler; a fresh one is created when omitted.
    """

    def __init__(
        self,
        descriptor: QueryDescriptor,
        executor: DatabaseExecutor,
        events: EventManager,
        compiler: SQLCompiler | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._executor = executor
        self._events = events
        self._compiler = compiler or SQLCompiler()

    async def run(self) -> WriteResult:
        """Run the pending action and clear it.

        Raises:
            NoPendingActionError: No action is pending.
            MissingWhereClauseError: A destructive action has no WHERE clause.
            UnsupportedPendingActionError: The action type is unknown.
        """
        action = check_pending_action(self._descriptor)
        table = self._descriptor.table
        data = action.data

        if action.type == ActionType.INSERT.value:
            result = await self._insert(data)
        elif action.type == ActionType.UPDATE.value:
            compiled = self._compiler.compile_update(self._descriptor, data)
            result = await self._execute("UPDATE", compiled, data=data)
        elif action.type == ActionType.DELETE.value:
            compiled = self._compiler.compile_delete(self._descriptor)
            result = await self._execute("DELETE", compiled)
        elif action.type in (ActionType.INCREMENT.value, ActionType.DECREMENT.value):
            compiled = self._compiler.compile_increment(
                self._descriptor,
                data["column"],
                data.get("amount", 1),
                decrement=action.type == ActionType.DECREMENT.value,
            )
            result = await self._execute("UPDATE", compiled, data=dict(data))
        else:
            result = await self._update_or_insert(data["attributes"], data["values"])

        self._descriptor.pending_action = None
        logger.debug("Executed %s on %s: %s", action.type, table, result)
        return result

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _insert(self, rows: list[dict[str, Any]]) -> WriteResult:
        compiled = self._compiler.compile_insert(self._descriptor.table, rows)
        return await self._execute("INSERT", compiled, data=rows[0] if len(rows) == 1 else rows)

    async def _update_or_insert(
        self,
        attributes: dict[str, Any],
        values: dict[str, Any],
    ) -> WriteResult:
        backup = self._descriptor.where_clauses
        self._descriptor.where_clauses = [
            BasicClause(column=col, operator="=", value=val) for col, val in attributes.items()
        ]
        try:
            # With nothing to set, write the attributes back so the UPDATE
            # still reports whether a row matched.
            compiled = self._compiler.compile_update(self._descriptor, values or attributes)
            result = await self._execute("UPDATE", compiled, data=values)
            if not result.changes:
                result = await self._insert([{**attributes, **values}])
        finally:
            self._descriptor.where_clauses = backup
        return result

    # ------------------------------------------------------------------
    # Executor dispatch
    # ------------------------------------------------------------------

    async def _execute(
        self,
        action: str,
        compiled: CompiledWrite,
        data: Any = None,
    ) -> WriteResult:
        table = self._descriptor.table
        where = compiled.where_payload()
        self._events.emit(
            trigger_topic("BEFORE", action, table),
            trigger_payload(table, action, "BEFORE", data=data, where=where),
        )

        run_sync = getattr(self._executor, "run_sync", None)
        if run_sync is not None:
            raw = run_sync(compiled.sql, compiled.bindings)
        else:
            raw = self._executor.execute_query(compiled.sql, compiled.bindings)
            if inspect.isawaitable(raw):
                raw = await raw
        result = normalize_write_result(raw)

        self._events.emit(
            trigger_topic("AFTER", action, table),
            trigger_payload(table, action, "AFTER", data=data, where=where, result=result),
        )
        return result


def check_pending_action(descriptor: QueryDescriptor) -> PendingAction:
    """Validate the descriptor's pending action and return it.

    Shared by the real runner and the virtual engine so both enforce the
    same preconditions at execution time.
    """
    action = descriptor.pending_action
    if action is None:
        raise NoPendingActionError()
    if action.type not in {a.value for a in ActionType}:
        raise UnsupportedPendingActionError(action.type)
    if action.type in WHERE_REQUIRED_ACTIONS and not descriptor.where_clauses:
        raise MissingWhereClauseError(action.type)
    return action
