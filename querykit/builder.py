"""The fluent QueryBuilder façade.

Every chainable method mutates the builder's
:class:`~querykit.schema.descriptor.QueryDescriptor` and returns ``self``::

    from querykit import table

    users = await (
        table("users")
        .select(["id", "name"])
        .where("active", "=", True)
        .where_in("role", ["admin", "owner"])
        .order_by("name")
        .paginate(page=2, per_page=20)
        .all()
    )

``to_sql()`` compiles the descriptor without executing it.  Execution goes
through the executor of the active configuration, unless simulation mode is
active, in which case reads and writes are interpreted against the virtual
snapshot by :class:`~querykit.virtual.VirtualEngine`.

Tracking
--------
``await builder.initial(rows)`` turns on a builder-local step log: every
fluent call made afterwards (or while simulation mode is active) is recorded
as a :class:`TrackingEntry`.  ``builder.tracking()`` replays the pending
write on the builder's virtual table and returns the log.
"""
from __future__ import annotations

import copy
import functools
import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from querykit.actions import WriteActionRunner, WriteResult, check_pending_action, rows_of
from querykit.compile import CompiledSQL, Dialect, DialectFactory, SQLCompiler
from querykit.config import QueryKitConfig, get_config
from querykit.errors import NoExecutorConfiguredError
from querykit.events import EventManager, event_manager, trigger_payload, trigger_topic
from querykit.interfaces import DatabaseExecutor
from querykit.schema.clauses import (
    ActionType,
    Aggregate,
    BasicClause,
    BetweenClause,
    ColumnClause,
    InClause,
    JoinSpec,
    Logical,
    NullClause,
    OrderSpec,
    PendingAction,
    RawClause,
    raw,
)
from querykit.schema.descriptor import ExistsClause, QueryDescriptor, UnionPart
from querykit.simulation import SimulationManager, simulation_manager
from querykit.virtual import VirtualEngine

logger = logging.getLogger(__name__)

Row = dict[str, Any]

#: Look-back windows accepted by :meth:`QueryBuilder.period`.
PERIODS: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


@dataclass
class TrackingEntry:
    """One step of a builder's tracking log."""

    step: str
    details: Any = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _tracked(method: Callable[..., Any]) -> Callable[..., Any]:
    """Record a fluent call in the tracking log.

    Only the outermost call is recorded, so sugar such as ``where_contains``
    logs one step rather than one per helper it delegates to.
    """
    signature = inspect.signature(method)

    @functools.wraps(method)
    def wrapper(self: QueryBuilder, *args: Any, **kwargs: Any) -> Any:
        if self._track_depth == 0 and self._is_recording():
            bound = signature.bind(self, *args, **kwargs)
            details = {k: v for k, v in bound.arguments.items() if k != "self"}
            self._track(method.__name__, details)
        self._track_depth += 1
        try:
            return method(self, *args, **kwargs)
        finally:
            self._track_depth -= 1

    return wrapper


def _present(value: Any) -> bool:
    # 0 and False are present values; None and "" are not.
    return value is not None and not (isinstance(value, str) and value == "")


class QueryBuilder:
    """Fluent builder for one table.

    Args:
        table: Target table name.
        config: Configuration to resolve executors from; defaults to the
            process-wide configuration.
        events: Event manager receiving trigger events.
        simulation: Simulation manager consulted for virtual execution.
        dialect: Backend name used for dialect-specific fragments.  When
            omitted, the resolved executor's ``dialect`` attribute is used,
            then portable SQL.
    """

    def __init__(
        self,
        table: str,
        *,
        config: QueryKitConfig | None = None,
        events: EventManager | None = None,
        simulation: SimulationManager | None = None,
        dialect: str | None = None,
    ) -> None:
        self._descriptor = QueryDescriptor(table=table)
        self._config = config
        self._events = events or event_manager
        self._simulation = simulation or simulation_manager
        self._dialect_name = dialect
        self._compiler = SQLCompiler()

        self._tracking_enabled = False
        self._tracking_logs: list[TrackingEntry] = []
        self._virtual_table: list[Row] = []
        self._track_depth = 0

    def __repr__(self) -> str:
        return f"QueryBuilder({self._descriptor.table!r})"

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def table_name(self) -> str:
        return self._descriptor.table

    @property
    def descriptor(self) -> QueryDescriptor:
        """The descriptor accumulated so far (shared, not copied)."""
        return self._descriptor

    @property
    def config(self) -> QueryKitConfig:
        return self._config or get_config()

    @property
    def dialect(self) -> Dialect:
        """Dialect used for case-insensitive, JSON, full-text and window helpers."""
        name = self._dialect_name
        if name is None:
            executor = self.config.executor_for(self.table_name, self._descriptor.target_banks)
            name = getattr(executor, "dialect", None)
        return DialectFactory.resolve(name)

    def has_pending_write(self) -> bool:
        action = self._descriptor.pending_action
        return action is not None and action.type in {a.value for a in ActionType}

    def clone(self) -> QueryBuilder:
        """Return an independent builder with a deep copy of the descriptor."""
        twin = type(self)(
            self.table_name,
            config=self._config,
            events=self._events,
            simulation=self._simulation,
            dialect=self._dialect_name,
        )
        twin._descriptor = self._descriptor.model_copy(deep=True)
        return twin

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @_tracked
    def select(self, columns: str | Iterable[str] = ("*",)) -> QueryBuilder:
        if isinstance(columns, str):
            columns = [columns]
        self._descriptor.select_columns = [str(c) for c in columns]
        return self

    @_tracked
    def select_raw(self, sql: str) -> QueryBuilder:
        self._descriptor.select_columns.append(raw(sql))
        return self

    @_tracked
    def aggregates_select(self, columns: Iterable[str]) -> QueryBuilder:
        self._descriptor.select_columns.extend(columns)
        return self

    @_tracked
    def distinct(self) -> QueryBuilder:
        self._descriptor.is_distinct = True
        return self

    @_tracked
    def select_expression(self, expression: str, alias: str | None = None) -> QueryBuilder:
        return self.select_raw(f"{expression} AS {alias}" if alias else expression)

    def select_count(self, column: str = "*", alias: str = "count") -> QueryBuilder:
        return self.select_expression(f"COUNT({column})", alias)

    def select_sum(self, column: str, alias: str = "sum") -> QueryBuilder:
        return self.select_expression(f"SUM({column})", alias)

    def select_avg(self, column: str, alias: str = "avg") -> QueryBuilder:
        return self.select_expression(f"AVG({column})", alias)

    def select_min(self, column: str, alias: str = "min") -> QueryBuilder:
        return self.select_expression(f"MIN({column})", alias)

    def select_max(self, column: str, alias: str = "max") -> QueryBuilder:
        return self.select_expression(f"MAX({column})", alias)

    def select_case_sum(self, condition: str, alias: str) -> QueryBuilder:
        """Select ``SUM(CASE WHEN <condition> THEN 1 ELSE 0 END) AS <alias>``."""
        return self.select_expression(f"SUM(CASE WHEN {condition} THEN 1 ELSE 0 END)", alias)

    @_tracked
    def select_row_number(
        self,
        order_by: str | list[str],
        partition_by: str | list[str] | None = None,
        alias: str = "row_num",
    ) -> QueryBuilder:
        """Select a ``ROW_NUMBER()`` window expression in the builder's dialect."""
        if isinstance(order_by, str):
            order_by = [order_by]
        if isinstance(partition_by, str):
            partition_by = [partition_by]
        return self.select_raw(self.dialect.row_number(order_by, partition_by, alias))

    # ------------------------------------------------------------------
    # Table
    # ------------------------------------------------------------------

    @_tracked
    def alias(self, name: str) -> QueryBuilder:
        self._descriptor.alias = name
        return self

    @_tracked
    def bank(self, names: str | list[str]) -> QueryBuilder:
        """Route execution to the named database(s) of the multi-db registry."""
        self._descriptor.target_banks = [names] if isinstance(names, str) else list(names)
        return self

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @_tracked
    def where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._descriptor.where_clauses.append(
            BasicClause(column=column, operator=operator, value=value)
        )
        return self

    @_tracked
    def or_where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._descriptor.where_clauses.append(
            BasicClause(column=column, operator=operator, value=value, logical="OR")
        )
        return self

    @_tracked
    def where_if(self, condition: Any, column: str, operator: str, value: Any) -> QueryBuilder:
        """Add ``where(column, operator, value)`` only when ``condition`` is present."""
        if _present(condition):
            self.where(column, operator, value)
        return self

    @_tracked
    def where_all(self, conditions: Mapping[str, Any]) -> QueryBuilder:
        for column, value in conditions.items():
            self.where_if(value, column, "=", value)
        return self

    @_tracked
    def where_in(self, column: str, values: Iterable[Any], logical: Logical = "AND") -> QueryBuilder:
        self._descriptor.where_clauses.append(
            InClause(column=column, values=list(values), logical=logical)
        )
        return self

    def or_where_in(self, column: str, values: Iterable[Any]) -> QueryBuilder:
        return self.where_in(column, values, "OR")

    @_tracked
    def where_not_in(
        self,
        column: str,
        values: Iterable[Any],
        logical: Logical = "AND",
    ) -> QueryBuilder:
        self._descriptor.where_clauses.append(
            InClause(column=column, values=list(values), negated=True, logical=logical)
        )
        return self

    def or_where_not_in(self, column: str, values: Iterable[Any]) -> QueryBuilder:
        return self.where_not_in(column, values, "OR")

    def _null(self, column: str, negated: bool, logical: Logical) -> QueryBuilder:
        self._descriptor.where_clauses.append(
            NullClause(column=column, negated=negated, logical=logical)
        )
        return self

    @_tracked
    def where_null(self, column: str) -> QueryBuilder:
        return self._null(column, False, "AND")

    @_tracked
    def or_where_null(self, column: str) -> QueryBuilder:
        return self._null(column, False, "OR")

    @_tracked
    def where_not_null(self, column: str) -> QueryBuilder:
        return self._null(column, True, "AND")

    @_tracked
    def or_where_not_null(self, column: str) -> QueryBuilder:
        return self._null(column, True, "OR")

    @_tracked
    def where_between(self, column: str, bounds: tuple[Any, Any]) -> QueryBuilder:
        low, high = bounds
        self._descriptor.where_clauses.append(BetweenClause(column=column, bounds=(low, high)))
        return self

    @_tracked
    def where_not_between(self, column: str, bounds: tuple[Any, Any]) -> QueryBuilder:
        low, high = bounds
        self._descriptor.where_clauses.append(
            BetweenClause(column=column, bounds=(low, high), negated=True)
        )
        return self

    @_tracked
    def where_column(
        self,
        first: str,
        operator: str,
        second: str,
        logical: Logical = "AND",
    ) -> QueryBuilder:
        self._descriptor.where_clauses.append(
            ColumnClause(column=first, operator=operator, other_column=second, logical=logical)
        )
        return self

    @_tracked
    def where_raw(
        self,
        sql: str,
        bindings: Iterable[Any] | None = None,
        logical: Logical = "AND",
    ) -> QueryBuilder:
        """Append a verbatim predicate; ``bindings`` fill its ``?`` markers."""
        self._descriptor.where_clauses.append(
            RawClause(sql=sql, bindings=list(bindings or []), logical=logical)
        )
        return self

    @_tracked
    def where_raw_search(self, term: str, columns: Iterable[str]) -> QueryBuilder:
        """Match ``%term%`` against any of ``columns``; a blank term adds nothing."""
        if not term:
            return self
        columns = list(columns)
        conditions = " OR ".join(f"{col} LIKE ?" for col in columns)
        return self.where_raw(f"({conditions})", [f"%{term}%" for _ in columns])

    def where_search(self, term: str, columns: Iterable[str]) -> QueryBuilder:
        return self.where_raw_search(term, columns)

    def _exists(self, query: QueryBuilder | QueryDescriptor, negated: bool) -> QueryBuilder:
        subquery = query.descriptor if isinstance(query, QueryBuilder) else query
        # Snapshot the subquery so later changes to its builder do not leak in.
        self._descriptor.where_clauses.append(
            ExistsClause(subquery=subquery.model_copy(deep=True), negated=negated)
        )
        return self

    @_tracked
    def where_exists(self, query: QueryBuilder | QueryDescriptor) -> QueryBuilder:
        return self._exists(query, False)

    @_tracked
    def where_not_exists(self, query: QueryBuilder | QueryDescriptor) -> QueryBuilder:
        return self._exists(query, True)

    # ------------------------------------------------------------------
    # Search sugar
    # ------------------------------------------------------------------

    @_tracked
    def where_like(self, column: str, pattern: str) -> QueryBuilder:
        return self.where(column, "LIKE", pattern)

    @_tracked
    def or_where_like(self, column: str, pattern: str) -> QueryBuilder:
        return self.or_where(column, "LIKE", pattern)

    @_tracked
    def where_contains(self, column: str, term: str) -> QueryBuilder:
        return self.where_like(column, f"%{term}%")

    @_tracked
    def where_starts_with(self, column: str, prefix: str) -> QueryBuilder:
        return self.where_like(column, f"{prefix}%")

    @_tracked
    def where_ends_with(self, column: str, suffix: str) -> QueryBuilder:
        return self.where_like(column, f"%{suffix}")

    @_tracked
    def where_ilike(self, column: str, pattern: str) -> QueryBuilder:
        """Case-insensitive LIKE in the syntax of the builder's dialect."""
        sql, bindings = self.dialect.case_insensitive_like(column, pattern)
        return self.where_raw(sql, bindings)

    @_tracked
    def where_contains_ci(self, column: str, term: str) -> QueryBuilder:
        return self.where_ilike(column, f"%{term}%")

    @_tracked
    def where_starts_with_ci(self, column: str, prefix: str) -> QueryBuilder:
        return self.where_ilike(column, f"{prefix}%")

    @_tracked
    def where_ends_with_ci(self, column: str, suffix: str) -> QueryBuilder:
        return self.where_ilike(column, f"%{suffix}")

    @_tracked
    def where_json_contains(self, column: str, value: Any) -> QueryBuilder:
        """Match rows whose JSON array ``column`` contains ``value``."""
        sql, bindings = self.dialect.json_contains(column, value)
        return self.where_raw(sql, bindings)

    @_tracked
    def where_full_text(self, columns: str | Iterable[str], term: str) -> QueryBuilder:
        """Full-text match of ``term`` over ``columns``; a blank term adds nothing."""
        if not term:
            return self
        columns = [columns] if isinstance(columns, str) else list(columns)
        sql, bindings = self.dialect.full_text(columns, term)
        return self.where_raw(sql, bindings)

    # ------------------------------------------------------------------
    # Time helpers
    # ------------------------------------------------------------------

    @_tracked
    def range(
        self,
        column: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> QueryBuilder:
        """Bound ``column`` by ``start`` and/or ``end`` (inclusive, ISO-8601)."""
        if start is not None:
            self.where_raw(f"{column} >= ?", [start.isoformat()])
        if end is not None:
            self.where_raw(f"{column} <= ?", [end.isoformat()])
        return self

    @_tracked
    def period(self, column: str, key: str | None = None) -> QueryBuilder:
        """Keep rows newer than a look-back window (``24h``, ``7d``, ``30d``).

        An unknown key falls back to ``24h``; no key adds nothing.
        """
        if not key:
            return self
        since = datetime.now(timezone.utc) - PERIODS.get(key, PERIODS["24h"])
        return self.where_raw(f"{column} >= ?", [since.isoformat()])

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    @_tracked
    def when(self, condition: Any, callback: Callable[[QueryBuilder, Any], Any]) -> QueryBuilder:
        if condition:
            callback(self, condition)
        return self

    @_tracked
    def unless(self, condition: Any, callback: Callable[[QueryBuilder, Any], Any]) -> QueryBuilder:
        if not condition:
            callback(self, condition)
        return self

    def _union(self, query: QueryBuilder | QueryDescriptor, kind: str) -> QueryBuilder:
        part = query.descriptor if isinstance(query, QueryBuilder) else query
        self._descriptor.union_parts.append(UnionPart(type=kind, query=part.model_copy(deep=True)))
        return self

    @_tracked
    def union(self, query: QueryBuilder | QueryDescriptor) -> QueryBuilder:
        return self._union(query, "UNION")

    @_tracked
    def union_all(self, query: QueryBuilder | QueryDescriptor) -> QueryBuilder:
        return self._union(query, "UNION ALL")

    # ------------------------------------------------------------------
    # Ordering and pagination
    # ------------------------------------------------------------------

    @_tracked
    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        self._descriptor.order_clauses.append(OrderSpec(column=column, direction=direction.upper()))
        return self

    @_tracked
    def order_by_many(self, orders: Iterable[Mapping[str, str]]) -> QueryBuilder:
        for order in orders:
            self.order_by(order["column"], order.get("direction") or "ASC")
        return self

    @_tracked
    def limit(self, count: int) -> QueryBuilder:
        self._descriptor.limit_value = count
        return self

    @_tracked
    def offset(self, count: int) -> QueryBuilder:
        self._descriptor.offset_value = count
        return self

    @_tracked
    def paginate(self, page: int = 1, per_page: int = 25) -> QueryBuilder:
        """Set LIMIT/OFFSET for a 1-based page; both arguments are clamped to >= 1."""
        page = max(1, page or 1)
        per_page = max(1, per_page or 25)
        return self.limit(per_page).offset((page - 1) * per_page)

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def _join(self, kind: str, table: str, on: str) -> QueryBuilder:
        self._descriptor.joins.append(JoinSpec(type=kind, table=table, on=on))
        return self

    @_tracked
    def inner_join(self, table: str, on: str) -> QueryBuilder:
        return self._join("INNER", table, on)

    @_tracked
    def left_join(self, table: str, on: str) -> QueryBuilder:
        return self._join("LEFT", table, on)

    @_tracked
    def right_join(self, table: str, on: str) -> QueryBuilder:
        return self._join("RIGHT", table, on)

    @_tracked
    def inner_join_on(self, table: str, left: str, right: str) -> QueryBuilder:
        return self._join("INNER", table, f"{left} = {right}")

    @_tracked
    def left_join_on(self, table: str, left: str, right: str) -> QueryBuilder:
        return self._join("LEFT", table, f"{left} = {right}")

    @_tracked
    def right_join_on(self, table: str, left: str, right: str) -> QueryBuilder:
        return self._join("RIGHT", table, f"{left} = {right}")

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------

    @_tracked
    def group_by(self, columns: str | Iterable[str]) -> QueryBuilder:
        if isinstance(columns, str):
            columns = [columns]
        self._descriptor.group_by_columns = [str(c) for c in columns]
        return self

    def group_by_one(self, column: str) -> QueryBuilder:
        return self.group_by([column])

    @_tracked
    def having(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._descriptor.having_clauses.append(
            BasicClause(column=column, operator=operator, value=value)
        )
        return self

    @_tracked
    def having_raw(
        self,
        sql: str,
        bindings: Iterable[Any] | None = None,
        logical: Logical = "AND",
    ) -> QueryBuilder:
        self._descriptor.having_clauses.append(
            RawClause(sql=sql, bindings=list(bindings or []), logical=logical)
        )
        return self

    @_tracked
    def having_if(self, condition: Any, column: str, operator: str, value: Any) -> QueryBuilder:
        if _present(condition):
            self.having(column, operator, value)
        return self

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def _aggregate(self, func: str, column: str, alias: str | None) -> QueryBuilder:
        if self._descriptor.aggregates:
            logger.debug(
                "Aggregate %s(%s) on %s is ignored; only the first aggregate is compiled",
                func, column, self.table_name,
            )
        alias = alias or f"{func}_{column.replace('*', 'all')}"
        self._descriptor.aggregates.append(Aggregate(func=func, column=column, alias=alias))
        return self

    @_tracked
    def count(self, column: str = "*", alias: str | None = None) -> QueryBuilder:
        return self._aggregate("count", column, alias)

    @_tracked
    def sum(self, column: str, alias: str | None = None) -> QueryBuilder:
        return self._aggregate("sum", column, alias)

    @_tracked
    def avg(self, column: str, alias: str | None = None) -> QueryBuilder:
        return self._aggregate("avg", column, alias)

    @_tracked
    def min(self, column: str, alias: str | None = None) -> QueryBuilder:
        return self._aggregate("min", column, alias)

    @_tracked
    def max(self, column: str, alias: str | None = None) -> QueryBuilder:
        return self._aggregate("max", column, alias)

    # ------------------------------------------------------------------
    # Write actions
    # ------------------------------------------------------------------

    def _pend(self, action: ActionType, data: Any = None) -> QueryBuilder:
        self._descriptor.pending_action = PendingAction(type=action.value, data=data)
        return self

    @_tracked
    def insert(self, rows: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> QueryBuilder:
        """Queue an INSERT of one row or a list of rows."""
        if isinstance(rows, Mapping):
            data = [dict(rows)]
        else:
            data = [dict(row) for row in rows]
        return self._pend(ActionType.INSERT, data)

    @_tracked
    def update(self, values: Mapping[str, Any]) -> QueryBuilder:
        return self._pend(ActionType.UPDATE, dict(values))

    @_tracked
    def delete(self) -> QueryBuilder:
        return self._pend(ActionType.DELETE)

    @_tracked
    def increment(self, column: str, amount: int | float = 1) -> QueryBuilder:
        return self._pend(ActionType.INCREMENT, {"column": column, "amount": amount})

    @_tracked
    def decrement(self, column: str, amount: int | float = 1) -> QueryBuilder:
        return self._pend(ActionType.DECREMENT, {"column": column, "amount": amount})

    @_tracked
    def update_or_insert(
        self,
        attributes: Mapping[str, Any],
        values: Mapping[str, Any] | None = None,
    ) -> QueryBuilder:
        """Queue an update of the rows matching ``attributes``, inserting when none match."""
        return self._pend(
            ActionType.UPDATE_OR_INSERT,
            {"attributes": dict(attributes), "values": dict(values or {})},
        )

    # ------------------------------------------------------------------
    # Compilation and execution
    # ------------------------------------------------------------------

    def to_sql(self) -> CompiledSQL:
        """Compile the SELECT this builder describes; nothing is executed."""
        return self._compiler.compile_select(self._descriptor)

    def _executor(self) -> DatabaseExecutor:
        banks = self._descriptor.target_banks
        executor = self.config.executor_for(self.table_name, banks)
        if executor is None:
            raise NoExecutorConfiguredError(self.table_name, banks)
        return executor

    def _emit_read(self, timing: str, **extra: Any) -> None:
        self._events.emit(
            trigger_topic(timing, "READ", self.table_name),
            trigger_payload(self.table_name, "READ", timing, **extra),
        )

    async def all(self) -> list[Row]:
        """Run the SELECT and return its rows.

        In simulation mode the rows come from the virtual snapshot (a missing
        table yields ``[]``) and no executor is needed.

        Raises:
            NoExecutorConfiguredError: No executor serves this table.
        """
        self._track("all")
        if self._simulation.is_active():
            return self._read_virtual()

        executor = self._executor()
        sql, bindings = self.to_sql()
        self._emit_read("BEFORE", where=None)
        result = executor.execute_query(sql, bindings)
        if inspect.isawaitable(result):
            result = await result
        rows = rows_of(result)
        self._emit_read("AFTER", rows=rows)
        return rows

    def _read_virtual(self) -> list[Row]:
        state = self._simulation.get_state_for(self.table_name)
        if state is None:
            return []
        self._virtual_table = copy.deepcopy(state)
        return VirtualEngine(self._descriptor).select(self._virtual_table)

    async def get(self) -> Row | None:
        """Return the first row, or ``None``; the builder itself is not limited."""
        rows = await self.clone().limit(1).all()
        return rows[0] if rows else None

    async def first(self) -> Row | None:
        return await self.get()

    async def find(self, id: Any) -> Row | None:
        return await self.clone().where("id", "=", id).get()

    async def exists(self) -> bool:
        rows = await self.clone().select(["1"]).limit(1).all()
        return bool(rows)

    async def pluck(self, column: str) -> list[Any]:
        rows = await self.clone().select([column]).all()
        return [row.get(column) for row in rows]

    async def make(self) -> WriteResult:
        """Execute the pending write action.

        In simulation mode the action is applied to the virtual snapshot
        instead of the database.

        Raises:
            NoExecutorConfiguredError: No executor serves this table.
            NoPendingActionError: Nothing was queued.
            MissingWhereClauseError: update/delete/increment/decrement without WHERE.
            UnsupportedPendingActionError: The queued action type is unknown.
        """
        if self._simulation.is_active():
            return self._make_virtual()
        runner = WriteActionRunner(self._descriptor, self._executor(), self._events, self._compiler)
        return await runner.run()

    def _make_virtual(self) -> WriteResult:
        check_pending_action(self._descriptor)
        rows = copy.deepcopy(self._simulation.get_state_for(self.table_name) or [])
        rows, result = VirtualEngine(self._descriptor).apply(rows)
        self._simulation.update_state_for(self.table_name, rows)
        self._virtual_table = rows
        self._descriptor.pending_action = None
        return result

    # -- synchronous variants -------------------------------------------

    def all_sync(self) -> list[Row]:
        """Blocking :meth:`all`; needs an executor with ``execute_query_sync``."""
        banks = self._descriptor.target_banks
        executor = self.config.executor_for(self.table_name, banks)
        execute = getattr(executor, "execute_query_sync", None)
        if execute is None:
            raise NoExecutorConfiguredError(self.table_name, banks, "execute_query_sync")
        sql, bindings = self.to_sql()
        self._emit_read("BEFORE", where=None)
        rows = rows_of(execute(sql, bindings))
        self._emit_read("AFTER", rows=rows)
        return rows

    def get_sync(self) -> Row | None:
        rows = self.clone().limit(1).all_sync()
        return rows[0] if rows else None

    def first_sync(self) -> Row | None:
        return self.get_sync()

    def pluck_sync(self, column: str) -> list[Any]:
        return [row.get(column) for row in self.clone().select([column]).all_sync()]

    def scalar_sync(self, alias: str | None = None) -> Any:
        """Return one value of the first row: ``alias`` if present, else the first column."""
        row = self.get_sync()
        if not row:
            return None
        if alias is not None and alias in row:
            return row[alias]
        return next(iter(row.values()))

    def run(self) -> Any:
        """Run the compiled SELECT through the executor's ``run_sync``."""
        banks = self._descriptor.target_banks
        executor = self.config.executor_for(self.table_name, banks)
        run_sync = getattr(executor, "run_sync", None)
        if run_sync is None:
            raise NoExecutorConfiguredError(self.table_name, banks, "run_sync")
        sql, bindings = self.to_sql()
        return run_sync(sql, bindings)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def _is_recording(self) -> bool:
        return self._tracking_enabled or self._simulation.is_active()

    def _track(self, step: str, details: Any = None) -> None:
        if self._is_recording():
            self._tracking_logs.append(TrackingEntry(step, details if details is not None else {}))

    async def initial(self, rows: list[Row] | None = None) -> QueryBuilder:
        """Enable tracking and seed the builder's virtual table.

        Args:
            rows: Initial rows (deep copied).  When omitted, the table is
                seeded with the result of :meth:`all`.
        """
        self._tracking_enabled = True
        self._tracking_logs = []
        if rows is not None:
            self._virtual_table = copy.deepcopy(rows)
            self._track("tracking.initialized", {"source": "manual", "count": len(rows)})
            return self

        self._track("tracking.seeding_from_db", {"query": self.to_sql()})
        results = await self.all()
        self._virtual_table = results
        self._track(
            "tracking.initialized",
            {"source": "database", "table": self.table_name, "count": len(results)},
        )
        return self

    def tracking(self) -> list[TrackingEntry]:
        """Replay the pending write on the virtual table and return the step log.

        Without a pending write, a dry-run summary of the compiled SELECT is
        logged instead.  The virtual replay does not check WHERE requirements;
        it shows what the write would touch.
        """
        if not self._tracking_enabled:
            return [
                TrackingEntry(
                    "error",
                    "Tracking was not enabled. Call .initial() before .tracking().",
                )
            ]

        action = self._descriptor.pending_action
        if action is not None:
            self._track("virtual_execution.start", action.model_dump())
            self._virtual_table, _ = VirtualEngine(self._descriptor).apply(self._virtual_table)
            if self._simulation.is_active():
                self._simulation.update_state_for(self.table_name, self._virtual_table)
            self._track(
                "virtual_execution.end",
                {"final_virtual_table_state": copy.deepcopy(self._virtual_table)},
            )
            self._descriptor.pending_action = None
        else:
            self._track("dry_run_select.summary", self.to_sql())
        return list(self._tracking_logs)


def table(name: str, **options: Any) -> QueryBuilder:
    """Return a new :class:`QueryBuilder` for ``name``.

    ``options`` are forwarded to the constructor (``config``, ``events``,
    ``simulation``, ``dialect``).
    """
    return QueryBuilder(name, **options)
