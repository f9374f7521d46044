"""Core QueryDescriptor → SQL compilation logic.

``SQLCompiler`` is the top-level orchestrator.  It wires together the
clause-level sub-builders and drives the compilation algorithm.  It never
mutates the descriptor it is given, so compiling the same descriptor twice
yields identical output.

Sub-builder hierarchy
---------------------
SQLCompiler
  ├── SelectClauseBuilder  (clause_builders.py)
  ├── JoinClauseBuilder    (clause_builders.py)
  ├── PredicateBuilder     (clause_builders.py)
  ├── OrderClauseBuilder   (clause_builders.py)
  └── UnionBuilder         (clause_builders.py)

Binding context sharing
-----------------------
A single :class:`~querykit.compile.context.BindingContext` is created per
``compile_*`` call and threaded through every sub-builder and every nested
descriptor (``EXISTS`` subqueries, union parts).  Values are appended at the
moment their placeholder is emitted, which keeps ``bindings`` aligned with
the ``?`` markers of the final statement.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from querykit.compile.base import CompiledSQL, CompiledWrite
from querykit.compile.clause_builders import (
    JoinClauseBuilder,
    OrderClauseBuilder,
    PredicateBuilder,
    SelectClauseBuilder,
    UnionBuilder,
)
from querykit.compile.context import BindingContext
from querykit.errors import CompilationError
from querykit.schema.descriptor import QueryDescriptor, WhereClause

logger = logging.getLogger(__name__)


class SQLCompiler:
    """Compiles a QueryDescriptor to parameterized SQL.

    SELECT statements come from :meth:`compile_select`; the write statements
    used by the action runner come from :meth:`compile_insert`,
    :meth:`compile_update`, :meth:`compile_increment` and
    :meth:`compile_delete`.  All of them share the same predicate builder.
    """

    def __init__(self) -> None:
        self._select = SelectClauseBuilder()
        self._join = JoinClauseBuilder()
        self._order = OrderClauseBuilder()

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def compile_select(self, descriptor: QueryDescriptor) -> CompiledSQL:
        """Compile ``descriptor`` to a SELECT statement.

        Args:
            descriptor: The accumulated query.

        Returns:
            :class:`~querykit.compile.base.CompiledSQL` with ``sql`` and
            positional ``bindings``.

        Raises:
            UnsupportedWhereClauseTypeError: If a predicate has an unknown type.
        """
        ctx = BindingContext()
        sql = self._build_statement(descriptor, ctx)
        logger.debug("Compiled SELECT for %s: %s", descriptor.table, sql)
        return CompiledSQL(sql=sql, bindings=ctx.bindings)

    def _build_statement(self, descriptor: QueryDescriptor, ctx: BindingContext) -> str:
        parts = [self._build_core_query(descriptor, ctx)]

        if descriptor.union_parts:
            union = UnionBuilder(lambda d: self._build_statement(d, ctx))
            for part in descriptor.union_parts:
                parts.append(union.build(part))

        # ORDER BY / LIMIT / OFFSET are emitted once, after any union parts.
        if descriptor.order_clauses:
            parts.append(self._order.build(descriptor.order_clauses))
        if descriptor.limit_value is not None:
            parts.append(f"LIMIT {ctx.add(descriptor.limit_value)}")
        if descriptor.offset_value is not None:
            parts.append(f"OFFSET {ctx.add(descriptor.offset_value)}")

        return " ".join(parts)

    def _build_core_query(self, descriptor: QueryDescriptor, ctx: BindingContext) -> str:
        parts = [self._select.build(descriptor)]

        for join in descriptor.joins:
            parts.append(self._join.build(join))

        pred = self._predicates(ctx)
        if descriptor.where_clauses:
            parts.append(f"WHERE {pred.build(descriptor.where_clauses)}")

        if descriptor.group_by_columns:
            parts.append(f"GROUP BY {', '.join(descriptor.group_by_columns)}")

        if descriptor.having_clauses:
            parts.append(f"HAVING {pred.build(descriptor.having_clauses, 'HAVING')}")

        return " ".join(parts)

    def _predicates(self, ctx: BindingContext) -> PredicateBuilder:
        return PredicateBuilder(ctx, lambda d: self._build_statement(d, ctx))

    # ------------------------------------------------------------------
    # Write statements
    # ------------------------------------------------------------------

    def compile_insert(
        self,
        table: str,
        rows: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    ) -> CompiledWrite:
        """Compile a (multi-row) INSERT.

        Columns are taken from the first row; keys missing from later rows
        are bound as ``None``.
        """
        if isinstance(rows, Mapping):
            rows = [rows]
        if not rows or not rows[0]:
            raise CompilationError("INSERT requires at least one non-empty row.", clause="VALUES")
        columns = list(rows[0].keys())
        ctx = BindingContext()
        groups = [
            f"({ctx.add_many(row.get(col) for col in columns)})" for row in rows
        ]
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES {', '.join(groups)}"
        return CompiledWrite(sql=sql, bindings=ctx.bindings)

    def compile_update(
        self,
        descriptor: QueryDescriptor,
        values: Mapping[str, Any],
    ) -> CompiledWrite:
        """Compile ``UPDATE <table> SET … WHERE …``; SET bindings come first.

        Raises:
            CompilationError: If ``values`` is empty.
        """
        if not values:
            raise CompilationError("UPDATE requires at least one column to set.", clause="SET")
        ctx = BindingContext()
        set_sql = ", ".join(f"{col} = {ctx.add(val)}" for col, val in values.items())
        return self._with_where(f"UPDATE {descriptor.table} SET {set_sql}", descriptor, ctx)

    def compile_increment(
        self,
        descriptor: QueryDescriptor,
        column: str,
        amount: Any = 1,
        *,
        decrement: bool = False,
    ) -> CompiledWrite:
        """Compile ``UPDATE <table> SET col = col ± ? WHERE …``."""
        ctx = BindingContext()
        sign = "-" if decrement else "+"
        head = f"UPDATE {descriptor.table} SET {column} = {column} {sign} {ctx.add(amount)}"
        return self._with_where(head, descriptor, ctx)

    def compile_delete(self, descriptor: QueryDescriptor) -> CompiledWrite:
        """Compile ``DELETE FROM <table> WHERE …``."""
        return self._with_where(f"DELETE FROM {descriptor.table}", descriptor, BindingContext())

    def compile_where(self, clauses: list[WhereClause]) -> CompiledSQL:
        """Compile a bare predicate list (no ``WHERE`` keyword)."""
        ctx = BindingContext()
        return CompiledSQL(sql=self._predicates(ctx).build(clauses), bindings=ctx.bindings)

    def _with_where(
        self,
        head: str,
        descriptor: QueryDescriptor,
        ctx: BindingContext,
    ) -> CompiledWrite:
        where = self.compile_where(descriptor.where_clauses)
        ctx.extend(where.bindings)
        sql = f"{head} WHERE {where.sql}" if where.sql else head
        logger.debug("Compiled write for %s: %s", descriptor.table, sql)
        return CompiledWrite(
            sql=sql,
            bindings=ctx.bindings,
            where_sql=where.sql,
            where_bindings=where.bindings,
        )
