"""Clause-level SQL builders.

Each class handles exactly one SQL clause.  ``PredicateBuilder`` and
``UnionBuilder`` receive a *shared build function*
(``Callable[[QueryDescriptor], str]``) so that every nested descriptor
(``EXISTS`` subqueries and union parts) is compiled into the **same**
:class:`~querykit.compile.context.BindingContext` as the outer query.
Bindings therefore follow placeholder order across the whole statement.

Classes
-------
SelectClauseBuilder   — ``SELECT [DISTINCT] <items> FROM <table> [alias]``
JoinClauseBuilder     — ``<TYPE> JOIN <table> ON <condition>``
PredicateBuilder      — WHERE / HAVING clause lists
OrderClauseBuilder    — ``ORDER BY …``
UnionBuilder          — ``UNION / UNION ALL <query>``
"""
from __future__ import annotations

import logging
from typing import Callable

from querykit.compile.context import BindingContext
from querykit.errors import UnsupportedWhereClauseTypeError
from querykit.schema.clauses import (
    BasicClause,
    BetweenClause,
    ColumnClause,
    InClause,
    JoinSpec,
    NullClause,
    OrderSpec,
    RawClause,
    RawExpression,
)
from querykit.schema.descriptor import (
    ExistsClause,
    QueryDescriptor,
    UnionPart,
    WhereClause,
)

logger = logging.getLogger(__name__)

#: Alias of the subselect wrapping a union branch that is itself a union.
UNION_BRANCH_ALIAS = "union_branch"


class SelectClauseBuilder:
    """Builds ``SELECT [DISTINCT] <columns> FROM <table>[ <alias>]``.

    When aggregates are registered the select list is replaced by the first
    aggregate only; later aggregates are not emitted.
    """

    def build(self, descriptor: QueryDescriptor) -> str:
        columns = self._columns(descriptor)
        prefix = "SELECT DISTINCT" if descriptor.is_distinct else "SELECT"
        table_sql = descriptor.table
        if descriptor.alias:
            table_sql = f"{table_sql} {descriptor.alias}"
        return f"{prefix} {columns} FROM {table_sql}"

    def _columns(self, descriptor: QueryDescriptor) -> str:
        if descriptor.aggregates:
            if len(descriptor.aggregates) > 1:
                dropped = [a.alias for a in descriptor.aggregates[1:]]
                logger.debug(
                    "Only the first aggregate is compiled for %s; dropped %s",
                    descriptor.table, dropped,
                )
            return descriptor.aggregates[0].to_sql()
        items = [
            c.to_sql() if isinstance(c, RawExpression) else str(c)
            for c in descriptor.select_columns
        ]
        return ", ".join(items) if items else "*"


class JoinClauseBuilder:
    """Builds a single ``JOIN … ON …`` fragment."""

    def build(self, join: JoinSpec) -> str:
        return f"{join.type} JOIN {join.table} ON {join.on}"


class OrderClauseBuilder:
    """Builds the ``ORDER BY`` fragment."""

    def build(self, orders: list[OrderSpec]) -> str:
        return "ORDER BY " + ", ".join(f"{o.column} {o.direction}" for o in orders)


class PredicateBuilder:
    """Compiles an ordered predicate list (WHERE or HAVING) to SQL.

    The first clause is emitted bare; every later clause is prefixed with
    its own ``logical`` connective, so AND and OR can be mixed in one list.

    Args:
        bindings: Shared binding accumulator for the statement.
        build_subquery: Compiles a nested descriptor into ``bindings``.
    """

    def __init__(
        self,
        bindings: BindingContext,
        build_subquery: Callable[[QueryDescriptor], str],
    ) -> None:
        self._bindings = bindings
        self._build_subquery = build_subquery

    def build(self, clauses: list[WhereClause], clause_name: str = "WHERE") -> str:
        parts: list[str] = []
        for index, clause in enumerate(clauses):
            fragment = self._dispatch(clause, clause_name)
            parts.append(f"{clause.logical} {fragment}" if index > 0 else fragment)
        return " ".join(parts)

    # ------------------------------------------------------------------
    # Variant dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, clause: WhereClause, clause_name: str) -> str:
        if isinstance(clause, BasicClause):
            return f"{clause.column} {clause.operator} {self._bindings.add(clause.value)}"

        if isinstance(clause, ColumnClause):
            return f"{clause.column} {clause.operator} {clause.other_column}"

        if isinstance(clause, RawClause):
            self._bindings.extend(clause.bindings)
            return clause.sql

        if isinstance(clause, InClause):
            if not clause.values:
                return "1=1" if clause.negated else "1=0"
            keyword = "NOT IN" if clause.negated else "IN"
            return f"{clause.column} {keyword} ({self._bindings.add_many(clause.values)})"

        if isinstance(clause, NullClause):
            return f"{clause.column} IS {'NOT ' if clause.negated else ''}NULL"

        if isinstance(clause, BetweenClause):
            keyword = "NOT BETWEEN" if clause.negated else "BETWEEN"
            low, high = clause.bounds
            return (
                f"{clause.column} {keyword} "
                f"{self._bindings.add(low)} AND {self._bindings.add(high)}"
            )

        if isinstance(clause, ExistsClause):
            sub_sql = self._build_subquery(clause.subquery)
            return f"{'NOT ' if clause.negated else ''}EXISTS ({sub_sql})"

        raise UnsupportedWhereClauseTypeError(
            str(getattr(clause, "type", type(clause).__name__)), clause=clause_name
        )


class UnionBuilder:
    """Builds a ``UNION / UNION ALL <query>`` fragment.

    The appended query is compiled with ``build_fn`` so its bindings follow
    the bindings already accumulated for the left-hand side.
    """

    def __init__(self, build_fn: Callable[[QueryDescriptor], str]) -> None:
        self._build_fn = build_fn

    def build(self, part: UnionPart) -> str:
        # Ordering and pagination apply to the combined result only.
        branch = part.query.model_copy(
            update={"order_clauses": [], "limit_value": None, "offset_value": None}
        )
        branch_sql = self._build_fn(branch)
        if branch.union_parts:
            # A compound branch spliced in flat would associate to the left.
            # SQLite rejects parenthesized compound operands, hence a subselect.
            branch_sql = f"SELECT * FROM ({branch_sql}) {UNION_BRANCH_ALIAS}"
        return f"{part.type} {branch_sql}"
