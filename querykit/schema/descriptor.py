"""The QueryDescriptor: everything one builder has accumulated.

A descriptor is created empty by :class:`~querykit.builder.QueryBuilder`,
mutated only through the builder's fluent methods, and read by the
compiler or the virtual engine.  ``model_copy(deep=True)`` yields a fully
independent copy, including nested ``exists`` subqueries and union parts.
"""
from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from querykit.schema.clauses import (
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
    RawExpression,
    UnionType,
)

_FORBID = ConfigDict(extra="forbid")


class ExistsClause(BaseModel):
    """``[NOT] EXISTS (<subquery>)``; the subquery's bindings come first."""

    model_config = _FORBID

    type: Literal["exists"] = "exists"
    subquery: QueryDescriptor
    negated: bool = False
    logical: Logical = "AND"


#: Discriminated union of every predicate variant.
WhereClause = Annotated[
    Union[
        BasicClause,
        ColumnClause,
        RawClause,
        InClause,
        NullClause,
        BetweenClause,
        ExistsClause,
    ],
    Field(discriminator="type"),
]


class UnionPart(BaseModel):
    """A query appended with ``UNION`` / ``UNION ALL``."""

    model_config = _FORBID

    type: UnionType = "UNION"
    query: QueryDescriptor


class QueryDescriptor(BaseModel):
    """Accumulated clauses and options for a single query.

    Attributes:
        table: Target table name.
        alias: Optional table alias emitted after the table name.
        select_columns: Ordered select list (plain names or raw fragments).
        where_clauses: Ordered WHERE predicates; each carries its connective.
        having_clauses: Ordered HAVING predicates.
        joins: Joins in call order.
        order_clauses: ORDER BY entries in call order.
        group_by_columns: GROUP BY columns.
        limit_value: Optional LIMIT.
        offset_value: Optional OFFSET.
        is_distinct: Emit ``SELECT DISTINCT``.
        aggregates: Registered aggregates; only the first is compiled.
        union_parts: Queries combined with this one.
        pending_action: The queued write action, if any.
        target_banks: Database names to route to through the registry.
    """

    model_config = _FORBID

    table: str
    alias: str | None = None
    select_columns: list[Union[str, RawExpression]] = Field(default_factory=lambda: ["*"])
    where_clauses: list[WhereClause] = Field(default_factory=list)
    having_clauses: list[WhereClause] = Field(default_factory=list)
    joins: list[JoinSpec] = Field(default_factory=list)
    order_clauses: list[OrderSpec] = Field(default_factory=list)
    group_by_columns: list[str] = Field(default_factory=list)
    limit_value: int | None = None
    offset_value: int | None = None
    is_distinct: bool = False
    aggregates: list[Aggregate] = Field(default_factory=list)
    union_parts: list[UnionPart] = Field(default_factory=list)
    pending_action: PendingAction | None = None
    target_banks: list[str] | None = None

    @property
    def or_where_clauses(self) -> list[WhereClause]:
        """The WHERE predicates joined with ``OR``, in call order."""
        return [c for c in self.where_clauses if c.logical == "OR"]


# Resolve forward references created by the recursive descriptor type.
ExistsClause.model_rebuild()
UnionPart.model_rebuild()
QueryDescriptor.model_rebuild()
