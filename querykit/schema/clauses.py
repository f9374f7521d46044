"""Pydantic records for the individual clauses held by a QueryDescriptor.

Predicates are a tagged union keyed on ``type``; each variant carries the
``logical`` connective used to join it to the clause before it.  Records
that reference a nested descriptor (``exists`` predicates and union parts)
live in :mod:`querykit.schema.descriptor` next to the descriptor itself.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

_FORBID = ConfigDict(extra="forbid")

#: Connective placed before every clause except the first of a list.
Logical = Literal["AND", "OR"]

#: Comparison operators accepted by ``where`` / ``having``.
Operator = Literal[
    "=", "!=", "<>", ">", ">=", "<", "<=",
    "LIKE", "NOT LIKE", "IN", "NOT IN",
    "BETWEEN", "NOT BETWEEN", "IS NULL", "IS NOT NULL",
]

JoinType = Literal["INNER", "LEFT", "RIGHT"]
Direction = Literal["ASC", "DESC"]
AggregateFunc = Literal["count", "sum", "avg", "min", "max"]
UnionType = Literal["UNION", "UNION ALL"]


class ClauseType(str, Enum):
    """The discriminator value of each predicate variant."""

    BASIC = "basic"
    COLUMN = "column"
    RAW = "raw"
    IN = "in"
    NULL = "null"
    BETWEEN = "between"
    EXISTS = "exists"


class ActionType(str, Enum):
    """Write actions a builder can hold as its pending action."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    INCREMENT = "increment"
    DECREMENT = "decrement"
    UPDATE_OR_INSERT = "updateOrInsert"


#: Actions that refuse to run without at least one WHERE clause.
WHERE_REQUIRED_ACTIONS: frozenset[str] = frozenset(
    {ActionType.UPDATE.value, ActionType.DELETE.value,
     ActionType.INCREMENT.value, ActionType.DECREMENT.value}
)


class RawExpression(BaseModel):
    """A verbatim SQL fragment placed in the select list."""

    model_config = _FORBID

    sql: str

    def to_sql(self) -> str:
        return self.sql


def raw(sql: str) -> RawExpression:
    """Wrap ``sql`` so the compiler emits it untouched."""
    return RawExpression(sql=sql)


# ---------------------------------------------------------------------------
# Predicate variants (non-recursive)
# ---------------------------------------------------------------------------


class BasicClause(BaseModel):
    """``<column> <operator> ?`` with one bound value."""

    model_config = _FORBID

    type: Literal["basic"] = "basic"
    column: str
    operator: Operator
    value: Any = None
    logical: Logical = "AND"


class ColumnClause(BaseModel):
    """``<column> <operator> <other_column>``; binds nothing."""

    model_config = _FORBID

    type: Literal["column"] = "column"
    column: str
    operator: Operator
    other_column: str
    logical: Logical = "AND"


class RawClause(BaseModel):
    """A verbatim predicate fragment with its own positional bindings."""

    model_config = _FORBID

    type: Literal["raw"] = "raw"
    sql: str
    bindings: list[Any] = Field(default_factory=list)
    logical: Logical = "AND"


class InClause(BaseModel):
    """``<column> [NOT] IN (?, ...)``.

    An empty ``values`` list compiles to ``1=0`` (or ``1=1`` when negated).
    """

    model_config = _FORBID

    type: Literal["in"] = "in"
    column: str
    values: list[Any] = Field(default_factory=list)
    negated: bool = False
    logical: Logical = "AND"


class NullClause(BaseModel):
    """``<column> IS [NOT] NULL``."""

    model_config = _FORBID

    type: Literal["null"] = "null"
    column: str
    negated: bool = False
    logical: Logical = "AND"


class BetweenClause(BaseModel):
    """``<column> [NOT] BETWEEN ? AND ?``."""

    model_config = _FORBID

    type: Literal["between"] = "between"
    column: str
    bounds: tuple[Any, Any]
    negated: bool = False
    logical: Logical = "AND"


# ---------------------------------------------------------------------------
# Other clause records
# ---------------------------------------------------------------------------


class JoinSpec(BaseModel):
    """A single ``<type> JOIN <table> ON <on>`` entry."""

    model_config = _FORBID

    type: JoinType = "INNER"
    table: str
    on: str


class OrderSpec(BaseModel):
    """A single ORDER BY entry."""

    model_config = _FORBID

    column: str
    direction: Direction = "ASC"


class Aggregate(BaseModel):
    """An aggregate registered through ``count()`` / ``sum()`` / ...

    Attributes:
        func: Aggregate function name (lower case).
        column: Column (or ``*``) the function is applied to.
        alias: Output column name.
    """

    model_config = _FORBID

    func: AggregateFunc
    column: str
    alias: str

    def to_sql(self) -> str:
        return f"{self.func.upper()}({self.column}) AS {self.alias}"


class PendingAction(BaseModel):
    """The single write action queued on a builder.

    ``type`` is kept as a plain string so that an unknown value is reported
    by the action runner rather than rejected on assignment.
    """

    model_config = _FORBID

    type: str
    data: Any = None
