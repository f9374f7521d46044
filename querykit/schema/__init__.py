"""QueryKit clause and descriptor models."""
from querykit.schema.clauses import (
    ActionType,
    Aggregate,
    BasicClause,
    BetweenClause,
    ClauseType,
    ColumnClause,
    InClause,
    JoinSpec,
    NullClause,
    OrderSpec,
    PendingAction,
    RawClause,
    RawExpression,
    raw,
)
from querykit.schema.descriptor import (
    ExistsClause,
    QueryDescriptor,
    UnionPart,
    WhereClause,
)

__all__ = [
    "ActionType",
    "Aggregate",
    "BasicClause",
    "BetweenClause",
    "ClauseType",
    "ColumnClause",
    "ExistsClause",
    "InClause",
    "JoinSpec",
    "NullClause",
    "OrderSpec",
    "PendingAction",
    "QueryDescriptor",
    "RawClause",
    "RawExpression",
    "UnionPart",
    "WhereClause",
    "raw",
]
