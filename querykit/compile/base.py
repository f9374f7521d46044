"""Compiler abstractions: CompiledSQL and the Dialect ABC.

The Strategy pattern is used for dialect-specific fragments:
- ``Dialect`` declares one fragment builder per backend-sensitive helper
  (case-insensitive LIKE, JSON containment, full-text search, row numbering).
- ``PostgresDialect``, ``MySQLDialect``, ... override the fragments that
  differ; ``PortableDialect`` is the fallback when the backend is unknown.

Every fragment builder returns ``(sql, bindings)`` where ``bindings`` lines
up with the ``?`` placeholders of ``sql``.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

#: A compiled fragment and its positional bindings.
Fragment = tuple[str, list[Any]]


@dataclass
class CompiledSQL:
    """The output of a successful compilation.

    Attributes:
        sql: The compiled SQL string with ``?`` placeholders.
        bindings: Positional values, one per placeholder, left to right.
    """

    sql: str
    bindings: list[Any] = field(default_factory=list)

    def __iter__(self):
        # Allows ``sql, bindings = builder.to_sql()``.
        return iter((self.sql, self.bindings))

    @property
    def placeholder_count(self) -> int:
        """Number of ``?`` placeholders in :attr:`sql`."""
        return self.sql.count("?")


@dataclass
class CompiledWrite(CompiledSQL):
    """A compiled INSERT / UPDATE / DELETE statement.

    Attributes:
        where_sql: The WHERE predicate alone (empty for INSERT).
        where_bindings: Bindings belonging to :attr:`where_sql`.
    """

    where_sql: str = ""
    where_bindings: list[Any] = field(default_factory=list)

    def where_payload(self) -> dict[str, Any] | None:
        """Return the ``where`` entry published with trigger events."""
        if not self.where_sql:
            return None
        return {"sql": self.where_sql, "bindings": list(self.where_bindings)}


class Dialect(ABC):
    """Abstract base for dialect-specific SQL fragments.

    Subclasses implement :meth:`case_insensitive_like`; the remaining
    fragments have portable defaults that backends override when they
    offer a native form.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name (``'postgres'``, ``'sqlite'``, ...)."""

    @abstractmethod
    def case_insensitive_like(self, column: str, pattern: str) -> Fragment:
        """Return a case-insensitive ``LIKE`` predicate.

        Args:
            column: Column expression to match.
            pattern: LIKE pattern (``%`` / ``_`` wildcards), bound as-is.

        Returns:
            ``(sql, [pattern])``.
        """

    def json_contains(self, column: str, value: Any) -> Fragment:
        """Return a predicate testing that a JSON array column contains ``value``."""
        return f"{column} LIKE ?", [f"%{json.dumps(value)}%"]

    def full_text(self, columns: list[str], term: str) -> Fragment:
        """Return a predicate matching ``term`` against any of ``columns``."""
        conditions = " OR ".join(f"{col} LIKE ?" for col in columns)
        return f"({conditions})", [f"%{term}%" for _ in columns]

    def row_number(
        self,
        order_by: list[str],
        partition_by: list[str] | None = None,
        alias: str = "row_num",
    ) -> str:
        """Return a ``ROW_NUMBER() OVER (...) AS alias`` select expression."""
        parts: list[str] = []
        if partition_by:
            parts.append(f"PARTITION BY {', '.join(partition_by)}")
        if order_by:
            parts.append(f"ORDER BY {', '.join(order_by)}")
        return f"ROW_NUMBER() OVER ({' '.join(parts)}) AS {alias}"
