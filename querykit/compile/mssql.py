"""Microsoft SQL Server dialect."""
from __future__ import annotations

from typing import Any

from querykit.compile.base import Dialect, Fragment


class MSSQLDialect(Dialect):
    """SQL Server fragments.

    ``ROW_NUMBER()`` requires an ORDER BY inside ``OVER``; when none is
    given ``ORDER BY (SELECT NULL)`` keeps the statement valid.
    """

    @property
    def dialect_name(self) -> str:
        return "mssql"

    def case_insensitive_like(self, column: str, pattern: str) -> Fragment:
        return f"{column} LIKE ? COLLATE Latin1_General_CI_AS", [pattern]

    def json_contains(self, column: str, value: Any) -> Fragment:
        return f"EXISTS (SELECT 1 FROM OPENJSON({column}) WHERE value = ?)", [value]

    def full_text(self, columns: list[str], term: str) -> Fragment:
        return f"FREETEXT(({', '.join(columns)}), ?)", [term]

    def row_number(
        self,
        order_by: list[str],
        partition_by: list[str] | None = None,
        alias: str = "row_num",
    ) -> str:
        return super().row_number(order_by or ["(SELECT NULL)"], partition_by, alias)
