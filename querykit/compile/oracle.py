"""Oracle dialect."""
from __future__ import annotations

from typing import Any

from querykit.compile.base import Dialect, Fragment


class OracleDialect(Dialect):
    """Oracle fragments.

    Oracle has neither ``ILIKE`` nor a portable case-insensitive collation
    hint, so both sides are upper-cased.  Oracle Text ``CONTAINS`` takes a
    single column, hence one bound term per column for full-text search.
    """

    @property
    def dialect_name(self) -> str:
        return "oracle"

    def case_insensitive_like(self, column: str, pattern: str) -> Fragment:
        return f"UPPER({column}) LIKE UPPER(?)", [pattern]

    def json_contains(self, column: str, value: Any) -> Fragment:
        return (
            f"EXISTS (SELECT 1 FROM JSON_TABLE({column}, '$[*]' "
            f"COLUMNS (v VARCHAR2(4000) PATH '$')) jt WHERE jt.v = ?)",
            [value],
        )

    def full_text(self, columns: list[str], term: str) -> Fragment:
        conditions = " OR ".join(f"CONTAINS({col}, ?) > 0" for col in columns)
        return f"({conditions})", [term for _ in columns]
