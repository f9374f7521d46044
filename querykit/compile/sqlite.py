"""SQLite dialect."""
from __future__ import annotations

from typing import Any

from querykit.compile.base import Dialect, Fragment


class SQLiteDialect(Dialect):
    """SQLite fragments.

    Note: SQLite has no ``ILIKE``; ``COLLATE NOCASE`` folds ASCII case.
    JSON containment relies on the JSON1 ``json_each`` table-valued function.
    """

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def case_insensitive_like(self, column: str, pattern: str) -> Fragment:
        return f"{column} LIKE ? COLLATE NOCASE", [pattern]

    def json_contains(self, column: str, value: Any) -> Fragment:
        return (
            f"EXISTS (SELECT 1 FROM json_each({column}) WHERE json_each.value = ?)",
            [value],
        )
