"""MySQL dialect."""
from __future__ import annotations

import json
from typing import Any

from querykit.compile.base import Dialect, Fragment


class MySQLDialect(Dialect):
    """MySQL fragments.

    Note: MySQL does not support ``ILIKE``; an explicit case-insensitive
    collation is forced instead so binary / ``_cs`` columns match too.
    """

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def case_insensitive_like(self, column: str, pattern: str) -> Fragment:
        return f"{column} LIKE ? COLLATE utf8mb4_general_ci", [pattern]

    def json_contains(self, column: str, value: Any) -> Fragment:
        return f"JSON_CONTAINS({column}, ?)", [json.dumps(value)]

    def full_text(self, columns: list[str], term: str) -> Fragment:
        return f"MATCH({', '.join(columns)}) AGAINST(? IN NATURAL LANGUAGE MODE)", [term]
