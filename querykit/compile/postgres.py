"""PostgreSQL dialect."""
from __future__ import annotations

import json
from typing import Any

from querykit.compile.base import Dialect, Fragment


class PostgresDialect(Dialect):
    """PostgreSQL fragments: native ``ILIKE``, ``jsonb`` containment and
    ``tsvector`` full-text search."""

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def case_insensitive_like(self, column: str, pattern: str) -> Fragment:
        return f"{column} ILIKE ?", [pattern]

    def json_contains(self, column: str, value: Any) -> Fragment:
        return f"{column} @> CAST(? AS jsonb)", [json.dumps([value])]

    def full_text(self, columns: list[str], term: str) -> Fragment:
        document = f"concat_ws(' ', {', '.join(columns)})"
        return f"to_tsvector({document}) @@ plainto_tsquery(?)", [term]
