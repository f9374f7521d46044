"""Portable fallback dialect, used when the backend is not declared."""
from __future__ import annotations

from querykit.compile.base import Dialect, Fragment


class PortableDialect(Dialect):
    """Emits ANSI-leaning SQL that most backends accept.

    Case-insensitive matching lowers both sides, which works everywhere at
    the cost of index usage.
    """

    @property
    def dialect_name(self) -> str:
        return "portable"

    def case_insensitive_like(self, column: str, pattern: str) -> Fragment:
        return f"LOWER({column}) LIKE LOWER(?)", [pattern]
