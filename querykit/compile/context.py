"""Binding accumulator shared by every clause builder in one compilation run.

A single :class:`BindingContext` is threaded through the WHERE / HAVING
builders and through every nested descriptor (``EXISTS`` subqueries and
union parts), so values land in the list in exactly the order their
``?`` placeholders are emitted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

PLACEHOLDER = "?"


@dataclass
class BindingContext:
    """Ordered positional bindings for one statement."""

    bindings: list[Any] = field(default_factory=list)

    def add(self, value: Any) -> str:
        """Store one value and return its placeholder."""
        self.bindings.append(value)
        return PLACEHOLDER

    def add_many(self, values: Iterable[Any]) -> str:
        """Store several values and return their comma-joined placeholders."""
        return ", ".join(self.add(v) for v in values)

    def extend(self, values: Iterable[Any]) -> None:
        """Splice bindings of a fragment compiled elsewhere."""
        self.bindings.extend(values)
