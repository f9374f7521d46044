"""Dialect registry (Open/Closed Principle).

``DialectFactory`` maps backend names to :class:`~querykit.compile.base.Dialect`
classes.  Register a dialect once; builders look it up by the name an
executor declares in its ``dialect`` attribute.

Usage::

    from querykit.compile.registry import DialectFactory

    @DialectFactory.register("duckdb")
    class DuckDBDialect(Dialect):
        ...
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import ClassVar

from querykit.compile.base import Dialect
from querykit.compile.portable import PortableDialect
from querykit.errors import CompilationError

logger = logging.getLogger(__name__)


class DialectFactory:
    """Registry mapping dialect names to :class:`Dialect` classes.

    Example::

        @DialectFactory.register("mysql")
        class MySQLDialect(Dialect):
            ...

        dialect = DialectFactory.create("mysql")
    """

    _dialects: ClassVar[dict[str, type[Dialect]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[Dialect]], type[Dialect]]:
        """Decorator that registers a dialect class under ``name``.

        Args:
            name: The dialect name (e.g. ``"postgres"``).

        Returns:
            A decorator that registers and returns the dialect class.
        """

        def decorator(dialect_cls: type[Dialect]) -> type[Dialect]:
            cls._dialects[name] = dialect_cls
            return dialect_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, dialect_cls: type[Dialect]) -> None:
        """Register a dialect class without using the decorator form."""
        cls._dialects[name] = dialect_cls

    @classmethod
    def create(cls, name: str) -> Dialect:
        """Instantiate the dialect registered for ``name``.

        Raises:
            CompilationError: If no dialect is registered for ``name``.
        """
        dialect_cls = cls._dialects.get(name)
        if dialect_cls is None:
            registered = sorted(cls._dialects)
            raise CompilationError(
                f"Unsupported dialect: '{name}'. Registered dialects: {registered}."
            )
        return dialect_cls()

    @classmethod
    def resolve(cls, name: str | None) -> Dialect:
        """Return the dialect for ``name``, or the portable fallback.

        Unlike :meth:`create`, an unknown or missing name never raises.
        """
        if name and name in cls._dialects:
            return cls._dialects[name]()
        if name:
            logger.debug("Unknown dialect %r, using portable SQL fragments", name)
        return PortableDialect()

    @classmethod
    def registered_dialects(cls) -> list[str]:
        """Return the sorted list of registered dialect names."""
        return sorted(cls._dialects)
