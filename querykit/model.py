"""Active-record style models on top of :class:`~querykit.builder.QueryBuilder`.

A model class names its table and, optionally, the database banks it lives
in and which attributes may be written::

    class User(Model):
        table_name = "users"
        fillable = ("name", "email")

    user = User()
    user.fill({"name": "Ada", "email": "ada@example.com", "role": "admin"})
    await user.save()        # INSERT INTO users (name, email) VALUES (?, ?)

    admins = await User.query().where("role", "=", "admin").all()

When ``fillable`` is non-empty only those keys are written; otherwise every
key except the ``guarded`` ones (``id``, ``created_at``, ``updated_at`` by
default) is.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from querykit.actions import WriteResult
from querykit.builder import QueryBuilder

logger = logging.getLogger(__name__)


class Model:
    """Base class for table-backed records.

    Args:
        **attributes: Initial attribute values, stored as given (not
            filtered by ``fillable`` / ``guarded``).

    Attributes:
        attributes: The record's column values.
    """

    table_name: ClassVar[str] = ""
    banks: ClassVar[Sequence[str]] = ()
    fillable: ClassVar[Sequence[str]] = ()
    guarded: ClassVar[Sequence[str]] = ("id", "created_at", "updated_at")

    def __init__(self, **attributes: Any) -> None:
        self.attributes: dict[str, Any] = dict(attributes)
        self._banks: list[str] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.attributes!r})"

    def __getitem__(self, key: str) -> Any:
        return self.attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    @property
    def id(self) -> Any:
        return self.attributes.get("id")

    @classmethod
    def query(cls, **options: Any) -> QueryBuilder:
        """Return a builder for the model's table, routed to its class banks."""
        builder = QueryBuilder(cls.table_name, **options)
        if cls.banks:
            builder.bank(list(cls.banks))
        return builder

    def bank(self, names: str | list[str]) -> Model:
        """Route this instance's writes to ``names``, overriding the class banks."""
        self._banks = [names] if isinstance(names, str) else list(names)
        return self

    def fill(self, attributes: Mapping[str, Any]) -> Model:
        """Merge the writable subset of ``attributes`` into the record."""
        self.attributes.update(self.writable(attributes))
        return self

    def writable(self, attributes: Mapping[str, Any]) -> dict[str, Any]:
        """Filter ``attributes`` through ``fillable``, else through ``guarded``."""
        if self.fillable:
            return {key: attributes[key] for key in self.fillable if key in attributes}
        return {key: value for key, value in attributes.items() if key not in self.guarded}

    def _query(self) -> QueryBuilder:
        builder = type(self).query()
        if self._banks:
            builder.bank(self._banks)
        return builder

    async def save(self) -> WriteResult:
        """Update the row with this record's ``id``, or insert a new one.

        After an insert the generated identifier, when the backend reports
        one, is stored as ``id`` so the next ``save()`` updates.
        """
        values = self.writable(self.attributes)
        if self.id:
            return await self._query().where("id", "=", self.id).update(values).make()

        result = await self._query().insert(values).make()
        if result.last_insert_rowid:
            self.attributes["id"] = result.last_insert_rowid
        logger.debug("Inserted %s row %s", self.table_name, result.last_insert_rowid)
        return result

    async def delete(self) -> WriteResult:
        """Delete the row with this record's ``id``."""
        return await self._query().where("id", "=", self.id).delete().make()
