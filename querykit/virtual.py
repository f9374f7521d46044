"""Virtual execution engine.

Interprets a :class:`~querykit.schema.descriptor.QueryDescriptor` against an
in-memory table (a list of row dicts) instead of a database.  It backs
simulation mode and the builder's tracking log.

Fidelity: only ``basic`` predicates with the ``=`` operator filter rows.
They are combined with their ``AND`` / ``OR`` connectives the way the
compiled WHERE clause is (AND binds tighter than OR).  Every other predicate
variant (``IN``, ``BETWEEN``, ``NULL``, ``raw``, ``EXISTS``, ``column``) and
every other operator counts as satisfied, and joins, grouping, ordering and
aggregates are ignored.  Results can therefore differ from a real backend
for queries using them; offset/limit slicing matches real pagination.
"""
from __future__ import annotations

import copy
from typing import Any

from querykit.actions import WriteResult
from querykit.errors import UnsupportedPendingActionError
from querykit.schema.clauses import ActionType, BasicClause
from querykit.schema.descriptor import QueryDescriptor

Row = dict[str, Any]


class VirtualEngine:
    """Reads and writes a descriptor against in-memory rows.

    Args:
        descriptor: The query to interpret.
        primary_key: Column identifying rows for deletion.
    """

    def __init__(self, descriptor: QueryDescriptor, primary_key: str = "id") -> None:
        self._descriptor = descriptor
        self._pk = primary_key

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def matches(self, row: Row) -> bool:
        """Evaluate the WHERE list on ``row``.

        Clauses are split into OR-groups at every clause whose connective is
        ``OR``; a group holds when all of its clauses hold, and the row
        matches when any group does.  The first clause's connective is
        ignored, as in the compiled SQL.
        """
        groups: list[bool] = []
        for index, clause in enumerate(self._descriptor.where_clauses):
            holds = self._holds(clause, row)
            if index == 0 or clause.logical == "OR":
                groups.append(holds)
            else:
                groups[-1] = groups[-1] and holds
        return not groups or any(groups)

    @staticmethod
    def _holds(clause: Any, row: Row) -> bool:
        if isinstance(clause, BasicClause) and clause.operator == "=":
            return row.get(clause.column) == clause.value
        return True

    def filter(self, rows: list[Row]) -> list[Row]:
        if not self._descriptor.where_clauses:
            return list(rows)
        return [row for row in rows if self.matches(row)]

    def paginate(self, rows: list[Row]) -> list[Row]:
        offset = self._descriptor.offset_value or 0
        limit = self._descriptor.limit_value
        end = len(rows) if limit is None else offset + limit
        return rows[offset:end]

    def select(self, rows: list[Row]) -> list[Row]:
        """Filter then slice ``rows`` the way the compiled SELECT would."""
        return self.paginate(self.filter(rows))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def apply(self, rows: list[Row]) -> tuple[list[Row], WriteResult]:
        """Apply the descriptor's pending action to ``rows``.

        Matching rows are updated in place; inserts and deletes produce a
        new list.  Preconditions (pending action present, WHERE clause for
        destructive actions) are checked by the caller.

        Returns:
            The resulting table and the :class:`WriteResult` a real backend
            would have reported.

        Raises:
            UnsupportedPendingActionError: The action type is unknown.
        """
        action = self._descriptor.pending_action
        if action is None:
            return rows, WriteResult()
        data = action.data

        if action.type == ActionType.INSERT.value:
            return self._insert(rows, data)

        if action.type == ActionType.UPDATE.value:
            matched = self.filter(rows)
            for row in matched:
                row.update(copy.deepcopy(data))
            return rows, WriteResult(changes=len(matched))

        if action.type == ActionType.DELETE.value:
            kept = self._without(rows, self.filter(rows))
            return kept, WriteResult(changes=len(rows) - len(kept))

        if action.type in (ActionType.INCREMENT.value, ActionType.DECREMENT.value):
            column = data["column"]
            amount = data.get("amount", 1)
            if action.type == ActionType.DECREMENT.value:
                amount = -amount
            matched = self.filter(rows)
            for row in matched:
                row[column] = (row.get(column) or 0) + amount
            return rows, WriteResult(changes=len(matched))

        if action.type == ActionType.UPDATE_OR_INSERT.value:
            attributes, values = data["attributes"], data["values"]
            matched = [
                row for row in rows
                if all(row.get(col) == val for col, val in attributes.items())
            ]
            if not matched:
                return self._insert(rows, [{**attributes, **values}])
            for row in matched:
                row.update(copy.deepcopy(values))
            return rows, WriteResult(changes=len(matched))

        raise UnsupportedPendingActionError(action.type)

    def _without(self, rows: list[Row], doomed: list[Row]) -> list[Row]:
        """Drop rows by primary key; rows lacking one are matched by identity."""
        keys = {row[self._pk] for row in doomed if row.get(self._pk) is not None}
        identities = {id(row) for row in doomed if row.get(self._pk) is None}
        kept = []
        for row in rows:
            key = row.get(self._pk)
            if key is None:
                if id(row) not in identities:
                    kept.append(row)
            elif key not in keys:
                kept.append(row)
        return kept

    def _insert(self, rows: list[Row], new_rows: list[Row]) -> tuple[list[Row], WriteResult]:
        added = copy.deepcopy(new_rows)
        last_id = added[-1].get(self._pk) if added else None
        return rows + added, WriteResult(changes=len(added), last_insert_rowid=last_id or 0)
