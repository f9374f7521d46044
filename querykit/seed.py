"""Table seeding.

:func:`run_seed` writes a list of rows, or the rows produced by a
:class:`Seed`, into one table::

    class AdminSeed(Seed):
        async def run(self, ctx):
            return [{"email": "root@example.com", "role": "admin"}]

    await run_seed("users", AdminSeed(), unique_by=["email"], upsert=True)

Every row goes through the regular write path, so trigger events fire and
simulation mode applies.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from querykit.builder import QueryBuilder
from querykit.config import QueryKitConfig, get_config
from querykit.errors import NoExecutorConfiguredError
from querykit.interfaces import DatabaseExecutor
from querykit.simulation import SimulationManager, simulation_manager

logger = logging.getLogger(__name__)

Row = dict[str, Any]


@dataclass
class SeedContext:
    """What a :class:`Seed` receives when it runs.

    Attributes:
        executor: The executor serving the seeded table.
        config: Configuration the seed's builders are bound to.
    """

    executor: DatabaseExecutor
    config: QueryKitConfig

    def table(self, name: str) -> QueryBuilder:
        """Return a builder bound to the seed's configuration."""
        return QueryBuilder(name, config=self.config)


class Seed:
    """Base class for seeders; override :meth:`run` to return the rows."""

    async def run(self, ctx: SeedContext) -> list[Row]:
        return []


async def run_seed(
    table: str,
    data: Sequence[Row] | Seed,
    *,
    truncate: bool = False,
    unique_by: Sequence[str] = (),
    upsert: bool = False,
    ignore_duplicates: bool = False,
    config: QueryKitConfig | None = None,
    simulation: SimulationManager | None = None,
) -> int:
    """Seed ``table`` and return the number of rows processed.

    Args:
        table: Target table.
        data: The rows, or a seeder whose ``run(ctx)`` (sync or async)
            returns them.
        truncate: Delete every existing row first.  In simulation mode the
            snapshot is emptied instead.
        unique_by: Columns identifying a row for ``upsert`` /
            ``ignore_duplicates``.
        upsert: With ``unique_by``, update the matching row or insert it.
        ignore_duplicates: With ``unique_by``, skip rows that already exist.
            Takes precedence over ``upsert``.
        config: Configuration to use; defaults to the process-wide one.
        simulation: Simulation manager consulted for ``truncate``.

    Raises:
        NoExecutorConfiguredError: No executor serves ``table``.
    """
    config = config or get_config()
    simulation = simulation or simulation_manager
    executor = config.executor_for(table)
    if executor is None:
        raise NoExecutorConfiguredError(table)

    if truncate:
        await _truncate(table, executor, simulation)

    if isinstance(data, Seed) or not isinstance(data, Sequence):
        rows = data.run(SeedContext(executor=executor, config=config))
        if inspect.isawaitable(rows):
            rows = await rows
        rows = list(rows or [])
    else:
        rows = list(data)

    keys = list(unique_by)
    for row in rows:
        builder = QueryBuilder(table, config=config, simulation=simulation)
        if keys and ignore_duplicates:
            attributes = {key: row.get(key) for key in keys}
            if await builder.clone().where_all(attributes).exists():
                continue
            await builder.insert(row).make()
        elif keys and upsert:
            attributes = {k: v for k, v in row.items() if k in keys}
            values = {k: v for k, v in row.items() if k not in keys}
            await builder.update_or_insert(attributes, values).make()
        else:
            await builder.insert(row).make()

    logger.debug("Seeded %d row(s) into %s", len(rows), table)
    return len(rows)


async def _truncate(
    table: str,
    executor: DatabaseExecutor,
    simulation: SimulationManager,
) -> None:
    if simulation.is_active():
        simulation.update_state_for(table, [])
        return
    sql = f"DELETE FROM {table}"
    run_sync = getattr(executor, "run_sync", None)
    if run_sync is not None:
        run_sync(sql, [])
        return
    result = executor.execute_query(sql, [])
    if inspect.isawaitable(result):
        await result
