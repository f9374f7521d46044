"""Run several builders concurrently."""
from __future__ import annotations

import asyncio
from typing import Any

from querykit.builder import QueryBuilder


async def _execute(builder: QueryBuilder) -> Any:
    if builder.has_pending_write():
        return await builder.make()
    return await builder.all()


async def parallel(*builders: QueryBuilder) -> list[Any]:
    """Execute ``builders`` concurrently and return their results in order.

    Builders holding a pending write run ``make()`` and yield a
    :class:`~querykit.actions.WriteResult`; the others run ``all()`` and
    yield their rows.  The first failure propagates.

    Overlap depends on the executor: calls only run concurrently when its
    ``execute_query`` yields to the event loop.  Writes dispatched through a
    blocking ``run_sync`` run one after another, and so do reads on
    :class:`~querykit.executors.SQLAlchemyExecutor` over in-memory SQLite.
    """
    return list(await asyncio.gather(*(_execute(b) for b in builders)))
