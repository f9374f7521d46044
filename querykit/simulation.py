"""Process-wide simulation (virtual database) state.

While simulation is active, builders read from and write to an in-memory
snapshot of ``table -> rows`` instead of a real executor.  A
:class:`~querykit.interfaces.SimulationController` registered on the
configuration takes precedence over the built-in snapshot store for every
operation.
"""
from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Mapping
from typing import Any

from querykit.actions import rows_of
from querykit.config import QueryKitConfig, get_config

logger = logging.getLogger(__name__)


class SimulationManager:
    """Holds the virtual snapshot used in simulation mode.

    Args:
        config: Configuration providing the external controller and the
            default executor; defaults to the process-wide configuration.
    """

    def __init__(self, config: QueryKitConfig | None = None) -> None:
        self._config = config
        self._active = False
        self._state: dict[str, list[dict[str, Any]]] = {}

    @property
    def config(self) -> QueryKitConfig:
        return self._config or get_config()

    def is_active(self) -> bool:
        controller = self.config.simulation
        if controller is not None:
            return bool(controller.is_active())
        return self._active

    async def start(self, initial_state: Mapping[str, Any]) -> None:
        """Activate simulation mode with a fresh snapshot.

        Args:
            initial_state: Maps table names to either a list of rows (deep
                copied) or a query builder whose SELECT seeds the table from
                the default executor.  Without a default executor a
                builder-seeded table starts empty.
        """
        controller = self.config.simulation
        if controller is not None:
            outcome = controller.start(dict(initial_state))
            if inspect.isawaitable(outcome):
                await outcome
            return

        self._active = True
        self._state.clear()
        for table, source in initial_state.items():
            if isinstance(source, list):
                self._state[table] = copy.deepcopy(source)
            else:
                self._state[table] = await self._seed(table, source)
        logger.debug("Simulation started with tables %s", sorted(self._state))

    async def _seed(self, table: str, builder: Any) -> list[dict[str, Any]]:
        executor = self.config.default_executor
        if executor is None:
            logger.debug("No default executor; seeding '%s' with no rows", table)
            return []
        sql, bindings = builder.to_sql()
        result = executor.execute_query(sql, bindings)
        if inspect.isawaitable(result):
            result = await result
        return rows_of(result)

    def stop(self) -> None:
        controller = self.config.simulation
        if controller is not None:
            controller.stop()
        self._active = False
        self._state.clear()

    def get_state_for(self, table: str) -> list[dict[str, Any]] | None:
        controller = self.config.simulation
        if controller is not None:
            return controller.get_state_for(table)
        return self._state.get(table)

    def update_state_for(self, table: str, rows: list[dict[str, Any]]) -> None:
        """Replace the snapshot of ``table``; ignored while inactive."""
        if not self.is_active():
            return
        controller = self.config.simulation
        if controller is not None:
            controller.update_state_for(table, rows)
            return
        self._state[table] = rows


simulation_manager = SimulationManager()
