"""Process-wide QueryKit configuration.

The active executor, event bus, simulation controller and multi-database
registry live on one explicit :class:`QueryKitConfig` object.  Application
code sets it up once at start-up::

    from querykit import config

    config.set_default_executor(SQLAlchemyExecutor(engine))
    config.set_event_bus(bus)

Builders read the global object through :func:`get_config` unless another
``QueryKitConfig`` is injected with ``QueryBuilder(table, config=...)``.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from querykit.errors import UnknownDatabaseError
from querykit.interfaces import (
    DatabaseExecutor,
    EventBus,
    MultiDbRegistry,
    SimulationController,
)


@dataclass
class QueryKitConfig:
    """Collaborators shared by every builder bound to this configuration.

    Attributes:
        default_executor: Executor used when no database bank is requested.
        event_bus: External bus receiving every emitted trigger event.
        simulation: External simulation controller (overrides the built-in
            snapshot store).
        multi_db: Registry resolving ``QueryBuilder.bank`` names.
    """

    default_executor: DatabaseExecutor | None = None
    event_bus: EventBus | None = None
    simulation: SimulationController | None = None
    multi_db: MultiDbRegistry | None = None

    def executor_for(
        self,
        table: str,
        banks: list[str] | None = None,
    ) -> DatabaseExecutor | None:
        """Return the executor serving ``table``.

        When banks were requested and a registry is configured, the first
        bank's adapter wins; otherwise the default executor is returned.
        """
        if banks and self.multi_db is not None:
            return self.multi_db.get_adapter(banks[0])
        return self.default_executor

    def reset(self) -> None:
        """Forget every registered collaborator."""
        self.default_executor = None
        self.event_bus = None
        self.simulation = None
        self.multi_db = None


@dataclass
class DatabaseRegistry:
    """Dict-backed :class:`~querykit.interfaces.MultiDbRegistry`."""

    adapters: dict[str, DatabaseExecutor] = field(default_factory=dict)

    def register(self, name: str, executor: DatabaseExecutor) -> None:
        self.adapters[name] = executor

    def get_adapter(self, name: str) -> DatabaseExecutor:
        try:
            return self.adapters[name]
        except KeyError:
            raise UnknownDatabaseError(name, sorted(self.adapters)) from None


_config = QueryKitConfig()


def get_config() -> QueryKitConfig:
    """Return the process-wide configuration."""
    return _config


def set_default_executor(executor: DatabaseExecutor | None) -> None:
    _config.default_executor = executor


def set_event_bus(bus: EventBus | None) -> None:
    _config.event_bus = bus


def set_simulation_controller(controller: SimulationController | None) -> None:
    _config.simulation = controller


def set_multi_db_registry(registry: MultiDbRegistry | None) -> None:
    _config.multi_db = registry


def reset_config() -> None:
    """Clear the process-wide configuration (used between tests)."""
    _config.reset()
