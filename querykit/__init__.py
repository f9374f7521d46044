"""QueryKit – a fluent, dialect-agnostic SQL builder with a simulation mode.

Public API
----------
``table(name)`` / ``QueryBuilder``
    Chain fluent calls, then ``to_sql()`` to compile, ``await all()`` to
    read, or ``await make()`` to run the queued write.

``simulation_manager``
    ``await simulation_manager.start({"users": [...]})`` makes every builder
    read and write an in-memory snapshot instead of the database.

``event_manager``
    Subscribe to ``querykit:trigger:<BEFORE|AFTER>:<ACTION>:<table>`` events.

``parallel(*builders)``
    Run several builders concurrently.

``Model`` / ``run_seed``
    Active-record models and table seeding over the same write path.

Configuration
-------------
Executors and the event bus are registered on the process-wide
configuration::

    from querykit import config
    from querykit.executors import SQLAlchemyExecutor

    config.set_default_executor(SQLAlchemyExecutor.from_url("sqlite:///app.db"))

Extensibility
-------------
Dialect fragments for another backend can be registered via::

    from querykit.compile.registry import DialectFactory

    @DialectFactory.register("duckdb")
    class DuckDBDialect(Dialect):
        ...

Builders pick it up for any executor whose ``dialect`` is ``"duckdb"``.
"""

from __future__ import annotations

from querykit.actions import WriteResult, normalize_write_result
from querykit.builder import QueryBuilder, TrackingEntry, table
from querykit.compile import (
    CompiledSQL,
    CompiledWrite,
    Dialect,
    DialectFactory,
    SQLCompiler,
)
from querykit.config import (
    DatabaseRegistry,
    QueryKitConfig,
    get_config,
    reset_config,
    set_default_executor,
    set_event_bus,
    set_multi_db_registry,
    set_simulation_controller,
)
from querykit.errors import (
    CompilationError,
    ConfigurationError,
    MissingWhereClauseError,
    NoExecutorConfiguredError,
    NoPendingActionError,
    QueryKitError,
    QueryStateError,
    UnknownDatabaseError,
    UnsupportedPendingActionError,
    UnsupportedWhereClauseTypeError,
)
from querykit.events import EventManager, event_manager
from querykit.executors import SQLAlchemyExecutor
from querykit.interfaces import (
    DatabaseExecutor,
    EventBus,
    MultiDbRegistry,
    QueryResult,
    SimulationController,
)
from querykit.model import Model
from querykit.parallel import parallel
from querykit.schema import QueryDescriptor, RawExpression, raw
from querykit.seed import Seed, SeedContext, run_seed
from querykit.simulation import SimulationManager, simulation_manager
from querykit.virtual import VirtualEngine

__version__ = "0.1.0"

__all__ = [
    # Builder
    "QueryBuilder",
    "TrackingEntry",
    "table",
    "raw",
    "RawExpression",
    "QueryDescriptor",
    "parallel",
    # Models and seeding
    "Model",
    "Seed",
    "SeedContext",
    "run_seed",
    # Compilation
    "CompiledSQL",
    "CompiledWrite",
    "Dialect",
    "DialectFactory",
    "SQLCompiler",
    # Execution
    "WriteResult",
    "normalize_write_result",
    "QueryResult",
    "SQLAlchemyExecutor",
    "VirtualEngine",
    # Configuration and collaborators
    "QueryKitConfig",
    "DatabaseRegistry",
    "get_config",
    "reset_config",
    "set_default_executor",
    "set_event_bus",
    "set_multi_db_registry",
    "set_simulation_controller",
    "DatabaseExecutor",
    "EventBus",
    "MultiDbRegistry",
    "SimulationController",
    "EventManager",
    "event_manager",
    "SimulationManager",
    "simulation_manager",
    # Errors
    "QueryKitError",
    "ConfigurationError",
    "NoExecutorConfiguredError",
    "UnknownDatabaseError",
    "QueryStateError",
    "NoPendingActionError",
    "MissingWhereClauseError",
    "UnsupportedPendingActionError",
    "CompilationError",
    "UnsupportedWhereClauseTypeError",
]
