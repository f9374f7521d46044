"""Trigger event emission.

Every read and write a builder performs against a real executor is bracketed
by a ``BEFORE`` and an ``AFTER`` event on topics of the form::

    querykit:trigger:<BEFORE|AFTER>:<READ|INSERT|UPDATE|DELETE>:<table>

Local listeners registered with :meth:`EventManager.on` run first; the event
is then forwarded to the external bus of the active configuration.  A
failing listener or bus is logged and never breaks the query that emitted
the event.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal

from querykit.config import QueryKitConfig, get_config

logger = logging.getLogger(__name__)

TOPIC_PREFIX = "querykit:trigger"

Timing = Literal["BEFORE", "AFTER"]
TriggerAction = Literal["READ", "INSERT", "UPDATE", "DELETE"]

Listener = Callable[..., Any]


def trigger_topic(timing: Timing, action: TriggerAction, table: str) -> str:
    """Return the topic name for a trigger event."""
    return f"{TOPIC_PREFIX}:{timing}:{action}:{table}"


def trigger_payload(
    table: str,
    action: TriggerAction,
    timing: Timing,
    **extra: Any,
) -> dict[str, Any]:
    """Build the payload dict carried by a trigger event.

    ``extra`` holds the optional ``data`` / ``rows`` / ``where`` / ``result``
    entries; entries set to ``None`` are kept so subscribers can rely on the
    keys being present.
    """
    return {"table": table, "action": action, "timing": timing, **extra}


class EventManager:
    """In-process listener registry that also forwards to the external bus.

    Args:
        config: Configuration providing the external bus; defaults to the
            process-wide configuration at emit time.
    """

    def __init__(self, config: QueryKitConfig | None = None) -> None:
        self._config = config
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` to ``event`` and return an unsubscribe callable."""
        self._listeners.setdefault(event, []).append(listener)
        return lambda: self.off(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        """Remove ``listener`` from ``event``; unknown pairs are ignored."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        self._listeners[event] = [fn for fn in listeners if fn is not listener]

    def emit(self, event: str, *args: Any) -> None:
        """Call local listeners, then forward to the configured bus."""
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(*args)
            except Exception:
                logger.exception("Error in event listener for '%s'", event)

        bus = (self._config or get_config()).event_bus
        if bus is not None:
            try:
                bus.emit(event, *args)
            except Exception as exc:
                logger.warning("External event bus failed for '%s': %s", event, exc)

    def clear(self) -> None:
        """Drop every local listener."""
        self._listeners.clear()


event_manager = EventManager()
