"""Unit tests for the event manager, trigger topics and parallel execution."""

from __future__ import annotations

import logging

import pytest

from querykit import parallel, table
from querykit.actions import WriteResult
from querykit.config import QueryKitConfig, set_default_executor, set_event_bus
from querykit.errors import MissingWhereClauseError
from querykit.events import EventManager, event_manager, trigger_payload, trigger_topic
from tests.fixtures import RecordingBus, RecordingExecutor


def test_trigger_topic_format():
    assert trigger_topic("BEFORE", "INSERT", "users") == "querykit:trigger:BEFORE:INSERT:users"


def test_trigger_payload_keeps_explicit_none():
    payload = trigger_payload("users", "READ", "BEFORE", where=None)
    assert payload == {"table": "users", "action": "READ", "timing": "BEFORE", "where": None}


def test_on_returns_unsubscribe():
    received = []
    unsubscribe = event_manager.on("ping", lambda *args: received.append(args))
    event_manager.emit("ping", 1, 2)
    unsubscribe()
    event_manager.emit("ping", 3)
    assert received == [(1, 2)]


def test_off_unknown_listener_is_ignored():
    event_manager.off("never", print)


def test_failing_listener_is_logged_and_others_still_run(caplog):
    received = []

    def broken(_payload):
        raise ValueError("listener bug")

    event_manager.on("ping", broken)
    event_manager.on("ping", received.append)
    with caplog.at_level(logging.ERROR, logger="querykit.events"):
        event_manager.emit("ping", "payload")

    assert received == ["payload"]
    assert "Error in event listener for 'ping'" in caplog.text


def test_events_are_forwarded_to_configured_bus():
    bus = RecordingBus()
    set_event_bus(bus)
    event_manager.emit("ping", {"x": 1})
    assert bus.events == [("ping", ({"x": 1},))]


def test_failing_bus_only_warns(caplog):
    class BrokenBus:
        def emit(self, event, *args):
            raise ConnectionError("bus down")

    set_event_bus(BrokenBus())
    with caplog.at_level(logging.WARNING, logger="querykit.events"):
        event_manager.emit("ping")
    assert "External event bus failed for 'ping'" in caplog.text


def test_manager_with_own_config_uses_its_bus():
    bus = RecordingBus()
    manager = EventManager(QueryKitConfig(event_bus=bus))
    manager.emit("ping")
    assert bus.events == [("ping", ())]


@pytest.mark.asyncio
async def test_builder_reads_reach_the_bus(executor):
    bus = RecordingBus()
    set_event_bus(bus)
    await table("users").all()
    assert [event for event, _ in bus.events] == [
        "querykit:trigger:BEFORE:READ:users",
        "querykit:trigger:AFTER:READ:users",
    ]


@pytest.mark.asyncio
async def test_update_or_insert_emits_update_then_insert():
    set_default_executor(RecordingExecutor(write_results=[{"affectedRows": 0}, {"affectedRows": 1}]))
    topics = []
    for topic in (
        "querykit:trigger:BEFORE:UPDATE:users",
        "querykit:trigger:AFTER:UPDATE:users",
        "querykit:trigger:BEFORE:INSERT:users",
        "querykit:trigger:AFTER:INSERT:users",
    ):
        event_manager.on(topic, lambda _p, t=topic: topics.append(t.split(":")[2:4]))

    await table("users").update_or_insert({"email": "a@x"}, {"name": "A"}).make()

    assert topics == [
        ["BEFORE", "UPDATE"],
        ["AFTER", "UPDATE"],
        ["BEFORE", "INSERT"],
        ["AFTER", "INSERT"],
    ]


# ---------------------------------------------------------------------------
# parallel
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_parallel_mixes_reads_and_writes(executor, users):
    results = await parallel(
        table("users").where("role", "=", "admin"),
        table("users").where("id", "=", 2).update({"name": "B"}),
        table("orders"),
    )
    assert results[0] == users
    assert results[1] == WriteResult(changes=1)
    assert results[2] == users
    assert sorted(sql for sql, _ in executor.calls) == [
        "SELECT * FROM orders",
        "SELECT * FROM users WHERE role = ?",
        "UPDATE users SET name = ? WHERE id = ?",
    ]


@pytest.mark.asyncio
async def test_parallel_with_no_builders():
    assert await parallel() == []


@pytest.mark.asyncio
async def test_parallel_propagates_first_failure(executor):
    with pytest.raises(MissingWhereClauseError):
        await parallel(table("users"), table("users").delete())
