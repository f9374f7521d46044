"""Unit tests for Model save/delete, attribute filtering and bank routing."""

from __future__ import annotations

import pytest

from querykit import Model
from querykit.actions import WriteResult
from querykit.config import DatabaseRegistry, set_default_executor, set_multi_db_registry
from querykit.simulation import simulation_manager
from tests.fixtures import SyncExecutor


class User(Model):
    table_name = "users"
    fillable = ("name", "email")


class Post(Model):
    table_name = "posts"


class Metric(Model):
    table_name = "metrics"
    banks = ("analytics",)


def _use(executor):
    set_default_executor(executor)
    return executor


# ---------------------------------------------------------------------------
# Attribute filtering
# ---------------------------------------------------------------------------


def test_fill_keeps_only_fillable_keys():
    user = User().fill({"name": "Ada", "email": "a@x", "role": "admin"})
    assert user.attributes == {"name": "Ada", "email": "a@x"}


def test_fill_drops_guarded_keys_without_fillable():
    post = Post().fill({"title": "Hi", "id": 3, "created_at": "x", "updated_at": "y"})
    assert post.attributes == {"title": "Hi"}


def test_constructor_stores_attributes_unfiltered():
    user = User(id=4, role="admin")
    assert user.id == 4
    assert user["role"] == "admin"


def test_query_targets_the_model_table():
    assert User.query().where("id", "=", 1).to_sql().sql == "SELECT * FROM users WHERE id = ?"


# ---------------------------------------------------------------------------
# save / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_save_inserts_fillable_fields_without_id():
    fake = _use(SyncExecutor())
    user = User().fill({"name": "A", "email": "a@example.com", "role": "admin"})
    user["role"] = "admin"

    await user.save()

    assert fake.calls == [
        ("INSERT INTO users (name, email) VALUES (?, ?)", ["A", "a@example.com"])
    ]


@pytest.mark.asyncio
async def test_save_keeps_generated_id_for_the_next_save():
    fake = _use(SyncExecutor(write_results=[WriteResult(1, 42), WriteResult(1)]))
    user = User().fill({"name": "A", "email": "a@x"})

    await user.save()
    user.fill({"name": "B"})
    await user.save()

    assert user.id == 42
    assert fake.calls[-1] == ("UPDATE users SET name = ?, email = ? WHERE id = ?", ["B", "a@x", 42])


@pytest.mark.asyncio
async def test_save_updates_by_id_without_guarded_columns():
    fake = _use(SyncExecutor())
    post = Post(id=1).fill({"title": "B", "created_at": "x"})

    await post.save()

    assert fake.calls == [("UPDATE posts SET title = ? WHERE id = ?", ["B", 1])]


@pytest.mark.asyncio
async def test_delete_by_id():
    fake = _use(SyncExecutor())
    result = await User(id=7).delete()
    assert result == WriteResult(changes=1)
    assert fake.calls == [("DELETE FROM users WHERE id = ?", [7])]


@pytest.mark.asyncio
async def test_save_in_simulation_mode_touches_only_the_snapshot(users):
    fake = _use(SyncExecutor())
    await simulation_manager.start({"users": users})

    await User(id=2).fill({"name": "Robert"}).save()

    assert simulation_manager.get_state_for("users")[1]["name"] == "Robert"
    assert fake.calls == []


# ---------------------------------------------------------------------------
# Banks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_class_banks_route_writes():
    default = _use(SyncExecutor())
    analytics = SyncExecutor()
    set_multi_db_registry(DatabaseRegistry({"analytics": analytics}))

    await Metric(id=1).delete()

    assert analytics.calls == [("DELETE FROM metrics WHERE id = ?", [1])]
    assert default.calls == []


@pytest.mark.asyncio
async def test_instance_bank_overrides_class_banks():
    analytics, core = SyncExecutor(), SyncExecutor()
    set_multi_db_registry(DatabaseRegistry({"analytics": analytics, "core": core}))

    await Metric(id=2).bank("core").delete()

    assert core.calls == [("DELETE FROM metrics WHERE id = ?", [2])]
    assert analytics.calls == []


def test_query_applies_class_banks():
    assert Metric.query().descriptor.target_banks == ["analytics"]
    assert User.query().descriptor.target_banks is None
