"""Unit tests for SELECT and write-statement compilation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from querykit import QueryBuilder, table
from querykit.compile import SQLCompiler
from querykit.errors import CompilationError, UnsupportedWhereClauseTypeError


def _sql(builder: QueryBuilder) -> str:
    return builder.to_sql().sql


def _bindings(builder: QueryBuilder) -> list:
    return builder.to_sql().bindings


# ---------------------------------------------------------------------------
# SELECT basics
# ---------------------------------------------------------------------------


def test_where_order_limit_round_trip():
    compiled = QueryBuilder("t").where("a", "=", 1).order_by("b", "DESC").limit(10).to_sql()
    assert compiled.sql == "SELECT * FROM t WHERE a = ? ORDER BY b DESC LIMIT ?"
    assert compiled.bindings == [1, 10]


def test_to_sql_unpacks_into_sql_and_bindings():
    sql, bindings = table("t").where("a", "=", 1).to_sql()
    assert sql == "SELECT * FROM t WHERE a = ?"
    assert bindings == [1]


def test_select_columns_distinct_and_alias():
    q = table("users").select(["id", "name"]).distinct().alias("u")
    assert _sql(q) == "SELECT DISTINCT id, name FROM users u"


def test_select_single_column_string():
    assert _sql(table("users").select("id")) == "SELECT id FROM users"


def test_select_raw_and_case_sum():
    q = table("t").select(["a"]).select_case_sum("status = 'paid'", "paid")
    assert _sql(q) == "SELECT a, SUM(CASE WHEN status = 'paid' THEN 1 ELSE 0 END) AS paid FROM t"


def test_select_expression_without_alias():
    assert _sql(table("t").select(["a"]).select_expression("NOW()")) == "SELECT a, NOW() FROM t"


def test_offset_without_limit():
    q = table("t").offset(5)
    assert _sql(q) == "SELECT * FROM t OFFSET ?"
    assert _bindings(q) == [5]


def test_order_by_many_defaults_to_ascending():
    q = table("t").order_by_many([{"column": "a"}, {"column": "b", "direction": "DESC"}])
    assert _sql(q) == "SELECT * FROM t ORDER BY a ASC, b DESC"


def test_order_direction_is_case_insensitive():
    assert _sql(table("t").order_by("a", "desc")) == "SELECT * FROM t ORDER BY a DESC"


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def test_or_where_follows_call_order():
    q = table("t").where("a", "=", 1).or_where("b", "=", 2).where("c", "=", 3)
    assert _sql(q) == "SELECT * FROM t WHERE a = ? OR b = ? AND c = ?"
    assert _bindings(q) == [1, 2, 3]
    assert len(q.descriptor.or_where_clauses) == 1


def test_where_in_lists_every_value():
    q = table("t").where_in("id", [1, 2, 3])
    assert _sql(q) == "SELECT * FROM t WHERE id IN (?, ?, ?)"
    assert _bindings(q) == [1, 2, 3]


def test_empty_in_lists_compile_to_constants():
    assert _sql(table("t").where_in("id", [])) == "SELECT * FROM t WHERE 1=0"
    assert _sql(table("t").where_not_in("id", [])) == "SELECT * FROM t WHERE 1=1"


def test_or_where_not_in():
    q = table("t").where("a", "=", 1).or_where_not_in("b", ["x"])
    assert _sql(q) == "SELECT * FROM t WHERE a = ? OR b NOT IN (?)"
    assert _bindings(q) == [1, "x"]


def test_null_predicates():
    q = table("t").where_null("deleted_at").or_where_not_null("email")
    assert _sql(q) == "SELECT * FROM t WHERE deleted_at IS NULL OR email IS NOT NULL"
    assert _bindings(q) == []


def test_between_binds_low_then_high():
    q = table("t").where_between("age", (18, 65)).where_not_between("score", [0, 5])
    assert _sql(q) == "SELECT * FROM t WHERE age BETWEEN ? AND ? AND score NOT BETWEEN ? AND ?"
    assert _bindings(q) == [18, 65, 0, 5]


def test_where_column_binds_nothing():
    q = table("users").where_column("users.created_at", "<", "users.updated_at")
    assert _sql(q) == "SELECT * FROM users WHERE users.created_at < users.updated_at"
    assert _bindings(q) == []


def test_where_raw_bindings_stay_in_position():
    q = table("t").where("a", "=", 1).where_raw("b > ?", [2]).where("c", "=", 3)
    assert _sql(q) == "SELECT * FROM t WHERE a = ? AND b > ? AND c = ?"
    assert _bindings(q) == [1, 2, 3]


def test_where_raw_search_builds_or_group():
    q = table("t").where_raw_search("bob", ["name", "email"])
    assert _sql(q) == "SELECT * FROM t WHERE (name LIKE ? OR email LIKE ?)"
    assert _bindings(q) == ["%bob%", "%bob%"]


def test_blank_search_term_adds_nothing():
    assert _sql(table("t").where_search("", ["name"])) == "SELECT * FROM t"


def test_like_sugar_patterns():
    assert _bindings(table("t").where_contains("name", "ad")) == ["%ad%"]
    assert _bindings(table("t").where_starts_with("name", "ad")) == ["ad%"]
    assert _bindings(table("t").where_ends_with("name", "ad")) == ["%ad"]
    q = table("t").where_like("a", "x%").or_where_like("b", "%y")
    assert _sql(q) == "SELECT * FROM t WHERE a LIKE ? OR b LIKE ?"


def test_where_if_skips_none_and_empty_string_only():
    q = (
        table("t")
        .where_if(None, "a", "=", 1)
        .where_if("", "b", "=", 2)
        .where_if(0, "c", "=", 0)
        .where_if(False, "d", "=", False)
    )
    assert _sql(q) == "SELECT * FROM t WHERE c = ? AND d = ?"
    assert _bindings(q) == [0, False]


def test_where_all_adds_present_values():
    q = table("t").where_all({"a": 1, "b": None, "c": False})
    assert _sql(q) == "SELECT * FROM t WHERE a = ? AND c = ?"
    assert _bindings(q) == [1, False]


def test_exists_subquery_bindings_are_inlined():
    orders = (
        table("orders")
        .where_column("orders.user_id", "=", "users.id")
        .where("total", ">", 100)
    )
    q = table("users").where("active", "=", 1).where_exists(orders).limit(5)
    assert _sql(q) == (
        "SELECT * FROM users WHERE active = ? AND EXISTS "
        "(SELECT * FROM orders WHERE orders.user_id = users.id AND total > ?) LIMIT ?"
    )
    assert _bindings(q) == [1, 100, 5]


def test_not_exists():
    q = table("users").where_not_exists(table("bans").where_column("bans.user_id", "=", "users.id"))
    assert _sql(q) == (
        "SELECT * FROM users WHERE NOT EXISTS "
        "(SELECT * FROM bans WHERE bans.user_id = users.id)"
    )


def test_exists_snapshots_the_subquery():
    sub = table("orders").where("total", ">", 1)
    q = table("users").where_exists(sub)
    sub.where("status", "=", "open")
    assert "status" not in _sql(q)


def test_having_uses_predicate_rules():
    q = (
        table("orders")
        .select(["user_id"])
        .select_count("*", "n")
        .group_by(["user_id"])
        .having("n", ">", 2)
        .having_raw("SUM(total) > ?", [100])
        .having_if(None, "x", "=", 1)
    )
    assert _sql(q) == (
        "SELECT user_id, COUNT(*) AS n FROM orders GROUP BY user_id "
        "HAVING n > ? AND SUM(total) > ?"
    )
    assert _bindings(q) == [2, 100]


def test_unknown_clause_type_raises():
    with pytest.raises(UnsupportedWhereClauseTypeError) as exc_info:
        SQLCompiler().compile_where([SimpleNamespace(type="fuzzy", logical="AND")])
    assert exc_info.value.clause_type == "fuzzy"


# ---------------------------------------------------------------------------
# Joins, aggregates, unions, pagination
# ---------------------------------------------------------------------------


def test_joins_in_call_order():
    q = (
        table("users")
        .inner_join_on("orders", "users.id", "orders.user_id")
        .left_join("profiles", "profiles.user_id = users.id")
        .right_join_on("teams", "teams.id", "users.team_id")
    )
    assert _sql(q) == (
        "SELECT * FROM users INNER JOIN orders ON users.id = orders.user_id "
        "LEFT JOIN profiles ON profiles.user_id = users.id "
        "RIGHT JOIN teams ON teams.id = users.team_id"
    )


def test_first_aggregate_wins():
    q = table("orders").count().sum("total")
    assert _sql(q) == "SELECT COUNT(*) AS count_all FROM orders"
    assert len(q.descriptor.aggregates) == 2


def test_aggregate_default_and_explicit_alias():
    assert _sql(table("orders").sum("total")) == "SELECT SUM(total) AS sum_total FROM orders"
    assert _sql(table("orders").max("total", "top")) == "SELECT MAX(total) AS top FROM orders"


def test_compilation_does_not_mutate_descriptor():
    q = table("orders").avg("total").where("status", "=", "paid")
    first = q.to_sql()
    second = q.to_sql()
    assert first == second
    assert q.descriptor.select_columns == ["*"]


def test_union_emits_outer_order_and_limit_once():
    admins = table("admins").select(["id"]).where("level", ">", 3).order_by("id").limit(2)
    q = (
        table("users")
        .select(["id"])
        .where("role", "=", "admin")
        .union(admins)
        .order_by("id")
        .limit(10)
    )
    assert _sql(q) == (
        "SELECT id FROM users WHERE role = ? "
        "UNION SELECT id FROM admins WHERE level > ? "
        "ORDER BY id ASC LIMIT ?"
    )
    assert _bindings(q) == ["admin", 3, 10]


def test_union_all():
    q = table("a").select(["x"]).union_all(table("b").select(["x"]))
    assert _sql(q) == "SELECT x FROM a UNION ALL SELECT x FROM b"


def test_compound_union_branch_is_wrapped_in_a_subselect():
    inner = table("b").select(["x"]).where("y", "=", 2).union_all(
        table("c").select(["x"]).where("z", "=", 3)
    )
    q = table("a").select(["x"]).where("w", "=", 1).union(inner).limit(5)
    assert _sql(q) == (
        "SELECT x FROM a WHERE w = ? "
        "UNION SELECT * FROM (SELECT x FROM b WHERE y = ? "
        "UNION ALL SELECT x FROM c WHERE z = ?) union_branch "
        "LIMIT ?"
    )
    assert _bindings(q) == [1, 2, 3, 5]


@pytest.mark.parametrize(
    "page,per_page,limit,offset",
    [(1, 25, 25, 0), (3, 20, 20, 40), (0, 0, 25, 0), (-2, -5, 1, 0)],
)
def test_paginate_clamps_to_first_page(page, per_page, limit, offset):
    q = table("t").paginate(page, per_page)
    assert q.descriptor.limit_value == limit
    assert q.descriptor.offset_value == offset


def test_bindings_match_placeholders_on_complex_query():
    q = (
        table("users")
        .select(["id"])
        .inner_join_on("orders", "users.id", "orders.user_id")
        .where("active", "=", 1)
        .where_in("role", ["a", "b"])
        .where_between("score", (1, 9))
        .where_exists(table("x").where("y", "=", 2))
        .group_by("id")
        .having("COUNT(*)", ">", 1)
        .union(table("legacy").select(["id"]).where("z", "=", 3))
        .paginate(2, 10)
    )
    compiled = q.to_sql()
    assert compiled.placeholder_count == len(compiled.bindings)
    assert compiled.bindings == [1, "a", "b", 1, 9, 2, 1, 3, 10, 10]


# ---------------------------------------------------------------------------
# Composition helpers
# ---------------------------------------------------------------------------


def test_when_and_unless():
    q = (
        table("t")
        .when("admin", lambda b, role: b.where("role", "=", role))
        .when(None, lambda b, _: b.where("never", "=", 1))
        .unless(False, lambda b, _: b.where_null("deleted_at"))
    )
    assert _sql(q) == "SELECT * FROM t WHERE role = ? AND deleted_at IS NULL"


def test_clone_is_independent():
    q = table("t").where_exists(table("s").where("a", "=", 1))
    twin = q.clone().where("b", "=", 2)
    twin.descriptor.where_clauses[0].subquery.where_clauses.clear()
    assert _sql(q) == "SELECT * FROM t WHERE EXISTS (SELECT * FROM s WHERE a = ?)"
    assert _sql(twin) == "SELECT * FROM t WHERE EXISTS (SELECT * FROM s) AND b = ?"


def test_range_binds_iso_timestamps():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 1, 31, tzinfo=timezone.utc)
    q = table("events").range("created_at", start, end)
    assert _sql(q) == "SELECT * FROM events WHERE created_at >= ? AND created_at <= ?"
    assert _bindings(q) == [start.isoformat(), end.isoformat()]


def test_range_with_open_end():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert _sql(table("events").range("created_at", start)) == (
        "SELECT * FROM events WHERE created_at >= ?"
    )


@pytest.mark.parametrize("key,expected", [("7d", timedelta(days=7)), ("1y", timedelta(hours=24))])
def test_period_look_back(key, expected):
    q = table("events").period("created_at", key)
    assert _sql(q) == "SELECT * FROM events WHERE created_at >= ?"
    since = datetime.fromisoformat(_bindings(q)[0])
    assert abs((datetime.now(timezone.utc) - expected) - since) < timedelta(minutes=1)


def test_period_without_key_adds_nothing():
    assert _sql(table("events").period("created_at")) == "SELECT * FROM events"


# ---------------------------------------------------------------------------
# Write statements
# ---------------------------------------------------------------------------


def test_compile_multi_row_insert_fills_missing_keys():
    compiled = SQLCompiler().compile_insert("users", [{"name": "a", "age": 1}, {"name": "b"}])
    assert compiled.sql == "INSERT INTO users (name, age) VALUES (?, ?), (?, ?)"
    assert compiled.bindings == ["a", 1, "b", None]
    assert compiled.where_payload() is None


def test_compile_insert_rejects_empty_rows():
    with pytest.raises(CompilationError):
        SQLCompiler().compile_insert("users", [])


def test_compile_update_binds_set_values_first():
    descriptor = table("users").where("id", "=", 7).descriptor
    compiled = SQLCompiler().compile_update(descriptor, {"name": "x", "age": 3})
    assert compiled.sql == "UPDATE users SET name = ?, age = ? WHERE id = ?"
    assert compiled.bindings == ["x", 3, 7]
    assert compiled.where_payload() == {"sql": "id = ?", "bindings": [7]}


def test_compile_update_rejects_empty_values():
    with pytest.raises(CompilationError):
        SQLCompiler().compile_update(table("users").where("id", "=", 1).descriptor, {})


def test_compile_increment_and_decrement():
    descriptor = table("users").where("id", "=", 7).descriptor
    up = SQLCompiler().compile_increment(descriptor, "score", 5)
    down = SQLCompiler().compile_increment(descriptor, "score", 2, decrement=True)
    assert up.sql == "UPDATE users SET score = score + ? WHERE id = ?"
    assert up.bindings == [5, 7]
    assert down.sql == "UPDATE users SET score = score - ? WHERE id = ?"
    assert down.bindings == [2, 7]


def test_compile_delete():
    descriptor = table("users").where_in("id", [1, 2]).descriptor
    compiled = SQLCompiler().compile_delete(descriptor)
    assert compiled.sql == "DELETE FROM users WHERE id IN (?, ?)"
    assert compiled.bindings == [1, 2]
