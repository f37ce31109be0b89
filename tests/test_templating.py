"""Tests for query templates."""

import pytest

from schemacrawl.catalog import Column, ColumnDataType, Schema, Table, TypeGroup
from schemacrawl.crawl.identifiers import Identifiers
from schemacrawl.crawl.templating import (
    Query,
    QueryTemplateEngine,
    execute_for_long,
    expand_template,
    materialize_column_order,
    schema_query_sql,
    table_query_properties,
    table_query_sql,
)
from schemacrawl.errors import RetrievalError
from schemacrawl.filter import InclusionRule


def _table():
    schema = Schema("shop")
    return schema.add_table(
        Table(
            "Order Items",
            columns=[
                Column("quantity", ColumnDataType("INTEGER", TypeGroup.INTEGER), ordinal_position=2),
                Column("Note", ColumnDataType("BLOB", TypeGroup.LARGE_OBJECT), ordinal_position=3),
                Column("id", ColumnDataType("INTEGER", TypeGroup.INTEGER), ordinal_position=1),
            ],
        )
    )


def test_expand_substitutes_known_tokens():
    """Known tokens are replaced and a second pass changes nothing."""
    properties = {"table": "CUSTOMERS", "columns": "ID, NAME"}

    sql = expand_template("SELECT ${columns} FROM ${table}", properties)

    assert sql == "SELECT ID, NAME FROM CUSTOMERS"
    assert expand_template(sql, {}) == sql
    assert expand_template(sql, properties) == sql


def test_unknown_tokens_pass_through():
    """Tokens without a value stay exactly as written."""
    sql = expand_template("SELECT * FROM ${table} WHERE x = ${unknown}", {"table": "t"})

    assert sql == "SELECT * FROM t WHERE x = ${unknown}"


def test_values_are_not_expanded_again():
    """A substituted value that looks like a token is left alone."""
    properties = {"a": "${b}", "b": "oops"}

    once = expand_template("${a}", properties)

    assert once == "${b}"
    assert expand_template("${a}", properties) == once


def test_engine_does_not_expand_values_with_defaults():
    """Values from per-call properties are not scanned again by the defaults."""
    engine = QueryTemplateEngine({"b": "${c}"})
    properties = {"a": "${b}", "c": "Z"}

    assert engine.expand("${a}", properties) == "${b}"
    assert engine.expand("${a}", properties) == "${b}"
    assert engine.expand("${b} ${a}", properties) == "${c} ${b}"


def test_column_named_like_a_token_survives_defaults():
    schema = Schema("s")
    table = schema.add_table(
        Table("t", columns=[Column("${limit}", ColumnDataType("INTEGER", TypeGroup.INTEGER), ordinal_position=1)])
    )
    engine = QueryTemplateEngine({"limit": "10"})

    sql = table_query_sql(Query("q", "SELECT ${columns} FROM ${table} LIMIT ${limit}"), table, Identifiers(), engine)

    assert sql == 'SELECT "${limit}" FROM s.t LIMIT 10'


def test_tokens_are_case_sensitive():
    assert expand_template("${TABLE}", {"table": "t"}) == "${TABLE}"


def test_engine_applies_defaults_after_properties():
    """Per-call properties win over the engine defaults."""
    engine = QueryTemplateEngine({"limit": "10", "table": "fallback"})

    sql = engine.expand("SELECT * FROM ${table} LIMIT ${limit}", {"table": "orders"})

    assert sql == "SELECT * FROM orders LIMIT 10"


def test_schemas_token_uses_regular_expression_rule():
    """The schemas token is the include pattern of a regular expression rule."""
    query = Query("tables", "SELECT * FROM t WHERE regexp_matches(schema_name, '${schemas}')")

    assert "'sales|hr'" in schema_query_sql(query, InclusionRule.regular_expression("sales|hr"))
    assert "'.*'" in schema_query_sql(query, InclusionRule.include_all())
    assert "'.*'" in schema_query_sql(query, None)


def test_columns_leave_out_large_objects():
    """columns omits large objects, orderbycolumns lists every column."""
    table = _table()
    materialize_column_order(table, alphabetical=False)

    properties = table_query_properties(table, Identifiers('"'))

    assert properties["columns"] == "id, quantity"
    assert properties["orderbycolumns"] == "id, quantity, Note"
    assert properties["table"] == 'shop."Order Items"'
    assert properties["tablename"] == "Order Items"
    assert properties["schema"] == "shop"
    assert properties["tabletype"] == "TABLE"


def test_table_query_sql_uses_current_order():
    table = _table()
    materialize_column_order(table, alphabetical=True)

    sql = table_query_sql(
        Query("dump", "SELECT ${columns} FROM ${table} ORDER BY ${orderbycolumns}"), table, Identifiers('"')
    )

    assert sql == 'SELECT id, quantity FROM shop."Order Items" ORDER BY id, Note, quantity'


def test_materialize_column_order_is_idempotent():
    """Sorting twice with the same flag gives the same order."""
    table = _table()

    materialize_column_order(table, alphabetical=True)
    first = table.column_names
    materialize_column_order(table, alphabetical=True)

    assert table.column_names == first == ["id", "Note", "quantity"]

    materialize_column_order(table, alphabetical=False)
    assert table.column_names == ["id", "quantity", "Note"]


def test_expansion_does_not_reorder_columns():
    """Expanding a template leaves the column order as it was."""
    table = _table()
    before = table.column_names

    table_query_sql(Query("q", "SELECT ${columns} FROM ${table}"), table, Identifiers('"'))

    assert table.column_names == before


def test_execute_for_long(duckdb_datasource):
    """Integer results come back as int."""
    table = Schema("sales").add_table(Table("orders"))

    count = execute_for_long(Query("count", "SELECT COUNT(*) FROM ${table}"), duckdb_datasource, table, Identifiers())

    assert count == 3


def test_execute_for_long_without_rows(duckdb_datasource):
    """A query without rows is an error."""
    table = Schema("sales").add_table(Table("orders"))

    with pytest.raises(RetrievalError):
        execute_for_long(
            Query("none", "SELECT id FROM ${table} WHERE id < 0"), duckdb_datasource, table, Identifiers()
        )
