"""Shared fixtures for schemacrawl tests."""

import pytest

from schemacrawl.catalog import (
    Catalog,
    Column,
    ColumnDataType,
    DatabaseInfo,
    ForeignKey,
    ForeignKeyColumnReference,
    PrimaryKey,
    Routine,
    RoutineType,
    Schema,
    Sequence,
    Table,
    TypeGroup,
)
from schemacrawl.datasources.duckdb import DuckDBDataSource


def _int(name, position):
    return Column(name, ColumnDataType("INTEGER", TypeGroup.INTEGER), ordinal_position=position)


def _text(name, position):
    return Column(name, ColumnDataType("VARCHAR", TypeGroup.CHARACTER), ordinal_position=position)


def _link(name, fk_table, fk_column, pk_table, pk_column):
    fk = ForeignKey(
        name=name,
        column_references=[
            ForeignKeyColumnReference(fk_table.get_column(fk_column), pk_table.get_column(pk_column))
        ],
    )
    fk_table.foreign_keys.append(fk)
    return fk


@pytest.fixture
def sample_catalog():
    """Catalog with PUBLIC and HR schemas, built by hand.

    PUBLIC holds CUSTOMERS and ORDERS, with ORDERS referring to CUSTOMERS.
    HR holds EMPLOYEES, which refers to PUBLIC.CUSTOMERS, and a routine.
    """
    catalog = Catalog(name="sample", database_info=DatabaseInfo(product_name="Sample", supports_catalogs=False))

    public = catalog.add_schema(Schema("PUBLIC"))
    customers = public.add_table(Table("CUSTOMERS", columns=[_int("ID", 1), _text("NAME", 2)]))
    customers.primary_key = PrimaryKey("PK_CUSTOMERS", ["ID"])
    orders = public.add_table(
        Table("ORDERS", columns=[_int("ID", 1), _int("CUSTOMER_ID", 2), _text("STATUS", 3)])
    )
    orders.primary_key = PrimaryKey("PK_ORDERS", ["ID"])
    _link("FK_ORDERS_CUSTOMERS", orders, "CUSTOMER_ID", customers, "ID")
    public.add_routine(Routine("ORDER_TOTAL", RoutineType.FUNCTION, return_type="DECIMAL"))
    public.add_sequence(Sequence("ORDER_SEQ", start_value=1, increment=1))

    hr = catalog.add_schema(Schema("HR"))
    employees = hr.add_table(Table("EMPLOYEES", columns=[_int("ID", 1), _int("ACCOUNT_ID", 2)]))
    _link("FK_EMPLOYEES_CUSTOMERS", employees, "ACCOUNT_ID", customers, "ID")
    hr.add_routine(Routine("RAISE_SALARY", RoutineType.PROCEDURE))

    return catalog


@pytest.fixture
def duckdb_datasource():
    """In-memory DuckDB database with two related tables, a view and an index."""
    ds = DuckDBDataSource("test_duck", {"path": ":memory:", "read_only": False})
    ds.connect()

    conn = ds.connection
    conn.execute("CREATE SCHEMA sales")
    conn.execute("""
        CREATE TABLE sales.customers (
            id INTEGER PRIMARY KEY,
            name VARCHAR NOT NULL,
            city VARCHAR
        )
    """)
    conn.execute("""
        CREATE TABLE sales.orders (
            id INTEGER PRIMARY KEY,
            customer_id INTEGER REFERENCES sales.customers(id),
            amount DOUBLE,
            receipt BLOB
        )
    """)
    conn.execute("CREATE INDEX idx_orders_customer ON sales.orders(customer_id)")
    conn.execute("CREATE VIEW sales.big_orders AS SELECT * FROM sales.orders WHERE amount > 100")
    conn.execute("""
        CREATE TABLE main.audit_log (
            entry_id INTEGER,
            message VARCHAR
        )
    """)
    conn.execute("""
        INSERT INTO sales.customers VALUES
            (1, 'Alice', 'Oslo'),
            (2, 'Bob', 'Lima')
    """)
    conn.execute("""
        INSERT INTO sales.orders VALUES
            (10, 1, 250.0, NULL),
            (11, 1, 20.5, NULL),
            (12, 2, 99.0, NULL)
    """)

    yield ds

    ds.disconnect()
