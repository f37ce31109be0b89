"""Tests for catalog reduction."""

import pytest

from schemacrawl.catalog import Catalog
from schemacrawl.filter import REDUCTION_ORDER, EntityKind, InclusionRule, Reducer, build_crawl_options


def test_schema_rule_removes_schema_and_contents(sample_catalog):
    """Reducing schemas by ^PUBLIC$ removes HR with its tables, keys and routines."""
    reducer = Reducer()

    removed = reducer.reduce(sample_catalog, EntityKind.SCHEMA, InclusionRule.regular_expression("^PUBLIC$"))

    assert removed == 1
    assert [s.name for s in sample_catalog.schemas.values()] == ["PUBLIC"]
    assert [t.full_name for t in sample_catalog.tables] == ["PUBLIC.CUSTOMERS", "PUBLIC.ORDERS"]
    assert [r.full_name for r in sample_catalog.routines] == ["PUBLIC.ORDER_TOTAL"]
    assert [fk.name for fk in sample_catalog.foreign_keys] == ["FK_ORDERS_CUSTOMERS"]


def test_table_rule_removes_referencing_foreign_keys(sample_catalog):
    """Excluding CUSTOMERS keeps ORDERS but drops its key to CUSTOMERS."""
    rule = InclusionRule.regular_expression(exclude=r".*\.CUSTOMERS")

    Reducer().reduce(sample_catalog, EntityKind.TABLE, rule)

    orders = sample_catalog.resolve_table("PUBLIC.ORDERS")
    assert orders is not None
    assert orders.foreign_keys == []
    assert sample_catalog.resolve_table("PUBLIC.CUSTOMERS") is None
    assert sample_catalog.foreign_keys == []


@pytest.mark.parametrize(
    "rule",
    [
        InclusionRule.include_all(),
        InclusionRule.exclude_all(),
        InclusionRule.regular_expression("PUBLIC\\..*"),
        InclusionRule.regular_expression(exclude=".*ORDERS"),
        InclusionRule.exclusion("HR\\..*"),
    ],
)
def test_no_dangling_foreign_keys_after_table_reduction(sample_catalog, rule):
    Reducer().reduce(sample_catalog, EntityKind.TABLE, rule)

    assert sample_catalog.dangling_foreign_keys() == []


@pytest.mark.parametrize("kind", list(EntityKind))
def test_reduction_is_idempotent(sample_catalog, kind):
    """Reducing twice with the same rule removes nothing the second time."""
    rule = InclusionRule.regular_expression(exclude="HR.*|.*ORDER.*")
    reducer = Reducer()

    reducer.reduce(sample_catalog, kind, rule)
    once = sample_catalog.to_dict()
    removed = reducer.reduce(sample_catalog, kind, rule)

    assert removed == 0
    assert sample_catalog.to_dict() == once


def test_survivors_keep_their_order(sample_catalog):
    reducer = Reducer()

    reducer.reduce(sample_catalog, EntityKind.TABLE, InclusionRule.regular_expression(exclude=r"PUBLIC\.ORDERS"))

    assert [t.full_name for t in sample_catalog.tables] == ["PUBLIC.CUSTOMERS", "HR.EMPLOYEES"]


def test_routines_sequences_and_synonyms(sample_catalog):
    reducer = Reducer()

    assert reducer.reduce(sample_catalog, EntityKind.ROUTINE, InclusionRule.exclusion(r"HR\..*")) == 1
    assert reducer.reduce(sample_catalog, EntityKind.SEQUENCE, InclusionRule.exclude_all()) == 1
    assert reducer.reduce(sample_catalog, EntityKind.SYNONYM, InclusionRule.exclude_all()) == 0

    assert [r.name for r in sample_catalog.routines] == ["ORDER_TOTAL"]
    assert sample_catalog.sequences == []


def test_reduce_all_uses_every_rule(sample_catalog):
    options = build_crawl_options(schemas="PUBLIC", tables={"exclude": r".*\.ORDERS"}, sequences="include_all")

    removed = Reducer().reduce_all(sample_catalog, options)

    assert removed == 2
    assert [t.full_name for t in sample_catalog.tables] == ["PUBLIC.CUSTOMERS"]
    assert [s.name for s in sample_catalog.sequences] == ["ORDER_SEQ"]


def test_reduction_order():
    assert REDUCTION_ORDER == (
        EntityKind.SCHEMA,
        EntityKind.TABLE,
        EntityKind.ROUTINE,
        EntityKind.SYNONYM,
        EntityKind.SEQUENCE,
    )


def test_reduce_empty_catalog():
    assert Reducer().reduce(Catalog(), EntityKind.TABLE, InclusionRule.exclude_all()) == 0


@pytest.mark.parametrize(
    "value,name,expected",
    [
        (None, "anything", True),
        ("include_all", "anything", True),
        ("exclude_all", "anything", False),
        ("PUBLIC", "PUBLIC", True),
        ("PUBLIC", "PUBLIC_OLD", False),
        ({"include": "PUBLIC.*", "exclude": ".*_OLD"}, "PUBLIC_OLD", False),
        ({"exclude": "HR"}, "PUBLIC", True),
        ({"exclude": "HR"}, "HR", False),
    ],
)
def test_inclusion_rule_from_config(value, name, expected):
    assert InclusionRule.from_config(value).test(name) is expected
