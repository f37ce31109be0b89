"""Tests for identifier quoting."""

import pytest

from schemacrawl.catalog import IdentifierCasing, Schema, Table
from schemacrawl.crawl.identifiers import Identifiers, identifier_conventions, name_parts


def test_name_with_space_is_quoted():
    """Names with characters outside letters, digits and underscore get quoted."""
    identifiers = Identifiers('"')

    assert identifiers.quote_name("Order Items") == '"Order Items"'


def test_simple_name_is_left_alone():
    """Simple names stay bare."""
    identifiers = Identifiers('"')

    assert identifiers.quote_name("ORDERS") == "ORDERS"
    assert identifiers.quote_name("order_items_2") == "order_items_2"


def test_quoting_is_idempotent():
    """Quoting an already quoted name does not wrap it again."""
    identifiers = Identifiers('"')

    once = identifiers.quote_name("Order Items")
    twice = identifiers.quote_name(once)

    assert twice == once


def test_embedded_quote_is_doubled():
    """A quote character inside the name is escaped by doubling it."""
    identifiers = Identifiers('"')

    assert identifiers.quote_name('say "hi"') == '"say ""hi"""'


@pytest.mark.parametrize(
    "name,expected",
    [
        ('""', '""""""'),
        ('"a"b"', '"""a""b"""'),
        ('"a""b"', '"a""b"'),
    ],
)
def test_only_well_formed_quoted_names_pass_through(name, expected):
    """A name wrapped in quotes is kept only if its inner quotes are doubled."""
    assert Identifiers('"').quote_name(name) == expected


def test_leading_digit_is_quoted():
    """Names that start with a digit are not valid bare identifiers."""
    assert Identifiers('"').quote_name("2024_sales") == '"2024_sales"'


@pytest.mark.parametrize(
    "casing,name,expected",
    [
        (IdentifierCasing.UPPER, "ORDERS", "ORDERS"),
        (IdentifierCasing.UPPER, "Orders", '"Orders"'),
        (IdentifierCasing.LOWER, "orders", "orders"),
        (IdentifierCasing.LOWER, "Orders", '"Orders"'),
        (IdentifierCasing.MIXED, "Orders", "Orders"),
        (IdentifierCasing.UNKNOWN, "Orders", "Orders"),
    ],
)
def test_casing_mismatch_is_quoted(casing, name, expected):
    """Names that differ from the database's unquoted casing are quoted."""
    assert Identifiers('"', casing).quote_name(name) == expected


def test_quoting_depends_only_on_inputs():
    """Equal identifier settings quote the same name the same way."""
    first = Identifiers("`", IdentifierCasing.LOWER)
    second = Identifiers("`", IdentifierCasing.LOWER)

    for name in ["Order Items", "orders", "MixedCase", ""]:
        assert first.quote_name(name) == second.quote_name(name)


def test_no_quote_string_never_quotes():
    """Without a quote string every name is returned unchanged."""
    identifiers = Identifiers(None)

    assert identifiers.quote_name("Order Items") == "Order Items"


def test_quote_full_name_quotes_each_part():
    """Qualified names are quoted part by part."""
    schema = Schema("my schema")
    table = schema.add_table(Table("Order Items"))

    assert Identifiers('"').quote_full_name(table) == '"my schema"."Order Items"'
    assert name_parts(table) == ["my schema", "Order Items"]


def test_quote_full_name_includes_catalog():
    """The catalog name is the first part when present."""
    schema = Schema("public", catalog_name="shop")
    table = schema.add_table(Table("orders"))

    assert Identifiers('"').quote_full_name(table) == "shop.public.orders"


def test_conventions_for_known_products():
    """Dialect conventions come from sqlglot."""
    quote, casing = identifier_conventions("PostgreSQL")
    assert quote == '"'
    assert casing is IdentifierCasing.LOWER

    quote, casing = identifier_conventions("MySQL")
    assert quote == "`"


def test_conventions_for_unknown_product():
    """Unknown products get the standard double quote and unknown casing."""
    assert identifier_conventions("NoSuchDatabase") == ('"', IdentifierCasing.UNKNOWN)
    assert identifier_conventions(None) == ('"', IdentifierCasing.UNKNOWN)
