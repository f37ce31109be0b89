"""SQL query templates with ${key} placeholders."""

import logging
import re
from collections import ChainMap
from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Union

import pyarrow as pa

from ..catalog.schema import Column, Table
from ..errors import RetrievalError
from ..filter.rules import InclusionRule, RuleKind
from .identifiers import Identifiers

logger = logging.getLogger(__name__)

Logger = Union[logging.Logger, logging.LoggerAdapter]

_TOKEN = re.compile(r"\$\{([^}]*)\}")

MATCH_ALL = ".*"


def expand_template(template: str, properties: Optional[Mapping[str, str]] = None) -> str:
    """Replace ``${key}`` tokens in one left-to-right pass.

    Substituted values are not scanned again, and tokens without a value in
    ``properties`` are left exactly as they are.

    Args:
        template: Template text
        properties: Values for tokens

    Returns:
        Expanded text
    """
    if not template or not properties:
        return template

    def substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in properties:
            return str(properties[key])
        return match.group(0)

    return _TOKEN.sub(substitute, template)


class QueryTemplateEngine:
    """Expands templates with per-call properties, then with defaults."""

    def __init__(self, defaults: Optional[Mapping[str, str]] = None):
        """Initialize engine.

        Args:
            defaults: Values for tokens left after the per-call pass
        """
        self.defaults = dict(defaults or {})

    def expand(self, template: str, properties: Optional[Mapping[str, str]] = None) -> str:
        # One pass over both lookups; per-call values shadow defaults
        return expand_template(template, ChainMap(dict(properties or {}), self.defaults))

    def __repr__(self) -> str:
        return f"QueryTemplateEngine(defaults={sorted(self.defaults)})"


@dataclass(frozen=True)
class Query:
    """Named SQL template."""

    name: str
    sql: str


def schema_query_sql(
    query: Query,
    schema_rule: Optional[InclusionRule] = None,
    engine: Optional[QueryTemplateEngine] = None,
) -> str:
    """Expand a schema-scoped query.

    ``${schemas}`` becomes the include pattern of a regular expression
    schema rule, or ``.*`` for any other rule. The pattern is inserted
    verbatim, so templates and rules must come from trusted configuration.
    """
    engine = engine or QueryTemplateEngine()
    schemas = MATCH_ALL
    if schema_rule is not None and schema_rule.kind is RuleKind.REGULAR_EXPRESSION:
        pattern = schema_rule.include_pattern
        if pattern and pattern.strip():
            schemas = pattern
    return engine.expand(query.sql, {"schemas": schemas})


def _column_list(columns: List[Column], identifiers: Identifiers, omit_large_objects: bool) -> str:
    names = []
    for column in columns:
        if omit_large_objects and column.data_type.is_large_or_opaque:
            continue
        names.append(identifiers.quote_name(column.name))
    return ", ".join(names)


def table_query_properties(
    table: Table, identifiers: Identifiers, columns: Optional[List[Column]] = None
) -> dict:
    """Token values for a table-scoped query.

    Columns are listed in the order of ``columns``, or in the table's
    current order when none are given.
    """
    if columns is None:
        columns = table.columns
    properties = {}
    if table.schema is not None:
        properties["schema"] = identifiers.quote_full_name(table.schema)
    properties["table"] = identifiers.quote_full_name(table)
    properties["tablename"] = table.name
    properties["columns"] = _column_list(columns, identifiers, omit_large_objects=True)
    properties["orderbycolumns"] = _column_list(columns, identifiers, omit_large_objects=False)
    properties["tabletype"] = str(table.table_type)
    return properties


def table_query_sql(
    query: Query,
    table: Optional[Table],
    identifiers: Identifiers,
    engine: Optional[QueryTemplateEngine] = None,
    columns: Optional[List[Column]] = None,
) -> str:
    """Expand a table-scoped query.

    Columns are listed in the table's current order unless ``columns``
    gives another; call materialize_column_order or ordered_columns first
    to fix that order.
    """
    engine = engine or QueryTemplateEngine()
    properties = table_query_properties(table, identifiers, columns) if table is not None else {}
    return engine.expand(query.sql, properties)


def materialize_column_order(table: Table, alphabetical: bool) -> Table:
    """Sort a table's columns by name or by ordinal position.

    Sorting is stable and applying it twice with the same flag changes nothing.
    """
    table.columns.sort(key=_column_order_key(alphabetical))
    return table


def ordered_columns(table: Table, alphabetical: bool) -> List[Column]:
    """A sorted copy of a table's columns; the table itself is left as is."""
    return sorted(table.columns, key=_column_order_key(alphabetical))


def _column_order_key(alphabetical: bool):
    if alphabetical:
        return lambda col: (col.name.lower(), col.name)
    return lambda col: col.ordinal_position


def _run(datasource, query: Query, sql: str, log: Logger) -> Iterator[pa.RecordBatch]:
    log.debug(f"Executing {query.name}: \n{sql}")
    return datasource.execute_query(sql)


def _first_value(batches: Iterator[pa.RecordBatch]) -> Any:
    for batch in batches:
        if batch.num_rows > 0 and batch.num_columns > 0:
            return batch.column(0)[0].as_py()
    return None


def execute_against_schema(
    query: Query,
    datasource,
    schema_rule: Optional[InclusionRule] = None,
    engine: Optional[QueryTemplateEngine] = None,
    log: Optional[Logger] = None,
) -> Iterator[pa.RecordBatch]:
    """Run a schema-scoped query against a data source."""
    sql = schema_query_sql(query, schema_rule, engine)
    return _run(datasource, query, sql, log or logger)


def execute_against_table(
    query: Query,
    datasource,
    table: Table,
    identifiers: Identifiers,
    engine: Optional[QueryTemplateEngine] = None,
    log: Optional[Logger] = None,
) -> Iterator[pa.RecordBatch]:
    """Run a table-scoped query against a data source."""
    sql = table_query_sql(query, table, identifiers, engine)
    return _run(datasource, query, sql, log or logger)


def execute_for_scalar(
    query: Query,
    datasource,
    table: Optional[Table] = None,
    identifiers: Optional[Identifiers] = None,
    engine: Optional[QueryTemplateEngine] = None,
    log: Optional[Logger] = None,
) -> Any:
    """Run a query and return the first value of the first row, or None."""
    sql = table_query_sql(query, table, identifiers or Identifiers(), engine)
    return _first_value(_run(datasource, query, sql, log or logger))


def execute_for_long(
    query: Query,
    datasource,
    table: Table,
    identifiers: Identifiers,
    engine: Optional[QueryTemplateEngine] = None,
    log: Optional[Logger] = None,
) -> int:
    """Run a table-scoped query that returns a single integer.

    Raises:
        RetrievalError: If the query returns no rows or a non-integer value
    """
    value = execute_for_scalar(query, datasource, table, identifiers, engine, log)
    if value is None or isinstance(value, bool):
        raise RetrievalError(f"{query.name} returned no number for {table.full_name}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise RetrievalError(f"{query.name} returned {value!r} for {table.full_name}") from e
