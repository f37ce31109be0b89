"""Crawling: identifier quoting, query templates, strategy selection and catalog building."""

from .identifiers import Identifiers, identifier_conventions
from .templating import (
    Query,
    QueryTemplateEngine,
    expand_template,
    materialize_column_order,
    schema_query_sql,
    table_query_sql,
)
from .strategy import (
    DatabaseSpecificOptions,
    MetadataCategory,
    OverrideOptions,
    RetrievalStrategy,
    RetrievalStrategySelector,
    build_override_options,
    override_options_from_config,
)
from .builder import CatalogBuilder, ForeignKeyResolver

__all__ = [
    "CatalogBuilder",
    "DatabaseSpecificOptions",
    "ForeignKeyResolver",
    "Identifiers",
    "MetadataCategory",
    "OverrideOptions",
    "Query",
    "QueryTemplateEngine",
    "RetrievalStrategy",
    "RetrievalStrategySelector",
    "build_override_options",
    "expand_template",
    "identifier_conventions",
    "materialize_column_order",
    "override_options_from_config",
    "schema_query_sql",
    "table_query_sql",
]
