"""Catalog of database structural metadata."""

from .catalog import Catalog
from .schema import (
    Column,
    CrawlInfo,
    DatabaseInfo,
    ForeignKey,
    ForeignKeyColumnReference,
    Index,
    PrimaryKey,
    Routine,
    Schema,
    Sequence,
    Synonym,
    Table,
)
from .types import ColumnDataType, IdentifierCasing, RoutineType, TableType, TypeGroup, classify_type

__all__ = [
    "Catalog",
    "Column",
    "ColumnDataType",
    "CrawlInfo",
    "DatabaseInfo",
    "ForeignKey",
    "ForeignKeyColumnReference",
    "IdentifierCasing",
    "Index",
    "PrimaryKey",
    "Routine",
    "RoutineType",
    "Schema",
    "Sequence",
    "Synonym",
    "Table",
    "TableType",
    "TypeGroup",
    "classify_type",
]
