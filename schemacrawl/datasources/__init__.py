"""Metadata sources."""

from .base import DataSource, records_from_batches, records_from_rows
from .duckdb import DuckDBDataSource
from .offline import OfflineDataSource
from .postgresql import PostgreSQLDataSource

__all__ = [
    "DataSource",
    "DuckDBDataSource",
    "OfflineDataSource",
    "PostgreSQLDataSource",
    "records_from_batches",
    "records_from_rows",
]
