"""Base metadata source interface."""

from abc import ABC, abstractmethod
from dataclasses import MISSING, dataclass, fields
from typing import Any, Dict, Iterable, Iterator, List, Optional, Type, TypeVar

import pyarrow as pa

from ..catalog.schema import DatabaseInfo
from ..catalog.types import RoutineType
from ..errors import RetrievalError


@dataclass
class SchemaMetadata:
    """Metadata about a schema."""

    catalog_name: Optional[str]
    schema_name: str


@dataclass
class TableMetadata:
    """Metadata about a table."""

    catalog_name: Optional[str]
    schema_name: str
    table_name: str
    table_type: str = "TABLE"
    remarks: Optional[str] = None


@dataclass
class ColumnMetadata:
    """Metadata about a column."""

    catalog_name: Optional[str]
    schema_name: str
    table_name: str
    column_name: str
    data_type: str
    ordinal_position: int
    nullable: bool = True
    column_default: Optional[str] = None
    remarks: Optional[str] = None


@dataclass
class PrimaryKeyColumnMetadata:
    """One column of a primary key."""

    catalog_name: Optional[str]
    schema_name: str
    table_name: str
    column_name: str
    key_sequence: int
    pk_name: Optional[str] = None


@dataclass
class IndexColumnMetadata:
    """One column of an index."""

    catalog_name: Optional[str]
    schema_name: str
    table_name: str
    index_name: str
    column_name: str
    ordinal_position: int
    unique: bool = False


@dataclass
class ForeignKeyColumnMetadata:
    """One column pair of a foreign key, from the foreign table to the primary table."""

    fk_name: str
    key_sequence: int
    pk_catalog_name: Optional[str]
    pk_schema_name: str
    pk_table_name: str
    pk_column_name: str
    fk_catalog_name: Optional[str]
    fk_schema_name: str
    fk_table_name: str
    fk_column_name: str
    update_rule: Optional[str] = None
    delete_rule: Optional[str] = None


@dataclass
class RoutineMetadata:
    """Metadata about a procedure or function."""

    catalog_name: Optional[str]
    schema_name: str
    routine_name: str
    routine_type: str
    specific_name: Optional[str] = None
    return_type: Optional[str] = None
    remarks: Optional[str] = None


@dataclass
class SequenceMetadata:
    """Metadata about a sequence."""

    catalog_name: Optional[str]
    schema_name: str
    sequence_name: str
    start_value: Optional[int] = None
    increment: Optional[int] = None
    minimum_value: Optional[int] = None
    maximum_value: Optional[int] = None
    cycle: bool = False


@dataclass
class SynonymMetadata:
    """Metadata about a synonym."""

    catalog_name: Optional[str]
    schema_name: str
    synonym_name: str
    referenced_object: Optional[str] = None


R = TypeVar("R")

_TRUE_STRINGS = ("YES", "Y", "TRUE", "T", "1")


def as_bool(value: Any) -> bool:
    """Interpret driver values such as 'YES' and 'NO' as booleans."""
    if isinstance(value, str):
        return value.strip().upper() in _TRUE_STRINGS
    return bool(value)


def as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def records_from_rows(record_type: Type[R], rows: Iterable[Dict[str, Any]]) -> List[R]:
    """Map result rows onto metadata records by lower-cased column label.

    Columns that match no record field are ignored.

    Args:
        record_type: Metadata record dataclass
        rows: Rows as dictionaries of column label to value

    Returns:
        List of records

    Raises:
        RetrievalError: If a row lacks a column for a required field
    """
    record_fields = fields(record_type)
    records = []
    for row in rows:
        values = {str(key).lower(): value for key, value in row.items()}
        kwargs = {}
        for f in record_fields:
            if f.name not in values:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise RetrievalError(f"Result has no {f.name} column for {record_type.__name__}")
                continue
            value = values[f.name]
            if f.type is bool:
                value = as_bool(value)
            elif f.type is int or f.type == Optional[int]:
                value = as_int(value)
            kwargs[f.name] = value
        records.append(record_type(**kwargs))
    return records


def records_from_batches(record_type: Type[R], batches: Iterable[pa.RecordBatch]) -> List[R]:
    """Map Arrow record batches from execute_query onto metadata records."""
    rows = []
    for batch in batches:
        rows.extend(batch.to_pylist())
    return records_from_rows(record_type, rows)


class DataSource(ABC):
    """Source of database structural metadata.

    Every ``fetch_*`` method treats a ``None`` scope as "everything" (a bulk
    call) and a schema or table name as a per-object call.
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """Initialize data source.

        Args:
            name: Unique name for this data source
            config: Configuration dictionary
        """
        self.name = name
        self.config = config
        self.connection = None
        self._connected = False

    @property
    def is_offline(self) -> bool:
        return False

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data source."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the data source."""
        pass

    @abstractmethod
    def get_database_info(self) -> DatabaseInfo:
        """Describe the database product and its capabilities."""
        pass

    @abstractmethod
    def fetch_schemas(self) -> List[SchemaMetadata]:
        """List all available schemas."""
        pass

    @abstractmethod
    def fetch_tables(self, schema: Optional[str] = None) -> List[TableMetadata]:
        """List tables.

        Args:
            schema: Schema name, or None for all schemas

        Returns:
            Table records ordered by schema and name
        """
        pass

    @abstractmethod
    def fetch_columns(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[ColumnMetadata]:
        """List columns, ordered by table and ordinal position.

        Args:
            schema: Schema name, or None for all schemas
            table: Table name, or None for all tables

        Returns:
            Column records
        """
        pass

    @abstractmethod
    def fetch_primary_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[PrimaryKeyColumnMetadata]:
        pass

    @abstractmethod
    def fetch_indexes(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[IndexColumnMetadata]:
        pass

    @abstractmethod
    def fetch_foreign_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[ForeignKeyColumnMetadata]:
        """List foreign key columns owned by the foreign (referencing) tables in scope."""
        pass

    @abstractmethod
    def fetch_routines(self, routine_type: RoutineType, schema: Optional[str] = None) -> List[RoutineMetadata]:
        pass

    def fetch_sequences(self, schema: Optional[str] = None) -> List[SequenceMetadata]:
        """List sequences; sources without sequences return nothing."""
        return []

    def fetch_synonyms(self, schema: Optional[str] = None) -> List[SynonymMetadata]:
        """List synonyms; sources without synonyms return nothing."""
        return []

    @abstractmethod
    def execute_query(self, query: str) -> Iterator[pa.RecordBatch]:
        """Execute a SQL query and return results as Arrow record batches.

        Args:
            query: SQL query string

        Returns:
            Iterator of Arrow record batches
        """
        pass

    def is_connected(self) -> bool:
        """Check if data source is connected.

        Returns:
            True if connected, False otherwise
        """
        return self._connected

    def ensure_connected(self) -> None:
        """Ensure data source is connected."""
        if not self.is_connected():
            self.connect()
            self._connected = True

    def __enter__(self):
        """Context manager entry."""
        self.ensure_connected()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
        self._connected = False
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
