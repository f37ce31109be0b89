"""Snapshot-backed metadata source."""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import pyarrow as pa

from ..catalog.catalog import Catalog
from ..catalog.schema import DatabaseInfo, Schema, Table
from ..catalog.types import RoutineType
from ..errors import OfflineError
from ..offline.snapshot import read_snapshot
from .base import (
    ColumnMetadata,
    DataSource,
    ForeignKeyColumnMetadata,
    IndexColumnMetadata,
    PrimaryKeyColumnMetadata,
    RoutineMetadata,
    SchemaMetadata,
    SequenceMetadata,
    SynonymMetadata,
    TableMetadata,
)

logger = logging.getLogger(__name__)


class OfflineDataSource(DataSource):
    """Serves the metadata of a loaded catalog snapshot.

    Queries cannot run without a database, so execute_query raises
    OfflineError.
    """

    def __init__(self, name: str, config: Dict[str, Any], catalog: Optional[Catalog] = None):
        """Initialize offline data source.

        Config should include:
            - snapshot: Path to a snapshot file, unless a catalog is given
        """
        super().__init__(name, config)
        self.catalog = catalog
        snapshot = config.get("snapshot")
        self.snapshot_path = Path(snapshot) if snapshot else None

    @property
    def is_offline(self) -> bool:
        return True

    def connect(self) -> None:
        """Load the snapshot unless a catalog was supplied."""
        if self.catalog is None:
            if self.snapshot_path is None:
                raise OfflineError(f"No snapshot configured for {self.name}")
            self.catalog = read_snapshot(self.snapshot_path)
        self.connection = self.catalog
        self._connected = True
        logger.info(f"Opened offline snapshot: {self.name}")

    def disconnect(self) -> None:
        self.connection = None
        self._connected = False

    def _catalog(self) -> Catalog:
        if self.catalog is None:
            raise OfflineError(f"Offline data source {self.name} is not connected")
        return self.catalog

    def _schemas(self, schema: Optional[str]) -> List[Schema]:
        return [s for s in self._catalog().schemas.values() if schema is None or s.name == schema]

    def _tables(self, schema: Optional[str], table: Optional[str]) -> List[Table]:
        return [
            t
            for s in self._schemas(schema)
            for t in s.tables.values()
            if table is None or t.name == table
        ]

    def get_database_info(self) -> DatabaseInfo:
        return self._catalog().database_info

    def fetch_schemas(self) -> List[SchemaMetadata]:
        return [SchemaMetadata(s.catalog_name, s.name) for s in self._schemas(None)]

    def fetch_tables(self, schema: Optional[str] = None) -> List[TableMetadata]:
        return [
            TableMetadata(t.schema.catalog_name, t.schema.name, t.name, t.table_type.value, t.remarks)
            for t in self._tables(schema, None)
        ]

    def fetch_columns(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[ColumnMetadata]:
        return [
            ColumnMetadata(
                catalog_name=t.schema.catalog_name,
                schema_name=t.schema.name,
                table_name=t.name,
                column_name=c.name,
                data_type=c.data_type.name,
                ordinal_position=c.ordinal_position,
                nullable=c.nullable,
                column_default=c.default_value,
                remarks=c.remarks,
            )
            for t in self._tables(schema, table)
            for c in t.columns
        ]

    def fetch_primary_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[PrimaryKeyColumnMetadata]:
        return [
            PrimaryKeyColumnMetadata(t.schema.catalog_name, t.schema.name, t.name, column, position, t.primary_key.name)
            for t in self._tables(schema, table)
            if t.primary_key is not None
            for position, column in enumerate(t.primary_key.column_names, start=1)
        ]

    def fetch_indexes(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[IndexColumnMetadata]:
        return [
            IndexColumnMetadata(t.schema.catalog_name, t.schema.name, t.name, i.name, column, position, i.unique)
            for t in self._tables(schema, table)
            for i in t.indexes
            for position, column in enumerate(i.column_names, start=1)
        ]

    def fetch_foreign_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[ForeignKeyColumnMetadata]:
        records = []
        for t in self._tables(schema, table):
            for fk in t.foreign_keys:
                pk_table = fk.primary_table
                for position, ref in enumerate(fk.column_references, start=1):
                    records.append(
                        ForeignKeyColumnMetadata(
                            fk_name=fk.name,
                            key_sequence=position,
                            pk_catalog_name=pk_table.schema.catalog_name,
                            pk_schema_name=pk_table.schema.name,
                            pk_table_name=pk_table.name,
                            pk_column_name=ref.primary_key_column.name,
                            fk_catalog_name=t.schema.catalog_name,
                            fk_schema_name=t.schema.name,
                            fk_table_name=t.name,
                            fk_column_name=ref.foreign_key_column.name,
                            update_rule=fk.update_rule,
                            delete_rule=fk.delete_rule,
                        )
                    )
        return records

    def fetch_routines(self, routine_type: RoutineType, schema: Optional[str] = None) -> List[RoutineMetadata]:
        return [
            RoutineMetadata(
                catalog_name=s.catalog_name,
                schema_name=s.name,
                routine_name=r.name,
                routine_type=r.routine_type.value,
                specific_name=r.specific_name,
                return_type=r.return_type,
                remarks=r.remarks,
            )
            for s in self._schemas(schema)
            for r in s.routines.values()
            if r.routine_type is routine_type
        ]

    def fetch_sequences(self, schema: Optional[str] = None) -> List[SequenceMetadata]:
        return [
            SequenceMetadata(
                s.catalog_name, s.name, q.name, q.start_value, q.increment, q.minimum_value, q.maximum_value, q.cycle
            )
            for s in self._schemas(schema)
            for q in s.sequences.values()
        ]

    def fetch_synonyms(self, schema: Optional[str] = None) -> List[SynonymMetadata]:
        return [
            SynonymMetadata(s.catalog_name, s.name, y.name, y.referenced_object)
            for s in self._schemas(schema)
            for y in s.synonyms.values()
        ]

    def execute_query(self, query: str) -> Iterator[pa.RecordBatch]:
        raise OfflineError(f"Cannot execute queries against offline snapshot {self.name}")
