"""DuckDB metadata source."""

import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import duckdb
import pyarrow as pa

from ..catalog.schema import DatabaseInfo
from ..catalog.types import RoutineType
from ..crawl.identifiers import identifier_conventions
from ..errors import CrawlError
from .base import (
    ColumnMetadata,
    DataSource,
    ForeignKeyColumnMetadata,
    IndexColumnMetadata,
    PrimaryKeyColumnMetadata,
    RoutineMetadata,
    SchemaMetadata,
    SequenceMetadata,
    TableMetadata,
    as_bool,
)

logger = logging.getLogger(__name__)

_SYSTEM_SCHEMAS = "('information_schema', 'pg_catalog')"

_IDENT = r'(?:"(?:[^"]|"")+"|[^\s.(),"]+)'
_REFERENCES = re.compile(rf"REFERENCES\s+({_IDENT}(?:\s*\.\s*{_IDENT})*)\s*\(([^)]*)\)", re.IGNORECASE)
_INDEX_COLUMNS = re.compile(r"\(([^()]*)\)\s*;?\s*$")


def _unquote(name: str) -> str:
    name = name.strip()
    if len(name) >= 2 and name.startswith('"') and name.endswith('"'):
        return name[1:-1].replace('""', '"')
    return name


def _split_names(text: str) -> List[str]:
    return [_unquote(part) for part in re.findall(_IDENT, text)]


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return _split_names(value.strip("[]"))
    return [str(v) for v in value]


class DuckDBDataSource(DataSource):
    """DuckDB metadata source.

    Crawls the current database through information_schema and the
    ``duckdb_*()`` table functions.
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """Initialize DuckDB data source.

        Config should include:
            - path: Path to DuckDB database file (or :memory: for in-memory)
            - read_only: Whether to open in read-only mode (default: True)
        """
        super().__init__(name, config)
        self.connection = None
        self.db_path = config.get("path", ":memory:")
        self.read_only = config.get("read_only", True)

    def connect(self) -> None:
        """Establish connection to DuckDB."""
        logger.info(f"Connecting to DuckDB at '{self.db_path}'")
        try:
            self.connection = duckdb.connect(self.db_path, read_only=self.read_only)
        except duckdb.Error as e:
            logger.error(f"Failed to connect to DuckDB {self.name}: {e}")
            raise CrawlError(f"DuckDB connection failed: {e}") from e
        self._connected = True
        logger.info(f"Successfully connected to DuckDB: {self.name}")

    def disconnect(self) -> None:
        """Close DuckDB connection."""
        if self.connection:
            self.connection.close()
            logger.info(f"Disconnected from DuckDB: {self.name}")
            self.connection = None
            self._connected = False

    def _rows(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        cursor = self.connection.execute(sql, list(params))
        names = [desc[0].lower() for desc in cursor.description]
        return [dict(zip(names, row)) for row in cursor.fetchall()]

    def _scope(
        self, schema: Optional[str], table: Optional[str], schema_col: str, table_col: str
    ) -> Tuple[str, List[Any]]:
        clauses = []
        params: List[Any] = []
        if schema is not None:
            clauses.append(f"{schema_col} = ?")
            params.append(schema)
        if table is not None:
            clauses.append(f"{table_col} = ?")
            params.append(table)
        sql = "".join(f" AND {clause}" for clause in clauses)
        return sql, params

    def get_database_info(self) -> DatabaseInfo:
        version = self.connection.execute("SELECT version()").fetchone()[0]
        quote_string, casing = identifier_conventions("duckdb")
        # Only the current database is crawled, so names are schema.object
        return DatabaseInfo(
            product_name="DuckDB",
            product_version=str(version),
            identifier_quote_string=quote_string,
            identifier_casing=casing,
            supports_schemas=True,
            supports_catalogs=False,
        )

    def fetch_schemas(self) -> List[SchemaMetadata]:
        rows = self._rows(
            f"""
            SELECT catalog_name, schema_name
            FROM information_schema.schemata
            WHERE catalog_name = current_database()
              AND schema_name NOT IN {_SYSTEM_SCHEMAS}
            ORDER BY schema_name
            """
        )
        return [SchemaMetadata(row["catalog_name"], row["schema_name"]) for row in rows]

    def fetch_tables(self, schema: Optional[str] = None) -> List[TableMetadata]:
        scope, params = self._scope(schema, None, "table_schema", "table_name")
        rows = self._rows(
            f"""
            SELECT table_catalog, table_schema, table_name, table_type
            FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema NOT IN {_SYSTEM_SCHEMAS}{scope}
            ORDER BY table_schema, table_name
            """,
            params,
        )
        return [
            TableMetadata(
                catalog_name=row["table_catalog"],
                schema_name=row["table_schema"],
                table_name=row["table_name"],
                table_type=row["table_type"],
            )
            for row in rows
        ]

    def fetch_columns(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[ColumnMetadata]:
        scope, params = self._scope(schema, table, "table_schema", "table_name")
        rows = self._rows(
            f"""
            SELECT table_catalog, table_schema, table_name, column_name,
                   ordinal_position, data_type, is_nullable, column_default
            FROM information_schema.columns
            WHERE table_catalog = current_database()
              AND table_schema NOT IN {_SYSTEM_SCHEMAS}{scope}
            ORDER BY table_schema, table_name, ordinal_position
            """,
            params,
        )
        return [
            ColumnMetadata(
                catalog_name=row["table_catalog"],
                schema_name=row["table_schema"],
                table_name=row["table_name"],
                column_name=row["column_name"],
                data_type=row["data_type"],
                ordinal_position=int(row["ordinal_position"]),
                nullable=as_bool(row["is_nullable"]),
                column_default=row["column_default"],
            )
            for row in rows
        ]

    def _constraints(self, constraint_type: str, schema: Optional[str], table: Optional[str]) -> List[Dict[str, Any]]:
        # SELECT * because the set of columns differs between DuckDB versions
        scope, params = self._scope(schema, table, "schema_name", "table_name")
        rows = self._rows(
            f"""
            SELECT *
            FROM duckdb_constraints()
            WHERE database_name = current_database()
              AND constraint_type = ?{scope}
            ORDER BY schema_name, table_name, constraint_index
            """,
            [constraint_type] + params,
        )
        unique = []
        seen = set()
        for row in rows:
            key = (row["schema_name"], row["table_name"], row.get("constraint_text"))
            if key in seen:
                continue
            seen.add(key)
            unique.append(row)
        return unique

    def fetch_primary_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[PrimaryKeyColumnMetadata]:
        records = []
        for row in self._constraints("PRIMARY KEY", schema, table):
            pk_name = row.get("constraint_name") or f"{row['table_name']}_pkey"
            for position, column_name in enumerate(_as_list(row["constraint_column_names"]), start=1):
                records.append(
                    PrimaryKeyColumnMetadata(
                        catalog_name=row["database_name"],
                        schema_name=row["schema_name"],
                        table_name=row["table_name"],
                        column_name=column_name,
                        key_sequence=position,
                        pk_name=pk_name,
                    )
                )
        return records

    def fetch_foreign_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[ForeignKeyColumnMetadata]:
        records = []
        for row in self._constraints("FOREIGN KEY", schema, table):
            fk_columns = _as_list(row["constraint_column_names"])
            pk_schema, pk_table, pk_columns = self._referenced(row)
            if pk_table is None or len(pk_columns) != len(fk_columns):
                logger.warning(
                    f"Cannot read foreign key of {row['schema_name']}.{row['table_name']}: "
                    f"{row.get('constraint_text')}"
                )
                continue
            fk_name = row.get("constraint_name") or f"{row['table_name']}_{'_'.join(fk_columns)}_fkey"
            for position, (fk_column, pk_column) in enumerate(zip(fk_columns, pk_columns), start=1):
                records.append(
                    ForeignKeyColumnMetadata(
                        fk_name=fk_name,
                        key_sequence=position,
                        pk_catalog_name=row["database_name"],
                        pk_schema_name=pk_schema,
                        pk_table_name=pk_table,
                        pk_column_name=pk_column,
                        fk_catalog_name=row["database_name"],
                        fk_schema_name=row["schema_name"],
                        fk_table_name=row["table_name"],
                        fk_column_name=fk_column,
                    )
                )
        return records

    def _referenced(self, row: Dict[str, Any]) -> Tuple[str, Optional[str], List[str]]:
        """Referenced schema, table and columns of a foreign key constraint row."""
        schema = row["schema_name"]
        if row.get("referenced_table") and row.get("referenced_column_names") is not None:
            return schema, row["referenced_table"], _as_list(row["referenced_column_names"])

        match = _REFERENCES.search(row.get("constraint_text") or "")
        if not match:
            return schema, None, []
        parts = _split_names(match.group(1))
        if len(parts) > 1:
            schema = parts[-2]
        return schema, parts[-1], _split_names(match.group(2))

    def fetch_indexes(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[IndexColumnMetadata]:
        scope, params = self._scope(schema, table, "schema_name", "table_name")
        rows = self._rows(
            f"""
            SELECT database_name, schema_name, table_name, index_name, is_unique, sql
            FROM duckdb_indexes()
            WHERE database_name = current_database(){scope}
            ORDER BY schema_name, table_name, index_name
            """,
            params,
        )
        records = []
        for row in rows:
            match = _INDEX_COLUMNS.search(row["sql"] or "")
            if not match:
                logger.warning(f"Cannot read columns of index {row['index_name']}")
                continue
            for position, column_name in enumerate(_split_names(match.group(1)), start=1):
                records.append(
                    IndexColumnMetadata(
                        catalog_name=row["database_name"],
                        schema_name=row["schema_name"],
                        table_name=row["table_name"],
                        index_name=row["index_name"],
                        column_name=column_name,
                        ordinal_position=position,
                        unique=bool(row["is_unique"]),
                    )
                )
        return records

    def fetch_routines(self, routine_type: RoutineType, schema: Optional[str] = None) -> List[RoutineMetadata]:
        # DuckDB has macros but no stored procedures
        if routine_type is RoutineType.PROCEDURE:
            return []
        scope, params = self._scope(schema, None, "schema_name", "function_name")
        rows = self._rows(
            f"""
            SELECT *
            FROM duckdb_functions()
            WHERE NOT internal
              AND database_name = current_database(){scope}
            ORDER BY schema_name, function_name
            """,
            params,
        )
        return [
            RoutineMetadata(
                catalog_name=row["database_name"],
                schema_name=row["schema_name"],
                routine_name=row["function_name"],
                routine_type=RoutineType.FUNCTION.value,
                specific_name=row["function_name"],
                return_type=row.get("return_type"),
                remarks=row.get("description"),
            )
            for row in rows
        ]

    def fetch_sequences(self, schema: Optional[str] = None) -> List[SequenceMetadata]:
        scope, params = self._scope(schema, None, "schema_name", "sequence_name")
        rows = self._rows(
            f"""
            SELECT *
            FROM duckdb_sequences()
            WHERE database_name = current_database(){scope}
            ORDER BY schema_name, sequence_name
            """,
            params,
        )
        return [
            SequenceMetadata(
                catalog_name=row["database_name"],
                schema_name=row["schema_name"],
                sequence_name=row["sequence_name"],
                start_value=row.get("start_value"),
                increment=row.get("increment_by"),
                minimum_value=row.get("min_value"),
                maximum_value=row.get("max_value"),
                cycle=bool(row.get("cycle")),
            )
            for row in rows
        ]

    def execute_query(self, query: str) -> Iterator[pa.RecordBatch]:
        """Execute query and yield Arrow record batches."""
        logger.debug(f"Executing query on {self.name}: {query[:100]}...")
        result = self.connection.execute(query)
        arrow_table = result.fetch_arrow_table()

        batch_size = 10000
        for batch in arrow_table.to_batches(max_chunksize=batch_size):
            yield batch
