"""PostgreSQL metadata source."""

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import psycopg2
import pyarrow as pa
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

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
    as_int,
)

logger = logging.getLogger(__name__)

# pg_constraint action codes
_RULES = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


def _user_schema(column: str) -> str:
    return f"{column} NOT IN ('pg_catalog', 'information_schema') AND left({column}, 3) <> 'pg_'"


class PostgreSQLDataSource(DataSource):
    """PostgreSQL metadata source with connection pooling."""

    def __init__(self, name: str, config: Dict[str, Any]):
        """Initialize PostgreSQL data source.

        Config should include:
            - host: Database host
            - port: Database port
            - database: Database name
            - user: Username
            - password: Password
            - min_connections: Minimum connections in pool (default: 1)
            - max_connections: Maximum connections in pool (default: 5)
        """
        super().__init__(name, config)
        self._pool = None
        self._min_connections = config.get("min_connections", 1)
        self._max_connections = config.get("max_connections", 5)

    def connect(self) -> None:
        """Establish connection pool to PostgreSQL."""
        try:
            logger.info(f"Connecting to PostgreSQL database '{self.config['database']}' at {self.config['host']}")
            self._pool = pool.ThreadedConnectionPool(
                self._min_connections,
                self._max_connections,
                host=self.config["host"],
                port=self.config.get("port", 5432),
                database=self.config["database"],
                user=self.config["user"],
                password=self.config["password"],
            )
            # Get a test connection to verify it works
            conn = self._pool.getconn()
            self._pool.putconn(conn)
            self.connection = conn
            self._connected = True
            logger.info(f"Successfully connected to PostgreSQL: {self.name}")
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to PostgreSQL {self.name}: {e}")
            raise CrawlError(f"PostgreSQL connection failed: {e}") from e

    def disconnect(self) -> None:
        """Close all connections in the pool."""
        if self._pool:
            self._pool.closeall()
            logger.info(f"Disconnected from PostgreSQL: {self.name}")
            self._pool = None
            self.connection = None
            self._connected = False

    def _get_connection(self):
        """Get a connection from the pool."""
        if not self._pool:
            raise CrawlError(f"Not connected to {self.name}")
        return self._pool.getconn()

    def _return_connection(self, conn):
        """Return a connection to the pool."""
        if self._pool:
            self._pool.putconn(conn)

    def _rows(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(sql, tuple(params))
                return [dict(row) for row in cursor.fetchall()]
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Metadata query failed on {self.name}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def _scope(
        self, schema: Optional[str], table: Optional[str], schema_col: str, table_col: str
    ) -> Tuple[str, List[Any]]:
        clauses = []
        params: List[Any] = []
        if schema is not None:
            clauses.append(f"{schema_col} = %s")
            params.append(schema)
        if table is not None:
            clauses.append(f"{table_col} = %s")
            params.append(table)
        return "".join(f" AND {clause}" for clause in clauses), params

    def get_database_info(self) -> DatabaseInfo:
        row = self._rows("SELECT current_setting('server_version') AS version")[0]
        quote_string, casing = identifier_conventions("PostgreSQL")
        # A connection only sees its own database, so names are schema.object
        return DatabaseInfo(
            product_name="PostgreSQL",
            product_version=row["version"],
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
            WHERE {_user_schema("schema_name")}
            ORDER BY schema_name
            """
        )
        return [SchemaMetadata(row["catalog_name"], row["schema_name"]) for row in rows]

    def fetch_tables(self, schema: Optional[str] = None) -> List[TableMetadata]:
        scope, params = self._scope(schema, None, "t.table_schema", "t.table_name")
        rows = self._rows(
            f"""
            SELECT t.table_catalog, t.table_schema, t.table_name, t.table_type,
                   obj_description((quote_ident(t.table_schema) || '.' || quote_ident(t.table_name))::regclass,
                                   'pg_class') AS remarks
            FROM information_schema.tables t
            WHERE {_user_schema("t.table_schema")}{scope}
            ORDER BY t.table_schema, t.table_name
            """,
            params,
        )
        return [
            TableMetadata(
                catalog_name=row["table_catalog"],
                schema_name=row["table_schema"],
                table_name=row["table_name"],
                table_type=row["table_type"],
                remarks=row["remarks"],
            )
            for row in rows
        ]

    def fetch_columns(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[ColumnMetadata]:
        scope, params = self._scope(schema, table, "c.table_schema", "c.table_name")
        rows = self._rows(
            f"""
            SELECT c.table_catalog, c.table_schema, c.table_name, c.column_name, c.ordinal_position,
                   CASE WHEN c.data_type = 'USER-DEFINED' THEN c.udt_name ELSE c.data_type END AS data_type,
                   c.is_nullable, c.column_default,
                   col_description((quote_ident(c.table_schema) || '.' || quote_ident(c.table_name))::regclass,
                                   c.ordinal_position::int) AS remarks
            FROM information_schema.columns c
            WHERE {_user_schema("c.table_schema")}{scope}
            ORDER BY c.table_schema, c.table_name, c.ordinal_position
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
                remarks=row["remarks"],
            )
            for row in rows
        ]

    def fetch_primary_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[PrimaryKeyColumnMetadata]:
        scope, params = self._scope(schema, table, "tc.table_schema", "tc.table_name")
        rows = self._rows(
            f"""
            SELECT tc.table_catalog, tc.table_schema, tc.table_name, kcu.column_name,
                   kcu.ordinal_position AS key_sequence, tc.constraint_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_schema = tc.constraint_schema
             AND kcu.constraint_name = tc.constraint_name
             AND kcu.table_name = tc.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
              AND {_user_schema("tc.table_schema")}{scope}
            ORDER BY tc.table_schema, tc.table_name, kcu.ordinal_position
            """,
            params,
        )
        return [
            PrimaryKeyColumnMetadata(
                catalog_name=row["table_catalog"],
                schema_name=row["table_schema"],
                table_name=row["table_name"],
                column_name=row["column_name"],
                key_sequence=int(row["key_sequence"]),
                pk_name=row["constraint_name"],
            )
            for row in rows
        ]

    def fetch_indexes(self, schema: Optional[str] = None, table: Optional[str] = None) -> List[IndexColumnMetadata]:
        scope, params = self._scope(schema, table, "n.nspname", "t.relname")
        rows = self._rows(
            f"""
            SELECT current_database() AS catalog_name, n.nspname AS schema_name, t.relname AS table_name,
                   i.relname AS index_name, a.attname AS column_name, k.ord AS ordinal_position,
                   ix.indisunique AS is_unique
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            CROSS JOIN LATERAL unnest(ix.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
            WHERE {_user_schema("n.nspname")}{scope}
            ORDER BY n.nspname, t.relname, i.relname, k.ord
            """,
            params,
        )
        return [
            IndexColumnMetadata(
                catalog_name=row["catalog_name"],
                schema_name=row["schema_name"],
                table_name=row["table_name"],
                index_name=row["index_name"],
                column_name=row["column_name"],
                ordinal_position=int(row["ordinal_position"]),
                unique=bool(row["is_unique"]),
            )
            for row in rows
        ]

    def fetch_foreign_keys(
        self, schema: Optional[str] = None, table: Optional[str] = None
    ) -> List[ForeignKeyColumnMetadata]:
        scope, params = self._scope(schema, table, "fn.nspname", "fc.relname")
        rows = self._rows(
            f"""
            SELECT con.conname AS fk_name, k.ord AS key_sequence,
                   current_database() AS catalog_name,
                   pn.nspname AS pk_schema, pc.relname AS pk_table, pa.attname AS pk_column,
                   fn.nspname AS fk_schema, fc.relname AS fk_table, fa.attname AS fk_column,
                   con.confupdtype AS update_rule, con.confdeltype AS delete_rule
            FROM pg_constraint con
            JOIN pg_class fc ON fc.oid = con.conrelid
            JOIN pg_namespace fn ON fn.oid = fc.relnamespace
            JOIN pg_class pc ON pc.oid = con.confrelid
            JOIN pg_namespace pn ON pn.oid = pc.relnamespace
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(fk_attnum, pk_attnum, ord)
            JOIN pg_attribute fa ON fa.attrelid = con.conrelid AND fa.attnum = k.fk_attnum
            JOIN pg_attribute pa ON pa.attrelid = con.confrelid AND pa.attnum = k.pk_attnum
            WHERE con.contype = 'f'
              AND {_user_schema("fn.nspname")}{scope}
            ORDER BY fn.nspname, fc.relname, con.conname, k.ord
            """,
            params,
        )
        return [
            ForeignKeyColumnMetadata(
                fk_name=row["fk_name"],
                key_sequence=int(row["key_sequence"]),
                pk_catalog_name=row["catalog_name"],
                pk_schema_name=row["pk_schema"],
                pk_table_name=row["pk_table"],
                pk_column_name=row["pk_column"],
                fk_catalog_name=row["catalog_name"],
                fk_schema_name=row["fk_schema"],
                fk_table_name=row["fk_table"],
                fk_column_name=row["fk_column"],
                update_rule=_RULES.get(row["update_rule"]),
                delete_rule=_RULES.get(row["delete_rule"]),
            )
            for row in rows
        ]

    def fetch_routines(self, routine_type: RoutineType, schema: Optional[str] = None) -> List[RoutineMetadata]:
        scope, params = self._scope(schema, None, "routine_schema", "routine_name")
        rows = self._rows(
            f"""
            SELECT routine_catalog, routine_schema, routine_name, specific_name, data_type
            FROM information_schema.routines
            WHERE routine_type = %s
              AND {_user_schema("routine_schema")}{scope}
            ORDER BY routine_schema, routine_name, specific_name
            """,
            [routine_type.value.upper()] + params,
        )
        return [
            RoutineMetadata(
                catalog_name=row["routine_catalog"],
                schema_name=row["routine_schema"],
                routine_name=row["routine_name"],
                routine_type=routine_type.value,
                specific_name=row["specific_name"],
                return_type=row["data_type"],
            )
            for row in rows
        ]

    def fetch_sequences(self, schema: Optional[str] = None) -> List[SequenceMetadata]:
        scope, params = self._scope(schema, None, "sequence_schema", "sequence_name")
        rows = self._rows(
            f"""
            SELECT sequence_catalog, sequence_schema, sequence_name, start_value, increment,
                   minimum_value, maximum_value, cycle_option
            FROM information_schema.sequences
            WHERE {_user_schema("sequence_schema")}{scope}
            ORDER BY sequence_schema, sequence_name
            """,
            params,
        )
        return [
            SequenceMetadata(
                catalog_name=row["sequence_catalog"],
                schema_name=row["sequence_schema"],
                sequence_name=row["sequence_name"],
                start_value=as_int(row["start_value"]),
                increment=as_int(row["increment"]),
                minimum_value=as_int(row["minimum_value"]),
                maximum_value=as_int(row["maximum_value"]),
                cycle=as_bool(row["cycle_option"]),
            )
            for row in rows
        ]

    def execute_query(self, query: str) -> Iterator[pa.RecordBatch]:
        """Execute query and yield Arrow record batches."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cursor:
                logger.debug(f"Executing query on {self.name}: {query[:100]}...")
                cursor.execute(query)

                columns = self._extract_column_names(cursor.description)

                batch_size = 10000
                while True:
                    rows = cursor.fetchmany(batch_size)
                    if not rows:
                        break

                    data = self._build_column_data(columns, rows)
                    yield pa.RecordBatch.from_pydict(data)
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Query execution failed on {self.name}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def _extract_column_names(self, description) -> List[str]:
        """Extract column names from cursor description."""
        return [desc[0] for desc in description]

    def _build_column_data(self, columns: List[str], rows: List) -> Dict[str, List]:
        """Build column data dictionary from rows."""
        data = {col: [] for col in columns}
        for row in rows:
            for i, col in enumerate(columns):
                data[col].append(row[i])
        return data
