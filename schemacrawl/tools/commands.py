"""Built-in commands."""

import logging
from typing import Dict, List, Optional, TextIO, Type

from ..catalog.catalog import Catalog
from ..catalog.schema import Table
from ..catalog.types import TableType
from ..crawl.templating import Query, execute_for_long, ordered_columns, table_query_sql
from ..datasources.base import DataSource
from ..errors import ConfigurationError
from ..offline.snapshot import catalog_to_json, write_snapshot
from .executable import BaseCommand
from .options import create_input_resource
from .resources import FileOutputResource

logger = logging.getLogger(__name__)


class SummaryCommand(BaseCommand):
    """Plain text listing of the catalog."""

    def __init__(self, command: str = "summary"):
        super().__init__(command)

    def execute_on(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        options = self.output_options
        with options.output_resource.open_writer(options.output_encoding) as writer:
            self._write_header(writer, catalog)
            for schema in catalog.schemas.values():
                writer.write(f"\nSchema {schema.full_name}\n")
                for table in schema.tables.values():
                    self._write_table(writer, table)
                for routine in schema.routines.values():
                    returns = f" returns {routine.return_type}" if routine.return_type else ""
                    writer.write(f"  {routine.routine_type.value} {routine.name}{returns}\n")
                for sequence in schema.sequences.values():
                    writer.write(f"  sequence {sequence.name}\n")
                for synonym in schema.synonyms.values():
                    writer.write(f"  synonym {synonym.name} for {synonym.referenced_object}\n")

    def _write_header(self, writer: TextIO, catalog: Catalog) -> None:
        info = catalog.database_info
        writer.write(f"Database: {info.product_name} {info.product_version}".rstrip() + "\n")
        if catalog.crawl_info is not None:
            writer.write(f"Crawled by {catalog.crawl_info.about} at {catalog.crawl_info.crawl_timestamp}\n")

    def _write_table(self, writer: TextIO, table: Table) -> None:
        row_count = f", {table.row_count} rows" if table.row_count is not None else ""
        writer.write(f"  {str(table.table_type).lower()} {table.name}{row_count}\n")
        for column in table.columns:
            marker = " [pk]" if column.part_of_primary_key else ""
            nullable = "" if column.nullable else " not null"
            writer.write(f"    {column.name} {column.data_type.name}{nullable}{marker}\n")
        for index in table.indexes:
            unique = "unique " if index.unique else ""
            writer.write(f"    {unique}index {index.name} ({', '.join(index.column_names)})\n")
        for fk in table.foreign_keys:
            columns = ", ".join(ref.foreign_key_column.name for ref in fk.column_references)
            writer.write(f"    foreign key {fk.name} ({columns}) references {fk.primary_table.full_name}\n")


class OperationCommand(BaseCommand):
    """Runs a table-scoped query template against every table.

    The template is read from the file or bundled resource named by the
    ``schemacrawl.<command>.query`` configuration key, defaulting to the
    bundled ``operations/<command>.sql``.
    """

    def query(self) -> Query:
        name = self.additional_configuration.get(f"schemacrawl.{self.command}.query", f"operations/{self.command}.sql")
        sql = create_input_resource(name).read_text(self.output_options.input_encoding).strip()
        if not sql:
            raise ConfigurationError(f"No query template for {self.command} in {name}")
        return Query(self.command, sql)

    def tables(self, catalog: Catalog) -> List[Table]:
        return [t for t in catalog.tables if t.table_type in (TableType.TABLE, TableType.VIEW)]


class CountCommand(OperationCommand):
    """Row count of every table."""

    def __init__(self, command: str = "count"):
        super().__init__(command)

    def execute_on(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        query = self.query()
        options = self.output_options
        with options.output_resource.open_writer(options.output_encoding) as writer:
            for table in self.tables(catalog):
                count = execute_for_long(query, connection, table, self.identifiers, self.engine, self.log)
                writer.write(f"{table.full_name}\t{count}\n")


class DumpCommand(OperationCommand):
    """Tab separated rows of every table, large objects left out."""

    def __init__(self, command: str = "dump"):
        super().__init__(command)

    def execute_on(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        query = self.query()
        identifiers = self.identifiers
        alphabetical = self.crawl_options.alphabetical_sort_for_table_columns
        options = self.output_options
        with options.output_resource.open_writer(options.output_encoding) as writer:
            for table in self.tables(catalog):
                columns = ordered_columns(table, alphabetical)
                if all(col.data_type.is_large_or_opaque for col in columns):
                    self.log.info(f"Not dumping {table.full_name}: no columns to select")
                    continue
                sql = table_query_sql(query, table, identifiers, self.engine, columns)
                self.log.debug(f"Executing {query.name}: \n{sql}")
                writer.write(f"\n{table.full_name}\n")
                header_written = False
                for batch in connection.execute_query(sql):
                    if not header_written:
                        writer.write("\t".join(batch.schema.names) + "\n")
                        header_written = True
                    for row in batch.to_pylist():
                        writer.write("\t".join("" if v is None else str(v) for v in row.values()) + "\n")


class SerializeCommand(BaseCommand):
    """Writes the catalog as a snapshot.

    A file output gets a snapshot archive; any other output gets the
    catalog's JSON text.
    """

    def __init__(self, command: str = "serialize"):
        super().__init__(command)

    def execute_on(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        options = self.output_options
        if isinstance(options.output_resource, FileOutputResource):
            write_snapshot(catalog, options.output_resource.path)
            return
        with options.output_resource.open_writer(options.output_encoding) as writer:
            writer.write(catalog_to_json(catalog))
            writer.write("\n")


COMMANDS: Dict[str, Type[BaseCommand]] = {
    "summary": SummaryCommand,
    "count": CountCommand,
    "dump": DumpCommand,
    "serialize": SerializeCommand,
}


def new_command(name: str) -> BaseCommand:
    """Create a built-in command by name.

    Raises:
        ConfigurationError: If there is no command with that name
    """
    command_class = COMMANDS.get(name.strip().lower())
    if command_class is None:
        raise ConfigurationError(f"Unknown command: {name}. Available: {', '.join(sorted(COMMANDS))}")
    return command_class(name.strip().lower())
