"""Catalog holding the metadata of one crawl."""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from .schema import (
    CrawlInfo,
    DatabaseInfo,
    ForeignKey,
    ForeignKeyColumnReference,
    Routine,
    Schema,
    Sequence,
    Synonym,
    Table,
)

FORMAT_VERSION = 1


class Catalog:
    """Root of the schema, table and routine graph built by a crawl."""

    def __init__(
        self,
        name: Optional[str] = None,
        database_info: Optional[DatabaseInfo] = None,
        crawl_info: Optional[CrawlInfo] = None,
    ):
        """Initialize catalog.

        Args:
            name: Optional catalog name, usually the database name
            database_info: Product information and probed capabilities
            crawl_info: Tool and runtime information of the crawl
        """
        self.name = name
        self.database_info = database_info or DatabaseInfo()
        self.crawl_info = crawl_info
        self.schemas: Dict[Tuple[Optional[str], str], Schema] = {}  # (catalog_name, schema_name) -> Schema

    def add_schema(self, schema: Schema) -> Schema:
        self.schemas[schema.key] = schema
        return schema

    def get_schema(self, schema_name: str, catalog_name: Optional[str] = None) -> Optional[Schema]:
        """Get schema by name.

        Args:
            schema_name: Schema name
            catalog_name: Catalog name, matched exactly when given

        Returns:
            Schema if found, None otherwise
        """
        schema = self.schemas.get((catalog_name, schema_name))
        if schema is not None or catalog_name is not None:
            return schema
        for schema in self.schemas.values():
            if schema.name == schema_name:
                return schema
        return None

    def lookup_table(
        self, catalog_name: Optional[str], schema_name: Optional[str], table_name: str
    ) -> Optional[Table]:
        """Get table by its catalog, schema and table name.

        Args:
            catalog_name: Catalog name
            schema_name: Schema name
            table_name: Table name

        Returns:
            Table if found, None otherwise
        """
        schema = self.schemas.get((catalog_name, schema_name or ""))
        if schema is None:
            return None
        return schema.get_table(table_name)

    def resolve_table(self, table_ref: str) -> Optional[Table]:
        """Resolve a dotted table reference.

        Supports formats:
        - catalog.schema.table
        - schema.table (searches all catalogs)
        - table (searches all schemas)

        Args:
            table_ref: Table reference string

        Returns:
            Table if found, None otherwise
        """
        parts = table_ref.split(".")

        if len(parts) == 3:
            return self.lookup_table(*parts)

        if len(parts) == 2:
            schema_name, table_name = parts
            for schema in self.schemas.values():
                if schema.name.lower() == schema_name.lower():
                    table = schema.get_table(table_name)
                    if table:
                        return table

        elif len(parts) == 1:
            for schema in self.schemas.values():
                table = schema.get_table(parts[0])
                if table:
                    return table

        return None

    @property
    def tables(self) -> List[Table]:
        return [table for schema in self.schemas.values() for table in schema.tables.values()]

    @property
    def routines(self) -> List[Routine]:
        return [routine for schema in self.schemas.values() for routine in schema.routines.values()]

    @property
    def sequences(self) -> List[Sequence]:
        return [sequence for schema in self.schemas.values() for sequence in schema.sequences.values()]

    @property
    def synonyms(self) -> List[Synonym]:
        return [synonym for schema in self.schemas.values() for synonym in schema.synonyms.values()]

    @property
    def foreign_keys(self) -> List[ForeignKey]:
        return [fk for table in self.tables for fk in table.foreign_keys]

    def contains_table(self, table: Table) -> bool:
        schema = table.schema
        return (
            schema is not None
            and self.schemas.get(schema.key) is schema
            and schema.tables.get(table.name) is table
        )

    def dangling_foreign_keys(self) -> List[ForeignKey]:
        """Foreign keys with an endpoint table that is not in this catalog."""
        return [
            fk
            for fk in self.foreign_keys
            if not (self.contains_table(fk.foreign_table) and self.contains_table(fk.primary_table))
        ]

    def remove_tables(self, tables: Iterable[Table]) -> int:
        """Remove tables and every foreign key that references any of them.

        The primary key and indexes of a table go with the table.

        Returns:
            Number of tables removed
        """
        removed = set()
        for table in tables:
            schema = table.schema
            if schema is not None and schema.tables.get(table.name) is table:
                del schema.tables[table.name]
                removed.add(table)
        if not removed:
            return 0

        for table in self.tables:
            table.foreign_keys = [
                fk
                for fk in table.foreign_keys
                if fk.foreign_table not in removed and fk.primary_table not in removed
            ]
        return len(removed)

    def remove_table(self, table: Table) -> bool:
        return self.remove_tables([table]) == 1

    def remove_schema(self, schema: Schema) -> bool:
        """Remove a schema with everything it owns."""
        if self.schemas.get(schema.key) is not schema:
            return False
        self.remove_tables(list(schema.tables.values()))
        schema.routines.clear()
        schema.sequences.clear()
        schema.synonyms.clear()
        del self.schemas[schema.key]
        return True

    def remove_routine(self, routine: Routine) -> bool:
        schema = routine.schema
        if schema is None or schema.routines.get(routine.lookup_key) is not routine:
            return False
        del schema.routines[routine.lookup_key]
        return True

    def remove_sequence(self, sequence: Sequence) -> bool:
        schema = sequence.schema
        if schema is None or schema.sequences.get(sequence.name) is not sequence:
            return False
        del schema.sequences[sequence.name]
        return True

    def remove_synonym(self, synonym: Synonym) -> bool:
        schema = synonym.schema
        if schema is None or schema.synonyms.get(synonym.name) is not synonym:
            return False
        del schema.synonyms[synonym.name]
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert the whole catalog graph to plain data.

        Foreign keys refer to their primary table by (catalog, schema, table).
        """
        return {
            "format_version": FORMAT_VERSION,
            "name": self.name,
            "database_info": self.database_info.to_dict(),
            "crawl_info": self.crawl_info.to_dict() if self.crawl_info else None,
            "schemas": [
                {
                    "catalog_name": schema.catalog_name,
                    "name": schema.name,
                    "tables": [table.to_dict() for table in schema.tables.values()],
                    "routines": [routine.to_dict() for routine in schema.routines.values()],
                    "sequences": [sequence.to_dict() for sequence in schema.sequences.values()],
                    "synonyms": [synonym.to_dict() for synonym in schema.synonyms.values()],
                }
                for schema in self.schemas.values()
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Catalog":
        """Rebuild a catalog from the output of to_dict.

        Raises:
            ValueError: If the data has an unsupported format version or a
                foreign key refers to a table or column that is not present
        """
        version = data.get("format_version")
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported catalog format version: {version}")

        crawl_info = data.get("crawl_info")
        catalog = cls(
            name=data.get("name"),
            database_info=DatabaseInfo.from_dict(data["database_info"]),
            crawl_info=CrawlInfo.from_dict(crawl_info) if crawl_info else None,
        )

        # First pass creates every table so foreign keys can refer across schemas
        pending = []
        for schema_data in data["schemas"]:
            schema = catalog.add_schema(
                Schema(name=schema_data["name"], catalog_name=schema_data.get("catalog_name"))
            )
            for table_data in schema_data["tables"]:
                table = schema.add_table(Table.from_dict(table_data))
                pending.append((table, table_data.get("foreign_keys", [])))
            for routine_data in schema_data.get("routines", []):
                schema.add_routine(Routine.from_dict(routine_data))
            for sequence_data in schema_data.get("sequences", []):
                schema.add_sequence(Sequence.from_dict(sequence_data))
            for synonym_data in schema_data.get("synonyms", []):
                schema.add_synonym(Synonym.from_dict(synonym_data))

        for table, fk_list in pending:
            for fk_data in fk_list:
                table.foreign_keys.append(catalog._foreign_key_from_dict(table, fk_data))

        return catalog

    def _foreign_key_from_dict(self, table: Table, data: Dict[str, Any]) -> ForeignKey:
        primary_table = self.lookup_table(*data["primary_table"])
        if primary_table is None:
            raise ValueError(f"Foreign key {data['name']} refers to missing table {data['primary_table']}")

        references = []
        for ref in data["column_references"]:
            fk_column = table.get_column(ref["foreign_key_column"])
            pk_column = primary_table.get_column(ref["primary_key_column"])
            if fk_column is None or pk_column is None:
                raise ValueError(f"Foreign key {data['name']} refers to a missing column")
            references.append(ForeignKeyColumnReference(fk_column, pk_column))
        if not references:
            raise ValueError(f"Foreign key {data['name']} has no columns")

        return ForeignKey(
            name=data["name"],
            column_references=references,
            update_rule=data.get("update_rule"),
            delete_rule=data.get("delete_rule"),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Catalog):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def __repr__(self) -> str:
        return f"Catalog(name={self.name}, schemas={len(self.schemas)}, tables={len(self.tables)})"
