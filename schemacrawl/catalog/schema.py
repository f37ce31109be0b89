"""Schema metadata classes."""

import platform
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .types import ColumnDataType, IdentifierCasing, RoutineType, TableType, TypeGroup


def _join_name(*parts: Optional[str]) -> str:
    return ".".join(part for part in parts if part)


@dataclass
class DatabaseInfo:
    """Database product information and probed capabilities."""

    product_name: str = ""
    product_version: str = ""
    identifier_quote_string: Optional[str] = None
    identifier_casing: IdentifierCasing = IdentifierCasing.UNKNOWN
    supports_schemas: bool = True
    supports_catalogs: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_name": self.product_name,
            "product_version": self.product_version,
            "identifier_quote_string": self.identifier_quote_string,
            "identifier_casing": self.identifier_casing.value,
            "supports_schemas": self.supports_schemas,
            "supports_catalogs": self.supports_catalogs,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseInfo":
        return cls(
            product_name=data.get("product_name", ""),
            product_version=data.get("product_version", ""),
            identifier_quote_string=data.get("identifier_quote_string"),
            identifier_casing=IdentifierCasing(data.get("identifier_casing", "unknown")),
            supports_schemas=data.get("supports_schemas", True),
            supports_catalogs=data.get("supports_catalogs", True),
        )


@dataclass
class CrawlInfo:
    """Information about the tool and runtime that produced a catalog."""

    tool_name: str
    tool_version: str
    runtime: str
    platform: str
    crawl_timestamp: str

    @property
    def about(self) -> str:
        return f"{self.tool_name} {self.tool_version} on Python {self.runtime} ({self.platform})"

    @classmethod
    def current(cls) -> "CrawlInfo":
        """Describe the running tool, interpreter and operating system."""
        from .. import __version__

        return cls(
            tool_name="schemacrawl",
            tool_version=__version__,
            runtime=f"{sys.implementation.name} {platform.python_version()}",
            platform=platform.platform(),
            crawl_timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool_name": self.tool_name,
            "tool_version": self.tool_version,
            "runtime": self.runtime,
            "platform": self.platform,
            "crawl_timestamp": self.crawl_timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrawlInfo":
        return cls(
            tool_name=data["tool_name"],
            tool_version=data["tool_version"],
            runtime=data["runtime"],
            platform=data["platform"],
            crawl_timestamp=data["crawl_timestamp"],
        )


@dataclass(eq=False)
class Column:
    """Column metadata."""

    name: str
    data_type: ColumnDataType
    ordinal_position: int = 0
    nullable: bool = True
    default_value: Optional[str] = None
    remarks: Optional[str] = None
    table: Optional["Table"] = field(default=None, repr=False)

    @property
    def full_name(self) -> str:
        """Get fully qualified column name."""
        if self.table:
            return f"{self.table.full_name}.{self.name}"
        return self.name

    @property
    def part_of_primary_key(self) -> bool:
        if self.table is None or self.table.primary_key is None:
            return False
        return self.name in self.table.primary_key.column_names

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ordinal_position": self.ordinal_position,
            "data_type": self.data_type.name,
            "type_group": self.data_type.type_group.value,
            "nullable": self.nullable,
            "default_value": self.default_value,
            "remarks": self.remarks,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(
            name=data["name"],
            data_type=ColumnDataType(data["data_type"], TypeGroup(data["type_group"])),
            ordinal_position=data["ordinal_position"],
            nullable=data["nullable"],
            default_value=data.get("default_value"),
            remarks=data.get("remarks"),
        )

    def __repr__(self) -> str:
        return f"Column({self.name}, {self.data_type.name})"


@dataclass
class PrimaryKey:
    """Primary key of a table."""

    name: Optional[str]
    column_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "column_names": list(self.column_names)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrimaryKey":
        return cls(name=data.get("name"), column_names=list(data["column_names"]))


@dataclass
class Index:
    """Index on a table."""

    name: str
    unique: bool = False
    column_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "unique": self.unique, "column_names": list(self.column_names)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Index":
        return cls(name=data["name"], unique=data["unique"], column_names=list(data["column_names"]))


@dataclass(eq=False)
class ForeignKeyColumnReference:
    """One column pair of a foreign key."""

    foreign_key_column: Column
    primary_key_column: Column

    def __repr__(self) -> str:
        return f"{self.foreign_key_column.full_name} -> {self.primary_key_column.full_name}"


@dataclass(eq=False)
class ForeignKey:
    """Foreign key from the foreign (referencing) table to the primary table."""

    name: str
    column_references: List[ForeignKeyColumnReference] = field(default_factory=list)
    update_rule: Optional[str] = None
    delete_rule: Optional[str] = None

    @property
    def foreign_table(self) -> "Table":
        return self.column_references[0].foreign_key_column.table

    @property
    def primary_table(self) -> "Table":
        return self.column_references[0].primary_key_column.table

    def references_table(self, table: "Table") -> bool:
        """True if the table is either endpoint of this key."""
        return self.foreign_table is table or self.primary_table is table

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "update_rule": self.update_rule,
            "delete_rule": self.delete_rule,
            "primary_table": list(self.primary_table.key),
            "column_references": [
                {
                    "foreign_key_column": ref.foreign_key_column.name,
                    "primary_key_column": ref.primary_key_column.name,
                }
                for ref in self.column_references
            ],
        }

    def __repr__(self) -> str:
        return f"ForeignKey({self.name}, {self.column_references})"


@dataclass(eq=False)
class Table:
    """Table metadata."""

    name: str
    schema: Optional["Schema"] = field(default=None, repr=False)
    table_type: TableType = TableType.TABLE
    remarks: Optional[str] = None
    row_count: Optional[int] = None
    columns: List[Column] = field(default_factory=list)
    primary_key: Optional[PrimaryKey] = None
    indexes: List[Index] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)

    def __post_init__(self):
        for col in self.columns:
            col.table = self

    @property
    def full_name(self) -> str:
        """Get fully qualified table name."""
        if self.schema:
            return _join_name(self.schema.full_name, self.name)
        return self.name

    @property
    def key(self) -> Tuple[Optional[str], Optional[str], str]:
        if self.schema:
            return (self.schema.catalog_name, self.schema.name, self.name)
        return (None, None, self.name)

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    def add_column(self, column: Column) -> Column:
        column.table = self
        self.columns.append(column)
        return column

    def get_column(self, name: str) -> Optional[Column]:
        """Get column by name, preferring an exact match."""
        for col in self.columns:
            if col.name == name:
                return col
        for col in self.columns:
            if col.name.lower() == name.lower():
                return col
        return None

    def get_index(self, name: str) -> Optional[Index]:
        for index in self.indexes:
            if index.name == name:
                return index
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "table_type": self.table_type.value,
            "remarks": self.remarks,
            "row_count": self.row_count,
            "columns": [col.to_dict() for col in self.columns],
            "primary_key": self.primary_key.to_dict() if self.primary_key else None,
            "indexes": [index.to_dict() for index in self.indexes],
            "foreign_keys": [fk.to_dict() for fk in self.foreign_keys],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        """Create a table without its foreign keys, which need the whole catalog."""
        primary_key = data.get("primary_key")
        return cls(
            name=data["name"],
            table_type=TableType(data["table_type"]),
            remarks=data.get("remarks"),
            row_count=data.get("row_count"),
            columns=[Column.from_dict(col) for col in data["columns"]],
            primary_key=PrimaryKey.from_dict(primary_key) if primary_key else None,
            indexes=[Index.from_dict(index) for index in data.get("indexes", [])],
        )

    def __repr__(self) -> str:
        return f"Table({self.full_name}, cols={len(self.columns)})"


@dataclass(eq=False)
class Routine:
    """Stored procedure or function."""

    name: str
    routine_type: RoutineType
    schema: Optional["Schema"] = field(default=None, repr=False)
    specific_name: Optional[str] = None
    return_type: Optional[str] = None
    remarks: Optional[str] = None

    @property
    def full_name(self) -> str:
        if self.schema:
            return _join_name(self.schema.full_name, self.name)
        return self.name

    @property
    def lookup_key(self) -> str:
        return self.specific_name or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "routine_type": self.routine_type.value,
            "specific_name": self.specific_name,
            "return_type": self.return_type,
            "remarks": self.remarks,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Routine":
        return cls(
            name=data["name"],
            routine_type=RoutineType(data["routine_type"]),
            specific_name=data.get("specific_name"),
            return_type=data.get("return_type"),
            remarks=data.get("remarks"),
        )


@dataclass(eq=False)
class Sequence:
    """Sequence generator."""

    name: str
    schema: Optional["Schema"] = field(default=None, repr=False)
    start_value: Optional[int] = None
    increment: Optional[int] = None
    minimum_value: Optional[int] = None
    maximum_value: Optional[int] = None
    cycle: bool = False

    @property
    def full_name(self) -> str:
        if self.schema:
            return _join_name(self.schema.full_name, self.name)
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "start_value": self.start_value,
            "increment": self.increment,
            "minimum_value": self.minimum_value,
            "maximum_value": self.maximum_value,
            "cycle": self.cycle,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sequence":
        return cls(
            name=data["name"],
            start_value=data.get("start_value"),
            increment=data.get("increment"),
            minimum_value=data.get("minimum_value"),
            maximum_value=data.get("maximum_value"),
            cycle=data.get("cycle", False),
        )


@dataclass(eq=False)
class Synonym:
    """Alternative name for another database object."""

    name: str
    schema: Optional["Schema"] = field(default=None, repr=False)
    referenced_object: Optional[str] = None

    @property
    def full_name(self) -> str:
        if self.schema:
            return _join_name(self.schema.full_name, self.name)
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "referenced_object": self.referenced_object}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Synonym":
        return cls(name=data["name"], referenced_object=data.get("referenced_object"))


@dataclass(eq=False)
class Schema:
    """Schema metadata."""

    name: str
    catalog_name: Optional[str] = None
    tables: Dict[str, Table] = field(default_factory=dict, repr=False)
    routines: Dict[str, Routine] = field(default_factory=dict, repr=False)
    sequences: Dict[str, Sequence] = field(default_factory=dict, repr=False)
    synonyms: Dict[str, Synonym] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        # Set back-reference to schema
        for table in self.tables.values():
            table.schema = self

    @property
    def key(self) -> Tuple[Optional[str], str]:
        return (self.catalog_name, self.name)

    @property
    def full_name(self) -> str:
        return _join_name(self.catalog_name, self.name)

    def get_table(self, name: str) -> Optional[Table]:
        """Get table by name."""
        return self.tables.get(name)

    def add_table(self, table: Table) -> Table:
        """Add a table to this schema."""
        table.schema = self
        self.tables[table.name] = table
        return table

    def add_routine(self, routine: Routine) -> Routine:
        routine.schema = self
        self.routines[routine.lookup_key] = routine
        return routine

    def add_sequence(self, sequence: Sequence) -> Sequence:
        sequence.schema = self
        self.sequences[sequence.name] = sequence
        return sequence

    def add_synonym(self, synonym: Synonym) -> Synonym:
        synonym.schema = self
        self.synonyms[synonym.name] = synonym
        return synonym

    def __repr__(self) -> str:
        return f"Schema({self.full_name}, tables={len(self.tables)})"
