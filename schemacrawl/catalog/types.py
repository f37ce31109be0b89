"""Type classification and small enums shared by catalog objects."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional


class TypeGroup(Enum):
    """Coarse classification of column data types."""

    CHARACTER = "character"
    INTEGER = "integer"
    REAL = "real"
    BOOLEAN = "boolean"
    TEMPORAL = "temporal"
    BINARY = "binary"
    LARGE_OBJECT = "large_object"
    OBJECT = "object"
    UNKNOWN = "unknown"

    @property
    def is_large_or_opaque(self) -> bool:
        """True for types that should not be selected or compared in bulk."""
        return self in (TypeGroup.LARGE_OBJECT, TypeGroup.OBJECT)


class TableType(Enum):
    """Kind of table-like object."""

    TABLE = "TABLE"
    VIEW = "VIEW"
    SYSTEM_TABLE = "SYSTEM TABLE"
    GLOBAL_TEMPORARY = "GLOBAL TEMPORARY"
    LOCAL_TEMPORARY = "LOCAL TEMPORARY"
    ALIAS = "ALIAS"
    SYNONYM = "SYNONYM"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "TableType":
        """Map a driver-reported table type name onto a TableType."""
        if not name:
            return cls.UNKNOWN
        normalized = name.strip().upper()
        if normalized == "BASE TABLE":
            return cls.TABLE
        for table_type in cls:
            if table_type.value == normalized:
                return table_type
        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class RoutineType(Enum):
    """Kind of routine."""

    PROCEDURE = "procedure"
    FUNCTION = "function"


class IdentifierCasing(Enum):
    """How the database stores unquoted identifiers."""

    UPPER = "upper"
    LOWER = "lower"
    MIXED = "mixed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ColumnDataType:
    """Database type of a column with its type group."""

    name: str
    type_group: TypeGroup = TypeGroup.UNKNOWN

    @property
    def is_large_or_opaque(self) -> bool:
        return self.type_group.is_large_or_opaque


_LARGE_OBJECT_MARKERS = ("BLOB", "CLOB", "NCLOB", "LONG RAW", "LONG VARCHAR", "IMAGE", "LONGBLOB", "LONGTEXT")
_OBJECT_MARKERS = ("STRUCT", "MAP", "UNION", "JSON", "XML", "OBJECT", "ROW", "VARIANT", "GEOMETRY", "GEOGRAPHY")
_GEOMETRIC_TYPES = ("POINT", "LINE", "LSEG", "BOX", "PATH", "POLYGON", "CIRCLE", "LINESTRING", "MULTIPOINT")
_INTEGER_TYPE = re.compile(r"U?(TINY|SMALL|MEDIUM|BIG|HUGE)?INT(EGER)?(2|4|8|16|32|64|128)?|(SMALL|BIG)?SERIAL[248]?")


def classify_type(type_name: str, type_map: Optional[Mapping[str, str]] = None) -> TypeGroup:
    """Map a database type name to a TypeGroup.

    Args:
        type_name: Type name as reported by the database
        type_map: Optional overrides of type name to type group value

    Returns:
        The type group for the name
    """
    if not type_name:
        return TypeGroup.UNKNOWN

    normalized = type_name.strip().upper()
    if type_map:
        for key, group in type_map.items():
            if key.upper() == normalized:
                return TypeGroup(group)

    # Arrays and lists are opaque regardless of their element type
    if normalized.endswith("]") or normalized.startswith(("LIST", "ARRAY")):
        return TypeGroup.OBJECT

    base = normalized.split("(")[0].strip()

    if base in _LARGE_OBJECT_MARKERS:
        return TypeGroup.LARGE_OBJECT
    for marker in _OBJECT_MARKERS:
        if base.startswith(marker):
            return TypeGroup.OBJECT
    if base in _GEOMETRIC_TYPES:
        return TypeGroup.OBJECT

    if "BOOL" in base or base == "BIT":
        return TypeGroup.BOOLEAN
    if base.startswith("INTERVAL"):
        return TypeGroup.TEMPORAL
    if _INTEGER_TYPE.fullmatch(base.partition(" ")[0]):
        return TypeGroup.INTEGER
    if (
        "FLOAT" in base
        or "REAL" in base
        or "DOUBLE" in base
        or "NUMERIC" in base
        or "DECIMAL" in base
        or base == "NUMBER"
    ):
        return TypeGroup.REAL
    if "CHAR" in base or "TEXT" in base or "STRING" in base or base == "UUID":
        return TypeGroup.CHARACTER
    if "DATE" in base or "TIME" in base or "INTERVAL" in base:
        return TypeGroup.TEMPORAL
    if "BINARY" in base or base in ("BYTEA", "RAW", "BIT VARYING"):
        return TypeGroup.BINARY

    return TypeGroup.UNKNOWN
