"""Identifier quoting for generated SQL."""

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from sqlglot.dialects.dialect import Dialect

from ..catalog.types import IdentifierCasing

logger = logging.getLogger(__name__)

_SIMPLE_IDENTIFIER = re.compile(r"[A-Za-z0-9_]+")

# Product names reported by drivers that differ from sqlglot dialect names
_DIALECT_ALIASES = {
    "postgresql": "postgres",
    "microsoft sql server": "tsql",
    "sql server": "tsql",
    "sqlserver": "tsql",
    "apache hive": "hive",
    "spark sql": "spark",
}


@dataclass(frozen=True)
class Identifiers:
    """Quotes names that would not survive as bare SQL identifiers.

    A name is quoted when it contains characters outside ``[A-Za-z0-9_]``,
    starts with a digit, or does not match the casing the database uses for
    unquoted identifiers. Quoting is idempotent: a well-formed quoted name
    is returned as is.
    """

    quote_string: Optional[str] = '"'
    casing: IdentifierCasing = IdentifierCasing.UNKNOWN

    def is_quoted(self, name: str) -> bool:
        """Whether a name is already a well-formed delimited identifier.

        The text between the quotes must be non-empty and may contain the
        quote string only doubled.
        """
        q = self.quote_string
        if not q or len(name) <= 2 * len(q) or not (name.startswith(q) and name.endswith(q)):
            return False
        interior = name[len(q) : -len(q)]
        return q not in interior.replace(q + q, "")

    def needs_quotes(self, name: str) -> bool:
        if not name:
            return False
        if not _SIMPLE_IDENTIFIER.fullmatch(name) or name[0].isdigit():
            return True
        if self.casing is IdentifierCasing.UPPER:
            return name != name.upper()
        if self.casing is IdentifierCasing.LOWER:
            return name != name.lower()
        return False

    def quote_name(self, name: str) -> str:
        """Quote a single name if needed."""
        if not self.quote_string or self.is_quoted(name) or not self.needs_quotes(name):
            return name
        q = self.quote_string
        return f"{q}{name.replace(q, q + q)}{q}"

    def quote_full_name(self, named_object: Any) -> str:
        """Quote every part of an object's qualified name and join them with dots."""
        return ".".join(self.quote_name(part) for part in name_parts(named_object))


def name_parts(named_object: Any) -> List[str]:
    """Non-empty catalog, schema and object name parts of a catalog object."""
    if hasattr(named_object, "table") and getattr(named_object, "table", None) is not None:
        return name_parts(named_object.table) + [named_object.name]
    if hasattr(named_object, "catalog_name"):
        parts = [named_object.catalog_name, named_object.name]
    else:
        schema = getattr(named_object, "schema", None)
        parts = [schema.catalog_name, schema.name] if schema else []
        parts.append(named_object.name)
    return [part for part in parts if part]


def identifier_conventions(product_name: Optional[str]) -> Tuple[str, IdentifierCasing]:
    """Default quote string and identifier casing for a database product.

    Args:
        product_name: Product name as reported by the database

    Returns:
        Tuple of (quote string, casing); ``('"', UNKNOWN)`` for unknown products
    """
    if not product_name:
        return '"', IdentifierCasing.UNKNOWN

    key = product_name.strip().lower()
    dialect_name = _DIALECT_ALIASES.get(key, key.split()[0])
    try:
        dialect = Dialect.get_or_raise(dialect_name)
    except ValueError:
        logger.debug(f"No SQL dialect known for {product_name}")
        return '"', IdentifierCasing.UNKNOWN

    quote_string = getattr(dialect, "IDENTIFIER_START", '"') or '"'
    # Bracket style quoting has different start and end characters
    if quote_string != getattr(dialect, "IDENTIFIER_END", quote_string):
        quote_string = '"'
    strategy = getattr(dialect, "NORMALIZATION_STRATEGY", None)
    strategy_name = getattr(strategy, "name", str(strategy or "")).upper()
    if strategy_name == "UPPERCASE":
        casing = IdentifierCasing.UPPER
    elif strategy_name == "LOWERCASE":
        casing = IdentifierCasing.LOWER
    elif strategy_name in ("CASE_SENSITIVE", "CASE_INSENSITIVE"):
        casing = IdentifierCasing.MIXED
    else:
        casing = IdentifierCasing.UNKNOWN
    return quote_string, casing
