"""Inclusion rules and crawl options."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from ..catalog.types import TableType
from ..errors import ConfigurationError


class RuleKind(Enum):
    """Kind of inclusion rule."""

    INCLUDE_ALL = "include_all"
    EXCLUDE_ALL = "exclude_all"
    REGULAR_EXPRESSION = "regular_expression"
    EXCLUSION = "exclusion"


def _compile(pattern: Optional[str]) -> Optional["re.Pattern[str]"]:
    if pattern is None or not pattern.strip():
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(f"Invalid inclusion pattern {pattern!r}: {e}") from e


@dataclass(frozen=True)
class InclusionRule:
    """Predicate over fully qualified names.

    A REGULAR_EXPRESSION rule includes names that fully match the include
    pattern (everything when it is blank) and do not fully match the exclude
    pattern. An EXCLUSION rule only has an exclude pattern.
    """

    kind: RuleKind
    include_pattern: Optional[str] = None
    exclude_pattern: Optional[str] = None
    _include: Optional["re.Pattern[str]"] = field(default=None, init=False, repr=False, compare=False)
    _exclude: Optional["re.Pattern[str]"] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_include", _compile(self.include_pattern))
        object.__setattr__(self, "_exclude", _compile(self.exclude_pattern))

    @classmethod
    def include_all(cls) -> "InclusionRule":
        return cls(RuleKind.INCLUDE_ALL)

    @classmethod
    def exclude_all(cls) -> "InclusionRule":
        return cls(RuleKind.EXCLUDE_ALL)

    @classmethod
    def regular_expression(cls, include: Optional[str] = None, exclude: Optional[str] = None) -> "InclusionRule":
        return cls(RuleKind.REGULAR_EXPRESSION, include_pattern=include, exclude_pattern=exclude)

    @classmethod
    def exclusion(cls, exclude: str) -> "InclusionRule":
        return cls(RuleKind.EXCLUSION, exclude_pattern=exclude)

    @classmethod
    def from_config(cls, value: Any) -> "InclusionRule":
        """Create a rule from a configuration value.

        Accepts ``"include_all"``, ``"exclude_all"``, a bare include pattern,
        or a mapping with ``include`` and/or ``exclude`` patterns.
        """
        if value is None:
            return cls.include_all()
        if isinstance(value, str):
            if value == RuleKind.INCLUDE_ALL.value:
                return cls.include_all()
            if value == RuleKind.EXCLUDE_ALL.value:
                return cls.exclude_all()
            return cls.regular_expression(include=value)
        if isinstance(value, Mapping):
            unknown = set(value) - {"include", "exclude"}
            if unknown:
                raise ConfigurationError(f"Unknown inclusion rule keys: {sorted(unknown)}")
            if "include" not in value and "exclude" in value:
                return cls.exclusion(value["exclude"])
            return cls.regular_expression(value.get("include"), value.get("exclude"))
        raise ConfigurationError(f"Cannot build an inclusion rule from {value!r}")

    def test(self, name: str) -> bool:
        """Check whether a fully qualified name is included."""
        if self.kind is RuleKind.INCLUDE_ALL:
            return True
        if self.kind is RuleKind.EXCLUDE_ALL:
            return False
        if self.kind is RuleKind.REGULAR_EXPRESSION:
            if self._include is not None and not self._include.fullmatch(name):
                return False
            return self._exclude is None or not self._exclude.fullmatch(name)
        if self.kind is RuleKind.EXCLUSION:
            return self._exclude is None or not self._exclude.fullmatch(name)
        raise AssertionError(f"Unhandled rule kind: {self.kind}")


@dataclass(frozen=True)
class CrawlOptions:
    """What a crawl retrieves and keeps."""

    schema_rule: InclusionRule = field(default_factory=InclusionRule.include_all)
    table_rule: InclusionRule = field(default_factory=InclusionRule.include_all)
    routine_rule: InclusionRule = field(default_factory=InclusionRule.include_all)
    sequence_rule: InclusionRule = field(default_factory=InclusionRule.exclude_all)
    synonym_rule: InclusionRule = field(default_factory=InclusionRule.exclude_all)
    table_types: Optional[Tuple[TableType, ...]] = None
    alphabetical_sort_for_table_columns: bool = False
    load_row_counts: bool = False


def build_crawl_options(
    schemas: Any = None,
    tables: Any = None,
    routines: Any = None,
    sequences: Any = RuleKind.EXCLUDE_ALL.value,
    synonyms: Any = RuleKind.EXCLUDE_ALL.value,
    table_types: Optional[Any] = None,
    alphabetical_sort_for_table_columns: bool = False,
    load_row_counts: bool = False,
) -> CrawlOptions:
    """Build crawl options from rules or rule configuration values.

    Args:
        schemas: Schema rule, or a value accepted by InclusionRule.from_config
        tables: Table rule or rule value
        routines: Routine rule or rule value
        sequences: Sequence rule or rule value
        synonyms: Synonym rule or rule value
        table_types: Table type names to keep, all types when None
        alphabetical_sort_for_table_columns: Order columns by name instead of position
        load_row_counts: Count rows of every table while crawling

    Returns:
        Immutable crawl options
    """

    def rule(value: Any) -> InclusionRule:
        if isinstance(value, InclusionRule):
            return value
        return InclusionRule.from_config(value)

    types = None
    if table_types is not None:
        types = tuple(t if isinstance(t, TableType) else TableType.from_name(t) for t in table_types)

    return CrawlOptions(
        schema_rule=rule(schemas),
        table_rule=rule(tables),
        routine_rule=rule(routines),
        sequence_rule=rule(sequences),
        synonym_rule=rule(synonyms),
        table_types=types,
        alphabetical_sort_for_table_columns=alphabetical_sort_for_table_columns,
        load_row_counts=load_row_counts,
    )


def crawl_options_from_config(data: Optional[Mapping[str, Any]]) -> CrawlOptions:
    """Build crawl options from the ``crawl`` section of a configuration file."""
    data = dict(data or {})
    known = {
        "schemas",
        "tables",
        "routines",
        "sequences",
        "synonyms",
        "table_types",
        "alphabetical_sort_for_table_columns",
        "load_row_counts",
    }
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown crawl options: {sorted(unknown)}")
    return build_crawl_options(**data)
