"""Retrieval strategy selection and database specific options."""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from ..catalog.schema import DatabaseInfo
from ..catalog.types import IdentifierCasing, TypeGroup
from ..errors import ConfigurationError
from .identifiers import Identifiers, identifier_conventions

logger = logging.getLogger(__name__)


class MetadataCategory(Enum):
    """Kinds of metadata retrieved by a crawl."""

    TABLES = "tables"
    TABLE_COLUMNS = "table_columns"
    PRIMARY_KEYS = "primary_keys"
    INDEXES = "indexes"
    FOREIGN_KEYS = "foreign_keys"
    PROCEDURES = "procedures"
    FUNCTIONS = "functions"
    SEQUENCES = "sequences"
    SYNONYMS = "synonyms"


class RetrievalStrategy(Enum):
    """How one metadata category is retrieved."""

    METADATA_BULK = "metadata_bulk"
    METADATA_PER_OBJECT = "metadata_per_object"
    NONE = "none"


# Categories the product has no such objects for, keyed by lower-cased product name
PRODUCT_DEFAULTS: Mapping[str, Mapping[MetadataCategory, RetrievalStrategy]] = {
    "duckdb": {
        MetadataCategory.PROCEDURES: RetrievalStrategy.NONE,
        MetadataCategory.SYNONYMS: RetrievalStrategy.NONE,
    },
    "postgresql": {
        MetadataCategory.SYNONYMS: RetrievalStrategy.NONE,
    },
}


@dataclass(frozen=True)
class OverrideOptions:
    """User overrides of what the crawler would otherwise detect."""

    product_name: Optional[str] = None
    supports_schemas: Optional[bool] = None
    supports_catalogs: Optional[bool] = None
    identifier_quote_string: Optional[str] = None
    strategies: Mapping[MetadataCategory, RetrievalStrategy] = field(default_factory=lambda: MappingProxyType({}))
    information_schema_views: Mapping[MetadataCategory, str] = field(default_factory=lambda: MappingProxyType({}))
    type_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def information_schema_view(self, category: MetadataCategory) -> Optional[str]:
        return self.information_schema_views.get(category)


def _category(key: Union[str, MetadataCategory]) -> MetadataCategory:
    if isinstance(key, MetadataCategory):
        return key
    try:
        return MetadataCategory(str(key).lower())
    except ValueError as e:
        raise ConfigurationError(f"Unknown metadata category: {key}") from e


def _strategy(value: Union[str, RetrievalStrategy]) -> RetrievalStrategy:
    if isinstance(value, RetrievalStrategy):
        return value
    try:
        return RetrievalStrategy(str(value).lower())
    except ValueError as e:
        raise ConfigurationError(f"Unknown retrieval strategy: {value}") from e


def build_override_options(
    product_name: Optional[str] = None,
    supports_schemas: Optional[bool] = None,
    supports_catalogs: Optional[bool] = None,
    identifier_quote_string: Optional[str] = None,
    strategies: Optional[Mapping[Any, Any]] = None,
    information_schema_views: Optional[Mapping[Any, str]] = None,
    type_map: Optional[Mapping[str, str]] = None,
) -> OverrideOptions:
    """Build override options.

    Args:
        product_name: Database product to assume instead of the probed one
        supports_schemas: Override of the probed schema support
        supports_catalogs: Override of the probed catalog support
        identifier_quote_string: Quote string to use instead of the dialect's
        strategies: Retrieval strategy per metadata category
        information_schema_views: Query template per metadata category,
            used for bulk retrieval of that category
        type_map: Type name to type group value overrides

    Returns:
        Immutable override options

    Raises:
        ConfigurationError: For unknown categories, strategies or type groups
    """
    resolved_types = {}
    for name, group in (type_map or {}).items():
        try:
            resolved_types[name] = TypeGroup(str(group).lower()).value
        except ValueError as e:
            raise ConfigurationError(f"Unknown type group {group} for type {name}") from e

    return OverrideOptions(
        product_name=product_name,
        supports_schemas=supports_schemas,
        supports_catalogs=supports_catalogs,
        identifier_quote_string=identifier_quote_string,
        strategies=MappingProxyType({_category(k): _strategy(v) for k, v in (strategies or {}).items()}),
        information_schema_views=MappingProxyType(
            {_category(k): sql for k, sql in (information_schema_views or {}).items()}
        ),
        type_map=MappingProxyType(resolved_types),
    )


def override_options_from_config(data: Optional[Mapping[str, Any]]) -> OverrideOptions:
    """Build override options from the ``overrides`` section of a configuration file."""
    data = dict(data or {})
    known = {
        "product_name",
        "supports_schemas",
        "supports_catalogs",
        "identifier_quote_string",
        "strategies",
        "information_schema_views",
        "type_map",
    }
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown override options: {sorted(unknown)}")
    return build_override_options(**data)


@dataclass(frozen=True)
class DatabaseSpecificOptions:
    """Effective database conventions for one crawl."""

    product_name: str = ""
    identifier_quote_string: Optional[str] = '"'
    identifier_casing: IdentifierCasing = IdentifierCasing.UNKNOWN
    supports_schemas: bool = True
    supports_catalogs: bool = True
    type_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def identifiers(self) -> Identifiers:
        return Identifiers(self.identifier_quote_string, self.identifier_casing)


class RetrievalStrategySelector:
    """Resolves a retrieval strategy per metadata category.

    A user override wins, then the default for the detected product, then
    bulk retrieval.
    """

    def __init__(self, datasource, override_options: Optional[OverrideOptions] = None, log=None):
        """Initialize selector.

        Args:
            datasource: Data source to probe
            override_options: User overrides
            log: Logger or adapter of the current crawl
        """
        self.datasource = datasource
        self.override_options = override_options or OverrideOptions()
        self.log = log or logger
        self._database_info: Optional[DatabaseInfo] = None

    def probe(self) -> DatabaseInfo:
        """Probe database capabilities once; later calls return the cached result."""
        if self._database_info is None:
            try:
                self._database_info = self.datasource.get_database_info()
            except Exception as e:
                self.log.warning(f"Could not probe database capabilities, assuming schemas and catalogs: {e}")
                self._database_info = DatabaseInfo(supports_schemas=True, supports_catalogs=True)
        return self._database_info

    @property
    def product_name(self) -> str:
        return self.override_options.product_name or self.probe().product_name

    def strategy_for(self, category: MetadataCategory) -> RetrievalStrategy:
        override = self.override_options.strategies.get(category)
        if override is not None:
            return override
        product_defaults = PRODUCT_DEFAULTS.get(self.product_name.strip().lower(), {})
        return product_defaults.get(category, RetrievalStrategy.METADATA_BULK)

    def strategies(self) -> Dict[MetadataCategory, RetrievalStrategy]:
        return {category: self.strategy_for(category) for category in MetadataCategory}

    def database_info(self) -> DatabaseInfo:
        """Probed database information with the user overrides applied."""
        options = self.database_specific_options()
        return replace(
            self.probe(),
            product_name=options.product_name,
            identifier_quote_string=options.identifier_quote_string,
            identifier_casing=options.identifier_casing,
            supports_schemas=options.supports_schemas,
            supports_catalogs=options.supports_catalogs,
        )

    def database_specific_options(self) -> DatabaseSpecificOptions:
        info = self.probe()
        overrides = self.override_options
        product_name = self.product_name

        quote_string, casing = identifier_conventions(product_name)
        if info.identifier_quote_string is not None:
            quote_string = info.identifier_quote_string
        if info.identifier_casing is not IdentifierCasing.UNKNOWN:
            casing = info.identifier_casing
        if overrides.identifier_quote_string is not None:
            quote_string = overrides.identifier_quote_string

        return DatabaseSpecificOptions(
            product_name=product_name,
            identifier_quote_string=quote_string or None,
            identifier_casing=casing,
            supports_schemas=info.supports_schemas if overrides.supports_schemas is None else overrides.supports_schemas,
            supports_catalogs=(
                info.supports_catalogs if overrides.supports_catalogs is None else overrides.supports_catalogs
            ),
            type_map=overrides.type_map,
        )
