"""Builds a catalog from a metadata source."""

import logging
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..catalog.catalog import Catalog
from ..catalog.schema import (
    Column,
    CrawlInfo,
    ForeignKey,
    ForeignKeyColumnReference,
    Index,
    PrimaryKey,
    Routine,
    Schema,
    Sequence,
    Synonym,
    Table,
)
from ..catalog.types import ColumnDataType, RoutineType, TableType, classify_type
from ..datasources.base import (
    ColumnMetadata,
    DataSource,
    ForeignKeyColumnMetadata,
    IndexColumnMetadata,
    PrimaryKeyColumnMetadata,
    RoutineMetadata,
    SequenceMetadata,
    SynonymMetadata,
    TableMetadata,
    records_from_batches,
)
from ..errors import CrawlError
from ..filter.rules import CrawlOptions, RuleKind
from .strategy import MetadataCategory, OverrideOptions, RetrievalStrategy, RetrievalStrategySelector
from .templating import (
    Query,
    QueryTemplateEngine,
    execute_against_schema,
    execute_for_long,
    materialize_column_order,
)

logger = logging.getLogger(__name__)

ROW_COUNT_QUERY = Query("row_count", "SELECT COUNT(*) FROM ${table}")

TableKey = Tuple[Optional[str], Optional[str], str]


class ForeignKeyResolver:
    """Resolves foreign key records against the tables of a catalog.

    Keys whose primary table is not in the catalog yet are held back and
    resolved by resolve_deferred. CatalogBuilder.build adds every table
    before it reads foreign keys, so there a held back key always points
    at a table outside the crawl and resolve_deferred drops it. Keys only
    resolve late for callers that add tables between add and
    resolve_deferred.
    """

    def __init__(self, catalog: Catalog, key: Callable[[Optional[str], Optional[str], str], TableKey], log=None):
        """Initialize resolver.

        Args:
            catalog: Catalog to add foreign keys to
            key: Maps (catalog, schema, table) names of a record to a catalog lookup key
            log: Logger or adapter of the current crawl
        """
        self.catalog = catalog
        self.key = key
        self.log = log or logger
        self.deferred: List[List[ForeignKeyColumnMetadata]] = []
        self.dropped = 0

    def _lookup(self, catalog_name, schema_name, table_name) -> Optional[Table]:
        return self.catalog.lookup_table(*self.key(catalog_name, schema_name, table_name))

    def add(self, records: List[ForeignKeyColumnMetadata]) -> Optional[ForeignKey]:
        """Resolve one foreign key now, or defer it.

        Args:
            records: Column records of one foreign key in key sequence order

        Returns:
            The foreign key if it was resolved now
        """
        first = records[0]
        if self._lookup(first.fk_catalog_name, first.fk_schema_name, first.fk_table_name) is None:
            self.log.debug(f"Skipping foreign key {first.fk_name} of a table that is not crawled")
            self.dropped += 1
            return None
        if self._lookup(first.pk_catalog_name, first.pk_schema_name, first.pk_table_name) is None:
            self.deferred.append(records)
            return None
        return self._attach(records)

    def resolve_deferred(self) -> int:
        """Resolve held back keys; keys that still have a missing table are dropped.

        Returns:
            Number of foreign keys resolved
        """
        resolved = 0
        deferred, self.deferred = self.deferred, []
        for records in deferred:
            first = records[0]
            if self._lookup(first.pk_catalog_name, first.pk_schema_name, first.pk_table_name) is None:
                self.log.info(
                    f"Dropping foreign key {first.fk_name}: "
                    f"referenced table {first.pk_schema_name}.{first.pk_table_name} is not crawled"
                )
                self.dropped += 1
                continue
            if self._attach(records) is not None:
                resolved += 1
        return resolved

    def _attach(self, records: List[ForeignKeyColumnMetadata]) -> Optional[ForeignKey]:
        first = records[0]
        fk_table = self._lookup(first.fk_catalog_name, first.fk_schema_name, first.fk_table_name)
        pk_table = self._lookup(first.pk_catalog_name, first.pk_schema_name, first.pk_table_name)

        references = []
        for record in records:
            fk_column = fk_table.get_column(record.fk_column_name)
            pk_column = pk_table.get_column(record.pk_column_name)
            if fk_column is None or pk_column is None:
                self.log.warning(f"Dropping foreign key {first.fk_name}: column not found")
                self.dropped += 1
                return None
            references.append(ForeignKeyColumnReference(fk_column, pk_column))

        foreign_key = ForeignKey(
            name=first.fk_name,
            column_references=references,
            update_rule=first.update_rule,
            delete_rule=first.delete_rule,
        )
        fk_table.foreign_keys.append(foreign_key)
        return foreign_key


class CatalogBuilder:
    """Drives metadata retrieval for one crawl and assembles the catalog."""

    def __init__(
        self,
        datasource: DataSource,
        crawl_options: Optional[CrawlOptions] = None,
        override_options: Optional[OverrideOptions] = None,
        engine: Optional[QueryTemplateEngine] = None,
        log=None,
        selector: Optional[RetrievalStrategySelector] = None,
    ):
        """Initialize builder.

        Args:
            datasource: Live or offline metadata source
            crawl_options: Inclusion rules and crawl flags
            override_options: User overrides of strategies and conventions
            engine: Template engine for override queries
            log: Logger or adapter of the current crawl
            selector: Strategy selector, created from the data source when None
        """
        self.datasource = datasource
        self.crawl_options = crawl_options or CrawlOptions()
        self.log = log or logger
        self.selector = selector or RetrievalStrategySelector(datasource, override_options, self.log)
        self.override_options = override_options or self.selector.override_options
        self.engine = engine or QueryTemplateEngine()
        self._options = None
        self._identifiers = None

    def build(self) -> Catalog:
        """Crawl the data source.

        Returns:
            The assembled catalog

        Raises:
            CrawlError: If schemas cannot be retrieved
        """
        self._options = self.selector.database_specific_options()
        self._identifiers = self._options.identifiers()
        catalog = Catalog(
            name=self.datasource.name,
            database_info=self.selector.database_info(),
            crawl_info=CrawlInfo.current(),
        )

        self._retrieve_schemas(catalog)
        self._retrieve_tables(catalog)
        self._retrieve_columns(catalog)
        self._retrieve_primary_keys(catalog)
        self._retrieve_indexes(catalog)
        self._retrieve_foreign_keys(catalog)
        self._retrieve_routines(catalog)
        self._retrieve_sequences(catalog)
        self._retrieve_synonyms(catalog)
        if self.crawl_options.load_row_counts:
            self._retrieve_row_counts(catalog)

        self.log.info(
            f"Crawled {len(catalog.schemas)} schemas, {len(catalog.tables)} tables, "
            f"{len(catalog.routines)} routines, {len(catalog.sequences)} sequences, "
            f"{len(catalog.synonyms)} synonyms"
        )
        return catalog

    def _catalog_name(self, name: Optional[str]) -> Optional[str]:
        return name if self._options.supports_catalogs else None

    def _table_key(self, catalog_name: Optional[str], schema_name: Optional[str], table_name: str) -> TableKey:
        return (self._catalog_name(catalog_name), schema_name, table_name)

    def _schema(self, catalog: Catalog, catalog_name: Optional[str], schema_name: str) -> Optional[Schema]:
        return catalog.schemas.get((self._catalog_name(catalog_name), schema_name))

    def _table(self, catalog: Catalog, catalog_name: Optional[str], schema_name: str, table_name: str):
        return catalog.lookup_table(*self._table_key(catalog_name, schema_name, table_name))

    def _retrieve(
        self,
        category: MetadataCategory,
        record_type,
        bulk: Callable[[], List],
        scopes: Iterable[Tuple[object, Callable[[], List]]],
    ) -> Tuple[List, List]:
        """Retrieve records of one category with its selected strategy.

        Args:
            category: Metadata category
            record_type: Record class that override query rows map onto
            bulk: Unscoped data source call
            scopes: (entity, call) pairs for per-object retrieval

        Returns:
            Tuple of (records, entities whose per-object retrieval failed)
        """
        strategy = self.selector.strategy_for(category)
        if strategy is RetrievalStrategy.NONE:
            self.log.debug(f"Not retrieving {category.value}")
            return [], []

        if strategy is RetrievalStrategy.METADATA_BULK:
            view = self.override_options.information_schema_view(category)
            try:
                if view:
                    batches = execute_against_schema(
                        Query(category.value, view),
                        self.datasource,
                        self.crawl_options.schema_rule,
                        self.engine,
                        self.log,
                    )
                    return records_from_batches(record_type, batches), []
                return bulk(), []
            except Exception as e:
                self.log.warning(f"Could not retrieve {category.value}: {e}")
                return [], []

        if strategy is RetrievalStrategy.METADATA_PER_OBJECT:
            records = []
            failed = []
            for entity, call in scopes:
                try:
                    records.extend(call())
                except Exception as e:
                    self.log.warning(f"Could not retrieve {category.value} for {entity}: {e}")
                    failed.append(entity)
            return records, failed

        raise AssertionError(f"Unhandled retrieval strategy: {strategy}")

    def _schema_scopes(self, catalog: Catalog, call: Callable[[Schema], List]):
        return [(schema.full_name, (lambda s=schema: call(s))) for schema in list(catalog.schemas.values())]

    def _table_scopes(self, catalog: Catalog, call: Callable[[Table], List]):
        return [(table, (lambda t=table: call(t))) for table in catalog.tables]

    def _retrieve_schemas(self, catalog: Catalog) -> None:
        try:
            records = self.datasource.fetch_schemas()
        except Exception as e:
            raise CrawlError(f"Could not retrieve schemas from {self.datasource.name}: {e}") from e

        rule = self.crawl_options.schema_rule
        for record in records:
            schema = Schema(name=record.schema_name, catalog_name=self._catalog_name(record.catalog_name))
            if rule.test(schema.full_name):
                catalog.add_schema(schema)
            else:
                self.log.debug(f"Excluding schema {schema.full_name}")

    def _retrieve_tables(self, catalog: Catalog) -> None:
        records, _ = self._retrieve(
            MetadataCategory.TABLES,
            TableMetadata,
            self.datasource.fetch_tables,
            self._schema_scopes(catalog, lambda schema: self.datasource.fetch_tables(schema.name)),
        )
        rule = self.crawl_options.table_rule
        table_types = self.crawl_options.table_types
        for record in records:
            schema = self._schema(catalog, record.catalog_name, record.schema_name)
            if schema is None:
                continue
            table = Table(
                name=record.table_name,
                table_type=TableType.from_name(record.table_type),
                remarks=record.remarks,
            )
            if table_types is not None and table.table_type not in table_types:
                continue
            table.schema = schema
            if rule.test(table.full_name):
                schema.add_table(table)

    def _retrieve_columns(self, catalog: Catalog) -> None:
        records, failed = self._retrieve(
            MetadataCategory.TABLE_COLUMNS,
            ColumnMetadata,
            self.datasource.fetch_columns,
            self._table_scopes(catalog, lambda t: self.datasource.fetch_columns(t.schema.name, t.name)),
        )
        for table in failed:
            self.log.warning(f"Skipping table {table.full_name}")
            catalog.remove_table(table)

        type_map = self._options.type_map
        for record in records:
            table = self._table(catalog, record.catalog_name, record.schema_name, record.table_name)
            if table is None:
                continue
            table.add_column(
                Column(
                    name=record.column_name,
                    data_type=ColumnDataType(record.data_type, classify_type(record.data_type, type_map)),
                    ordinal_position=record.ordinal_position,
                    nullable=record.nullable,
                    default_value=record.column_default,
                    remarks=record.remarks,
                )
            )

        for table in catalog.tables:
            materialize_column_order(table, self.crawl_options.alphabetical_sort_for_table_columns)

    def _retrieve_primary_keys(self, catalog: Catalog) -> None:
        records, _ = self._retrieve(
            MetadataCategory.PRIMARY_KEYS,
            PrimaryKeyColumnMetadata,
            self.datasource.fetch_primary_keys,
            self._table_scopes(catalog, lambda t: self.datasource.fetch_primary_keys(t.schema.name, t.name)),
        )
        grouped: Dict[int, Tuple[Table, List[PrimaryKeyColumnMetadata]]] = OrderedDict()
        for record in records:
            table = self._table(catalog, record.catalog_name, record.schema_name, record.table_name)
            if table is not None:
                grouped.setdefault(id(table), (table, []))[1].append(record)

        for table, columns in grouped.values():
            columns.sort(key=lambda r: r.key_sequence)
            table.primary_key = PrimaryKey(name=columns[0].pk_name, column_names=[r.column_name for r in columns])

    def _retrieve_indexes(self, catalog: Catalog) -> None:
        records, _ = self._retrieve(
            MetadataCategory.INDEXES,
            IndexColumnMetadata,
            self.datasource.fetch_indexes,
            self._table_scopes(catalog, lambda t: self.datasource.fetch_indexes(t.schema.name, t.name)),
        )
        for record in sorted(records, key=lambda r: r.ordinal_position):
            table = self._table(catalog, record.catalog_name, record.schema_name, record.table_name)
            if table is None:
                continue
            index = table.get_index(record.index_name)
            if index is None:
                index = Index(name=record.index_name, unique=record.unique)
                table.indexes.append(index)
            index.column_names.append(record.column_name)

        for table in catalog.tables:
            table.indexes.sort(key=lambda index: index.name)

    def _retrieve_foreign_keys(self, catalog: Catalog) -> None:
        records, _ = self._retrieve(
            MetadataCategory.FOREIGN_KEYS,
            ForeignKeyColumnMetadata,
            self.datasource.fetch_foreign_keys,
            self._table_scopes(catalog, lambda t: self.datasource.fetch_foreign_keys(t.schema.name, t.name)),
        )
        grouped: Dict[tuple, List[ForeignKeyColumnMetadata]] = OrderedDict()
        for record in records:
            key = (record.fk_catalog_name, record.fk_schema_name, record.fk_table_name, record.fk_name)
            grouped.setdefault(key, []).append(record)

        resolver = ForeignKeyResolver(catalog, self._table_key, self.log)
        for columns in grouped.values():
            columns.sort(key=lambda r: r.key_sequence)
            resolver.add(columns)
        if resolver.deferred:
            self.log.debug(f"Resolving {len(resolver.deferred)} deferred foreign keys")
        resolver.resolve_deferred()

    def _retrieve_routines(self, catalog: Catalog) -> None:
        rule = self.crawl_options.routine_rule
        if rule.kind is RuleKind.EXCLUDE_ALL:
            return
        for category, routine_type in (
            (MetadataCategory.PROCEDURES, RoutineType.PROCEDURE),
            (MetadataCategory.FUNCTIONS, RoutineType.FUNCTION),
        ):
            records, _ = self._retrieve(
                category,
                RoutineMetadata,
                lambda rt=routine_type: self.datasource.fetch_routines(rt),
                self._schema_scopes(
                    catalog, lambda schema, rt=routine_type: self.datasource.fetch_routines(rt, schema.name)
                ),
            )
            for record in records:
                schema = self._schema(catalog, record.catalog_name, record.schema_name)
                if schema is None:
                    continue
                routine = Routine(
                    name=record.routine_name,
                    routine_type=routine_type,
                    specific_name=record.specific_name,
                    return_type=record.return_type,
                    remarks=record.remarks,
                )
                routine.schema = schema
                if rule.test(routine.full_name):
                    schema.add_routine(routine)

    def _retrieve_sequences(self, catalog: Catalog) -> None:
        rule = self.crawl_options.sequence_rule
        if rule.kind is RuleKind.EXCLUDE_ALL:
            return
        records, _ = self._retrieve(
            MetadataCategory.SEQUENCES,
            SequenceMetadata,
            self.datasource.fetch_sequences,
            self._schema_scopes(catalog, lambda schema: self.datasource.fetch_sequences(schema.name)),
        )
        for record in records:
            schema = self._schema(catalog, record.catalog_name, record.schema_name)
            if schema is None:
                continue
            sequence = Sequence(
                name=record.sequence_name,
                start_value=record.start_value,
                increment=record.increment,
                minimum_value=record.minimum_value,
                maximum_value=record.maximum_value,
                cycle=record.cycle,
            )
            sequence.schema = schema
            if rule.test(sequence.full_name):
                schema.add_sequence(sequence)

    def _retrieve_synonyms(self, catalog: Catalog) -> None:
        rule = self.crawl_options.synonym_rule
        if rule.kind is RuleKind.EXCLUDE_ALL:
            return
        records, _ = self._retrieve(
            MetadataCategory.SYNONYMS,
            SynonymMetadata,
            self.datasource.fetch_synonyms,
            self._schema_scopes(catalog, lambda schema: self.datasource.fetch_synonyms(schema.name)),
        )
        for record in records:
            schema = self._schema(catalog, record.catalog_name, record.schema_name)
            if schema is None:
                continue
            synonym = Synonym(name=record.synonym_name, referenced_object=record.referenced_object)
            synonym.schema = schema
            if rule.test(synonym.full_name):
                schema.add_synonym(synonym)

    def _retrieve_row_counts(self, catalog: Catalog) -> None:
        for table in catalog.tables:
            try:
                table.row_count = execute_for_long(
                    ROW_COUNT_QUERY, self.datasource, table, self._identifiers, self.engine, self.log
                )
            except Exception as e:
                self.log.warning(f"Could not count rows of {table.full_name}: {e}")
