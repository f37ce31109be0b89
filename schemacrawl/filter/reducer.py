"""Reduces a catalog by inclusion rules."""

import logging
from enum import Enum
from typing import List

from ..catalog.catalog import Catalog
from .rules import CrawlOptions, InclusionRule

logger = logging.getLogger(__name__)


class EntityKind(Enum):
    """Kinds of catalog entities, in the order they are reduced."""

    SCHEMA = "schema"
    TABLE = "table"
    ROUTINE = "routine"
    SYNONYM = "synonym"
    SEQUENCE = "sequence"


REDUCTION_ORDER = (
    EntityKind.SCHEMA,
    EntityKind.TABLE,
    EntityKind.ROUTINE,
    EntityKind.SYNONYM,
    EntityKind.SEQUENCE,
)


class Reducer:
    """Removes entities that fail an inclusion rule, keeping the catalog consistent.

    Removing a schema removes everything it owns. Removing a table removes
    its keys and indexes, and every foreign key of another table that
    refers to it. Survivors keep their order, and reducing again with the
    same rule changes nothing.
    """

    def __init__(self, log=None):
        self.log = log or logger

    def reduce(self, catalog: Catalog, kind: EntityKind, rule: InclusionRule) -> int:
        """Reduce one kind of entity.

        Args:
            catalog: Catalog to reduce in place
            kind: Kind of entity to test
            rule: Rule that surviving entities pass

        Returns:
            Number of entities removed
        """
        if kind is EntityKind.SCHEMA:
            removed = [s for s in catalog.schemas.values() if not rule.test(s.full_name)]
            for schema in removed:
                catalog.remove_schema(schema)
            count = len(removed)
        elif kind is EntityKind.TABLE:
            count = catalog.remove_tables([t for t in catalog.tables if not rule.test(t.full_name)])
        elif kind is EntityKind.ROUTINE:
            count = self._remove_each(catalog.routines, rule, catalog.remove_routine)
        elif kind is EntityKind.SYNONYM:
            count = self._remove_each(catalog.synonyms, rule, catalog.remove_synonym)
        elif kind is EntityKind.SEQUENCE:
            count = self._remove_each(catalog.sequences, rule, catalog.remove_sequence)
        else:
            raise AssertionError(f"Unhandled entity kind: {kind}")

        if count:
            self.log.info(f"Reduced {count} {kind.value} entities")
        return count

    def _remove_each(self, entities: List, rule: InclusionRule, remove) -> int:
        count = 0
        for entity in entities:
            if not rule.test(entity.full_name) and remove(entity):
                count += 1
        return count

    def reduce_all(self, catalog: Catalog, crawl_options: CrawlOptions) -> int:
        """Reduce every kind of entity with its rule from the crawl options."""
        rules = {
            EntityKind.SCHEMA: crawl_options.schema_rule,
            EntityKind.TABLE: crawl_options.table_rule,
            EntityKind.ROUTINE: crawl_options.routine_rule,
            EntityKind.SYNONYM: crawl_options.synonym_rule,
            EntityKind.SEQUENCE: crawl_options.sequence_rule,
        }
        return sum(self.reduce(catalog, kind, rules[kind]) for kind in REDUCTION_ORDER)
