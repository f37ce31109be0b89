"""Inclusion rules and catalog reduction."""

from .reducer import REDUCTION_ORDER, EntityKind, Reducer
from .rules import CrawlOptions, InclusionRule, RuleKind, build_crawl_options, crawl_options_from_config

__all__ = [
    "CrawlOptions",
    "EntityKind",
    "InclusionRule",
    "REDUCTION_ORDER",
    "Reducer",
    "RuleKind",
    "build_crawl_options",
    "crawl_options_from_config",
]
