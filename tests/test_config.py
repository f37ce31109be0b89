"""Tests for configuration loading."""

import pytest

from schemacrawl.config import Config, load_config, parse_config
from schemacrawl.crawl.strategy import MetadataCategory, RetrievalStrategy
from schemacrawl.errors import ConfigurationError
from schemacrawl.filter import RuleKind


def test_load_config(tmp_path):
    """Test loading a full configuration file."""
    config_yaml = r"""
datasource:
  name: warehouse
  type: postgresql
  host: localhost
  port: 5432
  database: analytics

crawl:
  schemas: "public|sales"
  tables:
    exclude: ".*\\.tmp_.*"
  sequences: include_all
  table_types: [TABLE, VIEW]
  alphabetical_sort_for_table_columns: true

overrides:
  strategies:
    foreign_keys: metadata_per_object
  identifier_quote_string: '"'

output:
  file: catalog.txt

template_defaults:
  limit: 100

properties:
  schemacrawler.encoding.output: UTF-8
"""
    path = tmp_path / "config.yaml"
    path.write_text(config_yaml)

    config = load_config(str(path))

    assert config.datasource.name == "warehouse"
    assert config.datasource.type == "postgresql"
    assert config.datasource.config["port"] == 5432
    assert "type" not in config.datasource.config

    assert config.crawl.schema_rule.test("sales")
    assert not config.crawl.schema_rule.test("hr")
    assert not config.crawl.table_rule.test("public.tmp_load")
    assert config.crawl.sequence_rule.kind is RuleKind.INCLUDE_ALL
    assert config.crawl.synonym_rule.kind is RuleKind.EXCLUDE_ALL
    assert config.crawl.alphabetical_sort_for_table_columns is True
    assert [t.value for t in config.crawl.table_types] == ["TABLE", "VIEW"]

    assert config.overrides.strategies[MetadataCategory.FOREIGN_KEYS] is RetrievalStrategy.METADATA_PER_OBJECT
    assert config.overrides.identifier_quote_string == '"'
    assert config.output.file == "catalog.txt"
    assert config.output.format == "text"
    assert config.template_defaults == {"limit": "100"}
    assert config.properties["schemacrawler.encoding.output"] == "UTF-8"


def test_empty_config():
    config = parse_config(None)

    assert isinstance(config, Config)
    assert config.datasource is None
    assert config.crawl.table_rule.kind is RuleKind.INCLUDE_ALL


def test_datasource_name_defaults_to_type():
    config = parse_config({"datasource": {"type": "duckdb", "path": ":memory:"}})

    assert config.datasource.name == "duckdb"
    assert config.datasource.config == {"path": ":memory:"}


@pytest.mark.parametrize(
    "data",
    [
        {"datasource": {"name": "no_type"}},
        {"crawl": {"colour": "blue"}},
        {"crawl": {"tables": "("}},
        {"output": {"colour": "blue"}},
        ["not", "a", "mapping"],
    ],
)
def test_invalid_config(data):
    with pytest.raises(ConfigurationError):
        parse_config(data)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("crawl: [unclosed")

    with pytest.raises(ConfigurationError):
        load_config(str(path))
