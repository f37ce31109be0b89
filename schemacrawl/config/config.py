"""Configuration management for schemacrawl."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..crawl.strategy import OverrideOptions, override_options_from_config
from ..errors import ConfigurationError
from ..filter.rules import CrawlOptions, crawl_options_from_config


@dataclass
class DataSourceConfig:
    """Configuration for the data source to crawl."""

    name: str
    type: str  # "postgresql", "duckdb" or "offline"
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OutputConfig:
    """Configuration for command output."""

    file: Optional[str] = None
    format: str = "text"


@dataclass
class Config:
    """Main configuration class."""

    datasource: Optional[DataSourceConfig] = None
    crawl: CrawlOptions = field(default_factory=CrawlOptions)
    overrides: OverrideOptions = field(default_factory=OverrideOptions)
    output: OutputConfig = field(default_factory=OutputConfig)
    template_defaults: Dict[str, str] = field(default_factory=dict)
    properties: Dict[str, Any] = field(default_factory=dict)


def parse_config(data: Optional[Dict[str, Any]]) -> Config:
    """Build configuration from parsed YAML data.

    Raises:
        ConfigurationError: If a section is malformed
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")

    datasource = None
    ds_data = data.get("datasource")
    if ds_data:
        ds_config = dict(ds_data)
        try:
            ds_type = ds_config.pop("type")
        except KeyError as e:
            raise ConfigurationError("Data source configuration needs a type") from e
        name = ds_config.pop("name", ds_type)
        datasource = DataSourceConfig(name=name, type=ds_type, config=ds_config)

    output_data = data.get("output") or {}
    try:
        output = OutputConfig(**output_data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid output configuration: {e}") from e

    return Config(
        datasource=datasource,
        crawl=crawl_options_from_config(data.get("crawl")),
        overrides=override_options_from_config(data.get("overrides")),
        output=output,
        template_defaults={str(k): str(v) for k, v in (data.get("template_defaults") or {}).items()},
        properties=dict(data.get("properties") or {}),
    )


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Parsed configuration

    Example YAML format:
        datasource:
          name: warehouse
          type: postgresql
          host: localhost
          port: 5432
          database: mydb
          user: user
          password: pass

        crawl:
          schemas: "public|sales"
          tables:
            exclude: ".*\\.tmp_.*"
          sequences: include_all
          alphabetical_sort_for_table_columns: true

        overrides:
          strategies:
            foreign_keys: metadata_per_object
          identifier_quote_string: '"'

        output:
          file: catalog.txt

        template_defaults:
          limit: "100"

        properties:
          schemacrawler.encoding.output: UTF-8
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    return parse_config(data)
