"""Configuration management."""

from .config import Config, DataSourceConfig, OutputConfig, load_config, parse_config

__all__ = [
    "Config",
    "DataSourceConfig",
    "OutputConfig",
    "load_config",
    "parse_config",
]
