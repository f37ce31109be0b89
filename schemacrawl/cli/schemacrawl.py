"""Command line entry point for schemacrawl."""

import logging
from contextlib import ExitStack
from typing import Optional, Tuple

import click

from ..config import Config, DataSourceConfig, load_config
from ..datasources import DataSource, DuckDBDataSource, OfflineDataSource, PostgreSQLDataSource
from ..errors import SchemaCrawlError
from ..offline.executable import OfflineSnapshotExecutable
from ..offline.snapshot import write_snapshot
from ..tools.executable import CrawlExecutable
from ..tools.options import OutputOptions, output_options_from_config
from ..tools.resources import WriterOutputResource
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _create_datasource(ds_config: DataSourceConfig) -> DataSource:
    if ds_config.type == "duckdb":
        return DuckDBDataSource(ds_config.name, ds_config.config)
    if ds_config.type == "postgresql":
        return PostgreSQLDataSource(ds_config.name, ds_config.config)
    if ds_config.type == "offline":
        return OfflineDataSource(ds_config.name, ds_config.config)
    raise click.BadParameter(f"Unsupported data source type: {ds_config.type}", param_hint="--config")


def _load_config(config_path: Optional[str], offline: Optional[str]) -> Config:
    config = load_config(config_path) if config_path else Config()
    if offline:
        config.datasource = DataSourceConfig(name="offline", type="offline", config={"snapshot": offline})
    if config.datasource is None:
        raise click.UsageError("Either --config with a datasource section or --offline is required")
    return config


def _output_options(config: Config, stack: ExitStack, output: Optional[str]) -> OutputOptions:
    options = output_options_from_config(config.properties, output_format=config.output.format)
    path = output or config.output.file
    if not path:
        return options
    # One stream for the whole chain, so commands append to each other's output
    writer = stack.enter_context(open(path, "w", encoding=options.output_encoding))
    return output_options_from_config(
        config.properties,
        output_resource=WriterOutputResource(writer),
        output_format=config.output.format,
    )


def _run(config: Config, command: str, output: Optional[str], snapshot: Optional[str]) -> None:
    datasource = _create_datasource(config.datasource)
    with ExitStack() as stack:
        output_options = _output_options(config, stack, output)
        kwargs = dict(
            crawl_options=config.crawl,
            override_options=config.overrides,
            output_options=output_options,
            additional_configuration=config.properties,
            template_defaults=config.template_defaults,
        )
        if datasource.is_offline:
            executable = OfflineSnapshotExecutable(command, **kwargs)
        else:
            executable = CrawlExecutable(command, **kwargs)

        with datasource:
            catalog = executable.execute(datasource)

    if snapshot:
        write_snapshot(catalog, snapshot)
        click.echo(f"Snapshot written to {snapshot}", err=True)


@click.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to YAML config file.",
)
@click.option(
    "--offline",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Run the commands against a snapshot file instead of a live database.",
)
@click.option(
    "--command",
    "commands",
    multiple=True,
    default=("summary",),
    show_default=True,
    help="Command to run: summary, count, dump or serialize. Repeat or comma separate for a chain.",
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write command output to this file.")
@click.option("--snapshot", type=click.Path(dir_okay=False), help="Write a snapshot of the catalog after the crawl.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--structured-logs", is_flag=True, help="Emit JSON log lines.")
def cli(
    config_path: Optional[str],
    offline: Optional[str],
    commands: Tuple[str, ...],
    output: Optional[str],
    snapshot: Optional[str],
    log_level: str,
    structured_logs: bool,
) -> None:
    """Crawl database metadata and run commands against the catalog."""
    setup_logging(level=log_level, structured=structured_logs)
    command = ",".join(commands)
    try:
        config = _load_config(config_path, offline)
        _run(config, command, output, snapshot)
    except SchemaCrawlError as e:
        logger.debug("Crawl failed", exc_info=True)
        raise click.ClickException(str(e)) from e
