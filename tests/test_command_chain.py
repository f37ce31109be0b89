"""Tests for commands, command chains and the crawl executable."""

import logging

import pytest

from schemacrawl.crawl.builder import CatalogBuilder
from schemacrawl.crawl.strategy import DatabaseSpecificOptions, build_override_options
from schemacrawl.datasources.offline import OfflineDataSource
from schemacrawl.errors import ConfigurationError, OfflineError
from schemacrawl.filter import build_crawl_options
from schemacrawl.tools.commands import CountCommand, DumpCommand, SummaryCommand, new_command
from schemacrawl.tools.executable import BaseCommand, CommandChain, CrawlExecutable, split_commands
from schemacrawl.tools.options import build_output_options
from schemacrawl.tools.resources import StringOutputResource


class RecordingCommand(BaseCommand):
    """Remembers what it was run with."""

    def __init__(self, command="record", calls=None):
        super().__init__(command)
        self.calls = calls if calls is not None else []

    def execute_on(self, catalog, connection):
        self.calls.append((self.command, catalog, connection, self.database_specific_options))


def test_empty_chain_does_nothing(sample_catalog, caplog):
    """An empty chain logs that there is nothing to do and returns."""
    output = StringOutputResource()
    chain = CommandChain()
    chain.output_options = build_output_options(output_resource=output)

    with caplog.at_level(logging.INFO):
        chain.execute_chain(sample_catalog, None)

    assert len(chain) == 0
    assert output.getvalue() == ""
    assert "No commands to execute" in caplog.text


def test_chain_runs_in_order(sample_catalog):
    calls = []
    chain = CommandChain()
    chain.add_next(RecordingCommand("first", calls))
    chain.add_next(None)
    chain.add_next(RecordingCommand("second", calls))

    chain.execute_chain(sample_catalog, "connection")

    assert [c[0] for c in calls] == ["first", "second"]
    assert all(c[1] is sample_catalog and c[2] == "connection" for c in calls)
    assert len(chain.commands) == 2


def test_database_specific_options_are_bound_late(sample_catalog):
    """Options set on the chain after commands were added reach every command."""
    calls = []
    chain = CommandChain()
    chain.add_next(RecordingCommand("first", calls))
    options = DatabaseSpecificOptions(product_name="Acme", identifier_quote_string="`")

    chain.database_specific_options = options
    chain.execute_chain(sample_catalog, None)

    assert calls[0][3] is options
    assert chain.commands[0].identifiers.quote_name("Order Items") == "`Order Items`"


def test_new_command():
    assert isinstance(new_command("summary"), SummaryCommand)
    assert isinstance(new_command(" Count "), CountCommand)
    assert isinstance(new_command("dump"), DumpCommand)
    with pytest.raises(ConfigurationError):
        new_command("launch_missiles")


def test_split_commands():
    assert split_commands("summary, count,,dump") == ["summary", "count", "dump"]
    assert split_commands("") == []


def _executable(command, output, **kwargs):
    return CrawlExecutable(command, output_options=build_output_options(output_resource=output), **kwargs)


def test_summary_command(duckdb_datasource):
    output = StringOutputResource()
    executable = _executable("summary", output, crawl_options=build_crawl_options(schemas="sales"))

    catalog = executable.execute(duckdb_datasource)

    text = output.getvalue()
    assert "Database: DuckDB" in text
    assert "Schema sales" in text
    assert "customer_id INTEGER" in text
    assert "foreign key" in text and "references sales.customers" in text
    assert executable.catalog is catalog


def test_count_command(duckdb_datasource):
    output = StringOutputResource()
    executable = _executable("count", output, crawl_options=build_crawl_options(schemas="sales"))

    executable.execute(duckdb_datasource)

    lines = output.getvalue().splitlines()
    assert "sales.customers\t2" in lines
    assert "sales.orders\t3" in lines
    assert "sales.big_orders\t1" in lines


def test_dump_command_skips_large_objects(duckdb_datasource):
    output = StringOutputResource()
    executable = _executable(
        "dump", output, crawl_options=build_crawl_options(schemas="sales", tables=r"sales\.orders")
    )

    executable.execute(duckdb_datasource)

    lines = output.getvalue().splitlines()
    assert "sales.orders" in lines
    assert "id\tcustomer_id\tamount" in lines
    assert "10\t1\t250.0" in lines
    assert not any("receipt" in line for line in lines)


def test_dump_leaves_catalog_column_order_alone(duckdb_datasource):
    """Dump sorts a copy of the columns, so later commands see the catalog as it was."""
    catalog = CatalogBuilder(
        duckdb_datasource, build_crawl_options(schemas="sales", tables=r"sales\.orders")
    ).build()
    output = StringOutputResource()
    dump = DumpCommand()
    dump.crawl_options = build_crawl_options(alphabetical_sort_for_table_columns=True)
    dump.output_options = build_output_options(output_resource=output)

    dump.execute_on(catalog, duckdb_datasource)

    assert "amount\tcustomer_id\tid" in output.getvalue().splitlines()
    assert catalog.resolve_table("sales.orders").column_names == ["id", "customer_id", "amount", "receipt"]


def test_chain_of_commands_shares_output(duckdb_datasource):
    output = StringOutputResource()
    executable = _executable("count,summary", output, crawl_options=build_crawl_options(schemas="sales"))

    executable.execute(duckdb_datasource)

    text = output.getvalue()
    assert text.index("sales.orders\t3") < text.index("Schema sales")


def test_missing_query_template_is_an_error(duckdb_datasource):
    """A configured query name that resolves to nothing is a configuration error."""
    output = StringOutputResource()
    executable = _executable(
        "count",
        output,
        crawl_options=build_crawl_options(schemas="sales", tables=r"sales\.orders"),
        additional_configuration={"schemacrawl.count.query": "missing_file_name.sql"},
    )

    with pytest.raises(ConfigurationError):
        executable.execute(duckdb_datasource)


def test_template_defaults_reach_commands(duckdb_datasource, tmp_path):
    query_file = tmp_path / "count.sql"
    query_file.write_text("SELECT COUNT(*) + ${bonus} FROM ${table}")
    output = StringOutputResource()
    executable = _executable(
        "count",
        output,
        crawl_options=build_crawl_options(schemas="sales", tables=r"sales\.customers"),
        additional_configuration={"schemacrawl.count.query": str(query_file)},
        template_defaults={"bonus": "40"},
    )

    executable.execute(duckdb_datasource)

    assert output.getvalue().splitlines() == ["sales.customers\t42"]


def test_executable_binds_database_options(duckdb_datasource):
    overrides = build_override_options(identifier_quote_string="`")
    executable = _executable("summary", StringOutputResource(), override_options=overrides)

    executable.execute(duckdb_datasource)

    assert executable.database_specific_options.identifier_quote_string == "`"
    assert executable.database_specific_options.product_name == "DuckDB"


def test_count_against_offline_source_fails(sample_catalog):
    output = StringOutputResource()
    executable = _executable("count", output)

    with pytest.raises(OfflineError):
        executable.execute(OfflineDataSource("snap", {}, catalog=sample_catalog))
