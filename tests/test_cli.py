"""Tests for the schemacrawl CLI."""

import duckdb
import pytest
from click.testing import CliRunner

from schemacrawl.cli.schemacrawl import cli
from schemacrawl.offline.snapshot import read_snapshot


@pytest.fixture
def shop_database(tmp_path):
    """DuckDB database file with two related tables."""
    path = tmp_path / "shop.duckdb"
    conn = duckdb.connect(str(path))
    conn.execute("CREATE TABLE customers (id INTEGER PRIMARY KEY, name VARCHAR)")
    conn.execute("CREATE TABLE orders (id INTEGER PRIMARY KEY, customer_id INTEGER REFERENCES customers(id))")
    conn.execute("INSERT INTO customers VALUES (1, 'Alice'), (2, 'Bob')")
    conn.close()
    return path


@pytest.fixture
def config_file(tmp_path, shop_database):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
datasource:
  name: shop
  type: duckdb
  path: {shop_database}
"""
    )
    return path


def test_summary(config_file):
    result = CliRunner().invoke(cli, ["--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "Schema main" in result.output
    assert "table orders" in result.output


def test_command_chain_to_file(config_file, tmp_path):
    out = tmp_path / "out.txt"

    result = CliRunner().invoke(
        cli, ["--config", str(config_file), "--command", "count", "--command", "summary", "--output", str(out)]
    )

    assert result.exit_code == 0, result.output
    text = out.read_text(encoding="utf-8")
    assert "main.customers\t2" in text
    assert "Schema main" in text


def test_snapshot_then_offline(config_file, tmp_path):
    """A snapshot written after a crawl can be summarized offline."""
    snapshot = tmp_path / "shop.snapshot"
    runner = CliRunner()

    crawl = runner.invoke(cli, ["--config", str(config_file), "--snapshot", str(snapshot)])
    assert crawl.exit_code == 0, crawl.output
    assert read_snapshot(snapshot).resolve_table("main.orders") is not None

    offline = runner.invoke(cli, ["--offline", str(snapshot)])
    assert offline.exit_code == 0, offline.output
    assert "references main.customers" in offline.output


def test_offline_count_fails_cleanly(config_file, tmp_path):
    snapshot = tmp_path / "shop.snapshot"
    runner = CliRunner()
    runner.invoke(cli, ["--config", str(config_file), "--snapshot", str(snapshot)])

    result = runner.invoke(cli, ["--offline", str(snapshot), "--command", "count"])

    assert result.exit_code == 1
    assert "Cannot execute queries against offline snapshot" in result.output


def test_corrupt_snapshot(tmp_path):
    snapshot = tmp_path / "bad.snapshot"
    snapshot.write_bytes(b"garbage")

    result = CliRunner().invoke(cli, ["--offline", str(snapshot)])

    assert result.exit_code == 1
    assert "Cannot load snapshot" in result.output


def test_unknown_command(config_file):
    result = CliRunner().invoke(cli, ["--config", str(config_file), "--command", "explode"])

    assert result.exit_code == 1
    assert "Unknown command: explode" in result.output


def test_requires_a_source():
    result = CliRunner().invoke(cli, [])

    assert result.exit_code == 2
    assert "--offline" in result.output
