"""Tests for running commands against snapshots."""

import logging

import pytest

from schemacrawl.crawl.builder import CatalogBuilder
from schemacrawl.datasources.duckdb import DuckDBDataSource
from schemacrawl.datasources.offline import OfflineDataSource
from schemacrawl.errors import SnapshotError
from schemacrawl.filter import build_crawl_options
from schemacrawl.offline.executable import OfflineSnapshotExecutable
from schemacrawl.offline.snapshot import catalog_to_json, write_snapshot
from schemacrawl.tools.executable import CrawlExecutable
from schemacrawl.tools.options import build_output_options
from schemacrawl.tools.resources import StringInputResource, StringOutputResource

KEEP_ALL = build_crawl_options(sequences="include_all", synonyms="include_all")


def _executable(command, output, **kwargs):
    return OfflineSnapshotExecutable(command, output_options=build_output_options(output_resource=output), **kwargs)


def test_summary_from_snapshot_file(sample_catalog, tmp_path):
    """Commands run against a snapshot loaded from disk."""
    path = tmp_path / "sample.snapshot"
    write_snapshot(sample_catalog, path)
    output = StringOutputResource()

    with OfflineDataSource("snap", {"snapshot": str(path)}) as ds:
        catalog = _executable("summary", output, crawl_options=KEEP_ALL).execute(ds)

    assert catalog == sample_catalog
    assert "Schema PUBLIC" in output.getvalue()
    assert "foreign key FK_ORDERS_CUSTOMERS (CUSTOMER_ID) references PUBLIC.CUSTOMERS" in output.getvalue()


def test_snapshot_is_reduced(sample_catalog):
    """The crawl rules are applied to the loaded catalog."""
    output = StringOutputResource()
    executable = _executable("summary", output, crawl_options=build_crawl_options(schemas="^PUBLIC$"))

    catalog = executable.execute(OfflineDataSource("snap", {}, catalog=sample_catalog))

    assert [s.name for s in catalog.schemas.values()] == ["PUBLIC"]
    assert "Schema HR" not in output.getvalue()
    assert catalog.dangling_foreign_keys() == []


def test_unconnected_offline_source_reads_snapshot(sample_catalog, tmp_path):
    path = tmp_path / "sample.snapshot"
    write_snapshot(sample_catalog, path)

    executable = _executable("summary", StringOutputResource(), crawl_options=KEEP_ALL)
    catalog = executable.execute(OfflineDataSource("snap", {"snapshot": str(path)}))

    assert catalog == sample_catalog


def test_live_connection_is_reported(duckdb_datasource, caplog):
    """A live connection is reported as critical, and the load then fails for lack of a snapshot."""
    with caplog.at_level(logging.CRITICAL):
        with pytest.raises(SnapshotError):
            _executable("summary", StringOutputResource()).execute(duckdb_datasource)

    assert "Offline database connection not provided" in caplog.text


def test_no_connection_uses_input_options(sample_catalog):
    """Without a connection the snapshot text comes from the input options."""
    input_options = build_output_options(input_resource=StringInputResource(catalog_to_json(sample_catalog)))
    output = StringOutputResource()

    catalog = _executable("summary", output, input_options=input_options, crawl_options=KEEP_ALL).execute(None)

    assert catalog == sample_catalog
    assert "Schema HR" in output.getvalue()


def test_no_connection_and_no_input_fails():
    with pytest.raises(SnapshotError):
        _executable("summary", StringOutputResource()).execute(None)


def test_offline_source_rebuilds_same_catalog(sample_catalog, tmp_path):
    """Crawling an offline source gives back the catalog it holds."""
    rebuilt = CatalogBuilder(OfflineDataSource("sample", {}, catalog=sample_catalog), KEEP_ALL).build()
    rebuilt.crawl_info = sample_catalog.crawl_info

    assert rebuilt.to_dict()["schemas"] == sample_catalog.to_dict()["schemas"]


def test_duckdb_snapshot_end_to_end(tmp_path):
    """Crawl a database file, snapshot it, then summarize the snapshot."""
    db_path = tmp_path / "shop.duckdb"
    with DuckDBDataSource("shop", {"path": str(db_path), "read_only": False}) as ds:
        ds.connection.execute("CREATE TABLE items (id INTEGER PRIMARY KEY, label VARCHAR)")
        live = CrawlExecutable("serialize", output_options=build_output_options(output_resource=StringOutputResource()))
        catalog = live.execute(ds)
    path = write_snapshot(catalog, tmp_path / "shop.snapshot")
    output = StringOutputResource()

    with OfflineDataSource("shop", {"snapshot": str(path)}) as offline:
        _executable("summary", output).execute(offline)

    assert "table items" in output.getvalue()
    assert "id INTEGER not null [pk]" in output.getvalue()
