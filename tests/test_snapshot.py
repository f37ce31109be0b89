"""Tests for catalog snapshots."""

import io
import zipfile

import pytest

from schemacrawl.crawl.builder import CatalogBuilder
from schemacrawl.errors import SnapshotError
from schemacrawl.offline.snapshot import (
    SNAPSHOT_ENTRY,
    load_snapshot,
    read_snapshot,
    save_snapshot,
    write_snapshot,
)


def test_round_trip(sample_catalog):
    """A saved and loaded catalog equals the catalog that was saved."""
    loaded = load_snapshot(save_snapshot(sample_catalog))

    assert loaded == sample_catalog
    employees = loaded.resolve_table("HR.EMPLOYEES")
    assert employees.foreign_keys[0].primary_table is loaded.resolve_table("PUBLIC.CUSTOMERS")


def test_round_trip_of_crawled_catalog(duckdb_datasource, tmp_path):
    catalog = CatalogBuilder(duckdb_datasource).build()
    path = tmp_path / "crawl.snapshot"

    write_snapshot(catalog, path)
    loaded = read_snapshot(path)

    assert loaded == catalog
    assert loaded.crawl_info.crawl_timestamp == catalog.crawl_info.crawl_timestamp
    assert loaded.resolve_table("sales.orders").foreign_keys[0].primary_table.name == "customers"


def test_archive_has_single_entry(sample_catalog):
    with zipfile.ZipFile(io.BytesIO(save_snapshot(sample_catalog))) as archive:
        assert archive.namelist() == [SNAPSHOT_ENTRY]


def test_corrupt_archive():
    with pytest.raises(SnapshotError):
        load_snapshot(b"this is not a zip archive")


def test_truncated_archive(sample_catalog):
    data = save_snapshot(sample_catalog)

    with pytest.raises(SnapshotError):
        load_snapshot(data[: len(data) // 2])


def test_missing_entry():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("something.else", "{}")

    with pytest.raises(SnapshotError):
        load_snapshot(buffer.getvalue())


def test_entry_without_catalog():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(SNAPSHOT_ENTRY, '{"format_version": 1}')

    with pytest.raises(SnapshotError):
        load_snapshot(buffer.getvalue())


def test_missing_file(tmp_path):
    with pytest.raises(SnapshotError):
        read_snapshot(tmp_path / "nothing.snapshot")


def test_failed_write_keeps_existing_file(sample_catalog, tmp_path, monkeypatch):
    """A write that fails part way leaves the previous snapshot in place."""
    path = tmp_path / "catalog.snapshot"
    write_snapshot(sample_catalog, path)
    before = path.read_bytes()

    def broken(catalog):
        raise TypeError("cannot serialize")

    monkeypatch.setattr("schemacrawl.offline.snapshot.catalog_to_json", broken)
    with pytest.raises(SnapshotError):
        write_snapshot(sample_catalog, path)

    assert path.read_bytes() == before
    assert [p.name for p in tmp_path.iterdir()] == ["catalog.snapshot"]


def test_interrupted_replace_leaves_no_partial_file(sample_catalog, tmp_path, monkeypatch):
    path = tmp_path / "catalog.snapshot"

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("schemacrawl.tools.resources.os.replace", broken_replace)
    with pytest.raises(SnapshotError):
        write_snapshot(sample_catalog, path)

    assert list(tmp_path.iterdir()) == []
