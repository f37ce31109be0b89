"""Offline use of catalog snapshots."""

from .snapshot import (
    SNAPSHOT_ENTRY,
    catalog_from_json,
    catalog_to_json,
    load_snapshot,
    read_snapshot,
    read_snapshot_resource,
    save_snapshot,
    write_snapshot,
)

__all__ = [
    "SNAPSHOT_ENTRY",
    "catalog_from_json",
    "catalog_to_json",
    "load_snapshot",
    "read_snapshot",
    "read_snapshot_resource",
    "save_snapshot",
    "write_snapshot",
]
