"""Catalog snapshots for offline use.

A snapshot is a zip archive whose ``schemacrawler.data`` entry holds the
JSON form of the catalog.
"""

import io
import json
import logging
import zipfile
import zlib
from pathlib import Path
from typing import Union

from ..catalog.catalog import Catalog
from ..errors import SnapshotError
from ..tools.resources import CompressedFileInputResource, CompressedFileOutputResource, InputResource

logger = logging.getLogger(__name__)

SNAPSHOT_ENTRY = "schemacrawler.data"

# Errors of a missing, corrupt or incomplete snapshot
_LOAD_ERRORS = (zipfile.BadZipFile, zlib.error, KeyError, ValueError, TypeError, AttributeError, OSError, EOFError)


def catalog_to_json(catalog: Catalog) -> str:
    return json.dumps(catalog.to_dict(), indent=1, sort_keys=False)


def catalog_from_json(text: str) -> Catalog:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Snapshot does not hold a catalog")
    return Catalog.from_dict(data)


def save_snapshot(catalog: Catalog) -> bytes:
    """Serialize a catalog to snapshot archive bytes.

    Raises:
        SnapshotError: If the catalog cannot be serialized
    """
    try:
        archive = io.BytesIO()
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(SNAPSHOT_ENTRY, catalog_to_json(catalog).encode("utf-8"))
        return archive.getvalue()
    except (TypeError, ValueError, OSError) as e:
        raise SnapshotError(f"Cannot save snapshot: {e}") from e


def load_snapshot(archive: bytes) -> Catalog:
    """Rebuild a catalog from snapshot archive bytes.

    Raises:
        SnapshotError: If the archive is corrupt, incomplete or has no catalog entry
    """
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            text = zf.read(SNAPSHOT_ENTRY).decode("utf-8")
        return catalog_from_json(text)
    except _LOAD_ERRORS as e:
        raise SnapshotError(f"Cannot load snapshot: {e}") from e


def write_snapshot(catalog: Catalog, path: Union[str, Path]) -> Path:
    """Write a snapshot file, replacing any existing file only once complete.

    Raises:
        SnapshotError: If the file cannot be written
    """
    path = Path(path)
    try:
        text = catalog_to_json(catalog)
        with CompressedFileOutputResource(path, SNAPSHOT_ENTRY).open_writer() as writer:
            writer.write(text)
    except (TypeError, ValueError, OSError) as e:
        raise SnapshotError(f"Cannot write snapshot {path}: {e}") from e
    logger.info(f"Wrote snapshot of {len(catalog.tables)} tables to {path}")
    return path


def read_snapshot_resource(resource: InputResource, encoding: str = "utf-8") -> Catalog:
    """Load a catalog from an input resource holding the snapshot's catalog text.

    Raises:
        SnapshotError: If the resource cannot be read or does not hold a catalog
    """
    try:
        return catalog_from_json(resource.read_text(encoding))
    except _LOAD_ERRORS as e:
        raise SnapshotError(f"Cannot load snapshot from {resource.description}: {e}") from e


def read_snapshot(path: Union[str, Path]) -> Catalog:
    """Read a snapshot file.

    Raises:
        SnapshotError: If the file is missing, corrupt or incomplete
    """
    catalog = read_snapshot_resource(CompressedFileInputResource(path, SNAPSHOT_ENTRY))
    logger.info(f"Read snapshot of {len(catalog.tables)} tables from {path}")
    return catalog
