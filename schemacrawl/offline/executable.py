"""Runs commands against a catalog snapshot instead of a live database."""

import logging
from typing import Optional

from ..catalog.catalog import Catalog
from ..crawl.strategy import RetrievalStrategySelector
from ..datasources.base import DataSource
from ..datasources.offline import OfflineDataSource
from ..filter.reducer import Reducer
from ..tools.executable import CrawlExecutable
from ..tools.options import OutputOptions, build_output_options, output_options_from_config
from ..tools.resources import CompressedFileInputResource
from ..utils.logging import new_crawl_logger
from .snapshot import SNAPSHOT_ENTRY, read_snapshot_resource

logger = logging.getLogger(__name__)


class OfflineSnapshotExecutable(CrawlExecutable):
    """Loads a snapshot, reduces it and runs the commands.

    The snapshot comes from the offline data source passed as the
    connection. Without one, it is read from the input options, which
    fails unless those name a snapshot.
    """

    def __init__(self, command: str, input_options: Optional[OutputOptions] = None, **kwargs):
        super().__init__(command, **kwargs)
        self.input_options = input_options

    def _check_connection(self, connection: Optional[DataSource]) -> None:
        if connection is None or not connection.is_offline:
            self.log.critical("Offline database connection not provided for the offline snapshot")

    def load_catalog(self, connection: Optional[DataSource]) -> Catalog:
        """Load the catalog of the snapshot.

        Raises:
            SnapshotError: If no snapshot can be read
        """
        if isinstance(connection, OfflineDataSource):
            if connection.catalog is not None:
                return connection.catalog
            if connection.snapshot_path is not None:
                self.input_options = build_output_options(
                    input_resource=CompressedFileInputResource(connection.snapshot_path, SNAPSHOT_ENTRY)
                )
        if self.input_options is None:
            self.input_options = output_options_from_config(self.additional_configuration)
        options = self.input_options
        return read_snapshot_resource(options.input_resource, options.input_encoding)

    def execute(self, connection: Optional[DataSource]) -> Catalog:
        """Run the commands against the snapshot.

        Args:
            connection: Offline data source holding or naming the snapshot

        Returns:
            The reduced catalog the commands ran against
        """
        name = connection.name if connection is not None else "offline"
        log = new_crawl_logger(datasource=name, command=self.command)
        self.log = log
        self._check_connection(connection)

        catalog = self.load_catalog(connection)
        if isinstance(connection, OfflineDataSource):
            offline = connection
            offline.catalog = catalog
        else:
            offline = OfflineDataSource(name, {}, catalog=catalog)
        offline.ensure_connected()

        Reducer(log).reduce_all(catalog, self.crawl_options)

        selector = RetrievalStrategySelector(offline, self.override_options, log)
        self.database_specific_options = selector.database_specific_options()
        self.execute_on(catalog, offline)
        self.catalog = catalog
        return catalog
