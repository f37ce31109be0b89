"""Commands, command chains and the crawl executable."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..catalog.catalog import Catalog
from ..crawl.builder import CatalogBuilder
from ..crawl.strategy import DatabaseSpecificOptions, OverrideOptions, RetrievalStrategySelector
from ..crawl.templating import QueryTemplateEngine
from ..datasources.base import DataSource
from ..filter.reducer import Reducer
from ..filter.rules import CrawlOptions
from ..utils.logging import new_crawl_logger
from .options import OutputOptions, build_output_options

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """An operation that runs against a built and reduced catalog.

    Commands treat the catalog as read-only.
    """

    def __init__(self, command: str):
        """Initialize command.

        Args:
            command: Command name
        """
        self.command = command
        self.crawl_options = CrawlOptions()
        self.output_options: OutputOptions = build_output_options()
        self.database_specific_options: Optional[DatabaseSpecificOptions] = None
        self.additional_configuration: Dict[str, Any] = {}
        self.engine = QueryTemplateEngine()
        self.log = logger

    @property
    def identifiers(self):
        options = self.database_specific_options or DatabaseSpecificOptions()
        return options.identifiers()

    @abstractmethod
    def execute_on(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        """Run the command.

        Args:
            catalog: Catalog to read
            connection: Data source the catalog came from
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.command})"


class CommandChain(BaseCommand):
    """Runs commands in registration order against one catalog and connection.

    The chain's database specific options are handed to each command just
    before it runs, so commands added before the options were known still
    see them.
    """

    def __init__(self, command: str = "chain"):
        super().__init__(command)
        self._commands: List[BaseCommand] = []

    @property
    def commands(self) -> Sequence[BaseCommand]:
        return tuple(self._commands)

    def add_next(self, command: Optional[BaseCommand]) -> Optional[BaseCommand]:
        """Append a command; None is ignored."""
        if command is not None:
            self._commands.append(command)
        return command

    def execute_chain(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        if not self._commands:
            self.log.info("No commands to execute")
            return

        for command in self._commands:
            if self.database_specific_options is not None:
                command.database_specific_options = self.database_specific_options
            command.log = self.log
            self.log.debug(f"Executing command {command.command}")
            command.execute_on(catalog, connection)

    def execute_on(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        self.execute_chain(catalog, connection)

    def __len__(self) -> int:
        return len(self._commands)


def split_commands(command: str) -> List[str]:
    """Split a comma separated command list."""
    return [name.strip() for name in command.split(",") if name.strip()]


class CrawlExecutable(BaseCommand):
    """One crawl: probe, build, reduce, then run the commands.

    The command string may name several comma separated commands, which
    share the catalog built once for all of them.
    """

    def __init__(
        self,
        command: str,
        crawl_options: Optional[CrawlOptions] = None,
        override_options: Optional[OverrideOptions] = None,
        output_options: Optional[OutputOptions] = None,
        additional_configuration: Optional[Mapping[str, Any]] = None,
        template_defaults: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(command)
        self.crawl_options = crawl_options or CrawlOptions()
        self.override_options = override_options or OverrideOptions()
        self.output_options = output_options or build_output_options()
        self.additional_configuration = dict(additional_configuration or {})
        self.engine = QueryTemplateEngine(template_defaults)
        self.catalog: Optional[Catalog] = None

    def new_chain(self) -> CommandChain:
        """Create the command chain for this executable's command names."""
        from .commands import new_command

        chain = CommandChain(self.command)
        for name in split_commands(self.command):
            command = new_command(name)
            command.crawl_options = self.crawl_options
            command.output_options = self.output_options
            command.additional_configuration = dict(self.additional_configuration)
            command.engine = self.engine
            chain.add_next(command)
        return chain

    def execute(self, datasource: DataSource) -> Catalog:
        """Crawl a data source and run the commands against the catalog.

        Args:
            datasource: Connected data source

        Returns:
            The reduced catalog the commands ran against

        Raises:
            CrawlError: If the crawl fails as a whole
        """
        log = new_crawl_logger(datasource=datasource.name, command=self.command)
        self.log = log
        selector = RetrievalStrategySelector(datasource, self.override_options, log)
        log.info(f"Crawling {datasource.name}")

        builder = CatalogBuilder(
            datasource,
            crawl_options=self.crawl_options,
            override_options=self.override_options,
            engine=self.engine,
            log=log,
            selector=selector,
        )
        catalog = builder.build()
        Reducer(log).reduce_all(catalog, self.crawl_options)

        self.database_specific_options = selector.database_specific_options()
        self.execute_on(catalog, datasource)
        self.catalog = catalog
        return catalog

    def execute_on(self, catalog: Catalog, connection: Optional[DataSource]) -> None:
        chain = self.new_chain()
        chain.log = self.log
        chain.database_specific_options = self.database_specific_options
        chain.execute_chain(catalog, connection)

