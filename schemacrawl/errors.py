"""Exceptions raised by the crawler."""


class SchemaCrawlError(Exception):
    """Base class for crawler errors."""


class CrawlError(SchemaCrawlError):
    """Raised when the connection or driver fails in a way that aborts a crawl."""


class RetrievalError(SchemaCrawlError):
    """Raised when metadata for a single entity cannot be retrieved."""


class ConfigurationError(SchemaCrawlError):
    """Raised for invalid crawler configuration."""


class SnapshotError(SchemaCrawlError):
    """Raised when a catalog snapshot cannot be written or read."""


class OfflineError(SchemaCrawlError):
    """Raised when an operation needs a live connection but only a snapshot is available."""
