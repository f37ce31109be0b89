"""Database metadata crawler: catalog building, reduction and offline snapshots."""

__version__ = "0.3.0"
