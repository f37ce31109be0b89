"""Command line interface."""

from .schemacrawl import cli

__all__ = ["cli"]
