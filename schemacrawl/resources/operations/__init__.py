"""Bundled operation query templates."""
