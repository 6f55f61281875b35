"""Command-line interface."""

from phenospine.cli.app import app

__all__ = ["app"]
