"""Command-line interface for the Sensex Options Tracker."""

from sensextracker.cli.main import cli, main

__all__ = ["cli", "main"]
