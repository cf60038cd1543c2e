"""Command-line interface package for Reciplan."""

from reciplan.cli.main import CLIApplication, create_app, main

__all__ = ["CLIApplication", "create_app", "main"]
