"""CLI entry point and application wiring."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from reciplan.cli.commands import RepositoryFactory, register_commands
from reciplan.config.settings import Settings


class CLIApplication:
    """Central orchestrator for the Reciplan Typer application."""

    def __init__(
        self,
        console: Optional[Console] = None,
        *,
        settings: Optional[Settings] = None,
        repository_factory: Optional[RepositoryFactory] = None,
    ) -> None:
        self.console = console or Console()
        self._app = typer.Typer(add_completion=False, rich_markup_mode="rich")
        register_commands(self._app, self.console, settings=settings, repository_factory=repository_factory)

    @property
    def app(self) -> typer.Typer:
        """Return the underlying Typer application instance."""

        return self._app

    def run(self, *, prog_name: Optional[str] = None, args: Optional[list[str]] = None) -> None:
        """Invoke the Typer application with optional overrides."""

        self._app(prog_name=prog_name, args=args)


def create_app(
    console: Optional[Console] = None,
    *,
    settings: Optional[Settings] = None,
    repository_factory: Optional[RepositoryFactory] = None,
) -> typer.Typer:
    """Factory helper that returns the configured Typer application."""

    return CLIApplication(console=console, settings=settings, repository_factory=repository_factory).app


def main() -> None:
    """Console script entry point for `python -m reciplan` or the installed CLI."""

    CLIApplication().run()


__all__ = ["CLIApplication", "create_app", "main"]
