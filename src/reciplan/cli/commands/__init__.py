"""Command registration utilities for the Reciplan CLI."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from reciplan.cli.commands import ingest_video
from reciplan.cli.commands.ingest_video import RepositoryFactory
from reciplan.config.settings import Settings


def register_commands(
    app: typer.Typer,
    console: Console,
    *,
    settings: Optional[Settings] = None,
    repository_factory: Optional[RepositoryFactory] = None,
) -> None:
    """Attach command groups to the provided Typer application."""

    ingest_video.register(app, console, settings=settings, repository_factory=repository_factory)

    @app.callback(invoke_without_command=True)
    def main_callback(ctx: typer.Context) -> None:
        """Turn TikTok cooking videos into recipe drafts."""

        if ctx.invoked_subcommand is None:
            console.print("[bold green]Reciplan CLI ready for commands.[/bold green]")


__all__ = ["RepositoryFactory", "register_commands"]
