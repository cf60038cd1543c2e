"""CLI commands for turning TikTok videos into recipe drafts."""

from __future__ import annotations

import asyncio
import json
from contextlib import AbstractAsyncContextManager
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn
from rich.table import Table

from reciplan.client import HttpIngestRepository, IngestApiError
from reciplan.config.settings import Settings, get_settings
from reciplan.models.ingest import TOTAL_STEPS, IngestStatus, JobDetails, SessionState
from reciplan.services import JobRepository
from reciplan.services.errors import CatalogErrorClassifier
from reciplan.services.registry import SessionRegistry
from reciplan.services.session import IngestSession, StateListener
from reciplan.utils.progress import map_status, progress_text
from reciplan.utils.validation import InvalidVideoURLError, validate_tiktok_url

RepositoryFactory = Callable[[], AbstractAsyncContextManager[JobRepository]]


class IngestExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    SERVICE_ERROR = 2
    JOB_FAILED_RETRYABLE = 3
    JOB_FAILED = 4
    CANCELLED = 130


def register(
    app: typer.Typer,
    console: Console,
    *,
    settings: Optional[Settings] = None,
    repository_factory: Optional[RepositoryFactory] = None,
) -> None:
    """Register CLI commands for video ingestion."""

    def get_app_settings() -> Settings:
        return settings or get_settings()

    def open_repository() -> AbstractAsyncContextManager[JobRepository]:
        if repository_factory is not None:
            return repository_factory()
        return HttpIngestRepository(settings=get_app_settings(), console=console)

    def build_registry(repository: JobRepository) -> SessionRegistry:
        return SessionRegistry(
            lambda: IngestSession(repository=repository, settings=get_app_settings(), console=console)
        )

    async def run_ingest(url: str, *, listener: Optional[StateListener], interactive: bool) -> SessionState:
        async with open_repository() as repository:
            registry = build_registry(repository)
            async with registry.session_scope() as session:
                unsubscribe = session.subscribe(listener) if listener else None
                try:
                    if await session.submit(url) is None:
                        return session.state
                    await session.join()

                    while interactive and session.state.can_retry:
                        console.print(f"[red]Failed:[/red] {session.state.error_message}")
                        label = session.state.retry_label or "Try again"
                        if not await asyncio.to_thread(typer.confirm, f"{label}?", default=True):
                            break
                        if not session.retry():
                            break
                        await session.join()
                    return session.state
                finally:
                    if unsubscribe is not None:
                        unsubscribe()

    @app.command("ingest")
    def ingest(
        url: str = typer.Argument(..., help="TikTok video URL to turn into a recipe"),
        quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress interactive output and print JSON"),
    ) -> None:
        try:
            url = validate_tiktok_url(url)
        except InvalidVideoURLError as exc:
            console.print(f"[red]Error:[/red] Please enter a valid TikTok URL\n{exc}")
            raise typer.Exit(code=IngestExitCode.INVALID_INPUT) from exc

        try:
            if quiet:
                state = asyncio.run(run_ingest(url, listener=None, interactive=False))
            else:
                progress = Progress(
                    TextColumn("{task.description}"),
                    BarColumn(),
                    MofNCompleteColumn(),
                    console=console,
                    transient=True,
                )
                with progress as running_progress:
                    task_id = running_progress.add_task("Submitting", total=TOTAL_STEPS)
                    listener = _progress_handler_factory(running_progress, task_id)
                    state = asyncio.run(run_ingest(url, listener=listener, interactive=True))
        except KeyboardInterrupt:
            console.print("[yellow]Cancelled.[/yellow] The job keeps running on the server.")
            raise typer.Exit(code=IngestExitCode.CANCELLED) from None

        exit_code = _exit_code_for(state)
        if quiet:
            typer.echo(json.dumps(_state_payload(state), ensure_ascii=False, indent=2))
        else:
            _render_outcome(console, state)
        if exit_code != IngestExitCode.SUCCESS:
            raise typer.Exit(code=exit_code)

    @app.command("validate-url")
    def validate_url(url: str = typer.Argument(..., help="URL to check")) -> None:
        try:
            normalized = validate_tiktok_url(url)
        except InvalidVideoURLError as exc:
            console.print(f"[red]Not a TikTok video URL[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.INVALID_INPUT) from exc
        console.print(f"[green]Valid TikTok URL detected[/green] {normalized}")

    @app.command("active-jobs")
    def active_jobs(
        json_output: bool = typer.Option(False, "--json", help="Output the count as JSON"),
    ) -> None:
        async def _count() -> SessionState:
            async with open_repository() as repository:
                registry = build_registry(repository)
                async with registry.session_scope() as session:
                    return session.state

        state = asyncio.run(_count())
        limit = get_app_settings().max_active_jobs

        if json_output:
            payload = {
                "active_job_count": state.active_job_count,
                "max_active_jobs": limit,
                "is_job_limit_reached": state.is_job_limit_reached,
            }
            typer.echo(json.dumps(payload, indent=2))
            return

        if state.is_job_limit_reached:
            console.print("[yellow]Job Limit Reached[/yellow]")
            console.print("Please wait for a job to complete before starting a new one")
        else:
            console.print(f"[bold]Active Jobs:[/bold] {state.active_job_count}")
            console.print(f"You can process up to {limit} videos simultaneously")

    @app.command("job-status")
    def job_status(
        job_id: str = typer.Argument(..., help="Ingest job identifier"),
        json_output: bool = typer.Option(False, "--json", help="Output job status as JSON"),
    ) -> None:
        async def _poll_once() -> JobDetails:
            async with open_repository() as repository:
                return await repository.poll_job(job_id)

        try:
            details = asyncio.run(_poll_once())
        except IngestApiError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.SERVICE_ERROR) from exc

        if details.job_id is None:
            details = details.model_copy(update={"job_id": job_id})

        if json_output:
            typer.echo(json.dumps(_details_payload(details, get_app_settings()), ensure_ascii=False, indent=2))
            return

        _render_job_table(console, details, get_app_settings())


def _progress_handler_factory(progress: Progress, task_id: TaskID) -> StateListener:
    def handler(state: SessionState) -> None:
        if state.job_status is None:
            return
        progress.update(
            task_id,
            completed=state.progress.step,
            description=f"{state.progress.title}: {state.progress.description}",
        )

    return handler


def _exit_code_for(state: SessionState) -> int:
    if state.job_id is None:
        if not state.is_valid_url or state.is_job_limit_reached:
            return IngestExitCode.INVALID_INPUT
        return IngestExitCode.SERVICE_ERROR
    if state.job_status is IngestStatus.COMPLETED:
        return IngestExitCode.SUCCESS
    if state.job_status is IngestStatus.FAILED:
        return IngestExitCode.JOB_FAILED_RETRYABLE if state.can_retry else IngestExitCode.JOB_FAILED
    return IngestExitCode.CANCELLED


def _state_payload(state: SessionState) -> dict[str, object]:
    details = state.job_details
    return {
        "job_id": state.job_id,
        "status": state.job_status.value if state.job_status else None,
        "step": state.progress.step,
        "total_steps": state.progress.total_steps,
        "recipe_id": details.recipe_id if details else None,
        "error_code": state.error_code.value if state.error_code else None,
        "error_message": state.error_message,
        "can_retry": state.can_retry,
        "retry_label": state.retry_label,
        "active_job_count": state.active_job_count,
    }


def _details_payload(details: JobDetails, settings: Settings) -> dict[str, object]:
    progress = map_status(details.status)
    payload: dict[str, object] = {
        "job_id": details.job_id,
        "status": details.status.value,
        "step": progress.step,
        "total_steps": progress.total_steps,
        "title": progress.title,
        "description": progress.description,
        "recipe_id": details.recipe_id,
        "error_code": details.error_code.value if details.error_code else None,
    }
    if details.error_code is not None:
        classifier = CatalogErrorClassifier(settings.error_catalog)
        payload["error_message"] = classifier.get_message(details.error_code)
        payload["can_retry"] = classifier.is_recoverable(details.error_code)
    return payload


def _render_outcome(console: Console, state: SessionState) -> None:
    if state.job_id is None:
        console.print(f"[red]Error:[/red] {state.error_message or 'Failed to start ingest job'}")
        return

    if state.job_status is IngestStatus.COMPLETED:
        recipe_id = state.job_details.recipe_id if state.job_details else None
        console.print(Panel.fit(f"[bold]{state.progress.description}[/bold]", title="Complete", border_style="green"))
        console.print(f"Job ID: {state.job_id}")
        console.print(f"Recipe ID: {recipe_id or 'n/a'}")
        return

    if state.job_status is IngestStatus.FAILED:
        body = state.error_message or state.progress.description
        console.print(Panel.fit(body, title="Processing failed", border_style="red"))
        console.print(f"Job ID: {state.job_id}")
        if state.can_retry:
            console.print(f"Run `reciplan job-status {state.job_id}` to check on it later.")
        return

    console.print(f"[yellow]Stopped tracking job {state.job_id}[/yellow] ({progress_text(state.progress)})")


def _render_job_table(console: Console, details: JobDetails, settings: Settings) -> None:
    progress = map_status(details.status)
    table = Table(title=f"Ingest Job {details.job_id}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")

    table.add_row("Status", details.status.value)
    table.add_row("Progress", progress_text(progress))
    table.add_row("Step", progress.title)
    table.add_row("Detail", progress.description)
    if details.title:
        table.add_row("Title", details.title)
    if details.recipe_id:
        table.add_row("Recipe ID", details.recipe_id)
    if details.error_code is not None:
        classifier = CatalogErrorClassifier(settings.error_catalog)
        table.add_row("Error", classifier.get_summary(details.error_code))
        table.add_row("Message", classifier.get_message(details.error_code))
    if details.parse_errors:
        table.add_row("Warnings", "\n".join(details.parse_errors))

    console.print(table)


__all__ = ["IngestExitCode", "RepositoryFactory", "register"]
