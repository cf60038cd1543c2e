"""Ingest session: submits a video URL and tracks the resulting job to completion."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, List, Optional, Set

from rich.console import Console

from reciplan.config.settings import Settings, get_settings
from reciplan.models.ingest import IngestErrorCode, IngestStatus, JobDetails, JobHandle, SessionState
from reciplan.services import ErrorClassifier, JobRepository
from reciplan.services.errors import CatalogErrorClassifier
from reciplan.services.polling import PollSchedule, PollToken, SleepFunc
from reciplan.services.telemetry import Telemetry
from reciplan.utils.progress import map_status
from reciplan.utils.validation import is_tiktok_url

StateListener = Callable[[SessionState], None]
DisposeCallback = Callable[["IngestSession"], None]

URL_REQUIRED_MESSAGE = "URL is required"
INVALID_URL_MESSAGE = "Please enter a valid TikTok URL"
JOB_LIMIT_MESSAGE = "Job limit reached. Please wait for a job to complete before starting a new one."
START_FAILED_MESSAGE = "Failed to start ingest job"


class IngestSession:
    """Single-job state machine behind the "add recipe from video" flow.

    The session moves through ``idle -> submitting -> polling -> completed |
    failed``. All state lives in one immutable :class:`SessionState` snapshot
    that is replaced on every change and pushed to subscribers. At most one
    polling loop is live at a time; transient poll failures are absorbed while
    job failures reported by the service are classified and surfaced.
    """

    def __init__(
        self,
        *,
        repository: JobRepository,
        classifier: Optional[ErrorClassifier] = None,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        telemetry: Optional[Telemetry] = None,
        schedule: Optional[PollSchedule] = None,
        sleep: Optional[SleepFunc] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._repository = repository
        self._classifier = classifier or CatalogErrorClassifier(self._settings.error_catalog)
        self._telemetry = telemetry or Telemetry(console=self._console)
        self._schedule = schedule or PollSchedule.from_settings(self._settings)
        self._sleep = sleep
        self._max_active_jobs = self._settings.max_active_jobs
        self._verbose = self._settings.log_level.upper() == "DEBUG"

        self._state = SessionState()
        self._listeners: List[StateListener] = []
        self._dispose_callbacks: List[DisposeCallback] = []
        self._poll_token: Optional[PollToken] = None
        self._poll_count = 0
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._disposed = False

    # ------------------------------------------------------------------ #
    # Observation                                                        #
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> SessionState:
        """Current read-only snapshot."""

        return self._state

    @property
    def is_polling(self) -> bool:
        return self._poll_token is not None

    @property
    def poll_count(self) -> int:
        """Number of polls in the current loop that did not reach a terminal status."""

        return self._poll_count

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it.

        The listener is invoked immediately with the current snapshot, then once
        per state change.
        """

        self._listeners.append(listener)
        listener(self._state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_dispose_callback(self, callback: DisposeCallback) -> None:
        self._dispose_callbacks.append(callback)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def validate_url(self, url: str) -> bool:
        """Check ``url`` against the TikTok link pattern and record the result."""

        is_valid = is_tiktok_url((url or "").strip())
        self._update(is_valid_url=is_valid)
        return is_valid

    async def submit(self, url: str) -> Optional[JobHandle]:
        """Start an ingest job for ``url`` and begin polling it.

        Returns the accepted :class:`JobHandle`, or ``None`` when the call was
        ignored (already submitting or tracking a job) or rejected (invalid URL,
        job limit reached, service error). Rejections are reported through
        ``state.error_message``.
        """

        self._ensure_active()
        if self._state.is_loading or self.is_polling:
            if self._verbose:
                self._console.log("[dim]Ignoring submit while a job is already in progress.[/dim]")
            return None

        if not self.validate_url(url):
            message = URL_REQUIRED_MESSAGE if not url or not url.strip() else INVALID_URL_MESSAGE
            self._update(error_message=message)
            return None

        if self._state.is_job_limit_reached:
            self._update(error_message=JOB_LIMIT_MESSAGE)
            return None

        self._update(
            is_loading=True,
            job_id=None,
            job_status=None,
            job_details=None,
            progress=SessionState().progress,
            error_message=None,
            error_code=None,
            can_retry=False,
            retry_label=None,
        )

        try:
            handle = await self._repository.start_ingest(url.strip())
        except Exception as exc:
            self._console.log(f"[red]Failed to start ingest:[/red] {exc}")
            if not self._disposed:
                self._update(is_loading=False, error_message=str(exc) or START_FAILED_MESSAGE)
            return None

        if self._disposed:
            return handle

        self._update(
            is_loading=False,
            job_id=handle.job_id,
            job_status=handle.status,
            progress=map_status(handle.status),
        )
        self._telemetry.ingest_started(url)

        if handle.status.is_terminal:
            self.apply_job_details(JobDetails(job_id=handle.job_id, status=handle.status, recipe_id=handle.recipe_id))
        else:
            self._start_polling(handle.job_id)
        self._spawn(self.check_active_job_count())
        return handle

    def apply_job_details(self, details: JobDetails) -> None:
        """Fold one status payload into the session state.

        ``FAILED`` payloads are classified for messaging and retry eligibility;
        a failure reported without a code is treated as ``UNKNOWN_ERROR``. Any
        terminal status ends the polling loop.
        """

        job_id = details.job_id or self._state.job_id
        if details.job_id is None and job_id is not None:
            details = details.model_copy(update={"job_id": job_id})

        status = details.status
        changes: dict[str, Any] = {
            "job_id": job_id,
            "job_status": status,
            "job_details": details,
            "progress": map_status(status),
        }

        error_code: Optional[IngestErrorCode] = None
        if status.is_error:
            error_code = details.error_code or IngestErrorCode.UNKNOWN_ERROR
            changes.update(
                error_code=error_code,
                error_message=self._classifier.get_message(error_code),
                can_retry=self._classifier.is_recoverable(error_code),
                retry_label=self._classifier.get_retry_label(error_code),
            )

        if status.is_terminal:
            self._stop_polling()
            changes["is_polling"] = False

        self._update(**changes)

        if status is IngestStatus.COMPLETED and job_id is not None:
            self._telemetry.ingest_succeeded(job_id, details.recipe_id)
        elif error_code is not None:
            self._console.log(f"[red]Ingest job {job_id} failed:[/red] {error_code.value}")
            self._telemetry.ingest_failed(error_code, job_id)

    def retry(self) -> bool:
        """Resume polling the current job after a recoverable failure.

        Returns ``False`` and leaves the state untouched when there is no failed
        job, the failure is not recoverable, or a loop is already running.
        """

        self._ensure_active()
        job_id = self._state.job_id
        error_code = self._state.error_code
        if job_id is None or error_code is None or self.is_polling:
            return False
        if not self._classifier.is_recoverable(error_code):
            self._console.log(f"[yellow]Retry rejected for job {job_id}:[/yellow] {error_code.value} is not recoverable")
            return False

        self._update(error_message=None, error_code=None, can_retry=False, retry_label=None)
        self._telemetry.ingest_retried(error_code, job_id)
        self._start_polling(job_id)
        return True

    def cancel(self) -> None:
        """Stop polling without changing the last known job status."""

        if self._poll_token is None:
            return
        self._stop_polling()
        self._update(is_polling=False)

        status = self._state.job_status
        if status is None or not status.is_terminal:
            self._telemetry.ingest_cancelled(self._state.job_id)

    async def check_active_job_count(self) -> int:
        """Refresh ``active_job_count`` and ``is_job_limit_reached``.

        When the count cannot be fetched the session fails open: it records zero
        active jobs so the user is never blocked by a degraded count endpoint.
        """

        try:
            count = max(0, int(await self._repository.get_active_job_count()))
        except Exception as exc:
            self._console.log(f"[yellow]Active job count unavailable, allowing submissions:[/yellow] {exc}")
            count = 0

        if not self._disposed:
            self._update(active_job_count=count, is_job_limit_reached=count >= self._max_active_jobs)
        return count

    def dismiss_error(self) -> None:
        """Hide the current error message while keeping retry information."""

        self._update(error_message=None)

    def can_retry_current_status(self) -> bool:
        error_code = self._state.error_code
        return (
            self._state.job_status is IngestStatus.FAILED
            and error_code is not None
            and self._classifier.is_recoverable(error_code)
        )

    async def join(self) -> None:
        """Wait until the polling loop and background checks have finished."""

        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            results = await asyncio.gather(*pending, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    raise result

    def dispose(self) -> None:
        """Cancel all work, drop subscribers, and notify the owner."""

        if self._disposed:
            return
        self._stop_polling()
        self._update(is_polling=False, is_loading=False)
        self._disposed = True
        for task in list(self._tasks):
            task.cancel()
        self._listeners.clear()

        callbacks, self._dispose_callbacks = self._dispose_callbacks, []
        for callback in callbacks:
            callback(self)

    # ------------------------------------------------------------------ #
    # Polling                                                            #
    # ------------------------------------------------------------------ #
    def _start_polling(self, job_id: str) -> None:
        self._stop_polling()
        token = PollToken(job_id=job_id)
        self._poll_token = token
        self._poll_count = 0
        self._update(is_polling=True)
        self._spawn(self._poll_loop(token), name=f"ingest-poll-{job_id}")

    def _stop_polling(self) -> None:
        token, self._poll_token = self._poll_token, None
        if token is not None:
            token.cancel()

    async def _poll_loop(self, token: PollToken) -> None:
        job_id = token.job_id
        while not token.cancelled:
            try:
                details = await self._repository.poll_job(job_id)
            except Exception as exc:
                if token.cancelled:
                    return
                self._poll_count += 1
                delay = self._schedule.interval_for(self._poll_count)
                self._console.log(f"[yellow]Polling job {job_id} failed:[/yellow] {exc}; retrying in {delay:.1f}s")
                if await token.wait(delay, self._sleep):
                    return
                continue

            # The token is cancelled when the session stopped or replaced this loop.
            if token.cancelled:
                return

            if details.job_id is None:
                details = details.model_copy(update={"job_id": job_id})
            if self._verbose:
                self._console.log(f"[dim]Job {job_id} status: {details.status.value}[/dim]")

            self.apply_job_details(details)
            if details.status.is_terminal:
                return

            self._poll_count += 1
            if await token.wait(self._schedule.interval_for(self._poll_count), self._sleep):
                return

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _update(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        snapshot = self._state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:  # pragma: no cover - listener bugs are only logged
                self._console.log(f"[red]Session listener failed:[/red] {exc}")

    def _spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _ensure_active(self) -> None:
        if self._disposed:
            raise RuntimeError("IngestSession has been disposed.")


__all__ = [
    "INVALID_URL_MESSAGE",
    "IngestSession",
    "JOB_LIMIT_MESSAGE",
    "START_FAILED_MESSAGE",
    "StateListener",
    "URL_REQUIRED_MESSAGE",
]
