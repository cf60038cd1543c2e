"""Analytics events emitted over the lifetime of an ingest job."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from pydantic import Field
from rich.console import Console

from reciplan.models.base import ReciplanSnapshot
from reciplan.models.ingest import IngestErrorCode
from reciplan.utils.validation import extract_domain


class TelemetryEventName(str, Enum):
    """Names of the ingest analytics events."""

    INGEST_STARTED = "ingest_started"
    INGEST_FAILED = "ingest_failed"
    INGEST_SUCCEEDED = "ingest_succeeded"
    INGEST_CANCELLED = "ingest_cancelled"
    INGEST_RETRIED = "ingest_retried"


class TelemetryEvent(ReciplanSnapshot):
    """A single analytics event with its string-valued properties."""

    name: TelemetryEventName
    properties: Dict[str, Optional[str]] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


TelemetrySink = Callable[[TelemetryEvent], None]


class Telemetry:
    """Build ingest analytics events and hand them to a sink.

    Without an explicit sink, events are written to the console log. Source URLs
    are reduced to their domain before they leave this class.
    """

    def __init__(self, *, sink: Optional[TelemetrySink] = None, console: Optional[Console] = None) -> None:
        self._console = console or Console()
        self._sink = sink or self._log_event

    def ingest_started(self, url: str) -> None:
        self._emit(TelemetryEventName.INGEST_STARTED, url_domain=extract_domain(url))

    def ingest_failed(self, error_code: IngestErrorCode, job_id: Optional[str] = None) -> None:
        self._emit(TelemetryEventName.INGEST_FAILED, error_code=error_code.value, job_id=job_id)

    def ingest_succeeded(self, job_id: str, recipe_id: Optional[str] = None) -> None:
        self._emit(TelemetryEventName.INGEST_SUCCEEDED, job_id=job_id, recipe_id=recipe_id)

    def ingest_cancelled(self, job_id: Optional[str] = None) -> None:
        self._emit(TelemetryEventName.INGEST_CANCELLED, job_id=job_id)

    def ingest_retried(self, error_code: IngestErrorCode, job_id: Optional[str] = None) -> None:
        self._emit(TelemetryEventName.INGEST_RETRIED, original_error_code=error_code.value, job_id=job_id)

    def _emit(self, name: TelemetryEventName, **properties: Optional[str]) -> None:
        event = TelemetryEvent(name=name, properties=properties)
        try:
            self._sink(event)
        except Exception as exc:
            self._console.log(f"[yellow]Telemetry sink failed for {name.value}:[/yellow] {exc}")

    def _log_event(self, event: TelemetryEvent) -> None:
        details = ", ".join(f"{key}={value}" for key, value in event.properties.items() if value is not None)
        self._console.log(f"[dim]telemetry[/dim] {event.name.value} {details}".rstrip())


__all__ = ["Telemetry", "TelemetryEvent", "TelemetryEventName", "TelemetrySink"]
