"""Service layer for the Reciplan ingest client."""

from __future__ import annotations

from typing import Optional, Protocol

from reciplan.models.ingest import IngestErrorCode, JobDetails, JobHandle


class JobRepository(Protocol):
    """Protocol describing the remote ingestion job service.

    Implementations raise on transport, HTTP, or parse failures instead of
    returning sentinel values.
    """

    async def start_ingest(self, url: str) -> JobHandle:
        """Submit ``url`` for ingestion and return the accepted job."""

    async def poll_job(self, job_id: str) -> JobDetails:
        """Fetch the current status of ``job_id``."""

    async def get_active_job_count(self) -> int:
        """Return how many ingest jobs the current user has in flight."""


class ErrorClassifier(Protocol):
    """Protocol mapping ingest error codes to user messaging and retry policy."""

    def get_message(self, code: IngestErrorCode) -> str:
        """Return a friendly message describing ``code``."""

    def is_recoverable(self, code: IngestErrorCode) -> bool:
        """Return ``True`` when retrying the same job may succeed."""

    def get_retry_label(self, code: IngestErrorCode) -> Optional[str]:
        """Return the label for the retry action, or ``None`` when not retryable."""


__all__ = ["ErrorClassifier", "JobRepository"]
