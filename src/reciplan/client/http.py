"""Job repository backed by the ingestion REST API."""

from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from rich.console import Console

from reciplan import __version__
from reciplan.config.settings import Settings, get_settings
from reciplan.models.ingest import JobDetails, JobHandle

START_INGEST_PATH = "ingest/tiktok"
JOB_PATH = "ingest/jobs/{job_id}"
ACTIVE_JOBS_PATH = "ingest/jobs/active"

ModelT = TypeVar("ModelT", bound=BaseModel)

_STATUS_MESSAGES: Dict[int, str] = {
    400: "Bad Request: Invalid TikTok URL provided",
    401: "Unauthorized: Please log in again",
    403: "Forbidden: You don't have permission to perform this action",
    404: "Not Found: Ingest job not found",
    409: "Conflict: Job already exists for this URL",
    422: "Validation Error: Please check your TikTok URL",
    429: "Rate Limited: Too many requests, please try again later",
    500: "Server Error: Please try again later",
}


class IngestApiError(RuntimeError):
    """Raised when the ingestion API call fails or returns an unusable response."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HttpIngestRepository:
    """Implements :class:`reciplan.services.JobRepository` over ``httpx``.

    The repository owns its :class:`httpx.AsyncClient` unless one is supplied;
    use it as an async context manager or call :meth:`aclose` when done.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=str(self._settings.api_base_url),
            timeout=self._settings.http_timeout_seconds,
            headers=self._default_headers(),
        )

    async def __aenter__(self) -> "HttpIngestRepository":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this repository created it."""

        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # JobRepository                                                      #
    # ------------------------------------------------------------------ #
    async def start_ingest(self, url: str) -> JobHandle:
        payload = await self._request("POST", START_INGEST_PATH, json={"url": url})
        handle = self._parse(JobHandle, payload)
        self._console.log(f"Started ingest job {handle.job_id} ({handle.status.value})")
        return handle

    async def poll_job(self, job_id: str) -> JobDetails:
        payload = await self._request("GET", JOB_PATH.format(job_id=job_id))
        return self._parse(JobDetails, payload)

    async def get_active_job_count(self) -> int:
        """Count the jobs returned by the active-jobs endpoint."""

        payload = await self._request("GET", ACTIVE_JOBS_PATH)
        if not isinstance(payload, list):
            raise IngestApiError("Unexpected response for active jobs: expected a list")
        return len(payload)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _request(self, method: str, path: str, *, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise IngestApiError(f"Network Error: {exc}") from exc

        if response.is_error:
            message = _STATUS_MESSAGES.get(response.status_code, f"Network Error: {response.reason_phrase}")
            self._console.log(f"[red]{method} {path} failed ({response.status_code}):[/red] {response.text[:200]}")
            raise IngestApiError(message, status_code=response.status_code)

        if not response.content:
            raise IngestApiError("Empty response body", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise IngestApiError("Invalid JSON in response body", status_code=response.status_code) from exc

    def _parse(self, model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise IngestApiError(f"Unexpected response payload: {exc.error_count()} validation error(s)") from exc

    def _default_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": f"reciplan-ingest/{__version__}"}
        if self._settings.api_token is not None:
            headers["Authorization"] = f"Bearer {self._settings.api_token.get_secret_value()}"
        return headers


__all__ = ["ACTIVE_JOBS_PATH", "HttpIngestRepository", "IngestApiError", "JOB_PATH", "START_INGEST_PATH"]
