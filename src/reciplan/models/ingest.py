"""Pydantic models describing ingestion jobs and the observable session state."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import ConfigDict, Field

from reciplan.models.base import ReciplanBaseModel, ReciplanSnapshot

TOTAL_STEPS = 10


class IngestStatus(str, Enum):
    """Pipeline stages reported by the ingestion service, in pipeline order."""

    QUEUED = "QUEUED"
    DOWNLOADING = "DOWNLOADING"
    EXTRACTING = "EXTRACTING"
    TRANSCRIBING = "TRANSCRIBING"
    DRAFT_TRANSCRIBED = "DRAFT_TRANSCRIBED"
    OCRING = "OCRING"
    OCR_DONE = "OCR_DONE"
    LLM_REFINING = "LLM_REFINING"
    DRAFT_PARSED = "DRAFT_PARSED"
    DRAFT_PARSED_WITH_ERRORS = "DRAFT_PARSED_WITH_ERRORS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` when the job will not transition any further."""

        return self in (IngestStatus.COMPLETED, IngestStatus.FAILED)

    @property
    def is_error(self) -> bool:
        return self is IngestStatus.FAILED


class IngestErrorCode(str, Enum):
    """Failure reasons reported alongside a ``FAILED`` status."""

    VIDEO_UNAVAILABLE = "VIDEO_UNAVAILABLE"
    ASR_FAILED = "ASR_FAILED"
    OCR_FAILED = "OCR_FAILED"
    LLM_FAILED = "LLM_FAILED"
    PERSIST_FAILED = "PERSIST_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class JobHandle(ReciplanBaseModel):
    """Response returned by the service when an ingest job is accepted."""

    job_id: str = Field(min_length=1)
    status: IngestStatus = IngestStatus.QUEUED
    recipe_id: Optional[str] = None
    message: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class JobDetails(ReciplanBaseModel):
    """Status payload returned by each poll of an ingest job.

    ``job_id`` is optional because some service responses omit it; the session
    fills it in from the id it is polling. ``error_code`` is only meaningful for
    ``FAILED`` and ``recipe_id`` only for ``COMPLETED``.
    """

    job_id: Optional[str] = None
    status: IngestStatus
    error_code: Optional[IngestErrorCode] = None
    recipe_id: Optional[str] = None
    title: Optional[str] = None
    transcript: Optional[str] = None
    onscreen_text: Optional[str] = None
    ingredient_candidates: List[str] = Field(default_factory=list)
    parse_errors: List[str] = Field(default_factory=list)
    llm_error_message: Optional[str] = None
    recipe_json: Optional[Any] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class ProgressInfo(ReciplanSnapshot):
    """User-facing progress derived from a single :class:`IngestStatus`."""

    step: int = Field(ge=0)
    total_steps: int = Field(ge=0)
    title: str
    description: str
    is_complete: bool = False
    has_error: bool = False


class SessionState(ReciplanSnapshot):
    """Snapshot of everything an observer needs to render the ingest flow."""

    is_loading: bool = False
    job_id: Optional[str] = None
    job_status: Optional[IngestStatus] = None
    job_details: Optional[JobDetails] = None
    progress: ProgressInfo = Field(
        default_factory=lambda: ProgressInfo(step=0, total_steps=TOTAL_STEPS, title="", description="")
    )
    is_polling: bool = False
    is_valid_url: bool = False
    active_job_count: int = Field(default=0, ge=0)
    is_job_limit_reached: bool = False
    error_message: Optional[str] = None
    error_code: Optional[IngestErrorCode] = None
    can_retry: bool = False
    retry_label: Optional[str] = None


__all__ = [
    "IngestErrorCode",
    "IngestStatus",
    "JobDetails",
    "JobHandle",
    "ProgressInfo",
    "SessionState",
    "TOTAL_STEPS",
]
