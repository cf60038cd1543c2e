"""Domain models for Reciplan ingestion."""

from reciplan.models.ingest import (
    IngestErrorCode,
    IngestStatus,
    JobDetails,
    JobHandle,
    ProgressInfo,
    SessionState,
)

__all__ = [
    "IngestErrorCode",
    "IngestStatus",
    "JobDetails",
    "JobHandle",
    "ProgressInfo",
    "SessionState",
]
