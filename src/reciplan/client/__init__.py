"""HTTP adapters for the remote ingestion service."""

from reciplan.client.http import HttpIngestRepository, IngestApiError

__all__ = ["HttpIngestRepository", "IngestApiError"]
