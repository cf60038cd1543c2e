"""Error classification backed by the YAML error catalog."""

from __future__ import annotations

from typing import Optional

from reciplan.config.settings import ErrorCatalog, ErrorCatalogEntry, get_settings
from reciplan.models.ingest import IngestErrorCode


class CatalogErrorClassifier:
    """Classify ingest failures using an :class:`ErrorCatalog`.

    The catalog is validated to contain every :class:`IngestErrorCode`, so each
    lookup is total.
    """

    def __init__(self, catalog: Optional[ErrorCatalog] = None) -> None:
        self._catalog = catalog or get_settings().error_catalog

    def get_message(self, code: IngestErrorCode) -> str:
        return self._entry(code).message

    def is_recoverable(self, code: IngestErrorCode) -> bool:
        return self._entry(code).recoverable

    def get_retry_label(self, code: IngestErrorCode) -> Optional[str]:
        """Return the retry label for recoverable codes only."""

        entry = self._entry(code)
        if not entry.recoverable:
            return None
        return entry.retry_label or "Try Again"

    def get_summary(self, code: IngestErrorCode) -> str:
        """Short label suitable for a status line or table cell."""

        return self._entry(code).summary

    def _entry(self, code: IngestErrorCode) -> ErrorCatalogEntry:
        return self._catalog.errors[code]


__all__ = ["CatalogErrorClassifier"]
