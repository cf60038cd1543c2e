"""Utility helpers shared across Reciplan modules."""

from reciplan.utils.progress import map_status, progress_percentage, progress_text
from reciplan.utils.validation import InvalidVideoURLError, extract_domain, is_tiktok_url, validate_tiktok_url

__all__ = [
    "InvalidVideoURLError",
    "extract_domain",
    "is_tiktok_url",
    "map_status",
    "progress_percentage",
    "progress_text",
    "validate_tiktok_url",
]
