"""Validation helpers for TikTok video URLs."""

from __future__ import annotations

import re
from urllib.parse import urlparse


class InvalidVideoURLError(ValueError):
    """Raised when a provided URL is not a supported TikTok video link."""


_TIKTOK_URL_PATTERN = re.compile(r"https?://(www\.)?(vm\.)?tiktok\.com/.*")

_KNOWN_DOMAINS = ("vm.tiktok.com", "www.tiktok.com", "tiktok.com")


def is_tiktok_url(url: str) -> bool:
    """Return ``True`` when ``url`` is a non-blank TikTok link."""

    if not url or not url.strip():
        return False
    return _TIKTOK_URL_PATTERN.fullmatch(url) is not None


def validate_tiktok_url(url: str) -> str:
    """Validate a URL and return it stripped of surrounding whitespace."""

    stripped = url.strip()
    if not is_tiktok_url(stripped):
        raise InvalidVideoURLError(f"Invalid TikTok URL: {url!r}")
    return stripped


def extract_domain(url: str) -> str:
    """Return the TikTok host of ``url`` for analytics, or ``"unknown"``.

    Paths, query strings and user handles are never part of the result.
    """

    host = (urlparse(url.strip()).hostname or "").lower()
    for domain in _KNOWN_DOMAINS:
        if host == domain:
            return domain
    if host.endswith(".tiktok.com"):
        return "tiktok.com"
    return "unknown"


__all__ = ["InvalidVideoURLError", "extract_domain", "is_tiktok_url", "validate_tiktok_url"]
