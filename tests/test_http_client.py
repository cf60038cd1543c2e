"""Tests for the httpx-backed job repository."""

from __future__ import annotations

import json

import httpx
import pytest

from reciplan.client import HttpIngestRepository, IngestApiError
from reciplan.config.settings import Settings
from reciplan.models.ingest import IngestErrorCode, IngestStatus

BASE_URL = "https://api.reciplan.test/"


def _repository(handler, console, *, settings: Settings | None = None) -> HttpIngestRepository:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return HttpIngestRepository(settings=settings or Settings(), client=client, console=console)


@pytest.mark.asyncio
async def test_start_ingest_posts_url(console):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(202, json={"job_id": "j1", "status": "QUEUED", "message": "accepted"})

    repository = _repository(handler, console)
    handle = await repository.start_ingest("https://vm.tiktok.com/abc/")

    assert seen == {"method": "POST", "path": "/ingest/tiktok", "body": {"url": "https://vm.tiktok.com/abc/"}}
    assert handle.job_id == "j1"
    assert handle.status is IngestStatus.QUEUED


@pytest.mark.asyncio
async def test_poll_job_parses_details(console):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/ingest/jobs/j1"
        return httpx.Response(
            200,
            json={
                "status": "FAILED",
                "error_code": "OCR_FAILED",
                "parse_errors": ["missing quantity"],
                "unexpected_field": True,
            },
        )

    details = await _repository(handler, console).poll_job("j1")

    assert details.job_id is None
    assert details.status is IngestStatus.FAILED
    assert details.error_code is IngestErrorCode.OCR_FAILED
    assert details.parse_errors == ["missing quantity"]


@pytest.mark.asyncio
async def test_active_job_count_counts_list(console):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/ingest/jobs/active"
        return httpx.Response(200, json=[{"job_id": "a"}, {"job_id": "b"}])

    assert await _repository(handler, console).get_active_job_count() == 2


@pytest.mark.asyncio
async def test_active_job_count_requires_list(console):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"count": 2})

    with pytest.raises(IngestApiError, match="expected a list"):
        await _repository(handler, console).get_active_job_count()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "message"),
    [
        (400, "Bad Request: Invalid TikTok URL provided"),
        (401, "Unauthorized: Please log in again"),
        (404, "Not Found: Ingest job not found"),
        (429, "Rate Limited: Too many requests, please try again later"),
        (500, "Server Error: Please try again later"),
    ],
)
async def test_error_statuses_map_to_messages(console, status_code, message):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"detail": "nope"})

    with pytest.raises(IngestApiError) as exc_info:
        await _repository(handler, console).poll_job("j1")

    assert str(exc_info.value) == message
    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_unmapped_status_uses_reason_phrase(console):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(IngestApiError, match="Network Error: Service Unavailable"):
        await _repository(handler, console).poll_job("j1")


@pytest.mark.asyncio
async def test_empty_body_is_rejected(console):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    with pytest.raises(IngestApiError, match="Empty response body"):
        await _repository(handler, console).poll_job("j1")


@pytest.mark.asyncio
async def test_invalid_json_is_rejected(console):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>")

    with pytest.raises(IngestApiError, match="Invalid JSON"):
        await _repository(handler, console).poll_job("j1")


@pytest.mark.asyncio
async def test_unexpected_payload_is_rejected(console):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "DANCING"})

    with pytest.raises(IngestApiError, match="Unexpected response payload"):
        await _repository(handler, console).poll_job("j1")


@pytest.mark.asyncio
async def test_transport_errors_become_network_errors(console):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IngestApiError, match="Network Error: connection refused"):
        await _repository(handler, console).start_ingest("https://vm.tiktok.com/abc/")


@pytest.mark.asyncio
async def test_owned_client_is_configured_from_settings(console):
    settings = Settings(api_base_url=BASE_URL, api_token="t0ken", http_timeout_seconds=12.5)

    async with HttpIngestRepository(settings=settings, console=console) as repository:
        client = repository._client
        assert str(client.base_url) == BASE_URL
        assert client.timeout.read == 12.5
        assert client.headers["Authorization"] == "Bearer t0ken"
        assert client.headers["User-Agent"].startswith("reciplan-ingest/")

    assert client.is_closed is True


@pytest.mark.asyncio
async def test_supplied_client_is_left_open(console):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])))

    async with HttpIngestRepository(settings=Settings(), client=client, console=console):
        pass

    assert client.is_closed is False
    await client.aclose()
