"""Tests for ingest telemetry events."""

from reciplan.models.ingest import IngestErrorCode
from reciplan.services.telemetry import Telemetry, TelemetryEventName


def test_started_event_only_reports_domain(telemetry, telemetry_events):
    telemetry.ingest_started("https://vm.tiktok.com/ZMScJ8vrH/?secret=1")

    assert len(telemetry_events) == 1
    event = telemetry_events[0]
    assert event.name is TelemetryEventName.INGEST_STARTED
    assert event.properties == {"url_domain": "vm.tiktok.com"}


def test_failed_event_carries_error_code(telemetry, telemetry_events):
    telemetry.ingest_failed(IngestErrorCode.OCR_FAILED, "j1")

    assert telemetry_events[0].properties == {"error_code": "OCR_FAILED", "job_id": "j1"}


def test_default_sink_logs_to_console(console):
    telemetry = Telemetry(console=console)

    telemetry.ingest_succeeded("j1", "r1")

    output = console.file.getvalue()
    assert "ingest_succeeded" in output
    assert "recipe_id=r1" in output


def test_sink_errors_are_logged(console):
    def broken_sink(event):
        raise RuntimeError("sink offline")

    telemetry = Telemetry(sink=broken_sink, console=console)

    telemetry.ingest_cancelled("j1")

    assert "sink offline" in console.file.getvalue()
