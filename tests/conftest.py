"""Shared fixtures for the Reciplan test suite."""

from __future__ import annotations

import io
from typing import List, Optional

import pytest
from rich.console import Console

from reciplan.config.settings import Settings
from reciplan.services.polling import PollSchedule
from reciplan.services.session import IngestSession
from reciplan.services.telemetry import Telemetry, TelemetryEvent
from tests.fakes import FakeJobRepository, RecordingSleep


@pytest.fixture
def settings() -> Settings:
    return Settings(log_level="INFO", max_active_jobs=3)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def telemetry_events() -> List[TelemetryEvent]:
    return []


@pytest.fixture
def telemetry(telemetry_events: List[TelemetryEvent], console: Console) -> Telemetry:
    return Telemetry(sink=telemetry_events.append, console=console)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_session(settings: Settings, console: Console, telemetry: Telemetry, recording_sleep: RecordingSleep):
    def factory(repository: FakeJobRepository, *, schedule: Optional[PollSchedule] = None) -> IngestSession:
        return IngestSession(
            repository=repository,
            settings=settings,
            console=console,
            telemetry=telemetry,
            schedule=schedule,
            sleep=recording_sleep,
        )

    return factory
