"""In-memory fakes for the job repository and the poll sleep."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from reciplan.models.ingest import IngestErrorCode, IngestStatus, JobDetails, JobHandle


@dataclass
class GatedPoll:
    """Poll response that is held back until ``release`` is set."""

    result: JobDetails
    release: asyncio.Event = field(default_factory=asyncio.Event)
    started: asyncio.Event = field(default_factory=asyncio.Event)


PollStep = Union[JobDetails, Exception, GatedPoll]


class FakeJobRepository:
    """Scripted job repository.

    ``polls`` is consumed one entry per ``poll_job`` call; once exhausted the
    last entry repeats. Exceptions in the script are raised.
    """

    def __init__(
        self,
        *,
        handle: Optional[JobHandle] = None,
        start_error: Optional[Exception] = None,
        polls: Sequence[PollStep] = (),
        active_count: int = 0,
        count_error: Optional[Exception] = None,
    ) -> None:
        self.handle = handle or JobHandle(job_id="j1", status=IngestStatus.QUEUED)
        self.start_error = start_error
        self.polls: List[PollStep] = list(polls)
        self.active_count = active_count
        self.count_error = count_error
        self.start_calls: List[str] = []
        self.poll_calls: List[str] = []
        self.count_calls = 0
        self._last: Optional[PollStep] = None

    async def __aenter__(self) -> "FakeJobRepository":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def start_ingest(self, url: str) -> JobHandle:
        self.start_calls.append(url)
        await asyncio.sleep(0)
        if self.start_error is not None:
            raise self.start_error
        return self.handle

    async def poll_job(self, job_id: str) -> JobDetails:
        self.poll_calls.append(job_id)
        step = self.polls.pop(0) if self.polls else self._last
        if step is None:
            raise AssertionError("poll_job called without a scripted response")
        self._last = step
        if isinstance(step, GatedPoll):
            step.started.set()
            await step.release.wait()
            return step.result
        await asyncio.sleep(0)
        if isinstance(step, Exception):
            raise step
        return step

    async def get_active_job_count(self) -> int:
        self.count_calls += 1
        await asyncio.sleep(0)
        if self.count_error is not None:
            raise self.count_error
        return self.active_count


class RecordingSleep:
    """Sleep replacement that records each requested delay and yields once."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


def details(
    status: IngestStatus,
    *,
    job_id: Optional[str] = "j1",
    error_code: Optional[IngestErrorCode] = None,
    recipe_id: Optional[str] = None,
) -> JobDetails:
    return JobDetails(job_id=job_id, status=status, error_code=error_code, recipe_id=recipe_id)
