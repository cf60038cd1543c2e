"""Poll scheduling and cooperative cancellation for job status loops."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from reciplan.config.settings import Settings

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class PollSchedule:
    """Two-tier polling interval.

    Waits use ``base_interval`` until ``backoff_threshold`` polls have completed
    without reaching a terminal status, then ``backoff_interval`` for every
    later wait of the same loop.
    """

    base_interval: float = 4.0
    backoff_interval: float = 8.0
    backoff_threshold: int = 30

    def __post_init__(self) -> None:
        if self.base_interval <= 0 or self.backoff_interval <= 0:
            raise ValueError("poll intervals must be positive")
        if self.backoff_threshold < 0:
            raise ValueError("backoff threshold must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollSchedule":
        return cls(
            base_interval=settings.poll_interval_seconds,
            backoff_interval=settings.poll_backoff_interval_seconds,
            backoff_threshold=settings.poll_backoff_threshold,
        )

    def interval_for(self, poll_count: int) -> float:
        """Return the wait that follows the ``poll_count``-th completed poll."""

        if poll_count >= self.backoff_threshold:
            return self.backoff_interval
        return self.base_interval


@dataclass(slots=True)
class PollToken:
    """Cancellation flag owned by exactly one polling loop.

    Cancelling never interrupts a request already in flight; the loop checks the
    flag after every await and discards late results. A loop waiting between
    polls is woken immediately.
    """

    job_id: str
    _cancelled: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    async def wait(self, delay: float, sleep: Optional[SleepFunc] = None) -> bool:
        """Wait ``delay`` seconds or until cancelled; return ``True`` if cancelled."""

        if self.cancelled:
            return True

        sleeper = asyncio.ensure_future((sleep or asyncio.sleep)(delay))
        canceller = asyncio.ensure_future(self._cancelled.wait())
        try:
            await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for pending in (sleeper, canceller):
                if not pending.done():
                    pending.cancel()
        return self.cancelled


__all__ = ["PollSchedule", "PollToken", "SleepFunc"]
