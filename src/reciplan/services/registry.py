"""Shared ownership of the ingest session across entry points."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from reciplan.services.session import IngestSession

SessionFactory = Callable[[], IngestSession]


class SessionRegistry:
    """Hands out one live :class:`IngestSession` to every caller that needs it.

    Entry points that observe or drive the ingest flow ``acquire`` the session
    and ``release`` it when they go away; the session is disposed once the last
    holder releases it, or immediately on :meth:`clear`. The registry is an
    ordinary object owned by the application wiring, so separate registries
    never share sessions.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory
        self._session: Optional[IngestSession] = None
        self._holders = 0

    @property
    def session(self) -> Optional[IngestSession]:
        """The live session, if one has been created."""

        return self._session

    @property
    def holders(self) -> int:
        return self._holders

    async def get_or_create(self) -> IngestSession:
        """Return the live session, creating it on first use.

        A newly created session refreshes its active-job count before it is
        returned so the job limit reflects the server state.
        """

        session = self._session
        if session is not None:
            return session

        session = self._session_factory()
        session.add_dispose_callback(self._forget)
        self._session = session
        await session.check_active_job_count()
        return session

    async def acquire(self) -> IngestSession:
        """Return the live session and register the caller as a holder."""

        session = await self.get_or_create()
        self._holders += 1
        return session

    def release(self, session: IngestSession) -> None:
        """Drop one holder; dispose the session when none remain."""

        if session is not self._session:
            return
        self._holders = max(0, self._holders - 1)
        if self._holders == 0:
            session.dispose()

    def clear(self) -> None:
        """Stop the live session's polling loop and drop it unconditionally."""

        session = self._session
        if session is None:
            return
        session.cancel()
        session.dispose()

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[IngestSession]:
        """Hold the shared session for the duration of an ``async with`` block."""

        session = await self.acquire()
        try:
            yield session
        finally:
            self.release(session)

    def _forget(self, session: IngestSession) -> None:
        if session is self._session:
            self._session = None
            self._holders = 0


__all__ = ["SessionFactory", "SessionRegistry"]
