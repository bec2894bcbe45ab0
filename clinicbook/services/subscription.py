import asyncio
import logging
from collections.abc import Awaitable, Callable

from clinicbook.core.config import settings
from clinicbook.models.appointment import Appointment

logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[list[Appointment]]]


def _fingerprint(snapshot: list[Appointment]) -> list[tuple[int | None, str]]:
    # Status is the only field that changes after insert
    return [(a.id, a.status) for a in snapshot]


class Subscription:
    """Live query: yields the full result set, then a new one whenever it changes.

    Iterate with ``async for``; call :meth:`cancel` (or leave the ``async with``
    block) to stop. Cancelling releases nothing else.
    """

    def __init__(self, fetch: Fetch, poll_seconds: float | None = None) -> None:
        self._fetch = fetch
        self.poll_seconds = poll_seconds if poll_seconds is not None else settings.subscription_poll_seconds
        self._last: list[tuple[int | None, str]] | None = None
        self._cancelled = False
        self._wake = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._wake.set()

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self.poll_seconds)
        except TimeoutError:
            pass

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> list[Appointment]:
        while not self._cancelled:
            if self._last is not None:
                await self._sleep()
                if self._cancelled:
                    break
            snapshot = await self._fetch()
            key = _fingerprint(snapshot)
            if key != self._last:
                self._last = key
                return snapshot
        raise StopAsyncIteration

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.cancel()
