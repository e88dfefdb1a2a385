"""
Pending notification shared by all long-poll clients.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional


class Event(str, Enum):
    """What a browser should do after a successful rebuild."""

    STYLE = "style"
    RELOAD = "reload"

    @classmethod
    def combine(cls, current: Optional["Event"], new: "Event") -> "Event":
        """Escalate a pending event; a full reload wins over a style refresh."""
        if current is cls.RELOAD or new is cls.RELOAD:
            return cls.RELOAD
        return new


class EventChannel:
    """One outstanding future, resolved once and replaced.

    Every waiter that called wait() before publish() receives the published
    event; later waiters wait for the next one. Must be used from the event
    loop thread.
    """

    def __init__(self) -> None:
        self._future: Optional[asyncio.Future[Event]] = None

    def _pending(self) -> asyncio.Future[Event]:
        if self._future is None or self._future.done():
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def waiting(self) -> bool:
        return self._future is not None and not self._future.done()

    async def wait(self) -> Event:
        # Shielded so a disconnecting client does not cancel the shared future
        return await asyncio.shield(self._pending())

    def publish(self, event: Event) -> None:
        """Resolve the current notification and install a fresh one."""
        future = self._future
        self._future = None
        if future is not None and not future.done():
            future.set_result(event)
