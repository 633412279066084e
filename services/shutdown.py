"""Cooperative shutdown shared by the collection loop and the store."""

from __future__ import annotations

import asyncio


class ShutdownRequested(Exception):
    """Raised at the next suspension point once a stop was requested."""


class ShutdownSignal:

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    def request(self) -> None:
        self._event.set()

    def check(self) -> None:
        if self._event.is_set():
            raise ShutdownRequested()

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless a stop arrives first."""
        self.check()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise ShutdownRequested()
