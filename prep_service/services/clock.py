"""Countdown tickers for attempt sessions.

A session owns exactly one ticker.  The ticker calls back once per elapsed
second until it is cancelled, and the session cancels it on the transition
to ``submitted``.  Both implementations satisfy the same Protocol:

  AsyncioTicker: production.  An asyncio task sleeping between callbacks,
    living on the server's event loop.

  ManualTicker: tests.  Nothing happens until ``advance(n)`` is called, so
    the expiry-vs-manual-submit race can be replayed deterministically.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


@runtime_checkable
class Ticker(Protocol):
    def start(self, callback: TickCallback) -> None: ...
    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class ManualTicker:
    """Fake clock: fires only when the test advances it."""

    def __init__(self) -> None:
        self._callback: TickCallback | None = None
        self._cancelled = False
        self.fired = 0

    def start(self, callback: TickCallback) -> None:
        if self._callback is not None:
            raise RuntimeError("ticker already started")
        self._callback = callback

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def active(self) -> bool:
        return self._callback is not None and not self._cancelled

    def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            # A callback may cancel us (auto-submit); stop right there.
            if not self.active:
                return
            self.fired += 1
            self._callback()  # type: ignore[misc]


class AsyncioTicker:
    """Calls back every ``interval`` seconds on the running event loop."""

    def __init__(self, interval: float = 1.0) -> None:
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    def start(self, callback: TickCallback) -> None:
        if self._task is not None:
            raise RuntimeError("ticker already started")
        self._task = asyncio.get_running_loop().create_task(self._run(callback))

    def cancel(self) -> None:
        if self._task is None or self._task.done():
            return
        # cancel() from inside our own callback just marks the task;
        # the CancelledError lands at the next sleep.
        self._task.cancel()

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, callback: TickCallback) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed; stopping ticker")
                return
