from __future__ import annotations

import asyncio

import pytest

from prep_service.services.clock import AsyncioTicker, ManualTicker, Ticker


def test_manual_ticker_fires_only_when_advanced() -> None:
    ticks: list[int] = []
    ticker = ManualTicker()
    ticker.start(lambda: ticks.append(1))

    assert ticks == []
    ticker.advance(3)
    assert len(ticks) == 3
    assert ticker.fired == 3


def test_manual_ticker_stops_when_callback_cancels() -> None:
    ticker = ManualTicker()
    seen: list[int] = []

    def _callback() -> None:
        seen.append(1)
        if len(seen) == 2:
            ticker.cancel()

    ticker.start(_callback)
    ticker.advance(10)

    assert len(seen) == 2
    assert ticker.active is False


def test_manual_ticker_cannot_start_twice() -> None:
    ticker = ManualTicker()
    ticker.start(lambda: None)
    with pytest.raises(RuntimeError):
        ticker.start(lambda: None)


def test_both_tickers_satisfy_protocol() -> None:
    assert isinstance(ManualTicker(), Ticker)
    assert isinstance(AsyncioTicker(), Ticker)


def test_asyncio_ticker_calls_back_until_cancelled() -> None:
    async def _run() -> int:
        count = 0
        ticker = AsyncioTicker(interval=0.01)

        def _callback() -> None:
            nonlocal count
            count += 1
            if count == 3:
                ticker.cancel()

        ticker.start(_callback)
        assert ticker.active
        await asyncio.sleep(0.2)
        assert not ticker.active
        return count

    assert asyncio.run(_run()) == 3


def test_asyncio_ticker_needs_running_loop() -> None:
    with pytest.raises(RuntimeError):
        AsyncioTicker().start(lambda: None)
