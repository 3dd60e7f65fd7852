"""
Timer Manager Tests

Keyed, individually cancellable timers.
"""

import asyncio

import pytest

from utils.task_utils import TimerKey, TimerManager, TimerPurpose

FUNDING_BTC = TimerKey("hyperliquid", "BTC", TimerPurpose.FUNDING)
FUNDING_ETH = TimerKey("hyperliquid", "ETH", TimerPurpose.FUNDING)
RECONNECT_BTC = TimerKey("hyperliquid", "BTC", TimerPurpose.RECONNECT)


class TestTimerManager:

    @pytest.mark.asyncio
    async def test_call_later_runs_once(self):
        timers = TimerManager()
        calls = []
        timers.call_later(FUNDING_BTC, 0.01, lambda: calls.append("fired"))

        assert timers.is_scheduled(FUNDING_BTC)
        await asyncio.sleep(0.03)

        assert calls == ["fired"]
        assert not timers.is_scheduled(FUNDING_BTC)
        assert timers.keys == []

    @pytest.mark.asyncio
    async def test_call_every_with_first_delay(self):
        timers = TimerManager()
        calls = []

        async def tick():
            calls.append(asyncio.get_running_loop().time())

        timers.call_every(FUNDING_BTC, 0.02, tick, first_delay=0.0)
        await asyncio.sleep(0.05)
        timers.cancel_all()

        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_slow_callback_does_not_shift_schedule(self):
        timers = TimerManager()
        loop = asyncio.get_running_loop()
        start = loop.time()
        fired = []

        async def slow_fetch():
            fired.append(loop.time() - start)
            await asyncio.sleep(0.06)

        timers.call_every(FUNDING_BTC, 0.1, slow_fetch, first_delay=0.0)
        await asyncio.sleep(0.35)
        await timers.shutdown()

        assert len(fired) == 4
        for index, offset in enumerate(fired):
            assert offset == pytest.approx(index * 0.1, abs=0.03)

    @pytest.mark.asyncio
    async def test_overrunning_callback_skips_missed_deadlines(self):
        timers = TimerManager()
        loop = asyncio.get_running_loop()
        start = loop.time()
        fired = []

        async def very_slow_fetch():
            fired.append(loop.time() - start)
            await asyncio.sleep(0.25)

        timers.call_every(FUNDING_BTC, 0.1, very_slow_fetch, first_delay=0.0)
        await asyncio.sleep(0.4)
        await timers.shutdown()

        assert len(fired) == 2
        assert fired[1] == pytest.approx(0.3, abs=0.03)

    @pytest.mark.asyncio
    async def test_cancel_stops_timer(self):
        timers = TimerManager()
        calls = []
        timers.call_later(FUNDING_BTC, 0.01, lambda: calls.append(1))

        assert timers.cancel(FUNDING_BTC) is True
        assert timers.cancel(FUNDING_BTC) is False
        await asyncio.sleep(0.02)

        assert calls == []

    @pytest.mark.asyncio
    async def test_cancel_symbol_only_touches_symbol(self):
        timers = TimerManager()
        timers.call_later(FUNDING_BTC, 10, lambda: None)
        timers.call_later(RECONNECT_BTC, 10, lambda: None)
        timers.call_later(FUNDING_ETH, 10, lambda: None)

        assert timers.cancel_symbol("BTC") == 2
        assert timers.keys == [FUNDING_ETH]

        await timers.shutdown()
        assert timers.active_task_count == 0

    @pytest.mark.asyncio
    async def test_rearm_replaces_previous(self):
        timers = TimerManager()
        calls = []
        timers.call_later(FUNDING_BTC, 0.01, lambda: calls.append("old"))
        timers.call_later(FUNDING_BTC, 0.01, lambda: calls.append("new"))

        await asyncio.sleep(0.03)

        assert calls == ["new"]

    @pytest.mark.asyncio
    async def test_callback_can_rearm_own_key(self):
        timers = TimerManager()
        calls = []

        def rearm():
            calls.append(len(calls))
            if len(calls) < 3:
                timers.call_later(FUNDING_BTC, 0.0, rearm)

        timers.call_later(FUNDING_BTC, 0.0, rearm)
        await asyncio.sleep(0.02)

        assert calls == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_failing_periodic_callback_keeps_schedule(self):
        timers = TimerManager()
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("fetch failed")

        timers.call_every(FUNDING_BTC, 0.01, flaky, first_delay=0.0)
        await asyncio.sleep(0.045)
        await timers.shutdown()

        assert len(calls) >= 3

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ValueError):
            TimerManager().call_every(FUNDING_BTC, 0, lambda: None)
