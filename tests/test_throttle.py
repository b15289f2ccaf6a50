"""
Tests for the minimum-interval throttle.
"""

import pytest

from circle_engine.utils.throttle import Throttle


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestThrottle:

    @pytest.mark.asyncio
    async def test_first_call_never_sleeps(self, clock):
        throttle = Throttle(2.0, clock=clock, sleep=clock.sleep)
        assert await throttle.wait() == 0.0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_spacing_enforced(self, clock):
        throttle = Throttle(2.0, clock=clock, sleep=clock.sleep)
        await throttle.wait()
        clock.now += 0.5

        slept = await throttle.wait()

        assert slept == pytest.approx(1.5)
        assert clock.sleeps == [pytest.approx(1.5)]

    @pytest.mark.asyncio
    async def test_no_sleep_when_interval_already_elapsed(self, clock):
        throttle = Throttle(2.0, clock=clock, sleep=clock.sleep)
        await throttle.wait()
        clock.now += 5

        assert await throttle.wait() == 0.0

    @pytest.mark.asyncio
    async def test_consecutive_waits_spaced(self, clock):
        throttle = Throttle(3.0, clock=clock, sleep=clock.sleep)
        stamps = []
        for _ in range(4):
            await throttle.wait()
            stamps.append(clock.now)

        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert all(g >= 3.0 for g in gaps)

    @pytest.mark.asyncio
    async def test_reset(self, clock):
        throttle = Throttle(2.0, clock=clock, sleep=clock.sleep)
        await throttle.wait()
        throttle.reset()
        assert await throttle.wait() == 0.0

    @pytest.mark.asyncio
    async def test_zero_interval(self, clock):
        throttle = Throttle(0, clock=clock, sleep=clock.sleep)
        await throttle.wait()
        assert await throttle.wait() == 0.0
