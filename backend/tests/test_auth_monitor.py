"""AuthSessionMonitor staleness and single-flight validation."""

import asyncio

import pytest

from smarttherapy.auth.monitor import AuthSessionMonitor


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.unit
@pytest.mark.asyncio
class TestAuthSessionMonitor:
    async def test_stale_until_validated(self):
        clock = Clock()
        calls = []

        async def validator():
            calls.append(1)
            return True

        monitor = AuthSessionMonitor(validator, stale_after=300, clock=clock)
        assert monitor.is_data_stale()

        assert await monitor.force_auth_validation() is True
        assert not monitor.is_data_stale()

        clock.now += 301
        assert monitor.is_data_stale()
        assert calls == [1]

    async def test_concurrent_callers_share_one_validation(self):
        gate = asyncio.Event()
        calls = 0

        async def validator():
            nonlocal calls
            calls += 1
            await gate.wait()
            return True

        monitor = AuthSessionMonitor(validator)
        first = asyncio.create_task(monitor.force_auth_validation())
        second = asyncio.create_task(monitor.force_auth_validation())
        await asyncio.sleep(0)
        assert monitor.is_validating

        gate.set()
        assert await first is True
        assert await second is True
        assert calls == 1
        assert not monitor.is_validating

    async def test_rejected_session(self):
        async def validator():
            return False

        monitor = AuthSessionMonitor(validator)
        assert await monitor.force_auth_validation() is False
        assert monitor.is_authenticated is False
        assert monitor.is_data_stale()

    async def test_validator_error_counts_as_failure(self):
        async def validator():
            raise ConnectionError("auth service down")

        monitor = AuthSessionMonitor(validator)
        assert await monitor.force_auth_validation() is False
