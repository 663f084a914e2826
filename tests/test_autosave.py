"""Tests for the debounced autosave."""

import asyncio

from leadfunnel.storage.autosave import Debouncer


class Counter:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


class TestDebouncer:
    async def test_burst_collapses_into_one_write(self):
        counter = Counter()
        debouncer = Debouncer(0.01, counter)
        for _ in range(5):
            debouncer.schedule()
        assert debouncer.pending
        await asyncio.sleep(0.05)
        assert counter.calls == 1
        assert not debouncer.pending

    async def test_cancel(self):
        counter = Counter()
        debouncer = Debouncer(0.01, counter)
        debouncer.schedule()
        debouncer.cancel()
        await asyncio.sleep(0.03)
        assert counter.calls == 0

    async def test_flush_writes_immediately(self):
        counter = Counter()
        debouncer = Debouncer(10, counter)
        debouncer.schedule()
        await debouncer.flush()
        assert counter.calls == 1
        assert not debouncer.pending
