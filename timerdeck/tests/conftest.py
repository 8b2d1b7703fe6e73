"""Shared fixtures: a manual clock so countdown tests don't wait on real time."""

import asyncio

import pytest

from timerdeck.core.countdown import CountdownEngine
from timerdeck.core.registry import TimerRegistry
from timerdeck.core.store import MemoryStore


async def settle(rounds: int = 20) -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Drop-in for asyncio.sleep; sleepers wake only when advance() is called."""

    def __init__(self) -> None:
        self._sleepers: list[asyncio.Future] = []

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append(future)
        await future

    @property
    def sleeping(self) -> int:
        return sum(1 for f in self._sleepers if not f.done())

    async def advance(self, ticks: int = 1) -> None:
        """Fire `ticks` intervals, letting each tick finish before the next."""
        for _ in range(ticks):
            await settle()
            sleepers, self._sleepers = self._sleepers, []
            for future in sleepers:
                if not future.done():
                    future.set_result(None)
            await settle()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(clock):
    return CountdownEngine(interval=1.0, sleep=clock.sleep)


@pytest.fixture
def registry(store, engine):
    return TimerRegistry(store, engine)
