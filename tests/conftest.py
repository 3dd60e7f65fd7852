"""
Pytest configuration and shared fixtures for scanner tests.

Provides an in-memory WebSocket transport, a controllable clock and the
shared bus/store/mapper wiring used across provider and engine tests.
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import List

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Configure test environment
os.environ['ENVIRONMENT'] = 'test'

from exchanges.services.symbol_mapper import SymbolMapper
from market_data.data_bus import DataBus
from market_data.market_data_store import MarketDataStore

_CLOSED = object()

# 2024-01-01 10:47:00 UTC
MINUTE_47_TIMESTAMP = 1704106020.0


class FakeWebSocket:
    """Open socket double: async iterable of inbound frames, records outbound ones."""

    def __init__(self, url: str = ""):
        self.url = url
        self.sent: List[str] = []
        self.closed = False
        self._inbound: asyncio.Queue = asyncio.Queue()

    def feed(self, message) -> None:
        """Deliver an inbound frame."""
        self._inbound.put_nowait(message)

    def drop(self) -> None:
        """Server side close."""
        self.closed = True
        self._inbound.put_nowait(_CLOSED)

    async def send(self, message) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        if not self.closed:
            self.drop()

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self._inbound.get()
        if message is _CLOSED:
            raise StopAsyncIteration
        return message


class FakeConnector:
    """Connect method factory handing out FakeWebSockets."""

    def __init__(self):
        self.sockets: List[FakeWebSocket] = []
        self.urls: List[str] = []
        self.configs = []
        self.failures = 0

    def __call__(self, config):
        self.configs.append(config)

        async def connect():
            self.urls.append(config.url)
            if self.failures:
                self.failures -= 1
                raise OSError("connection refused")
            ws = FakeWebSocket(config.url)
            self.sockets.append(ws)
            return ws
        return connect

    @property
    def last(self) -> FakeWebSocket:
        return self.sockets[-1]


class FakeClock:
    def __init__(self, now: float = MINUTE_47_TIMESTAMP):
        self.now = now

    def __call__(self) -> float:
        return self.now


async def settle(cycles: int = 5) -> None:
    """Let pending callbacks and reader tasks run."""
    for _ in range(cycles):
        await asyncio.sleep(0)


@pytest.fixture
def symbol_mapper():
    return SymbolMapper()


@pytest.fixture
def data_bus():
    return DataBus()


@pytest.fixture
def store(data_bus, symbol_mapper):
    return MarketDataStore(data_bus, symbol_mapper)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def clock():
    return FakeClock()
