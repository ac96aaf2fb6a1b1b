"""
Pytest configuration and fixtures for bandwatch tests.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import pytest
from unittest.mock import patch

from bandwatch.config import Config
from bandwatch.models.market_data import Candle
from bandwatch.sync.backend import MarketBackend

MINUTE_MS = 60_000
BASE_TIME = 1_700_000_040_000  # aligned to a minute boundary


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def mock_env_vars() -> Generator[dict, None, None]:
    """Mock environment variables for testing."""
    test_env = {
        "FETCH_MAX_RETRIES": "2",
        "FETCH_RETRY_DELAY_MS": "250",
        "FETCH_TIMEOUT_MS": "5000",
        "FETCH_PROVIDERS": "OKX, Kraken",
        "SYNC_DEFAULT_SYMBOL": "ethusdt",
        "SYNC_DEFAULT_PERIOD": "5m",
        "SYNC_POLL_INTERVAL": "1.5",
        "SYNC_MAX_CANDLES": "500",
        "BAND_PERIOD": "14",
        "BAND_MULTIPLIER": "2.5",
        "LOG_LEVEL": "DEBUG",
        "LOG_MAX_SIZE": "5MB",
    }

    with patch.dict(os.environ, test_env, clear=False):
        yield test_env


@pytest.fixture
def test_config(mock_env_vars: dict) -> Config:
    """Create a test configuration instance."""
    return Config.load_from_env()


def build_candle(
    index: int,
    close: float,
    open_: Optional[float] = None,
    high: Optional[float] = None,
    low: Optional[float] = None,
    volume: float = 1.0,
    start: int = BASE_TIME
) -> Candle:
    """One-minute candle at ``start + index`` minutes."""
    open_ = close if open_ is None else open_
    high = max(open_, close) + 0.5 if high is None else high
    low = min(open_, close) - 0.5 if low is None else low
    return Candle(time=start + index * MINUTE_MS, open=open_, high=high, low=low, close=close, volume=volume)


@pytest.fixture
def candle_factory() -> Callable[..., Candle]:
    """Factory for single candles."""
    return build_candle


@pytest.fixture
def candle_series() -> Callable[..., List[Candle]]:
    """Factory for ascending one-minute candle series around a base price."""

    def make(count: int, base: float = 100.0, step: float = 0.0, start: int = BASE_TIME) -> List[Candle]:
        return [build_candle(i, base + i * step, start=start) for i in range(count)]

    return make


@pytest.fixture
def sample_tick_data() -> dict:
    """Sample push-channel tick payload for testing."""
    return {
        "symbol": "BTC_USDT",
        "timestamp": BASE_TIME + 30_000,
        "open": 100.0,
        "high": 101.0,
        "low": 99.0,
        "close": 100.5,
        "volume": 2.0,
    }


class ScriptedBackend(MarketBackend):
    """
    MarketBackend double whose candle reads can be held and released.

    When ``hold_loads`` is set every get_candles() call parks on a future
    until release() resolves it, so tests decide the completion order of
    overlapping loads. ``hold_starts`` does the same for start_stream(),
    resolved by release_start(); ``active`` mirrors the backend's open streams.
    """

    def __init__(self):
        self.candles: Dict[Tuple[str, str], List[Any]] = {}
        self.indicators: Dict[Tuple[str, str], Any] = {}
        self.alerts: Dict[Tuple[str, str], List[Any]] = {}

        self.hold_loads = False
        self.pending: List[Tuple[str, str, asyncio.Future]] = []
        self.hold_starts = False
        self.pending_starts: List[asyncio.Future] = []
        self.active: Dict[str, str] = {}

        self.read_error: Optional[Exception] = None
        self.start_error: Optional[Exception] = None
        self.stop_error: Optional[Exception] = None
        self.resync_error: Optional[Exception] = None

        self.candle_calls: List[Tuple[str, str]] = []
        self.started: List[Tuple[str, str]] = []
        self.stopped: List[str] = []
        self.resyncs: List[Tuple[str, int]] = []
        self.subscribers: List[Callable] = []

    async def get_candles(self, symbol, period):
        self.candle_calls.append((symbol, period))
        if self.read_error is not None:
            raise self.read_error
        if self.hold_loads:
            future = asyncio.get_running_loop().create_future()
            self.pending.append((symbol, period, future))
            return await future
        return list(self.candles.get((symbol, period), []))

    async def get_indicators(self, symbol, period):
        return self.indicators.get((symbol, period))

    async def get_alerts(self, symbol, period):
        return list(self.alerts.get((symbol, period), []))

    async def start_stream(self, symbol, period):
        if self.hold_starts:
            future = asyncio.get_running_loop().create_future()
            self.pending_starts.append(future)
            await future
        if self.start_error is not None:
            raise self.start_error
        self.started.append((symbol, period))
        self.active[symbol] = period

    async def stop_stream(self, symbol):
        if self.stop_error is not None:
            raise self.stop_error
        self.stopped.append(symbol)
        self.active.pop(symbol, None)

    async def resync(self, symbol, lookback_units):
        if self.resync_error is not None:
            raise self.resync_error
        self.resyncs.append((symbol, lookback_units))

    def subscribe(self, callback):
        self.subscribers.append(callback)

        def unsubscribe():
            self.subscribers.remove(callback)

        return unsubscribe

    def release(self, symbol: str, period: str, candles: Optional[List[Any]] = None) -> None:
        """Resolve the oldest held read for (symbol, period)."""
        for i, (held_symbol, held_period, future) in enumerate(self.pending):
            if held_symbol == symbol and held_period == period:
                self.pending.pop(i)
                data = candles if candles is not None else self.candles.get((symbol, period), [])
                future.set_result(list(data))
                return
        raise AssertionError(f"No held read for {symbol}/{period}")

    def release_start(self) -> None:
        """Let the oldest held start_stream() call proceed."""
        self.pending_starts.pop(0).set_result(None)


@pytest.fixture
def scripted_backend() -> ScriptedBackend:
    """Controllable market backend."""
    return ScriptedBackend()


async def settle(rounds: int = 10) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def drain() -> Callable:
    """Coroutine helper that yields to the event loop a few times."""
    return settle
