"""
Market backend contract consumed by the sync controller, plus an in-memory
reference implementation.

The backend computes candles, indicators and alerts per (symbol, period),
manages server-side streams and pushes price ticks to subscribers.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..config import IndicatorConfig
from ..indicators.aggregate import aggregate_candles
from ..indicators.calculator import calculate_indicators
from ..logger import get_logger
from ..models.indicators import IndicatorSnapshot
from ..models.market_data import Candle, PriceTick, coerce_candle
from ..models.signals import Alert
from ..signals.detector import detect_all_signals
from .buffer import CandleBuffer

logger = get_logger(__name__)

TickCallback = Callable[[Dict[str, Any]], Any]
Unsubscribe = Callable[[], None]


class MarketBackend(ABC):
    """Remote market computation service."""

    @abstractmethod
    async def get_candles(self, symbol: str, period: str) -> List[Union[Candle, Dict[str, Any]]]:
        """Candles for the pair, oldest first. May be empty."""

    @abstractmethod
    async def get_indicators(self, symbol: str, period: str) -> Union[IndicatorSnapshot, Dict[str, Any], None]:
        """Indicator series aligned with get_candles()."""

    @abstractmethod
    async def get_alerts(self, symbol: str, period: str) -> List[Union[Alert, Dict[str, Any]]]:
        """Alerts ordered by candle index."""

    @abstractmethod
    async def start_stream(self, symbol: str, period: str) -> None:
        """Start server-side streaming for the pair."""

    @abstractmethod
    async def stop_stream(self, symbol: str) -> None:
        """Stop streaming for ``symbol``. Stopping an inactive stream is a no-op."""

    @abstractmethod
    async def resync(self, symbol: str, lookback_units: int) -> None:
        """Ask the backend to refresh recent history for ``symbol``."""

    @abstractmethod
    def subscribe(self, callback: TickCallback) -> Unsubscribe:
        """Register a price tick callback; returns a function that removes it."""


def store_key(symbol: str) -> str:
    return symbol.upper().replace("_", "").replace("-", "")


class InMemoryMarketBackend(MarketBackend):
    """
    Backend over an in-process store of one-minute candles.

    Coarser periods are aggregated on read; indicators and alerts are computed
    from the served candles. Used by tests and local diagnostics.
    """

    def __init__(
        self,
        candle_limit: int = 1000,
        store_capacity: int = 50000,
        indicators: Optional[IndicatorConfig] = None
    ):
        self.candle_limit = candle_limit
        self.store_capacity = store_capacity
        self.indicators = indicators or IndicatorConfig()

        self._store: Dict[str, CandleBuffer] = {}
        self._subscribers: List[TickCallback] = []
        self.active_streams: Dict[str, str] = {}
        self.resync_requests: List[Tuple[str, int]] = []

    def seed(self, symbol: str, candles: Iterable[Union[Candle, Dict[str, Any]]]) -> None:
        """Replace the stored one-minute history for ``symbol``."""
        buffer = CandleBuffer(self.store_capacity)
        buffer.replace(coerce_candle(c) for c in candles)
        self._store[store_key(symbol)] = buffer

    def _series(self, symbol: str, period: str) -> List[Candle]:
        buffer = self._store.get(store_key(symbol))
        if buffer is None:
            return []
        candles = aggregate_candles(buffer.snapshot(), period)
        return candles[-self.candle_limit:]

    async def get_candles(self, symbol: str, period: str) -> List[Candle]:
        return self._series(symbol, period)

    async def get_indicators(self, symbol: str, period: str) -> IndicatorSnapshot:
        config = self.indicators
        return calculate_indicators(self._series(symbol, period), config.band_period, config.band_multiplier)

    async def get_alerts(self, symbol: str, period: str) -> List[Alert]:
        config = self.indicators
        return detect_all_signals(
            self._series(symbol, period),
            period=config.band_period,
            multiplier=config.band_multiplier,
            tolerance=config.band_tolerance,
            doji_threshold=config.doji_threshold,
        )

    async def start_stream(self, symbol: str, period: str) -> None:
        self.active_streams[store_key(symbol)] = period
        logger.info(f"Stream started: {symbol} {period}")

    async def stop_stream(self, symbol: str) -> None:
        if self.active_streams.pop(store_key(symbol), None) is not None:
            logger.info(f"Stream stopped: {symbol}")

    async def resync(self, symbol: str, lookback_units: int) -> None:
        self.resync_requests.append((symbol, lookback_units))

    def subscribe(self, callback: TickCallback) -> Unsubscribe:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def is_streaming(self, symbol: str) -> bool:
        return store_key(symbol) in self.active_streams

    def publish_tick(self, tick: Union[PriceTick, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Merge a tick into the store and deliver it to every subscriber.

        Returns:
            The delivered payload
        """
        if not isinstance(tick, PriceTick):
            tick = PriceTick.model_validate(tick)

        key = store_key(tick.symbol)
        buffer = self._store.setdefault(key, CandleBuffer(self.store_capacity))
        buffer.apply_tick(tick)

        payload = tick.to_payload()
        for callback in list(self._subscribers):
            callback(payload)
        return payload
