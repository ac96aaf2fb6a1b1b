"""
Bounded rolling candle window.
"""

from collections import deque
from typing import Deque, Iterable, List, Optional

from ..models.market_data import Candle, PriceTick, Timeframe

DEFAULT_CAPACITY = 1000


def same_bucket(first_ms: int, second_ms: int, width_ms: Optional[int] = None) -> bool:
    """True when both timestamps fall into the same finest-granularity bucket."""
    width_ms = width_ms or Timeframe.finest().milliseconds
    return first_ms // width_ms == second_ms // width_ms


class CandleBuffer:
    """
    Candle window capped at ``capacity`` entries; the oldest are evicted first.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._candles: Deque[Candle] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._candles)

    def __bool__(self) -> bool:
        return bool(self._candles)

    def __iter__(self):
        return iter(self._candles)

    @property
    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    def snapshot(self) -> List[Candle]:
        """Copy of the window, oldest first."""
        return list(self._candles)

    def replace(self, candles: Iterable[Candle]) -> None:
        """Swap the whole window; only the newest ``capacity`` candles are kept."""
        self._candles = deque(candles, maxlen=self.capacity)

    def apply_tick(self, tick: PriceTick) -> bool:
        """
        Merge a price tick into the window.

        A tick in the same bucket as the last candle updates it in place:
        open, close and volume are overwritten, high and low are widened.
        Any other tick is appended as a new candle, evicting the oldest one
        when the window is full.

        Returns:
            True when a new candle was appended, False for an in-place update
        """
        last = self.last
        if last is not None and same_bucket(last.time, tick.time):
            self._candles[-1] = last.model_copy(update={
                "open": tick.open,
                "high": max(last.high, tick.high),
                "low": min(last.low, tick.low),
                "close": tick.close,
                "volume": tick.volume,
            })
            return False

        self._candles.append(tick.to_candle())
        return True
