"""
View state owned by the live synchronization controller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..models.indicators import IndicatorSnapshot
from ..models.market_data import Candle
from ..models.signals import Alert


class LoadPhase(str, Enum):
    """Outcome of the most recent load."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    STALE_DISCARDED = "stale_discarded"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamSession:
    """Symbol/period pair a poll timer was armed for."""
    symbol: str
    period: str

    def matches(self, symbol: str, period: str) -> bool:
        return self.symbol == symbol and self.period == period


@dataclass
class SyncState:
    """
    Controller view state.

    ``load_generation`` increments on every load that starts; only the load
    holding the newest generation may commit.
    """
    symbol: str
    period: str
    candles: List[Candle] = field(default_factory=list)
    indicators: IndicatorSnapshot = field(default_factory=IndicatorSnapshot)
    alerts: List[Alert] = field(default_factory=list)
    latest_alert: Optional[Alert] = None
    streaming: bool = False
    stream_period: Optional[str] = None
    load_generation: int = 0
    phase: LoadPhase = LoadPhase.IDLE
    last_error: Optional[str] = None
