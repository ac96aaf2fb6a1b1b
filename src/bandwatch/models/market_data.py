"""
Core Market Data Models

This module contains Pydantic models for the market data the sync layer moves around:
- Timeframe: Enumeration of supported candle periods
- Candle: OHLCV bar with price relationship validation
- PriceTick: Push-channel price update for the live candle

Wire payloads from the backend use camelCase keys and millisecond timestamps;
models accept them directly.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Timeframe(str, Enum):
    """Supported candle periods, finest first."""

    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    TWO_HOURS = "2h"
    FOUR_HOURS = "4h"
    ONE_DAY = "1d"
    ONE_WEEK = "1w"

    @property
    def minutes(self) -> int:
        """Convert timeframe to minutes."""
        mapping = {
            "1m": 1,
            "5m": 5,
            "15m": 15,
            "30m": 30,
            "1h": 60,
            "2h": 120,
            "4h": 240,
            "1d": 1440,
            "1w": 10080,
        }
        return mapping[self.value]

    @property
    def milliseconds(self) -> int:
        """Convert timeframe to milliseconds."""
        return self.minutes * 60 * 1000

    @classmethod
    def finest(cls) -> "Timeframe":
        """The granularity push ticks are delivered at."""
        return cls.ONE_MINUTE


def period_milliseconds(period: str) -> int:
    """Bucket width for a period string; unknown periods fall back to one minute."""
    try:
        return Timeframe(period).milliseconds
    except ValueError:
        return Timeframe.finest().milliseconds


class Candle(BaseModel):
    """
    OHLCV candle keyed by its bucket open time in milliseconds.

    Validates the price relationships low <= min(open, close) and
    max(open, close) <= high. Zero-range candles (high == low) are allowed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    time: int = Field(..., description="Bucket open time (unix ms)", ge=0)
    open: float = Field(..., description="Opening price")
    high: float = Field(..., description="Highest price")
    low: float = Field(..., description="Lowest price")
    close: float = Field(..., description="Closing price")
    volume: float = Field(default=0.0, description="Traded volume", ge=0)

    @model_validator(mode='after')
    def validate_ohlc_relationships(self):
        """Validate OHLC price relationships."""
        if self.high < max(self.open, self.close):
            raise ValueError(f"High price {self.high} must be >= max(open, close)")
        if self.low > min(self.open, self.close):
            raise ValueError(f"Low price {self.low} must be <= min(open, close)")
        return self

    @property
    def body(self) -> float:
        """Absolute difference between open and close."""
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        """Total high-low range."""
        return self.high - self.low

    @property
    def upper_shadow(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_shadow(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


class PriceTick(BaseModel):
    """
    Push-channel price update.

    The backend emits either ``time`` or ``timestamp``; both land in ``time``.
    Symbols may carry a separator (``BTC_USDT``) which ``normalized_symbol``
    strips before matching against the active selection.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1)
    time: int = Field(..., ge=0)
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @model_validator(mode='before')
    @classmethod
    def resolve_time(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("time") is None and "timestamp" in data:
            data = dict(data)
            data["time"] = data["timestamp"]
        return data

    @property
    def normalized_symbol(self) -> str:
        return self.symbol.replace("_", "")

    def to_candle(self) -> Candle:
        """Build a fresh candle from this tick."""
        return Candle(
            time=self.time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the push-channel event shape."""
        return {
            "symbol": self.symbol,
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


def coerce_candle(value: Any) -> Candle:
    """Accept a Candle or a wire dict."""
    if isinstance(value, Candle):
        return value
    return Candle.model_validate(value)


def coerce_tick(value: Any) -> Optional[PriceTick]:
    """Accept a PriceTick or a wire dict; None for payloads without a symbol."""
    if isinstance(value, PriceTick):
        return value
    if not value or not isinstance(value, dict) or not value.get("symbol"):
        return None
    return PriceTick.model_validate(value)
