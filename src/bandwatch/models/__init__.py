"""
Data models for bandwatch.

Pydantic models for candles, ticks, indicator snapshots, alerts and the
upstream provider fetch results.
"""

from .market_data import (
    Timeframe,
    Candle,
    PriceTick,
    period_milliseconds,
    coerce_candle,
    coerce_tick,
)
from .indicators import Band, IndicatorSnapshot, coerce_indicators
from .signals import SignalType, Alert, coerce_alerts
from .providers import (
    DEFAULT_TIMEOUT_MS,
    ProviderKind,
    AttemptOutcome,
    ProviderDescriptor,
    AttemptRecord,
    FetchResult,
    ProviderOutcome,
    PriceRange,
    FetchReport,
    ProviderStatus,
)

__all__ = [
    # Market data
    "Timeframe",
    "Candle",
    "PriceTick",
    "period_milliseconds",
    "coerce_candle",
    "coerce_tick",

    # Indicators
    "Band",
    "IndicatorSnapshot",
    "coerce_indicators",

    # Signals
    "SignalType",
    "Alert",
    "coerce_alerts",

    # Providers
    "DEFAULT_TIMEOUT_MS",
    "ProviderKind",
    "AttemptOutcome",
    "ProviderDescriptor",
    "AttemptRecord",
    "FetchResult",
    "ProviderOutcome",
    "PriceRange",
    "FetchReport",
    "ProviderStatus",
]
