"""
Indicator engine: pure functions over candle sequences.
"""

from .bollinger import compute_band
from .calculator import calculate_indicators
from .aggregate import aggregate_candles

__all__ = [
    "compute_band",
    "calculate_indicators",
    "aggregate_candles",
]
