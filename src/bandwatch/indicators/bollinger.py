"""
Bollinger band computation over a candle sequence.
"""

import math
from typing import List, Optional, Sequence

from ..models.indicators import Band
from ..models.market_data import Candle


def compute_band(
    candles: Sequence[Candle],
    period: int = 20,
    multiplier: float = 2.0
) -> List[Optional[Band]]:
    """
    Compute a rolling Bollinger band aligned by index with ``candles``.

    For each index with a full trailing window of ``period`` closes the band is
    the window mean plus/minus ``multiplier`` population standard deviations.
    Indices before the first full window get None.

    Args:
        candles: Candles in ascending time order
        period: Window length
        multiplier: Standard deviation multiplier

    Returns:
        List of Band or None, same length as ``candles``
    """
    if period <= 0:
        raise ValueError("period must be > 0")

    closes = [c.close for c in candles]
    bands: List[Optional[Band]] = []

    for i in range(len(closes)):
        if i < period - 1:
            bands.append(None)
            continue

        window = closes[i - period + 1:i + 1]
        mean = sum(window) / period
        variance = sum((x - mean) ** 2 for x in window) / period
        std = math.sqrt(variance)

        bands.append(Band(
            middle=mean,
            upper=mean + multiplier * std,
            lower=mean - multiplier * std,
        ))

    return bands
