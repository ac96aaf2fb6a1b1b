"""
Indicator snapshot calculator.

Produces the full indicator payload the backend serves for a candle list:
simple moving averages, MACD (12/26 EMA with a smoothed signal line) and
Bollinger band series.
"""

from typing import List, Sequence

from ..models.indicators import IndicatorSnapshot
from ..models.market_data import Candle
from .bollinger import compute_band


def _moving_average(closes: List[float], length: int) -> List[float]:
    values = [0.0] * len(closes)
    for i in range(length - 1, len(closes)):
        values[i] = sum(closes[i - length + 1:i + 1]) / length
    return values


def _macd(closes: List[float]):
    n = len(closes)
    macd = [0.0] * n
    signal = [0.0] * n
    hist = [0.0] * n

    ema12 = ema26 = 0.0
    for i, close in enumerate(closes):
        if i == 0:
            ema12 = ema26 = close
        else:
            ema12 = ema12 * 11 / 13 + close * 2 / 13
            ema26 = ema26 * 25 / 27 + close * 2 / 27
        if i >= 25:
            macd[i] = ema12 - ema26

    # Signal line seeds at index 26, then smooths with weight 2/10
    for i in range(26, n):
        if i == 26:
            signal[i] = macd[i]
        else:
            signal[i] = signal[i - 1] * 8 / 10 + macd[i] * 2 / 10
            hist[i] = macd[i] - signal[i]

    return macd, signal, hist


def calculate_indicators(
    candles: Sequence[Candle],
    band_period: int = 20,
    band_multiplier: float = 2.0
) -> IndicatorSnapshot:
    """
    Calculate the indicator snapshot for ``candles``.

    Returns an empty snapshot for an empty input.
    """
    if not candles:
        return IndicatorSnapshot()

    closes = [c.close for c in candles]
    macd, signal, hist = _macd(closes)

    bb_upper, bb_middle, bb_lower = [], [], []
    for band in compute_band(candles, band_period, band_multiplier):
        bb_upper.append(band.upper if band else 0.0)
        bb_middle.append(band.middle if band else 0.0)
        bb_lower.append(band.lower if band else 0.0)

    return IndicatorSnapshot(
        ma5=_moving_average(closes, 5),
        ma10=_moving_average(closes, 10),
        ma20=_moving_average(closes, 20),
        macd=macd,
        signal=signal,
        hist=hist,
        bb_upper=bb_upper,
        bb_middle=bb_middle,
        bb_lower=bb_lower,
    )
