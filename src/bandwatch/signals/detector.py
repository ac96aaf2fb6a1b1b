"""
Band Signal Detection

Combines Bollinger band position with candle shapes to produce alerts:
- Doji at the lower band (tolerance rule on the band value)
- Hammer / consecutive hammers at the lower band
- Hanging man at the upper band
- Bullish/bearish engulfing near the respective band
- Strong groups of hammers / long top pins within 3-5 candle windows

Band-proximity for the extended detectors follows the backend rule: the
candle extreme must sit inside the band, within 10% of the band height.
Each detector returns alerts ordered by candle index.
"""

from typing import List, Optional, Sequence

from ..indicators.bollinger import compute_band
from ..models.indicators import Band
from ..models.market_data import Candle
from ..models.signals import Alert, SignalType
from .patterns import (
    is_consecutive_hammers,
    is_doji_pattern,
    is_engulfing,
    is_hammer,
    is_hanging_man,
    is_long_top_pin,
)

BAND_TOLERANCE_RATIO = 0.1


def _near_lower(price: float, band: Band) -> bool:
    diff = price - band.lower
    return 0 <= diff <= band.height * BAND_TOLERANCE_RATIO


def _near_upper(price: float, band: Band) -> bool:
    diff = band.upper - price
    return 0 <= diff <= band.height * BAND_TOLERANCE_RATIO


def detect_lower_band_doji(
    candles: Sequence[Candle],
    bands: Sequence[Optional[Band]],
    tolerance: float = 0.01,
    threshold: float = 0.001,
    strength: Optional[float] = None
) -> List[Alert]:
    """
    Flag doji candles touching the lower band.

    A candle with a band and a doji shape is flagged when its low or its
    close is at or below ``lower * (1 + tolerance)``.

    Args:
        candles: Candles in ascending time order
        bands: Bands aligned by index with ``candles``
        tolerance: Relative allowance above the lower band
        threshold: Doji body/open threshold
        strength: Optional strength to stamp on each alert

    Returns:
        Alerts ordered by ascending candle index
    """
    alerts: List[Alert] = []

    for i, candle in enumerate(candles):
        band = bands[i] if i < len(bands) else None
        if band is None or not is_doji_pattern(candle, threshold):
            continue

        limit = band.lower * (1 + tolerance)
        if candle.low <= limit or candle.close <= limit:
            alerts.append(Alert(
                index=i,
                time=candle.time,
                price=candle.low,
                close=candle.close,
                lower_band=band.lower,
                type=SignalType.BOLLINGER_DOJI_BOTTOM,
                strength=strength,
            ))

    return alerts


def latest_alert(alerts: Optional[Sequence[Alert]]) -> Optional[Alert]:
    """Last alert of an ordered sequence, or None when empty."""
    if not alerts:
        return None
    return alerts[-1]


def detect_hammer_bottom(candles: Sequence[Candle], bands: Sequence[Optional[Band]]) -> List[Alert]:
    alerts = []
    for i, candle in enumerate(candles):
        band = bands[i]
        if band is None or not is_hammer(candle):
            continue
        if _near_lower(candle.low, band):
            alerts.append(Alert(
                index=i, time=candle.time, price=candle.low, close=candle.close,
                lower_band=band.lower, type=SignalType.BOLLINGER_HAMMER_BOTTOM, strength=0.85,
            ))
    return alerts


def detect_consecutive_hammers(
    candles: Sequence[Candle],
    bands: Sequence[Optional[Band]],
    count: int = 2
) -> List[Alert]:
    alerts = []
    for i, candle in enumerate(candles):
        band = bands[i]
        if band is None or not is_consecutive_hammers(candles, i, count):
            continue
        if _near_lower(candle.low, band):
            alerts.append(Alert(
                index=i, time=candle.time, price=candle.low, close=candle.close,
                lower_band=band.lower, type=SignalType.BOLLINGER_CONSECUTIVE_HAMMERS, strength=0.9,
            ))
    return alerts


def detect_hanging_man_top(candles: Sequence[Candle], bands: Sequence[Optional[Band]]) -> List[Alert]:
    alerts = []
    for i, candle in enumerate(candles):
        band = bands[i]
        if band is None or not is_hanging_man(candle):
            continue
        if _near_upper(candle.high, band):
            alerts.append(Alert(
                index=i, time=candle.time, price=candle.high, close=candle.close,
                upper_band=band.upper, type=SignalType.BOLLINGER_HANGING_MAN_TOP, strength=0.75,
            ))
    return alerts


def detect_engulfing(candles: Sequence[Candle], bands: Sequence[Optional[Band]]) -> List[Alert]:
    """Engulfing pairs where either candle of the pair touches the matching band."""
    alerts = []
    for i in range(1, len(candles)):
        band = bands[i]
        if band is None:
            continue

        prev, curr = candles[i - 1], candles[i]
        engulfing, bullish = is_engulfing(prev, curr)
        if not engulfing:
            continue

        if bullish and (_near_lower(curr.low, band) or _near_lower(prev.low, band)):
            alerts.append(Alert(
                index=i, time=curr.time, price=curr.low, close=curr.close,
                lower_band=band.lower, type=SignalType.BOLLINGER_BULLISH_ENGULFING, strength=0.88,
            ))
        elif not bullish and (_near_upper(curr.high, band) or _near_upper(prev.high, band)):
            alerts.append(Alert(
                index=i, time=curr.time, price=curr.high, close=curr.close,
                upper_band=band.upper, type=SignalType.BOLLINGER_BEARISH_ENGULFING, strength=0.88,
            ))
    return alerts


def detect_strong_pattern_group(
    candles: Sequence[Candle],
    bands: Sequence[Optional[Band]],
    min_window: int = 3,
    max_window: int = 5,
    min_patterns: int = 2
) -> List[Alert]:
    """
    Flag windows of 3-5 candles holding at least two hammers or long top pins.

    The smallest qualifying window ending at an index wins; larger windows at
    the same index are not reported again.
    """
    alerts = []
    for i in range(max_window - 1, len(candles)):
        band = bands[i]
        if band is None:
            continue

        for window in range(min_window, max_window + 1):
            hammers = pins = 0
            for j in range(i - window + 1, i + 1):
                if is_hammer(candles[j]):
                    hammers += 1
                elif is_long_top_pin(candles[j]):
                    pins += 1

            total = hammers + pins
            if total < min_patterns:
                continue

            last = candles[i]
            if hammers >= 2:
                signal_type = SignalType.STRONG_HAMMER_GROUP
                strength = min(0.92 + (hammers - 2) * 0.02, 0.98)
                price = last.low
            elif pins >= 2:
                signal_type = SignalType.STRONG_TOP_PIN_GROUP
                strength = min(0.90 + (pins - 2) * 0.02, 0.96)
                price = last.high
            else:
                signal_type = SignalType.STRONG_MIXED_PATTERN_GROUP
                strength = min(0.88 + (total - 2) * 0.02, 0.94)
                price = last.low if hammers > pins else last.high

            alerts.append(Alert(
                index=i, time=last.time, price=price, close=last.close,
                lower_band=band.lower, upper_band=band.upper,
                type=signal_type, strength=round(strength, 4),
            ))
            break

    return alerts


def detect_all_signals(
    candles: Sequence[Candle],
    period: int = 20,
    multiplier: float = 2.0,
    tolerance: float = 0.01,
    doji_threshold: float = 0.001
) -> List[Alert]:
    """
    Run every detector over ``candles``.

    Alerts are grouped by detector in a fixed order (doji, hammer,
    consecutive hammers, hanging man, engulfing, strong groups); within a
    group they are ordered by candle index.
    """
    if not candles:
        return []

    bands = compute_band(candles, period, multiplier)

    alerts: List[Alert] = []
    alerts.extend(detect_lower_band_doji(candles, bands, tolerance, doji_threshold, strength=0.8))
    alerts.extend(detect_hammer_bottom(candles, bands))
    alerts.extend(detect_consecutive_hammers(candles, bands))
    alerts.extend(detect_hanging_man_top(candles, bands))
    alerts.extend(detect_engulfing(candles, bands))
    alerts.extend(detect_strong_pattern_group(candles, bands))
    return alerts


def sort_signals_by_strength(alerts: Sequence[Alert]) -> List[Alert]:
    """New list, strongest first; alerts without strength sort last."""
    return sorted(alerts, key=lambda a: a.strength or 0, reverse=True)
