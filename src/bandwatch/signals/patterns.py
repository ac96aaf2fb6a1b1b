"""
Single and two-candle shape predicates.

All predicates return False for zero-range candles (high == low).
"""

from typing import Sequence, Tuple

from ..models.market_data import Candle


def is_doji_pattern(candle: Candle, threshold: float = 0.001) -> bool:
    """
    Doji: small body relative to the open price, with proportionally large wicks.

    True iff the range is positive, ``body / open < threshold`` and the range
    exceeds twice the body.
    """
    if candle is None or candle.high == candle.low:
        return False

    body = abs(candle.close - candle.open)
    price_range = candle.high - candle.low

    return price_range > 0 and body / candle.open < threshold and price_range > body * 2


def is_hammer(candle: Candle) -> bool:
    """Lower shadow at least twice the body, upper shadow at most 30% of it."""
    if candle.high == candle.low:
        return False

    body = candle.body
    return candle.range > 0 and candle.lower_shadow >= body * 2 and candle.upper_shadow <= body * 0.3


def is_hanging_man(candle: Candle) -> bool:
    """Same shape as a hammer; only its position at the upper band differs."""
    return is_hammer(candle)


def is_top_pin(candle: Candle) -> bool:
    """Long upper shadow (>= 2x body and >= 50% of range), short lower shadow."""
    if candle.high == candle.low:
        return False

    body = candle.body
    upper = candle.upper_shadow
    return (
        candle.range > 0
        and upper >= body * 2
        and candle.lower_shadow <= body * 0.3
        and upper >= candle.range * 0.5
    )


def is_long_top_pin(candle: Candle) -> bool:
    """Stricter top pin: upper shadow >= 3x body and >= 60% of range."""
    if candle.high == candle.low:
        return False

    body = candle.body
    upper = candle.upper_shadow
    return (
        candle.range > 0
        and upper >= body * 3
        and candle.lower_shadow <= body * 0.2
        and upper >= candle.range * 0.6
    )


def is_engulfing(prev: Candle, curr: Candle) -> Tuple[bool, bool]:
    """
    Detect an engulfing pair.

    Returns:
        (is_engulfing, is_bullish)
    """
    if prev.high == prev.low or curr.high == curr.low:
        return False, False

    if curr.body <= prev.body:
        return False, False

    bullish = (
        prev.close < prev.open and curr.close > curr.open
        and curr.open < prev.close and curr.close > prev.open
    )
    bearish = (
        prev.close > prev.open and curr.close < curr.open
        and curr.open > prev.close and curr.close < prev.open
    )

    if bullish:
        return True, True
    if bearish:
        return True, False
    return False, False


def is_consecutive_hammers(candles: Sequence[Candle], index: int, count: int) -> bool:
    """True when the ``count`` candles ending at ``index`` are all hammers."""
    if index < count - 1 or index >= len(candles):
        return False
    return all(is_hammer(candles[i]) for i in range(index - count + 1, index + 1))
