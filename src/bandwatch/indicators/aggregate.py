"""
Timeframe aggregation of finest-granularity candles.
"""

from typing import List, Sequence

from ..models.market_data import Candle, Timeframe, period_milliseconds


def _merge(group: Sequence[Candle], bucket_start: int) -> Candle:
    return Candle(
        time=bucket_start,
        open=group[0].open,
        high=max(c.high for c in group),
        low=min(c.low for c in group),
        close=group[-1].close,
        volume=sum(c.volume for c in group),
    )


def aggregate_candles(candles: Sequence[Candle], period: str) -> List[Candle]:
    """
    Merge one-minute candles into ``period`` buckets.

    Buckets are aligned to ``time // period_ms``. Each bucket keeps the open of
    its first candle, the close of its last, the extreme high/low and the summed
    volume. Input must be in ascending time order.

    Args:
        candles: One-minute candles, ascending
        period: Target period (e.g. '5m', '1h')

    Returns:
        Aggregated candles keyed by bucket start time
    """
    if not candles:
        return []

    interval_ms = period_milliseconds(period)
    if interval_ms == Timeframe.finest().milliseconds:
        return list(candles)

    result: List[Candle] = []
    group: List[Candle] = []
    current_bucket = None

    for candle in candles:
        bucket = (candle.time // interval_ms) * interval_ms
        if current_bucket is not None and bucket != current_bucket:
            result.append(_merge(group, current_bucket))
            group = []
        current_bucket = bucket
        group.append(candle)

    if group:
        result.append(_merge(group, current_bucket))

    return result
