"""
Unit tests for the band, indicator snapshot and aggregation functions.
"""

import math

import pytest

from bandwatch.indicators import aggregate_candles, calculate_indicators, compute_band
from bandwatch.models.market_data import Candle


class TestComputeBand:
    """Test the rolling Bollinger band."""

    def test_length_and_leading_none(self, candle_series):
        candles = candle_series(30, step=1.0)
        bands = compute_band(candles, period=20)

        assert len(bands) == 30
        assert all(b is None for b in bands[:19])
        assert all(b is not None for b in bands[19:])

    def test_population_variance(self, candle_series):
        candles = candle_series(20, base=1.0, step=1.0)  # closes 1..20
        band = compute_band(candles, period=20, multiplier=2.0)[-1]

        std = math.sqrt(33.25)
        assert band.middle == pytest.approx(10.5)
        assert band.upper == pytest.approx(10.5 + 2 * std)
        assert band.lower == pytest.approx(10.5 - 2 * std)

    def test_constant_closes_collapse_band(self, candle_series):
        band = compute_band(candle_series(25, base=50.0), period=20)[-1]
        assert band.upper == band.middle == band.lower == 50.0

    def test_short_and_empty_input(self, candle_series):
        assert compute_band(candle_series(5), period=20) == [None] * 5
        assert compute_band([], period=20) == []

    def test_invalid_period(self, candle_series):
        with pytest.raises(ValueError):
            compute_band(candle_series(3), period=0)

    def test_deterministic(self, candle_series):
        candles = candle_series(40, step=0.7)
        assert compute_band(candles) == compute_band(candles)


class TestCalculateIndicators:
    """Test the indicator snapshot calculator."""

    def test_empty_input(self):
        assert calculate_indicators([]).is_empty()

    def test_series_alignment(self, candle_series):
        candles = candle_series(40, base=100.0, step=0.5)
        snapshot = calculate_indicators(candles)

        for series in (snapshot.ma5, snapshot.ma10, snapshot.ma20, snapshot.macd,
                       snapshot.signal, snapshot.hist, snapshot.bb_upper, snapshot.bb_lower):
            assert len(series) == 40

    def test_moving_averages(self, candle_series):
        candles = candle_series(30, base=1.0, step=1.0)
        snapshot = calculate_indicators(candles)

        assert snapshot.ma5[3] == 0.0
        assert snapshot.ma5[4] == pytest.approx(3.0)
        assert snapshot.ma10[9] == pytest.approx(5.5)
        assert snapshot.ma20[19] == pytest.approx(10.5)

    def test_macd_warmup(self, candle_series):
        snapshot = calculate_indicators(candle_series(40, base=100.0, step=1.0))

        assert all(v == 0.0 for v in snapshot.macd[:25])
        assert snapshot.macd[25] > 0
        assert snapshot.signal[26] == snapshot.macd[26]
        assert snapshot.hist[26] == 0.0
        assert snapshot.hist[27] == pytest.approx(snapshot.macd[27] - snapshot.signal[27])

    def test_bands_match_compute_band(self, candle_series):
        candles = candle_series(25, step=0.3)
        snapshot = calculate_indicators(candles)

        assert snapshot.bb_middle[18] == 0.0
        assert snapshot.bands()[24] == compute_band(candles)[24]


class TestAggregateCandles:
    """Test timeframe aggregation."""

    def test_one_minute_passthrough(self, candle_series):
        candles = candle_series(3)
        aggregated = aggregate_candles(candles, "1m")

        assert aggregated == candles
        assert aggregated is not candles

    def test_five_minute_buckets(self):
        candles = [
            Candle(time=i * 60_000, open=10 + i, high=20 + i, low=5 + i, close=11 + i, volume=1)
            for i in range(10)
        ]

        aggregated = aggregate_candles(candles, "5m")

        assert len(aggregated) == 2
        first = aggregated[0]
        assert first.time == 0
        assert first.open == 10
        assert first.close == 15
        assert first.high == 24
        assert first.low == 5
        assert first.volume == 5
        assert aggregated[1].time == 300_000

    def test_unaligned_start(self):
        candles = [
            Candle(time=t, open=1, high=2, low=0.5, close=1.5, volume=2)
            for t in (240_000, 300_000, 360_000)
        ]

        aggregated = aggregate_candles(candles, "5m")

        assert [c.time for c in aggregated] == [0, 300_000]
        assert aggregated[1].volume == 4

    def test_empty(self):
        assert aggregate_candles([], "1h") == []
