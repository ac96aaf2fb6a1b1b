"""
Unit tests for bandwatch data models.
"""

import pytest
from pydantic import ValidationError

from bandwatch.models import (
    Alert,
    Band,
    Candle,
    FetchResult,
    AttemptOutcome,
    AttemptRecord,
    IndicatorSnapshot,
    PriceRange,
    PriceTick,
    SignalType,
    Timeframe,
    coerce_alerts,
    coerce_candle,
    coerce_indicators,
    coerce_tick,
    period_milliseconds,
)


class TestTimeframe:
    """Test Timeframe enum functionality."""

    def test_timeframe_values(self):
        assert Timeframe.ONE_MINUTE == "1m"
        assert Timeframe.FIVE_MINUTES == "5m"
        assert Timeframe.ONE_WEEK == "1w"

    def test_timeframe_milliseconds(self):
        assert Timeframe.ONE_MINUTE.milliseconds == 60_000
        assert Timeframe.FIVE_MINUTES.milliseconds == 300_000
        assert Timeframe.ONE_DAY.milliseconds == 86_400_000

    def test_finest_is_one_minute(self):
        assert Timeframe.finest() is Timeframe.ONE_MINUTE

    def test_period_milliseconds_falls_back_to_minute(self):
        assert period_milliseconds("4h") == 4 * 3_600_000
        assert period_milliseconds("7m") == 60_000


class TestCandle:
    """Test Candle validation and shape properties."""

    def test_valid_candle(self):
        candle = Candle(time=0, open=100, high=110, low=95, close=105, volume=3)

        assert candle.body == 5
        assert candle.range == 15
        assert candle.upper_shadow == 5
        assert candle.lower_shadow == 5
        assert candle.is_bullish
        assert not candle.is_bearish

    def test_zero_range_candle_allowed(self):
        candle = Candle(time=0, open=100, high=100, low=100, close=100)
        assert candle.range == 0
        assert candle.volume == 0.0

    def test_high_below_body_rejected(self):
        with pytest.raises(ValidationError, match="High price"):
            Candle(time=0, open=100, high=99, low=95, close=98)

    def test_low_above_body_rejected(self):
        with pytest.raises(ValidationError, match="Low price"):
            Candle(time=0, open=100, high=110, low=101, close=105)

    def test_candle_is_frozen(self):
        candle = Candle(time=0, open=1, high=2, low=0.5, close=1.5)
        with pytest.raises(ValidationError):
            candle.close = 1.8

    def test_coerce_candle_from_dict(self):
        candle = coerce_candle({"time": 60_000, "open": 1, "high": 2, "low": 0.5, "close": 1.5, "volume": 4})
        assert isinstance(candle, Candle)
        assert coerce_candle(candle) is candle


class TestPriceTick:
    """Test push-channel tick parsing."""

    def test_timestamp_fallback(self, sample_tick_data):
        tick = PriceTick.model_validate(sample_tick_data)
        assert tick.time == sample_tick_data["timestamp"]

    def test_time_preferred_over_timestamp(self, sample_tick_data):
        tick = PriceTick.model_validate({**sample_tick_data, "time": 123})
        assert tick.time == 123

    def test_normalized_symbol(self, sample_tick_data):
        assert PriceTick.model_validate(sample_tick_data).normalized_symbol == "BTCUSDT"

    def test_to_candle_and_payload(self, sample_tick_data):
        tick = PriceTick.model_validate(sample_tick_data)
        candle = tick.to_candle()

        assert candle.time == tick.time
        assert candle.close == 100.5
        assert tick.to_payload()["symbol"] == "BTC_USDT"

    def test_coerce_tick_without_symbol(self):
        assert coerce_tick(None) is None
        assert coerce_tick({}) is None
        assert coerce_tick({"close": 1}) is None


class TestIndicatorSnapshot:
    """Test indicator payload normalization."""

    def test_wire_aliases(self):
        snapshot = coerce_indicators({
            "ma5": [1.0, 2.0],
            "bbUpper": [0.0, 12.0],
            "bbMiddle": [0.0, 10.0],
            "bbLower": [0.0, 8.0],
        })

        assert snapshot.bb_upper == [0.0, 12.0]
        assert len(snapshot) == 2
        assert snapshot.bands() == [None, Band(middle=10.0, upper=12.0, lower=8.0)]

    def test_empty_payloads(self):
        assert coerce_indicators(None).is_empty()
        assert coerce_indicators({}).is_empty()
        snapshot = IndicatorSnapshot(ma5=[1.0])
        assert coerce_indicators(snapshot) is snapshot
        assert not snapshot.is_empty()

    def test_band_height(self):
        assert Band(middle=10, upper=12, lower=7).height == 5


class TestAlert:
    """Test alert model."""

    def test_payload_uses_wire_names(self):
        alert = Alert(
            index=3, time=180_000, price=99.5, close=100.0,
            lower_band=99.0, type=SignalType.BOLLINGER_DOJI_BOTTOM,
        )
        payload = alert.to_payload()

        assert payload["lowerBand"] == 99.0
        assert payload["type"] == "bollinger_doji_bottom"
        assert "upperBand" not in payload
        assert "strength" not in payload

    def test_accepts_camel_case(self):
        alerts = coerce_alerts([{
            "index": 1, "time": 60_000, "price": 1.0, "close": 1.1,
            "upperBand": 1.2, "type": "bollinger_hanging_man_top", "strength": 0.75,
        }])

        assert alerts[0].upper_band == 1.2
        assert alerts[0].type == SignalType.BOLLINGER_HANGING_MAN_TOP

    def test_strength_bounds(self):
        with pytest.raises(ValidationError):
            Alert(index=0, time=0, price=1, close=1, type=SignalType.STRONG_HAMMER_GROUP, strength=1.5)

    def test_coerce_none(self):
        assert coerce_alerts(None) == []


class TestProviderResults:
    """Test fetch result helpers."""

    def test_attempts_for_source(self):
        result = FetchResult(success=False, attempts=[
            AttemptRecord(source="A", outcome=AttemptOutcome.FAILURE, elapsed_ms=1, retry_index=0, error="x"),
            AttemptRecord(source="B", outcome=AttemptOutcome.SUCCESS, elapsed_ms=2, retry_index=0),
            AttemptRecord(source="A", outcome=AttemptOutcome.FAILURE, elapsed_ms=1, retry_index=1, error="y"),
        ])

        assert [a.retry_index for a in result.attempts_for("A")] == [0, 1]
        assert result.attempts_for("B")[0].succeeded

    def test_price_range_spread(self):
        price_range = PriceRange(min=99.0, max=101.5, min_source="A", max_source="B")
        assert price_range.spread == 2.5
