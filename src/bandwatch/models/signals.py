"""
Alert models produced by the signal detectors.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SignalType(str, Enum):
    """Alert type tags."""

    # Bullish, at the lower band
    BOLLINGER_DOJI_BOTTOM = "bollinger_doji_bottom"
    BOLLINGER_HAMMER_BOTTOM = "bollinger_hammer_bottom"
    BOLLINGER_CONSECUTIVE_HAMMERS = "bollinger_consecutive_hammers"
    BOLLINGER_BULLISH_ENGULFING = "bollinger_bullish_engulfing"
    # Bearish, at the upper band
    BOLLINGER_HANGING_MAN_TOP = "bollinger_hanging_man_top"
    BOLLINGER_BEARISH_ENGULFING = "bollinger_bearish_engulfing"
    # Multi-candle groups
    STRONG_HAMMER_GROUP = "strong_hammer_group"
    STRONG_TOP_PIN_GROUP = "strong_top_pin_group"
    STRONG_MIXED_PATTERN_GROUP = "strong_mixed_pattern_group"


class Alert(BaseModel):
    """
    Pattern alert tied to a candle position.

    ``index`` is the position in the candle sequence the alert was computed
    from; alerts from one detection pass are ordered by it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=True)

    index: int = Field(..., ge=0)
    time: int = Field(..., ge=0)
    price: float
    close: float
    lower_band: Optional[float] = Field(default=None, alias="lowerBand")
    upper_band: Optional[float] = Field(default=None, alias="upperBand")
    type: SignalType
    strength: Optional[float] = Field(default=None, ge=0, le=1)

    def to_payload(self) -> dict:
        """Serialize with wire (camelCase) keys, dropping unset bands."""
        return self.model_dump(by_alias=True, exclude_none=True)


def coerce_alerts(values: Any) -> List[Alert]:
    """Normalize a backend alert payload; None becomes an empty list."""
    if not values:
        return []
    return [v if isinstance(v, Alert) else Alert.model_validate(v) for v in values]
