"""
Indicator models: per-candle band values and the backend indicator snapshot.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Band(BaseModel):
    """Statistical envelope (mean ± k·stddev) for one candle index."""

    model_config = ConfigDict(frozen=True)

    middle: float
    upper: float
    lower: float

    @property
    def height(self) -> float:
        return self.upper - self.lower


class IndicatorSnapshot(BaseModel):
    """
    Indicator series aligned by index with a candle list.

    Mirrors the backend payload: moving averages, MACD with its signal line
    and histogram, and Bollinger band series. Positions before a series has
    enough history hold 0.0.
    """

    model_config = ConfigDict(populate_by_name=True)

    ma5: List[float] = Field(default_factory=list)
    ma10: List[float] = Field(default_factory=list)
    ma20: List[float] = Field(default_factory=list)
    macd: List[float] = Field(default_factory=list)
    signal: List[float] = Field(default_factory=list)
    hist: List[float] = Field(default_factory=list)
    bb_upper: List[float] = Field(default_factory=list, alias="bbUpper")
    bb_middle: List[float] = Field(default_factory=list, alias="bbMiddle")
    bb_lower: List[float] = Field(default_factory=list, alias="bbLower")

    def __len__(self) -> int:
        return len(self.bb_middle)

    def is_empty(self) -> bool:
        return not any((self.ma5, self.macd, self.bb_middle))

    def bands(self) -> List[Optional[Band]]:
        """Band view of the Bollinger series; unfilled positions become None."""
        bands: List[Optional[Band]] = []
        for upper, middle, lower in zip(self.bb_upper, self.bb_middle, self.bb_lower):
            if upper == 0 and middle == 0 and lower == 0:
                bands.append(None)
            else:
                bands.append(Band(middle=middle, upper=upper, lower=lower))
        return bands


def coerce_indicators(value: Any) -> IndicatorSnapshot:
    """Normalize a backend indicator payload; None and {} become an empty snapshot."""
    if isinstance(value, IndicatorSnapshot):
        return value
    if not value:
        return IndicatorSnapshot()
    return IndicatorSnapshot.model_validate(value)
