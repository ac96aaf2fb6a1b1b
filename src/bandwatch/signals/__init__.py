"""
Signal engine: candle shape predicates and band-based alert detectors.
"""

from .patterns import (
    is_doji_pattern,
    is_hammer,
    is_hanging_man,
    is_top_pin,
    is_long_top_pin,
    is_engulfing,
    is_consecutive_hammers,
)
from .detector import (
    detect_lower_band_doji,
    latest_alert,
    detect_hammer_bottom,
    detect_consecutive_hammers,
    detect_hanging_man_top,
    detect_engulfing,
    detect_strong_pattern_group,
    detect_all_signals,
    sort_signals_by_strength,
)

__all__ = [
    "is_doji_pattern",
    "is_hammer",
    "is_hanging_man",
    "is_top_pin",
    "is_long_top_pin",
    "is_engulfing",
    "is_consecutive_hammers",
    "detect_lower_band_doji",
    "latest_alert",
    "detect_hammer_bottom",
    "detect_consecutive_hammers",
    "detect_hanging_man_top",
    "detect_engulfing",
    "detect_strong_pattern_group",
    "detect_all_signals",
    "sort_signals_by_strength",
]
