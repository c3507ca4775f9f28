"""
Volatility regime models.

The regime classifier publishes one RegimeClassification per instrument
(or the index under the global key) every refresh cycle.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class VolatilityRegime(Enum):
    COMPRESSION = "COMPRESSION"
    EXPANSION = "EXPANSION"
    TREND_DAY = "TREND_DAY"
    MEAN_REVERSION = "MEAN_REVERSION"
    NORMAL = "NORMAL"


class Compatibility(Enum):
    """How a regime treats a fresh directional entry."""
    ALLOW = "ALLOW"
    DENY = "DENY"
    ADJUST = "ADJUST"


@dataclass(frozen=True)
class RegimeClassification:
    """Single classifier output computed from a rolling candle window."""
    regime: VolatilityRegime
    atr_slope_percent: float  # recent TR vs prior TR, percent change
    range_expansion_percent: float  # current range vs average range, percent change
    volatility_ratio: float  # current range / average range
    computed_at: datetime
    reason: str = ""


@dataclass(frozen=True)
class RegimeVerdict:
    """Answer to `compatibility(direction)` for a consumer."""
    compatibility: Compatibility
    regime: Optional[VolatilityRegime]
    confidence_delta: float
    reason: str
