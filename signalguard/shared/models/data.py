"""
Data models for instruments, candles and per-cycle evaluation input.

This module defines the core data structures handed to the signal core by
the market-data collaborators: immutable instrument reference data, the
rolling OHLCV candle window, and the per-instrument evaluation input.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import pandas as pd


# Exchange wall clock. IST has no daylight saving so a fixed offset is exact.
IST = timezone(timedelta(hours=5, minutes=30))


class CircuitBand(Enum):
    """Exchange price band an instrument trades under."""

    BAND_2 = 2.0
    BAND_5 = 5.0
    BAND_10 = 10.0
    BAND_20 = 20.0
    NONE = 0.0  # F&O names trade without a daily band

    @classmethod
    def from_percent(cls, percent: float) -> "CircuitBand":
        """Resolve a band from its width, tolerating float noise."""
        for band in cls:
            if band is not cls.NONE and abs(band.value - percent) < 0.01:
                return band
        return cls.NONE


@dataclass(frozen=True)
class Instrument:
    """
    Immutable instrument reference data, held by token only.

    Attributes:
        token: Exchange instrument token
        symbol: Trading symbol (e.g. 'RELIANCE', 'NIFTY24DEC24000CE')
        exchange: Exchange segment (NSE, BSE, NFO)
        circuit_band: Daily price band the instrument trades under
        lot_size: Contract lot size (1 for cash equities)
        underlying: Underlying symbol for derivatives
        expiry: Contract expiry date for derivatives
        strike: Strike price for options
        option_type: 'CE' or 'PE' for options, None otherwise
    """
    token: str
    symbol: str
    exchange: str = "NSE"
    circuit_band: CircuitBand = CircuitBand.BAND_20
    lot_size: int = 1
    underlying: Optional[str] = None
    expiry: Optional[date] = None
    strike: Optional[float] = None
    option_type: Optional[str] = None

    def __post_init__(self):
        if not self.token:
            raise ValueError("Instrument token cannot be empty")
        if self.lot_size <= 0:
            raise ValueError(f"Lot size must be positive, got {self.lot_size}")
        if self.option_type is not None and self.option_type not in ("CE", "PE"):
            raise ValueError(f"Option type must be CE or PE, got {self.option_type}")

    @property
    def is_option(self) -> bool:
        return self.option_type is not None

    @property
    def underlying_symbol(self) -> str:
        """Underlying for exposure grouping; cash equities are their own underlying."""
        return self.underlying or self.symbol


@dataclass(frozen=True)
class Candle:
    """
    Single OHLCV candlestick.

    Attributes:
        timestamp: Candle open time
        open: Opening price
        high: Highest price during period
        low: Lowest price during period
        close: Closing price
        volume: Traded volume
    """
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self):
        """Validate OHLCV relationships."""
        if self.high < self.low:
            raise ValueError(f"High ({self.high}) cannot be less than Low ({self.low})")
        if self.high < self.close or self.high < self.open:
            raise ValueError(f"High ({self.high}) must be >= Open ({self.open}) and Close ({self.close})")
        if self.low > self.close or self.low > self.open:
            raise ValueError(f"Low ({self.low}) must be <= Open ({self.open}) and Close ({self.close})")
        if self.volume < 0:
            raise ValueError(f"Volume cannot be negative, got {self.volume}")

    @property
    def range(self) -> float:
        return self.high - self.low


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """
    Convert an oldest-first candle window into an indicator DataFrame.

    The returned frame is a copy; indicator code may add columns freely
    without touching the caller's history.
    """
    return pd.DataFrame(
        {
            "timestamp": [c.timestamp for c in candles],
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        }
    )


@dataclass(frozen=True)
class CircuitLimits:
    """Upper and lower circuit prices for the current session."""
    upper: float
    lower: float

    def __post_init__(self):
        if self.upper <= self.lower:
            raise ValueError(f"Upper circuit ({self.upper}) must exceed lower circuit ({self.lower})")


@dataclass(frozen=True)
class ConfidenceInputs:
    """
    Upstream inputs to the confidence composite.

    Attributes:
        mtf_5m: 5-minute trend agrees with the signal direction
        mtf_15m: 15-minute trend agrees with the signal direction
        mtf_daily: Daily trend agrees with the signal direction
        confidence_estimate: Optional upstream 0-100 estimate gated by the zone engine
    """
    mtf_5m: bool = False
    mtf_15m: bool = False
    mtf_daily: bool = False
    confidence_estimate: Optional[float] = None

    @property
    def aligned_timeframes(self) -> int:
        return sum((self.mtf_5m, self.mtf_15m, self.mtf_daily))


@dataclass(frozen=True)
class EvaluationInput:
    """
    Everything the core consumes per cycle for one instrument.

    Candles are oldest-first and at least 20 long for a full evaluation.
    `structural_stop_percent` is the distance from entry to the structural
    stop as a percent of price.
    A naive `timestamp` is taken to be IST.
    """
    instrument: Instrument
    candles: Tuple[Candle, ...]
    current_price: float
    open_price: float
    spread_percent: float
    index_change_percent: float
    circuit_limits: CircuitLimits
    timestamp: datetime
    vwap: Optional[float] = None
    structural_stop_percent: Optional[float] = None
    confidence_inputs: ConfidenceInputs = field(default_factory=ConfidenceInputs)

    def __post_init__(self):
        if self.open_price <= 0:
            raise ValueError(f"Open price must be positive, got {self.open_price}")
        if self.current_price <= 0:
            raise ValueError(f"Current price must be positive, got {self.current_price}")
        if self.spread_percent < 0:
            raise ValueError(f"Spread cannot be negative, got {self.spread_percent}")
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=IST))
        # Freeze the window so the core can never mutate collaborator history
        if not isinstance(self.candles, tuple):
            object.__setattr__(self, "candles", tuple(self.candles))

    @property
    def token(self) -> str:
        return self.instrument.token

    @property
    def move_percent(self) -> float:
        return (self.current_price - self.open_price) / self.open_price * 100

    def recent_candles(self, count: int) -> List[Candle]:
        return list(self.candles[-count:])
