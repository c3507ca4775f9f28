"""
Position and exit models for the exit state machine.

A Position is created when a candidate is accepted and mutated tick by tick:
water marks and stops only ever move in the position's favor. It carries at
most one terminal ExitDecision.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Tuple

from signalguard.shared.models.context import IgnitionState
from signalguard.shared.models.data import Candle, Instrument
from signalguard.shared.models.regime import VolatilityRegime
from signalguard.shared.models.zone import Direction


class PositionState(Enum):
    """Exit state machine states."""

    OPEN = "OPEN"
    TRAILING_ARMED = "TRAILING_ARMED"
    CLOSED = "CLOSED"


class ExitType(Enum):
    """Close triggers in evaluation priority order."""

    STRUCTURAL = "STRUCTURAL"
    TRAILING = "TRAILING"
    REGIME = "REGIME"
    OPTION_DECAY = "OPTION_DECAY"


@dataclass
class Position:
    """
    Live position state.

    Attributes:
        position_id: Unique position identifier
        instrument: Instrument held
        direction: LONG or SHORT
        entry_price: Fill price
        entry_time: Fill time
        atr_at_entry: ATR used to size the trailing distance
        high_water_mark: Highest price seen since entry
        low_water_mark: Lowest price seen since entry
        trailing_stop_price: Active trailing stop, None until armed
        structural_stop_price: Swing-level stop, ratchets in favor only
        regime_at_entry: Volatility regime when the position was opened
        state: Current state machine state
        exit: Terminal decision once closed
        regime_strikes: Consecutive ticks an adverse regime condition has held
    """
    position_id: str
    instrument: Instrument
    direction: Direction
    entry_price: float
    entry_time: datetime
    atr_at_entry: float
    high_water_mark: float = 0.0
    low_water_mark: float = 0.0
    trailing_stop_price: Optional[float] = None
    structural_stop_price: Optional[float] = None
    regime_at_entry: Optional[VolatilityRegime] = None
    state: PositionState = PositionState.OPEN
    exit: Optional["ExitDecision"] = None
    regime_strikes: int = 0

    def __post_init__(self):
        if self.entry_price <= 0:
            raise ValueError(f"Entry price must be positive, got {self.entry_price}")
        if self.atr_at_entry < 0:
            raise ValueError(f"ATR cannot be negative, got {self.atr_at_entry}")
        if not self.high_water_mark:
            self.high_water_mark = self.entry_price
        if not self.low_water_mark:
            self.low_water_mark = self.entry_price

    @property
    def is_option(self) -> bool:
        return self.instrument.is_option

    @property
    def is_closed(self) -> bool:
        return self.state is PositionState.CLOSED

    def unrealized_percent(self, price: float) -> float:
        return (price - self.entry_price) / self.entry_price * 100 * self.direction.sign


@dataclass(frozen=True)
class OptionGreeks:
    """Option decay inputs sampled on the tick."""
    theta: Optional[float] = None
    reference_theta: Optional[float] = None
    iv: Optional[float] = None
    iv_at_entry: Optional[float] = None
    oi_change_percent: Optional[float] = None  # signed, against the position when adverse


@dataclass(frozen=True)
class ExitTick:
    """
    One market update for an open position.

    `candle_closed` marks ticks that complete a candle; swing-level breaks
    are only evaluated on those. `vwap` and `ignition` feed the VWAP-break
    and opposite-ignition structural exits.
    """
    price: float
    timestamp: datetime
    candle_closed: bool = False
    candles: Tuple[Candle, ...] = field(default_factory=tuple)
    regime: Optional[VolatilityRegime] = None
    volatility_ratio: Optional[float] = None
    breadth_percent: Optional[float] = None
    vwap: Optional[float] = None
    ignition: Optional[IgnitionState] = None
    greeks: Optional[OptionGreeks] = None

    @classmethod
    def with_candles(cls, price: float, timestamp: datetime, candles: Sequence[Candle], **kwargs) -> "ExitTick":
        return cls(price=price, timestamp=timestamp, candle_closed=True, candles=tuple(candles), **kwargs)


@dataclass(frozen=True)
class ExitDecision:
    """Terminal close record for a position."""
    position_id: str
    type: ExitType
    trigger_price: float
    timestamp: datetime
    reason: str = ""
