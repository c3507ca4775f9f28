"""
Market context snapshot models.

A MarketContext is the read-only view of every context fact relevant to one
instrument, assembled once per evaluation from the independent fact stores.
Every field may be None when its producer has not published yet; guards
decide per fact whether absence blocks.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Optional

from signalguard.shared.models.regime import VolatilityRegime
from signalguard.shared.models.zone import Direction


@dataclass(frozen=True)
class RelativeStrength:
    """Own move minus index move, and its percentile across the universe."""
    value: float
    percentile: Optional[float] = None


@dataclass(frozen=True)
class PanicState:
    active: bool
    reason: str = ""


@dataclass(frozen=True)
class LatencyState:
    api_latency_ms: float
    ws_latency_ms: float


@dataclass(frozen=True)
class LiquidityShock:
    active: bool
    volume_drop_percent: float = 0.0
    spread_widening_percent: float = 0.0


@dataclass(frozen=True)
class DrawdownState:
    locked: bool
    failed_signals: int = 0
    realized_loss_percent: float = 0.0
    locked_until: Optional[datetime] = None


@dataclass(frozen=True)
class ExposureState:
    """Open book as seen by the portfolio collaborator."""
    open_positions: int
    by_underlying: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class IgnitionState:
    """Early momentum-ignition read on an instrument."""
    detected: bool
    direction: Optional[Direction] = None
    strength: float = 0.0


@dataclass(frozen=True)
class OptionChainState:
    """
    Option-side facts for an underlying.

    Attributes:
        active_expiry: Expiry currently traded for this underlying
        spot: Underlying spot price
        orderbook_spread_percent: Bid/ask spread as percent of premium
        bid_ask_imbalance: max(bid_qty, ask_qty) / min(bid_qty, ask_qty)
        gamma_cluster_strength: 0-100 strength of a gamma cluster near spot
        put_call_ratio: Open interest PCR
    """
    active_expiry: Optional[date] = None
    spot: Optional[float] = None
    orderbook_spread_percent: Optional[float] = None
    bid_ask_imbalance: Optional[float] = None
    gamma_cluster_strength: Optional[float] = None
    put_call_ratio: Optional[float] = None


@dataclass(frozen=True)
class MarketContext:
    """Read-only per-evaluation view over the context fact stores."""
    panic: Optional[PanicState] = None
    circuit_hit: Optional[bool] = None
    liquidity_tier: Optional[int] = None
    relative_strength: Optional[RelativeStrength] = None
    regime: Optional[VolatilityRegime] = None
    breadth_percent: Optional[float] = None
    drawdown: Optional[DrawdownState] = None
    vix: Optional[float] = None
    latency: Optional[LatencyState] = None
    clock_drift_ms: Optional[float] = None
    liquidity_shock: Optional[LiquidityShock] = None
    exposure: Optional[ExposureState] = None
    gap_percent: Optional[float] = None
    index_trend: Optional[Direction] = None
    ignition: Optional[IgnitionState] = None
    option_chain: Optional[OptionChainState] = None
    crowding_score: Optional[float] = None
    correlation_to_index: Optional[float] = None
    correlation_to_book: Optional[float] = None

    @property
    def drawdown_locked(self) -> Optional[bool]:
        return None if self.drawdown is None else self.drawdown.locked
