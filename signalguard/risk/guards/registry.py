"""
Ordered guard registry.

The order is part of the contract: leading adjustments first, then session,
acute and accumulated risk, regime and timing, structure, option checks,
closing adjustments, and the confidence floor last so it sees every delta.
"""

from typing import Tuple

from signalguard.risk.guards.base import Guard
from signalguard.risk.guards.execution import (
    candle_integrity, confidence_floor, execution_reality, portfolio_exposure, structural_stoploss
)
from signalguard.risk.guards.market import (
    adaptive_regime, breadth, circuit_breaker, correlation, crowd_psychology, crowding, drawdown_guard,
    ignition_check, latency_monitor, liquidity_shock, liquidity_tier, panic_kill_switch,
    relative_strength, volatility_regime
)
from signalguard.risk.guards.options import expiry_mismatch, gamma_cluster, orderbook_depth, theta_crush
from signalguard.risk.guards.session import clock_sync, gap_day, holiday, time_of_day, trading_hours
from signalguard.shared.models.zone import SignalCandidate

GUARD_REGISTRY: Tuple[Guard, ...] = (
    # Leading adjustments
    ignition_check,
    adaptive_regime,
    # Session
    trading_hours,
    holiday,
    clock_sync,
    # Acute market risk
    panic_kill_switch,
    circuit_breaker,
    liquidity_tier,
    latency_monitor,
    # Execution
    execution_reality,
    portfolio_exposure,
    # Accumulated risk
    drawdown_guard,
    liquidity_shock,
    relative_strength,
    # Regime and timing
    volatility_regime,
    time_of_day,
    gap_day,
    # Structure
    candle_integrity,
    structural_stoploss,
    # Options
    expiry_mismatch,
    theta_crush,
    orderbook_depth,
    gamma_cluster,
    # Closing adjustments
    breadth,
    crowd_psychology,
    crowding,
    correlation,
    # Floor
    confidence_floor,
)


def guards_for(candidate: SignalCandidate, guards: Tuple[Guard, ...] = GUARD_REGISTRY) -> Tuple[Guard, ...]:
    """Guards registered for this candidate, in pipeline order."""
    return tuple(g for g in guards if g.applies_to(candidate))


def guard_names(guards: Tuple[Guard, ...] = GUARD_REGISTRY) -> Tuple[str, ...]:
    return tuple(g.name for g in guards)
