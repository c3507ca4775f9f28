"""
Exit Manager Module

Per-tick exit decisions for open positions.

Each position moves OPEN -> TRAILING_ARMED -> CLOSED. Every tick updates the
water marks and the trailing stop (both only move in the position's favor)
and then checks, first match wins:

1. STRUCTURAL - any of, in order:
   - candle close beyond the structural stop plus a buffer
   - price through VWAP plus a buffer, once the position is in profit
   - an ignition of at least the configured strength against the position
2. TRAILING - price retraces through the armed trailing stop
3. REGIME - compression, volatility collapse or breadth collapse, confirmed
   over consecutive ticks so a single noisy print cannot close the trade
4. OPTION_DECAY - theta acceleration, IV crush or OI reversal (options only)

The structural stop starts at the entry-time stop and ratchets to the most
recent fractal swing level only when that level is in the position's favor
(the highest swing low seen for a long, the lowest swing high for a short).
A later, less favorable swing never loosens it.

A check whose inputs are missing on a tick is skipped; the position stays
open rather than closing on a guess.
"""

from dataclasses import dataclass
from datetime import datetime
from itertools import count
from threading import Lock
from typing import Dict, List, Mapping, Optional
import logging

from signalguard.indicators.structure import find_swing_levels
from signalguard.shared.config.defaults import DEFAULT_EXIT_CONFIG, ExitConfig
from signalguard.shared.models.data import Instrument, candles_to_frame
from signalguard.shared.models.position import (
    ExitDecision, ExitTick, ExitType, Position, PositionState
)
from signalguard.shared.models.regime import VolatilityRegime
from signalguard.shared.models.zone import Direction, SignalCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Trigger:
    type: ExitType
    price: float
    reason: str


class ExitStateMachine:
    """
    Stateless evaluator: all state lives on the Position it is handed.

    Usage:
        machine = ExitStateMachine()
        decision = machine.on_tick(position, tick)
        if decision:
            ...  # position.state is now CLOSED
    """

    def __init__(self, config: ExitConfig = DEFAULT_EXIT_CONFIG):
        self.config = config

    def on_tick(self, position: Position, tick: ExitTick) -> Optional[ExitDecision]:
        """
        Advance a position by one tick.

        Returns:
            The terminal ExitDecision if the position closed on this tick, else None
        """
        if position.is_closed:
            logger.warning("Tick for closed position %s ignored", position.position_id)
            return None

        self._update_marks(position, tick.price)
        self._update_trailing(position)

        trigger = (
            self._structural(position, tick)
            or self._trailing(position, tick)
            or self._regime(position, tick)
            or self._option_decay(position, tick)
        )
        if trigger is None:
            return None
        return self._close(position, trigger, tick.timestamp)

    # ------------------------------------------------------------------
    # Marks and stops
    # ------------------------------------------------------------------

    def _update_marks(self, position: Position, price: float) -> None:
        position.high_water_mark = max(position.high_water_mark, price)
        position.low_water_mark = min(position.low_water_mark, price)

    def _favorable_extreme(self, position: Position) -> float:
        if position.direction is Direction.LONG:
            return position.high_water_mark
        return position.low_water_mark

    def _update_trailing(self, position: Position) -> None:
        cfg = self.config
        best = self._favorable_extreme(position)
        if position.state is PositionState.OPEN:
            if position.unrealized_percent(best) < cfg.min_profit_to_trail:
                return
            position.state = PositionState.TRAILING_ARMED
            logger.info(
                "TRAILING ARMED: %s | %s %s | extreme %.2f",
                position.position_id, position.instrument.symbol, position.direction.value, best,
            )

        distance = cfg.atr_trail_multiple * position.atr_at_entry
        candidate = best - distance * position.direction.sign
        current = position.trailing_stop_price
        if current is None:
            position.trailing_stop_price = candidate
        elif position.direction is Direction.LONG:
            position.trailing_stop_price = max(current, candidate)
        else:
            position.trailing_stop_price = min(current, candidate)

    def _ratchet_structural(self, position: Position, tick: ExitTick) -> None:
        swing_highs, swing_lows = find_swing_levels(
            candles_to_frame(tick.candles), half_width=self.config.swing_half_width
        )
        levels = swing_lows if position.direction is Direction.LONG else swing_highs
        if not levels:
            return
        nearest = levels[-1]
        current = position.structural_stop_price
        if current is None:
            position.structural_stop_price = nearest
        elif position.direction is Direction.LONG:
            position.structural_stop_price = max(current, nearest)
        else:
            position.structural_stop_price = min(current, nearest)

    # ------------------------------------------------------------------
    # Exit checks, in priority order
    # ------------------------------------------------------------------

    def _structural(self, position: Position, tick: ExitTick) -> Optional[_Trigger]:
        return (
            self._swing_break(position, tick)
            or self._vwap_break(position, tick)
            or self._opposite_ignition(position, tick)
        )

    def _swing_break(self, position: Position, tick: ExitTick) -> Optional[_Trigger]:
        if not tick.candle_closed or not tick.candles:
            return None
        self._ratchet_structural(position, tick)
        stop = position.structural_stop_price
        if stop is None:
            return None

        close = tick.candles[-1].close
        buffer = position.entry_price * self.config.swing_buffer_percent / 100
        if position.direction is Direction.LONG:
            broken = close < stop - buffer
        else:
            broken = close > stop + buffer
        if broken:
            return _Trigger(ExitType.STRUCTURAL, close, f"close {close:.2f} beyond swing level {stop:.2f}")
        return None

    def _vwap_break(self, position: Position, tick: ExitTick) -> Optional[_Trigger]:
        vwap = tick.vwap
        if vwap is None or vwap <= 0:
            return None
        if position.unrealized_percent(tick.price) < self.config.vwap_break_min_profit:
            return None

        buffer = vwap * self.config.vwap_break_buffer_percent / 100
        if position.direction is Direction.LONG:
            broken = tick.price < vwap - buffer
        else:
            broken = tick.price > vwap + buffer
        if broken:
            return _Trigger(ExitType.STRUCTURAL, tick.price, f"price {tick.price:.2f} broke VWAP {vwap:.2f}")
        return None

    def _opposite_ignition(self, position: Position, tick: ExitTick) -> Optional[_Trigger]:
        ignition = tick.ignition
        if ignition is None or not ignition.detected or ignition.direction is None:
            return None
        if ignition.direction is position.direction or ignition.strength < self.config.opposite_ignition_strength:
            return None
        return _Trigger(
            ExitType.STRUCTURAL,
            tick.price,
            f"{ignition.direction.value} ignition against position (strength {ignition.strength:.0f})",
        )

    def _trailing(self, position: Position, tick: ExitTick) -> Optional[_Trigger]:
        stop = position.trailing_stop_price
        if position.state is not PositionState.TRAILING_ARMED or stop is None:
            return None
        if position.direction is Direction.LONG:
            hit = tick.price <= stop
        else:
            hit = tick.price >= stop
        if hit:
            return _Trigger(ExitType.TRAILING, tick.price, f"retraced through trailing stop {stop:.2f}")
        return None

    def _regime(self, position: Position, tick: ExitTick) -> Optional[_Trigger]:
        cfg = self.config
        if tick.regime is None and tick.volatility_ratio is None and tick.breadth_percent is None:
            return None

        reasons = []
        if tick.regime is VolatilityRegime.COMPRESSION and position.regime_at_entry is not VolatilityRegime.COMPRESSION:
            reasons.append("regime turned COMPRESSION")
        if tick.volatility_ratio is not None and tick.volatility_ratio <= cfg.volatility_collapse_ratio:
            reasons.append(f"volatility collapsed to {tick.volatility_ratio:.2f}x")
        if tick.breadth_percent is not None:
            if position.direction is Direction.LONG and tick.breadth_percent < cfg.breadth_collapse_long:
                reasons.append(f"breadth collapsed to {tick.breadth_percent:.0f}%")
            elif position.direction is Direction.SHORT and tick.breadth_percent > cfg.breadth_collapse_short:
                reasons.append(f"breadth surged to {tick.breadth_percent:.0f}%")

        if not reasons:
            position.regime_strikes = 0
            return None
        position.regime_strikes += 1
        if position.regime_strikes < cfg.regime_confirmation_ticks:
            logger.debug(
                "%s regime strike %d/%d: %s",
                position.position_id, position.regime_strikes, cfg.regime_confirmation_ticks, "; ".join(reasons),
            )
            return None
        return _Trigger(ExitType.REGIME, tick.price, "; ".join(reasons))

    def _option_decay(self, position: Position, tick: ExitTick) -> Optional[_Trigger]:
        greeks = tick.greeks
        if not position.is_option or greeks is None:
            return None
        cfg = self.config
        if greeks.theta is not None and greeks.reference_theta:
            ratio = abs(greeks.theta) / abs(greeks.reference_theta)
            if ratio >= cfg.theta_acceleration:
                return _Trigger(ExitType.OPTION_DECAY, tick.price, f"theta {ratio:.1f}x reference")
        if greeks.iv is not None and greeks.iv_at_entry:
            drop = (greeks.iv_at_entry - greeks.iv) / greeks.iv_at_entry * 100
            if drop >= cfg.iv_crush_percent:
                return _Trigger(ExitType.OPTION_DECAY, tick.price, f"IV down {drop:.1f}% from entry")
        if greeks.oi_change_percent is not None and greeks.oi_change_percent >= cfg.oi_reversal_percent:
            return _Trigger(
                ExitType.OPTION_DECAY, tick.price, f"OI reversed {greeks.oi_change_percent:.1f}% against position"
            )
        return None

    def _close(self, position: Position, trigger: _Trigger, timestamp: datetime) -> ExitDecision:
        decision = ExitDecision(
            position_id=position.position_id,
            type=trigger.type,
            trigger_price=trigger.price,
            timestamp=timestamp,
            reason=trigger.reason,
        )
        position.state = PositionState.CLOSED
        position.exit = decision
        logger.info(
            "EXIT %s: %s | %s %s | price %.2f | P&L %.2f%% | %s",
            trigger.type.value,
            position.position_id,
            position.instrument.symbol,
            position.direction.value,
            trigger.price,
            position.unrealized_percent(trigger.price),
            trigger.reason,
        )
        return decision


class ExitManager:
    """
    Registry of open positions driven by the exit state machine.

    Closed positions are dropped from the registry; their decisions are
    returned to the caller.

    Usage:
        manager = ExitManager()
        position = manager.open_position(instrument, Direction.LONG, 100.0, now, atr=2.0)
        decision = manager.on_tick(position.position_id, tick)
    """

    def __init__(self, config: ExitConfig = DEFAULT_EXIT_CONFIG):
        self.machine = ExitStateMachine(config)
        self.positions: Dict[str, Position] = {}
        self._lock = Lock()
        self._ids = count(1)

    def open_position(
        self,
        instrument: Instrument,
        direction: Direction,
        entry_price: float,
        entry_time: datetime,
        atr: float,
        structural_stop_percent: Optional[float] = None,
        regime: Optional[VolatilityRegime] = None,
    ) -> Position:
        """
        Register a new position.

        Args:
            instrument: Instrument bought or sold
            direction: LONG or SHORT
            entry_price: Fill price
            entry_time: Fill time
            atr: ATR at entry, sizes the trailing distance
            structural_stop_percent: Initial stop distance below/above entry
            regime: Volatility regime at entry
        """
        structural_stop = None
        if structural_stop_percent is not None:
            structural_stop = entry_price * (1 - direction.sign * structural_stop_percent / 100)

        position_id = f"{instrument.symbol}_{entry_time:%Y%m%d%H%M%S}_{next(self._ids)}"
        position = Position(
            position_id=position_id,
            instrument=instrument,
            direction=direction,
            entry_price=entry_price,
            entry_time=entry_time,
            atr_at_entry=atr,
            structural_stop_price=structural_stop,
            regime_at_entry=regime,
        )
        with self._lock:
            self.positions[position_id] = position

        logger.info(
            "Position opened: %s | %s %s | Entry: %.2f | ATR: %.2f | SL: %s",
            position_id, instrument.symbol, direction.value, entry_price, atr,
            f"{structural_stop:.2f}" if structural_stop is not None else "-",
        )
        return position

    def open_from_candidate(
        self,
        candidate: SignalCandidate,
        entry_price: float,
        entry_time: datetime,
        atr: float,
        structural_stop_percent: Optional[float] = None,
        regime: Optional[VolatilityRegime] = None,
    ) -> Position:
        return self.open_position(
            candidate.instrument,
            candidate.direction,
            entry_price,
            entry_time,
            atr,
            structural_stop_percent=structural_stop_percent,
            regime=regime,
        )

    def get(self, position_id: str) -> Optional[Position]:
        with self._lock:
            return self.positions.get(position_id)

    def open_positions(self) -> List[Position]:
        with self._lock:
            return list(self.positions.values())

    def on_tick(self, position_id: str, tick: ExitTick) -> Optional[ExitDecision]:
        position = self.get(position_id)
        if position is None:
            logger.warning("Tick for unknown position %s", position_id)
            return None

        decision = self.machine.on_tick(position, tick)
        if decision is not None:
            with self._lock:
                self.positions.pop(position_id, None)
        return decision

    def on_ticks(self, ticks: Mapping[str, ExitTick]) -> List[ExitDecision]:
        """Evaluate one tick per position; returns the decisions of positions that closed."""
        decisions = []
        for position_id, tick in ticks.items():
            decision = self.on_tick(position_id, tick)
            if decision is not None:
                decisions.append(decision)
        return decisions
