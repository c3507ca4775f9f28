"""
Context producers.

Each producer owns the fact store it writes and is the only writer of that
store. Producers are driven by the feed-processing collaborators; nothing
in the evaluation path calls them.
"""

from collections import deque
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Deque, Mapping, Optional, Tuple
import logging

from signalguard.context.fact_store import GLOBAL_KEY
from signalguard.context.registry import ContextRegistry
from signalguard.shared.config.defaults import ContextConfig, DEFAULT_CONTEXT_CONFIG
from signalguard.shared.models.context import (
    DrawdownState,
    LatencyState,
    LiquidityShock,
    PanicState,
    RelativeStrength,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PanicKillSwitch:
    """
    Market-wide panic detector.

    Trips on a fast index drop, a VIX spike or collapsing breadth, and stays
    tripped for a cooldown after the last trigger.
    """

    def __init__(self, registry: ContextRegistry, config: ContextConfig = DEFAULT_CONTEXT_CONFIG):
        self.store = registry.store("panic")
        self.config = config
        self._tripped_at: Optional[datetime] = None
        self._reason = ""

    def update(
        self,
        index_change_percent: float,
        vix_change_percent: float,
        breadth_percent: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> PanicState:
        """
        Evaluate the latest index window and publish the panic state.

        Args:
            index_change_percent: Index change over the panic window (e.g. 15 minutes)
            vix_change_percent: VIX change over the same window
            breadth_percent: Current advancing share of the universe
            now: Evaluation time
        """
        now = now or _utcnow()
        cfg = self.config
        triggers = []
        if index_change_percent <= -cfg.panic_index_drop_percent:
            triggers.append(f"index {index_change_percent:.2f}% in {cfg.panic_window_minutes}min")
        if vix_change_percent >= cfg.panic_vix_spike_percent:
            triggers.append(f"VIX +{vix_change_percent:.1f}%")
        if breadth_percent is not None and breadth_percent < cfg.panic_breadth:
            triggers.append(f"breadth {breadth_percent:.0f}%")

        if triggers:
            if self._tripped_at is None:
                logger.warning("Panic kill switch tripped: %s", ", ".join(triggers))
            self._tripped_at = now
            self._reason = ", ".join(triggers)
        elif self._tripped_at is not None:
            if now - self._tripped_at >= timedelta(minutes=cfg.panic_cooldown_minutes):
                logger.info("Panic kill switch released after cooldown")
                self._tripped_at = None
                self._reason = ""

        state = PanicState(active=self._tripped_at is not None, reason=self._reason)
        self.store.publish(GLOBAL_KEY, state, at=now)
        return state


class DrawdownTracker:
    """
    Session drawdown lock.

    Counts failed signals and realized loss; once either limit is hit new
    signals are locked out for a fixed period.
    """

    def __init__(self, registry: ContextRegistry, config: ContextConfig = DEFAULT_CONTEXT_CONFIG):
        self.store = registry.store("drawdown")
        self.config = config
        self._lock = Lock()
        self._failed = 0
        self._loss_percent = 0.0
        self._locked_until: Optional[datetime] = None

    def record_outcome(self, success: bool, pnl_percent: float = 0.0, now: Optional[datetime] = None) -> DrawdownState:
        now = now or _utcnow()
        with self._lock:
            if not success:
                self._failed += 1
            if pnl_percent < 0:
                self._loss_percent += -pnl_percent
            cfg = self.config
            if self._locked_until is None and (
                self._failed >= cfg.drawdown_max_failed_signals
                or self._loss_percent >= cfg.drawdown_max_loss_percent
            ):
                self._locked_until = now + timedelta(minutes=cfg.drawdown_lock_minutes)
                logger.warning(
                    "Drawdown lock engaged until %s (failed=%d, loss=%.2f%%)",
                    self._locked_until.isoformat(), self._failed, self._loss_percent,
                )
            return self._publish(now)

    def refresh(self, now: Optional[datetime] = None) -> DrawdownState:
        """Release an expired lock and reset the counters."""
        now = now or _utcnow()
        with self._lock:
            if self._locked_until is not None and now >= self._locked_until:
                logger.info("Drawdown lock expired")
                self._locked_until = None
                self._failed = 0
                self._loss_percent = 0.0
            return self._publish(now)

    def _publish(self, now: datetime) -> DrawdownState:
        state = DrawdownState(
            locked=self._locked_until is not None,
            failed_signals=self._failed,
            realized_loss_percent=self._loss_percent,
            locked_until=self._locked_until,
        )
        self.store.publish(GLOBAL_KEY, state, at=now)
        return state


class LiquidityTierProvider:
    """Classifies instruments into liquidity tiers by daily turnover (crore)."""

    def __init__(self, registry: ContextRegistry, config: ContextConfig = DEFAULT_CONTEXT_CONFIG):
        self.store = registry.store("liquidity_tier")
        self.config = config

    def classify(self, turnover_cr: float) -> int:
        if turnover_cr >= self.config.tier1_turnover_cr:
            return 1
        if turnover_cr >= self.config.tier2_turnover_cr:
            return 2
        return 3

    def publish(self, turnovers: Mapping[str, float], now: Optional[datetime] = None) -> None:
        self.store.publish_many(((token, self.classify(t)) for token, t in turnovers.items()), at=now)


class RelativeStrengthCalculator:
    """Own move minus index move, ranked across the published universe."""

    def __init__(self, registry: ContextRegistry):
        self.store = registry.store("relative_strength")

    def publish(
        self,
        moves: Mapping[str, float],
        index_change_percent: float,
        now: Optional[datetime] = None,
    ) -> Mapping[str, RelativeStrength]:
        values = {token: move - index_change_percent for token, move in moves.items()}
        ordered = sorted(values.values())
        count = len(ordered)
        result = {}
        for token, value in values.items():
            below = sum(1 for v in ordered if v < value)
            percentile = below / (count - 1) * 100 if count > 1 else 50.0
            result[token] = RelativeStrength(value=value, percentile=percentile)
        self.store.publish_many(result.items(), at=now)
        return result


class BreadthProvider:
    """Market breadth as the advancing share of advancers plus decliners."""

    def __init__(self, registry: ContextRegistry):
        self.store = registry.store("breadth")

    def publish(self, advances: int, declines: int, now: Optional[datetime] = None) -> Optional[float]:
        total = advances + declines
        if total <= 0:
            logger.debug("Breadth skipped: no advancing or declining issues")
            return None
        breadth = advances / total * 100
        self.store.publish(GLOBAL_KEY, breadth, at=now)
        return breadth


class LatencyMonitor:
    """Rolling mean of API and websocket latency samples."""

    def __init__(self, registry: ContextRegistry, window: int = 5):
        self.store = registry.store("latency")
        self._samples: Deque[Tuple[float, float]] = deque(maxlen=window)
        self._lock = Lock()

    def record(self, api_latency_ms: float, ws_latency_ms: float, now: Optional[datetime] = None) -> LatencyState:
        with self._lock:
            self._samples.append((api_latency_ms, ws_latency_ms))
            api = sum(s[0] for s in self._samples) / len(self._samples)
            ws = sum(s[1] for s in self._samples) / len(self._samples)
        state = LatencyState(api_latency_ms=api, ws_latency_ms=ws)
        self.store.publish(GLOBAL_KEY, state, at=now)
        return state


class ClockSyncMonitor:
    """Drift between the local clock and exchange timestamps."""

    def __init__(self, registry: ContextRegistry):
        self.store = registry.store("clock_drift")

    def record(self, exchange_time: datetime, local_time: Optional[datetime] = None) -> float:
        local_time = local_time or _utcnow()
        drift_ms = abs((local_time - exchange_time).total_seconds()) * 1000
        self.store.publish(GLOBAL_KEY, drift_ms, at=local_time)
        if drift_ms > 1000:
            logger.warning("Clock drift %.0fms against exchange", drift_ms)
        return drift_ms


class LiquidityShockDetector:
    """Flags sudden volume drops or spread blowouts per instrument."""

    def __init__(self, registry: ContextRegistry, config: ContextConfig = DEFAULT_CONTEXT_CONFIG):
        self.store = registry.store("liquidity_shock")
        self.config = config

    def update(
        self,
        token: str,
        volume_now: float,
        volume_average: float,
        spread_now: float,
        spread_average: float,
        now: Optional[datetime] = None,
    ) -> LiquidityShock:
        volume_drop = (1 - volume_now / volume_average) * 100 if volume_average > 0 else 0.0
        widening = (spread_now / spread_average - 1) * 100 if spread_average > 0 else 0.0
        active = (
            volume_drop >= self.config.shock_volume_drop_percent
            or widening >= self.config.shock_spread_widening_percent
        )
        state = LiquidityShock(active=active, volume_drop_percent=volume_drop, spread_widening_percent=widening)
        self.store.publish(token, state, at=now)
        return state
