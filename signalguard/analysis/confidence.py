"""
Confidence scoring.

The confidence score is a composite separate from the zone score: it rates
the market backdrop a signal fires into. Each factor is normalized to 0-1,
weighted, and scaled to 0-100 over the weights that apply to the
instrument (gamma clustering only counts for options). Absent facts score
a neutral 0.5 so a missing feed neither props up nor sinks a signal; the
guards that need those facts block on their own.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from signalguard.shared.config.defaults import (
    ConfidenceConfig, DEFAULT_CONFIDENCE_CONFIG, DEFAULT_GUARD_CONFIG, GuardConfig
)
from signalguard.shared.models.context import MarketContext
from signalguard.shared.models.data import ConfidenceInputs
from signalguard.shared.models.regime import VolatilityRegime
from signalguard.shared.models.zone import Direction, ScoreComponent, SignalCandidate
from signalguard.shared.utils.market_time import SessionPhase, session_phase

NEUTRAL = 0.5

REGIME_FACTORS = {
    VolatilityRegime.TREND_DAY: 1.0,
    VolatilityRegime.EXPANSION: 0.8,
    VolatilityRegime.NORMAL: 0.6,
    VolatilityRegime.MEAN_REVERSION: 0.4,
    VolatilityRegime.COMPRESSION: 0.2,
}

LIQUIDITY_FACTORS = {1: 1.0, 2: 0.5, 3: 0.0}

SESSION_FACTORS = {
    SessionPhase.NORMAL: 1.0,
    SessionPhase.OPENING: 0.6,
    SessionPhase.CLOSING: 0.5,
    SessionPhase.LUNCH: 0.4,
    SessionPhase.CLOSED: 0.0,
}


def _tiered(value: float, tiers: Tuple[Tuple[float, float], ...]) -> float:
    for threshold, factor in tiers:
        if value >= threshold:
            return factor
    return 0.0


def clamp_confidence(value: float) -> float:
    return max(0.0, min(100.0, value))


@dataclass(frozen=True)
class ConfidenceBreakdown:
    """Base confidence and the factors behind it (before elite boost and adjustments)."""
    base_score: float
    components: Tuple[ScoreComponent, ...]


class ConfidenceScorer:
    """Builds the base confidence composite for a candidate."""

    def __init__(
        self,
        config: ConfidenceConfig = DEFAULT_CONFIDENCE_CONFIG,
        guard_config: GuardConfig = DEFAULT_GUARD_CONFIG,
    ):
        self.config = config
        self.guard_config = guard_config

    def score(
        self,
        candidate: SignalCandidate,
        context: MarketContext,
        inputs: ConfidenceInputs,
        now: datetime,
    ) -> ConfidenceBreakdown:
        cfg = self.config
        direction = candidate.direction
        factors: List[Tuple[str, float, float, str]] = [
            ("mtf_alignment", inputs.aligned_timeframes / 3, cfg.mtf_weight,
             f"{inputs.aligned_timeframes}/3 timeframes aligned"),
            self._breadth(context.breadth_percent, direction),
            self._relative_strength(context, direction),
            self._regime(context),
            self._liquidity(context.liquidity_tier),
            self._correlation(context.correlation_to_book),
            self._time_of_day(now),
        ]
        if candidate.instrument.is_option:
            strength = context.option_chain.gamma_cluster_strength if context.option_chain else None
            factor = NEUTRAL if strength is None else max(0.0, min(1.0, strength / 100))
            factors.append(("gamma_cluster", factor, cfg.gamma_weight,
                            "gamma unavailable" if strength is None else f"cluster strength {strength:.0f}"))

        components = tuple(
            ScoreComponent(name=name, score=round(factor * 100, 2), weight=weight, rationale=why)
            for name, factor, weight, why in factors
        )
        total_weight = sum(c.weight for c in components)
        base = sum(c.score * c.weight for c in components) / total_weight if total_weight else 0.0
        return ConfidenceBreakdown(base_score=round(base, 2), components=components)

    def _breadth(self, breadth: Optional[float], direction: Direction):
        weight = self.config.breadth_weight
        if breadth is None:
            return "breadth", NEUTRAL, weight, "breadth unavailable"
        # Shorts want a weak tape
        directional = breadth if direction is Direction.LONG else 100 - breadth
        factor = _tiered(directional, ((70, 1.0), (55, 0.8), (45, 0.5), (35, 0.3)))
        return "breadth", factor, weight, f"breadth {breadth:.0f}%"

    def _relative_strength(self, context: MarketContext, direction: Direction):
        weight = self.config.relative_strength_weight
        rs = context.relative_strength
        if rs is None:
            return "relative_strength", NEUTRAL, weight, "RS unavailable"
        directional = rs.value * direction.sign
        factor = _tiered(directional, ((2.0, 1.0), (1.0, 0.8), (0.0, 0.5), (-1.0, 0.3)))
        return "relative_strength", factor, weight, f"RS {rs.value:+.2f}%"

    def _regime(self, context: MarketContext):
        weight = self.config.regime_weight
        if context.panic is not None and context.panic.active:
            return "regime", 0.0, weight, "panic"
        if context.regime is None:
            return "regime", NEUTRAL, weight, "regime unavailable"
        return "regime", REGIME_FACTORS[context.regime], weight, context.regime.value

    def _liquidity(self, tier: Optional[int]):
        weight = self.config.liquidity_weight
        if tier is None:
            return "liquidity", NEUTRAL, weight, "tier unavailable"
        return "liquidity", LIQUIDITY_FACTORS.get(tier, 0.0), weight, f"tier {tier}"

    def _correlation(self, correlation_to_book: Optional[float]):
        weight = self.config.correlation_weight
        if correlation_to_book is None:
            return "correlation", NEUTRAL, weight, "book correlation unavailable"
        factor = max(0.0, min(1.0, 1 - correlation_to_book))
        return "correlation", factor, weight, f"book correlation {correlation_to_book:.2f}"

    def _time_of_day(self, now: datetime):
        phase = session_phase(now, self.guard_config)
        return "time_of_day", SESSION_FACTORS[phase], self.config.time_of_day_weight, phase.value
