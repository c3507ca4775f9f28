"""
Zone-Based Probability Engine

Classifies a move into a zone, validates the zone's requirements, and
computes a 0-100 quality score. Runners (upward moves) and collapses
(downward moves) run through the same gating and scoring code, oriented by
their ZoneProfile.

Gate order per evaluation:
1. Remaining room below the absolute floor: ROOM, no zone, nothing else checked
   (plus ZONE_INVALID when the move also fits no bucket)
2. Zone classification: ZONE_INVALID when the move fits no bucket
3. Candle window length: INSUFFICIENT_DATA
4. Zone requirements, minimum score, and the expected-MAE volatility guard

Every unmet requirement is recorded; any blocker rejects the candidate
regardless of score.
"""

from typing import List
import logging

from signalguard.indicators.validation_utils import DataValidationError
from signalguard.shared.config.zones import DEFAULT_ZONE_CONFIG, ZoneEngineConfig, ZoneRequirements
from signalguard.shared.models.data import EvaluationInput
from signalguard.shared.models.zone import BlockerCode, SignalCandidate, ZoneBlocker
from signalguard.strategy.zones.classifier import classify_zone
from signalguard.strategy.zones.collapse import collapse_profile
from signalguard.strategy.zones.runner import ZoneProfile, runner_profile
from signalguard.strategy.zones.scorer import ZoneMetrics, ZoneScorer, measure

logger = logging.getLogger(__name__)


class ZoneEngine:
    """Evaluates one instrument's move into a SignalCandidate."""

    def __init__(self, config: ZoneEngineConfig = DEFAULT_ZONE_CONFIG):
        self.config = config
        self.scorer = ZoneScorer(config)
        self.runner = runner_profile(config)
        self.collapse = collapse_profile(config)

    def profile_for(self, move_percent: float) -> ZoneProfile:
        return self.runner if move_percent >= 0 else self.collapse

    def evaluate(self, inputs: EvaluationInput) -> SignalCandidate:
        """
        Evaluate a move. Never raises for market conditions; every
        rejection is a blocker on the returned candidate.
        """
        cfg = self.config
        move = inputs.move_percent
        profile = self.profile_for(move)
        circuit_percent = profile.circuit_percent(inputs.open_price, inputs.circuit_limits)
        remaining = max(0.0, circuit_percent - abs(move))

        def rejected(*blockers: ZoneBlocker, zone=None) -> SignalCandidate:
            logger.debug(
                "%s: zone rejection %s", inputs.instrument.symbol, "; ".join(b.describe() for b in blockers)
            )
            return SignalCandidate(
                instrument=inputs.instrument,
                kind=profile.kind,
                direction=profile.direction,
                move_percent=move,
                circuit_percent=circuit_percent,
                remaining_room_percent=remaining,
                zone=zone,
                blockers=blockers,
            )

        req, reason = classify_zone(move, inputs.instrument.circuit_band, cfg)
        invalid = ZoneBlocker(BlockerCode.ZONE_INVALID, reason)

        # Room dominates everything else; no zone is ever assigned without room
        if remaining < cfg.absolute_min_room:
            room = ZoneBlocker(
                BlockerCode.ROOM,
                f"{remaining:.2f}% room to circuit below {cfg.absolute_min_room}% floor",
            )
            return rejected(room) if req is not None else rejected(room, invalid)

        if req is None:
            return rejected(invalid)

        if len(inputs.candles) < cfg.min_candles:
            return rejected(ZoneBlocker(
                BlockerCode.INSUFFICIENT_DATA,
                f"need {cfg.min_candles} candles, got {len(inputs.candles)}",
            ), zone=req.zone)

        try:
            metrics = measure(profile, inputs, remaining, cfg)
        except DataValidationError as e:
            return rejected(ZoneBlocker(BlockerCode.INSUFFICIENT_DATA, str(e)), zone=req.zone)

        blockers = self._requirement_blockers(profile, req, metrics, inputs)
        score, components = self.scorer.score(req, metrics)
        if score < req.min_score:
            blockers.append(ZoneBlocker(
                BlockerCode.MIN_SCORE, f"score {score} below {req.zone.value} floor {req.min_score}"
            ))

        expected_mae = metrics.range_percent * req.mae_multiplier + 0.5 * inputs.spread_percent
        if expected_mae > cfg.max_expected_mae:
            blockers.append(ZoneBlocker(
                BlockerCode.VOLATILITY,
                f"expected MAE {expected_mae:.2f}% above {cfg.max_expected_mae}% cap",
            ))

        is_elite = not blockers and score >= cfg.elite_score
        candidate = SignalCandidate(
            instrument=inputs.instrument,
            kind=profile.kind,
            direction=profile.direction,
            move_percent=move,
            circuit_percent=circuit_percent,
            remaining_room_percent=remaining,
            zone=req.zone,
            score=score,
            is_elite=is_elite,
            confidence_boost=cfg.elite_confidence_boost if is_elite else 0.0,
            expected_mae_percent=expected_mae,
            components=components,
            blockers=tuple(blockers),
        )

        if candidate.passed:
            logger.info(
                "%s %s candidate in %s: score=%d%s",
                inputs.instrument.symbol, profile.kind.value, req.zone.value, score, " (elite)" if is_elite else "",
            )
        else:
            logger.debug(
                "%s %s in %s rejected: %s",
                inputs.instrument.symbol, profile.kind.value, req.zone.value,
                "; ".join(b.describe() for b in blockers),
            )
        return candidate

    def _requirement_blockers(
        self,
        profile: ZoneProfile,
        req: ZoneRequirements,
        m: ZoneMetrics,
        inputs: EvaluationInput,
    ) -> List[ZoneBlocker]:
        cfg = self.config
        zone = req.zone.value
        blockers: List[ZoneBlocker] = []

        if m.volume_multiple < req.min_volume_multiple:
            blockers.append(ZoneBlocker(
                BlockerCode.VOLUME, f"{m.volume_multiple:.2f}x volume below {zone} minimum {req.min_volume_multiple}x"
            ))
        if m.relative_strength < req.min_relative_strength:
            blockers.append(ZoneBlocker(
                BlockerCode.RELATIVE_STRENGTH,
                f"RS {m.relative_strength:.2f}% below {zone} minimum {req.min_relative_strength}%",
            ))
        if m.spread_percent > req.max_spread_percent:
            blockers.append(ZoneBlocker(
                BlockerCode.SPREAD, f"spread {m.spread_percent:.2f}% above {zone} maximum {req.max_spread_percent}%"
            ))
        if m.remaining_room < req.min_room_percent:
            blockers.append(ZoneBlocker(
                BlockerCode.ZONE_ROOM, f"{m.remaining_room:.2f}% room below {zone} minimum {req.min_room_percent}%"
            ))

        if req.require_vwap:
            if m.vwap_distance is None:
                blockers.append(ZoneBlocker(BlockerCode.VWAP, "VWAP unavailable"))
            elif m.vwap_distance < -cfg.vwap_tolerance_percent:
                blockers.append(ZoneBlocker(
                    BlockerCode.VWAP, f"price {abs(m.vwap_distance):.2f}% on the wrong side of VWAP"
                ))
        if req.require_structure and m.structure_steps < cfg.min_structure_steps:
            blockers.append(ZoneBlocker(
                profile.structure_blocker,
                f"{m.structure_steps} {profile.structure_label} in last {cfg.structure_window} candles, "
                f"need {cfg.min_structure_steps}",
            ))
        if req.require_atr_expanding and m.atr_expansion <= cfg.min_atr_expansion:
            blockers.append(ZoneBlocker(
                BlockerCode.ATR_EXPANDING, f"ATR ratio {m.atr_expansion:.2f} not above {cfg.min_atr_expansion}"
            ))
        if req.require_no_rejection_wick and m.rejection_wick:
            blockers.append(ZoneBlocker(
                BlockerCode.REJECTION_WICK, f"rejection wick in last {cfg.rejection_window} candles"
            ))
        if req.require_momentum and m.momentum_closes < cfg.min_momentum_closes:
            blockers.append(ZoneBlocker(
                BlockerCode.MOMENTUM,
                f"{m.momentum_closes}/{cfg.momentum_window} closes with the move, need {cfg.min_momentum_closes}",
            ))

        if req.max_structural_stop_percent is not None:
            stop = inputs.structural_stop_percent
            if stop is None:
                blockers.append(ZoneBlocker(BlockerCode.STRUCTURAL_STOP, "structural stop estimate unavailable"))
            elif stop > req.max_structural_stop_percent:
                blockers.append(ZoneBlocker(
                    BlockerCode.STRUCTURAL_STOP,
                    f"structural stop {stop:.2f}% wider than {zone} maximum {req.max_structural_stop_percent}%",
                ))

        estimate = inputs.confidence_inputs.confidence_estimate
        if estimate is not None and estimate < cfg.min_confidence:
            blockers.append(ZoneBlocker(
                BlockerCode.CONFIDENCE, f"confidence estimate {estimate:.0f} below {cfg.min_confidence:.0f}"
            ))

        return blockers

