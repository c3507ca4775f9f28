"""
Guard Pipeline

Runs every registered guard, in order, against one zone candidate and folds
the verdicts into a single PipelineResult.

Features:
- Fixed, explicit guard order (see risk.guards.registry)
- HARD failures are recorded and later guards still run, so the result
  carries the full list of block reasons
- Confidence accumulates through the fold: each guard sees the base
  composite plus the elite boost plus every earlier adjustment
- Option-only guards are skipped for equity candidates
"""

from dataclasses import replace
from typing import List, Optional, Tuple
import logging

from signalguard.analysis.confidence import ConfidenceScorer, clamp_confidence
from signalguard.risk.guards.base import Guard, GuardContext
from signalguard.risk.guards.registry import GUARD_REGISTRY, guards_for
from signalguard.shared.config.defaults import (
    DEFAULT_GUARD_CONFIG, DEFAULT_REGIME_CONFIG, GuardConfig, RegimeConfig
)
from signalguard.shared.models.context import MarketContext
from signalguard.shared.models.data import EvaluationInput
from signalguard.shared.models.guard import ConfidenceAdjustment, GuardVerdict, PipelineResult
from signalguard.shared.models.zone import SignalCandidate
from signalguard.shared.utils.error_policy import MissingDataError, enforce_candle_window
from signalguard.shared.utils.logging_utils import log_guard_verdicts, log_rejection

logger = logging.getLogger(__name__)

ELITE_SOURCE = "ELITE_SIGNAL"


class GuardPipeline:
    """
    Pre-signal guard pipeline.

    Usage:
        pipeline = GuardPipeline()
        result = pipeline.run(candidate, inputs, context)
        if result.allowed:
            ...
    """

    def __init__(
        self,
        guards: Tuple[Guard, ...] = GUARD_REGISTRY,
        config: GuardConfig = DEFAULT_GUARD_CONFIG,
        regime_config: RegimeConfig = DEFAULT_REGIME_CONFIG,
        confidence_scorer: Optional[ConfidenceScorer] = None,
    ):
        self.guards = tuple(guards)
        self.config = config
        self.regime_config = regime_config
        self.confidence_scorer = confidence_scorer or ConfidenceScorer(guard_config=config)

    @property
    def order(self) -> Tuple[str, ...]:
        return tuple(g.name for g in self.guards)

    def run(
        self,
        candidate: SignalCandidate,
        inputs: EvaluationInput,
        context: MarketContext,
    ) -> PipelineResult:
        """
        Evaluate a candidate.

        Args:
            candidate: Zone engine output (zone blockers become the leading block reasons)
            inputs: The evaluation input the candidate was built from
            context: Market context snapshot taken for this evaluation

        Returns:
            PipelineResult with allowed == (no block reasons)

        Raises:
            MissingDataError: No candidate, or no candle window at all
        """
        if candidate is None:
            raise MissingDataError("guard pipeline requires a zone candidate")
        enforce_candle_window(inputs.candles, 1, inputs.token)

        breakdown = self.confidence_scorer.score(candidate, context, inputs.confidence_inputs, inputs.timestamp)
        adjustments: List[ConfidenceAdjustment] = []
        if candidate.is_elite and candidate.confidence_boost:
            adjustments.append(ConfidenceAdjustment(
                source=ELITE_SOURCE,
                delta=candidate.confidence_boost,
                reason=f"elite zone score {candidate.score}",
            ))
        confidence = clamp_confidence(breakdown.base_score + sum(a.delta for a in adjustments))

        ctx = GuardContext(
            inputs=inputs,
            market=context,
            config=self.config,
            regime_config=self.regime_config,
            confidence=confidence,
            adjustments=tuple(adjustments),
        )

        verdicts: List[GuardVerdict] = []
        for g in guards_for(candidate, self.guards):
            verdict = g.evaluate(candidate, ctx)
            verdicts.append(verdict)
            if verdict.adjustment is not None:
                adjustments.append(verdict.adjustment)
                confidence = clamp_confidence(confidence + verdict.adjustment.delta)
                ctx = replace(ctx, confidence=confidence, adjustments=tuple(adjustments))

        result = PipelineResult.build(candidate, verdicts, round(confidence, 2), adjustments)

        log_guard_verdicts(candidate.symbol, verdicts)
        if result.allowed:
            logger.info(
                "%s ALLOWED: zone=%s score=%d confidence=%.1f (%s)",
                candidate.symbol,
                candidate.zone.value if candidate.zone else "-",
                candidate.score,
                result.confidence_score,
                result.confidence_grade,
            )
        else:
            log_rejection(
                candidate.symbol,
                "GUARD_PIPELINE",
                result.block_reasons,
                diagnostics={
                    "move_percent": candidate.move_percent,
                    "zone_score": candidate.score,
                    "confidence": result.confidence_score,
                },
            )
        return result
