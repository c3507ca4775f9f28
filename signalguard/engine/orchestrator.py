"""
Evaluation Orchestrator

Runs the per-instrument flow:

    EvaluationInput -> ZoneEngine -> SignalCandidate
                    -> ContextRegistry snapshot
                    -> GuardPipeline -> PipelineResult

Each instrument is independent, so a cycle fans out over a thread pool.
Within one instrument the zone engine and the pipeline run strictly in
sequence. Evaluation has no side effects beyond its result and logging,
so a timed-out evaluation is simply discarded.
"""

from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Tuple
import concurrent.futures
import logging
import time
import uuid

from signalguard.context.registry import ContextRegistry
from signalguard.risk.guard_pipeline import GuardPipeline
from signalguard.shared.config.defaults import DEFAULT_ENGINE_CONFIG, EngineConfig
from signalguard.shared.models.data import EvaluationInput
from signalguard.shared.models.guard import PipelineResult
from signalguard.shared.utils.error_policy import MissingDataError
from signalguard.shared.utils.logging_utils import TimingContext, format_evaluation_summary, log_pipeline_stage
from signalguard.strategy.zones.engine import ZoneEngine

logger = logging.getLogger(__name__)


def _reason_key(reason: str) -> str:
    return reason.split(":", 1)[0]


class SignalEvaluator:
    """
    Zone engine + guard pipeline over a shared context registry.

    Usage:
        evaluator = SignalEvaluator(registry=registry)
        result = evaluator.evaluate(inputs)
        results, summary = evaluator.evaluate_many(batch)
    """

    def __init__(
        self,
        zone_engine: Optional[ZoneEngine] = None,
        pipeline: Optional[GuardPipeline] = None,
        registry: Optional[ContextRegistry] = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ):
        self.zone_engine = zone_engine or ZoneEngine()
        self.pipeline = pipeline or GuardPipeline()
        self.registry = registry or ContextRegistry()
        self.config = config

        logger.info(
            "SignalEvaluator initialized: workers=%d | guards=%d",
            config.max_workers, len(self.pipeline.guards),
        )

    def evaluate(self, inputs: EvaluationInput) -> PipelineResult:
        """
        Evaluate one instrument.

        Raises:
            MissingDataError: The pipeline had nothing to evaluate
        """
        symbol = inputs.instrument.symbol
        with TimingContext("evaluate", symbol):
            log_pipeline_stage("ZONE_ENGINE", symbol, "START")
            with TimingContext("zone_engine", symbol) as timer:
                candidate = self.zone_engine.evaluate(inputs)
            log_pipeline_stage("ZONE_ENGINE", symbol, "COMPLETE", {
                "duration_ms": timer.duration_ms,
                "zone": candidate.zone.value if candidate.zone else "-",
                "score": candidate.score,
                "blockers": len(candidate.blockers),
            })
            context = self.registry.snapshot(inputs.instrument, inputs.timestamp)
            return self.pipeline.run(candidate, inputs, context)

    def evaluate_many(
        self, batch: Sequence[EvaluationInput]
    ) -> Tuple[Dict[str, PipelineResult], Dict[str, Any]]:
        """
        Evaluate a cycle of instruments in parallel.

        The whole cycle shares one deadline of `evaluation_timeout_sec`;
        instruments still running when it passes are recorded as timed out.

        Returns:
            Tuple of (results keyed by token, cycle summary dict). Instruments
            that errored or timed out have no result and are listed under
            summary['errors'].
        """
        run_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        timeout = self.config.evaluation_timeout_sec
        logger.info("Starting evaluation cycle %s for %d instruments", run_id, len(batch))

        results: Dict[str, PipelineResult] = {}
        errors: List[Dict[str, str]] = []
        breakdown: Counter = Counter()
        finished = set()

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers)
        try:
            future_map = {executor.submit(self.evaluate, item): item for item in batch}
            for future in concurrent.futures.as_completed(future_map, timeout=timeout):
                item = future_map[future]
                finished.add(future)
                try:
                    result = future.result()
                except MissingDataError as e:
                    logger.warning("%s: missing data - %s", item.instrument.symbol, e)
                    errors.append({"token": item.token, "reason": str(e)})
                    continue
                except Exception as e:
                    logger.exception("%s: evaluation failed", item.instrument.symbol)
                    errors.append({"token": item.token, "reason": f"{type(e).__name__}: {e}"})
                    continue

                results[item.token] = result
                if not result.allowed:
                    breakdown[_reason_key(result.block_reasons[0])] += 1
        except concurrent.futures.TimeoutError:
            for future, item in future_map.items():
                if future in finished:
                    continue
                future.cancel()
                logger.warning("%s: evaluation timed out after %.1fs", item.instrument.symbol, timeout)
                errors.append({"token": item.token, "reason": f"timed out after {timeout}s"})
        finally:
            # Stragglers finish in the background; their results are discarded
            executor.shutdown(wait=False, cancel_futures=True)

        duration = time.time() - start_time
        allowed = sum(1 for r in results.values() if r.allowed)
        logger.info(
            "\n%s",
            format_evaluation_summary(
                instruments_evaluated=len(results),
                signals_allowed=allowed,
                signals_blocked=len(results) - allowed,
                duration_sec=duration,
                rejection_breakdown=dict(breakdown),
            ),
        )

        summary = {
            "run_id": run_id,
            "evaluated": len(results),
            "allowed": allowed,
            "blocked": len(results) - allowed,
            "by_reason": dict(breakdown),
            "errors": errors,
            "duration_sec": round(duration, 3),
        }
        return results, summary
