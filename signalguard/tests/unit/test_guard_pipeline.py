"""
Tests for the guard pipeline.

Covers ordering, the allowed/block-reasons invariant, confidence
accumulation, missing-data policies and option-only registration.
"""

import pytest

from signalguard.risk.guard_pipeline import ELITE_SOURCE, GuardPipeline
from signalguard.risk.guards import Check, guard, guard_names, guards_for
from signalguard.risk.guards.execution import confidence_floor
from signalguard.shared.models.context import MarketContext, PanicState, RelativeStrength
from signalguard.shared.models.data import ConfidenceInputs
from signalguard.shared.models.guard import GuardKind, PipelineResult
from signalguard.shared.models.regime import VolatilityRegime
from signalguard.shared.models.zone import CandidateKind, Direction, SignalCandidate, Zone
from signalguard.shared.utils.error_policy import MissingDataError
from signalguard.strategy.zones.engine import ZoneEngine
from signalguard.tests.fixtures.market_data import (
    collapse_input, healthy_context, make_option, option_chain, scenario_a_input
)


@pytest.fixture
def pipeline():
    return GuardPipeline()


@pytest.fixture
def scenario_a():
    inputs = scenario_a_input()
    return ZoneEngine().evaluate(inputs), inputs


def _option_candidate(strike: float = 22000.0):
    instrument = make_option(strike=strike)
    candidate = SignalCandidate(
        instrument=instrument,
        kind=CandidateKind.RUNNER,
        direction=Direction.LONG,
        move_percent=1.5,
        circuit_percent=10.0,
        remaining_room_percent=8.5,
        zone=Zone.EARLY,
        score=75,
    )
    inputs = scenario_a_input(instrument=instrument, spread_percent=4.0)
    return candidate, inputs


def test_order_is_fixed(pipeline):
    order = pipeline.order
    assert len(order) == 28
    assert order[:2] == ("IGNITION_CHECK", "ADAPTIVE_REGIME")
    assert order[-1] == "CONFIDENCE_FLOOR"
    assert order.index("PANIC_KILL_SWITCH") < order.index("EXECUTION_REALITY") < order.index("DRAWDOWN_GUARD")
    assert order == guard_names()


def test_healthy_scenario_a_is_allowed(pipeline, scenario_a):
    candidate, inputs = scenario_a
    result = pipeline.run(candidate, inputs, healthy_context())

    assert result.allowed
    assert result.block_reasons == ()
    assert result.zone is Zone.EARLY
    # Option guards are not registered for cash equities
    assert len(result.checks) == 24
    assert result.check("THETA_CRUSH") is None
    assert [a.source for a in result.adjustments] == ["ADAPTIVE_REGIME"]
    assert result.confidence_score == pytest.approx(87.64)
    assert result.confidence_grade == "A+"


def test_scenario_c_panic_blocks(pipeline, scenario_a):
    """Scenario A under an active panic kill switch is blocked."""
    candidate, inputs = scenario_a
    context = healthy_context(panic=PanicState(active=True, reason="NIFTY -2.3% in 15min"))
    result = pipeline.run(candidate, inputs, context)

    assert not result.allowed
    assert any(r.startswith("PANIC_KILL_SWITCH") for r in result.block_reasons)
    # Later guards still ran
    assert result.check("CONFIDENCE_FLOOR") is not None


def test_high_vix_triggers_panic(pipeline, scenario_a):
    candidate, inputs = scenario_a
    result = pipeline.run(candidate, inputs, healthy_context(vix=27.5))
    assert not result.check("PANIC_KILL_SWITCH").passed


def test_zone_blockers_lead_block_reasons(pipeline):
    inputs = scenario_a_input(spread_percent=0.9)
    candidate = ZoneEngine().evaluate(inputs)
    result = pipeline.run(candidate, inputs, healthy_context())

    assert not result.allowed
    assert result.block_reasons[0].startswith("SPREAD")
    assert any(r.startswith("EXECUTION_REALITY") for r in result.block_reasons)


def test_allowed_always_matches_block_reasons(pipeline, scenario_a):
    candidate, inputs = scenario_a
    contexts = [
        healthy_context(),
        healthy_context(circuit_hit=True),
        healthy_context(liquidity_tier=3),
        healthy_context(regime=VolatilityRegime.COMPRESSION),
        MarketContext(),
    ]
    for context in contexts:
        result = pipeline.run(candidate, inputs, context)
        assert result.allowed == (len(result.block_reasons) == 0)


def test_result_rejects_inconsistent_allowed_flag():
    with pytest.raises(ValueError, match="allowed"):
        PipelineResult(
            allowed=True,
            token="2885",
            symbol="RELIANCE",
            zone=Zone.EARLY,
            score=80,
            block_reasons=("PANIC_KILL_SWITCH: panic",),
            adjustments=(),
            warnings=(),
            confidence_score=70.0,
            confidence_grade="A",
        )


def test_run_is_deterministic(pipeline, scenario_a):
    candidate, inputs = scenario_a
    context = healthy_context()
    assert pipeline.run(candidate, inputs, context) == pipeline.run(candidate, inputs, context)


def test_empty_context_fail_open_versus_fail_closed(pipeline, scenario_a):
    """Unpublished facts block fail-closed guards only."""
    candidate, inputs = scenario_a
    result = pipeline.run(candidate, inputs, MarketContext())

    assert not result.allowed
    circuit = result.check("CIRCUIT_BREAKER")
    assert not circuit.passed and "missing data" in circuit.reason
    assert not result.check("VOLATILITY_REGIME").passed
    assert result.check("RELATIVE_STRENGTH").passed
    assert result.check("CROWD_PSYCHOLOGY").passed
    assert result.check("BREADTH").passed
    assert result.adjustments == ()


def test_confidence_floor_sees_every_adjustment(pipeline):
    inputs = scenario_a_input(confidence_inputs=ConfidenceInputs())
    candidate = ZoneEngine().evaluate(inputs)
    context = healthy_context(
        breadth_percent=20.0,
        relative_strength=RelativeStrength(value=-0.5),
        regime=VolatilityRegime.MEAN_REVERSION,
        liquidity_tier=2,
        correlation_to_book=0.65,
        index_trend=Direction.SHORT,
    )
    result = pipeline.run(candidate, inputs, context)

    assert [a.source for a in result.adjustments] == ["ADAPTIVE_REGIME", "VOLATILITY_REGIME", "BREADTH"]
    assert [a.delta for a in result.adjustments] == [-5.0, -3.0, -4.0]
    assert result.confidence_score == pytest.approx(12.91, abs=0.01)
    assert len(result.block_reasons) == 1
    assert result.block_reasons[0].startswith("CONFIDENCE_FLOOR")


def test_elite_boost_is_first_adjustment(pipeline):
    inputs = collapse_input()
    candidate = ZoneEngine().evaluate(inputs)
    context = healthy_context(relative_strength=RelativeStrength(value=-1.5), index_trend=Direction.SHORT)
    result = pipeline.run(candidate, inputs, context)

    assert candidate.is_elite
    assert result.adjustments[0].source == ELITE_SOURCE
    assert result.adjustments[0].delta == pytest.approx(10.0)
    assert result.adjustments[1].source == "ADAPTIVE_REGIME"


def test_option_guards_run_for_options(pipeline):
    candidate, inputs = _option_candidate()
    result = pipeline.run(candidate, inputs, healthy_context(option_chain=option_chain()))

    assert len(result.checks) == 28
    assert result.allowed
    gamma = result.check("GAMMA_CLUSTER")
    assert gamma.adjustment is not None and gamma.adjustment.delta == pytest.approx(4.0)


def test_deep_otm_option_blocked_by_theta_crush(pipeline):
    candidate, inputs = _option_candidate(strike=23500.0)
    result = pipeline.run(candidate, inputs, healthy_context(option_chain=option_chain()))

    theta = result.check("THETA_CRUSH")
    assert not theta.passed
    assert "deep OTM" in theta.reason
    assert not result.allowed


def test_expiry_mismatch_blocks(pipeline):
    candidate, inputs = _option_candidate()
    chain = option_chain(active_expiry=inputs.timestamp.date().replace(day=19))
    result = pipeline.run(candidate, inputs, healthy_context(option_chain=chain))
    assert not result.check("EXPIRY_MISMATCH").passed


def test_guards_for_filters_option_only_guards(scenario_a):
    candidate, _ = scenario_a
    names = guard_names(guards_for(candidate))
    assert "GAMMA_CLUSTER" not in names
    assert "EXPIRY_MISMATCH" not in names


def test_missing_candidate_raises(pipeline):
    with pytest.raises(MissingDataError):
        pipeline.run(None, scenario_a_input(), healthy_context())


def test_empty_candle_window_raises(pipeline, scenario_a):
    candidate, _ = scenario_a
    with pytest.raises(MissingDataError):
        pipeline.run(candidate, scenario_a_input(candles=()), healthy_context())


def test_raising_guard_fails_without_escaping(scenario_a):
    @guard("EXPLODING", GuardKind.HARD)
    def exploding(candidate, ctx) -> Check:
        raise RuntimeError("boom")

    candidate, inputs = scenario_a
    result = GuardPipeline(guards=(exploding, confidence_floor)).run(candidate, inputs, healthy_context())

    verdict = result.check("EXPLODING")
    assert not verdict.passed
    assert "RuntimeError" in verdict.reason
    assert result.check("CONFIDENCE_FLOOR").passed
