"""
Test suite for the zone-based probability engine.

Covers both directions, the room dominance rule, requirement blockers,
the volatility guard and score monotonicity.
"""

import pytest

from signalguard.shared.config.zones import DEFAULT_ZONE_CONFIG
from signalguard.shared.models.data import CircuitBand, CircuitLimits, ConfidenceInputs
from signalguard.shared.models.zone import BlockerCode, CandidateKind, Direction, Zone
from signalguard.strategy.zones.engine import ZoneEngine
from signalguard.strategy.zones.scorer import ZoneMetrics, ZoneScorer
from signalguard.tests.fixtures.market_data import (
    collapse_input, make_instrument, rising_candles, scenario_a_input
)


@pytest.fixture
def engine():
    return ZoneEngine()


def test_scenario_a_early_runner_passes(engine):
    """+1.5% on a 10% band with 2x volume, RS 1.2%, spread 0.5% passes in EARLY."""
    candidate = engine.evaluate(scenario_a_input())

    assert candidate.zone is Zone.EARLY
    assert candidate.kind is CandidateKind.RUNNER
    assert candidate.direction is Direction.LONG
    assert candidate.passed
    assert candidate.score >= 65
    assert candidate.is_elite == (candidate.score >= 82)
    assert candidate.remaining_room_percent == pytest.approx(8.5)
    assert candidate.expected_mae_percent < 0.8
    assert candidate.component("volume").score == pytest.approx(75.0)
    assert candidate.component("relative_strength").score == pytest.approx(60.0)


def test_scenario_b_late_move_on_twenty_percent_band_is_invalid(engine):
    inputs = scenario_a_input(
        instrument=make_instrument(band=CircuitBand.BAND_20),
        current_price=108.7,
        circuit_limits=CircuitLimits(upper=120.0, lower=80.0),
    )
    candidate = engine.evaluate(inputs)

    assert candidate.zone is None
    assert not candidate.passed
    assert candidate.has_blocker(BlockerCode.ZONE_INVALID)
    assert not candidate.has_blocker(BlockerCode.ROOM)


@pytest.mark.parametrize("price,upper,lower", [
    (100.5, 101.9, 90.0),   # 1.4% room
    (103.0, 104.0, 90.0),   # 1.0% room
    (101.5, 102.5, 90.0),   # 1.0% room, otherwise a clean scenario A
    (98.0, 110.0, 96.8),    # collapse with 1.2% room
])
def test_room_below_floor_always_blocks_without_zone(engine, price, upper, lower):
    """Room under 1.5% is a hard ROOM block regardless of anything else."""
    inputs = scenario_a_input(current_price=price, circuit_limits=CircuitLimits(upper=upper, lower=lower))
    candidate = engine.evaluate(inputs)

    assert candidate.zone is None
    assert candidate.has_blocker(BlockerCode.ROOM)
    assert candidate.blockers[0].code is BlockerCode.ROOM
    assert candidate.score == 0


def test_no_room_and_no_zone_reports_both(engine):
    inputs = scenario_a_input(current_price=109.7, circuit_limits=CircuitLimits(upper=110.0, lower=90.0))
    candidate = engine.evaluate(inputs)

    assert candidate.zone is None
    assert [b.code for b in candidate.blockers] == [BlockerCode.ROOM, BlockerCode.ZONE_INVALID]


@pytest.mark.parametrize("price,zone", [
    (100.0, Zone.EARLY),             # 0%
    (109.5, None),                   # +9.5%, past LATE
    (99.5, None),                    # -0.5%, too shallow
    (99.0, Zone.EARLY_COLLAPSE),     # -1%
    (75.0, None),                    # -25%, dead zone
])
def test_zone_invalid_exactly_when_no_bucket_fits(engine, price, zone):
    inputs = scenario_a_input(
        instrument=make_instrument(band=CircuitBand.BAND_20),
        current_price=price,
        circuit_limits=CircuitLimits(upper=130.0, lower=50.0),
    )
    candidate = engine.evaluate(inputs)

    assert candidate.zone is zone
    assert candidate.has_blocker(BlockerCode.ZONE_INVALID) == (zone is None)
    assert not candidate.has_blocker(BlockerCode.ROOM)


def test_collapse_mirror_passes_in_early_collapse(engine):
    candidate = engine.evaluate(collapse_input())

    assert candidate.zone is Zone.EARLY_COLLAPSE
    assert candidate.kind is CandidateKind.COLLAPSE
    assert candidate.direction is Direction.SHORT
    assert candidate.passed
    assert candidate.move_percent == pytest.approx(-1.5)
    # Room is measured to the lower circuit for collapses
    assert candidate.circuit_percent == pytest.approx(10.0)
    assert candidate.remaining_room_percent == pytest.approx(8.5)


def test_elite_candidate_carries_confidence_boost(engine):
    candidate = engine.evaluate(collapse_input())
    assert candidate.score >= DEFAULT_ZONE_CONFIG.elite_score
    assert candidate.is_elite
    assert candidate.confidence_boost == DEFAULT_ZONE_CONFIG.elite_confidence_boost


def test_short_window_is_insufficient_data_with_zone(engine):
    inputs = scenario_a_input(candles=tuple(rising_candles(count=10)))
    candidate = engine.evaluate(inputs)

    assert candidate.zone is Zone.EARLY
    assert not candidate.passed
    assert candidate.has_blocker(BlockerCode.INSUFFICIENT_DATA)


def test_weak_volume_blocks_regardless_of_score(engine):
    inputs = scenario_a_input(candles=tuple(rising_candles(surge_volume=12000.0)))
    candidate = engine.evaluate(inputs)

    assert candidate.zone is Zone.EARLY
    assert candidate.has_blocker(BlockerCode.VOLUME)
    assert not candidate.passed


def test_underperforming_index_blocks_on_relative_strength(engine):
    candidate = engine.evaluate(scenario_a_input(index_change_percent=1.0))
    assert candidate.has_blocker(BlockerCode.RELATIVE_STRENGTH)


def test_wide_spread_blocks(engine):
    candidate = engine.evaluate(scenario_a_input(spread_percent=0.9))
    assert candidate.has_blocker(BlockerCode.SPREAD)


def test_expected_mae_above_cap_blocks(engine):
    """Wide candles push expected MAE over 0.8% independent of score."""
    inputs = scenario_a_input(candles=tuple(rising_candles(wick=0.4)))
    candidate = engine.evaluate(inputs)

    assert candidate.expected_mae_percent > 0.8
    assert candidate.has_blocker(BlockerCode.VOLATILITY)


def test_low_confidence_estimate_blocks(engine):
    inputs = scenario_a_input(confidence_inputs=ConfidenceInputs(confidence_estimate=40.0))
    candidate = engine.evaluate(inputs)
    assert candidate.has_blocker(BlockerCode.CONFIDENCE)


def test_extended_zone_requires_structural_stop_estimate(engine):
    inputs = scenario_a_input(
        current_price=106.0,
        structural_stop_percent=None,
        circuit_limits=CircuitLimits(upper=120.0, lower=80.0),
    )
    candidate = engine.evaluate(inputs)

    assert candidate.zone is Zone.EXTENDED
    assert candidate.has_blocker(BlockerCode.STRUCTURAL_STOP)


def test_evaluate_is_pure(engine):
    inputs = scenario_a_input()
    assert engine.evaluate(inputs) == engine.evaluate(inputs)


# ----------------------------------------------------------------------
# Score monotonicity
# ----------------------------------------------------------------------

def _metrics(**overrides):
    fields = dict(
        volume_multiple=2.0,
        relative_strength=1.2,
        spread_percent=0.5,
        remaining_room=8.5,
        structure_steps=4,
        adverse_wick=0.2,
        rejection_wick=False,
        momentum_closes=4,
        atr_expansion=1.1,
        range_percent=0.12,
        vwap_distance=0.3,
    )
    fields.update(overrides)
    return ZoneMetrics(**fields)


@pytest.mark.parametrize("field,values", [
    ("volume_multiple", [0.5, 1.0, 1.6, 2.0, 3.0, 5.0, 10.0]),
    ("relative_strength", [-1.0, 0.0, 0.5, 1.0, 1.5, 2.5, 5.0]),
    ("remaining_room", [1.5, 3.0, 6.0, 8.0, 12.0, 20.0]),
])
def test_score_non_decreasing_in_volume_rs_and_room(field, values):
    scorer = ZoneScorer(DEFAULT_ZONE_CONFIG)
    req = DEFAULT_ZONE_CONFIG.runner_zones[0]
    scores = [scorer.score(req, _metrics(**{field: v}))[0] for v in values]
    assert scores == sorted(scores)


def test_score_components_stay_in_range():
    scorer = ZoneScorer(DEFAULT_ZONE_CONFIG)
    req = DEFAULT_ZONE_CONFIG.runner_zones[0]
    total, components = scorer.score(req, _metrics(volume_multiple=50.0, vwap_distance=-5.0, spread_percent=3.0))

    assert 0 <= total <= 100
    assert all(0 <= c.score <= 100 for c in components)
    assert sum(c.weight for c in components) == pytest.approx(100.0)
