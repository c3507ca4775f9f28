"""
Tests for the confidence composite.
"""

import pytest

from signalguard.analysis.confidence import ConfidenceScorer, clamp_confidence
from signalguard.shared.models.context import MarketContext, PanicState
from signalguard.shared.models.data import ConfidenceInputs
from signalguard.shared.models.guard import confidence_grade
from signalguard.strategy.zones.engine import ZoneEngine
from signalguard.tests.fixtures.market_data import EVAL_TIME, healthy_context, scenario_a_input


@pytest.fixture
def candidate():
    return ZoneEngine().evaluate(scenario_a_input())


def test_healthy_backdrop_scores_high(candidate):
    inputs = ConfidenceInputs(mtf_5m=True, mtf_15m=True, mtf_daily=True)
    breakdown = ConfidenceScorer().score(candidate, healthy_context(), inputs, EVAL_TIME)

    assert breakdown.base_score == pytest.approx(84.64)
    assert {c.name for c in breakdown.components} == {
        "mtf_alignment", "breadth", "relative_strength", "regime", "liquidity", "correlation", "time_of_day",
    }


def test_missing_facts_score_neutral(candidate):
    breakdown = ConfidenceScorer().score(candidate, MarketContext(), ConfidenceInputs(), EVAL_TIME)
    by_name = {c.name: c for c in breakdown.components}

    assert by_name["breadth"].score == 50
    assert by_name["regime"].score == 50
    assert by_name["mtf_alignment"].score == 0


def test_panic_zeroes_regime_factor(candidate):
    context = healthy_context(panic=PanicState(active=True))
    breakdown = ConfidenceScorer().score(candidate, context, ConfidenceInputs(), EVAL_TIME)
    regime = [c for c in breakdown.components if c.name == "regime"][0]
    assert regime.score == 0


def test_clamp_and_grades():
    assert clamp_confidence(-5) == 0
    assert clamp_confidence(140) == 100
    assert confidence_grade(90) == "A+"
    assert confidence_grade(60) == "B"
    assert confidence_grade(10) == "F"
