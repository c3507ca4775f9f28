"""
Tests for the evaluation orchestrator.
"""

import time

import pytest

from signalguard.context import ContextRegistry
from signalguard.engine.orchestrator import SignalEvaluator
from signalguard.shared.config.defaults import EngineConfig
from signalguard.shared.models.data import CircuitBand, CircuitLimits
from signalguard.shared.models.zone import Zone
from signalguard.strategy.zones.engine import ZoneEngine
from signalguard.tests.fixtures.market_data import (
    EVAL_TIME, healthy_context, make_instrument, scenario_a_input
)

TOKEN_FACTS = {
    "circuit_hit": "circuit_hit",
    "liquidity_tier": "liquidity_tier",
    "relative_strength": "relative_strength",
    "liquidity_shock": "liquidity_shock",
    "gap": "gap_percent",
    "ignition": "ignition",
    "crowding": "crowding_score",
    "correlation_index": "correlation_to_index",
    "correlation_book": "correlation_to_book",
}

GLOBAL_FACTS = {
    "panic": "panic",
    "regime": "regime",
    "breadth": "breadth_percent",
    "drawdown": "drawdown",
    "vix": "vix",
    "latency": "latency",
    "clock_drift": "clock_drift_ms",
    "exposure": "exposure",
    "index_trend": "index_trend",
}


def publish_context(registry, tokens, context=None):
    """Publish a MarketContext's facts into the registry for each token."""
    context = context or healthy_context()
    for store, attr in GLOBAL_FACTS.items():
        registry.publish_global(store, getattr(context, attr), at=EVAL_TIME)
    for token in tokens:
        for store, attr in TOKEN_FACTS.items():
            registry.publish(store, token, getattr(context, attr), at=EVAL_TIME)


@pytest.fixture
def evaluator():
    registry = ContextRegistry()
    publish_context(registry, ["2885", "3045", "1594"])
    return SignalEvaluator(registry=registry)


def test_evaluate_reads_registry_snapshot(evaluator):
    result = evaluator.evaluate(scenario_a_input())

    assert result.allowed
    assert result.zone is Zone.EARLY
    assert result.confidence_score == pytest.approx(87.64)


def test_evaluate_with_empty_registry_blocks():
    result = SignalEvaluator().evaluate(scenario_a_input())
    assert not result.allowed
    assert result.check("PANIC_KILL_SWITCH").reason.startswith("missing data")


def test_evaluate_many_summarizes_cycle(evaluator):
    allowed = scenario_a_input()
    invalid = scenario_a_input(
        instrument=make_instrument(token="3045", symbol="SBIN", band=CircuitBand.BAND_20),
        current_price=108.7,
        circuit_limits=CircuitLimits(upper=120.0, lower=80.0),
    )
    empty = scenario_a_input(instrument=make_instrument(token="1594", symbol="INFY"), candles=())

    results, summary = evaluator.evaluate_many([allowed, invalid, empty])

    assert set(results) == {"2885", "3045"}
    assert results["2885"].allowed
    assert not results["3045"].allowed
    assert summary["evaluated"] == 2
    assert summary["allowed"] == 1
    assert summary["blocked"] == 1
    assert summary["by_reason"] == {"ZONE_INVALID": 1}
    assert [e["token"] for e in summary["errors"]] == ["1594"]
    assert len(summary["run_id"]) == 8


def test_evaluate_many_empty_batch(evaluator):
    results, summary = evaluator.evaluate_many([])
    assert results == {}
    assert summary["evaluated"] == 0
    assert summary["errors"] == []


class FailingZoneEngine(ZoneEngine):
    """Raises for one token, evaluates the rest normally."""

    def __init__(self, bad_token):
        super().__init__()
        self.bad_token = bad_token

    def evaluate(self, inputs):
        if inputs.token == self.bad_token:
            raise RuntimeError("feed returned garbage")
        return super().evaluate(inputs)


class SlowZoneEngine(ZoneEngine):
    def evaluate(self, inputs):
        time.sleep(1.0)
        return super().evaluate(inputs)


def test_naive_timestamp_is_read_as_exchange_time(evaluator):
    inputs = scenario_a_input(timestamp=EVAL_TIME.replace(tzinfo=None))

    assert inputs.timestamp == EVAL_TIME
    result = evaluator.evaluate(inputs)
    assert result.allowed
    assert result.confidence_score == pytest.approx(87.64)


def test_evaluate_many_records_unexpected_errors_per_instrument():
    registry = ContextRegistry()
    publish_context(registry, ["2885", "3045"])
    evaluator = SignalEvaluator(zone_engine=FailingZoneEngine("3045"), registry=registry)
    broken = scenario_a_input(instrument=make_instrument(token="3045", symbol="SBIN"))

    results, summary = evaluator.evaluate_many([scenario_a_input(), broken])

    assert set(results) == {"2885"}
    assert results["2885"].allowed
    assert [e["token"] for e in summary["errors"]] == ["3045"]
    assert "RuntimeError" in summary["errors"][0]["reason"]


def test_evaluate_many_times_out_slow_instruments():
    registry = ContextRegistry()
    publish_context(registry, ["2885"])
    evaluator = SignalEvaluator(
        zone_engine=SlowZoneEngine(),
        registry=registry,
        config=EngineConfig(evaluation_timeout_sec=0.1),
    )

    results, summary = evaluator.evaluate_many([scenario_a_input()])

    assert results == {}
    assert summary["evaluated"] == 0
    assert [e["token"] for e in summary["errors"]] == ["2885"]
    assert "timed out" in summary["errors"][0]["reason"]
