"""
Tests for the context producers.
"""

from datetime import datetime, timedelta

import pytest

from signalguard.context import (
    BreadthProvider, ClockSyncMonitor, ContextRegistry, DrawdownTracker, LatencyMonitor,
    LiquidityShockDetector, LiquidityTierProvider, PanicKillSwitch, RelativeStrengthCalculator,
)
from signalguard.tests.fixtures.market_data import EVAL_TIME


@pytest.fixture
def registry():
    return ContextRegistry()


def test_panic_trips_and_holds_through_cooldown(registry):
    switch = PanicKillSwitch(registry)

    assert not switch.update(-0.5, 2.0, now=EVAL_TIME).active
    tripped = switch.update(-2.3, 5.0, now=EVAL_TIME + timedelta(minutes=1))
    assert tripped.active
    assert "index" in tripped.reason

    # Calm again but inside the cooldown
    assert switch.update(0.1, 0.0, now=EVAL_TIME + timedelta(minutes=20)).active
    assert not switch.update(0.1, 0.0, now=EVAL_TIME + timedelta(minutes=32)).active
    assert registry.store("panic").get_global(now=EVAL_TIME + timedelta(minutes=32)).active is False


def test_panic_on_vix_spike_or_breadth(registry):
    switch = PanicKillSwitch(registry)
    assert switch.update(0.0, 16.0, now=EVAL_TIME).active

    other = PanicKillSwitch(ContextRegistry())
    assert other.update(0.0, 0.0, breadth_percent=15.0, now=EVAL_TIME).active


def test_drawdown_locks_after_failed_signals(registry):
    tracker = DrawdownTracker(registry)
    for i in range(4):
        assert not tracker.record_outcome(False, now=EVAL_TIME).locked
    state = tracker.record_outcome(False, now=EVAL_TIME)

    assert state.locked
    assert state.locked_until == EVAL_TIME + timedelta(minutes=60)
    assert tracker.refresh(now=EVAL_TIME + timedelta(minutes=30)).locked

    released = tracker.refresh(now=EVAL_TIME + timedelta(minutes=61))
    assert not released.locked
    assert released.failed_signals == 0


def test_drawdown_locks_on_realized_loss(registry):
    tracker = DrawdownTracker(registry)
    tracker.record_outcome(True, pnl_percent=-1.2, now=EVAL_TIME)
    state = tracker.record_outcome(True, pnl_percent=-0.9, now=EVAL_TIME)
    assert state.locked
    assert state.realized_loss_percent == pytest.approx(2.1)


@pytest.mark.parametrize("turnover,tier", [(120.0, 1), (50.0, 1), (25.0, 2), (9.9, 3)])
def test_liquidity_tiers(registry, turnover, tier):
    assert LiquidityTierProvider(registry).classify(turnover) == tier


def test_relative_strength_percentiles(registry):
    rs = RelativeStrengthCalculator(registry).publish({"A": 2.0, "B": 0.5, "C": -1.0}, 0.5, now=EVAL_TIME)

    assert rs["A"].value == pytest.approx(1.5)
    assert rs["A"].percentile == 100.0
    assert rs["B"].percentile == 50.0
    assert rs["C"].percentile == 0.0
    assert registry.store("relative_strength").get("C", now=EVAL_TIME).value == pytest.approx(-1.5)


def test_breadth(registry):
    provider = BreadthProvider(registry)
    assert provider.publish(30, 10, now=EVAL_TIME) == 75.0
    assert provider.publish(0, 0, now=EVAL_TIME) is None
    assert registry.store("breadth").get_global(now=EVAL_TIME) == 75.0


def test_latency_is_rolling_mean(registry):
    monitor = LatencyMonitor(registry, window=2)
    monitor.record(100, 10, now=EVAL_TIME)
    monitor.record(300, 30, now=EVAL_TIME)
    state = monitor.record(500, 50, now=EVAL_TIME)
    assert state.api_latency_ms == 400
    assert state.ws_latency_ms == 40


def test_clock_drift_is_absolute(registry):
    exchange = datetime(2024, 6, 12, 4, 30)
    assert ClockSyncMonitor(registry).record(exchange, exchange - timedelta(milliseconds=750)) == pytest.approx(750)


def test_liquidity_shock(registry):
    detector = LiquidityShockDetector(registry)
    assert detector.update("2885", 5000, 10000, 0.1, 0.1, now=EVAL_TIME).active
    assert detector.update("2885", 9000, 10000, 0.25, 0.1, now=EVAL_TIME).active
    calm = detector.update("2885", 9000, 10000, 0.12, 0.1, now=EVAL_TIME)
    assert not calm.active
    assert calm.volume_drop_percent == pytest.approx(10.0)
