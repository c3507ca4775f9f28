"""
Tests for the volatility regime classifier.

Windows are flat candles so each true range equals the candle range.
"""

import pytest

from signalguard.analysis.regime_detector import (
    RegimeRefreshTask, VolatilityRegimeClassifier, regime_compatibility
)
from signalguard.context import GLOBAL_KEY, ContextRegistry
from signalguard.indicators.validation_utils import DataValidationError
from signalguard.shared.models.regime import Compatibility, VolatilityRegime
from signalguard.shared.models.zone import Direction
from signalguard.tests.fixtures.market_data import EVAL_TIME, ranged_candles

COMPRESSION = [1.0] * 15 + [0.3] * 5
TREND_DAY = [0.5] * 19 + [1.5]
EXPANSION = [0.5] * 15 + [1.0] * 5
FLAT = [0.5] * 20
NORMAL = [0.5] * 15 + [0.6] * 5


@pytest.fixture
def classifier():
    return VolatilityRegimeClassifier(ContextRegistry())


@pytest.mark.parametrize("ranges,regime", [
    (COMPRESSION, VolatilityRegime.COMPRESSION),
    (TREND_DAY, VolatilityRegime.TREND_DAY),
    (EXPANSION, VolatilityRegime.EXPANSION),
    (FLAT, VolatilityRegime.MEAN_REVERSION),
    (NORMAL, VolatilityRegime.NORMAL),
])
def test_classify(classifier, ranges, regime):
    result = classifier.classify(ranged_candles(ranges), now=EVAL_TIME)
    assert result.regime is regime
    assert result.computed_at == EVAL_TIME


def test_classification_measures(classifier):
    result = classifier.classify(ranged_candles(TREND_DAY), now=EVAL_TIME)
    assert result.volatility_ratio == pytest.approx(3.0)
    assert result.range_expansion_percent == pytest.approx(200.0)


def test_short_window_raises(classifier):
    with pytest.raises(DataValidationError):
        classifier.classify(ranged_candles([0.5] * 10))


def test_refresh_publishes_and_skips_short_windows(classifier):
    results = classifier.refresh({
        GLOBAL_KEY: ranged_candles(TREND_DAY),
        "2885": ranged_candles(COMPRESSION),
        "3045": ranged_candles([0.5] * 5),
    })

    assert set(results) == {GLOBAL_KEY, "2885"}
    assert classifier.current_regime("2885") is VolatilityRegime.COMPRESSION
    # Unclassified instruments fall back to the index regime
    assert classifier.current_regime("3045") is VolatilityRegime.TREND_DAY
    assert classifier.latest("2885").atr_slope_percent < -20


def test_compatibility_queries(classifier):
    classifier.refresh({GLOBAL_KEY: ranged_candles(TREND_DAY), "2885": ranged_candles(COMPRESSION)})

    assert classifier.compatibility(Direction.LONG, "2885").compatibility is Compatibility.DENY
    verdict = classifier.compatibility(Direction.SHORT)
    assert verdict.compatibility is Compatibility.ADJUST
    assert verdict.confidence_delta == pytest.approx(5.0)


@pytest.mark.parametrize("regime,compatibility,delta", [
    (None, Compatibility.DENY, 0.0),
    (VolatilityRegime.COMPRESSION, Compatibility.DENY, 0.0),
    (VolatilityRegime.TREND_DAY, Compatibility.ADJUST, 5.0),
    (VolatilityRegime.EXPANSION, Compatibility.ADJUST, 2.0),
    (VolatilityRegime.MEAN_REVERSION, Compatibility.ADJUST, -3.0),
    (VolatilityRegime.NORMAL, Compatibility.ALLOW, 0.0),
])
def test_regime_compatibility_table(regime, compatibility, delta):
    verdict = regime_compatibility(regime, Direction.LONG)
    assert verdict.compatibility is compatibility
    assert verdict.confidence_delta == pytest.approx(delta)


def test_refresh_task_runs_on_its_own_thread(classifier):
    task = RegimeRefreshTask(classifier, lambda: {GLOBAL_KEY: ranged_candles(FLAT)}, interval_sec=0.01)

    assert task.run_once()[GLOBAL_KEY].regime is VolatilityRegime.MEAN_REVERSION

    task.start()
    assert task.running
    task.stop(timeout=1.0)
    assert not task.running
    assert classifier.current_regime() is VolatilityRegime.MEAN_REVERSION
