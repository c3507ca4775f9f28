"""
Unit tests for indicators and candle validation.

Tests:
- True range, ATR and range percent
- Volume multiple and VWAP
- Structure counts, wicks and fractal swings
- Frame validation and candle sequence issues
"""

from datetime import timedelta

import numpy as np
import pandas as pd
import pytest

from signalguard.indicators import (
    DataValidationError,
    adverse_wick_ratio,
    atr_expansion_ratio,
    average_true_range_percent,
    candle_sequence_issues,
    compute_atr,
    compute_true_range,
    compute_vwap,
    directional_close_count,
    find_swing_levels,
    has_rejection_wick,
    latest_vwap,
    structure_run_count,
    validate_candle_frame,
    volume_multiple,
)
from signalguard.shared.models.data import candles_to_frame
from signalguard.tests.fixtures.market_data import falling_candles, ranged_candles, rising_candles


@pytest.fixture
def rising():
    return candles_to_frame(rising_candles())


def test_true_range_uses_previous_close():
    df = pd.DataFrame({
        'high': [10.0, 12.0],
        'low': [9.0, 11.5],
        'close': [9.5, 11.8],
    })
    tr = compute_true_range(df)
    assert tr.iloc[0] == pytest.approx(1.0)
    # Gap up: high minus previous close dominates
    assert tr.iloc[1] == pytest.approx(2.5)


def test_atr_on_flat_ranges():
    df = candles_to_frame(ranged_candles([0.5] * 20))
    assert compute_atr(df, period=14) == pytest.approx(0.5)


def test_atr_requires_period_rows():
    df = candles_to_frame(ranged_candles([0.5] * 5))
    with pytest.raises(DataValidationError):
        compute_atr(df, period=14)


def test_range_percent_and_expansion(rising):
    assert average_true_range_percent(rising, window=5) == pytest.approx(0.114, abs=0.002)
    assert atr_expansion_ratio(rising, window=10) == pytest.approx(1.0)


def test_volume_multiple(rising):
    assert volume_multiple(rising, recent=3, lookback=20) == pytest.approx(2.0)
    with pytest.raises(DataValidationError):
        volume_multiple(rising.head(3), recent=3)


def test_vwap_weights_by_volume():
    df = pd.DataFrame({
        'high': [10.0, 20.0],
        'low': [10.0, 20.0],
        'close': [10.0, 20.0],
        'volume': [3.0, 1.0],
    })
    assert compute_vwap(df).iloc[-1] == pytest.approx(12.5)


def test_vwap_undefined_without_volume():
    df = pd.DataFrame({'high': [10.0], 'low': [9.0], 'close': [9.5], 'volume': [0.0]})
    with pytest.raises(DataValidationError):
        latest_vwap(df)


def test_structure_counts_follow_direction(rising):
    falling = candles_to_frame(falling_candles())
    assert structure_run_count(rising, window=6, sign=1) == 5
    assert structure_run_count(rising, window=6, sign=-1) == 0
    assert structure_run_count(falling, window=6, sign=-1) == 5
    assert directional_close_count(rising, window=5, sign=1) == 5
    assert directional_close_count(falling, window=5, sign=1) == 0


def test_wick_ratios():
    row = pd.Series({'open': 100.0, 'high': 102.0, 'low': 99.5, 'close': 100.5})
    assert adverse_wick_ratio(row, sign=1) == pytest.approx(0.6)
    assert adverse_wick_ratio(row, sign=-1) == pytest.approx(0.2)
    df = pd.DataFrame([row])
    assert has_rejection_wick(df, window=1, threshold=0.5, sign=1)
    assert not has_rejection_wick(df, window=1, threshold=0.5, sign=-1)


def test_find_swing_levels():
    df = pd.DataFrame({
        'high': [101.0, 102.0, 104.0, 103.0, 102.5, 101.0],
        'low': [100.5, 100.2, 99.0, 99.4, 100.1, 98.4],
    })
    highs, lows = find_swing_levels(df, half_width=2)
    assert highs == [104.0]
    assert lows == [99.0]


def test_validate_candle_frame_flags_bad_data():
    df = pd.DataFrame({
        'open': [100.0, np.nan],
        'high': [101.0, 99.0],
        'low': [99.0, 100.0],
        'close': [100.5, 99.5],
        'volume': [10.0, -1.0],
    })
    result = validate_candle_frame(df, raise_on_error=False)
    assert not result['valid']
    assert any("NaN" in e for e in result['errors'])
    assert any("inverted" in e for e in result['errors'])
    assert any("negative volume" in e for e in result['errors'])

    with pytest.raises(DataValidationError, match="Missing required columns"):
        validate_candle_frame(df.drop(columns=['close']))


def test_candle_sequence_issues():
    candles = rising_candles(count=5)
    assert candle_sequence_issues(candles, max_gap_minutes=5, max_move_percent=8) == []

    gapped = candles[:2] + [
        type(c)(c.timestamp + timedelta(minutes=10), c.open, c.high, c.low, c.close, c.volume) for c in candles[2:]
    ]
    issues = candle_sequence_issues(gapped, max_gap_minutes=5, max_move_percent=8)
    assert len(issues) == 1
    assert "gap" in issues[0]

    reordered = [candles[1], candles[0]] + candles[2:]
    assert "out-of-order" in candle_sequence_issues(reordered, max_gap_minutes=5, max_move_percent=8)[0]
