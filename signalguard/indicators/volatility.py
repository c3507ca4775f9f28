"""
Volatility indicators module.

Implements true range based measures used by the zone engine's
volatility guard, the regime classifier and the exit trailing stop.
"""

import numpy as np
import pandas as pd
import logging

from signalguard.indicators.validation_utils import DataValidationError, validate_candle_frame

logger = logging.getLogger(__name__)


def compute_true_range(df: pd.DataFrame) -> pd.Series:
    """
    Compute the True Range series.

    True Range is the greatest of:
    - Current High - Current Low
    - |Current High - Previous Close|
    - |Current Low - Previous Close|

    The first row has no previous close and falls back to high - low.
    """
    high_low = df['high'] - df['low']
    high_close = (df['high'] - df['close'].shift()).abs()
    low_close = (df['low'] - df['close'].shift()).abs()
    return pd.concat([high_low, high_close, low_close], axis=1).max(axis=1)


def compute_atr(df: pd.DataFrame, period: int = 14, validate_input: bool = True) -> float:
    """
    Compute the simple Average True Range over the last `period` candles.

    Args:
        df: DataFrame with 'high', 'low', 'close' columns
        period: ATR period (default 14)
        validate_input: If True, validate input data (default True)

    Returns:
        float: ATR in price units

    Raises:
        DataValidationError: If df is too short or has invalid values
    """
    if validate_input:
        validate_candle_frame(df, require_volume=False, min_rows=period)
    elif len(df) < period:
        raise DataValidationError(f"DataFrame too short for ATR calculation (need {period} rows, got {len(df)})")

    return float(compute_true_range(df).tail(period).mean())


def average_true_range_percent(df: pd.DataFrame, window: int = 5) -> float:
    """
    Mean true range of the last `window` candles, each as a percent of its close.

    This is the base of the expected-MAE estimate.
    """
    if len(df) < window:
        raise DataValidationError(f"Need {window} candles for range percent, got {len(df)}")
    tr_pct = compute_true_range(df) / df['close'] * 100
    return float(tr_pct.tail(window).mean())


def atr_expansion_ratio(df: pd.DataFrame, window: int = 10) -> float:
    """
    Ratio of mean true range over the last `window` candles to the window before.

    When fewer than two full windows exist the prior window uses whatever
    history precedes the recent one.

    Raises:
        DataValidationError: If there is no prior history to compare against
    """
    if len(df) <= window:
        raise DataValidationError(f"Need more than {window} candles for ATR expansion, got {len(df)}")
    tr = compute_true_range(df)
    recent = tr.iloc[-window:].mean()
    prior = tr.iloc[-2 * window:-window].mean()
    if prior <= 0:
        return np.inf if recent > 0 else 1.0
    return float(recent / prior)


def range_statistics(df: pd.DataFrame, window: int = 20, slope_window: int = 5) -> dict:
    """
    Range measures feeding the volatility regime classifier.

    Returns:
        dict with:
            - atr_slope_percent: recent `slope_window` TR mean vs the prior one, percent change
            - range_expansion_percent: last candle range vs average of the prior `window - 1`, percent change
            - volatility_ratio: last candle range / that average
    """
    if len(df) < window:
        raise DataValidationError(f"Need {window} candles for range statistics, got {len(df)}")
    frame = df.tail(window)
    tr = compute_true_range(frame)
    recent_tr = tr.iloc[-slope_window:].mean()
    prior_tr = tr.iloc[-2 * slope_window:-slope_window].mean()
    atr_slope = (recent_tr - prior_tr) / prior_tr * 100 if prior_tr > 0 else 0.0

    ranges = frame['high'] - frame['low']
    current_range = ranges.iloc[-1]
    average_range = ranges.iloc[:-1].mean()
    if average_range > 0:
        ratio = current_range / average_range
    else:
        ratio = 1.0
    return {
        'atr_slope_percent': float(atr_slope),
        'range_expansion_percent': float((ratio - 1) * 100),
        'volatility_ratio': float(ratio),
    }
