"""
Volume indicators module.

Implements the recent-versus-baseline volume multiple and session VWAP.
"""

import pandas as pd

from signalguard.indicators.validation_utils import DataValidationError


def volume_multiple(df: pd.DataFrame, recent: int = 3, lookback: int = 20) -> float:
    """
    Mean volume of the last `recent` candles divided by the mean of the
    `lookback` candles before them (or all earlier candles when fewer exist).

    Args:
        df: DataFrame with a 'volume' column
        recent: Candles in the recent window
        lookback: Candles in the baseline window

    Returns:
        float: Volume multiple (0.0 when the baseline traded nothing)

    Raises:
        DataValidationError: If there is no baseline history
    """
    if len(df) <= recent:
        raise DataValidationError(f"Need more than {recent} candles for volume multiple, got {len(df)}")
    volume = df['volume']
    recent_avg = volume.iloc[-recent:].mean()
    baseline = volume.iloc[-(recent + lookback):-recent]
    baseline_avg = baseline.mean()
    if baseline_avg <= 0:
        return 0.0
    return float(recent_avg / baseline_avg)


def compute_vwap(df: pd.DataFrame) -> pd.Series:
    """
    Cumulative volume-weighted average price over the frame.

    Uses the typical price (H + L + C) / 3. Rows before any volume trades
    carry NaN.
    """
    typical = (df['high'] + df['low'] + df['close']) / 3
    cum_volume = df['volume'].cumsum()
    cum_pv = (typical * df['volume']).cumsum()
    return cum_pv / cum_volume.where(cum_volume > 0)


def latest_vwap(df: pd.DataFrame) -> float:
    """Last VWAP value of the frame."""
    value = compute_vwap(df).iloc[-1]
    if pd.isna(value):
        raise DataValidationError("VWAP undefined: no volume traded in window")
    return float(value)
