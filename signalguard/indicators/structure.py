"""
Price structure indicators.

Directional helpers take `sign` = +1 for upward reads (runners, longs) and
-1 for downward reads (collapses, shorts) so both directions share one
implementation.
"""

from typing import List, Tuple
import numpy as np
import pandas as pd


def structure_run_count(df: pd.DataFrame, window: int = 6, sign: int = 1) -> int:
    """
    Count successive steps in the last `window` candles that build structure.

    For sign=+1 this counts rising lows (higher lows); for sign=-1 it counts
    falling highs (lower highs).
    """
    tail = df.tail(window)
    series = tail['low'] if sign > 0 else tail['high']
    steps = series.diff().iloc[1:] * sign
    return int((steps > 0).sum())


def adverse_wick_ratio(row: pd.Series, sign: int = 1) -> float:
    """
    Wick against the direction as a fraction of the candle range.

    Upper wick for sign=+1 (sellers rejecting highs), lower wick for sign=-1.
    """
    candle_range = row['high'] - row['low']
    if candle_range <= 0:
        return 0.0
    if sign > 0:
        wick = row['high'] - max(row['open'], row['close'])
    else:
        wick = min(row['open'], row['close']) - row['low']
    return float(wick / candle_range)


def has_rejection_wick(df: pd.DataFrame, window: int = 3, threshold: float = 0.5, sign: int = 1) -> bool:
    """True when any of the last `window` candles has an adverse wick above `threshold`."""
    return any(adverse_wick_ratio(row, sign) > threshold for _, row in df.tail(window).iterrows())


def directional_close_count(df: pd.DataFrame, window: int = 5, sign: int = 1) -> int:
    """Closes among the last `window` candles that moved in the direction of `sign`."""
    steps = df['close'].diff().tail(window) * sign
    return int((steps > 0).sum())


def find_swing_levels(df: pd.DataFrame, half_width: int = 2) -> Tuple[List[float], List[float]]:
    """
    Fractal swing highs and lows, oldest first.

    A swing high is a bar whose high exceeds the `half_width` bars on each
    side; swing lows mirror it. The last `half_width` bars cannot be
    confirmed yet and are never swings.

    Returns:
        (swing_highs, swing_lows) price lists
    """
    highs = df['high'].to_numpy(dtype=float)
    lows = df['low'].to_numpy(dtype=float)
    swing_highs: List[float] = []
    swing_lows: List[float] = []
    for i in range(half_width, len(df) - half_width):
        window = slice(i - half_width, i + half_width + 1)
        if np.all(highs[i] > np.delete(highs[window], half_width)):
            swing_highs.append(float(highs[i]))
        if np.all(lows[i] < np.delete(lows[window], half_width)):
            swing_lows.append(float(lows[i]))
    return swing_highs, swing_lows
