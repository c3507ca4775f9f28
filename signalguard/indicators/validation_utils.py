"""
Candle Data Validation Utilities

Provides centralized input validation for indicator calculations to catch
data quality issues early and prevent NaN propagation through scoring.
"""

from datetime import timedelta
from typing import List, Optional, Sequence
import pandas as pd
import logging

from signalguard.shared.models.data import Candle
from signalguard.shared.utils.error_policy import MissingDataError

logger = logging.getLogger(__name__)


class DataValidationError(MissingDataError, ValueError):
    """Raised when candle data fails validation checks."""


def validate_candle_frame(
    df: pd.DataFrame,
    require_volume: bool = True,
    min_rows: Optional[int] = None,
    raise_on_error: bool = True,
) -> dict:
    """
    Validate a candle DataFrame before indicator calculation.

    Args:
        df: DataFrame with OHLCV columns
        require_volume: If True, require 'volume' column (default True)
        min_rows: Minimum required rows (None = no minimum)
        raise_on_error: If True, raise DataValidationError; else return dict

    Returns:
        dict with validation results:
            - valid: bool indicating if all checks passed
            - errors: list of error messages
            - warnings: list of warning messages

    Raises:
        DataValidationError: If validation fails and raise_on_error=True
    """
    result = {"valid": True, "errors": [], "warnings": []}

    required_cols = ["open", "high", "low", "close"]
    if require_volume:
        required_cols.append("volume")

    missing_cols = [col for col in required_cols if col not in df.columns]
    if missing_cols:
        result["errors"].append(f"Missing required columns: {missing_cols}")
        result["valid"] = False
        if raise_on_error:
            raise DataValidationError("; ".join(result["errors"]))
        return result

    if min_rows is not None and len(df) < min_rows:
        result["errors"].append(f"DataFrame too short: need {min_rows} rows, got {len(df)}")
        result["valid"] = False

    for col in ["open", "high", "low", "close"]:
        nan_count = df[col].isna().sum()
        if nan_count > 0:
            result["errors"].append(f"Column '{col}' has {nan_count} NaN values")
            result["valid"] = False
        non_positive = (df[col] <= 0).sum()
        if non_positive > 0:
            result["errors"].append(f"Column '{col}' has {non_positive} non-positive values")
            result["valid"] = False

    inverted = (df["high"] < df["low"]).sum()
    if inverted > 0:
        result["errors"].append(f"Found {inverted} inverted candles (high < low) - data corruption suspected")
        result["valid"] = False

    if require_volume:
        negative_volume = (df["volume"] < 0).sum()
        if negative_volume > 0:
            result["errors"].append(f"Found {negative_volume} negative volume values")
            result["valid"] = False
        zero_volume = (df["volume"] == 0).sum()
        if zero_volume > 0:
            zero_pct = zero_volume / len(df) * 100
            if zero_pct > 80:
                result["errors"].append(f"Found {zero_volume} zero volume bars ({zero_pct:.1f}%) - possible data issue")
                result["valid"] = False
            elif zero_pct > 10:
                result["warnings"].append(f"Found {zero_volume} zero volume bars ({zero_pct:.1f}%)")

    for warning in result["warnings"]:
        logger.debug("Candle validation warning: %s", warning)

    if raise_on_error and not result["valid"]:
        raise DataValidationError("; ".join(result["errors"]))

    return result


def candle_sequence_issues(
    candles: Sequence[Candle],
    max_gap_minutes: float,
    max_move_percent: float,
) -> List[str]:
    """
    Find ordering, gap and spike problems in an oldest-first candle window.

    Returns:
        List of human-readable issues; empty when the window is clean
    """
    issues: List[str] = []
    max_gap = timedelta(minutes=max_gap_minutes)
    for prev, cur in zip(candles, candles[1:]):
        if cur.timestamp <= prev.timestamp:
            issues.append(f"out-of-order candle at {cur.timestamp.isoformat()}")
            continue
        if cur.timestamp - prev.timestamp > max_gap:
            gap_min = (cur.timestamp - prev.timestamp).total_seconds() / 60
            issues.append(f"{gap_min:.0f}min gap before {cur.timestamp.isoformat()}")
        if prev.close > 0:
            move = abs(cur.close - prev.close) / prev.close * 100
            if move > max_move_percent:
                issues.append(f"{move:.1f}% single-candle move at {cur.timestamp.isoformat()}")
    return issues
