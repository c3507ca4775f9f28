"""
Technical Indicators Package

Provides:
- Volatility indicators (true range, ATR, range expansion)
- Volume indicators (volume multiple, VWAP)
- Structure indicators (higher lows / lower highs, wicks, swings)
- Data validation utilities

All indicator functions follow consistent patterns:
- Accept pandas DataFrame with OHLCV columns, oldest row first
- Return scalars or pandas Series
- Raise DataValidationError for insufficient data or missing columns
"""

from signalguard.indicators.volatility import (
    compute_true_range,
    compute_atr,
    average_true_range_percent,
    atr_expansion_ratio,
    range_statistics,
)

from signalguard.indicators.volume import (
    volume_multiple,
    compute_vwap,
    latest_vwap,
)

from signalguard.indicators.structure import (
    structure_run_count,
    adverse_wick_ratio,
    has_rejection_wick,
    directional_close_count,
    find_swing_levels,
)

from signalguard.indicators.validation_utils import (
    validate_candle_frame,
    candle_sequence_issues,
    DataValidationError,
)

__all__ = [
    # Volatility
    'compute_true_range',
    'compute_atr',
    'average_true_range_percent',
    'atr_expansion_ratio',
    'range_statistics',
    # Volume
    'volume_multiple',
    'compute_vwap',
    'latest_vwap',
    # Structure
    'structure_run_count',
    'adverse_wick_ratio',
    'has_rejection_wick',
    'directional_close_count',
    'find_swing_levels',
    # Validation
    'validate_candle_frame',
    'candle_sequence_issues',
    'DataValidationError',
]
