"""
Default configuration for the signal core.

Every config is a dataclass validated at construction, so inconsistent
thresholds raise ConfigurationViolation at startup instead of surfacing
mid-session.
"""
from dataclasses import dataclass, field
from datetime import date, time
from typing import FrozenSet

from signalguard.shared.utils.error_policy import require


@dataclass(frozen=True)
class GuardConfig:
    """Thresholds for the guard pipeline."""
    # Session
    market_open: time = time(9, 15)
    market_close: time = time(15, 30)
    holidays: FrozenSet[date] = field(default_factory=frozenset)
    max_clock_drift_ms: float = 2000.0

    # Acute market risk
    panic_vix_level: float = 25.0
    max_api_latency_ms: float = 5000.0
    max_ws_latency_ms: float = 1000.0

    # Execution reality / exposure
    max_equity_spread_percent: float = 0.8
    max_option_spread_percent: float = 18.0
    parabolic_range_multiple: float = 4.0
    parabolic_lookback: int = 20
    max_open_positions: int = 5
    max_per_underlying: int = 2

    # Accumulated risk
    min_relative_strength: float = -1.0

    # Time of day (confidence deltas)
    opening_window_minutes: int = 5
    opening_delta: float = -8.0
    opening_volume_override: float = 3.0  # volume multiple that waives the opening penalty
    lunch_start: time = time(12, 0)
    lunch_end: time = time(13, 0)
    lunch_delta: float = -5.0
    closing_window_minutes: int = 15
    closing_delta: float = -3.0

    # Gap day
    gap_percent: float = 1.5
    large_gap_percent: float = 3.0
    gap_delta: float = -3.0
    large_gap_delta: float = -6.0

    # Candle integrity / structural stop
    min_candles: int = 20
    max_candle_gap_minutes: float = 5.0
    max_single_candle_move_percent: float = 8.0
    min_structural_stop_percent: float = 0.3
    max_structural_stop_equity: float = 4.5
    max_structural_stop_option: float = 6.0

    # Options
    theta_crush_hours: float = 3.0
    deep_otm_percent: float = 5.0
    max_orderbook_spread_percent: float = 18.0
    max_bid_ask_imbalance: float = 5.0
    gamma_cluster_strength: float = 60.0
    gamma_delta: float = 4.0

    # Final adjustments
    weak_breadth: float = 35.0
    strong_breadth: float = 70.0
    breadth_delta: float = 4.0
    pcr_low: float = 0.5
    pcr_high: float = 1.5
    crowd_trap_score: float = 80.0
    crowding_warn_score: float = 60.0
    min_index_correlation: float = 0.3
    max_book_correlation: float = 0.7

    # Leading adjustments
    ignition_min_strength: float = 60.0
    ignition_delta: float = 5.0
    index_aligned_delta: float = 3.0
    index_opposed_delta: float = -5.0

    # Final floor
    min_confidence: float = 52.0

    def __post_init__(self):
        require(self.market_open < self.market_close, "market_open must precede market_close")
        require(self.lunch_start < self.lunch_end, "lunch_start must precede lunch_end")
        require(self.max_clock_drift_ms > 0, "max_clock_drift_ms must be positive")
        require(self.max_open_positions >= self.max_per_underlying > 0,
                "max_per_underlying must be positive and within max_open_positions")
        require(self.gap_percent < self.large_gap_percent, "gap_percent must be below large_gap_percent")
        require(self.weak_breadth < self.strong_breadth, "weak_breadth must be below strong_breadth")
        require(self.pcr_low < self.pcr_high, "pcr_low must be below pcr_high")
        require(self.crowding_warn_score <= self.crowd_trap_score, "crowding warning must trigger before the trap")
        require(0 < self.min_structural_stop_percent < self.max_structural_stop_equity,
                "structural stop bounds are inverted")
        require(self.max_structural_stop_equity <= self.max_structural_stop_option,
                "option structural stop cap must be at least the equity cap")
        require(0 <= self.min_confidence <= 100, "min_confidence must be 0-100")
        require(self.min_candles > 0, "min_candles must be positive")
        for name in ("opening_delta", "lunch_delta", "closing_delta", "gap_delta", "large_gap_delta",
                     "index_opposed_delta"):
            require(getattr(self, name) <= 0, f"{name} must be a penalty (<= 0)")


@dataclass(frozen=True)
class ConfidenceConfig:
    """Confidence composite weights (points) and the elite handling."""
    mtf_weight: float = 12.0  # split evenly over 5m, 15m and daily
    breadth_weight: float = 12.0
    relative_strength_weight: float = 10.0
    regime_weight: float = 8.0
    liquidity_weight: float = 6.0
    correlation_weight: float = 5.0
    time_of_day_weight: float = 3.0
    gamma_weight: float = 8.0  # options only

    def __post_init__(self):
        weights = (
            self.mtf_weight, self.breadth_weight, self.relative_strength_weight, self.regime_weight,
            self.liquidity_weight, self.correlation_weight, self.time_of_day_weight, self.gamma_weight,
        )
        require(all(w >= 0 for w in weights), "confidence weights cannot be negative")
        require(sum(weights) - self.gamma_weight > 0, "equity confidence weights cannot all be zero")


@dataclass(frozen=True)
class ExitConfig:
    """Exit state machine thresholds."""
    swing_buffer_percent: float = 0.2  # of entry price, beyond the swing level
    swing_half_width: int = 2  # bars each side of a fractal swing
    atr_trail_multiple: float = 1.5
    min_profit_to_trail: float = 1.5
    volatility_collapse_ratio: float = 0.4
    breadth_collapse_long: float = 30.0
    breadth_collapse_short: float = 70.0
    regime_confirmation_ticks: int = 2
    theta_acceleration: float = 2.0
    iv_crush_percent: float = 15.0
    oi_reversal_percent: float = 10.0
    vwap_break_buffer_percent: float = 0.3  # of VWAP, beyond the line
    vwap_break_min_profit: float = 0.5  # VWAP breaks only close positions already in profit
    opposite_ignition_strength: float = 60.0

    def __post_init__(self):
        require(self.swing_buffer_percent >= 0, "swing_buffer_percent cannot be negative")
        require(self.swing_half_width >= 1, "swing_half_width must be at least 1")
        require(self.atr_trail_multiple > 0, "atr_trail_multiple must be positive")
        require(self.min_profit_to_trail > 0, "min_profit_to_trail must be positive")
        require(0 < self.volatility_collapse_ratio < 1, "volatility_collapse_ratio must be in (0, 1)")
        require(self.breadth_collapse_long < self.breadth_collapse_short, "breadth collapse levels are inverted")
        require(self.regime_confirmation_ticks >= 1, "regime_confirmation_ticks must be at least 1")
        require(self.theta_acceleration > 1, "theta_acceleration must exceed 1")
        require(self.vwap_break_buffer_percent >= 0, "vwap_break_buffer_percent cannot be negative")
        require(0 < self.opposite_ignition_strength <= 100, "opposite_ignition_strength must be in (0, 100]")


@dataclass(frozen=True)
class RegimeConfig:
    """Volatility regime classifier thresholds."""
    window: int = 20
    slope_window: int = 5
    compression_slope: float = -20.0
    compression_expansion: float = 0.0
    expansion_slope: float = 30.0
    expansion_range: float = 50.0
    trend_day_expansion: float = 100.0
    trend_day_range_multiple: float = 2.0
    mean_reversion_range: float = 20.0
    mean_reversion_slope: float = 10.0
    refresh_seconds: float = 60.0
    trend_day_delta: float = 5.0
    expansion_delta: float = 2.0
    mean_reversion_delta: float = -3.0

    def __post_init__(self):
        require(self.window > self.slope_window * 2 - 1, "window must cover two slope windows")
        require(self.compression_slope < 0 < self.expansion_slope, "compression/expansion slopes are inverted")
        require(self.refresh_seconds > 0, "refresh_seconds must be positive")
        require(self.trend_day_range_multiple > 1, "trend_day_range_multiple must exceed 1")


@dataclass(frozen=True)
class ContextConfig:
    """Context producer thresholds."""
    panic_index_drop_percent: float = 2.0
    panic_window_minutes: int = 15
    panic_vix_spike_percent: float = 15.0
    panic_breadth: float = 20.0
    panic_cooldown_minutes: int = 30
    drawdown_max_failed_signals: int = 5
    drawdown_max_loss_percent: float = 2.0
    drawdown_lock_minutes: int = 60
    tier1_turnover_cr: float = 50.0
    tier2_turnover_cr: float = 10.0
    shock_volume_drop_percent: float = 40.0
    shock_spread_widening_percent: float = 100.0

    def __post_init__(self):
        require(self.tier1_turnover_cr > self.tier2_turnover_cr > 0, "liquidity tier turnovers are inverted")
        require(self.drawdown_max_failed_signals > 0, "drawdown_max_failed_signals must be positive")
        require(self.panic_index_drop_percent > 0, "panic_index_drop_percent must be positive")


@dataclass(frozen=True)
class EngineConfig:
    """Orchestrator settings."""
    max_workers: int = 8
    evaluation_timeout_sec: float = 30.0  # deadline for a whole evaluate_many cycle

    def __post_init__(self):
        require(self.max_workers > 0, "max_workers must be positive")
        require(self.evaluation_timeout_sec > 0, "evaluation_timeout_sec must be positive")


# Default instances
DEFAULT_GUARD_CONFIG = GuardConfig()
DEFAULT_CONFIDENCE_CONFIG = ConfidenceConfig()
DEFAULT_EXIT_CONFIG = ExitConfig()
DEFAULT_REGIME_CONFIG = RegimeConfig()
DEFAULT_CONTEXT_CONFIG = ContextConfig()
DEFAULT_ENGINE_CONFIG = EngineConfig()
