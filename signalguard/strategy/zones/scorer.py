"""
Zone scoring shared by runners and collapses.

Measurements are taken once per evaluation into ZoneMetrics, already
oriented to the candidate's direction. The scorer normalizes each to 0-100
and weights them into the composite.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from signalguard.indicators.structure import (
    adverse_wick_ratio, directional_close_count, has_rejection_wick, structure_run_count
)
from signalguard.indicators.volatility import atr_expansion_ratio, average_true_range_percent
from signalguard.indicators.volume import latest_vwap, volume_multiple
from signalguard.shared.config.zones import ZoneEngineConfig, ZoneRequirements
from signalguard.shared.models.data import EvaluationInput, candles_to_frame
from signalguard.shared.models.zone import ScoreComponent
from signalguard.strategy.zones.runner import ZoneProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneMetrics:
    """
    Direction-oriented measurements for one evaluation.

    Attributes:
        volume_multiple: Recent volume over baseline
        relative_strength: Outperformance in the candidate's direction
        spread_percent: Quoted spread
        remaining_room: Percent left to the circuit
        structure_steps: Higher-low (runner) or lower-high (collapse) steps
        adverse_wick: Last candle's wick against the direction, as a fraction of range
        rejection_wick: A recent candle shows a rejection wick
        momentum_closes: Recent closes that moved with the direction
        atr_expansion: Recent ATR over prior ATR
        range_percent: Mean true range of the MAE window, percent of price
        vwap_distance: Distance from VWAP in the candidate's favor (None when unknown)
    """
    volume_multiple: float
    relative_strength: float
    spread_percent: float
    remaining_room: float
    structure_steps: int
    adverse_wick: float
    rejection_wick: bool
    momentum_closes: int
    atr_expansion: float
    range_percent: float
    vwap_distance: Optional[float]


def measure(
    profile: ZoneProfile,
    inputs: EvaluationInput,
    remaining_room: float,
    config: ZoneEngineConfig,
) -> ZoneMetrics:
    """
    Take every measurement the gates and scorer need.

    Raises:
        DataValidationError: If the candle window cannot support a measurement
    """
    df = candles_to_frame(inputs.candles)
    sign = profile.sign

    vwap = inputs.vwap if inputs.vwap is not None else latest_vwap(df)
    vwap_distance = (inputs.current_price - vwap) / vwap * 100 * sign if vwap > 0 else None

    return ZoneMetrics(
        volume_multiple=volume_multiple(df, recent=config.volume_recent, lookback=config.volume_lookback),
        relative_strength=profile.relative_strength(inputs.move_percent, inputs.index_change_percent),
        spread_percent=inputs.spread_percent,
        remaining_room=remaining_room,
        structure_steps=structure_run_count(df, window=config.structure_window, sign=sign),
        adverse_wick=adverse_wick_ratio(df.iloc[-1], sign=sign),
        rejection_wick=has_rejection_wick(
            df, window=config.rejection_window, threshold=config.rejection_wick_ratio, sign=sign
        ),
        momentum_closes=directional_close_count(df, window=config.momentum_window, sign=sign),
        atr_expansion=atr_expansion_ratio(df, window=config.atr_expansion_window),
        range_percent=average_true_range_percent(df, window=config.mae_window),
        vwap_distance=vwap_distance,
    )


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


class ZoneScorer:
    """Weighted 0-100 composite over eight normalized sub-scores."""

    def __init__(self, config: ZoneEngineConfig):
        self.config = config

    def score(self, req: ZoneRequirements, m: ZoneMetrics) -> Tuple[int, Tuple[ScoreComponent, ...]]:
        cfg = self.config
        w = cfg.weights

        if m.spread_percent <= req.max_spread_percent:
            spread_score = 100 - m.spread_percent / req.max_spread_percent * 50
        else:
            spread_score = 0.0

        run_score = m.structure_steps / (cfg.structure_window - 1) * 100
        wick_score = (1 - m.adverse_wick) * 100
        structure_score = (run_score + wick_score) / 2

        if m.vwap_distance is None:
            vwap_score, vwap_why = 50.0, "VWAP unknown"
        elif m.vwap_distance >= 0:
            vwap_score, vwap_why = 100.0, f"{m.vwap_distance:.2f}% on the right side of VWAP"
        else:
            vwap_score, vwap_why = 100 + m.vwap_distance * 50, f"{m.vwap_distance:.2f}% against VWAP"

        parts = (
            ("move_quality", req.move_quality * 100, w.move_quality, f"{req.zone.value} depth"),
            ("volume", m.volume_multiple / req.min_volume_multiple * 60, w.volume,
             f"{m.volume_multiple:.2f}x vs {req.min_volume_multiple}x required"),
            ("relative_strength", m.relative_strength / req.min_relative_strength * 50, w.relative_strength,
             f"RS {m.relative_strength:.2f}% vs {req.min_relative_strength}% required"),
            ("spread", spread_score, w.spread, f"spread {m.spread_percent:.2f}% vs max {req.max_spread_percent}%"),
            ("structure", structure_score, w.structure,
             f"{m.structure_steps} structure steps, adverse wick {m.adverse_wick:.0%}"),
            ("vwap", vwap_score, w.vwap, vwap_why),
            ("room", m.remaining_room / req.min_room_percent * 40, w.room,
             f"{m.remaining_room:.2f}% room vs {req.min_room_percent}% required"),
            ("momentum", m.momentum_closes / (cfg.momentum_window - 1) * 100, w.momentum,
             f"{m.momentum_closes}/{cfg.momentum_window} closes with the move"),
        )
        components = tuple(
            ScoreComponent(name=name, score=round(_clamp(value), 2), weight=weight, rationale=why)
            for name, value, weight, why in parts
        )
        total = int(round(sum(c.weighted_score for c in components)))
        return total, components
