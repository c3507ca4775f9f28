"""
Zone requirement tables for the probability engine.

Runner zones bucket positive moves, collapse zones bucket the magnitude of
negative moves.
Requirements escalate with zone depth: deeper zones demand more volume,
more relative strength, tighter spreads and more structure, and carry a
higher minimum score.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from signalguard.shared.models.data import CircuitBand
from signalguard.shared.models.zone import Zone
from signalguard.shared.utils.error_policy import require


@dataclass(frozen=True)
class ZoneRequirements:
    """
    Thresholds for one zone.

    Buckets are half-open on the move magnitude: lower <= |move| < upper.
    `min_relative_strength` is measured in the zone's own direction, so a
    collapse zone's 0.8 means the instrument fell 0.8% more than the index.
    """
    zone: Zone
    lower: float
    upper: float
    min_volume_multiple: float
    min_relative_strength: float
    max_spread_percent: float
    min_room_percent: float
    min_score: int
    mae_multiplier: float
    move_quality: float  # shallower zones score higher
    require_vwap: bool = False
    require_structure: bool = False  # higher lows for runners, lower highs for collapses
    require_atr_expanding: bool = False
    require_no_rejection_wick: bool = False
    require_momentum: bool = False
    required_circuit_band: Optional[CircuitBand] = None
    max_structural_stop_percent: Optional[float] = None

    def __post_init__(self):
        require(self.lower >= 0, f"{self.zone.value}: bucket bounds are move magnitudes and cannot be negative")
        require(self.lower < self.upper, f"{self.zone.value}: bucket lower {self.lower} must be below upper {self.upper}")
        require(self.min_volume_multiple > 0, f"{self.zone.value}: min volume multiple must be positive")
        require(self.min_relative_strength > 0, f"{self.zone.value}: min relative strength must be positive")
        require(self.max_spread_percent > 0, f"{self.zone.value}: max spread must be positive")
        require(self.min_room_percent > 0, f"{self.zone.value}: min room must be positive")
        require(0 < self.min_score <= 100, f"{self.zone.value}: min score must be in (0, 100]")
        require(self.mae_multiplier > 0, f"{self.zone.value}: MAE multiplier must be positive")
        require(0 < self.move_quality <= 1, f"{self.zone.value}: move quality must be in (0, 1]")

    def contains(self, move_percent: float) -> bool:
        return self.lower <= abs(move_percent) < self.upper


RUNNER_ZONES: Tuple[ZoneRequirements, ...] = (
    ZoneRequirements(
        zone=Zone.EARLY, lower=0.0, upper=2.0,
        min_volume_multiple=1.6, min_relative_strength=1.0, max_spread_percent=0.85,
        min_room_percent=6.0, min_score=65, mae_multiplier=0.8, move_quality=1.0,
    ),
    ZoneRequirements(
        zone=Zone.STRONG, lower=2.0, upper=5.0,
        min_volume_multiple=2.2, min_relative_strength=1.8, max_spread_percent=0.7,
        min_room_percent=4.5, min_score=70, mae_multiplier=1.0, move_quality=0.8,
    ),
    ZoneRequirements(
        zone=Zone.EXTENDED, lower=5.0, upper=8.0,
        min_volume_multiple=3.0, min_relative_strength=2.2, max_spread_percent=0.6,
        min_room_percent=3.5, min_score=75, mae_multiplier=1.3, move_quality=0.5,
        require_vwap=True, require_structure=True, require_atr_expanding=True,
        max_structural_stop_percent=4.0,
    ),
    ZoneRequirements(
        zone=Zone.LATE, lower=8.0, upper=9.5,
        min_volume_multiple=4.0, min_relative_strength=3.0, max_spread_percent=0.5,
        min_room_percent=2.0, min_score=80, mae_multiplier=1.6, move_quality=0.3,
        require_vwap=True, require_structure=True, require_atr_expanding=True,
        require_no_rejection_wick=True, require_momentum=True,
        required_circuit_band=CircuitBand.BAND_10, max_structural_stop_percent=3.0,
    ),
)

COLLAPSE_ZONES: Tuple[ZoneRequirements, ...] = (
    ZoneRequirements(
        zone=Zone.EARLY_COLLAPSE, lower=1.0, upper=4.0,
        min_volume_multiple=1.6, min_relative_strength=0.8, max_spread_percent=0.85,
        min_room_percent=5.0, min_score=65, mae_multiplier=0.8, move_quality=1.0,
    ),
    ZoneRequirements(
        zone=Zone.STRONG_COLLAPSE, lower=4.0, upper=12.0,
        min_volume_multiple=2.0, min_relative_strength=1.5, max_spread_percent=0.75,
        min_room_percent=4.0, min_score=69, mae_multiplier=1.0, move_quality=0.75,
    ),
    ZoneRequirements(
        zone=Zone.EXTENDED_COLLAPSE, lower=12.0, upper=25.0,
        min_volume_multiple=2.8, min_relative_strength=2.0, max_spread_percent=0.65,
        min_room_percent=3.5, min_score=74, mae_multiplier=1.3, move_quality=0.4,
        require_vwap=True, require_structure=True, require_atr_expanding=True,
        max_structural_stop_percent=4.0,
    ),
)

# Collapses of this magnitude or deeper are exhausted; no entry.
DEAD_ZONE_MOVE = 25.0


@dataclass(frozen=True)
class ScoreWeights:
    """Composite score weights in points; must total 100."""
    move_quality: float = 20.0
    volume: float = 18.0
    relative_strength: float = 15.0
    spread: float = 12.0
    structure: float = 12.0
    vwap: float = 10.0
    room: float = 8.0
    momentum: float = 5.0

    def __post_init__(self):
        values = (
            self.move_quality, self.volume, self.relative_strength, self.spread,
            self.structure, self.vwap, self.room, self.momentum,
        )
        require(all(v >= 0 for v in values), "Score weights cannot be negative")
        require(abs(sum(values) - 100.0) < 1e-6, f"Score weights must total 100, got {sum(values)}")


def _validate_ladder(zones: Tuple[ZoneRequirements, ...], label: str) -> None:
    """Buckets must be contiguous and floors must rise with depth."""
    require(len(zones) > 0, f"{label} zone table is empty")
    for shallow, deep in zip(zones, zones[1:]):
        require(shallow.upper == deep.lower, f"{label}: {shallow.zone.value} and {deep.zone.value} are not contiguous")
        require(
            deep.min_score >= shallow.min_score,
            f"{label}: {deep.zone.value} floor {deep.min_score} below {shallow.zone.value} floor {shallow.min_score}",
        )
        require(
            deep.min_volume_multiple >= shallow.min_volume_multiple,
            f"{label}: {deep.zone.value} volume requirement below {shallow.zone.value}",
        )


@dataclass(frozen=True)
class ZoneEngineConfig:
    """Global probability engine settings plus both zone ladders."""
    absolute_min_room: float = 1.5
    elite_score: int = 82
    elite_confidence_boost: float = 10.0
    min_confidence: float = 58.0
    max_expected_mae: float = 0.8
    min_candles: int = 20
    volume_recent: int = 3
    volume_lookback: int = 20
    mae_window: int = 5
    vwap_tolerance_percent: float = 0.5  # price may sit this far on the wrong side of VWAP
    structure_window: int = 6
    min_structure_steps: int = 3
    atr_expansion_window: int = 10
    min_atr_expansion: float = 1.05
    rejection_window: int = 3
    rejection_wick_ratio: float = 0.5
    momentum_window: int = 5
    min_momentum_closes: int = 3
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    runner_zones: Tuple[ZoneRequirements, ...] = RUNNER_ZONES
    collapse_zones: Tuple[ZoneRequirements, ...] = COLLAPSE_ZONES
    dead_zone_move: float = DEAD_ZONE_MOVE

    def __post_init__(self):
        require(self.absolute_min_room > 0, "absolute_min_room must be positive")
        require(0 < self.elite_score <= 100, "elite_score must be in (0, 100]")
        require(self.max_expected_mae > 0, "max_expected_mae must be positive")
        require(self.min_candles >= self.volume_recent + 1, "min_candles must cover the recent volume window")
        require(self.min_candles > self.atr_expansion_window, "min_candles must cover the ATR expansion window")
        require(0 < self.min_structure_steps < self.structure_window, "min_structure_steps must fit the structure window")
        require(0 < self.min_momentum_closes <= self.momentum_window, "min_momentum_closes must fit the momentum window")
        _validate_ladder(self.runner_zones, label="runner")
        _validate_ladder(self.collapse_zones, label="collapse")
        require(self.runner_zones[0].lower == 0.0, "runner ladder must start at a zero move")
        require(
            self.collapse_zones[-1].upper == self.dead_zone_move,
            "collapse ladder must end at the dead-zone boundary",
        )
        for req in self.runner_zones + self.collapse_zones:
            require(
                req.min_room_percent >= self.absolute_min_room,
                f"{req.zone.value}: zone room {req.min_room_percent} below absolute floor {self.absolute_min_room}",
            )
            require(
                req.min_score <= self.elite_score,
                f"{req.zone.value}: floor {req.min_score} above elite threshold {self.elite_score}",
            )


DEFAULT_ZONE_CONFIG = ZoneEngineConfig()
