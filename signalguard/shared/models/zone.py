"""
Zone models for the probability engine.

A candidate is a tagged variant: RUNNER for upward moves and COLLAPSE for
downward moves. Both share one scored-zone shape so the two directions can
share scoring and gating code.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from signalguard.shared.models.data import Instrument


class CandidateKind(Enum):
    RUNNER = "RUNNER"
    COLLAPSE = "COLLAPSE"


class Direction(Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.LONG else -1


class Zone(Enum):
    """Move-magnitude buckets, runner zones first then collapse zones."""

    EARLY = "EARLY"
    STRONG = "STRONG"
    EXTENDED = "EXTENDED"
    LATE = "LATE"
    EARLY_COLLAPSE = "EARLY_COLLAPSE"
    STRONG_COLLAPSE = "STRONG_COLLAPSE"
    EXTENDED_COLLAPSE = "EXTENDED_COLLAPSE"

    @property
    def kind(self) -> CandidateKind:
        return CandidateKind.COLLAPSE if self.value.endswith("_COLLAPSE") else CandidateKind.RUNNER


class BlockerCode(str, Enum):
    """Reasons the zone engine refuses a candidate."""

    ROOM = "ROOM"
    ZONE_INVALID = "ZONE_INVALID"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    VOLUME = "VOLUME"
    RELATIVE_STRENGTH = "RELATIVE_STRENGTH"
    SPREAD = "SPREAD"
    ZONE_ROOM = "ZONE_ROOM"
    VWAP = "VWAP"
    HIGHER_LOWS = "HIGHER_LOWS"
    LOWER_HIGHS = "LOWER_HIGHS"
    ATR_EXPANDING = "ATR_EXPANDING"
    REJECTION_WICK = "REJECTION_WICK"
    MOMENTUM = "MOMENTUM"
    STRUCTURAL_STOP = "STRUCTURAL_STOP"
    CONFIDENCE = "CONFIDENCE"
    MIN_SCORE = "MIN_SCORE"
    VOLATILITY = "VOLATILITY"


@dataclass(frozen=True)
class ZoneBlocker:
    """One unmet zone requirement. Any blocker forces rejection."""
    code: BlockerCode
    reason: str

    def describe(self) -> str:
        return f"{self.code.value}: {self.reason}"


@dataclass(frozen=True)
class ScoreComponent:
    """
    Individual sub-score contribution.

    Attributes:
        name: Factor identifier (e.g. 'volume', 'relative_strength')
        score: Normalized score for this factor (0-100)
        weight: Points this factor carries in the 0-100 composite
        rationale: Human-readable explanation of the score
    """
    name: str
    score: float
    weight: float
    rationale: str

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"Score must be 0-100, got {self.score}")
        if self.weight < 0:
            raise ValueError(f"Weight cannot be negative, got {self.weight}")

    @property
    def weighted_score(self) -> float:
        return self.score * self.weight / 100


@dataclass(frozen=True)
class SignalCandidate:
    """
    Immutable result of one zone evaluation.

    Attributes:
        instrument: Instrument evaluated
        kind: RUNNER or COLLAPSE variant tag
        direction: LONG for runners, SHORT for collapses
        move_percent: Signed move from open to current price
        circuit_percent: Distance from open to the relevant circuit limit
        remaining_room_percent: circuit_percent minus the absolute move
        zone: Classified zone, None when the move fits no valid bucket
        score: Composite quality score (0-100)
        is_elite: Score cleared the elite threshold
        confidence_boost: Confidence points granted downstream for elite signals
        expected_mae_percent: Expected adverse excursion used by the volatility guard
        components: Per-factor sub-scores behind the composite
        blockers: Unmet requirements; non-empty means rejected
    """
    instrument: Instrument
    kind: CandidateKind
    direction: Direction
    move_percent: float
    circuit_percent: float
    remaining_room_percent: float
    zone: Optional[Zone]
    score: int = 0
    is_elite: bool = False
    confidence_boost: float = 0.0
    expected_mae_percent: Optional[float] = None
    components: Tuple[ScoreComponent, ...] = field(default_factory=tuple)
    blockers: Tuple[ZoneBlocker, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return not self.blockers

    @property
    def token(self) -> str:
        return self.instrument.token

    @property
    def symbol(self) -> str:
        return self.instrument.symbol

    def has_blocker(self, code: BlockerCode) -> bool:
        return any(b.code is code for b in self.blockers)

    def component(self, name: str) -> Optional[ScoreComponent]:
        for comp in self.components:
            if comp.name == name:
                return comp
        return None
