"""
Runner profile: upward moves toward the upper circuit.
"""

from dataclasses import dataclass
from typing import Tuple

from signalguard.shared.config.zones import ZoneEngineConfig, ZoneRequirements
from signalguard.shared.models.data import CircuitLimits
from signalguard.shared.models.zone import BlockerCode, CandidateKind, Direction


@dataclass(frozen=True)
class ZoneProfile:
    """
    Direction-specific facts the shared engine needs.

    `sign` flips every directional measure so one scoring and gating path
    serves both runners and collapses.
    """
    kind: CandidateKind
    direction: Direction
    zones: Tuple[ZoneRequirements, ...]
    structure_blocker: BlockerCode
    structure_label: str

    @property
    def sign(self) -> int:
        return self.direction.sign

    def circuit_percent(self, open_price: float, limits: CircuitLimits) -> float:
        """Distance from open to the circuit the move is heading for."""
        if self.direction is Direction.LONG:
            return (limits.upper - open_price) / open_price * 100
        return (open_price - limits.lower) / open_price * 100

    def relative_strength(self, move_percent: float, index_change_percent: float) -> float:
        """Outperformance in the profile's direction."""
        return (move_percent - index_change_percent) * self.sign


def runner_profile(config: ZoneEngineConfig) -> ZoneProfile:
    return ZoneProfile(
        kind=CandidateKind.RUNNER,
        direction=Direction.LONG,
        zones=config.runner_zones,
        structure_blocker=BlockerCode.HIGHER_LOWS,
        structure_label="higher lows",
    )
