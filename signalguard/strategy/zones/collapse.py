"""
Collapse profile: downward moves toward the lower circuit.

Mirrors the runner: relative strength is measured as underperformance,
VWAP alignment means trading below it, and structure means lower highs.
"""

from signalguard.shared.config.zones import ZoneEngineConfig
from signalguard.shared.models.zone import BlockerCode, CandidateKind, Direction
from signalguard.strategy.zones.runner import ZoneProfile


def collapse_profile(config: ZoneEngineConfig) -> ZoneProfile:
    return ZoneProfile(
        kind=CandidateKind.COLLAPSE,
        direction=Direction.SHORT,
        zones=config.collapse_zones,
        structure_blocker=BlockerCode.LOWER_HIGHS,
        structure_label="lower highs",
    )
