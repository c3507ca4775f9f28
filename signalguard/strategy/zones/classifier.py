"""
Zone classification.

A move maps to exactly one zone or none, purely from the signed move and
the instrument's circuit band. The sign picks the ladder; buckets are
matched on the move's magnitude.
"""

from typing import Optional, Tuple

from signalguard.shared.config.zones import DEFAULT_ZONE_CONFIG, ZoneEngineConfig, ZoneRequirements
from signalguard.shared.models.data import CircuitBand


def classify_zone(
    move_percent: float,
    circuit_band: CircuitBand,
    config: ZoneEngineConfig = DEFAULT_ZONE_CONFIG,
) -> Tuple[Optional[ZoneRequirements], str]:
    """
    Bucket a signed move into its zone.

    Returns:
        (requirements, reason) where requirements is None when the move fits
        no valid zone and reason explains why
    """
    is_collapse = move_percent < 0
    if is_collapse and abs(move_percent) >= config.dead_zone_move:
        return None, f"dead zone: {move_percent:.2f}% collapse already exhausted"

    ladder = config.collapse_zones if is_collapse else config.runner_zones
    for req in ladder:
        if req.contains(move_percent):
            if req.required_circuit_band is not None and circuit_band is not req.required_circuit_band:
                return None, (
                    f"{req.zone.value} zone needs a {req.required_circuit_band.value:.0f}% circuit band, "
                    f"instrument trades under {circuit_band.value:.0f}%"
                )
            return req, f"{move_percent:.2f}% move in {req.zone.value}"

    if is_collapse:
        return None, f"{move_percent:.2f}% move too shallow for a collapse zone"
    return None, f"{move_percent:.2f}% move beyond the deepest runner zone"
