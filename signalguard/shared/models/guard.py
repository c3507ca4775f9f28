"""
Guard pipeline models.

Each guard returns exactly one GuardVerdict per run. The PipelineResult is
derived once from the full verdict trail and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple

from signalguard.shared.models.zone import SignalCandidate, Zone


class GuardKind(Enum):
    HARD = "HARD"  # blocks; later guards still run
    ADJUST = "ADJUST"  # moves confidence, never blocks
    WARN = "WARN"  # logged only


class MissingDataPolicy(Enum):
    """What a guard does when a fact it needs has not been published."""
    FAIL_CLOSED = "FAIL_CLOSED"
    FAIL_OPEN = "FAIL_OPEN"


@dataclass(frozen=True)
class ConfidenceAdjustment:
    """Signed confidence change applied by a guard."""
    source: str
    delta: float
    reason: str

    def describe(self) -> str:
        return f"{self.source} {self.delta:+.1f}: {self.reason}"


@dataclass(frozen=True)
class GuardVerdict:
    """
    One guard's answer for one candidate.

    Attributes:
        guard_name: Registry name (e.g. 'PANIC_KILL_SWITCH')
        kind: HARD, ADJUST or WARN
        passed: False means blocked (HARD) or flagged (WARN)
        reason: Human-readable explanation
        adjustment: Optional confidence adjustment carried by the verdict
    """
    guard_name: str
    kind: GuardKind
    passed: bool
    reason: str
    adjustment: Optional[ConfidenceAdjustment] = None

    def __post_init__(self):
        if self.kind is GuardKind.ADJUST and not self.passed:
            raise ValueError(f"ADJUST guard {self.guard_name} cannot block")

    @property
    def blocks(self) -> bool:
        return self.kind is GuardKind.HARD and not self.passed

    @property
    def warns(self) -> bool:
        return self.kind is GuardKind.WARN and not self.passed


def confidence_grade(score: float) -> str:
    """Letter grade for a 0-100 confidence score."""
    for threshold, grade in ((85, "A+"), (75, "A"), (65, "B+"), (55, "B"), (45, "C"), (35, "D")):
        if score >= threshold:
            return grade
    return "F"


@dataclass(frozen=True)
class PipelineResult:
    """
    Final decision record for one candidate.

    Build with `PipelineResult.build()` so that `allowed` is always derived
    from the block reasons.
    """
    allowed: bool
    token: str
    symbol: str
    zone: Optional[Zone]
    score: int
    block_reasons: Tuple[str, ...]
    adjustments: Tuple[ConfidenceAdjustment, ...]
    warnings: Tuple[str, ...]
    confidence_score: float
    confidence_grade: str
    checks: Tuple[GuardVerdict, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.allowed != (not self.block_reasons):
            raise ValueError("allowed must equal an empty block_reasons list")

    @classmethod
    def build(
        cls,
        candidate: SignalCandidate,
        checks: Iterable[GuardVerdict],
        confidence_score: float,
        adjustments: Iterable[ConfidenceAdjustment] = (),
    ) -> "PipelineResult":
        checks = tuple(checks)
        block_reasons = [b.describe() for b in candidate.blockers]
        block_reasons.extend(f"{v.guard_name}: {v.reason}" for v in checks if v.blocks)
        warnings = tuple(f"{v.guard_name}: {v.reason}" for v in checks if v.warns)
        return cls(
            allowed=not block_reasons,
            token=candidate.token,
            symbol=candidate.symbol,
            zone=candidate.zone,
            score=candidate.score,
            block_reasons=tuple(block_reasons),
            adjustments=tuple(adjustments),
            warnings=warnings,
            confidence_score=confidence_score,
            confidence_grade=confidence_grade(confidence_score),
            checks=checks,
        )

    def check(self, guard_name: str) -> Optional[GuardVerdict]:
        for verdict in self.checks:
            if verdict.guard_name == guard_name:
                return verdict
        return None
