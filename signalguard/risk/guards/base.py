"""
Guard building blocks.

A guard is a pure check `(candidate, context) -> Check` wrapped in a Guard
that knows its registry name, kind and missing-data policy. Guard.evaluate
is the guard's boundary: nothing raised inside a check escapes it, every
outcome becomes a GuardVerdict.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple
import logging

from signalguard.shared.config.defaults import (
    DEFAULT_GUARD_CONFIG, DEFAULT_REGIME_CONFIG, GuardConfig, RegimeConfig
)
from signalguard.shared.models.context import MarketContext
from signalguard.shared.models.data import EvaluationInput
from signalguard.shared.models.guard import ConfidenceAdjustment, GuardKind, GuardVerdict, MissingDataPolicy
from signalguard.shared.models.zone import SignalCandidate
from signalguard.shared.utils.error_policy import MissingDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardContext:
    """
    Everything a guard may read. Rebuilt between guards with the
    confidence accumulated so far; never mutated in place.
    """
    inputs: EvaluationInput
    market: MarketContext
    config: GuardConfig = DEFAULT_GUARD_CONFIG
    regime_config: RegimeConfig = DEFAULT_REGIME_CONFIG
    confidence: float = 0.0
    adjustments: Tuple[ConfidenceAdjustment, ...] = field(default_factory=tuple)

    @property
    def now(self):
        return self.inputs.timestamp


@dataclass(frozen=True)
class Check:
    """Raw outcome of a guard check before it becomes a verdict."""
    passed: bool
    reason: str
    delta: float = 0.0

    @classmethod
    def ok(cls, reason: str) -> "Check":
        return cls(True, reason)

    @classmethod
    def fail(cls, reason: str) -> "Check":
        return cls(False, reason)

    @classmethod
    def adjust(cls, delta: float, reason: str) -> "Check":
        return cls(True, reason, delta)


CheckFn = Callable[[SignalCandidate, GuardContext], Check]


@dataclass(frozen=True)
class Guard:
    """
    One registered pipeline check.

    Attributes:
        name: Registry name, used in verdicts and block reasons
        kind: HARD, ADJUST or WARN
        check: The pure check function
        missing_data: What happens when the check reports a missing fact
        options_only: Only registered for option candidates
    """
    name: str
    kind: GuardKind
    check: CheckFn
    missing_data: MissingDataPolicy = MissingDataPolicy.FAIL_CLOSED
    options_only: bool = False

    def applies_to(self, candidate: SignalCandidate) -> bool:
        return candidate.instrument.is_option or not self.options_only

    def evaluate(self, candidate: SignalCandidate, ctx: GuardContext) -> GuardVerdict:
        try:
            outcome = self.check(candidate, ctx)
        except MissingDataError as e:
            return self._missing(str(e))
        except Exception as e:
            logger.exception("Guard %s raised for %s", self.name, candidate.symbol)
            return self._verdict(Check.fail(f"guard error: {type(e).__name__}: {e}"))
        return self._verdict(outcome)

    def _missing(self, detail: str) -> GuardVerdict:
        if self.missing_data is MissingDataPolicy.FAIL_CLOSED:
            return self._verdict(Check.fail(f"missing data: {detail}"))
        return self._verdict(Check.ok(f"missing data, fail-open: {detail}"))

    def _verdict(self, outcome: Check) -> GuardVerdict:
        # ADJUST guards never block, and an erroring one just contributes nothing
        passed = outcome.passed or self.kind is GuardKind.ADJUST
        adjustment: Optional[ConfidenceAdjustment] = None
        if outcome.delta:
            adjustment = ConfidenceAdjustment(source=self.name, delta=outcome.delta, reason=outcome.reason)
        return GuardVerdict(
            guard_name=self.name,
            kind=self.kind,
            passed=passed,
            reason=outcome.reason,
            adjustment=adjustment,
        )


def guard(
    name: str,
    kind: GuardKind,
    missing_data: MissingDataPolicy = MissingDataPolicy.FAIL_CLOSED,
    options_only: bool = False,
) -> Callable[[CheckFn], Guard]:
    """Decorator registering a check function as a Guard."""
    def wrap(fn: CheckFn) -> Guard:
        return Guard(name=name, kind=kind, check=fn, missing_data=missing_data, options_only=options_only)
    return wrap
