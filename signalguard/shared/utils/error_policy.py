"""
Error policy enforcement.

Three failure categories exist in the signal core:

- MissingData: insufficient candles or an absent context fact. Guards
  resolve it into a verdict according to their declared policy; the
  pipeline itself raises only when it has nothing to evaluate.
- ZoneRejection: a move that fits no valid zone, or unmet zone
  requirements. Always a recorded blocker, never an exception.
- ConfigurationViolation: inconsistent thresholds. Raised when a config
  object is constructed so bad settings fail at startup.
"""

from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


class SignalGuardError(Exception):
    """Base class for signal core errors."""


class MissingDataError(SignalGuardError):
    """Raised when required market data or a context fact is unavailable."""


class ConfigurationViolation(SignalGuardError, ValueError):
    """Raised when thresholds are inconsistent with each other."""


def enforce_candle_window(candles: Optional[Sequence], minimum: int, token: str = "") -> None:
    """
    Ensure a candle window is long enough to evaluate.

    Raises:
        MissingDataError: If the window is missing or shorter than `minimum`
    """
    if candles is None:
        raise MissingDataError(f"{token}: candle window is missing")
    if len(candles) < minimum:
        raise MissingDataError(f"{token}: need {minimum} candles, got {len(candles)}")


def enforce_fact(value: Optional[T], fact_name: str, token: str = "") -> T:
    """
    Return a context fact or raise when it has not been published.

    Raises:
        MissingDataError: If the fact is None
    """
    if value is None:
        scope = f" for {token}" if token else ""
        raise MissingDataError(f"{fact_name} fact unavailable{scope}")
    return value


def require(condition: bool, message: str) -> None:
    """
    Config validation helper.

    Raises:
        ConfigurationViolation: If `condition` is false
    """
    if not condition:
        raise ConfigurationViolation(message)
