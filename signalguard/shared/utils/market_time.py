"""
Exchange session helpers.

All session logic runs on IST wall-clock time; naive datetimes are taken
to already be IST.
"""

from datetime import datetime, time, timedelta
from enum import Enum

from signalguard.shared.config.defaults import GuardConfig
from signalguard.shared.models.data import IST


class SessionPhase(Enum):
    CLOSED = "CLOSED"
    OPENING = "OPENING"
    NORMAL = "NORMAL"
    LUNCH = "LUNCH"
    CLOSING = "CLOSING"


def to_ist(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=IST)
    return moment.astimezone(IST)


def _at(moment: datetime, clock: time) -> datetime:
    return moment.replace(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)


def is_market_open(moment: datetime, config: GuardConfig) -> bool:
    """Weekday and inside the regular session (close exclusive)."""
    local = to_ist(moment)
    if local.weekday() >= 5:
        return False
    return config.market_open <= local.time() < config.market_close


def minutes_to_close(moment: datetime, config: GuardConfig) -> float:
    local = to_ist(moment)
    return (_at(local, config.market_close) - local).total_seconds() / 60


def session_phase(moment: datetime, config: GuardConfig) -> SessionPhase:
    if not is_market_open(moment, config):
        return SessionPhase.CLOSED
    local = to_ist(moment)
    if local < _at(local, config.market_open) + timedelta(minutes=config.opening_window_minutes):
        return SessionPhase.OPENING
    if minutes_to_close(local, config) <= config.closing_window_minutes:
        return SessionPhase.CLOSING
    if config.lunch_start <= local.time() < config.lunch_end:
        return SessionPhase.LUNCH
    return SessionPhase.NORMAL
