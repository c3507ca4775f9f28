"""
Session guards: trading hours, holidays, clock sync, time of day, gap day.
"""

from signalguard.indicators.volume import volume_multiple
from signalguard.risk.guards.base import Check, GuardContext, guard
from signalguard.shared.models.data import candles_to_frame
from signalguard.shared.models.guard import GuardKind, MissingDataPolicy
from signalguard.shared.models.zone import SignalCandidate
from signalguard.shared.utils.error_policy import enforce_fact
from signalguard.shared.utils.market_time import SessionPhase, is_market_open, session_phase, to_ist


@guard("TRADING_HOURS", GuardKind.HARD)
def trading_hours(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    local = to_ist(ctx.now)
    if not is_market_open(local, cfg):
        return Check.fail(
            f"{local:%a %H:%M} IST outside {cfg.market_open:%H:%M}-{cfg.market_close:%H:%M} session"
        )
    return Check.ok("market open")


@guard("HOLIDAY", GuardKind.HARD)
def holiday(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    today = to_ist(ctx.now).date()
    if today in ctx.config.holidays:
        return Check.fail(f"{today.isoformat()} is an exchange holiday")
    return Check.ok("trading day")


@guard("CLOCK_SYNC", GuardKind.HARD)
def clock_sync(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    drift = enforce_fact(ctx.market.clock_drift_ms, "clock drift")
    if drift > ctx.config.max_clock_drift_ms:
        return Check.fail(f"clock drift {drift:.0f}ms exceeds {ctx.config.max_clock_drift_ms:.0f}ms")
    return Check.ok(f"clock drift {drift:.0f}ms")


@guard("TIME_OF_DAY", GuardKind.ADJUST, MissingDataPolicy.FAIL_OPEN)
def time_of_day(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    phase = session_phase(ctx.now, cfg)
    if phase is SessionPhase.OPENING:
        multiple = volume_multiple(candles_to_frame(ctx.inputs.candles))
        if multiple >= cfg.opening_volume_override:
            return Check.ok(f"opening window waived on {multiple:.1f}x volume")
        return Check.adjust(cfg.opening_delta, f"first {cfg.opening_window_minutes}min of session")
    if phase is SessionPhase.LUNCH:
        return Check.adjust(cfg.lunch_delta, "lunch-hour liquidity")
    if phase is SessionPhase.CLOSING:
        return Check.adjust(cfg.closing_delta, f"last {cfg.closing_window_minutes}min of session")
    return Check.ok(phase.value.lower())


@guard("GAP_DAY", GuardKind.ADJUST, MissingDataPolicy.FAIL_OPEN)
def gap_day(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    gap = enforce_fact(ctx.market.gap_percent, "gap", candidate.token)
    if abs(gap) > cfg.large_gap_percent:
        return Check.adjust(cfg.large_gap_delta, f"large {gap:+.2f}% opening gap")
    if abs(gap) > cfg.gap_percent:
        return Check.adjust(cfg.gap_delta, f"{gap:+.2f}% opening gap")
    return Check.ok(f"gap {gap:+.2f}%")
