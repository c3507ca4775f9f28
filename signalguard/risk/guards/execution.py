"""
Execution, exposure, candle integrity, structural stop and confidence floor guards.
"""

from signalguard.indicators.validation_utils import candle_sequence_issues
from signalguard.risk.guards.base import Check, GuardContext, guard
from signalguard.shared.models.guard import GuardKind
from signalguard.shared.models.zone import SignalCandidate
from signalguard.shared.utils.error_policy import MissingDataError, enforce_fact


@guard("EXECUTION_REALITY", GuardKind.HARD)
def execution_reality(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    inputs = ctx.inputs
    cap = cfg.max_option_spread_percent if candidate.instrument.is_option else cfg.max_equity_spread_percent
    if inputs.spread_percent > cap:
        return Check.fail(f"spread {inputs.spread_percent:.2f}% not executable (cap {cap}%)")

    candles = inputs.candles
    if len(candles) < 2:
        raise MissingDataError(f"need 2 candles for spike check, got {len(candles)}")
    history = candles[-(cfg.parabolic_lookback + 1):-1]
    average_range = sum(c.range for c in history) / len(history)
    last_range = candles[-1].range
    if average_range > 0 and last_range > cfg.parabolic_range_multiple * average_range:
        return Check.fail(f"parabolic candle: range {last_range / average_range:.1f}x average")
    return Check.ok(f"spread {inputs.spread_percent:.2f}%")


@guard("PORTFOLIO_EXPOSURE", GuardKind.HARD)
def portfolio_exposure(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    exposure = enforce_fact(ctx.market.exposure, "exposure")
    if exposure.open_positions >= cfg.max_open_positions:
        return Check.fail(f"{exposure.open_positions} open positions at limit {cfg.max_open_positions}")
    underlying = candidate.instrument.underlying_symbol
    held = exposure.by_underlying.get(underlying, 0)
    if held >= cfg.max_per_underlying:
        return Check.fail(f"{held} positions already on {underlying} (limit {cfg.max_per_underlying})")
    return Check.ok(f"{exposure.open_positions}/{cfg.max_open_positions} slots used")


@guard("CANDLE_INTEGRITY", GuardKind.HARD)
def candle_integrity(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    candles = ctx.inputs.candles
    if len(candles) < cfg.min_candles:
        return Check.fail(f"{len(candles)} candles, need {cfg.min_candles}")
    issues = candle_sequence_issues(
        candles, max_gap_minutes=cfg.max_candle_gap_minutes, max_move_percent=cfg.max_single_candle_move_percent
    )
    if issues:
        more = f" (+{len(issues) - 1} more)" if len(issues) > 1 else ""
        return Check.fail(f"{issues[0]}{more}")
    return Check.ok(f"{len(candles)} clean candles")


@guard("STRUCTURAL_STOPLOSS", GuardKind.HARD)
def structural_stoploss(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    stop = enforce_fact(ctx.inputs.structural_stop_percent, "structural stop", candidate.token)
    cap = cfg.max_structural_stop_option if candidate.instrument.is_option else cfg.max_structural_stop_equity
    if stop < cfg.min_structural_stop_percent:
        return Check.fail(f"structural stop {stop:.2f}% inside noise (min {cfg.min_structural_stop_percent}%)")
    if stop > cap:
        return Check.fail(f"structural stop {stop:.2f}% wider than {cap}%")
    return Check.ok(f"structural stop {stop:.2f}%")


@guard("CONFIDENCE_FLOOR", GuardKind.HARD)
def confidence_floor(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    floor = ctx.config.min_confidence
    if ctx.confidence < floor:
        return Check.fail(f"confidence {ctx.confidence:.1f} below {floor:.0f}")
    return Check.ok(f"confidence {ctx.confidence:.1f}")
