"""
Market context guards.

Leading adjustments (ignition, index trend), acute and accumulated market
risk blocks, volatility regime compatibility, and the closing breadth,
crowd and correlation reads.
"""

from signalguard.analysis.regime_detector import regime_compatibility
from signalguard.risk.guards.base import Check, GuardContext, guard
from signalguard.shared.models.guard import GuardKind, MissingDataPolicy
from signalguard.shared.models.regime import Compatibility
from signalguard.shared.models.zone import Direction, SignalCandidate
from signalguard.shared.utils.error_policy import MissingDataError, enforce_fact


@guard("IGNITION_CHECK", GuardKind.ADJUST, MissingDataPolicy.FAIL_OPEN)
def ignition_check(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    ignition = enforce_fact(ctx.market.ignition, "ignition", candidate.token)
    if not ignition.detected or ignition.direction is None:
        return Check.ok("no ignition detected")
    if ignition.strength < cfg.ignition_min_strength:
        return Check.ok(f"ignition strength {ignition.strength:.0f} below {cfg.ignition_min_strength:.0f}")
    if ignition.direction is candidate.direction:
        return Check.adjust(cfg.ignition_delta, f"{ignition.direction.value} ignition confirms move")
    return Check.adjust(-cfg.ignition_delta, f"{ignition.direction.value} ignition opposes move")


@guard("ADAPTIVE_REGIME", GuardKind.ADJUST, MissingDataPolicy.FAIL_OPEN)
def adaptive_regime(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    trend = enforce_fact(ctx.market.index_trend, "index trend")
    if trend is candidate.direction:
        return Check.adjust(ctx.config.index_aligned_delta, f"index trending {trend.value}")
    return Check.adjust(ctx.config.index_opposed_delta, f"index trending {trend.value} against signal")


@guard("PANIC_KILL_SWITCH", GuardKind.HARD)
def panic_kill_switch(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    panic = enforce_fact(ctx.market.panic, "panic")
    if panic.active:
        return Check.fail(f"panic mode active ({panic.reason or 'kill switch'})")
    vix = ctx.market.vix
    if vix is not None and vix >= ctx.config.panic_vix_level:
        return Check.fail(f"panic: VIX {vix:.1f} at or above {ctx.config.panic_vix_level:.0f}")
    return Check.ok("no panic")


@guard("CIRCUIT_BREAKER", GuardKind.HARD)
def circuit_breaker(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    hit = enforce_fact(ctx.market.circuit_hit, "circuit", candidate.token)
    if hit:
        return Check.fail("instrument locked at circuit")
    return Check.ok("not at circuit")


@guard("LIQUIDITY_TIER", GuardKind.HARD)
def liquidity_tier(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    tier = enforce_fact(ctx.market.liquidity_tier, "liquidity tier", candidate.token)
    if tier >= 3:
        return Check.fail(f"illiquid tier {tier}")
    return Check.ok(f"tier {tier}")


@guard("LATENCY_MONITOR", GuardKind.HARD)
def latency_monitor(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    latency = enforce_fact(ctx.market.latency, "latency")
    if latency.api_latency_ms > cfg.max_api_latency_ms:
        return Check.fail(f"API latency {latency.api_latency_ms:.0f}ms over {cfg.max_api_latency_ms:.0f}ms")
    if latency.ws_latency_ms > cfg.max_ws_latency_ms:
        return Check.fail(f"feed latency {latency.ws_latency_ms:.0f}ms over {cfg.max_ws_latency_ms:.0f}ms")
    return Check.ok(f"latency {latency.api_latency_ms:.0f}/{latency.ws_latency_ms:.0f}ms")


@guard("DRAWDOWN_GUARD", GuardKind.HARD)
def drawdown_guard(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    drawdown = enforce_fact(ctx.market.drawdown, "drawdown")
    if drawdown.locked:
        until = f" until {drawdown.locked_until:%H:%M}" if drawdown.locked_until else ""
        return Check.fail(
            f"drawdown lock{until} ({drawdown.failed_signals} failed, {drawdown.realized_loss_percent:.2f}% loss)"
        )
    return Check.ok("no drawdown lock")


@guard("LIQUIDITY_SHOCK", GuardKind.HARD)
def liquidity_shock(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    shock = enforce_fact(ctx.market.liquidity_shock, "liquidity shock", candidate.token)
    if shock.active:
        return Check.fail(
            f"liquidity shock (volume -{shock.volume_drop_percent:.0f}%, spread +{shock.spread_widening_percent:.0f}%)"
        )
    return Check.ok("liquidity stable")


# Fails open: the zone engine has already enforced per-zone RS minimums
# against the live index move, so this fact only adds a universe-wide view.
@guard("RELATIVE_STRENGTH", GuardKind.HARD, MissingDataPolicy.FAIL_OPEN)
def relative_strength(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    rs = enforce_fact(ctx.market.relative_strength, "relative strength", candidate.token)
    directional = rs.value * candidate.direction.sign
    if directional < ctx.config.min_relative_strength:
        return Check.fail(f"RS {directional:+.2f}% against the move, floor {ctx.config.min_relative_strength:+.1f}%")
    pct = f" (p{rs.percentile:.0f})" if rs.percentile is not None else ""
    return Check.ok(f"RS {directional:+.2f}%{pct}")


@guard("VOLATILITY_REGIME", GuardKind.HARD)
def volatility_regime(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    regime = enforce_fact(ctx.market.regime, "volatility regime", candidate.token)
    verdict = regime_compatibility(regime, candidate.direction, ctx.regime_config)
    if verdict.compatibility is Compatibility.DENY:
        return Check.fail(verdict.reason)
    if verdict.compatibility is Compatibility.ADJUST:
        return Check.adjust(verdict.confidence_delta, verdict.reason)
    return Check.ok(verdict.reason)


@guard("BREADTH", GuardKind.ADJUST, MissingDataPolicy.FAIL_OPEN)
def breadth(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    value = enforce_fact(ctx.market.breadth_percent, "breadth")
    sign = candidate.direction.sign
    if value < cfg.weak_breadth:
        return Check.adjust(-cfg.breadth_delta * sign, f"weak breadth {value:.0f}%")
    if value > cfg.strong_breadth:
        return Check.adjust(cfg.breadth_delta * sign, f"strong breadth {value:.0f}%")
    return Check.ok(f"breadth {value:.0f}%")


def _pcr(ctx: GuardContext):
    chain = ctx.market.option_chain
    return chain.put_call_ratio if chain is not None else None


# Fails open: crowding is a sentiment overlay, not a safety fact.
@guard("CROWD_PSYCHOLOGY", GuardKind.HARD, MissingDataPolicy.FAIL_OPEN)
def crowd_psychology(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    score = enforce_fact(ctx.market.crowding_score, "crowding", candidate.token)
    if score < cfg.crowd_trap_score:
        return Check.ok(f"crowding {score:.0f}")
    pcr = _pcr(ctx)
    if pcr is not None:
        # The crowd is already positioned the way the signal points
        aligned = (candidate.direction is Direction.LONG and pcr < cfg.pcr_low) or (
            candidate.direction is Direction.SHORT and pcr > cfg.pcr_high
        )
        if not aligned:
            return Check.ok(f"crowding {score:.0f} but PCR {pcr:.2f} not one-sided")
        return Check.fail(f"crowd trap: crowding {score:.0f}, PCR {pcr:.2f}")
    return Check.fail(f"crowd trap: crowding {score:.0f}")


@guard("CROWDING", GuardKind.WARN, MissingDataPolicy.FAIL_OPEN)
def crowding(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    score = enforce_fact(ctx.market.crowding_score, "crowding", candidate.token)
    if score >= ctx.config.crowding_warn_score:
        return Check.fail(f"crowded trade ({score:.0f})")
    return Check.ok(f"crowding {score:.0f}")


@guard("CORRELATION", GuardKind.WARN, MissingDataPolicy.FAIL_OPEN)
def correlation(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    to_index = ctx.market.correlation_to_index
    to_book = ctx.market.correlation_to_book
    if to_index is None and to_book is None:
        raise MissingDataError(f"correlation facts unavailable for {candidate.token}")
    if to_book is not None and to_book >= cfg.max_book_correlation:
        return Check.fail(f"{to_book:.2f} correlated with open positions")
    if to_index is not None and to_index < cfg.min_index_correlation:
        return Check.fail(f"decoupled from index ({to_index:.2f})")
    return Check.ok("correlation normal")
