"""
Option-only guards: expiry, theta crush, orderbook depth, gamma clustering.

Only registered for option candidates.
"""

from signalguard.risk.guards.base import Check, GuardContext, guard
from signalguard.shared.models.guard import GuardKind, MissingDataPolicy
from signalguard.shared.models.zone import SignalCandidate
from signalguard.shared.utils.error_policy import enforce_fact
from signalguard.shared.utils.market_time import minutes_to_close, to_ist


@guard("EXPIRY_MISMATCH", GuardKind.HARD, options_only=True)
def expiry_mismatch(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    chain = enforce_fact(ctx.market.option_chain, "option chain", candidate.instrument.underlying_symbol)
    active = enforce_fact(chain.active_expiry, "active expiry", candidate.instrument.underlying_symbol)
    expiry = enforce_fact(candidate.instrument.expiry, "contract expiry", candidate.token)
    if expiry != active:
        return Check.fail(f"contract expiry {expiry.isoformat()} is not the active {active.isoformat()}")
    return Check.ok(f"active expiry {active.isoformat()}")


@guard("THETA_CRUSH", GuardKind.HARD, options_only=True)
def theta_crush(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    instrument = candidate.instrument
    expiry = enforce_fact(instrument.expiry, "contract expiry", candidate.token)
    if to_ist(ctx.now).date() == expiry:
        remaining = minutes_to_close(ctx.now, cfg)
        if remaining <= cfg.theta_crush_hours * 60:
            return Check.fail(f"expiry day with {remaining:.0f}min left: theta crush window")

    chain = enforce_fact(ctx.market.option_chain, "option chain", instrument.underlying_symbol)
    spot = enforce_fact(chain.spot, "spot", instrument.underlying_symbol)
    strike = enforce_fact(instrument.strike, "strike", candidate.token)
    if instrument.option_type == "CE":
        otm = (strike - spot) / spot * 100
    else:
        otm = (spot - strike) / spot * 100
    if otm > cfg.deep_otm_percent:
        return Check.fail(f"deep OTM {otm:.1f}% decays too fast")
    return Check.ok(f"moneyness {otm:+.1f}%")


@guard("ORDERBOOK_DEPTH", GuardKind.HARD, options_only=True)
def orderbook_depth(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    cfg = ctx.config
    chain = enforce_fact(ctx.market.option_chain, "option chain", candidate.instrument.underlying_symbol)
    spread = enforce_fact(chain.orderbook_spread_percent, "orderbook spread", candidate.token)
    if spread > cfg.max_orderbook_spread_percent:
        return Check.fail(f"orderbook spread {spread:.1f}% of premium")
    imbalance = chain.bid_ask_imbalance
    if imbalance is not None and imbalance > cfg.max_bid_ask_imbalance:
        return Check.fail(f"one-sided book ({imbalance:.1f}x)")
    return Check.ok(f"book spread {spread:.1f}%")


@guard("GAMMA_CLUSTER", GuardKind.ADJUST, MissingDataPolicy.FAIL_OPEN, options_only=True)
def gamma_cluster(candidate: SignalCandidate, ctx: GuardContext) -> Check:
    chain = enforce_fact(ctx.market.option_chain, "option chain", candidate.instrument.underlying_symbol)
    strength = enforce_fact(chain.gamma_cluster_strength, "gamma cluster", candidate.token)
    if strength >= ctx.config.gamma_cluster_strength:
        return Check.adjust(ctx.config.gamma_delta, f"gamma cluster strength {strength:.0f}")
    return Check.ok(f"gamma cluster strength {strength:.0f}")
