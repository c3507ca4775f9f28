"""
SignalGuard CLI - Command-line interface.

Offline tools over the signal core: classify a move into its zone, run a
full evaluation from a JSON snapshot, and list the guard order.
"""
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional
import json

import typer

from signalguard.shared.config.zones import DEFAULT_ZONE_CONFIG
from signalguard.shared.models.context import (
    DrawdownState, ExposureState, IgnitionState, LatencyState, LiquidityShock, MarketContext,
    OptionChainState, PanicState, RelativeStrength,
)
from signalguard.shared.models.data import (
    IST, Candle, CircuitBand, CircuitLimits, ConfidenceInputs, EvaluationInput, Instrument
)
from signalguard.shared.models.regime import VolatilityRegime
from signalguard.shared.models.zone import Direction
from signalguard.shared.utils.error_policy import SignalGuardError

app = typer.Typer(help="🛡️ SignalGuard - Zone scoring and guard pipeline for intraday signals")


def _timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=IST)


def _date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _candle(raw: Any) -> Candle:
    if isinstance(raw, dict):
        return Candle(
            timestamp=_timestamp(raw["timestamp"]),
            open=float(raw["open"]),
            high=float(raw["high"]),
            low=float(raw["low"]),
            close=float(raw["close"]),
            volume=float(raw["volume"]),
        )
    ts, o, h, l, c, v = raw
    return Candle(_timestamp(ts), float(o), float(h), float(l), float(c), float(v))


def _instrument(raw: Dict[str, Any]) -> Instrument:
    return Instrument(
        token=str(raw["token"]),
        symbol=raw.get("symbol", str(raw["token"])),
        exchange=raw.get("exchange", "NSE"),
        circuit_band=CircuitBand.from_percent(float(raw.get("circuit_band", 20))),
        lot_size=int(raw.get("lot_size", 1)),
        underlying=raw.get("underlying"),
        expiry=_date(raw.get("expiry")),
        strike=raw.get("strike"),
        option_type=raw.get("option_type"),
    )


def load_evaluation_input(raw: Dict[str, Any]) -> EvaluationInput:
    """Build an EvaluationInput from its JSON form."""
    limits = raw["circuit_limits"]
    return EvaluationInput(
        instrument=_instrument(raw["instrument"]),
        candles=tuple(_candle(c) for c in raw["candles"]),
        current_price=float(raw["current_price"]),
        open_price=float(raw["open_price"]),
        spread_percent=float(raw.get("spread_percent", 0.0)),
        index_change_percent=float(raw.get("index_change_percent", 0.0)),
        circuit_limits=CircuitLimits(upper=float(limits["upper"]), lower=float(limits["lower"])),
        timestamp=_timestamp(raw["timestamp"]),
        vwap=raw.get("vwap"),
        structural_stop_percent=raw.get("structural_stop_percent"),
        confidence_inputs=ConfidenceInputs(**raw.get("confidence_inputs", {})),
    )


def load_market_context(raw: Dict[str, Any]) -> MarketContext:
    """
    Build a MarketContext from its JSON form.

    Flags may be given as plain booleans ("panic": true) or as objects
    carrying the full fact; omitted facts stay unpublished.
    """
    def flag(key, cls, **extra):
        value = raw.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            return cls(value, **extra)
        return cls(**value)

    rs = raw.get("relative_strength")
    if isinstance(rs, (int, float)):
        rs = RelativeStrength(value=float(rs))
    elif rs is not None:
        rs = RelativeStrength(**rs)

    ignition = raw.get("ignition")
    if ignition is not None:
        direction = ignition.get("direction")
        ignition = IgnitionState(
            detected=ignition.get("detected", True),
            direction=Direction(direction) if direction else None,
            strength=float(ignition.get("strength", 0.0)),
        )

    chain = raw.get("option_chain")
    if chain is not None:
        chain = OptionChainState(**{**chain, "active_expiry": _date(chain.get("active_expiry"))})

    regime = raw.get("regime")
    trend = raw.get("index_trend")
    latency = raw.get("latency")
    exposure = raw.get("exposure")
    return MarketContext(
        panic=flag("panic", PanicState),
        circuit_hit=raw.get("circuit_hit"),
        liquidity_tier=raw.get("liquidity_tier"),
        relative_strength=rs,
        regime=VolatilityRegime(regime) if regime else None,
        breadth_percent=raw.get("breadth_percent"),
        drawdown=flag("drawdown", DrawdownState),
        vix=raw.get("vix"),
        latency=LatencyState(**latency) if latency else None,
        clock_drift_ms=raw.get("clock_drift_ms"),
        liquidity_shock=flag("liquidity_shock", LiquidityShock),
        exposure=ExposureState(**exposure) if exposure else None,
        gap_percent=raw.get("gap_percent"),
        index_trend=Direction(trend) if trend else None,
        ignition=ignition,
        option_chain=chain,
        crowding_score=raw.get("crowding_score"),
        correlation_to_index=raw.get("correlation_to_index"),
        correlation_to_book=raw.get("correlation_to_book"),
    )


@app.command()
def classify(
    move: float = typer.Option(..., help="Move from open, in percent (negative for collapses)"),
    band: float = typer.Option(20.0, help="Circuit band width in percent (2/5/10/20, 0 for none)"),
):
    """
    🧭 Classify a move into its probability zone.
    """
    from signalguard.strategy.zones.classifier import classify_zone

    req, reason = classify_zone(move, CircuitBand.from_percent(band), DEFAULT_ZONE_CONFIG)
    if req is None:
        typer.echo(f"❌ No zone: {reason}")
        raise typer.Exit(code=1)

    typer.echo(f"🎯 {req.zone.value} |move| in [{req.lower:g}%, {req.upper:g}%)")
    typer.echo(f"   Min score: {req.min_score}")
    typer.echo(f"   Volume ≥ {req.min_volume_multiple}x | RS ≥ {req.min_relative_strength}% | "
               f"Spread ≤ {req.max_spread_percent}% | Room ≥ {req.min_room_percent}%")
    typer.echo(f"   MAE multiplier: {req.mae_multiplier}")


@app.command()
def evaluate(
    path: Path = typer.Argument(..., exists=True, readable=True, help="JSON file with input and context"),
    output: str = typer.Option("console", help="Output format (console/json)"),
):
    """
    🛡️ Run the zone engine and the full guard pipeline on a JSON snapshot.

    The file holds an evaluation input plus an optional "context" object
    with the market facts to evaluate against.
    """
    from signalguard.risk.guard_pipeline import GuardPipeline
    from signalguard.strategy.zones.engine import ZoneEngine

    try:
        raw = json.loads(path.read_text())
        inputs = load_evaluation_input(raw)
        context = load_market_context(raw.get("context", {}))
        candidate = ZoneEngine().evaluate(inputs)
        result = GuardPipeline().run(candidate, inputs, context)
    except (KeyError, TypeError, ValueError, SignalGuardError) as e:
        typer.echo(f"❌ Evaluation failed: {e}")
        raise typer.Exit(code=1)

    if output == "json":
        typer.echo(json.dumps({
            "allowed": result.allowed,
            "token": result.token,
            "zone": result.zone.value if result.zone else None,
            "score": result.score,
            "confidence_score": result.confidence_score,
            "confidence_grade": result.confidence_grade,
            "block_reasons": list(result.block_reasons),
            "adjustments": [a.describe() for a in result.adjustments],
            "warnings": list(result.warnings),
        }, indent=2))
        return

    mark = "✅ ALLOWED" if result.allowed else "🚫 BLOCKED"
    zone = result.zone.value if result.zone else "no zone"
    typer.echo(f"{mark}: {result.symbol} | {zone} | score {result.score} | "
               f"confidence {result.confidence_score:.1f} ({result.confidence_grade})")
    for reason in result.block_reasons:
        typer.echo(f"   ⛔ {reason}")
    for adjustment in result.adjustments:
        typer.echo(f"   ± {adjustment.describe()}")
    for warning in result.warnings:
        typer.echo(f"   ⚠️  {warning}")


@app.command()
def guards(
    options: bool = typer.Option(False, "--options", help="Include option-only guards"),
):
    """
    📋 Print the guard pipeline in evaluation order.
    """
    from signalguard.risk.guards.registry import GUARD_REGISTRY

    step = 0
    for g in GUARD_REGISTRY:
        if g.options_only and not options:
            continue
        step += 1
        extra = " [options]" if g.options_only else ""
        typer.echo(f"{step:2d}. {g.name:<20} {g.kind.value:<6} {g.missing_data.value}{extra}")


if __name__ == "__main__":
    app()
