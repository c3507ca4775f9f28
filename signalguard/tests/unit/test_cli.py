"""
Tests for the command-line interface.
"""

import json

from typer.testing import CliRunner

from signalguard.cli import app, load_evaluation_input, load_market_context
from signalguard.shared.models.regime import VolatilityRegime
from signalguard.shared.models.zone import Direction
from signalguard.tests.fixtures.market_data import rising_candles

runner = CliRunner()


def _snapshot(**context_overrides):
    context = {
        "panic": False,
        "circuit_hit": False,
        "liquidity_tier": 1,
        "relative_strength": {"value": 1.2, "percentile": 80},
        "regime": "NORMAL",
        "breadth_percent": 60,
        "drawdown": False,
        "vix": 14,
        "latency": {"api_latency_ms": 120, "ws_latency_ms": 40},
        "clock_drift_ms": 50,
        "liquidity_shock": False,
        "exposure": {"open_positions": 1, "by_underlying": {"TCS": 1}},
        "gap_percent": 0.2,
        "index_trend": "LONG",
        "ignition": {"detected": False},
        "crowding_score": 30,
        "correlation_to_index": 0.6,
        "correlation_to_book": 0.2,
    }
    context.update(context_overrides)
    return {
        "instrument": {"token": "2885", "symbol": "RELIANCE", "circuit_band": 10},
        "candles": [
            [c.timestamp.isoformat(), c.open, c.high, c.low, c.close, c.volume] for c in rising_candles()
        ],
        "current_price": 101.5,
        "open_price": 100.0,
        "spread_percent": 0.5,
        "index_change_percent": 0.3,
        "circuit_limits": {"upper": 110.0, "lower": 90.0},
        "timestamp": "2024-06-12T10:00:00",
        "structural_stop_percent": 1.2,
        "confidence_inputs": {"mtf_5m": True, "mtf_15m": True, "mtf_daily": True},
        "context": context,
    }


def test_load_evaluation_input_parses_candle_rows():
    inputs = load_evaluation_input(_snapshot())
    assert len(inputs.candles) == 20
    assert inputs.instrument.circuit_band.value == 10.0
    assert inputs.timestamp.utcoffset().total_seconds() == 5.5 * 3600


def test_load_market_context_accepts_flags_and_objects():
    context = load_market_context({
        "panic": {"active": True, "reason": "index -2.4%"},
        "drawdown": False,
        "relative_strength": -0.4,
        "regime": "TREND_DAY",
        "index_trend": "SHORT",
    })
    assert context.panic.active and context.panic.reason == "index -2.4%"
    assert context.drawdown.locked is False
    assert context.relative_strength.value == -0.4
    assert context.regime is VolatilityRegime.TREND_DAY
    assert context.index_trend is Direction.SHORT
    assert context.vix is None


def test_classify_command():
    result = runner.invoke(app, ["classify", "--move", "1.5", "--band", "10"])
    assert result.exit_code == 0
    assert "EARLY" in result.output


def test_classify_dead_zone_exits_nonzero():
    result = runner.invoke(app, ["classify", "--move", "-30"])
    assert result.exit_code == 1
    assert "dead zone" in result.output


def test_guards_command_lists_order():
    equity = runner.invoke(app, ["guards"])
    with_options = runner.invoke(app, ["guards", "--options"])

    assert equity.exit_code == 0
    assert len(equity.output.strip().splitlines()) == 24
    assert len(with_options.output.strip().splitlines()) == 28
    assert equity.output.strip().splitlines()[-1].split()[1] == "CONFIDENCE_FLOOR"


def test_evaluate_command_json(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(_snapshot()))

    result = runner.invoke(app, ["evaluate", str(path), "--output", "json"])

    assert result.exit_code == 0
    payload = json.loads(result.output[result.output.index("{"):])
    assert payload["allowed"] is True
    assert payload["zone"] == "EARLY"


def test_evaluate_command_reports_blocks(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(_snapshot(panic=True)))

    result = runner.invoke(app, ["evaluate", str(path)])

    assert result.exit_code == 0
    assert "BLOCKED" in result.output
    assert "PANIC_KILL_SWITCH" in result.output


def test_evaluate_command_rejects_bad_input(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({"instrument": {"token": "2885"}}))

    result = runner.invoke(app, ["evaluate", str(path)])
    assert result.exit_code == 1
    assert "Evaluation failed" in result.output
