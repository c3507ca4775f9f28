"""
Logging utilities for the evaluation pipeline.

Provides consistent, structured logging helpers for tracking evaluation
flow, rejections, guard verdicts and timing across all components.
"""

import time
from typing import Any, Dict, Iterable, Optional
from loguru import logger


def log_pipeline_stage(
    stage_name: str,
    symbol: str,
    status: str = "START",
    data: Optional[Dict[str, Any]] = None,
    level: str = "DEBUG"
) -> None:
    """
    Log a pipeline stage with consistent formatting.

    Args:
        stage_name: Name of the stage (e.g., "ZONE_ENGINE", "GUARD_PIPELINE")
        symbol: Trading symbol being processed
        status: Stage status ("START", "COMPLETE", "FAILED")
        data: Optional additional data to log
        level: Log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    log_func = getattr(logger, level.lower(), logger.info)

    if status == "START":
        log_func(f"🔄 [{stage_name}] Starting for {symbol}")
    elif status == "COMPLETE":
        duration_msg = f" ({data.get('duration_ms', 0):.0f}ms)" if data and 'duration_ms' in data else ""
        log_func(f"✅ [{stage_name}] Completed for {symbol}{duration_msg}")
        if data:
            for key, value in data.items():
                if key != 'duration_ms':
                    log_func(f"   └─ {key}: {value}")
    elif status == "FAILED":
        log_func(f"❌ [{stage_name}] Failed for {symbol}")
        if data:
            log_func(f"   └─ Reason: {data.get('reason', 'Unknown')}")
            if 'error' in data:
                log_func(f"   └─ Error: {data['error']}")


def log_rejection(
    symbol: str,
    stage: str,
    reasons: Iterable[str],
    diagnostics: Optional[Dict[str, Any]] = None,
    level: str = "INFO"
) -> None:
    """
    Log a signal rejection with full diagnostic context.

    Args:
        symbol: Trading symbol
        stage: Stage where rejection occurred
        reasons: Every recorded block reason, in order
        diagnostics: Detailed diagnostic data
        level: Log level
    """
    log_func = getattr(logger, level.lower(), logger.info)

    log_func(f"🚫 REJECTED: {symbol} at {stage}")
    for reason in reasons:
        log_func(f"   └─ {reason}")

    if diagnostics:
        log_func("   └─ Diagnostics:")
        for key, value in diagnostics.items():
            if isinstance(value, float):
                log_func(f"      • {key}: {value:.4f}")
            else:
                log_func(f"      • {key}: {value}")


def log_guard_verdicts(symbol: str, verdicts: Iterable[Any], level: str = "DEBUG") -> None:
    """
    Log the full guard trail for an evaluation.

    Args:
        symbol: Trading symbol
        verdicts: GuardVerdict objects in pipeline order
        level: Log level
    """
    log_func = getattr(logger, level.lower(), logger.debug)
    for verdict in verdicts:
        if verdict.passed:
            mark = "✅"
        elif verdict.kind.value == "HARD":
            mark = "⛔"
        else:
            mark = "⚠️"
        adj = f" [{verdict.adjustment.delta:+.1f}]" if verdict.adjustment else ""
        log_func(f"{mark} [{symbol}] {verdict.guard_name} ({verdict.kind.value}){adj}: {verdict.reason}")


def log_timing(
    operation_name: str,
    duration_ms: float,
    symbol: Optional[str] = None,
    level: str = "DEBUG"
) -> None:
    """
    Log timing information for performance monitoring.

    Args:
        operation_name: Name of the operation being timed
        duration_ms: Duration in milliseconds
        symbol: Optional symbol context
        level: Log level
    """
    log_func = getattr(logger, level.lower(), logger.debug)

    symbol_str = f" [{symbol}]" if symbol else ""

    if duration_ms < 10:
        emoji = "⚡"
    elif duration_ms < 100:
        emoji = "⏱️"
    else:
        emoji = "🐌"

    log_func(f"{emoji} {operation_name}{symbol_str}: {duration_ms:.1f}ms")


def format_evaluation_summary(
    instruments_evaluated: int,
    signals_allowed: int,
    signals_blocked: int,
    duration_sec: float,
    rejection_breakdown: Optional[Dict[str, int]] = None
) -> str:
    """
    Format an evaluation cycle summary.

    Args:
        instruments_evaluated: Total instruments processed
        signals_allowed: Count of allowed signals
        signals_blocked: Count of blocked signals
        duration_sec: Total cycle duration in seconds
        rejection_breakdown: Optional dict of blocking stage -> count

    Returns:
        Formatted summary string
    """
    pass_rate = (signals_allowed / instruments_evaluated * 100) if instruments_evaluated > 0 else 0

    lines = [
        "=" * 60,
        "📊 EVALUATION SUMMARY",
        "=" * 60,
        f"Instruments:        {instruments_evaluated}",
        f"✅ Allowed:          {signals_allowed} ({pass_rate:.1f}%)",
        f"❌ Blocked:          {signals_blocked} ({100 - pass_rate:.1f}%)" if instruments_evaluated > 0 else "❌ Blocked:          0",
        f"⏱️  Total Duration:   {duration_sec:.3f}s",
    ]

    if rejection_breakdown:
        lines.append("")
        lines.append("Rejection Breakdown:")
        for reason, count in sorted(rejection_breakdown.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"  • {reason}: {count}")

    lines.append("=" * 60)

    return "\n".join(lines)


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, operation_name: str, symbol: Optional[str] = None):
        self.operation_name = operation_name
        self.symbol = symbol
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        log_timing(self.operation_name, self.duration_ms, self.symbol)
        return False  # Don't suppress exceptions
