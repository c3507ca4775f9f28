"""
Market context providers.

Independent fact stores refreshed by feed collaborators and read,
without locking, by concurrent evaluations.
"""

from signalguard.context.fact_store import Fact, FactStore, GLOBAL_KEY
from signalguard.context.registry import ContextRegistry, FACT_MAX_AGE
from signalguard.context.providers import (
    BreadthProvider,
    ClockSyncMonitor,
    DrawdownTracker,
    LatencyMonitor,
    LiquidityShockDetector,
    LiquidityTierProvider,
    PanicKillSwitch,
    RelativeStrengthCalculator,
)

__all__ = [
    'Fact',
    'FactStore',
    'GLOBAL_KEY',
    'ContextRegistry',
    'FACT_MAX_AGE',
    'BreadthProvider',
    'ClockSyncMonitor',
    'DrawdownTracker',
    'LatencyMonitor',
    'LiquidityShockDetector',
    'LiquidityTierProvider',
    'PanicKillSwitch',
    'RelativeStrengthCalculator',
]
