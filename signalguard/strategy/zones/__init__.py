"""
Zone-Based Probability Engine Package

Provides:
- Zone classification for runner and collapse moves
- Direction profiles sharing one scoring and gating path
- The ZoneEngine producing SignalCandidates
"""

from signalguard.strategy.zones.classifier import classify_zone
from signalguard.strategy.zones.collapse import collapse_profile
from signalguard.strategy.zones.engine import ZoneEngine
from signalguard.strategy.zones.runner import ZoneProfile, runner_profile
from signalguard.strategy.zones.scorer import ZoneMetrics, ZoneScorer, measure

__all__ = [
    'classify_zone',
    'collapse_profile',
    'runner_profile',
    'ZoneEngine',
    'ZoneProfile',
    'ZoneMetrics',
    'ZoneScorer',
    'measure',
]
