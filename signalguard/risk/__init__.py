"""
Risk package.

Provides the ordered guard pipeline that turns zone candidates into
allow/block decisions with a confidence score.
"""

from signalguard.risk.guard_pipeline import GuardPipeline
from signalguard.risk.guards import GUARD_REGISTRY, Guard, GuardContext, guards_for

__all__ = [
    'GuardPipeline',
    'GUARD_REGISTRY',
    'Guard',
    'GuardContext',
    'guards_for',
]
