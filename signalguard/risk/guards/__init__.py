"""
Guard Pipeline Guards

Every guard is a pure check wrapped in a Guard with its registry name,
kind (HARD / ADJUST / WARN) and missing-data policy.
"""

from signalguard.risk.guards.base import Check, Guard, GuardContext, guard
from signalguard.risk.guards.registry import GUARD_REGISTRY, guard_names, guards_for

__all__ = [
    'Check',
    'Guard',
    'GuardContext',
    'guard',
    'GUARD_REGISTRY',
    'guard_names',
    'guards_for',
]
