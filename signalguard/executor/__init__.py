"""
Executor package - exit decisions for open positions.
"""

from signalguard.executor.exit_manager import ExitManager, ExitStateMachine

__all__ = [
    'ExitManager',
    'ExitStateMachine',
]
