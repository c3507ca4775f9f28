"""
SignalGuard - zone-based signal scoring, guard pipeline and exit state machine
for intraday equity and option signals.
"""

__version__ = "0.1.0"
