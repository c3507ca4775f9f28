"""
Context registry.

Owns one FactStore per named fact and assembles the read-only
MarketContext each evaluation works from. Stores are independent: there is
no lock spanning unrelated facts, so a snapshot is consistent per fact but
facts may come from different publish cycles.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional
import logging

from signalguard.context.fact_store import GLOBAL_KEY, FactStore
from signalguard.shared.models.context import MarketContext
from signalguard.shared.models.data import Instrument

logger = logging.getLogger(__name__)


# Fact name -> max age. Feeds that tick continuously go stale quickly;
# slow-moving reference facts do not expire.
FACT_MAX_AGE: Dict[str, Optional[timedelta]] = {
    "panic": timedelta(minutes=5),
    "circuit_hit": timedelta(minutes=5),
    "liquidity_tier": None,
    "relative_strength": timedelta(minutes=5),
    "regime": timedelta(minutes=5),
    "breadth": timedelta(minutes=5),
    "drawdown": None,
    "vix": timedelta(minutes=15),
    "latency": timedelta(minutes=2),
    "clock_drift": timedelta(minutes=10),
    "liquidity_shock": timedelta(minutes=5),
    "exposure": None,
    "gap": None,
    "index_trend": timedelta(minutes=15),
    "ignition": timedelta(minutes=5),
    "option_chain": timedelta(minutes=5),
    "crowding": timedelta(minutes=15),
    "correlation_index": timedelta(hours=1),
    "correlation_book": timedelta(minutes=15),
}


class ContextRegistry:
    """Named fact stores plus per-instrument snapshot assembly."""

    def __init__(self, max_ages: Optional[Dict[str, Optional[timedelta]]] = None):
        ages = dict(FACT_MAX_AGE)
        if max_ages:
            ages.update(max_ages)
        self._stores: Dict[str, FactStore] = {name: FactStore(name, age) for name, age in ages.items()}

    def store(self, name: str) -> FactStore:
        try:
            return self._stores[name]
        except KeyError:
            raise KeyError(f"Unknown context fact '{name}'") from None

    @property
    def names(self):
        return tuple(self._stores)

    def publish_global(self, name: str, value, at: Optional[datetime] = None) -> None:
        self.store(name).publish(GLOBAL_KEY, value, at=at)

    def publish(self, name: str, token: str, value, at: Optional[datetime] = None) -> None:
        self.store(name).publish(token, value, at=at)

    def snapshot(self, instrument: Instrument, now: Optional[datetime] = None) -> MarketContext:
        """
        Assemble the MarketContext for one instrument.

        Market-wide facts are read from the global key; per-instrument facts
        from the token; option chain facts from the underlying symbol.
        Regime prefers the instrument's own classification over the index's.
        """
        token = instrument.token
        s = self._stores
        return MarketContext(
            panic=s["panic"].get_global(now=now),
            circuit_hit=s["circuit_hit"].get(token, now=now),
            liquidity_tier=s["liquidity_tier"].get(token, now=now),
            relative_strength=s["relative_strength"].get(token, now=now),
            regime=s["regime"].get_or_global(token, now=now),
            breadth_percent=s["breadth"].get_global(now=now),
            drawdown=s["drawdown"].get_global(now=now),
            vix=s["vix"].get_global(now=now),
            latency=s["latency"].get_global(now=now),
            clock_drift_ms=s["clock_drift"].get_global(now=now),
            liquidity_shock=s["liquidity_shock"].get(token, now=now),
            exposure=s["exposure"].get_global(now=now),
            gap_percent=s["gap"].get(token, now=now),
            index_trend=s["index_trend"].get_global(now=now),
            ignition=s["ignition"].get(token, now=now),
            option_chain=(
                s["option_chain"].get(instrument.underlying_symbol, now=now) if instrument.is_option else None
            ),
            crowding_score=s["crowding"].get_or_global(token, now=now),
            correlation_to_index=s["correlation_index"].get(token, now=now),
            correlation_to_book=s["correlation_book"].get(token, now=now),
        )
