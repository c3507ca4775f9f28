"""
Fact stores for market context.

Each named fact lives in its own FactStore, owned by the collaborator that
produces it. Writes build a fresh mapping and swap it in under that store's
own lock; reads grab the current mapping reference without locking, so a
reader always sees a complete (possibly slightly stale) snapshot and never
blocks a writer.

Timestamps are compared on the exchange clock; naive datetimes are taken
to be IST.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from types import MappingProxyType
from typing import Generic, Iterable, Mapping, Optional, Tuple, TypeVar
import logging

from signalguard.shared.utils.market_time import to_ist

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Key for market-wide facts (panic, breadth, VIX, ...)
GLOBAL_KEY = "*"


@dataclass(frozen=True)
class Fact(Generic[T]):
    """A published value and when it was published."""
    value: T
    updated_at: datetime


class FactStore(Generic[T]):
    """
    Single-writer / multi-reader table of one fact keyed by token.

    Args:
        name: Fact name used in logs and verdict reasons
        max_age: Facts older than this read as absent (None = never stale)
    """

    def __init__(self, name: str, max_age: Optional[timedelta] = None):
        self.name = name
        self.max_age = max_age
        self._write_lock = Lock()
        self._snapshot: Mapping[str, Fact[T]] = MappingProxyType({})
        self._version = 0

    def publish(self, key: str, value: T, at: Optional[datetime] = None) -> None:
        """Publish one value, replacing any previous value for `key`."""
        self.publish_many(((key, value),), at=at)

    def publish_many(self, items: Iterable[Tuple[str, T]], at: Optional[datetime] = None) -> None:
        """Publish several values as one atomic snapshot swap."""
        stamp = to_ist(at) if at is not None else datetime.now(timezone.utc)
        with self._write_lock:
            updated = dict(self._snapshot)
            for key, value in items:
                updated[key] = Fact(value=value, updated_at=stamp)
            self._snapshot = MappingProxyType(updated)
            self._version += 1

    def remove(self, key: str) -> None:
        with self._write_lock:
            if key not in self._snapshot:
                return
            updated = dict(self._snapshot)
            del updated[key]
            self._snapshot = MappingProxyType(updated)
            self._version += 1

    def snapshot(self) -> Mapping[str, Fact[T]]:
        """Current read-only mapping; later writes never alter it."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._version

    def get(self, key: str, default: Optional[T] = None, now: Optional[datetime] = None) -> Optional[T]:
        """Value for `key`, or `default` when absent or stale."""
        fact = self._snapshot.get(key)
        if fact is None:
            return default
        if self.max_age is not None:
            age = (to_ist(now) if now is not None else datetime.now(timezone.utc)) - fact.updated_at
            if age > self.max_age:
                logger.debug("Fact %s[%s] is stale (%.0fs old)", self.name, key, age.total_seconds())
                return default
        return fact.value

    def get_global(self, default: Optional[T] = None, now: Optional[datetime] = None) -> Optional[T]:
        return self.get(GLOBAL_KEY, default, now)

    def get_or_global(self, key: str, now: Optional[datetime] = None) -> Optional[T]:
        """Token value when published, else the market-wide value."""
        value = self.get(key, now=now)
        if value is None:
            value = self.get(GLOBAL_KEY, now=now)
        return value

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, key: str) -> bool:
        return key in self._snapshot
