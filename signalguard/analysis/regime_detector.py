"""
Volatility Regime Classifier

Classifies each instrument (and the index, under the global key) into
COMPRESSION / EXPANSION / TREND_DAY / MEAN_REVERSION / NORMAL from ATR slope
and range expansion over a rolling candle window. Classification is
memoryless: every refresh recomputes from the window alone.

The classifier is a context provider. A RegimeRefreshTask recomputes on a
fixed cadence, independent of any evaluation, and publishes into the
registry's regime store.
"""
from datetime import datetime, timezone
from threading import Event, Thread
from typing import Callable, Dict, Mapping, Optional, Sequence
import logging

from signalguard.context.fact_store import GLOBAL_KEY, FactStore
from signalguard.context.registry import ContextRegistry
from signalguard.indicators.validation_utils import DataValidationError
from signalguard.indicators.volatility import range_statistics
from signalguard.shared.config.defaults import DEFAULT_REGIME_CONFIG, RegimeConfig
from signalguard.shared.models.data import Candle, candles_to_frame
from signalguard.shared.models.regime import (
    Compatibility, RegimeClassification, RegimeVerdict, VolatilityRegime
)
from signalguard.shared.models.zone import Direction

logger = logging.getLogger(__name__)


def regime_compatibility(
    regime: Optional[VolatilityRegime],
    direction: Direction,
    config: RegimeConfig = DEFAULT_REGIME_CONFIG,
) -> RegimeVerdict:
    """
    How a volatility regime treats a fresh breakout in `direction`.

    Compression denies: ranges are contracting and breakouts fail. Trend
    days and expansion reward momentum entries; mean reversion penalizes
    them. An unknown regime denies.
    """
    side = direction.value.lower()
    if regime is None:
        return RegimeVerdict(Compatibility.DENY, None, 0.0, f"regime unavailable for {side} entry")
    if regime is VolatilityRegime.COMPRESSION:
        return RegimeVerdict(Compatibility.DENY, regime, 0.0, f"compression regime blocks {side} breakouts")
    if regime is VolatilityRegime.TREND_DAY:
        return RegimeVerdict(Compatibility.ADJUST, regime, config.trend_day_delta, f"trend day favours {side} momentum")
    if regime is VolatilityRegime.EXPANSION:
        return RegimeVerdict(Compatibility.ADJUST, regime, config.expansion_delta, f"expanding ranges support {side} entry")
    if regime is VolatilityRegime.MEAN_REVERSION:
        return RegimeVerdict(
            Compatibility.ADJUST, regime, config.mean_reversion_delta, f"mean reversion fades {side} follow-through"
        )
    return RegimeVerdict(Compatibility.ALLOW, regime, 0.0, "normal volatility")


class VolatilityRegimeClassifier:
    """Classifies volatility regime and answers compatibility queries."""

    def __init__(self, registry: ContextRegistry, config: RegimeConfig = DEFAULT_REGIME_CONFIG):
        self.config = config
        self.store = registry.store("regime")
        self.details: FactStore[RegimeClassification] = FactStore("regime_detail")

    def classify(self, candles: Sequence[Candle], now: Optional[datetime] = None) -> RegimeClassification:
        """
        Classify a candle window.

        Raises:
            DataValidationError: If the window is shorter than the configured window
        """
        cfg = self.config
        stats = range_statistics(candles_to_frame(candles), window=cfg.window, slope_window=cfg.slope_window)
        slope = stats['atr_slope_percent']
        expansion = stats['range_expansion_percent']
        ratio = stats['volatility_ratio']

        if slope < cfg.compression_slope and expansion < cfg.compression_expansion:
            regime = VolatilityRegime.COMPRESSION
            reason = f"ATR slope {slope:.0f}% with contracting range"
        elif expansion > cfg.trend_day_expansion and ratio > cfg.trend_day_range_multiple:
            regime = VolatilityRegime.TREND_DAY
            reason = f"range {ratio:.1f}x average"
        elif slope > cfg.expansion_slope and expansion > cfg.expansion_range:
            regime = VolatilityRegime.EXPANSION
            reason = f"ATR slope +{slope:.0f}%, range +{expansion:.0f}%"
        elif abs(expansion) < cfg.mean_reversion_range and abs(slope) < cfg.mean_reversion_slope:
            regime = VolatilityRegime.MEAN_REVERSION
            reason = "flat ATR and range"
        else:
            regime = VolatilityRegime.NORMAL
            reason = "no regime threshold crossed"

        return RegimeClassification(
            regime=regime,
            atr_slope_percent=slope,
            range_expansion_percent=expansion,
            volatility_ratio=ratio,
            computed_at=now or datetime.now(timezone.utc),
            reason=reason,
        )

    def refresh(self, windows: Mapping[str, Sequence[Candle]], now: Optional[datetime] = None) -> Dict[str, RegimeClassification]:
        """
        Classify every window and publish the results in one swap.

        Windows that are too short are skipped and keep their previous value
        until it goes stale.
        """
        now = now or datetime.now(timezone.utc)
        results: Dict[str, RegimeClassification] = {}
        for key, candles in windows.items():
            try:
                results[key] = self.classify(candles, now=now)
            except DataValidationError as e:
                logger.warning("Regime classification skipped for %s: %s", key, e)
        if results:
            self.store.publish_many(((k, c.regime) for k, c in results.items()), at=now)
            self.details.publish_many(results.items(), at=now)
            logger.debug("Regime refresh published %d classifications", len(results))
        return results

    def current_regime(self, key: str = GLOBAL_KEY) -> Optional[VolatilityRegime]:
        return self.store.get_or_global(key)

    def latest(self, key: str = GLOBAL_KEY) -> Optional[RegimeClassification]:
        return self.details.get(key)

    def compatibility(self, direction: Direction, key: str = GLOBAL_KEY) -> RegimeVerdict:
        return regime_compatibility(self.current_regime(key), direction, self.config)


class RegimeRefreshTask:
    """
    Scheduled regime recompute on a background thread.

    Args:
        classifier: Classifier to refresh
        window_source: Returns the current candle window per key
        interval_sec: Refresh cadence (defaults to the classifier's config)
    """

    def __init__(
        self,
        classifier: VolatilityRegimeClassifier,
        window_source: Callable[[], Mapping[str, Sequence[Candle]]],
        interval_sec: Optional[float] = None,
    ):
        self.classifier = classifier
        self.window_source = window_source
        self.interval_sec = interval_sec or classifier.config.refresh_seconds
        self._stop = Event()
        self._thread: Optional[Thread] = None

    def run_once(self) -> Dict[str, RegimeClassification]:
        return self.classifier.refresh(self.window_source())

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Regime refresh task already running")
            return
        self._stop.clear()
        self._thread = Thread(target=self._loop, name="regime-refresh", daemon=True)
        self._thread.start()
        logger.info("Regime refresh task started (every %.0fs)", self.interval_sec)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Regime refresh task stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while True:
            try:
                self.run_once()
            except Exception:
                # The task must outlive a bad refresh; facts go stale instead
                logger.exception("Regime refresh failed")
            if self._stop.wait(self.interval_sec):
                break
