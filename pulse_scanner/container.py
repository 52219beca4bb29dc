"""
PULSE SCANNER: Service Container
Wires the adapter, refresh loop, analytics and prediction path once at
process start. Callers receive the container explicitly.
"""
from typing import Any, Dict, Optional

import numpy as np

from pulse_scanner.config.settings import AppSettings, get_settings
from pulse_scanner.data.adapters.base import BaseExchangeAdapter
from pulse_scanner.data.adapters.binance_adapter import BinanceAdapter
from pulse_scanner.data.cache.candle_cache import CandleCache
from pulse_scanner.data.fetcher import MarketDataFetcher, RandomSignalEnricher, SignalEnricher
from pulse_scanner.data.history import ExchangeHistoryProvider, HistoryProvider
from pulse_scanner.db.store import InMemoryPredictionStore, PredictionStore
from pulse_scanner.engines.prediction_engine import PredictionEngine
from pulse_scanner.engines.scoring import HeuristicTrendStrategy, PredictionStrategy
from pulse_scanner.indicators.registry import IndicatorRegistry
from pulse_scanner.patterns.recognizer import PatternRecognizer
from pulse_scanner.scheduler.prediction_runner import PredictionScheduler
from pulse_scanner.scheduler.refresh import RefreshScheduler
from pulse_scanner.utils.logger import get_logger

logger = get_logger("container")


class ServiceContainer:
    """Holds every long-lived service; start/stop drive the background tasks."""

    def __init__(
        self,
        settings: AppSettings,
        adapter: BaseExchangeAdapter,
        cache: CandleCache,
        history: HistoryProvider,
        store: PredictionStore,
        fetcher: MarketDataFetcher,
        refresh: RefreshScheduler,
        indicators: IndicatorRegistry,
        patterns: PatternRecognizer,
        predictions: PredictionEngine,
        prediction_runner: PredictionScheduler,
    ):
        self.settings = settings
        self.adapter = adapter
        self.cache = cache
        self.history = history
        self.store = store
        self.fetcher = fetcher
        self.refresh = refresh
        self.indicators = indicators
        self.patterns = patterns
        self.predictions = predictions
        self.prediction_runner = prediction_runner
        self.started = False

    async def start(self) -> None:
        if self.started:
            return
        await self.adapter.connect()
        await self.refresh.start()
        await self.prediction_runner.start()
        self.started = True
        logger.info("services_started")

    async def stop(self) -> None:
        if not self.started:
            return
        await self.prediction_runner.stop()
        await self.refresh.stop()
        await self.adapter.disconnect()
        self.started = False
        logger.info("services_stopped")

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "refresh": self.refresh.stats,
            "candle_cache": self.cache.stats,
            "indicators_registered": self.indicators.count,
            "prediction_runs": self.prediction_runner.run_count,
            "last_prediction_times": {
                tf.value: ts for tf, ts in self.predictions.last_prediction_times.items()
            },
        }


def build_services(
    settings: Optional[AppSettings] = None,
    adapter: Optional[BaseExchangeAdapter] = None,
    store: Optional[PredictionStore] = None,
    enricher: Optional[SignalEnricher] = None,
    strategy: Optional[PredictionStrategy] = None,
    rng: Optional[np.random.Generator] = None,
) -> ServiceContainer:
    """Construct the full service graph. Collaborators may be swapped in for tests."""
    settings = settings or get_settings()
    adapter = adapter or BinanceAdapter(settings.exchange)
    cache = CandleCache(settings.exchange)
    history = ExchangeHistoryProvider(adapter, cache, settings.exchange)
    store = store or InMemoryPredictionStore()

    if enricher is None:
        band = None
        if settings.prediction.placeholder_market_caps:
            band = (settings.prediction.market_cap_min, settings.prediction.market_cap_max)
        enricher = RandomSignalEnricher(rng, market_cap_range=band)

    fetcher = MarketDataFetcher(adapter, settings.exchange, enricher=enricher)
    refresh = RefreshScheduler(fetcher, settings.refresh)
    strategy = strategy or HeuristicTrendStrategy(settings.prediction, rng)
    predictions = PredictionEngine(history, store, strategy, settings.prediction)
    runner = PredictionScheduler(predictions, refresh.get_current_data, settings.prediction)

    return ServiceContainer(
        settings=settings,
        adapter=adapter,
        cache=cache,
        history=history,
        store=store,
        fetcher=fetcher,
        refresh=refresh,
        indicators=IndicatorRegistry(settings.indicators),
        patterns=PatternRecognizer(settings.patterns),
        predictions=predictions,
        prediction_runner=runner,
    )
