"""
PULSE SCANNER: Prediction Scheduler
Periodic driver for prediction passes. Each run mirrors the latest live
snapshot into the store, refreshes metrics for timeframes whose gate is
open, generates predictions and re-aggregates top picks.
"""
import asyncio
from typing import Any, Callable, Dict, List, Optional

from pulse_scanner.data.models import TradingPair
from pulse_scanner.engines.prediction_engine import PredictionEngine
from pulse_scanner.config.settings import PredictionSettings, get_settings
from pulse_scanner.utils.errors import AppError, handle_unknown_error
from pulse_scanner.utils.logger import get_logger

logger = get_logger("prediction_scheduler")


class PredictionScheduler:
    """Runs `run_once` every `run_interval_seconds` on the event loop."""

    def __init__(
        self,
        engine: PredictionEngine,
        snapshot: Callable[[], List[TradingPair]],
        settings: Optional[PredictionSettings] = None,
    ):
        self.engine = engine
        self.snapshot = snapshot
        self.settings = settings or get_settings().prediction
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self.run_count = 0
        self.last_error: Optional[AppError] = None
        self.last_counts: Dict[str, int] = {}

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="prediction-runner")
        logger.info("prediction_scheduler_started", interval=self.settings.run_interval_seconds)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("prediction_scheduler_stopped")

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.last_error = handle_unknown_error(e)
                logger.error("prediction_run_failed", code=self.last_error.code, error=self.last_error.message)
            await asyncio.sleep(self.settings.run_interval_seconds)

    async def run_once(self) -> Dict[str, Any]:
        """One full pass. Concurrent callers wait for the pass in progress."""
        async with self._lock:
            synced = await self.engine.sync_universe(self.snapshot())
            for timeframe in self.engine.timeframes:
                if self.engine.should_generate(timeframe):
                    await self.engine.refresh_metrics(timeframe)

            results = await self.engine.generate_all_timeframe_predictions()
            picks = await self.engine.update_top_picks()

            self.run_count += 1
            self.last_error = None
            self.last_counts = {
                tf.value: len(preds) for tf, preds in results.items() if preds is not None
            }
            logger.info("prediction_run_completed", synced=synced, generated=self.last_counts, picks=len(picks))
            return {"synced": synced, "generated": self.last_counts, "top_picks": picks}
