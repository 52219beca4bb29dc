"""
PULSE SCANNER: Refresh Scheduler
Owns the live snapshot cadence. Progress decays from 100 to 0 over the
refresh interval on a fixed tick; reaching 0 (or force_refresh) starts a
single-flight fetch. Completion resets the countdown whether the fetch
succeeded or not, and a failed fetch keeps the previous snapshot.
"""
import asyncio
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from pulse_scanner.data.fetcher import MarketDataFetcher
from pulse_scanner.data.models import TradingPair
from pulse_scanner.config.settings import RefreshSettings, get_settings
from pulse_scanner.scheduler.bus import Subscription, SubscriptionBus
from pulse_scanner.utils.errors import AppError, handle_unknown_error
from pulse_scanner.utils.logger import get_logger

logger = get_logger("refresh_scheduler")


class SchedulerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"


class RefreshScheduler:
    """
    Single-threaded refresh loop on the running asyncio event loop.

    The FETCHING state is the single-flight guard: a trigger that arrives
    while a fetch is in flight is dropped, never queued.
    """

    def __init__(
        self,
        fetcher: MarketDataFetcher,
        settings: Optional[RefreshSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.fetcher = fetcher
        self.settings = settings or get_settings().refresh
        self.interval = self.settings.refresh_interval_seconds
        self.tick_seconds = self.settings.tick_seconds
        self._clock = clock

        self._state = SchedulerState.IDLE
        self._last_refresh_time = 0.0
        self._progress = 100.0
        self._pairs: Tuple[TradingPair, ...] = ()
        self._data_bus: SubscriptionBus[Tuple[TradingPair, ...]] = SubscriptionBus("trading_pairs")
        self._progress_bus: SubscriptionBus[float] = SubscriptionBus("refresh_progress", initial=100.0)

        self._tick_task: Optional[asyncio.Task] = None
        self._fetch_task: Optional[asyncio.Task] = None
        self.last_error: Optional[AppError] = None
        self._fetch_count = 0
        self._failure_count = 0
        self._dropped_count = 0

    # ─── Lifecycle ──────────────────────────────────────────────

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_fetching(self) -> bool:
        return self._state is SchedulerState.FETCHING

    @property
    def is_running(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    async def start(self) -> None:
        """Fetch immediately, then start the progress tick."""
        if self.is_running:
            return
        self.force_refresh()
        self._tick_task = asyncio.create_task(self._run_ticks(), name="refresh-tick")
        logger.info("refresh_scheduler_started", interval=self.interval, tick=self.tick_seconds)

    async def stop(self) -> None:
        for task in (self._tick_task, self._fetch_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._tick_task = None
        self._fetch_task = None
        logger.info("refresh_scheduler_stopped")

    async def _run_ticks(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            self.tick()

    # ─── Scheduling ─────────────────────────────────────────────

    def tick(self) -> Optional[asyncio.Task]:
        """Recompute progress; trigger a fetch once the countdown expires."""
        if self.is_fetching:
            return None
        elapsed = self._clock() - self._last_refresh_time
        progress = max(0.0, 100.0 - (elapsed / self.interval) * 100.0)
        self._set_progress(progress)
        if progress <= 0:
            return self._trigger("tick")
        return None

    def force_refresh(self) -> Optional[asyncio.Task]:
        """Start a fetch now. Returns None when one is already in flight."""
        return self._trigger("manual")

    async def refresh_now(self) -> bool:
        """Trigger and await a fetch. False when it was coalesced into one in flight."""
        task = self._trigger("manual")
        if task is None:
            return False
        await task
        return self.last_error is None

    def _trigger(self, reason: str) -> Optional[asyncio.Task]:
        if self.is_fetching:
            self._dropped_count += 1
            logger.debug("refresh_coalesced", reason=reason)
            return None
        # Set before the task is scheduled so a second trigger in the same turn is dropped
        self._state = SchedulerState.FETCHING
        self._fetch_task = asyncio.get_running_loop().create_task(self._fetch(reason))
        return self._fetch_task

    async def _fetch(self, reason: str) -> None:
        self._fetch_count += 1
        self._set_progress(0.0)
        try:
            pairs = await self.fetcher.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failure_count += 1
            self.last_error = handle_unknown_error(e)
            logger.error(
                "refresh_failed",
                reason=reason,
                code=self.last_error.code,
                status=self.last_error.status_code,
                error=self.last_error.message,
                retained_pairs=len(self._pairs),
            )
        else:
            self.last_error = None
            self._pairs = tuple(pairs)
            logger.info("refresh_completed", reason=reason, pairs=len(self._pairs))
            # Immutable snapshot shared by every listener
            self._data_bus.publish(self._pairs)
        finally:
            self._last_refresh_time = self._clock()
            self._state = SchedulerState.IDLE
            self._set_progress(100.0)

    def _set_progress(self, progress: float) -> None:
        self._progress = progress
        self._progress_bus.publish(progress)

    # ─── Consumer boundary ──────────────────────────────────────

    def subscribe_to_data(self, callback: Callable[[Tuple[TradingPair, ...]], None]) -> Subscription:
        return self._data_bus.subscribe(callback)

    def subscribe_to_progress(self, callback: Callable[[float], None]) -> Subscription:
        return self._progress_bus.subscribe(callback)

    def get_current_data(self) -> List[TradingPair]:
        return list(self._pairs)

    def get_current_progress(self) -> float:
        return self._progress

    @property
    def last_refresh_time(self) -> float:
        return self._last_refresh_time

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "pairs": len(self._pairs),
            "progress": round(self._progress, 2),
            "last_refresh_time": self._last_refresh_time,
            "fetches": self._fetch_count,
            "failures": self._failure_count,
            "coalesced": self._dropped_count,
            "data_subscribers": self._data_bus.subscriber_count,
            "progress_subscribers": self._progress_bus.subscriber_count,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }
