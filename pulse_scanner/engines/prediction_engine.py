"""
PULSE SCANNER: Prediction Engine
Gated per-timeframe prediction passes over the low-cap universe, plus the
cross-timeframe top-pick aggregation.
"""
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from pulse_scanner.data.history import HistoryProvider
from pulse_scanner.data.models import (
    Prediction, RankedPrediction, Timeframe, TopPick, TradingPair,
)
from pulse_scanner.db.store import PredictionStore
from pulse_scanner.engines.metrics import compute_timeframe_metrics
from pulse_scanner.engines.scoring import HeuristicTrendStrategy, PredictionStrategy
from pulse_scanner.config.settings import PredictionSettings, get_settings
from pulse_scanner.utils.errors import AppError
from pulse_scanner.utils.helpers import epoch_ms, ms_to_datetime
from pulse_scanner.utils.logger import get_logger

logger = get_logger("prediction_engine")


class PredictionEngine:
    """
    Owns the last-prediction-time table. A timeframe is regenerated when its
    gate opens; the table is only advanced once a full pass completes.
    """

    def __init__(
        self,
        history: HistoryProvider,
        store: PredictionStore,
        strategy: Optional[PredictionStrategy] = None,
        settings: Optional[PredictionSettings] = None,
        clock_ms: Callable[[], int] = epoch_ms,
    ):
        self.history = history
        self.store = store
        self.settings = settings or get_settings().prediction
        self.strategy = strategy or HeuristicTrendStrategy(self.settings)
        self._clock_ms = clock_ms
        self.timeframes: List[Timeframe] = [Timeframe(tf) for tf in self.settings.timeframes]
        self.last_prediction_times: Dict[Timeframe, int] = {tf: 0 for tf in self.timeframes}
        # Predictions saved in the open interval by a pass that has not completed yet
        self._pending: Dict[Timeframe, Tuple[int, Dict[str, Prediction]]] = {}
        self._top_assets = {a.upper() for a in self.settings.top_market_cap_assets}

    # ─── Gating ──────────────────────────────────────────────

    def should_generate(self, timeframe: Timeframe, now_ms: Optional[int] = None) -> bool:
        timeframe = Timeframe(timeframe)
        now_ms = self._clock_ms() if now_ms is None else now_ms
        last = self.last_prediction_times.get(timeframe, 0)

        if timeframe.is_daily:
            now = ms_to_datetime(now_ms)
            window_start = now.replace(hour=self.settings.daily_hour_utc, minute=0, second=0, microsecond=0)
            window_end = window_start + timedelta(minutes=self.settings.daily_window_minutes)
            in_window = window_start <= now < window_end
            same_day = ms_to_datetime(last).date() == now.date()
            return in_window and not same_day

        return (now_ms - last) >= timeframe.duration_ms

    # ─── Universe & metrics ──────────────────────────────────

    async def sync_universe(self, pairs: Sequence[TradingPair]) -> int:
        """
        Mirror a live snapshot into coin metadata so the market-cap band can
        see it. A pair without a market cap keeps the one already stored.
        """
        for pair in pairs:
            market_cap = pair.market_cap
            if market_cap is None:
                stored = await self.store.get_coin_metadata(pair.symbol)
                market_cap = stored.market_cap if stored else None
            await self.store.update_coin_metadata(
                pair.symbol,
                market_cap,
                name=pair.base_asset,
                is_top_10=pair.base_asset.upper() in self._top_assets,
            )
        return len(pairs)

    async def candidate_pairs(self) -> List[str]:
        return await self.store.get_trading_pairs_by_market_cap(
            self.settings.market_cap_min, self.settings.market_cap_max,
        )

    async def refresh_metrics(self, timeframe: Timeframe) -> int:
        """
        Recompute and store timeframe metrics for every candidate pair.
        Liquidity is scored against the coin's stored market cap, falling
        back to the median last-candle volume across the candidates.
        """
        timeframe = Timeframe(timeframe)
        frames: Dict[str, pd.DataFrame] = {}
        for pair in await self.candidate_pairs():
            try:
                candles = await self.history.get_candles(pair, timeframe)
            except AppError as exc:
                logger.warning("metrics_candles_failed", pair=pair, timeframe=timeframe.value, error=exc.message)
                continue
            if not candles.empty:
                frames[pair] = candles

        last_volumes = [float(df["volume"].iloc[-1]) for df in frames.values()]
        median_volume = float(np.median(last_volumes)) if last_volumes else None

        stored = 0
        for pair, candles in frames.items():
            coin = await self.store.get_coin_metadata(pair)
            metrics = compute_timeframe_metrics(
                pair,
                timeframe,
                candles,
                market_cap=coin.market_cap if coin else None,
                median_volume=median_volume,
                now_ms=self._clock_ms(),
            )
            if metrics is None:
                continue
            await self.store.store_timeframe_metrics(metrics)
            stored += 1
        logger.debug("metrics_refreshed", timeframe=timeframe.value, pairs=stored)
        return stored

    # ─── Generation ──────────────────────────────────────────

    async def generate_predictions(
        self, timeframe: Timeframe, now_ms: Optional[int] = None
    ) -> Optional[List[Prediction]]:
        """
        Run one pass for a timeframe. Returns None when the gate is closed,
        otherwise the saved predictions sorted by predicted change, highest first.
        """
        timeframe = Timeframe(timeframe)
        now_ms = self._clock_ms() if now_ms is None else now_ms
        if not self.should_generate(timeframe, now_ms):
            logger.debug("prediction_skipped_gate", timeframe=timeframe.value)
            return None

        # Saves from an earlier attempt that failed partway are reused, never repeated
        started, saved = self._pending.get(timeframe, (now_ms, {}))
        if now_ms - started >= timeframe.duration_ms:
            started, saved = now_ms, {}
        self._pending[timeframe] = (started, saved)
        for pair in await self.candidate_pairs():
            if pair in saved:
                continue
            try:
                candles = await self.history.get_candles(pair, timeframe)
            except AppError as exc:
                logger.warning("prediction_candles_failed", pair=pair, timeframe=timeframe.value, error=exc.message)
                continue
            if len(candles) < self.settings.min_data_points:
                continue

            metrics = await self.store.get_timeframe_metrics(pair, timeframe)
            if metrics is None:
                continue

            result = self.strategy.score(candles, metrics)
            if result is None:
                continue

            saved[pair] = await self.store.save_prediction(
                pair, timeframe, result.change_pct, result.confidence
            )

        del self._pending[timeframe]
        predictions = list(saved.values())
        self.last_prediction_times[timeframe] = now_ms
        predictions.sort(key=lambda p: p.predicted_change_pct, reverse=True)
        logger.info("predictions_generated", timeframe=timeframe.value, count=len(predictions))
        return predictions

    async def generate_all_timeframe_predictions(
        self, now_ms: Optional[int] = None
    ) -> Dict[Timeframe, Optional[List[Prediction]]]:
        results = {}
        for timeframe in self.timeframes:
            try:
                results[timeframe] = await self.generate_predictions(timeframe, now_ms)
            except AppError as exc:
                logger.error("prediction_pass_failed", timeframe=timeframe.value, error=exc.message, code=exc.code)
                results[timeframe] = None
        return results

    # ─── Aggregation ─────────────────────────────────────────

    async def get_top_predictions_all_timeframes(
        self, limit: Optional[int] = None
    ) -> Dict[Timeframe, List[RankedPrediction]]:
        if limit is None:
            limit = self.settings.top_predictions_per_timeframe
        return {tf: await self.store.get_top_predictions(tf, limit) for tf in self.timeframes}

    async def update_top_picks(self, limit: Optional[int] = None) -> List[TopPick]:
        """Best timeframe per in-band pair, ranked by change × confidence / 100."""
        if limit is None:
            limit = self.settings.top_picks_limit
        s = self.settings
        best: Dict[str, TopPick] = {}

        all_predictions = await self.get_top_predictions_all_timeframes()
        for timeframe, ranked in all_predictions.items():
            for pred in ranked:
                cap = pred.market_cap
                if not cap or cap < s.market_cap_min or cap > s.market_cap_max:
                    continue
                score = pred.predicted_change_pct * (pred.confidence_score / 100.0)
                current = best.get(pred.trading_pair)
                if current is not None and score <= current.total_score:
                    continue
                best[pred.trading_pair] = TopPick(
                    trading_pair=pred.trading_pair,
                    market_cap=cap,
                    total_score=score,
                    best_timeframe=timeframe,
                    best_prediction=pred.predicted_change_pct,
                    best_confidence=pred.confidence_score,
                    selection_reason=(
                        f"Predicted to rise {pred.predicted_change_pct:.2f}% in the next "
                        f"{timeframe.value} with {pred.confidence_score:.0f}% confidence"
                    ),
                )

        picks = sorted(best.values(), key=lambda p: p.total_score, reverse=True)[:limit]
        for pick in picks:
            await self.store.update_top_pick(
                pick.trading_pair,
                pick.market_cap,
                pick.selection_reason,
                pick.best_timeframe,
                pick.best_confidence,
            )
        logger.info("top_picks_updated", count=len(picks))
        return picks
