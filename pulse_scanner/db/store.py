"""
PULSE SCANNER: Prediction Persistence Port
Interface the prediction engine writes through, plus an in-memory
collaborator used by default and in tests.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from pulse_scanner.data.models import (
    CoinMetadata, Prediction, RankedPrediction, TimeframeMetrics, Timeframe, TopPickRecord,
)
from pulse_scanner.utils.helpers import epoch_ms
from pulse_scanner.utils.logger import get_logger

logger = get_logger("prediction_store")


class PredictionStore(ABC):
    """Persistence boundary for predictions, metrics and top picks."""

    @abstractmethod
    async def save_prediction(
        self, pair: str, timeframe: Timeframe, change_pct: float, confidence: float
    ) -> Prediction:
        pass

    @abstractmethod
    async def get_timeframe_metrics(self, pair: str, timeframe: Timeframe) -> Optional[TimeframeMetrics]:
        pass

    @abstractmethod
    async def store_timeframe_metrics(self, metrics: TimeframeMetrics) -> None:
        pass

    @abstractmethod
    async def get_top_predictions(self, timeframe: Timeframe, limit: int = 5) -> List[RankedPrediction]:
        """Latest prediction per pair, non-top-10 coins only, by change then confidence desc."""
        pass

    @abstractmethod
    async def update_top_pick(
        self, pair: str, market_cap: float, reason: str, timeframe: Timeframe, confidence: float
    ) -> None:
        pass

    @abstractmethod
    async def get_top_picks(self, limit: int = 10) -> List[TopPickRecord]:
        pass

    @abstractmethod
    async def update_coin_metadata(
        self, pair: str, market_cap: Optional[float], name: Optional[str] = None, is_top_10: bool = False
    ) -> None:
        pass

    @abstractmethod
    async def get_coin_metadata(self, pair: str) -> Optional[CoinMetadata]:
        pass

    @abstractmethod
    async def get_trading_pairs_by_market_cap(self, min_cap: float, max_cap: float) -> List[str]:
        """Pairs inside [min_cap, max_cap], excluding top-10 coins."""
        pass


class InMemoryPredictionStore(PredictionStore):
    """Dict-backed store. Stands in for the external database."""

    def __init__(self, clock_ms=epoch_ms):
        self._clock_ms = clock_ms
        self._predictions: List[Prediction] = []
        self._metrics: Dict[Tuple[str, Timeframe], TimeframeMetrics] = {}
        self._coins: Dict[str, CoinMetadata] = {}
        self._top_picks: Dict[str, TopPickRecord] = {}

    async def save_prediction(
        self, pair: str, timeframe: Timeframe, change_pct: float, confidence: float
    ) -> Prediction:
        prediction = Prediction(
            trading_pair=pair,
            timeframe=Timeframe(timeframe),
            predicted_change_pct=change_pct,
            confidence_score=confidence,
            prediction_timestamp=self._clock_ms(),
        )
        self._predictions.append(prediction)
        return prediction

    async def get_timeframe_metrics(self, pair: str, timeframe: Timeframe) -> Optional[TimeframeMetrics]:
        return self._metrics.get((pair, Timeframe(timeframe)))

    async def store_timeframe_metrics(self, metrics: TimeframeMetrics) -> None:
        key = (metrics.trading_pair, metrics.timeframe)
        current = self._metrics.get(key)
        if current is None or metrics.timestamp >= current.timestamp:
            self._metrics[key] = metrics

    async def get_top_predictions(self, timeframe: Timeframe, limit: int = 5) -> List[RankedPrediction]:
        timeframe = Timeframe(timeframe)
        latest: Dict[str, Prediction] = {}
        for p in self._predictions:
            if p.timeframe is timeframe:
                latest[p.trading_pair] = p

        rows = []
        for pair, p in latest.items():
            coin = self._coins.get(pair)
            if coin is None or coin.is_top_10:
                continue
            rows.append(RankedPrediction(**p.model_dump(), market_cap=coin.market_cap))

        rows.sort(key=lambda r: (r.predicted_change_pct, r.confidence_score), reverse=True)
        return rows[:limit]

    async def update_top_pick(
        self, pair: str, market_cap: float, reason: str, timeframe: Timeframe, confidence: float
    ) -> None:
        self._top_picks[pair] = TopPickRecord(
            trading_pair=pair,
            market_cap=market_cap,
            selection_reason=reason,
            predicted_peak_timeframe=Timeframe(timeframe),
            prediction_confidence=confidence,
            selected_at=self._clock_ms(),
        )

    async def get_top_picks(self, limit: int = 10) -> List[TopPickRecord]:
        active = [p for p in self._top_picks.values() if p.is_active]
        active.sort(key=lambda p: p.selected_at, reverse=True)
        return active[:limit]

    async def update_coin_metadata(
        self, pair: str, market_cap: Optional[float], name: Optional[str] = None, is_top_10: bool = False
    ) -> None:
        self._coins[pair] = CoinMetadata(
            trading_pair=pair,
            name=name,
            market_cap=market_cap,
            is_top_10=is_top_10,
            updated_at=self._clock_ms(),
        )

    async def get_coin_metadata(self, pair: str) -> Optional[CoinMetadata]:
        return self._coins.get(pair)

    async def get_trading_pairs_by_market_cap(self, min_cap: float, max_cap: float) -> List[str]:
        return [
            c.trading_pair
            for c in sorted(self._coins.values(), key=lambda c: c.market_cap or 0.0, reverse=True)
            if not c.is_top_10 and c.market_cap is not None and min_cap <= c.market_cap <= max_cap
        ]

    @property
    def predictions(self) -> List[Prediction]:
        return list(self._predictions)
