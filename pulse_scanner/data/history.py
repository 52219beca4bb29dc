"""
PULSE SCANNER: OHLCV History Provider
Supplies candle frames to the indicator and prediction paths, independent
of the live ticker refresh loop.
"""
from abc import ABC, abstractmethod
from typing import Optional
import pandas as pd

from pulse_scanner.data.adapters.base import BaseExchangeAdapter
from pulse_scanner.data.cache.candle_cache import CandleCache
from pulse_scanner.data.models import Timeframe
from pulse_scanner.config.settings import ExchangeSettings, get_settings


class HistoryProvider(ABC):
    """Source of chronological OHLCV frames indexed by timestamp."""

    @abstractmethod
    async def get_candles(self, pair: str, timeframe: Timeframe, limit: Optional[int] = None) -> pd.DataFrame:
        pass


class ExchangeHistoryProvider(HistoryProvider):
    """Reads klines from an exchange adapter through a TTL cache."""

    def __init__(
        self,
        adapter: BaseExchangeAdapter,
        cache: Optional[CandleCache] = None,
        settings: Optional[ExchangeSettings] = None,
    ):
        self.adapter = adapter
        self.settings = settings or get_settings().exchange
        self.cache = cache or CandleCache(self.settings)

    async def get_candles(self, pair: str, timeframe: Timeframe, limit: Optional[int] = None) -> pd.DataFrame:
        limit = limit or self.settings.kline_limit
        cached = self.cache.get(pair, timeframe)
        if cached is not None and len(cached) >= limit:
            return cached.iloc[-limit:]

        df = await self.adapter.get_candles_df(pair, timeframe, limit)
        if not df.empty:
            self.cache.put(pair, timeframe, df)
        return df
