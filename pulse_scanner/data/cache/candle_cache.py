"""
PULSE SCANNER: Candle Cache Layer
In-memory TTL cache for kline frames used by the prediction path.
"""
from typing import Any, Dict, Optional
from cachetools import TTLCache
import pandas as pd

from pulse_scanner.data.models import Timeframe
from pulse_scanner.config.settings import ExchangeSettings, get_settings
from pulse_scanner.utils.logger import get_logger

logger = get_logger("candle_cache")


class CandleCache:
    """Per (pair, timeframe) kline frames with TTL expiration."""

    def __init__(self, settings: Optional[ExchangeSettings] = None, maxsize: int = 1000):
        settings = settings or get_settings().exchange
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=settings.kline_cache_ttl_seconds)
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _key(pair: str, timeframe: Timeframe) -> str:
        return f"{pair}:{Timeframe(timeframe).value}"

    def put(self, pair: str, timeframe: Timeframe, df: pd.DataFrame) -> None:
        self._cache[self._key(pair, timeframe)] = df

    def get(self, pair: str, timeframe: Timeframe) -> Optional[pd.DataFrame]:
        df = self._cache.get(self._key(pair, timeframe))
        if df is None:
            self._misses += 1
        else:
            self._hits += 1
        return df

    def clear(self) -> None:
        self._cache.clear()
        logger.info("candle_cache_cleared")

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
        }
