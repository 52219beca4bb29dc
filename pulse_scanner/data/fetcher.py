"""
PULSE SCANNER: Market Data Fetcher
Joins the instrument catalog with 24h tickers into normalized TradingPair
snapshots, filtered to liquid pairs of the configured quote currency.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from pulse_scanner.data.adapters.base import BaseExchangeAdapter
from pulse_scanner.data.models import SymbolInfo, Ticker24h, TradingPair, VelocityTrend
from pulse_scanner.config.settings import ExchangeSettings, get_settings
from pulse_scanner.utils.helpers import epoch_ms
from pulse_scanner.utils.logger import get_logger

logger = get_logger("market_data_fetcher")

TRADEABLE_STATUS = "TRADING"


class SignalEnricher(ABC):
    """Derives the live signal fields attached to each pair in a snapshot."""

    @abstractmethod
    def enrich(self, info: SymbolInfo, ticker: Ticker24h) -> Dict[str, object]:
        """
        Return order_book_imbalance, price_velocity, velocity_trend,
        pump_probability and optionally market_cap.
        """
        pass


def classify_velocity(velocity: float) -> VelocityTrend:
    if velocity > 2:
        return VelocityTrend.ACCELERATING
    if velocity < -2:
        return VelocityTrend.DECELERATING
    return VelocityTrend.STABLE


class RandomSignalEnricher(SignalEnricher):
    """
    Placeholder live signals drawn uniformly at random.

    NOTE: these values carry no market information and are unrelated to the
    trend heuristics of the prediction path. How the two should relate is
    unresolved; replace this enricher once order book / velocity data exists.

    When `market_cap_range` is given, a placeholder market cap is drawn too:
    80% of pairs land inside the range and the rest above it (up to
    PLACEHOLDER_MAX_CAP), so the prediction band has something to work on
    until a real market-cap feed exists. It is equally meaningless.
    """

    PLACEHOLDER_MAX_CAP = 10_000_000_000.0
    IN_RANGE_SHARE = 0.8

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        market_cap_range: Optional[Tuple[float, float]] = None,
    ):
        self.rng = rng or np.random.default_rng()
        self.market_cap_range = market_cap_range

    def placeholder_market_cap(self) -> float:
        low, high = self.market_cap_range
        if self.rng.random() < self.IN_RANGE_SHARE or high >= self.PLACEHOLDER_MAX_CAP:
            return float(self.rng.uniform(low, high))
        return float(self.rng.uniform(high, self.PLACEHOLDER_MAX_CAP))

    def enrich(self, info: SymbolInfo, ticker: Ticker24h) -> Dict[str, object]:
        velocity = float(self.rng.uniform(-5.0, 5.0))
        fields: Dict[str, object] = {
            "order_book_imbalance": float(self.rng.uniform(-100.0, 100.0)),
            "price_velocity": velocity,
            "velocity_trend": classify_velocity(velocity),
            "pump_probability": float(self.rng.uniform(0.0, 100.0)),
        }
        if self.market_cap_range is not None:
            fields["market_cap"] = self.placeholder_market_cap()
        return fields


class MarketDataFetcher:
    """
    Fetches the catalog and ticker snapshot concurrently and produces the
    top-N most liquid pairs. Any retrieval failure propagates; no partial
    result is ever returned.
    """

    def __init__(
        self,
        adapter: BaseExchangeAdapter,
        settings: Optional[ExchangeSettings] = None,
        enricher: Optional[SignalEnricher] = None,
        clock_ms: Callable[[], int] = epoch_ms,
    ):
        self.adapter = adapter
        self.settings = settings or get_settings().exchange
        self.enricher = enricher or RandomSignalEnricher()
        self._clock_ms = clock_ms
        self._last_stamp: Dict[str, int] = {}

    async def fetch(self) -> List[TradingPair]:
        catalog, tickers = await asyncio.gather(
            self.adapter.get_exchange_info(),
            self.adapter.get_24h_tickers(),
        )
        pairs = self.transform(catalog, tickers)
        logger.info("market_data_fetched", catalog=len(catalog), tickers=len(tickers), pairs=len(pairs))
        return pairs

    def is_eligible(self, info: SymbolInfo, ticker: Ticker24h) -> bool:
        return (
            info.quote_asset == self.settings.quote_asset
            and info.status == TRADEABLE_STATUS
            and info.is_spot_trading_allowed
            and ticker.quote_volume >= self.settings.min_quote_volume
        )

    def transform(self, catalog: List[SymbolInfo], tickers: List[Ticker24h]) -> List[TradingPair]:
        """Join by symbol, filter, sort by 24h quote volume and truncate."""
        ticker_map = {t.symbol: t for t in tickers}
        joined: List[Tuple[SymbolInfo, Ticker24h]] = [
            (info, ticker_map[info.symbol])
            for info in catalog
            if info.symbol in ticker_map and self.is_eligible(info, ticker_map[info.symbol])
        ]
        joined.sort(key=lambda pair: pair[1].quote_volume, reverse=True)
        joined = joined[: self.settings.top_n]

        now = self._clock_ms()
        pairs = []
        for info, ticker in joined:
            stamp = max(now, self._last_stamp.get(info.symbol, 0))
            self._last_stamp[info.symbol] = stamp
            fields = {
                "symbol": info.symbol,
                "base_asset": info.base_asset,
                "quote_asset": info.quote_asset,
                "price": ticker.last_price,
                "price_change_24h": ticker.price_change_percent,
                "volume_24h": ticker.quote_volume,
                "market_cap": None,
                "last_updated": stamp,
            }
            # Enricher output wins, market_cap included
            fields.update(self.enricher.enrich(info, ticker))
            pairs.append(TradingPair(**fields))
        return pairs
