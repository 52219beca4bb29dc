"""
PULSE SCANNER: Test Configuration & Fixtures
Shared fixtures for all test modules.
"""
import asyncio
from typing import Dict, List, Optional

import pytest
import pandas as pd
import numpy as np

from pulse_scanner.config.settings import (
    AppSettings, ExchangeSettings, PatternSettings, PredictionSettings, RefreshSettings,
)
from pulse_scanner.data.adapters.base import BaseExchangeAdapter
from pulse_scanner.data.models import Candle, SymbolInfo, Ticker24h, Timeframe

START_MS = 1_704_067_200_000  # 2024-01-01 00:00 UTC


def _ohlcv_frame(prices: np.ndarray, volumes: np.ndarray, step_ms: int = 60_000) -> pd.DataFrame:
    n = len(prices)
    index = pd.Index(START_MS + np.arange(n) * step_ms, name="timestamp")
    df = pd.DataFrame({
        "open": prices + np.random.normal(0, 0.1, n),
        "high": prices + np.abs(np.random.normal(0, 0.5, n)),
        "low": prices - np.abs(np.random.normal(0, 0.5, n)),
        "close": prices,
        "volume": volumes,
    }, index=index)

    # Ensure high >= open, close >= low
    df["high"] = df[["open", "high", "close"]].max(axis=1) + 0.01
    df["low"] = df[["open", "low", "close"]].min(axis=1) - 0.01
    return df


@pytest.fixture
def sample_ohlcv_df():
    """Realistic 200-candle OHLCV frame indexed by epoch ms."""
    np.random.seed(42)
    n = 200
    returns = np.random.normal(0.0001, 0.002, n)
    prices = 100.0 * np.exp(np.cumsum(returns)) + np.linspace(0, 5, n)
    volumes = np.random.randint(1000, 50000, n).astype(float)
    return _ohlcv_frame(prices, volumes)


@pytest.fixture
def small_ohlcv_df():
    """Ten candles; shorter than most indicator warm-ups."""
    index = pd.Index(START_MS + np.arange(10) * 60_000, name="timestamp")
    return pd.DataFrame({
        "open": [100, 101, 102, 101, 103, 104, 103, 105, 106, 107],
        "high": [101, 102, 103, 102, 104, 105, 104, 106, 107, 108],
        "low": [99, 100, 101, 100, 102, 103, 102, 104, 105, 106],
        "close": [100.5, 101.5, 102.5, 101.5, 103.5, 104.5, 103.5, 105.5, 106.5, 107.5],
        "volume": [10000, 12000, 15000, 8000, 20000, 25000, 11000, 30000, 18000, 22000],
    }, index=index, dtype=float)


@pytest.fixture
def empty_df():
    return pd.DataFrame(columns=["open", "high", "low", "close", "volume"], dtype=float)


@pytest.fixture
def trending_up_df():
    """Clear uptrend with a volume surge on the last candle."""
    np.random.seed(123)
    n = 100
    prices = 100.0 + np.linspace(0, 30, n) + np.random.normal(0, 0.3, n)
    volumes = np.random.randint(5000, 30000, n).astype(float)
    volumes[-1] = 200_000.0
    return _ohlcv_frame(prices, volumes)


@pytest.fixture
def trending_down_df():
    """Clear downtrend with a quiet last candle."""
    np.random.seed(456)
    n = 100
    prices = 130.0 - np.linspace(0, 30, n) + np.random.normal(0, 0.3, n)
    volumes = np.random.randint(5000, 30000, n).astype(float)
    volumes[-1] = 100.0
    return _ohlcv_frame(prices, volumes)


# ─── Settings ───────────────────────────────────────────────────

@pytest.fixture
def exchange_settings():
    return ExchangeSettings(min_quote_volume=1_000_000.0, top_n=100, kline_limit=100)


@pytest.fixture
def refresh_settings():
    return RefreshSettings(refresh_interval_seconds=30.0, tick_seconds=1.0)


@pytest.fixture
def prediction_settings():
    return PredictionSettings()


@pytest.fixture
def pattern_settings():
    return PatternSettings()


@pytest.fixture
def app_settings(exchange_settings, refresh_settings, prediction_settings, pattern_settings):
    return AppSettings(
        autostart=False,
        exchange=exchange_settings,
        refresh=refresh_settings,
        prediction=prediction_settings,
        patterns=pattern_settings,
    )


# ─── Clock ──────────────────────────────────────────────────────

class ManualClock:
    """Deterministic clock in seconds; `ms()` gives the epoch-ms view."""

    def __init__(self, start: float = START_MS / 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def ms(self) -> int:
        return int(self.now * 1000)

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return ManualClock()


# ─── Exchange ───────────────────────────────────────────────────

def default_catalog() -> List[SymbolInfo]:
    return [
        SymbolInfo(symbol="AAAUSDT", base_asset="AAA", quote_asset="USDT", status="TRADING", is_spot_trading_allowed=True),
        SymbolInfo(symbol="BBBUSDT", base_asset="BBB", quote_asset="USDT", status="TRADING", is_spot_trading_allowed=True),
        SymbolInfo(symbol="CCCUSDT", base_asset="CCC", quote_asset="USDT", status="TRADING", is_spot_trading_allowed=True),
        SymbolInfo(symbol="DDDBTC", base_asset="DDD", quote_asset="BTC", status="TRADING", is_spot_trading_allowed=True),
        SymbolInfo(symbol="EEEUSDT", base_asset="EEE", quote_asset="USDT", status="BREAK", is_spot_trading_allowed=True),
        SymbolInfo(symbol="FFFUSDT", base_asset="FFF", quote_asset="USDT", status="TRADING", is_spot_trading_allowed=False),
        SymbolInfo(symbol="GGGUSDT", base_asset="GGG", quote_asset="USDT", status="TRADING", is_spot_trading_allowed=True),
    ]


def default_tickers() -> List[Ticker24h]:
    # GGGUSDT has no ticker; CCCUSDT is under the volume floor
    return [
        Ticker24h(symbol="BBBUSDT", last_price=2.5, price_change_percent=-1.2, quote_volume=2_000_000.0),
        Ticker24h(symbol="AAAUSDT", last_price=10.0, price_change_percent=3.4, quote_volume=5_000_000.0),
        Ticker24h(symbol="CCCUSDT", last_price=0.3, price_change_percent=0.5, quote_volume=500_000.0),
        Ticker24h(symbol="DDDBTC", last_price=0.001, price_change_percent=1.0, quote_volume=9_000_000.0),
        Ticker24h(symbol="EEEUSDT", last_price=1.0, price_change_percent=0.0, quote_volume=9_000_000.0),
        Ticker24h(symbol="FFFUSDT", last_price=1.0, price_change_percent=0.0, quote_volume=9_000_000.0),
    ]


def frame_to_candles(df: pd.DataFrame) -> List[Candle]:
    return [
        Candle(open=row["open"], high=row["high"], low=row["low"], close=row["close"],
               volume=row["volume"], timestamp=int(ts))
        for ts, row in df.iterrows()
    ]


class FakeExchangeAdapter(BaseExchangeAdapter):
    """
    In-memory exchange. Set `error` to make ticker retrieval raise, or
    `gate` to an asyncio.Event to hold ticker retrieval until it is set.
    """

    def __init__(self):
        super().__init__(name="fake")
        self.catalog = default_catalog()
        self.tickers = default_tickers()
        self.klines: Dict[str, pd.DataFrame] = {}
        self.error: Optional[Exception] = None
        self.kline_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.connected = False
        self.info_calls = 0
        self.ticker_calls = 0
        self.kline_calls = 0

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def get_exchange_info(self) -> List[SymbolInfo]:
        self.info_calls += 1
        return list(self.catalog)

    async def get_24h_tickers(self) -> List[Ticker24h]:
        self.ticker_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.tickers)

    async def get_klines(self, symbol: str, timeframe: Timeframe, limit: int = 100) -> List[Candle]:
        self.kline_calls += 1
        if self.kline_error is not None:
            raise self.kline_error
        df = self.klines.get(symbol)
        if df is None:
            return []
        return frame_to_candles(df.iloc[-limit:])


@pytest.fixture
def fake_adapter():
    return FakeExchangeAdapter()
