"""
PULSE SCANNER: Base Exchange Adapter Interface
All exchange adapters must implement this interface.
"""
from abc import ABC, abstractmethod
from typing import List
from pulse_scanner.data.models import Candle, SymbolInfo, Ticker24h, Timeframe
import pandas as pd

CANDLE_COLUMNS = ["open", "high", "low", "close", "volume"]


def candles_to_dataframe(candles: List[Candle]) -> pd.DataFrame:
    """Convert a chronological list of candles to a DataFrame indexed by timestamp."""
    if not candles:
        return pd.DataFrame(columns=CANDLE_COLUMNS, dtype=float)
    df = pd.DataFrame([c.model_dump() for c in candles])
    df.set_index("timestamp", inplace=True)
    df.sort_index(inplace=True)
    return df[CANDLE_COLUMNS].astype(float)


class BaseExchangeAdapter(ABC):
    """Abstract base class for read-only exchange adapters."""

    def __init__(self, name: str):
        self.name = name
        self._session = None

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection / session."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Clean up connection / session."""
        pass

    @abstractmethod
    async def get_exchange_info(self) -> List[SymbolInfo]:
        """Fetch the instrument catalog. Raises ExchangeError on failure."""
        pass

    @abstractmethod
    async def get_24h_tickers(self) -> List[Ticker24h]:
        """Fetch 24h ticker snapshots. Raises ExchangeError on failure."""
        pass

    @abstractmethod
    async def get_klines(
        self, symbol: str, timeframe: Timeframe, limit: int = 100
    ) -> List[Candle]:
        """Fetch historical OHLCV candles."""
        pass

    async def get_candles_df(
        self, symbol: str, timeframe: Timeframe, limit: int = 100
    ) -> pd.DataFrame:
        return candles_to_dataframe(await self.get_klines(symbol, timeframe, limit))
