"""
PULSE SCANNER: Binance Spot REST Adapter
Read-only access to exchangeInfo, 24h tickers and klines.
"""
import asyncio
import aiohttp
from typing import Any, Dict, List, Optional

from pulse_scanner.data.adapters.base import BaseExchangeAdapter
from pulse_scanner.data.models import Candle, SymbolInfo, Ticker24h, Timeframe
from pulse_scanner.config.settings import ExchangeSettings, get_settings
from pulse_scanner.utils.errors import ExchangeError
from pulse_scanner.utils.helpers import normalize_symbol, to_float
from pulse_scanner.utils.logger import get_logger

logger = get_logger("binance_adapter")

INTERVAL_MAP: Dict[Timeframe, str] = {
    Timeframe.M15: "15m",
    Timeframe.M30: "30m",
    Timeframe.H1: "1h",
    Timeframe.H4: "4h",
    Timeframe.D1: "1d",
}


def parse_symbol_info(item: Dict[str, Any]) -> Optional[SymbolInfo]:
    """Parse one exchangeInfo symbol entry; None when required fields are missing."""
    if not item.get("symbol") or not item.get("quoteAsset"):
        return None
    return SymbolInfo(
        symbol=item["symbol"],
        base_asset=item.get("baseAsset", ""),
        quote_asset=item["quoteAsset"],
        status=item.get("status", ""),
        is_spot_trading_allowed=bool(item.get("isSpotTradingAllowed", False)),
    )


def parse_ticker(item: Dict[str, Any]) -> Optional[Ticker24h]:
    """Parse one 24h ticker row; None when any numeric field is malformed."""
    symbol = item.get("symbol")
    price = to_float(item.get("lastPrice"))
    change = to_float(item.get("priceChangePercent"))
    quote_volume = to_float(item.get("quoteVolume"))
    if not symbol or price is None or change is None or quote_volume is None:
        return None
    return Ticker24h(
        symbol=symbol,
        last_price=price,
        price_change_percent=change,
        quote_volume=quote_volume,
    )


def parse_kline(row: List[Any]) -> Candle:
    return Candle(
        timestamp=int(row[0]),
        open=float(row[1]),
        high=float(row[2]),
        low=float(row[3]),
        close=float(row[4]),
        volume=float(row[5]),
    )


class BinanceAdapter(BaseExchangeAdapter):
    """Binance v3 public REST adapter."""

    def __init__(self, settings: Optional[ExchangeSettings] = None):
        super().__init__(name="binance")
        self.settings = settings or get_settings().exchange
        self.base_url = self.settings.base_url.rstrip("/")

    async def connect(self) -> None:
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout_seconds)
        self._session = aiohttp.ClientSession(timeout=timeout)
        logger.info("binance_adapter_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("binance_adapter_disconnected")

    async def _get_json(self, path: str, operation: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self._session:
            await self.connect()

        url = f"{self.base_url}/{path}"
        try:
            async with self._session.get(url, params=params) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise ExchangeError(
                        f"HTTP {resp.status} from {path}",
                        operation,
                        status_code=resp.status,
                        details={"url": url, "body": body[:200]},
                    )
                return await resp.json()
        except ExchangeError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ExchangeError(str(e) or type(e).__name__, operation, details={"url": url}) from e

    async def get_exchange_info(self) -> List[SymbolInfo]:
        data = await self._get_json("exchangeInfo", "exchange_info")
        if not isinstance(data, dict) or not isinstance(data.get("symbols"), list):
            raise ExchangeError("exchangeInfo payload has no symbols list", "exchange_info")

        symbols = [s for s in (parse_symbol_info(item) for item in data["symbols"]) if s]
        logger.debug("exchange_info_fetched", count=len(symbols))
        return symbols

    async def get_24h_tickers(self) -> List[Ticker24h]:
        data = await self._get_json("ticker/24hr", "ticker_24h")
        if not isinstance(data, list):
            raise ExchangeError("ticker/24hr payload is not a list", "ticker_24h")

        tickers = [t for t in (parse_ticker(item) for item in data) if t]
        logger.debug("tickers_fetched", count=len(tickers), dropped=len(data) - len(tickers))
        return tickers

    async def get_klines(
        self, symbol: str, timeframe: Timeframe, limit: int = 100
    ) -> List[Candle]:
        params = {
            "symbol": normalize_symbol(symbol),
            "interval": INTERVAL_MAP[Timeframe(timeframe)],
            "limit": limit,
        }
        data = await self._get_json("klines", "klines", params=params)
        if not isinstance(data, list):
            raise ExchangeError("klines payload is not a list", "klines")

        candles = []
        for row in data:
            try:
                candles.append(parse_kline(row))
            except (IndexError, TypeError, ValueError):
                continue
        return candles
