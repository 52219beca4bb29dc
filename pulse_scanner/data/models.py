"""
PULSE SCANNER: Data Models for Market Data
Canonical data structures used across the entire platform.
"""
from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict
from enum import Enum


class Timeframe(str, Enum):
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @property
    def duration_ms(self) -> int:
        return TIMEFRAME_DURATIONS_MS[self]

    @property
    def is_daily(self) -> bool:
        return self is Timeframe.D1


TIMEFRAME_DURATIONS_MS: Dict[Timeframe, int] = {
    Timeframe.M15: 15 * 60 * 1000,
    Timeframe.M30: 30 * 60 * 1000,
    Timeframe.H1: 60 * 60 * 1000,
    Timeframe.H4: 4 * 60 * 60 * 1000,
    Timeframe.D1: 24 * 60 * 60 * 1000,
}


class VelocityTrend(str, Enum):
    ACCELERATING = "accelerating"
    DECELERATING = "decelerating"
    STABLE = "stable"


class PatternAction(str, Enum):
    BUY = "buy"
    SELL = "sell"
    NEUTRAL = "neutral"


class SymbolInfo(BaseModel):
    """Instrument catalog row."""
    symbol: str
    base_asset: str
    quote_asset: str
    status: str
    is_spot_trading_allowed: bool = False


class Ticker24h(BaseModel):
    """24h rolling ticker row, already parsed to floats."""
    symbol: str
    last_price: float
    price_change_percent: float
    quote_volume: float


class TradingPair(BaseModel):
    """Normalized live snapshot of one trading pair."""
    model_config = ConfigDict(frozen=True)

    symbol: str
    base_asset: str
    quote_asset: str
    price: float
    price_change_24h: float
    volume_24h: float
    market_cap: Optional[float] = None
    order_book_imbalance: float = 0.0
    price_velocity: float = 0.0
    velocity_trend: VelocityTrend = VelocityTrend.STABLE
    pump_probability: float = 0.0
    last_updated: int  # epoch ms


class Candle(BaseModel):
    """Single OHLCV candle."""
    model_config = ConfigDict(frozen=True)

    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: int  # epoch ms, open time


class Pattern(BaseModel):
    """A detected candle or trend pattern."""
    type: str
    confidence: float
    description: str
    action: PatternAction


class TimeframeMetrics(BaseModel):
    """Per-(pair, timeframe) metrics consumed by the prediction path."""
    trading_pair: str
    timeframe: Timeframe
    price_start: Optional[float] = None
    price_end: Optional[float] = None
    price_change_pct: Optional[float] = None
    volume_start: Optional[float] = None
    volume_end: Optional[float] = None
    volume_change_pct: Optional[float] = None
    volatility_score: Optional[float] = None
    liquidity_score: Optional[float] = None
    timestamp: int


class Prediction(BaseModel):
    """One directional prediction for a pair over a timeframe."""
    trading_pair: str
    timeframe: Timeframe
    predicted_change_pct: float
    confidence_score: float
    prediction_timestamp: int


class TopPick(BaseModel):
    """Best-scoring pair across timeframes."""
    trading_pair: str
    market_cap: float
    total_score: float
    best_timeframe: Timeframe
    best_prediction: float
    best_confidence: float
    selection_reason: str


class RankedPrediction(Prediction):
    """Prediction joined with coin metadata, as ranked by the store."""
    market_cap: Optional[float] = None


class CoinMetadata(BaseModel):
    trading_pair: str
    name: Optional[str] = None
    market_cap: Optional[float] = None
    is_top_10: bool = False
    updated_at: int


class TopPickRecord(BaseModel):
    """Persisted top pick row."""
    trading_pair: str
    market_cap: float
    selection_reason: str
    predicted_peak_timeframe: Timeframe
    prediction_confidence: float
    selected_at: int
    is_active: bool = True
