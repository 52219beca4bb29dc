"""
PULSE SCANNER: Central Configuration
All settings are loaded from environment variables with sensible defaults.
"""
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field
from typing import Dict, List, Optional


class ExchangeSettings(BaseSettings):
    """Exchange REST endpoint and snapshot filtering."""
    base_url: str = Field(default="https://api.binance.com/api/v3", validation_alias=AliasChoices("EXCHANGE_BASE_URL", "base_url"))
    quote_asset: str = Field(default="USDT", validation_alias=AliasChoices("QUOTE_ASSET", "quote_asset"))
    min_quote_volume: float = Field(default=1_000_000.0, validation_alias=AliasChoices("MIN_QUOTE_VOLUME", "min_quote_volume"))
    top_n: int = Field(default=100, validation_alias=AliasChoices("TOP_N_PAIRS", "top_n"))
    request_timeout_seconds: float = Field(default=10.0, validation_alias=AliasChoices("REQUEST_TIMEOUT_SECONDS", "request_timeout_seconds"))
    kline_limit: int = Field(default=100, validation_alias=AliasChoices("KLINE_LIMIT", "kline_limit"))
    kline_cache_ttl_seconds: int = Field(default=60, validation_alias=AliasChoices("KLINE_CACHE_TTL", "kline_cache_ttl_seconds"))

    class Config:
        env_file = ".env"
        extra = "ignore"


class RefreshSettings(BaseSettings):
    """Live ticker refresh cadence."""
    refresh_interval_seconds: float = Field(default=30.0, validation_alias=AliasChoices("REFRESH_INTERVAL", "refresh_interval_seconds"))
    tick_seconds: float = Field(default=1.0, validation_alias=AliasChoices("REFRESH_TICK", "tick_seconds"))

    class Config:
        env_file = ".env"
        extra = "ignore"


class IndicatorSettings(BaseSettings):
    """Indicator computation parameters. Consumers depend on these defaults."""
    sma_periods: List[int] = [20, 50]
    ema_periods: List[int] = [9, 21]
    rsi_period: int = 14
    atr_period: int = 14
    bb_period: int = 20
    bb_std: float = 2.0
    adx_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    roc_period: int = 10

    class Config:
        env_file = ".env"
        extra = "ignore"


class PatternSettings(BaseSettings):
    """Candle pattern thresholds."""
    doji_body_ratio: float = 0.1
    hammer_lower_wick_mult: float = 2.0
    hammer_upper_wick_mult: float = 0.5
    engulfing_body_mult: float = 1.5
    volume_spike_mult: float = 2.0

    class Config:
        env_file = ".env"
        extra = "ignore"


# (change_low, change_high, confidence_low, confidence_high) per quadrant
DEFAULT_QUADRANTS: Dict[str, List[float]] = {
    "bullish_confirmed": [2.0, 10.0, 60.0, 85.0],
    "bullish_unconfirmed": [0.0, 5.0, 50.0, 65.0],
    "bearish_mixed": [-2.0, 2.0, 40.0, 60.0],
    "bearish_confirmed": [-10.0, -5.0, 55.0, 80.0],
}


class PredictionSettings(BaseSettings):
    """Prediction heuristics, gating and top-pick aggregation."""
    timeframes: List[str] = ["15m", "30m", "1h", "4h", "1d"]
    min_data_points: int = Field(default=50, validation_alias=AliasChoices("PRED_MIN_DATA_POINTS", "min_data_points"))
    market_cap_min: float = Field(default=10_000_000.0, validation_alias=AliasChoices("PRED_MARKET_CAP_MIN", "market_cap_min"))
    market_cap_max: float = Field(default=500_000_000.0, validation_alias=AliasChoices("PRED_MARKET_CAP_MAX", "market_cap_max"))
    daily_hour_utc: int = Field(default=0, validation_alias=AliasChoices("PRED_DAILY_HOUR", "daily_hour_utc"))
    daily_window_minutes: int = Field(default=10, validation_alias=AliasChoices("PRED_DAILY_WINDOW", "daily_window_minutes"))

    short_ma_window: int = 9
    long_ma_window: int = 21
    volume_ma_window: int = 5

    default_volatility_score: float = 50.0
    high_volatility_threshold: float = 70.0
    low_volatility_threshold: float = 30.0
    high_volatility_magnitude_mult: float = 1.5
    high_volatility_confidence_mult: float = 0.85
    low_volatility_magnitude_mult: float = 0.7
    low_volatility_confidence_mult: float = 1.1
    max_confidence: float = 95.0

    top_picks_limit: int = Field(default=10, validation_alias=AliasChoices("PRED_TOP_PICKS", "top_picks_limit"))
    top_predictions_per_timeframe: int = 20
    run_interval_seconds: float = Field(default=60.0, validation_alias=AliasChoices("PRED_RUN_INTERVAL", "run_interval_seconds"))

    # Random market caps for the live snapshot while no market-cap feed exists
    placeholder_market_caps: bool = Field(
        default=True, validation_alias=AliasChoices("PRED_PLACEHOLDER_MARKET_CAPS", "placeholder_market_caps")
    )

    quadrants: Dict[str, List[float]] = DEFAULT_QUADRANTS
    top_market_cap_assets: List[str] = [
        "BTC", "ETH", "BNB", "SOL", "XRP", "USDC", "STETH", "DOGE", "ADA", "TRX",
    ]

    class Config:
        env_file = ".env"
        extra = "ignore"


class AppSettings(BaseSettings):
    """Top-level application settings."""
    app_name: str = "PULSE SCANNER"
    version: str = "1.0.0"
    debug: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "host"))
    port: int = Field(default=8000, validation_alias=AliasChoices("PORT", "port"))
    autostart: bool = Field(default=True, validation_alias=AliasChoices("AUTOSTART", "autostart"))

    exchange: ExchangeSettings = Field(default_factory=ExchangeSettings)
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    indicators: IndicatorSettings = Field(default_factory=IndicatorSettings)
    patterns: PatternSettings = Field(default_factory=PatternSettings)
    prediction: PredictionSettings = Field(default_factory=PredictionSettings)

    class Config:
        env_file = ".env"
        extra = "ignore"


# Singleton
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings
