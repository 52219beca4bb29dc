"""
PULSE SCANNER: Volatility Indicators
Bollinger Bands (20, 2, population σ), ATR (14, Wilder)
"""
import pandas as pd
from pulse_scanner.indicators.base import BaseIndicator, Values, as_series, require_window, wilder_smooth


def bollinger_bands(values: Values, period: int = 20, std_dev: float = 2.0) -> pd.DataFrame:
    """Middle = SMA(period); bands = middle ± std_dev × population std over the same window."""
    require_window(period)
    close = as_series(values)
    middle = close.rolling(window=period).mean()
    sigma = close.rolling(window=period).std(ddof=0).clip(lower=0.0)
    bands = pd.DataFrame({
        "bb_upper": middle + std_dev * sigma,
        "bb_middle": middle,
        "bb_lower": middle - std_dev * sigma,
    })
    return bands.iloc[period - 1:]


def true_range(data: pd.DataFrame) -> pd.Series:
    """True range from the second candle on (needs the previous close)."""
    prev_close = data["close"].shift(1)
    ranges = pd.concat([
        data["high"] - data["low"],
        (data["high"] - prev_close).abs(),
        (data["low"] - prev_close).abs(),
    ], axis=1)
    return ranges.max(axis=1).iloc[1:]


def atr(data: pd.DataFrame, period: int = 14) -> pd.Series:
    """Wilder-smoothed true range; first output at index `period`."""
    return wilder_smooth(true_range(data), period).rename("atr")


class BollingerBandsIndicator(BaseIndicator):
    """Bollinger Bands: volatility envelope around the moving average."""

    def __init__(self, period: int = 20, std_dev: float = 2.0):
        self.period = period
        self.std_dev = std_dev
        super().__init__(name="bollinger", params={"period": period, "std_dev": std_dev})

    @property
    def warmup(self) -> int:
        return self.period - 1

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        result = bollinger_bands(data["close"], self.period, self.std_dev)
        self._last_result = result
        return result


class ATRIndicator(BaseIndicator):
    """Average True Range: measures market volatility."""

    def __init__(self, period: int = 14):
        self.period = period
        super().__init__(name="atr", params={"period": period})

    @property
    def warmup(self) -> int:
        return self.period

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        df = atr(data, self.period).to_frame()
        df["atr_pct"] = df["atr"] / data["close"].reindex(df.index) * 100.0
        self._last_result = df
        return df
