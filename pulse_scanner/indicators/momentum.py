"""
PULSE SCANNER: Momentum Indicators
RSI (14, Wilder), Rate of Change (10)
"""
import pandas as pd
from pulse_scanner.indicators.base import BaseIndicator, Values, as_series, require_window, wilder_smooth


def rsi(values: Values, period: int = 14) -> pd.Series:
    """Relative Strength Index in [0, 100]; first output at index `period`."""
    require_window(period)
    close = as_series(values)
    delta = close.diff().iloc[1:]
    avg_gain = wilder_smooth(delta.clip(lower=0.0), period)
    avg_loss = wilder_smooth((-delta).clip(lower=0.0), period)

    # avg_loss == 0 gives rs = inf and therefore RSI 100
    rs = avg_gain / avg_loss
    result = 100.0 - (100.0 / (1.0 + rs))
    result = result.mask((avg_gain == 0) & (avg_loss == 0), 50.0)
    return result.rename("rsi")


def roc(values: Values, period: int = 10) -> pd.Series:
    """Percent change against the close `period` candles earlier."""
    require_window(period)
    close = as_series(values)
    prior = close.shift(period)
    return ((close - prior) / prior * 100.0).iloc[period:].rename("roc")


class RSIIndicator(BaseIndicator):
    """Relative Strength Index: speed of price changes."""

    def __init__(self, period: int = 14):
        self.period = period
        super().__init__(name="rsi", params={"period": period})

    @property
    def warmup(self) -> int:
        return self.period

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        df = rsi(data["close"], self.period).to_frame()
        df["rsi_overbought"] = (df["rsi"] > 70).astype(int)
        df["rsi_oversold"] = (df["rsi"] < 30).astype(int)
        self._last_result = df
        return df


class ROCIndicator(BaseIndicator):
    """Rate of Change momentum."""

    def __init__(self, period: int = 10):
        self.period = period
        super().__init__(name="roc", params={"period": period})

    @property
    def warmup(self) -> int:
        return self.period

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        df = roc(data["close"], self.period).to_frame()
        self._last_result = df
        return df
