"""
PULSE SCANNER: Trend Indicators
Simple moving average (MA) and SMA-seeded EMA.
"""
import pandas as pd
from pulse_scanner.indicators.base import BaseIndicator, Values, as_series, require_window, seeded_ema


def moving_average(values: Values, window: int) -> pd.Series:
    """Mean of the last `window` values; first output at index window-1."""
    require_window(window)
    series = as_series(values)
    return series.rolling(window=window).mean().iloc[window - 1:]


def ema(values: Values, period: int) -> pd.Series:
    return seeded_ema(as_series(values), period)


class SMAIndicator(BaseIndicator):
    """Simple Moving Average of close."""

    def __init__(self, period: int = 20):
        self.period = period
        super().__init__(name=f"sma_{period}", params={"period": period})

    @property
    def warmup(self) -> int:
        return self.period - 1

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        result = moving_average(data["close"], self.period).to_frame(self.name)
        self._last_result = result
        return result


class EMAIndicator(BaseIndicator):
    """Exponential Moving Average of close, seeded with the first SMA."""

    def __init__(self, period: int = 21):
        self.period = period
        super().__init__(name=f"ema_{period}", params={"period": period})

    @property
    def warmup(self) -> int:
        return self.period - 1

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        result = ema(data["close"], self.period).to_frame(self.name)
        self._last_result = result
        return result
