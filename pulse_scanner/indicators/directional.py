"""
PULSE SCANNER: Directional Indicators
ADX (14) with +DI / -DI
"""
import pandas as pd
import numpy as np
from pulse_scanner.indicators.base import BaseIndicator, require_window, wilder_smooth
from pulse_scanner.indicators.volatility import true_range


def adx(data: pd.DataFrame, period: int = 14) -> pd.DataFrame:
    """
    Average Directional Index using Wilder smoothing throughout.
    +DI/-DI become available at index `period`, ADX at index 2*period - 1.
    """
    require_window(period)
    up_move = data["high"].diff()
    down_move = data["low"].shift(1) - data["low"]

    plus_dm = pd.Series(
        np.where((up_move > down_move) & (up_move > 0), up_move, 0.0), index=data.index
    ).iloc[1:]
    minus_dm = pd.Series(
        np.where((down_move > up_move) & (down_move > 0), down_move, 0.0), index=data.index
    ).iloc[1:]

    atr_smooth = wilder_smooth(true_range(data), period)
    plus_di = (100.0 * wilder_smooth(plus_dm, period) / atr_smooth.replace(0, np.nan)).fillna(0.0)
    minus_di = (100.0 * wilder_smooth(minus_dm, period) / atr_smooth.replace(0, np.nan)).fillna(0.0)

    di_sum = plus_di + minus_di
    dx = (100.0 * (plus_di - minus_di).abs() / di_sum.replace(0, np.nan)).fillna(0.0)
    adx_line = wilder_smooth(dx, period)

    return pd.DataFrame({
        "adx": adx_line,
        "plus_di": plus_di.reindex(adx_line.index),
        "minus_di": minus_di.reindex(adx_line.index),
    })


class ADXIndicator(BaseIndicator):
    """Average Directional Index with +DI/-DI: measures trend strength."""

    def __init__(self, period: int = 14):
        self.period = period
        super().__init__(name="adx", params={"period": period})

    @property
    def warmup(self) -> int:
        return 2 * self.period - 1

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        df = adx(data, self.period)

        # Trend strength classification
        df["adx_strong_trend"] = (df["adx"] > 25).astype(int)
        df["dmi_bullish"] = (df["plus_di"] > df["minus_di"]).astype(int)

        self._last_result = df
        return df
