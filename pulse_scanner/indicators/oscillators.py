"""
PULSE SCANNER: Oscillator Indicators
MACD (12, 26, 9)
"""
import pandas as pd
from pulse_scanner.indicators.base import BaseIndicator, Values, as_series, seeded_ema


def macd(values: Values, fast: int = 12, slow: int = 26, signal: int = 9) -> pd.DataFrame:
    """
    MACD line = EMA(fast) − EMA(slow), signal = EMA(signal) of the line,
    histogram = line − signal. Rows start where all three are defined,
    at index slow + signal − 2.
    """
    if fast >= slow:
        raise ValueError(f"fast period ({fast}) must be shorter than slow period ({slow})")
    close = as_series(values)
    line = (seeded_ema(close, fast) - seeded_ema(close, slow)).dropna()
    signal_line = seeded_ema(line, signal)
    line = line.reindex(signal_line.index)
    return pd.DataFrame({
        "macd_line": line,
        "macd_signal": signal_line,
        "macd_histogram": line - signal_line,
    })


class MACDIndicator(BaseIndicator):
    """MACD: Moving Average Convergence Divergence trend-following momentum indicator."""

    def __init__(self, fast: int = 12, slow: int = 26, signal: int = 9):
        self.fast = fast
        self.slow = slow
        self.signal_period = signal
        super().__init__(name="macd", params={
            "fast": fast, "slow": slow, "signal": signal
        })

    @property
    def warmup(self) -> int:
        return self.slow + self.signal_period - 2

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        df = macd(data["close"], self.fast, self.slow, self.signal_period)

        # Signal-line crossovers
        df["macd_cross_bull"] = (
            (df["macd_line"] > df["macd_signal"]) &
            (df["macd_line"].shift(1) <= df["macd_signal"].shift(1))
        ).astype(int)
        df["macd_cross_bear"] = (
            (df["macd_line"] < df["macd_signal"]) &
            (df["macd_line"].shift(1) >= df["macd_signal"].shift(1))
        ).astype(int)

        self._last_result = df
        return df
