"""
PULSE SCANNER: Base Indicator Interface
All indicators implement calculate() over an OHLCV DataFrame and return only
rows past their warm-up window. Short input yields an empty frame, never an
error.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence, Union
import pandas as pd

Values = Union[pd.Series, Sequence[float]]


def as_series(values: Values) -> pd.Series:
    """Coerce a list/array/Series of numbers into a float Series."""
    if isinstance(values, pd.Series):
        return values.astype(float)
    return pd.Series(list(values), dtype=float)


def require_window(window: int) -> None:
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")


def seeded_ema(values: pd.Series, period: int, alpha: Optional[float] = None) -> pd.Series:
    """
    Exponential average seeded with the simple mean of the first `period`
    values. The first output sits at position period-1; earlier positions
    are dropped. alpha defaults to 2/(period+1); Wilder smoothing uses 1/period.
    """
    require_window(period)
    if len(values) < period:
        return values.iloc[0:0].astype(float)
    tail = values.iloc[period - 1:].astype(float).copy()
    tail.iloc[0] = values.iloc[:period].mean()
    if alpha is None:
        alpha = 2.0 / (period + 1.0)
    return tail.ewm(alpha=alpha, adjust=False).mean()


def wilder_smooth(values: pd.Series, period: int) -> pd.Series:
    return seeded_ema(values, period, alpha=1.0 / period)


class BaseIndicator(ABC):
    """Abstract base class for all technical indicators."""

    def __init__(self, name: str, params: Optional[Dict[str, Any]] = None):
        self.name = name
        self.params = params or {}
        self._last_result: Optional[pd.DataFrame] = None

    @abstractmethod
    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """
        Compute the indicator over a frame with open, high, low, close, volume
        columns. Returns the indicator's own columns, indexed like the input,
        with warm-up rows removed.
        """
        pass

    @property
    def warmup(self) -> int:
        """Number of leading input rows that produce no output."""
        return 0

    def reset(self) -> None:
        """Reset any internal state."""
        self._last_result = None

    @property
    def last_result(self) -> Optional[pd.DataFrame]:
        return self._last_result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, params={self.params})"
